"""
Sync Client — download, decrypt, merge, save and upload.

The whole vault is the unit of synchronization. The remote copy may have
been re-keyed on another machine, so it is always decrypted with the KDF
parameters stored in its own envelope.

Security Note:
    The remote entry set is dropped as soon as the merge completes.
    Never log passphrases or entry passwords.
"""
import logging

from pydantic import BaseModel

from ..exceptions import NotFound
from ..vault.engine import PassphraseSource, VaultEngine
from .merge import ConflictReport, merge
from .remote import RemoteStorage

logger = logging.getLogger("keyroost.sync")


class SyncResult(BaseModel):
    """Outcome of one synchronization round."""

    conflicts: tuple[ConflictReport, ...] = ()
    added: tuple[str, ...] = ()
    saved: bool = False
    uploaded: bool = False

    model_config = {"frozen": True}


def synchronize(
    engine: VaultEngine,
    remote: RemoteStorage,
    passphrase: PassphraseSource,
) -> SyncResult:
    """Reconcile an open vault with its remote copy.

    Args:
        engine: Open vault session.
        remote: Backend holding the remote copy.
        passphrase: Passphrase of the remote copy (usually the same one).

    Returns:
        SyncResult with conflict reports and the names adopted from remote.

    Raises:
        VaultClosed: If the engine is not open.
        IntegrityFailure: If the remote copy does not verify.
        IoFailure: If saving locally or uploading fails.
    """
    try:
        blob = remote.fetch()
    except NotFound:
        logger.info("Remote %r is empty, uploading local vault", remote)
        remote.upload(engine.encrypt_blob())
        return SyncResult(uploaded=True)

    remote_store = engine.decrypt_blob(blob, passphrase)
    local = engine.entries.copy()
    try:
        merged, conflicts = merge(local, remote_store)
        remote_current = merged == remote_store
    finally:
        remote_store.clear()

    added = tuple(name for name in merged.names() if name not in local)
    saved = uploaded = False
    if merged != local:
        engine.replace_store(merged)
        engine.save()
        saved = True
    if not remote_current:
        remote.upload(engine.encrypt_blob())
        uploaded = True
    local.clear()

    for report in conflicts:
        logger.warning(
            "Sync conflict on %s: kept version from %s",
            report.name, report.kept.updated_at,
        )
    logger.info(
        "Sync complete: %d adopted, %d conflicts, saved=%s uploaded=%s",
        len(added), len(conflicts), saved, uploaded,
    )
    return SyncResult(
        conflicts=conflicts, added=added, saved=saved, uploaded=uploaded,
    )
