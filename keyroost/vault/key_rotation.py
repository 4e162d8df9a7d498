"""
Vault Key Rotation — Re-key a vault file under a new master passphrase.

Rotation always draws a new salt, so the old passphrase can never derive
the new key. The file is replaced atomically; an interrupted rotation
leaves the previous vault readable with the old passphrase.

Security Note:
    Plaintext entries exist in memory only for the duration of the
    rotation. Never log passphrases or key material.
"""
import logging
from typing import Optional

from .crypto import KdfParams
from .engine import PassphraseSource, VaultEngine
from .storage import PathLike

logger = logging.getLogger("keyroost.vault")


def rotate_passphrase(
    path: PathLike,
    old_passphrase: PassphraseSource,
    new_passphrase: PassphraseSource,
    params: Optional[KdfParams] = None,
) -> KdfParams:
    """Re-encrypt a vault file without keeping a session open.

    Args:
        path: Vault file to rotate.
        old_passphrase: Current master passphrase.
        new_passphrase: Replacement master passphrase.
        params: Optional new KDF cost settings (e.g. a cost upgrade).

    Returns:
        The KDF parameters now stored in the file.

    Raises:
        IntegrityFailure: If old_passphrase does not open the vault.
        IoFailure: If the rewritten vault cannot be stored.
    """
    logger.info("Starting passphrase rotation for %s", path)
    with VaultEngine().open(path, old_passphrase) as engine:
        old_cost = engine.kdf_params.cost
        engine.change_password(new_passphrase, params=params)
        rotated = engine.kdf_params
    logger.info(
        "Passphrase rotation complete for %s (cost %d -> %d)",
        path, old_cost, rotated.cost,
    )
    return rotated
