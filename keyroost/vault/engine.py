"""
VaultEngine — One exclusive, open vault session.

Provides the public API for a vault file:
- ``create(path, passphrase)`` / ``open(path, passphrase)`` — start a session
- ``save()`` — encrypt the entries and atomically replace the file
- ``change_password(new_passphrase)`` — re-key with a fresh salt
- ``close()`` — wipe the key and drop every decrypted entry
- entry CRUD delegated to the session's ``EntryStore``

Security Note:
    Never log passphrases, keys or entry passwords. Only log paths,
    entry names and counts. A wrong passphrase and a tampered file both
    surface as ``IntegrityFailure`` with the same message.
"""
import enum
import logging
import time
from pathlib import Path
from typing import Callable, Optional, Union
from collections.abc import Iterator

from ..entries import Entry, EntryStore
from ..exceptions import IoFailure, VaultClosed, VaultError, WeakParameters
from ..generator import DEFAULT_LENGTH
from . import envelope as vault_format
from .crypto import KdfParams, MasterKey, decrypt, derive, encrypt, wipe
from .storage import PathLike, read_file, write_atomic

logger = logging.getLogger("keyroost.vault")

Passphrase = Union[bytes, str]
PassphraseSource = Union[Passphrase, Callable[[], Passphrase]]


class VaultState(enum.Enum):
    CLOSED = "closed"
    OPEN = "open"


def _passphrase_bytes(source: PassphraseSource) -> bytes:
    """Resolve a passphrase or passphrase callback into bytes.

    Raises:
        WeakParameters: If a text passphrase is not valid UTF-8.
    """
    value = source() if callable(source) else source
    if isinstance(value, str):
        try:
            return value.encode("utf-8")
        except UnicodeEncodeError:
            raise WeakParameters("Passphrase is not valid UTF-8 text") from None
    return bytes(value)


# ---------------------------------------------------------------------------
# Sealing / unsealing
# ---------------------------------------------------------------------------

def seal(store: EntryStore, key: MasterKey, kdf: KdfParams) -> bytes:
    """Serialize, encrypt and wrap a store into envelope bytes."""
    payload = bytearray(store.to_bytes())
    try:
        iv, ciphertext, tag = encrypt(key.cipher_key, key.mac_key, payload)
    finally:
        wipe(payload)
    return vault_format.serialize(
        vault_format.VaultEnvelope(kdf=kdf, iv=iv, tag=tag, ciphertext=ciphertext)
    )


def unseal(
    data: bytes,
    passphrase: PassphraseSource,
    clock: Callable[[], float] = time.time,
) -> tuple[EntryStore, MasterKey, KdfParams]:
    """Parse, derive with the envelope's own parameters, verify and decrypt.

    The returned key belongs to the caller; on any error it is wiped
    before the exception propagates.
    """
    envelope = vault_format.parse(data)
    key = derive(_passphrase_bytes(passphrase), envelope.kdf)
    try:
        plaintext = decrypt(
            key.cipher_key, key.mac_key,
            envelope.iv, envelope.ciphertext, envelope.tag,
        )
        try:
            store = EntryStore.from_bytes(plaintext, clock=clock)
        finally:
            wipe(plaintext)
    except BaseException:
        key.wipe()
        raise
    return store, key, envelope.kdf


class VaultEngine:
    """Encrypted vault session: ``CLOSED → OPEN → CLOSED``.

    The engine assumes exclusive access to its file while open; callers
    coordinating several processes must lock externally.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._state = VaultState.CLOSED
        self._path: Optional[Path] = None
        self._key: Optional[MasterKey] = None
        self._kdf: Optional[KdfParams] = None
        self._store: Optional[EntryStore] = None

    def __repr__(self) -> str:
        return f"<VaultEngine state={self._state.value} path={self._path}>"

    def __enter__(self) -> "VaultEngine":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_key", None) is not None:
            self._key.wipe()

    # ------------------------------------------------------------------
    # Session state
    # ------------------------------------------------------------------

    @property
    def state(self) -> VaultState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is VaultState.OPEN

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def kdf_params(self) -> KdfParams:
        self._require_open()
        return self._kdf

    @property
    def entries(self) -> EntryStore:
        """The live entry store of this session."""
        self._require_open()
        return self._store

    def _require_open(self) -> None:
        if self._state is not VaultState.OPEN:
            raise VaultClosed("Vault session is not open")

    def _require_closed(self) -> None:
        if self._state is VaultState.OPEN:
            raise VaultError(f"Vault session already open for {self._path}")

    def _activate(
        self, path: Path, store: EntryStore, key: MasterKey, kdf: KdfParams,
    ) -> None:
        self._path = path
        self._store = store
        self._key = key
        self._kdf = kdf
        self._state = VaultState.OPEN

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(
        self,
        path: PathLike,
        passphrase: PassphraseSource,
        params: Optional[KdfParams] = None,
    ) -> "VaultEngine":
        """Initialise a new empty vault file and open it.

        Args:
            path: Where the vault file will live (must not exist yet).
            passphrase: Master passphrase or a callable returning it.
            params: KDF settings; defaults to fresh default parameters.

        Raises:
            IoFailure: If the file exists or cannot be written.
            WeakParameters: If params are below the minimum.
        """
        self._require_closed()
        path = Path(path)
        if path.exists():
            raise IoFailure(f"Vault file {path} already exists")
        kdf = params or KdfParams.generate()
        key = derive(_passphrase_bytes(passphrase), kdf)
        store = EntryStore(clock=self._clock)
        try:
            write_atomic(path, seal(store, key, kdf))
        except BaseException:
            key.wipe()
            raise
        self._activate(path, store, key, kdf)
        logger.info("Vault created: path=%s", path)
        return self

    def open(self, path: PathLike, passphrase: PassphraseSource) -> "VaultEngine":
        """Read, verify and decrypt a vault file.

        On any failure the session stays ``CLOSED`` and the error
        propagates unchanged.

        Raises:
            IoFailure: File missing or unreadable.
            CorruptData: Structurally invalid envelope or payload.
            UnsupportedVersion: Unknown format version or KDF algorithm.
            WeakParameters: File asks for a KDF cost below the minimum.
            DerivationFailure: Key derivation ran out of resources.
            IntegrityFailure: Wrong passphrase or tampered file.
        """
        self._require_closed()
        path = Path(path)
        data = read_file(path)
        try:
            store, key, kdf = unseal(data, passphrase, clock=self._clock)
        except VaultError:
            logger.debug("Vault open failed: path=%s", path)
            raise
        self._activate(path, store, key, kdf)
        logger.info("Vault opened: path=%s entries=%d", path, len(store))
        return self

    def save(self) -> None:
        """Encrypt the current entries and atomically replace the file.

        Raises:
            IoFailure: The write failed; the previous file is intact.
        """
        self._require_open()
        write_atomic(self._path, seal(self._store, self._key, self._kdf))
        logger.info(
            "Vault saved: path=%s entries=%d", self._path, len(self._store),
        )

    def change_password(
        self,
        new_passphrase: PassphraseSource,
        params: Optional[KdfParams] = None,
    ) -> None:
        """Re-key the vault under a new passphrase and a new salt.

        Args:
            new_passphrase: The new master passphrase.
            params: Optional new KDF cost settings. Their salt is ignored;
                a fresh salt is always generated.

        The file is rewritten immediately. If writing fails the old key
        remains active, the new one is wiped and the error propagates.
        """
        self._require_open()
        kdf = (params or self._kdf).with_new_salt()
        new_key = derive(_passphrase_bytes(new_passphrase), kdf)
        try:
            write_atomic(self._path, seal(self._store, new_key, kdf))
        except BaseException:
            new_key.wipe()
            raise
        old_key, self._key, self._kdf = self._key, new_key, kdf
        old_key.wipe()
        logger.info("Vault master password changed: path=%s", self._path)

    def close(self) -> None:
        """Wipe the key and drop all decrypted entries. Idempotent."""
        if self._key is not None:
            self._key.wipe()
        if self._store is not None:
            self._store.clear()
        was_open = self._state is VaultState.OPEN
        self._key = None
        self._store = None
        self._kdf = None
        self._state = VaultState.CLOSED
        if was_open:
            logger.info("Vault closed: path=%s", self._path)

    # ------------------------------------------------------------------
    # Sync support
    # ------------------------------------------------------------------

    def decrypt_blob(
        self, data: bytes, passphrase: PassphraseSource,
    ) -> EntryStore:
        """Decrypt another copy of the vault (e.g. fetched from a remote).

        The remote envelope's own KDF parameters are used; its key is
        wiped before returning.
        """
        store, key, _ = unseal(data, passphrase, clock=self._clock)
        key.wipe()
        return store

    def encrypt_blob(self) -> bytes:
        """Envelope bytes of the current session, as ``save()`` would write."""
        self._require_open()
        return seal(self._store, self._key, self._kdf)

    def replace_store(self, store: EntryStore) -> None:
        """Adopt a new entry set (typically a merge result)."""
        self._require_open()
        adopted = EntryStore(store.list(), clock=self._clock)
        self._store.clear()
        self._store = adopted

    # ------------------------------------------------------------------
    # Entry operations
    # ------------------------------------------------------------------

    def get(self, name: str) -> Entry:
        return self.entries.get(name)

    def put(self, entry: Entry, overwrite: bool = False) -> Entry:
        return self.entries.put(entry, overwrite=overwrite)

    def add(
        self, name: str, username: str, password: str, overwrite: bool = False,
    ) -> Entry:
        return self.entries.add(name, username, password, overwrite=overwrite)

    def update(
        self,
        name: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Entry:
        return self.entries.update(name, username=username, password=password)

    def regenerate(
        self, name: str, length: int = DEFAULT_LENGTH, alnum: bool = False,
    ) -> Entry:
        return self.entries.regenerate(name, length=length, alnum=alnum)

    def rename(self, old_name: str, new_name: str) -> Entry:
        return self.entries.rename(old_name, new_name)

    def delete(self, name: str) -> Entry:
        return self.entries.delete(name)

    def search(self, query: str) -> list[Entry]:
        return self.entries.search(query)

    def list(self) -> Iterator[Entry]:
        return self.entries.list()
