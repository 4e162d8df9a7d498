"""KeyRoost.

A local-first password manager core: an encrypted single-file vault of
(application, username, password) entries, with merge-based sync of the
encrypted file through any blob store.
"""
from .version import (
    __title__, __description__, __version__, __author__, __author_email__
)
from .exceptions import (
    VaultError,
    WeakParameters,
    DerivationFailure,
    IntegrityFailure,
    CorruptData,
    UnsupportedVersion,
    DuplicateEntry,
    NotFound,
    IoFailure,
    VaultClosed,
)
from .entries import Entry, EntryStore
from .generator import generate_password
from .vault import KdfParams, VaultConfig, VaultEngine, rotate_passphrase
from .sync import ConflictReport, FolderRemote, merge, synchronize

__all__ = (
    "VaultError",
    "WeakParameters",
    "DerivationFailure",
    "IntegrityFailure",
    "CorruptData",
    "UnsupportedVersion",
    "DuplicateEntry",
    "NotFound",
    "IoFailure",
    "VaultClosed",
    "Entry",
    "EntryStore",
    "generate_password",
    "KdfParams",
    "VaultConfig",
    "VaultEngine",
    "rotate_passphrase",
    "ConflictReport",
    "FolderRemote",
    "merge",
    "synchronize",
)
