"""Vault — Encrypted, single-file storage of password entries.

Security Note (Threat Model):
    Entries are decrypted into process memory while a session is open.
    Key material is held in mutable buffers and zeroed on close, rotation
    and error paths, but Python ``str`` values (usernames, passwords)
    are immutable and can only be released, not overwritten. A memory
    dump of a process with an open session can expose them. This is an
    accepted limitation.
"""

from .crypto import KdfParams, MasterKey, derive, encrypt, decrypt
from .envelope import VaultEnvelope, FORMAT_VERSION
from .engine import VaultEngine, VaultState
from .key_rotation import rotate_passphrase
from .config import VaultConfig, default_vault_path

__all__ = [
    "KdfParams",
    "MasterKey",
    "derive",
    "encrypt",
    "decrypt",
    "VaultEnvelope",
    "FORMAT_VERSION",
    "VaultEngine",
    "VaultState",
    "rotate_passphrase",
    "VaultConfig",
    "default_vault_path",
]
