"""
KeyRoost Exception Classes.

Every public operation either succeeds or raises one of these. Messages
never carry passphrases, key material or entry passwords.
"""
from typing import Optional


class VaultError(Exception):
    """Base exception for vault operations."""


class WeakParameters(VaultError):
    """Raised when KDF parameters are below the hard-coded minimum."""


class DerivationFailure(VaultError):
    """Raised when key derivation cannot complete (e.g. out of memory)."""


class IntegrityFailure(VaultError):
    """Raised when the MAC tag does not verify.

    A wrong passphrase and a tampered file are reported identically.
    """

    def __init__(self, message: str = "Vault integrity check failed"):
        super().__init__(message)


class CorruptData(VaultError):
    """Raised on structurally invalid envelopes, padding or payloads."""


class UnsupportedVersion(VaultError):
    """Raised when the vault format version or KDF algorithm is unknown."""


class DuplicateEntry(VaultError):
    """Raised when an entry name already exists and overwrite was not requested."""

    def __init__(self, name: str, message: Optional[str] = None):
        self.name = name
        super().__init__(message or f"An entry named {name!r} already exists")


class NotFound(VaultError):
    """Raised when an entry (or a remote vault) does not exist."""

    def __init__(self, name: str, message: Optional[str] = None):
        self.name = name
        super().__init__(message or f"No entry named {name!r}")


class IoFailure(VaultError):
    """Raised when reading, writing or renaming vault files fails."""


class VaultClosed(VaultError):
    """Raised when an operation needs an open vault session."""
