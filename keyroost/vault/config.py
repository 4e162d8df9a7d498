"""
Vault Configuration — Vault location and key derivation settings.

Reads settings from environment variables:
    KEYROOST_FILE = <path to the vault file>  (default ~/.passwords.keyroost)
    KEYROOST_KDF_COST = <log2 of the scrypt N parameter>
    KEYROOST_KDF_BLOCK_SIZE = <scrypt r>
    KEYROOST_KDF_PARALLELISM = <scrypt p>
    KEYROOST_REMOTE_DIR = <cloud-synced folder used as sync remote>

Security Note:
    Nothing secret is configured here. Passphrases are always supplied
    by the caller at open time.
"""
import os
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .crypto import (
    DEFAULT_BLOCK_SIZE,
    DEFAULT_COST,
    DEFAULT_PARALLELISM,
    MAX_BLOCK_SIZE,
    MAX_COST,
    MAX_PARALLELISM,
    MIN_BLOCK_SIZE,
    MIN_COST,
    MIN_PARALLELISM,
    KdfParams,
)

logger = logging.getLogger("keyroost.vault")

VAULT_FILE_ENV = "KEYROOST_FILE"
VAULT_FILE_DEFAULT = ".passwords.keyroost"


def default_vault_path() -> Path:
    """Return the vault path from KEYROOST_FILE, or the home default."""
    raw = os.environ.get(VAULT_FILE_ENV)
    if raw:
        return Path(raw).expanduser()
    return Path.home() / VAULT_FILE_DEFAULT


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable.

    Raises:
        ValueError: If the value is set but not a valid integer.
    """
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return int(raw)


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    vault_path: Path = Field(default_factory=default_vault_path)
    kdf_cost: int = Field(default=DEFAULT_COST, ge=MIN_COST, le=MAX_COST)
    kdf_block_size: int = Field(
        default=DEFAULT_BLOCK_SIZE, ge=MIN_BLOCK_SIZE, le=MAX_BLOCK_SIZE
    )
    kdf_parallelism: int = Field(
        default=DEFAULT_PARALLELISM, ge=MIN_PARALLELISM, le=MAX_PARALLELISM
    )
    remote_folder: Optional[Path] = None

    @field_validator("vault_path")
    @classmethod
    def validate_vault_path(cls, v: Path) -> Path:
        """Expand ``~`` and refuse directories."""
        v = v.expanduser()
        if v.is_dir():
            raise ValueError(f"Vault path {v} is a directory")
        return v

    @field_validator("remote_folder")
    @classmethod
    def validate_remote_folder(cls, v: Optional[Path]) -> Optional[Path]:
        return v.expanduser() if v is not None else None

    def kdf_params(self) -> KdfParams:
        """Fresh KDF parameters (new random salt) from this configuration."""
        return KdfParams.generate(
            cost=self.kdf_cost,
            block_size=self.kdf_block_size,
            parallelism=self.kdf_parallelism,
        )

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        remote = os.environ.get("KEYROOST_REMOTE_DIR")
        config = cls(
            vault_path=default_vault_path(),
            kdf_cost=_env_int("KEYROOST_KDF_COST", DEFAULT_COST),
            kdf_block_size=_env_int(
                "KEYROOST_KDF_BLOCK_SIZE", DEFAULT_BLOCK_SIZE
            ),
            kdf_parallelism=_env_int(
                "KEYROOST_KDF_PARALLELISM", DEFAULT_PARALLELISM
            ),
            remote_folder=Path(remote) if remote else None,
        )
        logger.debug(
            "Loaded vault config: path=%s cost=%d remote=%s",
            config.vault_path, config.kdf_cost, config.remote_folder,
        )
        return config
