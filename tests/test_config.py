"""
Tests for VaultConfig.

Tests cover:
- Defaults and environment loading
- Validation of KDF settings and paths
"""
from pathlib import Path

import pytest
from pydantic import ValidationError

from keyroost.vault.config import VaultConfig, default_vault_path
from keyroost.vault.crypto import DEFAULT_COST, MIN_COST, SALT_SIZE


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "KEYROOST_FILE",
        "KEYROOST_KDF_COST",
        "KEYROOST_KDF_BLOCK_SIZE",
        "KEYROOST_KDF_PARALLELISM",
        "KEYROOST_REMOTE_DIR",
    ):
        monkeypatch.delenv(name, raising=False)


class TestVaultPath:
    """Tests for vault file resolution."""

    def test_default_in_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert default_vault_path() == tmp_path / ".passwords.keyroost"

    def test_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("KEYROOST_FILE", str(tmp_path / "mine.vault"))
        assert default_vault_path() == tmp_path / "mine.vault"

    def test_directory_rejected(self, tmp_path):
        with pytest.raises(ValidationError):
            VaultConfig(vault_path=tmp_path)


class TestVaultConfig:
    """Tests for VaultConfig validation and from_env()."""

    def test_defaults(self, tmp_path):
        config = VaultConfig(vault_path=tmp_path / "v")
        assert config.kdf_cost == DEFAULT_COST
        assert config.remote_folder is None

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("KEYROOST_FILE", str(tmp_path / "v"))
        monkeypatch.setenv("KEYROOST_KDF_COST", str(MIN_COST))
        monkeypatch.setenv("KEYROOST_REMOTE_DIR", str(tmp_path / "cloud"))
        config = VaultConfig.from_env()
        assert config.vault_path == tmp_path / "v"
        assert config.kdf_cost == MIN_COST
        assert config.remote_folder == tmp_path / "cloud"

    def test_weak_cost_rejected(self, tmp_path):
        with pytest.raises(ValidationError):
            VaultConfig(vault_path=tmp_path / "v", kdf_cost=MIN_COST - 1)

    def test_non_integer_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("KEYROOST_FILE", str(tmp_path / "v"))
        monkeypatch.setenv("KEYROOST_KDF_COST", "lots")
        with pytest.raises(ValueError):
            VaultConfig.from_env()

    def test_kdf_params(self, tmp_path):
        config = VaultConfig(vault_path=tmp_path / "v", kdf_cost=MIN_COST)
        a = config.kdf_params()
        b = config.kdf_params()
        assert a.cost == MIN_COST
        assert len(a.salt) == SALT_SIZE
        assert a.salt != b.salt

    def test_tilde_expanded(self):
        config = VaultConfig(vault_path=Path("~/vault.keyroost"))
        assert "~" not in str(config.vault_path)
