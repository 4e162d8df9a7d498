"""Shared fixtures for the vault test-suite."""
import pytest

from keyroost.entries import Entry, EntryStore
from keyroost.vault.crypto import MIN_BLOCK_SIZE, MIN_COST, KdfParams

PASSPHRASE = b"correct horse battery staple"


class FakeClock:
    """Deterministic clock: returns ``now`` and advances by ``step``."""

    def __init__(self, start: float = 1000.0, step: float = 1.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


def make_entry(name, username="user", password="secret", t=100.0):
    return Entry(
        name=name, username=username, password=password,
        created_at=t, updated_at=t,
    )


@pytest.fixture
def fast_params():
    """Cheapest KDF parameters the vault still accepts."""
    return KdfParams.generate(cost=MIN_COST, block_size=MIN_BLOCK_SIZE, parallelism=1)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    s = EntryStore(clock=clock)
    s.add("github", "octocat", "hunter2")
    s.add("gitlab", "tanuki", "p4ss")
    s.add("google", "larry", "s3cret")
    return s


@pytest.fixture
def vault_path(tmp_path):
    return tmp_path / "vault.keyroost"
