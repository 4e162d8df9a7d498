"""
Vault Crypto Core — Key derivation and authenticated encryption.

Implements the two cryptographic layers of a vault file:
- Key derivation: scrypt(passphrase, salt, N=2^cost, r, p) → 64 bytes,
  split into an AES-256 key and an HMAC-SHA512 key.
- Encrypt-then-MAC: AES-256-CBC + PKCS7 → HMAC-SHA512(iv || ciphertext).

Security Note:
    Never log passphrases, key material, plaintext or ciphertext values.
    Tags are verified with a constant-time comparison before any block
    cipher operation runs.
"""
import os
import logging
from typing import Optional

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from pydantic import BaseModel, Field

from ..exceptions import (
    CorruptData,
    DerivationFailure,
    IntegrityFailure,
    UnsupportedVersion,
    WeakParameters,
)

logger = logging.getLogger("keyroost.vault")

KDF_SCRYPT = 1  # algorithm id stored in the envelope

SALT_SIZE = 32
IV_SIZE = 16  # AES block size
TAG_SIZE = 64  # HMAC-SHA512 output
CIPHER_KEY_SIZE = 32  # AES-256
MAC_KEY_SIZE = 32
KEY_MATERIAL_SIZE = CIPHER_KEY_SIZE + MAC_KEY_SIZE

DEFAULT_COST = 15  # log2(N)
DEFAULT_BLOCK_SIZE = 8
DEFAULT_PARALLELISM = 1

MIN_COST = 12
MIN_BLOCK_SIZE = 8
MIN_PARALLELISM = 1

# A vault file may be hostile: refuse to allocate absurd amounts of memory.
MAX_COST = 24
MAX_BLOCK_SIZE = 64
MAX_PARALLELISM = 16


# ---------------------------------------------------------------------------
# Secret buffers
# ---------------------------------------------------------------------------

def wipe(buffer: bytearray) -> None:
    """Overwrite a mutable buffer with zeros in place."""
    buffer[:] = bytes(len(buffer))


class KdfParams(BaseModel):
    """Persisted key derivation settings of one vault.

    Values read from a file are not range checked here; ``check_params``
    does that with the vault error types.
    """

    algorithm: int
    cost: int
    block_size: int
    parallelism: int
    salt: bytes = Field(repr=False)

    model_config = {"frozen": True, "strict": True}

    @classmethod
    def generate(
        cls,
        cost: int = DEFAULT_COST,
        block_size: int = DEFAULT_BLOCK_SIZE,
        parallelism: int = DEFAULT_PARALLELISM,
    ) -> "KdfParams":
        """Return scrypt parameters with a fresh random salt.

        Raises:
            WeakParameters: If a setting is below the minimum.
            DerivationFailure: If a setting exceeds the resource ceiling.
        """
        params = cls(
            algorithm=KDF_SCRYPT,
            cost=cost,
            block_size=block_size,
            parallelism=parallelism,
            salt=os.urandom(SALT_SIZE),
        )
        check_params(params)
        return params

    def with_new_salt(self) -> "KdfParams":
        """Same cost settings, new random salt."""
        return KdfParams.generate(self.cost, self.block_size, self.parallelism)


class MasterKey:
    """Cipher key and MAC key derived from one passphrase.

    Both halves live in ``bytearray`` buffers so ``wipe()`` can zero them.
    A wiped key refuses to be used again.
    """

    __slots__ = ("_cipher_key", "_mac_key", "_wiped")

    def __init__(self, material: bytes):
        if len(material) != KEY_MATERIAL_SIZE:
            raise ValueError(
                f"key material must be {KEY_MATERIAL_SIZE} bytes, "
                f"got {len(material)}"
            )
        self._cipher_key = bytearray(material[:CIPHER_KEY_SIZE])
        self._mac_key = bytearray(material[CIPHER_KEY_SIZE:])
        self._wiped = False

    def __repr__(self) -> str:
        state = "wiped" if self._wiped else "live"
        return f"<MasterKey {state}>"

    def __enter__(self) -> "MasterKey":
        return self

    def __exit__(self, *exc) -> None:
        self.wipe()

    @property
    def wiped(self) -> bool:
        return self._wiped

    @property
    def cipher_key(self) -> bytearray:
        self._check()
        return self._cipher_key

    @property
    def mac_key(self) -> bytearray:
        self._check()
        return self._mac_key

    def _check(self) -> None:
        if self._wiped:
            raise RuntimeError("MasterKey has been wiped")

    def wipe(self) -> None:
        """Zero both key halves. Safe to call more than once."""
        wipe(self._cipher_key)
        wipe(self._mac_key)
        self._wiped = True


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def check_params(params: KdfParams) -> None:
    """Validate KDF parameters read from a vault or supplied by a caller.

    Raises:
        UnsupportedVersion: If the algorithm id is unknown.
        WeakParameters: If any cost setting is below the minimum.
        DerivationFailure: If any cost setting exceeds the resource ceiling.
    """
    if params.algorithm != KDF_SCRYPT:
        raise UnsupportedVersion(
            f"Unsupported KDF algorithm id {params.algorithm}"
        )
    if (
        params.cost < MIN_COST
        or params.block_size < MIN_BLOCK_SIZE
        or params.parallelism < MIN_PARALLELISM
    ):
        raise WeakParameters(
            f"KDF parameters below minimum (cost={params.cost}, "
            f"block_size={params.block_size}, "
            f"parallelism={params.parallelism})"
        )
    if (
        params.cost > MAX_COST
        or params.block_size > MAX_BLOCK_SIZE
        or params.parallelism > MAX_PARALLELISM
    ):
        raise DerivationFailure(
            f"KDF parameters exceed resource limits (cost={params.cost}, "
            f"block_size={params.block_size}, "
            f"parallelism={params.parallelism})"
        )
    if len(params.salt) != SALT_SIZE:
        raise WeakParameters(
            f"KDF salt must be {SALT_SIZE} bytes, got {len(params.salt)}"
        )


def derive(passphrase: bytes, params: KdfParams) -> MasterKey:
    """Derive the cipher and MAC keys for a vault.

    Identical (passphrase, params) always yields the identical key pair.

    Args:
        passphrase: Master passphrase bytes (non-empty, never stored).
        params: KDF settings including the vault salt.

    Returns:
        MasterKey holding independent cipher and MAC keys.

    Raises:
        WeakParameters: Empty passphrase or cost below minimum.
        DerivationFailure: Resources exhausted or backend refused.
        UnsupportedVersion: Unknown KDF algorithm id.
    """
    if not passphrase:
        raise WeakParameters("Passphrase must not be empty")
    check_params(params)
    kdf = Scrypt(
        salt=params.salt,
        length=KEY_MATERIAL_SIZE,
        n=1 << params.cost,
        r=params.block_size,
        p=params.parallelism,
    )
    try:
        material = kdf.derive(passphrase)
    except MemoryError as err:
        raise DerivationFailure(
            "Not enough memory to derive the vault key"
        ) from err
    except (UnsupportedAlgorithm, ValueError) as err:
        raise DerivationFailure(f"Key derivation failed: {err}") from err
    logger.debug(
        "Derived vault key (cost=%d, block_size=%d, parallelism=%d)",
        params.cost, params.block_size, params.parallelism,
    )
    return MasterKey(material)


# ---------------------------------------------------------------------------
# Encrypt-then-MAC
# ---------------------------------------------------------------------------

def compute_tag(mac_key: bytearray, iv: bytes, ciphertext: bytes) -> bytes:
    """HMAC-SHA512 over ``iv || ciphertext``."""
    mac = hmac.HMAC(mac_key, hashes.SHA512())
    mac.update(iv)
    mac.update(ciphertext)
    return mac.finalize()


def encrypt(
    key: bytearray,
    mac_key: bytearray,
    plaintext: bytes,
    iv: Optional[bytes] = None,
) -> tuple[bytes, bytes, bytes]:
    """Encrypt and authenticate a payload.

    A fresh random IV is drawn for every call; ``iv`` exists only so
    tests can pin known-answer vectors.

    Returns:
        Tuple of (iv, ciphertext, tag).
    """
    if iv is None:
        iv = os.urandom(IV_SIZE)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    tag = compute_tag(mac_key, iv, ciphertext)
    return iv, ciphertext, tag


def decrypt(
    key: bytearray,
    mac_key: bytearray,
    iv: bytes,
    ciphertext: bytes,
    tag: bytes,
) -> bytearray:
    """Verify the tag, then decrypt.

    No block cipher operation happens unless the tag verifies.

    Returns:
        Plaintext in a mutable buffer the caller should ``wipe()``.

    Raises:
        IntegrityFailure: Tag mismatch (wrong key or tampered data).
        CorruptData: Tag matched but the padding or block layout is invalid.
    """
    mac = hmac.HMAC(mac_key, hashes.SHA512())
    mac.update(iv)
    mac.update(ciphertext)
    try:
        mac.verify(tag)
    except InvalidSignature:
        raise IntegrityFailure() from None
    if not ciphertext or len(ciphertext) % IV_SIZE:
        raise CorruptData("Ciphertext is not a whole number of blocks")
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = bytearray(decryptor.update(ciphertext) + decryptor.finalize())
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    try:
        plaintext = bytearray(unpadder.update(padded) + unpadder.finalize())
    except ValueError as err:
        raise CorruptData("Invalid padding in vault payload") from err
    finally:
        wipe(padded)
    return plaintext
