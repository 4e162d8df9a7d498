"""
Vault Envelope — Binary container written to disk and to remotes.

Layout (version 1, all integers big-endian)::

    [version 1B][kdf_algorithm 1B][kdf_cost 4B][kdf_block_size 4B]
    [kdf_parallelism 4B][salt 32B][iv 16B][mac_tag 64B]
    [ciphertext_len 4B][ciphertext]

The envelope knows nothing about what the ciphertext holds. Parsing is
strict: unknown versions and any structural defect are errors, never
defaults.
"""
import struct

from pydantic import BaseModel, Field

from ..exceptions import CorruptData, UnsupportedVersion
from .crypto import IV_SIZE, SALT_SIZE, TAG_SIZE, KdfParams

FORMAT_VERSION = 1

_HEADER = struct.Struct(f"!BBIII{SALT_SIZE}s{IV_SIZE}s{TAG_SIZE}sI")
HEADER_SIZE = _HEADER.size


class VaultEnvelope(BaseModel):
    """Everything needed to re-derive the key and authenticate a payload."""

    kdf: KdfParams
    iv: bytes
    tag: bytes = Field(repr=False)
    ciphertext: bytes = Field(repr=False)
    version: int = FORMAT_VERSION

    model_config = {"frozen": True}


def serialize(envelope: VaultEnvelope) -> bytes:
    """Encode an envelope. Deterministic for a given envelope.

    Raises:
        ValueError: If a fixed-length field has the wrong size.
    """
    if len(envelope.kdf.salt) != SALT_SIZE:
        raise ValueError(f"salt must be {SALT_SIZE} bytes")
    if len(envelope.iv) != IV_SIZE:
        raise ValueError(f"iv must be {IV_SIZE} bytes")
    if len(envelope.tag) != TAG_SIZE:
        raise ValueError(f"mac tag must be {TAG_SIZE} bytes")
    header = _HEADER.pack(
        envelope.version,
        envelope.kdf.algorithm,
        envelope.kdf.cost,
        envelope.kdf.block_size,
        envelope.kdf.parallelism,
        envelope.kdf.salt,
        envelope.iv,
        envelope.tag,
        len(envelope.ciphertext),
    )
    return header + envelope.ciphertext


def parse(data: bytes) -> VaultEnvelope:
    """Decode an envelope.

    Args:
        data: Raw vault bytes.

    Returns:
        Parsed VaultEnvelope.

    Raises:
        UnsupportedVersion: If the version byte is not recognised.
        CorruptData: If the bytes are empty, truncated, or carry trailing
            garbage, or the ciphertext is not block aligned.
    """
    if not data:
        raise CorruptData("Vault data is empty")
    version = data[0]
    if version != FORMAT_VERSION:
        raise UnsupportedVersion(f"Unsupported vault format version {version}")
    if len(data) < HEADER_SIZE:
        raise CorruptData(
            f"Vault data too short: {len(data)} bytes "
            f"(minimum {HEADER_SIZE})"
        )
    (
        version, algorithm, cost, block_size, parallelism,
        salt, iv, tag, length,
    ) = _HEADER.unpack_from(data)
    ciphertext = bytes(data[HEADER_SIZE:])
    if len(ciphertext) != length:
        raise CorruptData(
            f"Ciphertext length mismatch: header says {length}, "
            f"found {len(ciphertext)}"
        )
    if length == 0 or length % IV_SIZE:
        raise CorruptData("Ciphertext is not a whole number of blocks")
    return VaultEnvelope(
        kdf=KdfParams(
            algorithm=algorithm,
            cost=cost,
            block_size=block_size,
            parallelism=parallelism,
            salt=salt,
        ),
        iv=iv,
        tag=tag,
        ciphertext=ciphertext,
        version=version,
    )
