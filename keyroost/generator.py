"""Random password generation for new or rotated entries."""
import string
import secrets

DEFAULT_LENGTH = 32

ALNUM_ALPHABET = string.ascii_letters + string.digits
FULL_ALPHABET = ALNUM_ALPHABET + string.punctuation


def generate_password(length: int = DEFAULT_LENGTH, alnum: bool = False) -> str:
    """Return a random password drawn from a CSPRNG.

    Args:
        length: Number of characters (at least 1).
        alnum: Restrict to a-z, A-Z and 0-9.

    Raises:
        ValueError: If length is smaller than 1.
    """
    if length < 1:
        raise ValueError(f"Password length must be at least 1, got {length}")
    alphabet = ALNUM_ALPHABET if alnum else FULL_ALPHABET
    return "".join(secrets.choice(alphabet) for _ in range(length))
