"""
Credentials Module

Generates the lab administrator password and the random suffixes used for
disk names, and writes the credentials file handed to the operator.
"""

import os
import secrets
import string
from pathlib import Path

# Ambiguous glyphs (l, o, I, O, 0, 1) are left out of every pool.
LOWER_POOL = "abcdefghijkmnpqrstuvwxyz"
UPPER_POOL = "ABCDEFGHJKLMNPQRSTUVWXYZ"
DIGIT_POOL = "23456789"

DRAWS_PER_POOL = 5
MAX_PASSWORD_LENGTH = DRAWS_PER_POOL * 3

SUFFIX_LENGTH = 16
SUFFIX_ALPHABET = string.ascii_lowercase + string.digits

_random = secrets.SystemRandom()


def generate_password(length: int = 12) -> str:
    """
    Generate an administrator password.

    Five characters are drawn from each pool, then ``length`` of those
    fifteen are sampled without replacement, so the result mixes classes
    without a guaranteed count per class.

    Args:
        length: Number of characters, between 1 and 15

    Returns:
        The generated password

    Raises:
        ValueError: If length is outside the supported range
    """
    if not 1 <= length <= MAX_PASSWORD_LENGTH:
        raise ValueError(
            f"Password length must be between 1 and {MAX_PASSWORD_LENGTH}, got {length}"
        )

    combined = []
    for pool in (LOWER_POOL, UPPER_POOL, DIGIT_POOL):
        combined.extend(_random.choice(pool) for _ in range(DRAWS_PER_POOL))

    return ''.join(_random.sample(combined, length))


def generate_suffix() -> str:
    """Generate a 16 character alphanumeric suffix for disk names."""
    return ''.join(_random.choice(SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))


def write_credentials_file(path, username: str, password: str) -> Path:
    """
    Write the lab administrator credentials to a local file.

    The file is created readable by the owner only.

    Args:
        path: Destination file path
        username: Administrator username
        password: Generated administrator password

    Returns:
        The path that was written
    """
    output_path = Path(path)
    fd = os.open(str(output_path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, 'w', encoding='utf-8') as f:
        f.write(f"Username: {username}\n")
        f.write(f"Password: {password}\n")
    return output_path
