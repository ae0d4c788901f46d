"""Secret generation."""

import secrets
import string

SECRET_ALPHABET = string.ascii_letters + string.digits
MIN_SECRET_LENGTH = 24


def generate_secret(length: int = MIN_SECRET_LENGTH) -> str:
    """Generate an alphanumeric secret from the system CSPRNG.

    Args:
        length: Number of characters, at least ``MIN_SECRET_LENGTH``

    Returns:
        Generated secret
    """
    if length < MIN_SECRET_LENGTH:
        raise ValueError(f"Secrets must be at least {MIN_SECRET_LENGTH} characters")

    return "".join(secrets.choice(SECRET_ALPHABET) for _ in range(length))


def is_safe_secret(value: str) -> bool:
    """Check that a secret is long enough and alphanumeric only."""
    return len(value) >= MIN_SECRET_LENGTH and all(c in SECRET_ALPHABET for c in value)
