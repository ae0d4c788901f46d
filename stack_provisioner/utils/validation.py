"""Validation utilities."""

import re
from typing import Optional

LOCALHOST = "localhost"

_LABEL = r"(?!-)[a-z0-9-]{1,63}(?<!-)"
DOMAIN_PATTERN = re.compile(rf"^(?:{_LABEL}\.)+[a-z]{{2,63}}$")
EMAIL_PATTERN = re.compile(r"^[a-z0-9._%+-]+@(?P<domain>[a-z0-9.-]+)$")
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")

MAX_DOMAIN_LENGTH = 253


def validate_domain(domain: str) -> tuple[bool, Optional[str]]:
    """Validate a domain name.

    Accepts the ``localhost`` sentinel and multi-label hostnames whose
    labels neither start nor end with a hyphen.

    Args:
        domain: Domain name to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not domain:
        return False, "Domain name is required"

    candidate = domain.strip().lower()
    if candidate == LOCALHOST:
        return True, None

    if len(candidate) > MAX_DOMAIN_LENGTH:
        return False, f"Domain name is longer than {MAX_DOMAIN_LENGTH} characters"

    if not DOMAIN_PATTERN.match(candidate):
        return False, f"Invalid domain format: {domain}"

    return True, None


def validate_email(email: str) -> tuple[bool, Optional[str]]:
    """Validate an email address.

    The domain part follows :func:`validate_domain`, so ``admin@localhost``
    is accepted as the derived default for local deployments.

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email:
        return False, "Email address is required"

    match = EMAIL_PATTERN.match(email.strip().lower())
    if not match:
        return False, f"Invalid email format: {email}"

    is_valid, _ = validate_domain(match.group("domain"))
    if not is_valid:
        return False, f"Invalid email format: {email}"

    return True, None


def validate_identifier(value: str, max_length: int = 64) -> tuple[bool, Optional[str]]:
    """Validate a database user or schema name.

    Args:
        value: Identifier to validate
        max_length: Maximum accepted length

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not value:
        return False, "Identifier is required"

    if len(value) > max_length:
        return False, f"Identifier longer than {max_length} characters: {value}"

    if not IDENTIFIER_PATTERN.match(value):
        return False, f"Identifier may only contain letters, digits and underscores: {value}"

    return True, None
