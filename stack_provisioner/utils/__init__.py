"""Utility modules."""

from .config import Config
from .logging import setup_logging, get_logger
from .validation import validate_domain, validate_email, validate_identifier
from .secrets import generate_secret
from .files import atomic_write, ensure_directory

__all__ = [
    "Config",
    "setup_logging",
    "get_logger",
    "validate_domain",
    "validate_email",
    "validate_identifier",
    "generate_secret",
    "atomic_write",
    "ensure_directory",
]
