"""Configuration artifact builders."""

from .config_emitter import ConfigEmitter, DIRECTORIES, write_artifacts
from .env_file import load_identity

__all__ = [
    "ConfigEmitter",
    "DIRECTORIES",
    "write_artifacts",
    "load_identity",
]
