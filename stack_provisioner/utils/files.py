"""Filesystem helpers."""

import os
import tempfile
from pathlib import Path
from typing import Union

from ..exceptions import WriteError

PathLike = Union[str, Path]


def atomic_write(path: PathLike, content: str, mode: int = 0o644) -> Path:
    """Write a file through a temporary sibling and an atomic rename.

    The temporary file gets ``mode`` before any content is written.

    Args:
        path: Destination path
        content: Text content
        mode: Permission bits for the final file

    Returns:
        Destination path

    Raises:
        WriteError: On any filesystem failure
    """
    destination = Path(path)
    tmp_path = None

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(destination.parent),
            prefix=f".{destination.name}.",
            suffix=".tmp"
        )
        os.fchmod(fd, mode)
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, destination)
        tmp_path = None
    except OSError as e:
        raise WriteError(f"Failed to write {destination}: {e}", path=str(destination)) from e
    finally:
        if tmp_path and os.path.exists(tmp_path):
            os.unlink(tmp_path)

    return destination


def ensure_directory(path: PathLike, mode: int = 0o755) -> Path:
    """Create a directory (and parents) and pin its permission bits.

    Raises:
        WriteError: On any filesystem failure
    """
    directory = Path(path)
    try:
        directory.mkdir(parents=True, exist_ok=True)
        os.chmod(directory, mode)
    except OSError as e:
        raise WriteError(f"Failed to create directory {directory}: {e}", path=str(directory)) from e
    return directory
