"""Base worker class for external tool adapters."""

import asyncio
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..exceptions import ExternalToolError


class BaseWorker:
    """Runs external commands and maps failures to ExternalToolError."""

    def __init__(
        self,
        name: Optional[str] = None,
        cwd: Optional[Union[str, Path]] = None,
        timeout: int = 600
    ):
        """Initialize base worker.

        Args:
            name: Worker name for logging
            cwd: Working directory for commands
            timeout: Default command timeout in seconds
        """
        self.name = name or self.__class__.__name__
        self.logger = logging.getLogger(f"stack_provisioner.workers.{self.name}")
        self.cwd = str(cwd) if cwd is not None else None
        self.timeout = timeout

    @staticmethod
    def is_available(binary: str) -> bool:
        """Check whether a binary is on PATH."""
        return shutil.which(binary) is not None

    async def execute_command(
        self,
        argv: Sequence[str],
        timeout: Optional[int] = None,
        hints: Optional[List[str]] = None
    ) -> str:
        """Execute a command without a shell.

        Args:
            argv: Program and arguments
            timeout: Command timeout in seconds
            hints: Diagnostics attached to the error on failure

        Returns:
            Command stdout

        Raises:
            ExternalToolError: Missing binary, timeout or non-zero exit
        """
        timeout = timeout or self.timeout
        command = " ".join(argv)
        start_time = datetime.now(timezone.utc)

        self.logger.debug(f"Running: {command}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=self.cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except FileNotFoundError as e:
            raise ExternalToolError(
                f"{argv[0]} is not installed or not on PATH",
                tool=argv[0],
                hints=hints
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.communicate()
            raise ExternalToolError(
                f"Command timed out after {timeout}s: {command}",
                tool=argv[0],
                hints=hints
            )
        finally:
            execution_time = (datetime.now(timezone.utc) - start_time).total_seconds()
            self.logger.debug(f"Command took {execution_time:.2f}s: {command}")

        out = stdout.decode("utf-8", errors="ignore").strip()
        err = stderr.decode("utf-8", errors="ignore").strip()

        if proc.returncode != 0:
            self.logger.error(f"Command failed with status {proc.returncode}: {command}")
            raise ExternalToolError(
                f"Command failed with status {proc.returncode}: {command}",
                tool=argv[0],
                returncode=proc.returncode,
                output=err or out,
                hints=hints
            )

        return out
