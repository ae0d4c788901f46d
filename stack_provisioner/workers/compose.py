"""Compose orchestration worker."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from ..exceptions import ExternalToolError
from .base import BaseWorker

PROXY_SERVICE = "nginx"
CERTBOT_SERVICE = "letsencrypt"
CERTBOT_PROFILE = "ssl-tools"

ENGINE_HINTS = [
    "Is the container engine installed? See https://docs.docker.com/engine/install/",
    "Is the engine daemon running (systemctl start docker)?",
    "Does the current user belong to the docker group?",
]


class ComposeWorker(BaseWorker):
    """Drives the compose engine for the deployment directory."""

    def __init__(
        self,
        project_dir: Union[str, Path],
        docker_binary: str = "docker",
        timeout: int = 600
    ):
        """Initialize compose worker.

        Args:
            project_dir: Directory holding docker-compose.yml and .env
            docker_binary: Container engine binary
            timeout: Default command timeout in seconds
        """
        super().__init__(cwd=project_dir, timeout=timeout)
        self.docker_binary = docker_binary
        self._compose_cmd: Optional[List[str]] = None

    async def compose_command(self) -> List[str]:
        """Detect the compose plugin, falling back to standalone docker-compose.

        Raises:
            ExternalToolError: Neither variant is available
        """
        if self._compose_cmd is not None:
            return self._compose_cmd

        if self.is_available(self.docker_binary):
            try:
                await self.execute_command([self.docker_binary, "compose", "version"], timeout=30)
                self._compose_cmd = [self.docker_binary, "compose"]
            except ExternalToolError:
                self.logger.debug("Compose plugin not available")

        if self._compose_cmd is None and self.is_available("docker-compose"):
            self._compose_cmd = ["docker-compose"]

        if self._compose_cmd is None:
            raise ExternalToolError(
                "Docker Compose is not installed",
                tool="docker compose",
                hints=ENGINE_HINTS,
            )

        self.logger.info(f"Using compose command: {' '.join(self._compose_cmd)}")
        return self._compose_cmd

    async def compose(self, args: Sequence[str], timeout: Optional[int] = None) -> str:
        """Run a compose subcommand in the project directory."""
        base = await self.compose_command()
        return await self.execute_command([*base, *args], timeout=timeout, hints=ENGINE_HINTS)

    async def engine_version(self) -> str:
        """Return the container engine version string."""
        return await self.execute_command(
            [self.docker_binary, "version", "--format", "{{.Server.Version}}"],
            timeout=30,
            hints=ENGINE_HINTS,
        )

    async def up(self) -> str:
        """Start all services detached."""
        self.logger.info("Starting services")
        return await self.compose(["up", "-d"])

    async def restart(self, service: str) -> str:
        """Restart a single service."""
        self.logger.info(f"Restarting {service}")
        return await self.compose(["restart", service])

    async def reload_proxy(self) -> str:
        """Reload the reverse proxy configuration in place."""
        self.logger.info("Reloading reverse proxy")
        return await self.compose(["exec", "-T", PROXY_SERVICE, "nginx", "-s", "reload"])

    async def service_states(self, service: Optional[str] = None) -> List[Dict[str, Any]]:
        """Return container records from ``compose ps --format json``."""
        args = ["ps", "--format", "json"]
        if service:
            args.append(service)
        output = await self.compose(args, timeout=60)
        return parse_ps_output(output)

    async def is_running(self, service: str) -> bool:
        """Check whether a service has a running container."""
        for record in await self.service_states(service):
            if record.get("Service", service) == service and \
                    str(record.get("State", "")).lower() == "running":
                return True
        return False

    async def run_certbot(self, certbot_args: Sequence[str]) -> str:
        """Run the certbot container once with the given arguments."""
        self.logger.info("Running certificate client")
        return await self.compose(
            ["--profile", CERTBOT_PROFILE, "run", "--rm", CERTBOT_SERVICE, *certbot_args]
        )


def parse_ps_output(output: str) -> List[Dict[str, Any]]:
    """Parse ``compose ps --format json`` output.

    Older compose releases print one JSON array, newer ones one object per
    line; both are accepted.
    """
    output = output.strip()
    if not output:
        return []

    if output.startswith("["):
        return json.loads(output)

    records = []
    for line in output.splitlines():
        line = line.strip()
        if line:
            records.append(json.loads(line))
    return records
