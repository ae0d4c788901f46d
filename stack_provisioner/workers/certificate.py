"""Certificate acquisition worker."""

import asyncio
import socket
from typing import List, Optional

import requests

from ..exceptions import ExternalToolError
from ..models.data_models import ProvisioningIdentity
from .base import BaseWorker
from .compose import ComposeWorker

ACME_WEBROOT = "/var/www/certbot"
CHALLENGE_PROBE_PATH = "/.well-known/acme-challenge/test"
HEALTHY_PROBE_CODES = (200, 404)

CERTIFICATE_HINTS = [
    "Does the domain point to the server's IP?",
    "Is port 80 open and reachable from the internet?",
    "Is the firewall configured correctly?",
]


class CertificateWorker(BaseWorker):
    """Checks reachability and requests certificates through certbot."""

    def __init__(
        self,
        compose: ComposeWorker,
        http_timeout: int = 10,
        staging: bool = False
    ):
        """Initialize certificate worker.

        Args:
            compose: Compose worker used to run the certbot container
            http_timeout: Timeout for HTTP probes in seconds
            staging: Request certificates from the ACME staging server
        """
        super().__init__()
        self.compose = compose
        self.http_timeout = http_timeout
        self.staging = staging

    async def resolves(self, domain: str) -> bool:
        """Check whether a domain resolves to any address."""
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, socket.gethostbyname, domain)
            return True
        except socket.gaierror as e:
            self.logger.warning(f"Domain {domain} does not resolve: {e}")
            return False

    def _get_status(self, url: str) -> Optional[int]:
        try:
            response = requests.get(url, timeout=self.http_timeout, allow_redirects=False)
            return response.status_code
        except requests.exceptions.RequestException as e:
            self.logger.warning(f"Request to {url} failed: {e}")
            return None

    async def probe_challenge_path(self, domain: str) -> Optional[int]:
        """Request the ACME challenge path over plain HTTP.

        Returns:
            HTTP status code, or None when the request failed outright
        """
        url = f"http://{domain}{CHALLENGE_PROBE_PATH}"
        loop = asyncio.get_running_loop()
        status = await loop.run_in_executor(None, self._get_status, url)
        self.logger.info(f"Challenge path probe returned {status}")
        return status

    @staticmethod
    def challenge_path_healthy(status: Optional[int]) -> bool:
        """Whether a probe status means the webroot is being served."""
        return status in HEALTHY_PROBE_CODES

    async def check_https(self, domain: str) -> Optional[int]:
        """Request the site over HTTPS and return the status code."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._get_status, f"https://{domain}")

    def certbot_arguments(self, identity: ProvisioningIdentity) -> List[str]:
        """Build the certbot ``certonly`` argument list."""
        args = [
            "certonly",
            "--webroot",
            f"--webroot-path={ACME_WEBROOT}",
            "--email", identity.admin_email,
            "--agree-tos",
            "--no-eff-email",
            "--non-interactive",
            "-d", identity.domain_name,
        ]
        if self.staging:
            args.append("--staging")
        return args

    async def request_certificate(self, identity: ProvisioningIdentity) -> str:
        """Obtain a certificate for the identity's domain.

        Raises:
            ExternalToolError: certbot failed, with reachability diagnostics
        """
        self.logger.info(f"Requesting certificate for {identity.domain_name}")
        try:
            return await self.compose.run_certbot(self.certbot_arguments(identity))
        except ExternalToolError as e:
            raise ExternalToolError(
                f"Error obtaining certificate for {identity.domain_name}",
                tool="certbot",
                returncode=e.returncode,
                output=e.output,
                hints=CERTIFICATE_HINTS,
            ) from e
