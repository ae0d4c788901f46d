"""Provisioning sequencer."""

from pathlib import Path
from typing import Callable, List, Optional

from ..analysis.tier_selector import TierSelector, TieringPolicy
from ..emitters.config_emitter import ConfigEmitter
from ..emitters.env_file import ENV_FILE, load_identity
from ..exceptions import ExternalToolError, ProvisioningError
from ..models.data_models import (
    ConfigArtifact, PerformanceTier, ProbeWarning, ProvisioningIdentity,
    ProvisioningState, ResourceSnapshot, TierProfile
)
from ..utils.config import Config
from ..utils.logging import get_logger, register_secrets
from ..workers.certificate import CertificateWorker
from ..workers.compose import PROXY_SERVICE, ComposeWorker
from ..workers.resource_probe import ResourceProbe
from .operator import Operator
from .state_machine import ProvisioningStateMachine

S = ProvisioningState

IdentityProvider = Callable[[], ProvisioningIdentity]


class ProvisioningSequencer:
    """Drives a provisioning run through its states in order."""

    def __init__(
        self,
        config: Optional[Config] = None,
        operator: Optional[Operator] = None,
        probe: Optional[ResourceProbe] = None,
        selector: Optional[TierSelector] = None,
        emitter: Optional[ConfigEmitter] = None,
        compose: Optional[ComposeWorker] = None,
        certificates: Optional[CertificateWorker] = None
    ):
        """Initialize sequencer.

        Collaborators default to real implementations built from ``config``;
        tests substitute their own.

        Args:
            config: Configuration instance
            operator: Operator used for prompts and reporting
            probe: Resource probe
            selector: Tier selector
            emitter: Config emitter
            compose: Compose worker
            certificates: Certificate worker
        """
        self.config = config or Config()
        self.target_dir: Path = self.config.target_dir
        self.logger = get_logger("sequencer")
        self.operator = operator or Operator()
        self.probe = probe or ResourceProbe(
            self.target_dir,
            min_memory_mb=self.config.min_memory_mb,
            min_disk_gb=self.config.min_disk_gb,
        )
        self.selector = selector or TierSelector(TieringPolicy.from_config(self.config))
        self.emitter = emitter or ConfigEmitter(self.config)
        self.compose = compose or ComposeWorker(
            self.target_dir,
            docker_binary=self.config.docker_binary,
            timeout=self.config.command_timeout,
        )
        self.certificates = certificates or CertificateWorker(
            self.compose,
            http_timeout=self.config.http_probe_timeout,
            staging=self.config.certbot_staging,
        )

        self.machine = ProvisioningStateMachine()
        self.snapshot: Optional[ResourceSnapshot] = None
        self.warnings: List[ProbeWarning] = []
        self.identity: Optional[ProvisioningIdentity] = None
        self.tier: Optional[PerformanceTier] = None
        self.profile: Optional[TierProfile] = None
        self.artifacts: List[ConfigArtifact] = []
        self.error: Optional[ProvisioningError] = None

    @property
    def state(self) -> ProvisioningState:
        """Current state."""
        return self.machine.state

    @property
    def env_path(self) -> Path:
        """Path of the environment descriptor."""
        return self.target_dir / ENV_FILE

    def _advance(self, state: ProvisioningState):
        self.machine.transition(state)
        self.logger.info(f"State: {state.value}")

    def _fail(self, error: ProvisioningError):
        self.error = error
        if not self.state.is_terminal:
            self.machine.transition(S.FAILED)
        self.logger.error(f"Provisioning failed: {error}")
        if isinstance(error, ExternalToolError):
            if error.output:
                self.logger.error(error.output)
            self.operator.show_diagnostics(error.hints)

    def _remember(self, identity: ProvisioningIdentity) -> ProvisioningIdentity:
        register_secrets(
            identity.db_root_secret.get_secret_value(),
            identity.db_app_secret.get_secret_value(),
            identity.app_secret.get_secret_value(),
        )
        self.identity = identity
        return identity

    def _decline(self, reason: str) -> ProvisioningState:
        self.logger.warning(f"Operator declined to continue: {reason}")
        self._advance(S.DECLINED)
        return self.state

    async def resume_at(self, state: ProvisioningState) -> ProvisioningState:
        """Resume a fresh run at a checkpoint after verifying its preconditions.

        ``config_emitted`` needs the environment descriptor on disk;
        ``services_started`` additionally needs the reverse proxy running.

        Raises:
            ProvisioningError: A precondition does not hold
        """
        try:
            self._remember(load_identity(self.env_path))

            if state == S.SERVICES_STARTED and not await self.compose.is_running(PROXY_SERVICE):
                raise ProvisioningError("Services are not running. Run 'provision' first.")

            self.machine.resume(state)
            self.logger.info(f"Resumed at {state.value}")
            return self.state
        except ProvisioningError as e:
            self._fail(e)
            raise

    async def configure(self, identity_provider: IdentityProvider) -> ProvisioningState:
        """Probe, select a tier and emit configuration.

        Args:
            identity_provider: Returns the operator's identity values

        Returns:
            ``config_emitted``, or ``declined`` when the operator stops at
            the low disk gate

        Raises:
            ProvisioningError: Any fatal step
        """
        try:
            self.snapshot = self.probe.probe()
            self.warnings = self.probe.assess(self.snapshot)
            self._advance(S.RESOURCES_PROBED)
            self.operator.show_snapshot(self.snapshot, self.warnings)

            for warning in self.warnings:
                if warning.requires_confirmation:
                    self.operator.warn(warning.message)
                    if not self.operator.confirm("Continue anyway?"):
                        return self._decline(warning.message)

            self._remember(identity_provider())
            self._advance(S.IDENTITY_COLLECTED)

            self.tier, self.profile = self.selector.select(self.snapshot)
            self._advance(S.TIER_SELECTED)
            self.operator.show_tier(self.tier, self.profile)

            self.emitter.create_directories(self.target_dir)
            self._advance(S.DIRECTORIES_READY)

            self.artifacts = self.emitter.emit(self.profile, self.identity, self.snapshot, self.tier)
            written = self.emitter.write(self.artifacts, self.target_dir)
            self._advance(S.CONFIG_EMITTED)

            self.operator.show_artifacts(written)
            self.operator.show_secrets(self.identity)
            return self.state
        except ProvisioningError as e:
            self._fail(e)
            raise

    async def provision(self) -> ProvisioningState:
        """Start all services through the compose engine.

        Raises:
            ProvisioningError: Configuration missing or the engine failed
        """
        if self.state == S.INIT:
            await self.resume_at(S.CONFIG_EMITTED)

        try:
            self.operator.notify("Starting services...")
            await self.compose.up()
            self._advance(S.SERVICES_STARTED)
            return self.state
        except ProvisioningError as e:
            self._fail(e)
            raise

    async def secure(self, identity: Optional[ProvisioningIdentity] = None) -> ProvisioningState:
        """Acquire a certificate and switch the reverse proxy to TLS.

        Skipped entirely for ``localhost``.

        Args:
            identity: Identity to secure, defaults to the run's identity

        Returns:
            ``ready``, or ``declined`` when the operator stops at a gate

        Raises:
            ProvisioningError: Certificate acquisition or proxy reload failed
        """
        if self.state == S.INIT:
            await self.resume_at(S.SERVICES_STARTED)

        identity = self._remember(identity or self.identity)

        try:
            if identity.is_localhost:
                self.operator.notify("Domain is localhost; skipping certificate acquisition")
                self._advance(S.READY)
                return self.state

            domain = identity.domain_name
            self._advance(S.CERTIFICATE_REQUESTED)

            if not await self.certificates.resolves(domain):
                self.operator.warn(f"Domain {domain} might not resolve properly")
                if not self.operator.confirm("Continue anyway?"):
                    return self._decline(f"{domain} does not resolve")

            await self.compose.restart(PROXY_SERVICE)

            status = await self.certificates.probe_challenge_path(domain)
            if not self.certificates.challenge_path_healthy(status):
                self.operator.warn(
                    f"There might be an issue accessing the domain (HTTP Code: {status or '000'})"
                )
                if not self.operator.confirm("Do you want to continue?"):
                    return self._decline(f"challenge path returned {status}")

            self.operator.notify("Requesting certificate...")
            await self.certificates.request_certificate(identity)

            site = self.emitter.site_artifact(identity, tls=True)
            self.emitter.write([site], self.target_dir)
            await self.compose.reload_proxy()

            if not await self.compose.is_running(PROXY_SERVICE):
                raise ExternalToolError(
                    "Reverse proxy is not running after TLS configuration",
                    tool=PROXY_SERVICE,
                    hints=["Inspect the proxy logs: docker compose logs nginx"],
                )

            https_status = await self.certificates.check_https(domain)
            if https_status != 200:
                self.operator.warn(f"TLS might have issues. HTTP Code: {https_status or '000'}")

            self._advance(S.READY)
            self.operator.notify(f"Your website is available at https://{domain}")
            return self.state
        except ProvisioningError as e:
            self._fail(e)
            raise

    async def run(self, identity_provider: IdentityProvider) -> ProvisioningState:
        """Run every phase: configure, provision and secure."""
        if await self.configure(identity_provider) == S.DECLINED:
            return self.state
        await self.provision()
        return await self.secure()
