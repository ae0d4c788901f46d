"""Config emitter: renders every artifact for a provisioning run."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from ..models.data_models import (
    ConfigArtifact, PerformanceTier, ProvisioningIdentity, ResourceSnapshot, TierProfile
)
from ..utils.config import Config
from ..utils.files import atomic_write, ensure_directory
from ..utils.logging import get_logger
from . import compose_file, dockerfile, env_file, ini, nginx
from .common import header

MAIN_PROXY_CONF = "nginx/nginx.conf"
SITE_PROXY_CONF = "nginx/conf.d/default.conf"
DATABASE_CONF = "data/my.cnf"
RUNTIME_INI = "php/conf.d/zz-provisioned.ini"
RUNTIME_POOL = "php/php-fpm.d/zz-provisioned.conf"

SECRET_MODE = 0o600
PUBLIC_MODE = 0o644

DIRECTORIES: List[Tuple[str, int]] = [
    ("data", 0o700),
    ("logs", 0o755),
    ("logs/nginx", 0o755),
    ("logs/php", 0o755),
    ("logs/letsencrypt", 0o755),
    ("nginx", 0o755),
    ("nginx/conf.d", 0o755),
    ("php/conf.d", 0o755),
    ("php/php-fpm.d", 0o755),
    ("ssl", 0o755),
    ("ssl/webroot", 0o755),
    ("ssl/certs", 0o755),
    ("src", 0o755),
]

logger = get_logger("config_emitter")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def write_artifacts(artifacts: List[ConfigArtifact], target: Union[str, Path]) -> List[Path]:
    """Write artifacts one by one, each through an atomic rename.

    A failure aborts immediately; artifacts already written stay in place.

    Args:
        artifacts: Artifacts to write
        target: Deployment target directory

    Returns:
        Written paths in order

    Raises:
        WriteError: An artifact could not be written
    """
    target = Path(target)
    written = []
    for artifact in artifacts:
        written.append(atomic_write(target / artifact.path, artifact.content, artifact.mode))
        logger.info(f"Wrote {artifact.path} (mode {artifact.mode:o})")
    return written


class ConfigEmitter:
    """Builds configuration artifacts and writes them to a target directory."""

    def __init__(
        self,
        config: Optional[Config] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """Initialize config emitter.

        Args:
            config: Configuration instance
            clock: Time source for artifact headers
        """
        self.config = config or Config()
        self.clock = clock or _utcnow
        self.logger = get_logger("config_emitter")

    def emit(
        self,
        profile: TierProfile,
        identity: ProvisioningIdentity,
        snapshot: ResourceSnapshot,
        tier: PerformanceTier
    ) -> List[ConfigArtifact]:
        """Render the full artifact set in memory.

        Args:
            profile: Resolved tier profile
            identity: Provisioning identity
            snapshot: Probed host resources
            tier: Selected tier

        Returns:
            Artifacts in write order
        """
        if not profile.is_resolved:
            raise ValueError("Tier profile must be resolved by the tier selector before emitting")

        now = self.clock()
        system = f"System: {snapshot.total_memory_mb}MB RAM, {snapshot.cpu_cores} CPU cores"

        variables = env_file.environment(
            profile, identity, snapshot, tier,
            project_name=self.config.compose_project_name,
        )

        artifacts = [
            ConfigArtifact(
                path=env_file.ENV_FILE,
                content=header("configuration file", now, tier, extra=[system])
                + env_file.render_env(variables),
                mode=SECRET_MODE,
            ),
            ConfigArtifact(
                path=DATABASE_CONF,
                content=header("MariaDB configuration", now, tier)
                + ini.render_ini(ini.database_tuning(profile)),
                mode=PUBLIC_MODE,
            ),
            ConfigArtifact(
                path=MAIN_PROXY_CONF,
                content=header("Nginx configuration", now, tier)
                + nginx.render(nginx.main_config(profile)),
                mode=PUBLIC_MODE,
            ),
            self.site_artifact(identity, tls=False),
            ConfigArtifact(
                path=RUNTIME_INI,
                content=header("PHP runtime configuration", now, tier, comment=";")
                + ini.render_ini(ini.runtime_settings(profile, self.config.timezone)),
                mode=PUBLIC_MODE,
            ),
            ConfigArtifact(
                path=RUNTIME_POOL,
                content=header("PHP-FPM pool configuration", now, tier, comment=";")
                + ini.render_ini(ini.worker_pool(profile)),
                mode=PUBLIC_MODE,
            ),
            ConfigArtifact(
                path=compose_file.COMPOSE_FILE,
                content=header("Compose configuration", now, tier)
                + compose_file.render_yaml(compose_file.compose_descriptor(profile)),
                mode=PUBLIC_MODE,
            ),
            ConfigArtifact(
                path=dockerfile.RUNTIME_DOCKERFILE,
                content=header("PHP runtime image", now)
                + dockerfile.runtime_dockerfile(),
                mode=PUBLIC_MODE,
            ),
        ]

        self.logger.info(f"Rendered {len(artifacts)} configuration artifacts")
        return artifacts

    def site_artifact(self, identity: ProvisioningIdentity, tls: bool = False) -> ConfigArtifact:
        """Render the virtual host descriptor, optionally with TLS."""
        title = "Nginx site configuration (TLS)" if tls else "Nginx site configuration"
        return ConfigArtifact(
            path=SITE_PROXY_CONF,
            content=header(title, self.clock())
            + nginx.render(nginx.site_config(identity.domain_name, tls=tls)),
            mode=PUBLIC_MODE,
        )

    def create_directories(self, target: Union[str, Path]) -> List[Path]:
        """Create the deployment directory layout.

        Raises:
            WriteError: A directory could not be created
        """
        target = Path(target)
        created = []
        for relative, mode in DIRECTORIES:
            created.append(ensure_directory(target / relative, mode))
            self.logger.debug(f"Directory ready: {relative}")
        return created

    def write(self, artifacts: List[ConfigArtifact], target: Union[str, Path]) -> List[Path]:
        """Write artifacts to the target directory. See write_artifacts."""
        return write_artifacts(artifacts, target)
