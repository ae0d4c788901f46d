"""Environment descriptor (.env) builder and reader."""

import re
from pathlib import Path
from typing import Dict, Union

from dotenv import dotenv_values

from ..exceptions import ProvisioningError
from ..models.data_models import (
    PerformanceTier, ProvisioningIdentity, ResourceSnapshot, TierProfile, build_identity
)
from .common import format_size
from .ini import MAX_EXECUTION_TIME, MAX_INPUT_VARS, OPCACHE_MAX_FILES, WORKER_MAX_REQUESTS

ENV_FILE = ".env"
DB_HOST = "db"
SECRET_KEYS = ("MYSQL_ROOT_PASSWORD", "MYSQL_PASSWORD", "APP_KEY")

_SAFE_VALUE = re.compile(r"^[A-Za-z0-9_.@:/+,=-]*$")


def environment(
    profile: TierProfile,
    identity: ProvisioningIdentity,
    snapshot: ResourceSnapshot,
    tier: PerformanceTier,
    project_name: str = "myapp"
) -> Dict[str, str]:
    """Flatten every resolved parameter into environment variables."""
    upload = format_size(profile.max_upload_size_bytes)
    scheme = "http" if identity.is_localhost else "https"

    return {
        "COMPOSE_PROJECT_NAME": project_name,
        # Application
        "APP_ENV": "production",
        "APP_DEBUG": "false",
        "APP_URL": f"{scheme}://{identity.domain_name}",
        "APP_KEY": identity.app_secret.get_secret_value(),
        # Database credentials
        "MYSQL_HOST": DB_HOST,
        "MYSQL_ROOT_PASSWORD": identity.db_root_secret.get_secret_value(),
        "MYSQL_DATABASE": identity.db_name,
        "MYSQL_USER": identity.db_user,
        "MYSQL_PASSWORD": identity.db_app_secret.get_secret_value(),
        # Database tuning
        "MYSQL_INNODB_BUFFER_POOL_SIZE": f"{profile.buffer_pool_mb}M",
        "MYSQL_MAX_CONNECTIONS": str(profile.db_max_connections),
        "MYSQL_TMP_TABLE_SIZE": "64M",
        "MYSQL_MAX_HEAP_TABLE_SIZE": "64M",
        # Runtime
        "PHP_MEMORY_LIMIT": f"{profile.runtime_memory_mb}M",
        "PHP_MAX_EXECUTION_TIME": str(MAX_EXECUTION_TIME),
        "PHP_UPLOAD_MAX_FILESIZE": upload,
        "PHP_POST_MAX_SIZE": upload,
        "PHP_MAX_INPUT_VARS": str(MAX_INPUT_VARS),
        "PHP_OPCACHE_MEMORY": str(profile.opcache_memory_mb),
        "PHP_OPCACHE_MAX_FILES": str(OPCACHE_MAX_FILES),
        # Runtime process manager
        "PHP_FPM_MAX_CHILDREN": str(profile.worker_max_children),
        "PHP_FPM_START_SERVERS": str(profile.worker_start_count),
        "PHP_FPM_MIN_SPARE_SERVERS": str(profile.worker_min_idle),
        "PHP_FPM_MAX_SPARE_SERVERS": str(profile.worker_max_idle),
        "PHP_FPM_MAX_REQUESTS": str(WORKER_MAX_REQUESTS),
        # Reverse proxy
        "NGINX_WORKER_PROCESSES": str(profile.worker_process_count),
        "NGINX_WORKER_CONNECTIONS": str(profile.worker_connections),
        "NGINX_CLIENT_MAX_BODY_SIZE": upload,
        # Cache
        "REDIS_MEMORY": f"{profile.cache_memory_mb}M",
        "REDIS_MAXMEMORY_POLICY": "allkeys-lru",
        # Host and tier
        "PERFORMANCE_TIER": tier.value,
        "HOST_CPU_CORES": str(snapshot.cpu_cores),
        "HOST_TOTAL_MEMORY_MB": str(snapshot.total_memory_mb),
        # Domain and certificates
        "DOMAIN_NAME": identity.domain_name,
        "EMAIL_FOR_SSL": identity.admin_email,
    }


def quote_value(value: str) -> str:
    """Quote a value for dotenv unless it is made of safe characters only."""
    if _SAFE_VALUE.match(value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def render_env(variables: Dict[str, str]) -> str:
    """Serialize variables as ``KEY=value`` lines."""
    return "".join(f"{key}={quote_value(value)}\n" for key, value in variables.items())


def load_identity(path: Union[str, Path]) -> ProvisioningIdentity:
    """Rebuild the provisioning identity from an existing .env file.

    Raises:
        ProvisioningError: The file does not exist
        ValidationError: The file holds malformed values
    """
    env_path = Path(path)
    if not env_path.is_file():
        raise ProvisioningError(
            f"Environment descriptor not found: {env_path}. Run 'configure' first."
        )

    values = dotenv_values(env_path)
    missing = [key for key in SECRET_KEYS if not values.get(key)]
    if missing:
        raise ProvisioningError(
            f"Environment descriptor {env_path} is missing {', '.join(missing)}. Re-run 'configure'."
        )

    return build_identity(
        domain_name=values.get("DOMAIN_NAME"),
        admin_email=values.get("EMAIL_FOR_SSL"),
        db_user=values.get("MYSQL_USER"),
        db_name=values.get("MYSQL_DATABASE"),
        db_root_secret=values.get("MYSQL_ROOT_PASSWORD"),
        db_app_secret=values.get("MYSQL_PASSWORD"),
        app_secret=values.get("APP_KEY"),
    )
