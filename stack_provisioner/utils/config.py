"""Configuration management."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional
from dotenv import load_dotenv


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_int_list(value: str) -> List[int]:
    return [int(part) for part in value.split(",") if part.strip()]


class Config:
    """Configuration manager."""

    def __init__(self, env_file: Optional[str] = None):
        """Initialize configuration.

        Args:
            env_file: Path to a dotenv file with tool settings
        """
        if env_file:
            load_dotenv(env_file)

        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self):
        """Load configuration from environment variables."""
        # Logging Configuration
        self._config["log_level"] = os.getenv("LOG_LEVEL", "INFO")
        self._config["log_file"] = os.getenv("LOG_FILE", "")

        # Deployment Layout
        self._config["target_dir"] = os.getenv("TARGET_DIR", ".")
        self._config["compose_project_name"] = os.getenv("COMPOSE_PROJECT_NAME", "myapp")
        self._config["docker_binary"] = os.getenv("DOCKER_BINARY", "docker")
        self._config["timezone"] = os.getenv("TIMEZONE", "UTC")

        # Resource Thresholds
        self._config["min_memory_mb"] = int(os.getenv("MIN_MEMORY_MB", "1024"))
        self._config["min_disk_gb"] = int(os.getenv("MIN_DISK_GB", "5"))

        # Tiering Policy
        self._config["buffer_pool_percent"] = int(os.getenv("BUFFER_POOL_PERCENT", "60"))
        self._config["runtime_memory_percent"] = int(os.getenv("RUNTIME_MEMORY_PERCENT", "25"))
        self._config["max_worker_processes"] = int(os.getenv("MAX_WORKER_PROCESSES", "8"))
        self._config["tier_band_ceilings_mb"] = _parse_int_list(
            os.getenv("TIER_BAND_CEILINGS_MB", "1024,2048,4096,8192")
        )

        # External Tools
        self._config["command_timeout"] = int(os.getenv("COMMAND_TIMEOUT", "600"))
        self._config["http_probe_timeout"] = int(os.getenv("HTTP_PROBE_TIMEOUT", "10"))
        self._config["certbot_staging"] = _parse_bool(os.getenv("CERTBOT_STAGING", "false"))

        # Identity Defaults
        self._config["domain_name"] = os.getenv("DOMAIN_NAME", "")
        self._config["admin_email"] = os.getenv("ADMIN_EMAIL", "")
        self._config["db_user"] = os.getenv("MYSQL_USER", "app_user")
        self._config["db_name"] = os.getenv("MYSQL_DATABASE", "app_database")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any):
        """Set configuration value.

        Args:
            key: Configuration key
            value: Configuration value
        """
        self._config[key] = value

    @property
    def log_level(self) -> str:
        """Get log level."""
        return self._config["log_level"]

    @property
    def log_file(self) -> str:
        """Get log file path."""
        return self._config["log_file"]

    @property
    def target_dir(self) -> Path:
        """Get deployment target directory."""
        return Path(self._config["target_dir"]).expanduser()

    @property
    def compose_project_name(self) -> str:
        """Get compose project name."""
        return self._config["compose_project_name"]

    @property
    def docker_binary(self) -> str:
        """Get container engine binary."""
        return self._config["docker_binary"]

    @property
    def timezone(self) -> str:
        """Get runtime timezone."""
        return self._config["timezone"]

    @property
    def min_memory_mb(self) -> int:
        """Get minimum total memory in MB."""
        return self._config["min_memory_mb"]

    @property
    def min_disk_gb(self) -> int:
        """Get disk space warning threshold in GB."""
        return self._config["min_disk_gb"]

    @property
    def command_timeout(self) -> int:
        """Get external command timeout in seconds."""
        return self._config["command_timeout"]

    @property
    def http_probe_timeout(self) -> int:
        """Get HTTP probe timeout in seconds."""
        return self._config["http_probe_timeout"]

    @property
    def certbot_staging(self) -> bool:
        """Whether certificates come from the ACME staging server."""
        return self._config["certbot_staging"]

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self._config.copy()
