"""Compose descriptor (docker-compose.yml) builder."""

from typing import Any, Dict

import yaml

from ..models.data_models import TierProfile
from .common import format_size

COMPOSE_FILE = "docker-compose.yml"
ADMIN_UI_PORT = 8587


def _env_refs(*names: str) -> Dict[str, str]:
    return {name: f"${{{name}}}" for name in names}


def compose_descriptor(profile: TierProfile) -> Dict[str, Any]:
    """Service wiring for proxy, runtime, database, admin UI and certbot."""
    runtime_env = _env_refs(
        "PHP_MEMORY_LIMIT", "PHP_MAX_EXECUTION_TIME", "PHP_UPLOAD_MAX_FILESIZE",
        "PHP_POST_MAX_SIZE", "PHP_MAX_INPUT_VARS", "PHP_OPCACHE_MEMORY",
        "PHP_OPCACHE_MAX_FILES", "PHP_FPM_MAX_CHILDREN", "PHP_FPM_START_SERVERS",
        "PHP_FPM_MIN_SPARE_SERVERS", "PHP_FPM_MAX_SPARE_SERVERS", "PHP_FPM_MAX_REQUESTS",
        "MYSQL_HOST", "MYSQL_DATABASE", "MYSQL_USER", "MYSQL_PASSWORD",
    )

    return {
        "services": {
            "nginx": {
                "image": "nginx:alpine",
                "restart": "unless-stopped",
                "ports": ["80:80", "443:443"],
                "volumes": [
                    "./src:/var/www/html",
                    "./nginx/nginx.conf:/etc/nginx/nginx.conf:ro",
                    "./nginx/conf.d:/etc/nginx/conf.d:ro",
                    "./ssl/webroot:/var/www/certbot:ro",
                    "./ssl/certs:/etc/letsencrypt:ro",
                    "./logs/nginx:/var/log/nginx",
                ],
                "depends_on": ["php"],
            },
            "letsencrypt": {
                "image": "certbot/certbot:latest",
                "volumes": [
                    "./ssl/certs:/etc/letsencrypt",
                    "./ssl/webroot:/var/www/certbot",
                    "./logs/letsencrypt:/var/log/letsencrypt",
                ],
                "profiles": ["ssl-tools"],
            },
            "php": {
                "build": {"context": "./php"},
                "restart": "unless-stopped",
                "volumes": [
                    "./src:/var/www/html",
                    "./logs/php:/var/log/php",
                    "./php/conf.d/zz-provisioned.ini:/usr/local/etc/php/conf.d/zz-provisioned.ini:ro",
                    "./php/php-fpm.d/zz-provisioned.conf:/usr/local/etc/php-fpm.d/zz-provisioned.conf:ro",
                ],
                "environment": runtime_env,
                "depends_on": ["db"],
            },
            "db": {
                "image": "mariadb:11.4",
                "restart": "unless-stopped",
                "environment": {
                    **_env_refs("MYSQL_ROOT_PASSWORD", "MYSQL_DATABASE", "MYSQL_USER", "MYSQL_PASSWORD"),
                    "MYSQL_CHARSET": "utf8mb4",
                    "MYSQL_COLLATION": "utf8mb4_unicode_ci",
                },
                "volumes": [
                    "./data/mariadb:/var/lib/mysql",
                    "./data/my.cnf:/etc/mysql/conf.d/custom.cnf:ro",
                ],
            },
            "phpmyadmin": {
                "image": "phpmyadmin/phpmyadmin",
                "restart": "unless-stopped",
                "ports": [f"{ADMIN_UI_PORT}:80"],
                "environment": {
                    "PMA_HOST": "db",
                    "PMA_PORT": 3306,
                    "UPLOAD_LIMIT": format_size(profile.max_upload_size_bytes),
                    "MEMORY_LIMIT": f"{profile.runtime_memory_mb}M",
                },
                "depends_on": ["db"],
            },
        },
    }


def render_yaml(document: Dict[str, Any]) -> str:
    """Serialize a compose document."""
    return yaml.dump(document, default_flow_style=False, sort_keys=False, allow_unicode=True)
