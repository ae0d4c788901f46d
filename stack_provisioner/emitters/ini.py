"""INI-style builders: database tuning, runtime settings and FPM pool."""

import configparser
import io
from typing import Dict

from ..models.data_models import TierProfile
from .common import format_size

Sections = Dict[str, Dict[str, str]]

MAX_EXECUTION_TIME = 300
MAX_INPUT_VARS = 3000
OPCACHE_MAX_FILES = 20000
WORKER_MAX_REQUESTS = 1000


def render_ini(sections: Sections) -> str:
    """Serialize sections with configparser, keeping key case and order."""
    parser = configparser.ConfigParser(interpolation=None)
    parser.optionxform = str
    parser.read_dict(sections)

    buf = io.StringIO()
    parser.write(buf)
    return buf.getvalue().rstrip("\n") + "\n"


def database_tuning(profile: TierProfile) -> Sections:
    """MariaDB server tuning (my.cnf) for a resolved tier profile."""
    return {
        "mysqld": {
            # Memory
            "innodb_buffer_pool_size": f"{profile.buffer_pool_mb}M",
            "innodb_log_file_size": "128M",
            "innodb_log_buffer_size": "16M",
            # Performance
            "innodb_flush_log_at_trx_commit": "2",
            "innodb_flush_method": "O_DIRECT",
            "innodb_file_per_table": "1",
            "innodb_io_capacity": "200",
            # Connections
            "max_connections": str(profile.db_max_connections),
            "max_connect_errors": "1000",
            "thread_cache_size": "50",
            "table_open_cache": "2000",
            # Temporary tables
            "tmp_table_size": "64M",
            "max_heap_table_size": "64M",
            "key_buffer_size": "32M",
            # Character set
            "character_set_server": "utf8mb4",
            "collation_server": "utf8mb4_unicode_ci",
            # Security
            "local_infile": "0",
            "symbolic_links": "0",
            # Monitoring
            "slow_query_log": "1",
            "slow_query_log_file": "/var/log/mysql/slow.log",
            "long_query_time": "2",
        },
        "mysql": {
            "default_character_set": "utf8mb4",
        },
        "client": {
            "default_character_set": "utf8mb4",
        },
    }


def runtime_settings(profile: TierProfile, timezone: str = "UTC") -> Sections:
    """PHP runtime and OPcache settings."""
    upload = format_size(profile.max_upload_size_bytes)

    return {
        "PHP": {
            "expose_php": "Off",
            "memory_limit": f"{profile.runtime_memory_mb}M",
            "max_execution_time": str(MAX_EXECUTION_TIME),
            "max_input_time": str(MAX_EXECUTION_TIME),
            "max_input_vars": str(MAX_INPUT_VARS),
            "post_max_size": upload,
            "upload_max_filesize": upload,
            "date.timezone": timezone,
        },
        "opcache": {
            "opcache.enable": "1",
            "opcache.enable_cli": "0",
            "opcache.memory_consumption": str(profile.opcache_memory_mb),
            "opcache.interned_strings_buffer": "16",
            "opcache.max_accelerated_files": str(OPCACHE_MAX_FILES),
            "opcache.validate_timestamps": "0",
        },
    }


def worker_pool(profile: TierProfile) -> Sections:
    """PHP-FPM pool sizing; overrides the image's default ``www`` pool."""
    upload = format_size(profile.max_upload_size_bytes)

    return {
        "www": {
            "pm": "dynamic",
            "pm.max_children": str(profile.worker_max_children),
            "pm.start_servers": str(profile.worker_start_count),
            "pm.min_spare_servers": str(profile.worker_min_idle),
            "pm.max_spare_servers": str(profile.worker_max_idle),
            "pm.max_requests": str(WORKER_MAX_REQUESTS),
            "pm.process_idle_timeout": "10s",
            "request_terminate_timeout": str(MAX_EXECUTION_TIME),
            "php_admin_value[memory_limit]": f"{profile.runtime_memory_mb}M",
            "php_admin_value[post_max_size]": upload,
            "php_admin_value[upload_max_filesize]": upload,
        },
    }
