"""Test configuration artifact builders."""

import configparser
import os
import stat
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
import yaml

from stack_provisioner.analysis.tier_selector import TIER_PROFILES, select_tier
from stack_provisioner.emitters import compose_file, env_file, ini, nginx
from stack_provisioner.emitters.common import format_size, header
from stack_provisioner.emitters.config_emitter import (
    DIRECTORIES, ConfigEmitter, write_artifacts
)
from stack_provisioner.exceptions import ProvisioningError, WriteError
from stack_provisioner.models.data_models import ConfigArtifact, PerformanceTier

EXPECTED_PATHS = [
    ".env",
    "data/my.cnf",
    "nginx/nginx.conf",
    "nginx/conf.d/default.conf",
    "php/conf.d/zz-provisioned.ini",
    "php/php-fpm.d/zz-provisioned.conf",
    "docker-compose.yml",
    "php/Dockerfile",
]


@pytest.fixture
def resolved(sample_snapshot):
    """Basic tier and its resolved profile for the sample host."""
    return select_tier(sample_snapshot)


class TestCommon:
    """Test shared helpers."""

    def test_format_size(self):
        assert format_size(50 * 1024 * 1024) == "50M"
        assert format_size(1024 * 1024 * 1024) == "1G"
        assert format_size(128 * 1024) == "128K"
        assert format_size(1000) == "1000"

    def test_header(self, fixed_clock):
        text = header("Nginx configuration", fixed_clock(), PerformanceTier.BASIC, comment=";")

        assert "; Auto-generated Nginx configuration\n" in text
        assert "; Generated on: 2024-01-01T12:00:00+00:00\n" in text
        assert "; Performance Tier: Basic\n" in text
        assert text.endswith("\n\n")


class TestNginx:
    """Test nginx directive tree rendering."""

    def test_quote(self):
        assert nginx.quote("on") == "on"
        assert nginx.quote(80) == "80"
        assert nginx.quote("$uri") == "$uri"
        assert nginx.quote("1; mode=block") == '"1; mode=block"'
        assert nginx.quote('say "hi"') == '"say \\"hi\\""'

    def test_render_nested(self):
        tree = [nginx.Block("events", children=[nginx.Directive("worker_connections", [1024])])]
        assert nginx.render(tree) == "events {\n    worker_connections 1024;\n}\n\n"

    def test_main_config(self, resolved):
        _, profile = resolved
        text = nginx.render(nginx.main_config(profile))

        assert "worker_processes 2;" in text
        assert "    worker_connections 1024;" in text
        assert "    client_max_body_size 100M;" in text
        assert '    add_header X-XSS-Protection "1; mode=block" always;' in text
        assert "    include /etc/nginx/conf.d/*.conf;" in text

    def test_plain_site(self):
        text = nginx.render(nginx.site_config("localhost"))

        assert "server_name localhost;" in text
        assert "location ^~ /.well-known/acme-challenge/ {" in text
        assert "fastcgi_pass php:9000;" in text
        assert "443" not in text
        assert text.count("server {") == 1

    def test_tls_site(self):
        text = nginx.render(nginx.site_config("example.com", tls=True))

        assert text.count("server {") == 2
        assert "return 301 https://$host$request_uri;" in text
        assert "listen 443 ssl;" in text
        assert "ssl_certificate /etc/letsencrypt/live/example.com/fullchain.pem;" in text
        assert "ssl_certificate_key /etc/letsencrypt/live/example.com/privkey.pem;" in text

    def test_braces_balanced(self, resolved):
        _, profile = resolved
        for tree in (nginx.main_config(profile), nginx.site_config("example.com", tls=True)):
            text = nginx.render(tree)
            assert text.count("{") == text.count("}")


class TestIni:
    """Test INI builders."""

    def _parse(self, text):
        parser = configparser.ConfigParser(interpolation=None)
        parser.optionxform = str
        parser.read_string(text)
        return parser

    def test_database_tuning(self, resolved):
        _, profile = resolved
        parser = self._parse(ini.render_ini(ini.database_tuning(profile)))

        assert parser["mysqld"]["innodb_buffer_pool_size"] == "921M"
        assert parser["mysqld"]["max_connections"] == "50"
        assert parser["mysqld"]["character_set_server"] == "utf8mb4"
        assert parser["mysqld"]["collation_server"] == "utf8mb4_unicode_ci"
        assert parser["client"]["default_character_set"] == "utf8mb4"

    def test_runtime_settings(self, resolved):
        _, profile = resolved
        parser = self._parse(ini.render_ini(ini.runtime_settings(profile, "Europe/Berlin")))

        assert parser["PHP"]["memory_limit"] == "384M"
        assert parser["PHP"]["upload_max_filesize"] == "100M"
        assert parser["PHP"]["date.timezone"] == "Europe/Berlin"
        assert parser["opcache"]["opcache.memory_consumption"] == "64"

    def test_worker_pool(self, resolved):
        _, profile = resolved
        text = ini.render_ini(ini.worker_pool(profile))

        assert text.startswith("[www]\n")
        assert "pm.max_children = 10\n" in text
        assert "pm.start_servers = 3\n" in text
        assert "pm.min_spare_servers = 2\n" in text
        assert "pm.max_spare_servers = 5\n" in text


class TestEnvFile:
    """Test environment descriptor builder and reader."""

    def test_environment(self, resolved, sample_identity, sample_snapshot):
        tier, profile = resolved
        variables = env_file.environment(profile, sample_identity, sample_snapshot, tier, project_name="shop")

        assert variables["COMPOSE_PROJECT_NAME"] == "shop"
        assert variables["APP_URL"] == "https://example.com"
        assert variables["MYSQL_MAX_CONNECTIONS"] == "50"
        assert variables["NGINX_WORKER_PROCESSES"] == "2"
        assert variables["PERFORMANCE_TIER"] == "Basic"
        assert variables["MYSQL_ROOT_PASSWORD"] == sample_identity.db_root_secret.get_secret_value()
        assert all(isinstance(value, str) for value in variables.values())

    def test_localhost_url(self, resolved, localhost_identity, sample_snapshot):
        tier, profile = resolved
        variables = env_file.environment(profile, localhost_identity, sample_snapshot, tier)
        assert variables["APP_URL"] == "http://localhost"

    def test_quote_value(self):
        assert env_file.quote_value("app_user") == "app_user"
        assert env_file.quote_value("admin@example.com") == "admin@example.com"
        assert env_file.quote_value("two words") == '"two words"'
        assert env_file.quote_value('a"b') == '"a\\"b"'

    def test_load_identity_reads_back_written_file(self, emitter, resolved, sample_identity, sample_snapshot, target_dir):
        tier, profile = resolved
        emitter.write(emitter.emit(profile, sample_identity, sample_snapshot, tier), target_dir)

        loaded = env_file.load_identity(target_dir / ".env")

        assert loaded == sample_identity

    def test_load_identity_missing_file(self, tmp_path):
        with pytest.raises(ProvisioningError, match="Run 'configure' first"):
            env_file.load_identity(tmp_path / ".env")

    def test_load_identity_missing_secrets(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("DOMAIN_NAME=example.com\nMYSQL_ROOT_PASSWORD=\n")

        with pytest.raises(ProvisioningError, match="MYSQL_ROOT_PASSWORD"):
            env_file.load_identity(path)


class TestComposeFile:
    """Test compose descriptor."""

    def test_services(self, resolved):
        _, profile = resolved
        document = compose_file.compose_descriptor(profile)
        services = document["services"]

        assert list(services) == ["nginx", "letsencrypt", "php", "db", "phpmyadmin"]
        assert services["letsencrypt"]["profiles"] == ["ssl-tools"]
        assert services["db"]["environment"]["MYSQL_ROOT_PASSWORD"] == "${MYSQL_ROOT_PASSWORD}"
        assert services["phpmyadmin"]["environment"]["UPLOAD_LIMIT"] == "100M"

    def test_yaml_parses_back(self, resolved):
        _, profile = resolved
        document = compose_file.compose_descriptor(profile)
        assert yaml.safe_load(compose_file.render_yaml(document)) == document


class TestConfigEmitter:
    """Test the full artifact set."""

    def test_emit_artifacts(self, emitter, resolved, sample_identity, sample_snapshot):
        tier, profile = resolved
        artifacts = emitter.emit(profile, sample_identity, sample_snapshot, tier)

        assert [a.path for a in artifacts] == EXPECTED_PATHS
        modes = {a.path: a.mode for a in artifacts}
        assert modes[".env"] == 0o600
        assert all(mode == 0o644 for path, mode in modes.items() if path != ".env")

    def test_emit_is_idempotent(self, emitter, resolved, sample_identity, sample_snapshot):
        tier, profile = resolved
        first = emitter.emit(profile, sample_identity, sample_snapshot, tier)
        second = emitter.emit(profile, sample_identity, sample_snapshot, tier)

        assert first == second

    def test_only_header_depends_on_clock(self, test_config, resolved, sample_identity, sample_snapshot):
        tier, profile = resolved
        early = ConfigEmitter(test_config, clock=lambda: datetime(2024, 1, 1, tzinfo=timezone.utc))
        late = ConfigEmitter(test_config, clock=lambda: datetime(2025, 6, 1, tzinfo=timezone.utc))

        for a, b in zip(early.emit(profile, sample_identity, sample_snapshot, tier),
                        late.emit(profile, sample_identity, sample_snapshot, tier)):
            differing = [
                (x, y) for x, y in zip(a.content.splitlines(), b.content.splitlines()) if x != y
            ]
            assert len(differing) == 1
            assert "Generated on:" in differing[0][0]

    def test_secrets_only_in_env_file(self, emitter, resolved, sample_identity, sample_snapshot):
        tier, profile = resolved
        secret = sample_identity.db_app_secret.get_secret_value()

        for artifact in emitter.emit(profile, sample_identity, sample_snapshot, tier):
            assert (secret in artifact.content) == (artifact.path == ".env")

    def test_unresolved_profile_rejected(self, emitter, sample_identity, sample_snapshot):
        with pytest.raises(ValueError):
            emitter.emit(TIER_PROFILES[PerformanceTier.BASIC], sample_identity, sample_snapshot,
                         PerformanceTier.BASIC)

    def test_write_and_modes(self, emitter, resolved, sample_identity, sample_snapshot, target_dir):
        tier, profile = resolved
        emitter.create_directories(target_dir)
        written = emitter.write(emitter.emit(profile, sample_identity, sample_snapshot, tier), target_dir)

        assert [p.relative_to(target_dir).as_posix() for p in written] == EXPECTED_PATHS
        assert stat.S_IMODE(os.stat(target_dir / ".env").st_mode) == 0o600
        assert stat.S_IMODE(os.stat(target_dir / "nginx/nginx.conf").st_mode) == 0o644
        assert stat.S_IMODE(os.stat(target_dir / "data").st_mode) == 0o700

    def test_create_directories(self, emitter, target_dir):
        emitter.create_directories(target_dir)

        for relative, _ in DIRECTORIES:
            assert (target_dir / relative).is_dir()

    def test_write_failure_keeps_earlier_files(self, target_dir):
        """A failure aborts the write; files already replaced stay."""
        artifacts = [
            ConfigArtifact(path="one.conf", content="1\n"),
            ConfigArtifact(path="two.conf", content="2\n"),
        ]

        with patch("stack_provisioner.emitters.config_emitter.atomic_write",
                   side_effect=[target_dir / "one.conf", WriteError("disk full")]) as mock_write:
            with pytest.raises(WriteError):
                write_artifacts(artifacts, target_dir)

        assert mock_write.call_count == 2

    def test_site_artifact_tls(self, emitter, sample_identity):
        artifact = emitter.site_artifact(sample_identity, tls=True)

        assert artifact.path == "nginx/conf.d/default.conf"
        assert "listen 443 ssl;" in artifact.content

    def test_runtime_dockerfile(self, emitter, resolved, sample_identity, sample_snapshot):
        tier, profile = resolved
        artifacts = {a.path: a for a in emitter.emit(profile, sample_identity, sample_snapshot, tier)}
        content = artifacts["php/Dockerfile"].content

        assert "FROM php:8.3-fpm-alpine\n" in content
        assert "pdo_mysql" in content
        assert content.rstrip().endswith('CMD ["php-fpm"]')
