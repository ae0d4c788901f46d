"""Pytest configuration and fixtures."""

import logging
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock, patch

import pytest

from stack_provisioner.emitters.config_emitter import ConfigEmitter
from stack_provisioner.models.data_models import ProvisioningIdentity, ResourceSnapshot
from stack_provisioner.orchestrator.operator import Operator
from stack_provisioner.utils.config import Config
from stack_provisioner.workers.certificate import CertificateWorker
from stack_provisioner.workers.compose import ComposeWorker

MB = 1024 * 1024
GB = 1024 * MB


@pytest.fixture
def sample_snapshot():
    """A 2 core, 2GB host with plenty of disk."""
    return ResourceSnapshot(
        cpu_cores=2,
        total_memory_mb=2048,
        available_memory_mb=1536,
        available_disk_gb=20,
        total_disk_gb=40,
        load_average="0.10, 0.20, 0.30",
        hostname="web-1",
    )


@pytest.fixture
def large_snapshot():
    """A 16 core, 16GB host."""
    return ResourceSnapshot(
        cpu_cores=16,
        total_memory_mb=16384,
        available_memory_mb=12000,
        available_disk_gb=100,
    )


@pytest.fixture
def sample_identity():
    """Identity for a real domain."""
    return ProvisioningIdentity(domain_name="example.com", admin_email="admin@example.com")


@pytest.fixture
def localhost_identity():
    """Identity for a local deployment."""
    return ProvisioningIdentity()


@pytest.fixture
def fixed_clock():
    """Clock frozen at a known instant."""
    return lambda: datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def target_dir(tmp_path):
    """Deployment directory inside pytest's tmp_path."""
    return tmp_path / "deploy"


@pytest.fixture
def test_config(target_dir):
    """Configuration pointed at the temporary target directory."""
    config = Config()
    config.set("target_dir", str(target_dir))
    return config


@pytest.fixture
def emitter(test_config, fixed_clock):
    """Config emitter with a fixed clock."""
    return ConfigEmitter(test_config, clock=fixed_clock)


@pytest.fixture
def mock_operator():
    """Operator that accepts every confirmation."""
    operator = Mock(spec=Operator)
    operator.confirm.return_value = True
    return operator


@pytest.fixture
def mock_probe(sample_snapshot):
    """Resource probe returning the sample snapshot without warnings."""
    probe = Mock()
    probe.probe.return_value = sample_snapshot
    probe.assess.return_value = []
    return probe


@pytest.fixture
def mock_compose():
    """Compose worker whose services are always running."""
    compose = Mock(spec=ComposeWorker)
    compose.up = AsyncMock(return_value="")
    compose.restart = AsyncMock(return_value="")
    compose.reload_proxy = AsyncMock(return_value="")
    compose.is_running = AsyncMock(return_value=True)
    compose.run_certbot = AsyncMock(return_value="")
    return compose


@pytest.fixture
def mock_certificates():
    """Certificate worker for a domain that is reachable and gets a certificate."""
    certificates = Mock(spec=CertificateWorker)
    certificates.resolves = AsyncMock(return_value=True)
    certificates.probe_challenge_path = AsyncMock(return_value=404)
    certificates.challenge_path_healthy = CertificateWorker.challenge_path_healthy
    certificates.request_certificate = AsyncMock(return_value="Successfully received certificate")
    certificates.check_https = AsyncMock(return_value=200)
    return certificates


@pytest.fixture
def mock_psutil():
    """Patch psutil in the resource probe with a 2 core, 2GB host."""
    with patch("stack_provisioner.workers.resource_probe.psutil") as psutil_mock:
        psutil_mock.cpu_count.return_value = 2
        psutil_mock.virtual_memory.return_value = Mock(total=2048 * MB, available=1536 * MB)
        psutil_mock.disk_usage.return_value = Mock(free=20 * GB, total=40 * GB)
        psutil_mock.getloadavg.return_value = (0.1, 0.2, 0.3)
        yield psutil_mock


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Setup test environment."""
    monkeypatch.setenv("LOG_LEVEL", "ERROR")  # Reduce log noise in tests
    for var in (
        "LOG_FILE", "TARGET_DIR", "COMPOSE_PROJECT_NAME", "DOCKER_BINARY",
        "MIN_MEMORY_MB", "MIN_DISK_GB", "BUFFER_POOL_PERCENT", "RUNTIME_MEMORY_PERCENT",
        "MAX_WORKER_PROCESSES", "TIER_BAND_CEILINGS_MB", "CERTBOT_STAGING",
        "DOMAIN_NAME", "ADMIN_EMAIL", "MYSQL_USER", "MYSQL_DATABASE", "TIMEZONE",
    ):
        monkeypatch.delenv(var, raising=False)

    yield

    # CLI runs bind handlers to streams that are closed afterwards
    logging.getLogger("stack_provisioner").handlers.clear()
