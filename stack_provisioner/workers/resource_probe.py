"""Host resource probe."""

import platform
import socket
from pathlib import Path
from typing import List, Optional, Union

import psutil

from ..exceptions import InsufficientResourcesError
from ..models.data_models import ProbeWarning, ResourceSnapshot, WarningCode
from ..utils.logging import get_logger

MB = 1024 * 1024
GB = 1024 * MB


class ResourceProbe:
    """Read-only inspection of host capacity."""

    def __init__(
        self,
        path: Union[str, Path] = "/",
        min_memory_mb: int = 1024,
        min_disk_gb: int = 5
    ):
        """Initialize resource probe.

        Args:
            path: Path whose filesystem is checked for free space
            min_memory_mb: Minimum total memory; below it the probe fails
            min_disk_gb: Free disk below this raises a low disk warning
        """
        self.path = Path(path)
        self.min_memory_mb = min_memory_mb
        self.min_disk_gb = min_disk_gb
        self.logger = get_logger("resource_probe")

    def _disk_path(self) -> str:
        # The target directory may not exist yet on a first run
        for candidate in [self.path, *self.path.resolve().parents]:
            if candidate.exists():
                return str(candidate)
        return "/"

    def _load_average(self) -> Optional[str]:
        try:
            load_avg = psutil.getloadavg()
        except (AttributeError, OSError):
            return None
        return f"{load_avg[0]:.2f}, {load_avg[1]:.2f}, {load_avg[2]:.2f}"

    def probe(self) -> ResourceSnapshot:
        """Capture a snapshot of host resources.

        Returns:
            Resource snapshot

        Raises:
            InsufficientResourcesError: Total memory below the minimum
        """
        memory = psutil.virtual_memory()
        disk = psutil.disk_usage(self._disk_path())

        snapshot = ResourceSnapshot(
            cpu_cores=psutil.cpu_count(logical=True) or 1,
            total_memory_mb=memory.total // MB,
            available_memory_mb=memory.available // MB,
            available_disk_gb=disk.free // GB,
            total_disk_gb=disk.total // GB,
            cpu_model=platform.processor() or None,
            load_average=self._load_average(),
            hostname=socket.gethostname(),
        )

        self.logger.info(
            f"Detected {snapshot.cpu_cores} CPU cores, "
            f"{snapshot.total_memory_mb}MB RAM ({snapshot.available_memory_mb}MB available), "
            f"{snapshot.available_disk_gb}GB of {snapshot.total_disk_gb}GB disk free"
        )

        if snapshot.total_memory_mb < self.min_memory_mb:
            raise InsufficientResourcesError(
                f"Minimum {self.min_memory_mb}MB RAM is required for stable operation "
                f"(found {snapshot.total_memory_mb}MB)"
            )

        return snapshot

    def assess(self, snapshot: ResourceSnapshot) -> List[ProbeWarning]:
        """Return advisory warnings for a snapshot."""
        warnings = []

        if snapshot.available_disk_gb < self.min_disk_gb:
            warnings.append(ProbeWarning(
                code=WarningCode.LOW_DISK,
                message=(
                    f"Low disk space: {snapshot.available_disk_gb}GB available "
                    f"(less than {self.min_disk_gb}GB)"
                ),
                requires_confirmation=True,
            ))

        if snapshot.cpu_cores < 2:
            warnings.append(ProbeWarning(
                code=WarningCode.SINGLE_CORE,
                message="Single CPU core detected. Performance may be limited.",
            ))

        for warning in warnings:
            self.logger.warning(warning.message)

        return warnings
