"""Resource tier selection.

Maps a probed host to one of the fixed performance tiers and resolves the
host-derived values (worker processes, database buffer pool, runtime memory
limit) on top of the tier's static profile.
"""

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.data_models import PerformanceTier, ResourceSnapshot, TierProfile
from ..utils.config import Config
from ..utils.logging import get_logger

MB = 1024 * 1024

TIER_PROFILES: Dict[PerformanceTier, TierProfile] = {
    PerformanceTier.MINIMAL: TierProfile(
        db_max_connections=25,
        worker_connections=512,
        worker_max_children=5,
        worker_start_count=2,
        worker_min_idle=1,
        worker_max_idle=3,
        cache_memory_mb=32,
        opcache_memory_mb=32,
        max_upload_size_bytes=50 * MB,
        buffer_pool_ceiling_mb=384,
        runtime_memory_ceiling_mb=256,
    ),
    PerformanceTier.BASIC: TierProfile(
        db_max_connections=50,
        worker_connections=1024,
        worker_max_children=10,
        worker_start_count=3,
        worker_min_idle=2,
        worker_max_idle=5,
        cache_memory_mb=64,
        opcache_memory_mb=64,
        max_upload_size_bytes=100 * MB,
        buffer_pool_ceiling_mb=1024,
        runtime_memory_ceiling_mb=512,
    ),
    PerformanceTier.STANDARD: TierProfile(
        db_max_connections=100,
        worker_connections=2048,
        worker_max_children=20,
        worker_start_count=5,
        worker_min_idle=4,
        worker_max_idle=10,
        cache_memory_mb=128,
        opcache_memory_mb=128,
        max_upload_size_bytes=200 * MB,
        buffer_pool_ceiling_mb=2048,
        runtime_memory_ceiling_mb=1024,
    ),
    PerformanceTier.ENHANCED: TierProfile(
        db_max_connections=200,
        worker_connections=4096,
        worker_max_children=40,
        worker_start_count=8,
        worker_min_idle=6,
        worker_max_idle=20,
        cache_memory_mb=256,
        opcache_memory_mb=256,
        max_upload_size_bytes=500 * MB,
        buffer_pool_ceiling_mb=4096,
        runtime_memory_ceiling_mb=2048,
    ),
    PerformanceTier.HIGH_PERFORMANCE: TierProfile(
        db_max_connections=500,
        worker_connections=8192,
        worker_max_children=80,
        worker_start_count=16,
        worker_min_idle=12,
        worker_max_idle=40,
        cache_memory_mb=512,
        opcache_memory_mb=512,
        max_upload_size_bytes=1024 * MB,
    ),
}

TIER_ORDER: List[PerformanceTier] = list(PerformanceTier)


class TieringPolicy(BaseModel):
    """Thresholds and allocation percentages used for tier selection."""

    model_config = ConfigDict(frozen=True)

    # Inclusive upper bound of every tier except the last, in MB
    band_ceilings_mb: Tuple[int, ...] = (1024, 2048, 4096, 8192)
    buffer_pool_percent: int = Field(default=60, ge=1, le=100)
    runtime_memory_percent: int = Field(default=25, ge=1, le=100)
    max_worker_processes: int = Field(default=8, ge=1)
    min_allocation_mb: int = Field(default=64, ge=0)

    @field_validator("band_ceilings_mb")
    @classmethod
    def validate_bands(cls, v):
        if len(v) != len(TIER_ORDER) - 1:
            raise ValueError(f"Expected {len(TIER_ORDER) - 1} band ceilings, got {len(v)}")
        if any(lower >= upper for lower, upper in zip(v, v[1:])):
            raise ValueError("Band ceilings must be strictly increasing")
        return v

    @classmethod
    def from_config(cls, config: Config) -> "TieringPolicy":
        """Build a policy from tool configuration."""
        return cls(
            band_ceilings_mb=tuple(config.get("tier_band_ceilings_mb")),
            buffer_pool_percent=config.get("buffer_pool_percent"),
            runtime_memory_percent=config.get("runtime_memory_percent"),
            max_worker_processes=config.get("max_worker_processes"),
        )


DEFAULT_POLICY = TieringPolicy()


def tier_for_memory(total_memory_mb: int, policy: TieringPolicy = DEFAULT_POLICY) -> PerformanceTier:
    """Return the tier whose band contains ``total_memory_mb``."""
    for tier, ceiling in zip(TIER_ORDER, policy.band_ceilings_mb):
        if total_memory_mb <= ceiling:
            return tier
    return TIER_ORDER[-1]


def _allocate(available_mb: int, percent: int, ceiling: Optional[int], floor: int) -> int:
    value = available_mb * percent // 100
    if ceiling is not None:
        value = min(value, ceiling)
    # The floor never exceeds what the host has available
    return max(value, min(floor, available_mb))


def select_tier(
    snapshot: ResourceSnapshot,
    policy: TieringPolicy = DEFAULT_POLICY
) -> Tuple[PerformanceTier, TierProfile]:
    """Select the performance tier for a host.

    Args:
        snapshot: Probed host resources
        policy: Band thresholds and allocation percentages

    Returns:
        Tuple of (tier, resolved profile)
    """
    tier = tier_for_memory(snapshot.total_memory_mb, policy)
    base = TIER_PROFILES[tier]

    profile = base.model_copy(update={
        "worker_process_count": min(snapshot.cpu_cores, policy.max_worker_processes),
        "buffer_pool_mb": _allocate(
            snapshot.available_memory_mb,
            policy.buffer_pool_percent,
            base.buffer_pool_ceiling_mb,
            policy.min_allocation_mb,
        ),
        "runtime_memory_mb": _allocate(
            snapshot.available_memory_mb,
            policy.runtime_memory_percent,
            base.runtime_memory_ceiling_mb,
            policy.min_allocation_mb,
        ),
    })

    return tier, profile


class TierSelector:
    """Selects tiers for the sequencer and reports the outcome."""

    def __init__(self, policy: Optional[TieringPolicy] = None):
        """Initialize tier selector.

        Args:
            policy: Tiering policy, defaults to DEFAULT_POLICY
        """
        self.policy = policy or DEFAULT_POLICY
        self.logger = get_logger("tier_selector")

    def select(self, snapshot: ResourceSnapshot) -> Tuple[PerformanceTier, TierProfile]:
        """Select a tier and log the resolved parameters."""
        tier, profile = select_tier(snapshot, self.policy)

        self.logger.info(f"Performance tier: {tier.value}")
        self.logger.debug(
            f"Buffer pool {profile.buffer_pool_mb}MB, runtime memory {profile.runtime_memory_mb}MB, "
            f"{profile.db_max_connections} DB connections, {profile.worker_process_count} proxy workers"
        )

        return tier, profile
