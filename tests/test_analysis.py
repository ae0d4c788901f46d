"""Test tier selection."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from stack_provisioner.analysis.tier_selector import (
    DEFAULT_POLICY, TIER_ORDER, TIER_PROFILES, TierSelector, TieringPolicy,
    select_tier, tier_for_memory
)
from stack_provisioner.models.data_models import PerformanceTier, ResourceSnapshot
from stack_provisioner.utils.config import Config


def _snapshot(total_mb, cores=4, available_mb=None, disk_gb=50):
    return ResourceSnapshot(
        cpu_cores=cores,
        total_memory_mb=total_mb,
        available_memory_mb=total_mb * 3 // 4 if available_mb is None else available_mb,
        available_disk_gb=disk_gb,
    )


class TestSelectTier:
    """Test select_tier."""

    def test_basic_host(self, sample_snapshot):
        """2 cores and 2GB select Basic with two proxy workers."""
        tier, profile = select_tier(sample_snapshot)

        assert tier == PerformanceTier.BASIC
        assert profile.db_max_connections == 50
        assert profile.worker_process_count == 2
        assert profile.worker_max_children == 10
        # 60% and 25% of 1536MB available
        assert profile.buffer_pool_mb == 921
        assert profile.runtime_memory_mb == 384

    def test_high_performance_caps_workers(self, large_snapshot):
        """16 cores still get at most 8 proxy workers."""
        tier, profile = select_tier(large_snapshot)

        assert tier == PerformanceTier.HIGH_PERFORMANCE
        assert profile.worker_process_count == 8
        assert profile.db_max_connections == 500
        # No ceiling on the top tier
        assert profile.buffer_pool_mb == 7200
        assert profile.runtime_memory_mb == 3000

    @pytest.mark.parametrize("total_mb,expected", [
        (512, PerformanceTier.MINIMAL),
        (1024, PerformanceTier.MINIMAL),
        (1025, PerformanceTier.BASIC),
        (2048, PerformanceTier.BASIC),
        (4096, PerformanceTier.STANDARD),
        (8192, PerformanceTier.ENHANCED),
        (8193, PerformanceTier.HIGH_PERFORMANCE),
    ])
    def test_band_boundaries_are_inclusive(self, total_mb, expected):
        assert tier_for_memory(total_mb) == expected

    def test_every_host_gets_a_resolved_tier(self):
        """Selection is total over memory and core counts."""
        for total_mb in range(0, 20000, 97):
            for cores in (1, 3, 12):
                tier, profile = select_tier(_snapshot(total_mb, cores=cores))
                assert tier in TIER_ORDER
                assert profile.is_resolved

    def test_tier_is_monotonic_in_memory(self):
        ranks = [select_tier(_snapshot(total_mb))[0].rank for total_mb in range(0, 20000, 64)]
        assert ranks == sorted(ranks)

    def test_allocations_clamped_to_tier_ceiling(self):
        # Minimal tier, but lots of memory reported available
        _, profile = select_tier(_snapshot(1024, available_mb=1000))

        assert profile.buffer_pool_mb == 384
        assert profile.runtime_memory_mb == 250

    def test_allocations_floored(self):
        _, profile = select_tier(_snapshot(1024, available_mb=100))

        assert profile.buffer_pool_mb == DEFAULT_POLICY.min_allocation_mb
        assert profile.runtime_memory_mb == DEFAULT_POLICY.min_allocation_mb

    def test_floor_limited_to_available_memory(self):
        _, profile = select_tier(_snapshot(1024, available_mb=50))

        assert profile.buffer_pool_mb == 50
        assert profile.runtime_memory_mb == 50

    def test_static_table_untouched(self, sample_snapshot):
        select_tier(sample_snapshot)
        assert TIER_PROFILES[PerformanceTier.BASIC].buffer_pool_mb is None

    def test_deterministic(self, sample_snapshot):
        assert select_tier(sample_snapshot) == select_tier(sample_snapshot)


class TestTieringPolicy:
    """Test TieringPolicy validation and construction."""

    def test_default_bands(self):
        assert DEFAULT_POLICY.band_ceilings_mb == (1024, 2048, 4096, 8192)

    def test_non_increasing_bands_rejected(self):
        with pytest.raises(PydanticValidationError):
            TieringPolicy(band_ceilings_mb=(1024, 1024, 4096, 8192))

    def test_wrong_band_count_rejected(self):
        with pytest.raises(PydanticValidationError):
            TieringPolicy(band_ceilings_mb=(1024, 2048))

    def test_from_config(self, monkeypatch):
        monkeypatch.setenv("TIER_BAND_CEILINGS_MB", "512,1024,2048,4096")
        monkeypatch.setenv("BUFFER_POOL_PERCENT", "50")
        monkeypatch.setenv("MAX_WORKER_PROCESSES", "4")

        policy = TieringPolicy.from_config(Config())

        assert policy.band_ceilings_mb == (512, 1024, 2048, 4096)
        assert policy.buffer_pool_percent == 50
        assert tier_for_memory(1000, policy) == PerformanceTier.BASIC

        _, profile = select_tier(_snapshot(16384, cores=16), policy)
        assert profile.worker_process_count == 4


class TestTierSelector:
    """Test TierSelector wrapper."""

    def test_select_matches_function(self, sample_snapshot):
        selector = TierSelector()
        assert selector.select(sample_snapshot) == select_tier(sample_snapshot)

    def test_custom_policy(self, sample_snapshot):
        policy = TieringPolicy(band_ceilings_mb=(4096, 8192, 16384, 32768))
        tier, _ = TierSelector(policy).select(sample_snapshot)
        assert tier == PerformanceTier.MINIMAL
