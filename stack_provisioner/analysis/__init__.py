"""Tier selection components."""

from .tier_selector import (
    TIER_PROFILES, TIER_ORDER, DEFAULT_POLICY, TieringPolicy, TierSelector,
    select_tier, tier_for_memory
)

__all__ = [
    "TIER_PROFILES",
    "TIER_ORDER",
    "DEFAULT_POLICY",
    "TieringPolicy",
    "TierSelector",
    "select_tier",
    "tier_for_memory",
]
