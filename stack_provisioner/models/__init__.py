"""Data models."""

from .data_models import (
    ResourceSnapshot, WarningCode, ProbeWarning, PerformanceTier, TierProfile,
    ProvisioningIdentity, ConfigArtifact, ProvisioningState, build_identity,
    retarget_identity
)

__all__ = [
    "ResourceSnapshot",
    "WarningCode",
    "ProbeWarning",
    "PerformanceTier",
    "TierProfile",
    "ProvisioningIdentity",
    "ConfigArtifact",
    "ProvisioningState",
    "build_identity",
    "retarget_identity",
]
