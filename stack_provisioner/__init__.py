"""
Stack Provisioner

Sizes and writes the configuration of a containerized web application stack
for the host it runs on, then starts and secures it.
"""

__version__ = "0.1.0"
__author__ = "Stack Provisioner Team"

from .orchestrator.sequencer import ProvisioningSequencer
from .analysis.tier_selector import select_tier
from .models.data_models import ProvisioningIdentity, ResourceSnapshot, PerformanceTier

__all__ = [
    "ProvisioningSequencer",
    "select_tier",
    "ProvisioningIdentity",
    "ResourceSnapshot",
    "PerformanceTier",
]
