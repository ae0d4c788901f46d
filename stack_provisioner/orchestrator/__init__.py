"""Orchestrator modules."""

from .sequencer import ProvisioningSequencer
from .state_machine import ProvisioningStateMachine, ALLOWED_TRANSITIONS
from .operator import Operator

__all__ = [
    "ProvisioningSequencer",
    "ProvisioningStateMachine",
    "ALLOWED_TRANSITIONS",
    "Operator",
]
