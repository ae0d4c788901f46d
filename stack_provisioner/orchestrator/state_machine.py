"""Provisioning run state machine."""

from typing import Dict, List, Set

from ..exceptions import InvalidStateTransition
from ..models.data_models import ProvisioningState

S = ProvisioningState

ALLOWED_TRANSITIONS: Dict[ProvisioningState, Set[ProvisioningState]] = {
    S.INIT: {S.RESOURCES_PROBED},
    S.RESOURCES_PROBED: {S.IDENTITY_COLLECTED, S.DECLINED},
    S.IDENTITY_COLLECTED: {S.TIER_SELECTED},
    S.TIER_SELECTED: {S.DIRECTORIES_READY},
    S.DIRECTORIES_READY: {S.CONFIG_EMITTED},
    S.CONFIG_EMITTED: {S.SERVICES_STARTED},
    # Ready directly when certificate acquisition is skipped for localhost
    S.SERVICES_STARTED: {S.CERTIFICATE_REQUESTED, S.READY},
    S.CERTIFICATE_REQUESTED: {S.READY, S.DECLINED},
}

# States a fresh run may jump to once their preconditions are verified
RESUMABLE_STATES: Set[ProvisioningState] = {S.CONFIG_EMITTED, S.SERVICES_STARTED}


class ProvisioningStateMachine:
    """Tracks the current state and enforces the transition table."""

    def __init__(self):
        self.state = S.INIT
        self.history: List[ProvisioningState] = [S.INIT]

    def transition(self, new_state: ProvisioningState) -> ProvisioningState:
        """Move to ``new_state``.

        ``failed`` is reachable from every non-terminal state.

        Raises:
            InvalidStateTransition: The move is not in the table
        """
        current = self.state

        if current.is_terminal:
            raise InvalidStateTransition(
                f"Cannot transition from terminal state {current.value} to {new_state.value}"
            )

        if new_state != S.FAILED and new_state not in ALLOWED_TRANSITIONS.get(current, set()):
            raise InvalidStateTransition(
                f"Cannot transition from {current.value} to {new_state.value}"
            )

        self.state = new_state
        self.history.append(new_state)
        return new_state

    def resume(self, state: ProvisioningState) -> ProvisioningState:
        """Start a fresh run at a checkpoint state.

        Raises:
            InvalidStateTransition: The run already started or the state is not resumable
        """
        if self.state != S.INIT:
            raise InvalidStateTransition(f"Can only resume a fresh run, current state is {self.state.value}")

        if state not in RESUMABLE_STATES:
            raise InvalidStateTransition(f"Cannot resume at {state.value}")

        self.state = state
        self.history.append(state)
        return state
