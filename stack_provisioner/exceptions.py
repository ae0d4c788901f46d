"""Error taxonomy for provisioning runs."""

from typing import List, Optional


class ProvisioningError(Exception):
    """Base class for all provisioning errors."""
    pass


class ValidationError(ProvisioningError):
    """Malformed operator input (domain, email, identifiers)."""
    pass


class InsufficientResourcesError(ProvisioningError):
    """Host does not meet the minimum viable resources."""
    pass


class ExternalToolError(ProvisioningError):
    """Container engine or certificate client unavailable or failing."""

    def __init__(
        self,
        message: str,
        tool: Optional[str] = None,
        returncode: Optional[int] = None,
        output: str = "",
        hints: Optional[List[str]] = None
    ):
        super().__init__(message)
        self.tool = tool
        self.returncode = returncode
        self.output = output
        self.hints = hints or []


class WriteError(ProvisioningError):
    """Configuration artifact could not be written."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class InvalidStateTransition(ProvisioningError):
    """Illegal sequencer state transition attempted."""
    pass
