"""Operator interaction seam for the sequencer."""

from pathlib import Path
from typing import List

from ..models.data_models import (
    PerformanceTier, ProbeWarning, ProvisioningIdentity, ResourceSnapshot, TierProfile
)
from ..utils.logging import get_logger


class Operator:
    """Non-interactive operator.

    Reports progress to the log and answers every confirmation with
    ``assume_yes``. The console operator in the CLI overrides the display
    and prompt methods.
    """

    def __init__(self, assume_yes: bool = False):
        self.assume_yes = assume_yes
        self.logger = get_logger("operator")

    def notify(self, message: str):
        self.logger.info(message)

    def warn(self, message: str):
        self.logger.warning(message)

    def confirm(self, message: str) -> bool:
        self.logger.info(f"{message} -> {'yes' if self.assume_yes else 'no'}")
        return self.assume_yes

    def show_snapshot(self, snapshot: ResourceSnapshot, warnings: List[ProbeWarning]):
        pass

    def show_tier(self, tier: PerformanceTier, profile: TierProfile):
        pass

    def show_secrets(self, identity: ProvisioningIdentity):
        # Secrets are for the interactive operator only, never the log
        pass

    def show_artifacts(self, paths: List[Path]):
        pass

    def show_diagnostics(self, hints: List[str]):
        for hint in hints:
            self.logger.error(hint)
