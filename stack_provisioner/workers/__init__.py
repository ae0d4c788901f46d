"""Host probe and external tool workers."""

from .base import BaseWorker
from .resource_probe import ResourceProbe
from .compose import ComposeWorker
from .certificate import CertificateWorker

__all__ = [
    "BaseWorker",
    "ResourceProbe",
    "ComposeWorker",
    "CertificateWorker",
]
