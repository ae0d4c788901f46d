"""Helpers shared by the artifact builders."""

from datetime import datetime
from typing import List, Optional

from ..models.data_models import PerformanceTier

MB = 1024 * 1024
GB = 1024 * MB

RULE = "=" * 65


def format_size(size_bytes: int) -> str:
    """Format a byte count as a size suffix string ("50M", "1G")."""
    if size_bytes % GB == 0:
        return f"{size_bytes // GB}G"
    if size_bytes % MB == 0:
        return f"{size_bytes // MB}M"
    if size_bytes % 1024 == 0:
        return f"{size_bytes // 1024}K"
    return str(size_bytes)


def header(
    title: str,
    generated_on: datetime,
    tier: Optional[PerformanceTier] = None,
    comment: str = "#",
    extra: Optional[List[str]] = None
) -> str:
    """Render the comment banner placed at the top of every artifact.

    ``Generated on`` is the only line that depends on the clock.
    """
    lines = [
        RULE,
        f"Auto-generated {title}",
        f"Generated on: {generated_on.isoformat(timespec='seconds')}",
    ]
    if tier is not None:
        lines.append(f"Performance Tier: {tier.value}")
    lines.extend(extra or [])
    lines.append(RULE)
    return "\n".join(f"{comment} {line}" for line in lines) + "\n\n"
