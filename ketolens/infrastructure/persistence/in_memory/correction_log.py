"""In-memory correction log."""

from typing import List

from ketolens.domain.correction.models import CorrectionEvent


class InMemoryCorrectionLog:
    """
    Append-only in-memory implementation of ICorrectionLog.

    Example:
        >>> log = InMemoryCorrectionLog()
        >>> await log.append(event)
        >>> events = await log.list_for("scan-123")
    """

    def __init__(self) -> None:
        """Initialize with empty log."""
        self._events: List[CorrectionEvent] = []

    async def append(self, event: CorrectionEvent) -> None:
        self._events.append(event)

    async def list_for(self, product_or_scan_id: str) -> List[CorrectionEvent]:
        return [e for e in self._events if e.product_or_scan_id == product_or_scan_id]

    def __len__(self) -> int:
        return len(self._events)
