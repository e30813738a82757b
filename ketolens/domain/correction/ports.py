"""
Correction log port.

Append-only audit trail of user corrections.
"""

from typing import List, Protocol, runtime_checkable

from ketolens.domain.correction.models import CorrectionEvent


@runtime_checkable
class ICorrectionLog(Protocol):
    """
    Repository interface for correction events.

    Implementations must never update or delete events.

    Example:
        >>> log = InMemoryCorrectionLog()
        >>> await log.append(event)
    """

    async def append(self, event: CorrectionEvent) -> None:
        """
        Append one correction event.

        Raises:
            PersistenceError: On storage failure
        """
        ...

    async def list_for(self, product_or_scan_id: str) -> List[CorrectionEvent]:
        """Events recorded for a scan or product, oldest first."""
        ...
