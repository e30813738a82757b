"""Resolution domain events.

Published by the orchestrator when background label refinement of a
partial product finishes. Subscribers reconcile by barcode.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import uuid4

from ketolens.domain.keto.models import KetoAnalysisResult
from ketolens.domain.shared.events import DomainEvent


@dataclass(frozen=True)
class ProductRefined(DomainEvent):
    """Domain event: Partial product was refined from its label image.

    Attributes:
        barcode: Product barcode (same identity as the first emission).
        country_code: Region of the product record.
        result: Refined result (source=ocr, needs_ocr=False).

    Examples:
        >>> event = ProductRefined.create(
        ...     barcode="3017620422003",
        ...     country_code="US",
        ...     result=refined,
        ... )
        >>> event.barcode
        '3017620422003'
    """

    barcode: str
    country_code: str
    result: KetoAnalysisResult

    @classmethod
    def create(
        cls,
        barcode: str,
        country_code: str,
        result: KetoAnalysisResult,
    ) -> "ProductRefined":
        """Create new ProductRefined event.

        Raises:
            ValueError: If barcode is empty.
        """
        if not barcode:
            raise ValueError("barcode cannot be empty")

        return cls(
            event_id=uuid4(),
            occurred_at=datetime.now(timezone.utc),
            barcode=barcode,
            country_code=country_code,
            result=result,
        )


@dataclass(frozen=True)
class ProductRefinementFailed(DomainEvent):
    """Domain event: Label refinement failed; the partial result is final.

    Attributes:
        barcode: Product barcode.
        country_code: Region of the product record.
        error: Description of the last failure.
    """

    barcode: str
    country_code: str
    error: str

    @classmethod
    def create(
        cls,
        barcode: str,
        country_code: str,
        error: str,
    ) -> "ProductRefinementFailed":
        """Create new ProductRefinementFailed event."""
        if not barcode:
            raise ValueError("barcode cannot be empty")

        return cls(
            event_id=uuid4(),
            occurred_at=datetime.now(timezone.utc),
            barcode=barcode,
            country_code=country_code,
            error=error,
        )
