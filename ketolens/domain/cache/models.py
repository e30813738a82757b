"""
Cache domain models.

Previously resolved products keyed by (barcode, country_code), with the
dependent keto analysis row nested on read.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ketolens.domain.keto.models import ConfidenceLevel, KetoVerdict, Macros
from ketolens.domain.keto.rules import RULESET_VERSION
from ketolens.domain.shared.value_objects import new_record_id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProductSource(str, Enum):
    """Origin of a cached product record."""

    API = "api"
    OCR = "ocr"
    MANUAL = "manual"


class ScanType(str, Enum):
    """Kind of scan recorded in the scan log."""

    BARCODE = "barcode"
    OCR = "ocr"
    MEAL = "meal"


class CachedKetoAnalysis(BaseModel):
    """
    Keto analysis row attached to a cached product.

    `product_id` is filled in by the cache store once the product row
    has been inserted.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_record_id)
    product_id: str = ""
    keto_score: int = Field(..., ge=0, le=100)
    verdict: KetoVerdict
    offenders: List[str] = Field(default_factory=list)
    structural_penalties: List[str] = Field(default_factory=list)
    ruleset_version: str = RULESET_VERSION


class CachedProductRecord(BaseModel):
    """
    Cached product.

    Example:
        >>> record = CachedProductRecord(
        ...     barcode="3017620422003",
        ...     product_name="Nutella",
        ... )
        >>> record.scan_count
        1
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_record_id)
    barcode: str
    country_code: str = "US"
    product_name: str
    brand: str = ""
    image_url: Optional[str] = None
    ingredients_normalized: List[str] = Field(default_factory=list)
    macros: Optional[Macros] = None  # per 100g
    source: ProductSource = ProductSource.API
    confidence_level: ConfidenceLevel = ConfidenceLevel.HIGH
    last_seen_at: datetime = Field(default_factory=_utcnow)
    scan_count: int = Field(1, ge=0)
    keto_analysis: Optional[CachedKetoAnalysis] = None

    def with_analysis(self, analysis: Optional[CachedKetoAnalysis]) -> CachedProductRecord:
        """Return a copy carrying the given analysis."""
        return self.model_copy(update={"keto_analysis": analysis})


class ScanEvent(BaseModel):
    """Scan log entry, written best effort after a resolution."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_record_id)
    product_id: Optional[str] = None
    scan_type: ScanType
    model_confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    country_code: str = "US"
    created_at: datetime = Field(default_factory=_utcnow)
