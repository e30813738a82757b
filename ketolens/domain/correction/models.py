"""
Correction domain models.

User decisions on detected food items, the append-only audit event each
decision produces, and the rebuilt outcome.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ketolens.domain.keto.models import DetectedFoodItem, KetoVerdict


class CorrectionAction(str, Enum):
    """What the user did with a detected item."""

    CONFIRMED = "confirmed"
    REMOVED = "removed"
    REPLACED = "replaced"


class CorrectionDecision(BaseModel):
    """
    One user decision on a detected item.

    Example:
        >>> decision = CorrectionDecision(
        ...     target="white rice",
        ...     action=CorrectionAction.REPLACED,
        ...     replacement="cauliflower rice",
        ... )
    """

    model_config = ConfigDict(frozen=True)

    target: str = Field(..., min_length=1, description="Name of the detected item")
    action: CorrectionAction
    replacement: Optional[str] = None

    @model_validator(mode="after")
    def replacement_required(self) -> CorrectionDecision:
        """A replace decision must name the replacement."""
        if self.action == CorrectionAction.REPLACED and not (
            self.replacement and self.replacement.strip()
        ):
            raise ValueError("replacement is required when action is 'replaced'")
        return self


class CorrectionEvent(BaseModel):
    """
    Audit record of one correction. Append-only.

    Attributes:
        product_or_scan_id: Scan or product the correction belongs to
        action: Decision taken
        original_label: Detected name before correction
        corrected_label: Replacement name (replaced only)
        model_confidence: Confidence the model had in the original label
        created_at: When the decision was recorded (UTC)
    """

    model_config = ConfigDict(frozen=True)

    product_or_scan_id: str
    action: CorrectionAction
    original_label: str
    corrected_label: Optional[str] = None
    model_confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CorrectionOutcome(BaseModel):
    """Rebuilt item list with the adjusted score and verdict."""

    model_config = ConfigDict(frozen=True)

    items: List[DetectedFoodItem]
    score: int = Field(..., ge=0, le=100)
    verdict: KetoVerdict
    events: List[CorrectionEvent] = Field(default_factory=list)
    skipped_targets: List[str] = Field(default_factory=list)

    @property
    def removed_count(self) -> int:
        """Number of removals applied."""
        return sum(1 for e in self.events if e.action == CorrectionAction.REMOVED)
