"""
Vision analysis models.

The JSON contract both vision back ends must return, and the image
payload handed to them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ketolens.domain.keto.models import (
    CarbRisk,
    DetectedFoodItem,
    KetoVerdict,
    Macros,
)


class ContentType(str, Enum):
    """What the image shows; decides the back end."""

    MEAL = "meal"
    PRODUCT = "product"  # Packaged product label


class VisionImage(BaseModel):
    """
    Image submitted to a vision back end.

    `data` is either base64-encoded bytes or a remote URL (`is_url`).

    Example:
        >>> VisionImage(data="aGVsbG8=").as_data_url()
        'data:image/jpeg;base64,aGVsbG8='
    """

    model_config = ConfigDict(frozen=True)

    data: str = Field(..., min_length=1)
    is_url: bool = False
    mime_type: str = "image/jpeg"

    def as_data_url(self) -> str:
        """URL form accepted by chat-completion image parts."""
        if self.is_url:
            return self.data
        return f"data:{self.mime_type};base64,{self.data}"


class VisionMacros(BaseModel):
    """Macros block of the vision response. Missing values default to 0."""

    net_carbs: float = 0.0
    fat: float = 0.0
    protein: float = 0.0
    calories: float = 0.0

    @field_validator("net_carbs", "fat", "protein", "calories", mode="before")
    @classmethod
    def non_negative(cls, v: Any) -> Any:
        """Null becomes 0, negatives are clamped to 0."""
        if v is None:
            return 0.0
        if isinstance(v, (int, float)) and v < 0:
            return 0.0
        return v

    def to_macros(self) -> Macros:
        return Macros(
            net_carbs=self.net_carbs,
            fat=self.fat,
            protein=self.protein,
            calories=self.calories,
        )


class VisionFood(BaseModel):
    """One entry of the `foods` array."""

    name: str = Field(..., min_length=1, max_length=200)
    confidence: float = 1.0
    estimated_portion: Optional[str] = None
    carb_risk: CarbRisk = CarbRisk.LOW
    is_keto_offender: bool = False

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> Any:
        """Missing confidence counts as certain; out of range is clamped."""
        if v is None:
            return 1.0
        if isinstance(v, (int, float)):
            return min(1.0, max(0.0, float(v)))
        return v

    @field_validator("carb_risk", mode="before")
    @classmethod
    def lower_risk(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    def to_item(self) -> DetectedFoodItem:
        return DetectedFoodItem(
            name=self.name,
            confidence=self.confidence,
            carb_risk=self.carb_risk,
            is_offender=self.is_keto_offender,
            estimated_portion=self.estimated_portion,
        )


class VisionAnalysisPayload(BaseModel):
    """
    Parsed vision back end response.

    Example:
        >>> payload = VisionAnalysisPayload.model_validate(
        ...     {"score": 82, "verdict": "safe", "swapSuggestion": "Add avocado"}
        ... )
        >>> payload.swap_suggestion
        'Add avocado'
    """

    model_config = ConfigDict(populate_by_name=True)

    score: int
    verdict: KetoVerdict
    reasoning: Optional[str] = None
    macros: VisionMacros = Field(default_factory=VisionMacros)
    swap_suggestion: str = Field("", alias="swapSuggestion")
    foods: List[VisionFood] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, v: Any) -> Any:
        """Round fractional scores and clamp to 0-100."""
        if isinstance(v, bool):
            raise ValueError("score must be a number")
        if isinstance(v, (int, float)):
            return max(0, min(100, int(round(v))))
        return v

    @field_validator("verdict", mode="before")
    @classmethod
    def lower_verdict(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("macros", mode="before")
    @classmethod
    def null_macros(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("foods", mode="before")
    @classmethod
    def null_foods(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("swap_suggestion", mode="before")
    @classmethod
    def null_suggestion(cls, v: Any) -> Any:
        return "" if v is None else v
