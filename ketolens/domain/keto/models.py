"""
Keto analysis domain models.

Value objects shared by the scoring engine, the vision cascade, the
resolution orchestrator and the correction workflow.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class KetoVerdict(str, Enum):
    """Keto suitability classification."""

    SAFE = "safe"
    BORDERLINE = "borderline"
    AVOID = "avoid"
    UNKNOWN = "unknown"  # Not food, or nothing plausible detected


class ConfidenceLevel(str, Enum):
    """Coarse qualitative confidence."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CarbRisk(str, Enum):
    """Carbohydrate risk of a detected food item."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ResultSource(str, Enum):
    """Where a keto analysis result came from."""

    CACHE = "cache"
    API = "api"
    OCR = "ocr"
    VISION = "vision"
    NONE = "none"


class ResolutionStatus(str, Enum):
    """Outcome of a resolution, as seen by the UI caller."""

    OK = "ok"
    PENDING_REFINEMENT = "pending_refinement"  # Partial, OCR running
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    FAILED = "failed"


def confidence_level(value: float) -> ConfidenceLevel:
    """
    Map a numeric confidence (0-1) to a qualitative level.

    Example:
        >>> confidence_level(0.92)
        <ConfidenceLevel.HIGH: 'high'>
        >>> confidence_level(0.3)
        <ConfidenceLevel.LOW: 'low'>
    """
    if value >= 0.8:
        return ConfidenceLevel.HIGH
    if value >= 0.5:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def compute_net_carbs(total_carbs: float, fiber: float = 0.0) -> float:
    """
    Net carbs = total carbohydrates minus fiber, never negative.

    Example:
        >>> compute_net_carbs(10.0, 4.0)
        6.0
        >>> compute_net_carbs(2.0, 5.0)
        0.0
    """
    return max(0.0, total_carbs - fiber)


class Macros(BaseModel):
    """
    Macro-nutrient breakdown.

    Values are grams (kcal for calories). For products they are per 100g,
    for meals they are the estimated plate total.

    Example:
        >>> macros = Macros(net_carbs=8, fat=45, protein=32, calories=520)
        >>> macros.fat
        45.0
    """

    model_config = ConfigDict(frozen=True)

    net_carbs: float = Field(0.0, ge=0, description="Net carbohydrates in g")
    fat: float = Field(0.0, ge=0, description="Fat in g")
    protein: float = Field(0.0, ge=0, description="Protein in g")
    calories: float = Field(0.0, ge=0, description="Energy in kcal")
    fiber: Optional[float] = Field(None, ge=0, description="Fiber in g")

    @classmethod
    def from_totals(
        cls,
        total_carbs: float,
        fiber: float,
        fat: float,
        protein: float,
        calories: float,
    ) -> Macros:
        """Build macros from total carbohydrates and fiber."""
        return cls(
            net_carbs=compute_net_carbs(total_carbs, fiber),
            fat=fat,
            protein=protein,
            calories=calories,
            fiber=fiber,
        )


class DetectedFoodItem(BaseModel):
    """
    Single food item detected by a vision back end.

    Immutable: corrections produce new items via `renamed()`.

    Example:
        >>> item = DetectedFoodItem(
        ...     name="white rice",
        ...     confidence=0.62,
        ...     carb_risk=CarbRisk.HIGH,
        ...     is_offender=True,
        ... )
        >>> item.renamed("cauliflower rice").name
        'cauliflower rice'
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, max_length=200)
    confidence: float = Field(..., ge=0.0, le=1.0)
    carb_risk: CarbRisk = CarbRisk.LOW
    is_offender: bool = False
    estimated_portion: Optional[str] = None

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        """Ensure not just whitespace."""
        if not v.strip():
            raise ValueError("Food name cannot be empty or whitespace")
        return v.strip()

    def renamed(self, new_name: str) -> DetectedFoodItem:
        """Return a copy carrying a different name."""
        return DetectedFoodItem(
            name=new_name,
            confidence=self.confidence,
            carb_risk=self.carb_risk,
            is_offender=self.is_offender,
            estimated_portion=self.estimated_portion,
        )


class ParsedIngredient(BaseModel):
    """Ingredient after offender matching."""

    model_config = ConfigDict(frozen=True)

    name: str
    is_offender: bool = False
    penalty_score: int = Field(0, ge=0)
    reason: Optional[str] = None


class KetoScore(BaseModel):
    """
    Output of a scoring function.

    Attributes:
        score: 0-100, higher is more keto friendly
        verdict: Classification derived from score
        confidence: Qualitative confidence of the scoring engine
        ingredients: Per-ingredient offender matches (product scoring only)
    """

    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100)
    verdict: KetoVerdict
    confidence: ConfidenceLevel
    ingredients: List[ParsedIngredient] = Field(default_factory=list)

    @property
    def offenders(self) -> List[ParsedIngredient]:
        """Ingredients that triggered a penalty."""
        return [i for i in self.ingredients if i.is_offender]


class KetoAnalysisResult(BaseModel):
    """
    Keto verdict returned to the UI caller.

    Every entry point returns one of these, including on failure
    (see `status`).

    Example:
        >>> result = KetoAnalysisResult(
        ...     score=75,
        ...     verdict=KetoVerdict.BORDERLINE,
        ...     confidence=ConfidenceLevel.HIGH,
        ...     swap_suggestion="Good pick!",
        ... )
        >>> result.status
        <ResolutionStatus.OK: 'ok'>
    """

    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100)
    verdict: KetoVerdict
    confidence: ConfidenceLevel = ConfidenceLevel.MEDIUM
    macros: Optional[Macros] = None
    swap_suggestion: str = ""
    foods: List[DetectedFoodItem] = Field(default_factory=list)
    reasoning: Optional[str] = None
    plate_confidence: float = Field(1.0, ge=0.0, le=1.0)

    # Product identity (barcode path)
    barcode: Optional[str] = None
    product_name: Optional[str] = None
    brand: Optional[str] = None
    image_url: Optional[str] = None
    ingredients: List[ParsedIngredient] = Field(default_factory=list)

    source: ResultSource = ResultSource.NONE
    status: ResolutionStatus = ResolutionStatus.OK
    needs_ocr: bool = False

    @property
    def is_failure(self) -> bool:
        """True when the result stands in for a failed resolution."""
        return self.status in (
            ResolutionStatus.INVALID_INPUT,
            ResolutionStatus.NOT_FOUND,
            ResolutionStatus.FAILED,
        )
