"""
Keto scoring engine.

Pure functions: no I/O, no logging, deterministic for the same input.

Two scoring functions exist and never call each other:
- `calculate_meal_score`: macro-based, used for meals and vision output
- `calculate_product_score`: ingredient-based, used for packaged products
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List

from ketolens.domain.keto.models import (
    CarbRisk,
    ConfidenceLevel,
    DetectedFoodItem,
    KetoScore,
    KetoVerdict,
    Macros,
    ParsedIngredient,
)
from ketolens.domain.keto.rules import (
    BARCODE_THRESHOLD_BORDERLINE,
    BARCODE_THRESHOLD_SAFE,
    DEFAULT_CARB_LIMIT,
    HIGH_RISK_FOODS,
    INGREDIENT_COUNT_PENALTY,
    INGREDIENT_COUNT_THRESHOLD,
    NET_CARB_PENALTIES,
    OFFENDER_TABLE,
    SCORE_THRESHOLD_BORDERLINE,
    SCORE_THRESHOLD_SAFE,
)


def _round_half_up(value: float) -> int:
    # round() is banker's rounding; scores use half-up
    return int(math.floor(value + 0.5))


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class VerdictPolicy:
    """
    Score thresholds mapping a score to a verdict.

    Two policies exist: the default one (meals, ingredient scoring) and a
    more lenient one used for packaged products resolved by barcode.

    Example:
        >>> DEFAULT_POLICY.verdict(75)
        <KetoVerdict.BORDERLINE: 'borderline'>
        >>> BARCODE_POLICY.verdict(75)
        <KetoVerdict.SAFE: 'safe'>
    """

    safe_threshold: int
    borderline_threshold: int

    def __post_init__(self) -> None:
        if self.borderline_threshold > self.safe_threshold:
            raise ValueError(
                "borderline_threshold must not exceed safe_threshold"
            )

    def verdict(self, score: float, has_content: bool = True) -> KetoVerdict:
        """
        Classify a score.

        A score of 0 with nothing plausible to score (no foods detected,
        not food) is `unknown` rather than `avoid`.
        """
        if not has_content and score <= 0:
            return KetoVerdict.UNKNOWN
        if score >= self.safe_threshold:
            return KetoVerdict.SAFE
        if score >= self.borderline_threshold:
            return KetoVerdict.BORDERLINE
        return KetoVerdict.AVOID


DEFAULT_POLICY = VerdictPolicy(
    safe_threshold=SCORE_THRESHOLD_SAFE,
    borderline_threshold=SCORE_THRESHOLD_BORDERLINE,
)
BARCODE_POLICY = VerdictPolicy(
    safe_threshold=BARCODE_THRESHOLD_SAFE,
    borderline_threshold=BARCODE_THRESHOLD_BORDERLINE,
)


def get_verdict(score: float) -> KetoVerdict:
    """Classify a score with the default policy."""
    return DEFAULT_POLICY.verdict(score)


_VERDICT_LABELS = {
    KetoVerdict.SAFE: "KETO-SAFE",
    KetoVerdict.BORDERLINE: "BORDERLINE",
    KetoVerdict.AVOID: "AVOID",
    KetoVerdict.UNKNOWN: "UNKNOWN",
}


def verdict_label(verdict: KetoVerdict) -> str:
    """Display label for a verdict (e.g. ``KETO-SAFE``)."""
    return _VERDICT_LABELS[KetoVerdict(verdict)]


def is_high_risk_food(name: str) -> bool:
    """
    True when a food name mentions a known high-carb food.

    Example:
        >>> is_high_risk_food("Steamed White Rice")
        True
        >>> is_high_risk_food("grilled salmon")
        False
    """
    lowered = name.lower()
    return any(food in lowered for food in HIGH_RISK_FOODS)


def calculate_plate_confidence(foods: Iterable[DetectedFoodItem]) -> float:
    """
    Lowest confidence among carb-risky foods, 1.0 if there are none.

    Example:
        >>> calculate_plate_confidence([])
        1.0
    """
    risky = [f.confidence for f in foods if f.carb_risk != CarbRisk.LOW]
    return min(risky) if risky else 1.0


def calculate_meal_score(
    macros: Macros,
    carb_limit: float = DEFAULT_CARB_LIMIT,
    policy: VerdictPolicy = DEFAULT_POLICY,
) -> KetoScore:
    """
    Score a macro breakdown against a daily net-carb limit.

    Penalties:
    - carb ratio over limit: up to 50 points
    - carb ratio over half the limit: up to 15 points
    - fat below 60% of macro grams
    - net carbs above 10% of macro grams

    Args:
        macros: Macro breakdown (meal total)
        carb_limit: Daily net-carb limit in grams, must be positive
        policy: Verdict thresholds

    Returns:
        KetoScore with medium confidence

    Raises:
        ValueError: If carb_limit is not positive

    Example:
        >>> result = calculate_meal_score(
        ...     Macros(net_carbs=8, fat=45, protein=32, calories=520)
        ... )
        >>> result.verdict
        <KetoVerdict.SAFE: 'safe'>
    """
    if carb_limit <= 0:
        raise ValueError(f"carb_limit must be positive, got {carb_limit}")

    score = 100.0

    carb_ratio = macros.net_carbs / carb_limit
    if carb_ratio > 1:
        score -= min(50.0, (carb_ratio - 1) * 50)
    elif carb_ratio > 0.5:
        score -= (carb_ratio - 0.5) * 30

    total = macros.fat + macros.protein + macros.net_carbs
    if total > 0:
        fat_percent = macros.fat / total * 100
        carb_percent = macros.net_carbs / total * 100

        if fat_percent < 60:
            score -= (60 - fat_percent) * 0.5
        if carb_percent > 10:
            score -= (carb_percent - 10) * 2

    final = _round_half_up(_clamp(score))
    return KetoScore(
        score=final,
        verdict=policy.verdict(final),
        confidence=ConfidenceLevel.MEDIUM,
    )


def match_ingredient(ingredient: str) -> ParsedIngredient:
    """
    Match one ingredient against the offender table.

    The first (most specific) substring match wins.

    Example:
        >>> match_ingredient(" Cane Sugar ").penalty_score
        25
        >>> match_ingredient("water").is_offender
        False
    """
    normalized = ingredient.lower().strip()
    for offender, penalty, reason in OFFENDER_TABLE:
        if offender in normalized:
            return ParsedIngredient(
                name=normalized,
                is_offender=True,
                penalty_score=penalty,
                reason=reason,
            )
    return ParsedIngredient(name=normalized)


def calculate_product_score(
    ingredients: Iterable[str],
    policy: VerdictPolicy = DEFAULT_POLICY,
) -> KetoScore:
    """
    Score an ingredient list.

    Each ingredient contributes at most one penalty. A list longer than
    the threshold costs a flat penalty once (heavy processing).

    Example:
        >>> result = calculate_product_score(["cane sugar", "water", "salt"])
        >>> result.score, result.verdict.value
        (75, 'borderline')
    """
    parsed: List[ParsedIngredient] = [match_ingredient(i) for i in ingredients]

    score = 100.0 - sum(p.penalty_score for p in parsed)
    if len(parsed) > INGREDIENT_COUNT_THRESHOLD:
        score -= INGREDIENT_COUNT_PENALTY

    final = _round_half_up(_clamp(score))
    return KetoScore(
        score=final,
        verdict=policy.verdict(final),
        confidence=ConfidenceLevel.HIGH,
        ingredients=parsed,
    )


def apply_net_carb_adjustment(score: int, net_carbs_per_100g: float) -> int:
    """
    Second scoring pass once net carbs per 100g are known.

    Example:
        >>> apply_net_carb_adjustment(90, 12.0)
        75
        >>> apply_net_carb_adjustment(20, 25.0)
        0
    """
    for bound, penalty in NET_CARB_PENALTIES:
        if net_carbs_per_100g > bound:
            return max(0, score - penalty)
    return score
