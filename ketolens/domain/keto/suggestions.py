"""
Swap suggestions.

Deterministic decision trees producing the human-readable improvement
hint shown under a verdict.
"""

from typing import Optional, Sequence

from ketolens.domain.keto.models import DetectedFoodItem, KetoVerdict
from ketolens.domain.keto.rules import MEAL_SWAPS, SEED_OILS, SUGAR_ALIASES
from ketolens.domain.keto.scoring import is_high_risk_food

NOT_FOUND_SUGGESTION = (
    "We couldn't find this product in our database. "
    "Try a different item or scan a meal instead."
)
LOOKUP_FAILED_SUGGESTION = (
    "Unable to fetch product data. Please check your connection and try again."
)
INVALID_BARCODE_SUGGESTION = (
    "This doesn't look like a valid barcode. Please scan the code again."
)
ANALYSIS_FAILED_SUGGESTION = (
    "We couldn't analyze this image. Please try again with a clearer photo."
)
PENDING_OCR_SUGGESTION = (
    "Nutrition data is incomplete. Reading the label for a better verdict."
)


def _mentions_any(ingredients: Sequence[str], needles: Sequence[str]) -> bool:
    return any(n in i.lower() for i in ingredients for n in needles)


def product_swap_suggestion(
    score: int, net_carbs: float, ingredients: Sequence[str]
) -> str:
    """
    Suggestion for a packaged product.

    Args:
        score: Final product score
        net_carbs: Net carbs per 100g
        ingredients: Normalized ingredient tokens
    """
    if score >= 85:
        return (
            "Excellent keto choice! "
            "This product fits well within your daily carb limit."
        )
    if score >= 75:
        return "Good pick! Watch your portion size to stay within your carb budget."
    if _mentions_any(ingredients, SUGAR_ALIASES) and net_carbs > 10:
        return (
            "High sugar content. "
            "Look for a sugar-free or stevia-sweetened alternative."
        )
    if _mentions_any(ingredients, SEED_OILS):
        return (
            "Contains inflammatory seed oils. "
            "Try a version made with olive oil or avocado oil."
        )
    if net_carbs > 15:
        return (
            f"{net_carbs:g}g net carbs per 100g is too high. "
            "Look for a lower-carb alternative."
        )
    return "Consider a cleaner keto option with fewer processed ingredients."


def find_meal_swap(food_name: str) -> Optional[str]:
    """Known keto swap for a high-risk food, if any."""
    lowered = food_name.lower()
    for risky, swap in MEAL_SWAPS:
        if risky in lowered:
            return swap
    return None


def meal_swap_suggestion(
    foods: Sequence[DetectedFoodItem], verdict: KetoVerdict
) -> str:
    """
    Suggestion for a meal.

    Example:
        >>> meal_swap_suggestion([], KetoVerdict.SAFE)
        'Great choice! This meal fits well within your keto goals.'
    """
    if verdict == KetoVerdict.SAFE:
        return "Great choice! This meal fits well within your keto goals."

    risky = [f for f in foods if is_high_risk_food(f.name)]
    if not risky:
        return "Consider reducing portion size to lower carb intake."

    for food in risky:
        swap = find_meal_swap(food.name)
        if swap:
            return f"Try swapping {food.name} for {swap} to make this keto-friendly!"

    return (
        "Try reducing carb-heavy items and add more healthy fats "
        "like avocado or olive oil."
    )
