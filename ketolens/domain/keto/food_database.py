"""
Curated keto food database.

Small table of verified foods used to cross-check vision output.
"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class FoodMetadata(BaseModel):
    """Verified nutrition facts for one food (per unit)."""

    model_config = ConfigDict(frozen=True)

    name: str
    net_carbs: float = Field(..., ge=0)
    fat: float = Field(..., ge=0)
    protein: float = Field(..., ge=0)
    calories: float = Field(..., ge=0)
    unit: str
    confidence: float = Field(..., ge=0.0, le=1.0)


KETO_FOOD_DB: Dict[str, FoodMetadata] = {
    "avocado": FoodMetadata(
        name="Avocado", net_carbs=2, fat=15, protein=2,
        calories=160, unit="100g", confidence=0.95,
    ),
    "egg": FoodMetadata(
        name="Egg (Large)", net_carbs=0.6, fat=5, protein=6,
        calories=72, unit="1 large", confidence=0.98,
    ),
    "ribeye steak": FoodMetadata(
        name="Ribeye Steak", net_carbs=0, fat=22, protein=24,
        calories=291, unit="100g", confidence=0.92,
    ),
    "salmon": FoodMetadata(
        name="Atlantic Salmon", net_carbs=0, fat=13, protein=20,
        calories=208, unit="100g", confidence=0.95,
    ),
    "spinach": FoodMetadata(
        name="Spinach", net_carbs=1.4, fat=0.4, protein=2.9,
        calories=23, unit="100g", confidence=0.98,
    ),
    "butter": FoodMetadata(
        name="Butter", net_carbs=0, fat=81, protein=0.9,
        calories=717, unit="100g", confidence=0.99,
    ),
    "olive oil": FoodMetadata(
        name="Olive Oil", net_carbs=0, fat=100, protein=0,
        calories=884, unit="100g", confidence=1.0,
    ),
    "bacon": FoodMetadata(
        name="Bacon", net_carbs=1.4, fat=42, protein=37,
        calories=541, unit="100g", confidence=0.90,
    ),
}


def lookup_food(name: str) -> Optional[FoodMetadata]:
    """
    Find a curated food by substring match in either direction.

    Example:
        >>> lookup_food("Grilled Salmon Fillet").name
        'Atlantic Salmon'
        >>> lookup_food("rice") is None
        True
    """
    normalized = name.lower().strip()
    if not normalized:
        return None
    for key, metadata in KETO_FOOD_DB.items():
        if key in normalized or normalized in key:
            return metadata
    return None
