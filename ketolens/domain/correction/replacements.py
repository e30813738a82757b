"""Curated keto replacements offered when correcting a detected item."""

from typing import Dict, List, Tuple

COMMON_REPLACEMENTS: Dict[str, Tuple[str, ...]] = {
    "sauce": ("Butter", "Olive oil", "Garlic butter", "Cheese sauce", "No sauce"),
    "rice": ("Cauliflower rice", "Riced broccoli", "No rice"),
    "bread": ("Lettuce wrap", "Cloud bread", "No bread"),
    "potato": ("Mashed cauliflower", "Turnip", "No potato"),
    "pasta": ("Zucchini noodles", "Shirataki", "Spaghetti squash"),
    "default": ("Remove item", "Mark as correct"),
}


def suggest_replacements(food_name: str) -> List[str]:
    """
    Replacement options for a detected food.

    Example:
        >>> suggest_replacements("Jasmine Rice")
        ['Cauliflower rice', 'Riced broccoli', 'No rice']
        >>> suggest_replacements("steak")
        ['Remove item', 'Mark as correct']
    """
    lowered = food_name.lower()
    for key, options in COMMON_REPLACEMENTS.items():
        if key != "default" and key in lowered:
            return list(options)
    return list(COMMON_REPLACEMENTS["default"])
