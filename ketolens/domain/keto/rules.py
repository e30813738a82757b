"""
Keto scoring rules.

Ingredient blacklist, thresholds and food lists used by the scoring
engine and swap suggestions.
"""

from typing import Dict, Tuple

RULESET_VERSION = "1.0"

DEFAULT_CARB_LIMIT = 20.0  # grams of net carbs per day

# ===== Ingredient blacklist =====
# name -> (penalty, reason)
INGREDIENT_PENALTIES: Dict[str, Tuple[int, str]] = {
    # Sugars
    "sugar": (25, "Pure sugar"),
    "cane sugar": (25, "Pure sugar"),
    "brown sugar": (25, "Pure sugar"),
    "high fructose corn syrup": (30, "Highly processed sugar"),
    "corn syrup": (25, "Processed sugar"),
    "agave nectar": (20, "High fructose content"),
    "honey": (15, "Natural but high carb"),
    "maple syrup": (15, "Natural but high carb"),
    "molasses": (20, "High sugar content"),
    "dextrose": (20, "Sugar form"),
    "fructose": (20, "Sugar form"),
    "glucose": (20, "Sugar form"),
    "sucrose": (25, "Table sugar"),
    "maltodextrin": (25, "Higher glycemic than sugar"),
    # Starches
    "cornstarch": (15, "Pure starch"),
    "modified food starch": (15, "Starch filler"),
    "potato starch": (15, "High starch"),
    "tapioca starch": (15, "High starch"),
    # Wheat / grains
    "wheat": (15, "Grain-based carbs"),
    "wheat flour": (18, "Refined grain"),
    "enriched wheat flour": (18, "Refined grain"),
    "bread crumbs": (15, "Wheat-based"),
    "rice flour": (15, "High carb flour"),
    "corn flour": (15, "High carb flour"),
    "oat flour": (12, "Grain flour"),
    # Questionable additives
    "natural flavors": (5, "Potentially contains hidden carbs"),
    "artificial flavors": (3, "Minor concern"),
    "carrageenan": (3, "Controversial additive"),
    # Hidden sugars
    "fruit juice concentrate": (15, "Concentrated sugar"),
    "evaporated cane juice": (20, "Sugar in disguise"),
    "rice syrup": (20, "High glycemic"),
    "barley malt": (15, "Malt sugar"),
}

# Most specific phrase first: "enriched wheat flour" must win over "wheat".
OFFENDER_TABLE: Tuple[Tuple[str, int, str], ...] = tuple(
    (name, penalty, reason)
    for name, (penalty, reason) in sorted(
        INGREDIENT_PENALTIES.items(), key=lambda kv: -len(kv[0])
    )
)

# ===== Ingredient count penalty =====
INGREDIENT_COUNT_THRESHOLD = 10
INGREDIENT_COUNT_PENALTY = 10

# ===== Net carbs per 100g second pass =====
# (exclusive lower bound in g, penalty), checked in order
NET_CARB_PENALTIES: Tuple[Tuple[float, int], ...] = (
    (20.0, 30),
    (10.0, 15),
    (5.0, 5),
)

# ===== Verdict thresholds =====
SCORE_THRESHOLD_SAFE = 80
SCORE_THRESHOLD_BORDERLINE = 60
BARCODE_THRESHOLD_SAFE = 75
BARCODE_THRESHOLD_BORDERLINE = 50

# Score assigned while a product is waiting for label OCR
NEUTRAL_SCORE = 50

# ===== Offender classes for swap suggestions =====
SUGAR_ALIASES: Tuple[str, ...] = ("sugar", "syrup", "dextrose", "maltodextrin")
SEED_OILS: Tuple[str, ...] = (
    "canola",
    "soybean oil",
    "sunflower oil",
    "vegetable oil",
)

# ===== High-risk foods (meal analysis) =====
HIGH_RISK_FOODS: Tuple[str, ...] = (
    "rice",
    "bread",
    "pasta",
    "noodles",
    "potato",
    "french fries",
    "chips",
    "crackers",
    "cereal",
    "pizza",
    "tortilla",
    "corn",
    "beans",
    "soda",
    "juice",
    "candy",
    "cake",
    "cookies",
    "ice cream",
    "donut",
    "bagel",
    "muffin",
)

MEAL_SWAPS: Tuple[Tuple[str, str], ...] = (
    ("rice", "cauliflower rice"),
    ("bread", "lettuce wrap or cloud bread"),
    ("pasta", "zucchini noodles or shirataki"),
    ("potato", "mashed cauliflower"),
    ("french fries", "crispy zucchini fries"),
)
