"""
OpenFoodFacts data mapper.

Transforms OpenFoodFacts API responses into directory lookup outcomes.
"""

import math
import re
from typing import Any, List, Optional

from ketolens.domain.barcode.lookup import (
    CompleteProduct,
    DirectoryLookup,
    PartialProduct,
    ProductNotFound,
)
from ketolens.domain.barcode.openfoodfacts_models import (
    OFFNutriments,
    OFFProduct,
    OFFSearchResult,
)
from ketolens.domain.keto.models import Macros, compute_net_carbs
from ketolens.domain.keto.scoring import (
    BARCODE_POLICY,
    apply_net_carb_adjustment,
    calculate_product_score,
)
from ketolens.domain.keto.suggestions import product_swap_suggestion

# Declared completeness below this is treated as partial data
MIN_COMPLETENESS = 0.5

UNKNOWN_PRODUCT_NAME = "Unknown Product"

_INGREDIENT_SEPARATORS = re.compile(r"[,;]")


def _as_float(value: Any) -> Optional[float]:
    # OFF sometimes serializes numbers as strings or empty strings.
    # Negative or non-finite values are treated as missing.
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return number


def _as_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


class OpenFoodFactsMapper:
    """Maps OpenFoodFacts API data to domain models."""

    @staticmethod
    def parse_product_response(response_data: dict[str, Any]) -> OFFSearchResult:
        """Parse OpenFoodFacts product API response.

        Args:
            response_data: Raw API response JSON

        Returns:
            Parsed OFFSearchResult

        Example:
            >>> response = {
            ...     "status": 1,
            ...     "product": {
            ...         "product_name": "Nutella",
            ...         "nutriments": {"carbohydrates_100g": 57.5},
            ...     },
            ... }
            >>> result = OpenFoodFactsMapper.parse_product_response(response)
            >>> assert result.product.nutriments.carbohydrates == 57.5
        """
        status = response_data.get("status", 0)

        product_data = response_data.get("product")
        if status != 1 or not isinstance(product_data, dict) or not product_data:
            return OFFSearchResult(status=status if isinstance(status, int) else 0)

        nutriments_data = product_data.get("nutriments")
        if not isinstance(nutriments_data, dict):
            nutriments_data = {}

        nutriments = OFFNutriments(
            energy_kcal=_as_float(nutriments_data.get("energy-kcal_100g")),
            proteins=_as_float(nutriments_data.get("proteins_100g")),
            carbohydrates=_as_float(nutriments_data.get("carbohydrates_100g")),
            fat=_as_float(nutriments_data.get("fat_100g")),
            fiber=_as_float(nutriments_data.get("fiber_100g")),
            sugars=_as_float(nutriments_data.get("sugars_100g")),
        )

        product = OFFProduct(
            code=_as_str(product_data.get("code")) or _as_str(response_data.get("code")) or "",
            product_name=_as_str(product_data.get("product_name")),
            brands=_as_str(product_data.get("brands")),
            image_url=_as_str(product_data.get("image_url")),
            image_ingredients_url=_as_str(product_data.get("image_ingredients_url")),
            image_nutrition_url=_as_str(product_data.get("image_nutrition_url")),
            nutriments=nutriments,
            ingredients_text=_as_str(product_data.get("ingredients_text")),
            completeness=_as_float(product_data.get("completeness")),
        )

        return OFFSearchResult(status=status, product=product)

    @staticmethod
    def tokenize_ingredients(text: Optional[str]) -> List[str]:
        """Split ingredient text on commas/semicolons, lower-cased and trimmed.

        Example:
            >>> OpenFoodFactsMapper.tokenize_ingredients("Sugar; Palm Oil, ,Cocoa")
            ['sugar', 'palm oil', 'cocoa']
        """
        if not text:
            return []
        tokens = (t.strip().lower() for t in _INGREDIENT_SEPARATORS.split(text))
        return [t for t in tokens if t]

    @staticmethod
    def is_partial(product: OFFProduct) -> bool:
        """Check whether a product lacks the data needed for a verdict.

        Partial when any core macro is missing or the declared
        completeness is below the minimum.
        """
        nutriments = product.nutriments or OFFNutriments()
        if not nutriments.has_core_macros():
            return True
        return product.completeness is not None and product.completeness < MIN_COMPLETENESS

    @staticmethod
    def to_macros(nutriments: OFFNutriments) -> Macros:
        """Convert per-100g nutriments to rounded domain macros."""
        fiber = nutriments.fiber or 0.0
        net_carbs = compute_net_carbs(nutriments.carbohydrates or 0.0, fiber)
        return Macros(
            net_carbs=round(net_carbs, 1),
            fat=round(nutriments.fat or 0.0, 1),
            protein=round(nutriments.proteins or 0.0, 1),
            calories=round(nutriments.energy_kcal or 0.0),
            fiber=round(fiber, 1),
        )

    @staticmethod
    def to_lookup(barcode: str, result: OFFSearchResult) -> DirectoryLookup:
        """Classify an API response into a directory lookup outcome.

        Complete products are scored on their ingredients, adjusted for
        net carbs per 100g and classified with the barcode policy.

        Example:
            >>> result = OFFSearchResult(status=0)
            >>> OpenFoodFactsMapper.to_lookup("12345678", result)
            ProductNotFound(barcode='12345678')
        """
        if not result.is_found() or result.product is None:
            return ProductNotFound(barcode=barcode)

        product = result.product
        nutriments = product.nutriments or OFFNutriments()
        ingredients = OpenFoodFactsMapper.tokenize_ingredients(product.ingredients_text)
        name = product.product_name or UNKNOWN_PRODUCT_NAME
        brand = product.brands or ""

        if OpenFoodFactsMapper.is_partial(product):
            has_any_macro = any(
                v is not None
                for v in (nutriments.carbohydrates, nutriments.fat, nutriments.proteins)
            )
            return PartialProduct(
                barcode=barcode,
                product_name=name,
                brand=brand,
                image_url=product.image_url,
                image_ingredients_url=product.image_ingredients_url,
                image_nutrition_url=product.image_nutrition_url,
                macros=OpenFoodFactsMapper.to_macros(nutriments) if has_any_macro else None,
                ingredients=ingredients,
            )

        macros = OpenFoodFactsMapper.to_macros(nutriments)
        # Thresholds apply to the unrounded value
        net_carbs = compute_net_carbs(nutriments.carbohydrates or 0.0, nutriments.fiber or 0.0)
        keto = calculate_product_score(ingredients, policy=BARCODE_POLICY)
        score = apply_net_carb_adjustment(keto.score, net_carbs)

        return CompleteProduct(
            barcode=barcode,
            product_name=name,
            brand=brand,
            image_url=product.image_url,
            macros=macros,
            ingredients=ingredients,
            parsed_ingredients=keto.ingredients,
            score=score,
            verdict=BARCODE_POLICY.verdict(score),
            swap_suggestion=product_swap_suggestion(score, macros.net_carbs, ingredients),
        )
