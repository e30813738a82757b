"""
OpenFoodFacts domain models.

Models for OpenFoodFacts API responses. Every field is optional on the
wire; missing numeric values stay None here and default to 0 only when
mapped to domain macros.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class OFFNutriments(BaseModel):
    """OpenFoodFacts nutriments (per 100g).

    Example:
        >>> nutriments = OFFNutriments(carbohydrates=12.0, fiber=4.0)
        >>> assert nutriments.fat is None
    """

    model_config = ConfigDict(frozen=True)

    energy_kcal: Optional[float] = Field(None, ge=0, description="Energy in kcal per 100g")
    proteins: Optional[float] = Field(None, ge=0, description="Protein in g per 100g")
    carbohydrates: Optional[float] = Field(None, ge=0, description="Carbohydrates in g per 100g")
    fat: Optional[float] = Field(None, ge=0, description="Fat in g per 100g")
    fiber: Optional[float] = Field(None, ge=0, description="Fiber in g per 100g")
    sugars: Optional[float] = Field(None, ge=0, description="Sugars in g per 100g")

    def has_core_macros(self) -> bool:
        """True when carbohydrates, fat and protein are all declared."""
        return None not in (self.carbohydrates, self.fat, self.proteins)


class OFFProduct(BaseModel):
    """OpenFoodFacts product response.

    Example:
        >>> product = OFFProduct(code="3017620422003", product_name="Nutella")
        >>> assert product.brands is None
    """

    model_config = ConfigDict(frozen=True)

    code: str = Field("", description="Product barcode")
    product_name: Optional[str] = Field(None, description="Product name")
    brands: Optional[str] = Field(None, description="Brand names")
    image_url: Optional[str] = Field(None, description="Front image URL")
    image_ingredients_url: Optional[str] = Field(None, description="Ingredients label image URL")
    image_nutrition_url: Optional[str] = Field(None, description="Nutrition label image URL")
    nutriments: Optional[OFFNutriments] = Field(None, description="Nutritional values")
    ingredients_text: Optional[str] = Field(None, description="Ingredients list")
    completeness: Optional[float] = Field(None, ge=0, description="Declared data completeness (0-1)")


class OFFSearchResult(BaseModel):
    """OpenFoodFacts product lookup response.

    Example:
        >>> result = OFFSearchResult(status=1, product=OFFProduct(code="12345678"))
        >>> assert result.is_found()
    """

    model_config = ConfigDict(frozen=True)

    status: int = Field(0, description="API status (1=found, 0=not)")
    product: Optional[OFFProduct] = Field(None, description="Product data (if found)")

    def is_found(self) -> bool:
        """Check if product was found.

        Returns:
            True if product exists in database
        """
        return self.status == 1 and self.product is not None
