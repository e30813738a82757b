"""
Product directory lookup outcomes.

`DirectoryLookup` is a closed sum type: callers branch on the concrete
class instead of inspecting flags.
"""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ketolens.domain.keto.models import KetoVerdict, Macros, ParsedIngredient
from ketolens.domain.keto.rules import NEUTRAL_SCORE


class CompleteProduct(BaseModel):
    """Product with full macro data, scored with the barcode policy."""

    model_config = ConfigDict(frozen=True)

    barcode: str
    product_name: str
    brand: str = ""
    image_url: Optional[str] = None
    macros: Macros
    ingredients: List[str] = Field(default_factory=list)
    parsed_ingredients: List[ParsedIngredient] = Field(default_factory=list)
    score: int = Field(..., ge=0, le=100)
    verdict: KetoVerdict
    swap_suggestion: str


class PartialProduct(BaseModel):
    """
    Product found but missing macro data.

    Carries a neutral score until label OCR refines it.
    """

    model_config = ConfigDict(frozen=True)

    barcode: str
    product_name: str
    brand: str = ""
    image_url: Optional[str] = None
    image_ingredients_url: Optional[str] = None
    image_nutrition_url: Optional[str] = None
    macros: Optional[Macros] = None
    ingredients: List[str] = Field(default_factory=list)
    score: int = NEUTRAL_SCORE
    verdict: KetoVerdict = KetoVerdict.BORDERLINE
    needs_ocr: bool = True

    @property
    def label_image_url(self) -> Optional[str]:
        """Best image to read the label from (ingredients, nutrition, front)."""
        return (
            self.image_ingredients_url
            or self.image_nutrition_url
            or self.image_url
        )


class ProductNotFound(BaseModel):
    """Directory has no record for the barcode."""

    model_config = ConfigDict(frozen=True)

    barcode: str


class InvalidBarcode(BaseModel):
    """Barcode rejected before any network call."""

    model_config = ConfigDict(frozen=True)

    barcode: str
    reason: str = "Barcode must be 8-14 digits"


DirectoryLookup = Union[CompleteProduct, PartialProduct, ProductNotFound, InvalidBarcode]
