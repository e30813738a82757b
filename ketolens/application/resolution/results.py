"""
Result builders for the resolution orchestrator.

Every entry point answers with a KetoAnalysisResult, failures included.
These functions build the fixed degraded results and convert between
directory lookups, cache records and results.
"""

from typing import List, Optional, Tuple

from ketolens.domain.barcode.lookup import CompleteProduct, PartialProduct
from ketolens.domain.cache.models import (
    CachedKetoAnalysis,
    CachedProductRecord,
    ProductSource,
)
from ketolens.domain.keto.models import (
    ConfidenceLevel,
    KetoAnalysisResult,
    KetoVerdict,
    ResolutionStatus,
    ResultSource,
)
from ketolens.domain.keto.rules import (
    INGREDIENT_COUNT_THRESHOLD,
    NET_CARB_PENALTIES,
)
from ketolens.domain.keto.scoring import BARCODE_POLICY, match_ingredient
from ketolens.domain.keto.suggestions import (
    ANALYSIS_FAILED_SUGGESTION,
    INVALID_BARCODE_SUGGESTION,
    LOOKUP_FAILED_SUGGESTION,
    NOT_FOUND_SUGGESTION,
    PENDING_OCR_SUGGESTION,
    product_swap_suggestion,
)

NOT_FOUND_NAME = "Product not found"
LOOKUP_FAILED_NAME = "Lookup failed"


# ═══════════════════════════════════════════════════════════
# Degraded results
# ═══════════════════════════════════════════════════════════


def invalid_input(reason: str, barcode: Optional[str] = None) -> KetoAnalysisResult:
    """Result for input rejected before any lookup."""
    return KetoAnalysisResult(
        score=0,
        verdict=KetoVerdict.AVOID,
        confidence=ConfidenceLevel.LOW,
        swap_suggestion=INVALID_BARCODE_SUGGESTION if barcode is not None else ANALYSIS_FAILED_SUGGESTION,
        reasoning=reason,
        barcode=barcode,
        status=ResolutionStatus.INVALID_INPUT,
    )


def not_found(barcode: str) -> KetoAnalysisResult:
    """Result for a barcode the directory does not know."""
    return KetoAnalysisResult(
        score=0,
        verdict=KetoVerdict.AVOID,
        confidence=ConfidenceLevel.LOW,
        swap_suggestion=NOT_FOUND_SUGGESTION,
        barcode=barcode,
        product_name=NOT_FOUND_NAME,
        status=ResolutionStatus.NOT_FOUND,
    )


def lookup_failed(barcode: str, reason: Optional[str] = None) -> KetoAnalysisResult:
    """Result for a barcode lookup that failed after retries."""
    return KetoAnalysisResult(
        score=0,
        verdict=KetoVerdict.AVOID,
        confidence=ConfidenceLevel.LOW,
        swap_suggestion=LOOKUP_FAILED_SUGGESTION,
        reasoning=reason,
        barcode=barcode,
        product_name=LOOKUP_FAILED_NAME,
        status=ResolutionStatus.FAILED,
    )


def analysis_failed(reason: Optional[str] = None) -> KetoAnalysisResult:
    """Result for an image analysis that failed after retries."""
    return KetoAnalysisResult(
        score=0,
        verdict=KetoVerdict.AVOID,
        confidence=ConfidenceLevel.LOW,
        swap_suggestion=ANALYSIS_FAILED_SUGGESTION,
        reasoning=reason,
        source=ResultSource.VISION,
        status=ResolutionStatus.FAILED,
    )


# ═══════════════════════════════════════════════════════════
# Directory lookups
# ═══════════════════════════════════════════════════════════


def from_complete(product: CompleteProduct) -> KetoAnalysisResult:
    """Result for a fully scored directory product."""
    return KetoAnalysisResult(
        score=product.score,
        verdict=product.verdict,
        confidence=ConfidenceLevel.HIGH,
        macros=product.macros,
        swap_suggestion=product.swap_suggestion,
        barcode=product.barcode,
        product_name=product.product_name,
        brand=product.brand,
        image_url=product.image_url,
        ingredients=product.parsed_ingredients,
        source=ResultSource.API,
    )


def from_partial(product: PartialProduct) -> KetoAnalysisResult:
    """Provisional result for a product awaiting label refinement."""
    return KetoAnalysisResult(
        score=product.score,
        verdict=product.verdict,
        confidence=ConfidenceLevel.LOW,
        macros=product.macros,
        swap_suggestion=PENDING_OCR_SUGGESTION,
        barcode=product.barcode,
        product_name=product.product_name,
        brand=product.brand,
        image_url=product.image_url,
        ingredients=[match_ingredient(i) for i in product.ingredients],
        source=ResultSource.API,
        status=ResolutionStatus.PENDING_REFINEMENT,
        needs_ocr=True,
    )


def refined(partial: KetoAnalysisResult, vision: KetoAnalysisResult) -> KetoAnalysisResult:
    """
    Merge a label analysis into the provisional result.

    Product identity is kept. Ingredients, score, verdict and suggestion
    come from the label. The verdict uses the barcode policy.
    """
    ingredients = [match_ingredient(f.name) for f in vision.foods] or list(partial.ingredients)
    macros = vision.macros if _has_macros(vision) else partial.macros
    verdict = BARCODE_POLICY.verdict(vision.score)

    return partial.model_copy(
        update={
            "score": vision.score,
            "verdict": verdict,
            "confidence": vision.confidence,
            "macros": macros,
            "swap_suggestion": vision.swap_suggestion
            or product_swap_suggestion(
                vision.score,
                macros.net_carbs if macros else 0.0,
                [i.name for i in ingredients],
            ),
            "reasoning": vision.reasoning,
            "ingredients": ingredients,
            "plate_confidence": vision.plate_confidence,
            "source": ResultSource.OCR,
            "status": ResolutionStatus.OK,
            "needs_ocr": False,
        }
    )


def _has_macros(result: KetoAnalysisResult) -> bool:
    m = result.macros
    return m is not None and any((m.net_carbs, m.fat, m.protein, m.calories))


# ═══════════════════════════════════════════════════════════
# Cache conversion
# ═══════════════════════════════════════════════════════════


def from_cache(record: CachedProductRecord) -> KetoAnalysisResult:
    """Result for a cache hit. The record must carry its analysis."""
    analysis = record.keto_analysis
    if analysis is None:
        raise ValueError(f"Cached product {record.id} has no keto analysis")

    net_carbs = record.macros.net_carbs if record.macros else 0.0
    return KetoAnalysisResult(
        score=analysis.keto_score,
        verdict=analysis.verdict,
        confidence=record.confidence_level,
        macros=record.macros,
        swap_suggestion=product_swap_suggestion(
            analysis.keto_score, net_carbs, record.ingredients_normalized
        ),
        barcode=record.barcode,
        product_name=record.product_name,
        brand=record.brand,
        image_url=record.image_url,
        ingredients=[match_ingredient(i) for i in record.ingredients_normalized],
        source=ResultSource.CACHE,
    )


def structural_penalties(result: KetoAnalysisResult) -> List[str]:
    """
    Penalties not tied to a single ingredient.

    Example:
        >>> structural_penalties(result)
        ['ingredient_count>10', 'net_carbs>10']
    """
    penalties: List[str] = []
    if len(result.ingredients) > INGREDIENT_COUNT_THRESHOLD:
        penalties.append(f"ingredient_count>{INGREDIENT_COUNT_THRESHOLD}")
    if result.macros is not None:
        for bound, _ in NET_CARB_PENALTIES:
            if result.macros.net_carbs > bound:
                penalties.append(f"net_carbs>{bound:g}")
                break
    return penalties


def to_cache_records(
    result: KetoAnalysisResult,
    country_code: str,
    source: ProductSource = ProductSource.API,
) -> Tuple[CachedProductRecord, CachedKetoAnalysis]:
    """Split a barcode result into the product and analysis rows."""
    if not result.barcode:
        raise ValueError("Only barcode results can be cached")

    product = CachedProductRecord(
        barcode=result.barcode,
        country_code=country_code,
        product_name=result.product_name or "Unknown Product",
        brand=result.brand or "",
        image_url=result.image_url,
        ingredients_normalized=[i.name for i in result.ingredients],
        macros=result.macros,
        source=source,
        confidence_level=result.confidence,
    )
    analysis = CachedKetoAnalysis(
        keto_score=result.score,
        verdict=result.verdict,
        offenders=[i.name for i in result.ingredients if i.is_offender],
        structural_penalties=structural_penalties(result),
    )
    return product, analysis
