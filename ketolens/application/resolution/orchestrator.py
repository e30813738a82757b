"""
Resolution orchestrator.

Entry point for the UI: resolves barcodes through the cache and the
product directory, analyzes images through the vision cascade and applies
user corrections. Partial products are returned immediately and refined
from their label image in the background.
"""

import asyncio
from typing import Any, Awaitable, Callable, Coroutine, Optional, Sequence, Set, TypeVar, Union

import structlog
from pydantic import ValidationError

from ketolens.application.cache.cache_store import CacheStore
from ketolens.application.correction.workflow import CorrectionWorkflow
from ketolens.application.recognition.vision_cascade import VisionCascade
from ketolens.application.resolution import results
from ketolens.domain.barcode.lookup import (
    CompleteProduct,
    InvalidBarcode,
    PartialProduct,
    ProductNotFound,
)
from ketolens.domain.barcode.ports import IProductDirectory
from ketolens.domain.cache.models import ProductSource, ScanEvent, ScanType
from ketolens.domain.correction.models import CorrectionDecision, CorrectionOutcome
from ketolens.domain.keto.models import (
    DetectedFoodItem,
    KetoAnalysisResult,
    KetoScore,
    KetoVerdict,
    Macros,
)
from ketolens.domain.keto.rules import DEFAULT_CARB_LIMIT
from ketolens.domain.keto.scoring import calculate_meal_score
from ketolens.domain.recognition.models import ContentType
from ketolens.domain.resolution.events import ProductRefined, ProductRefinementFailed
from ketolens.domain.shared.errors import BarcodeNotFoundError, InvalidInputError
from ketolens.domain.shared.ports import IEventBus
from ketolens.domain.shared.value_objects import CountryCode, is_valid_barcode
from ketolens.infrastructure.retry import is_retryable_error, with_retry

logger = structlog.get_logger(__name__)

T = TypeVar("T")

INVALID_BARCODE_REASON = "Barcode must be 8-14 digits"
NO_LABEL_IMAGE_REASON = "No label image available for refinement"


class ResolutionOrchestrator:
    """
    Barcode and image resolution with graceful degradation.

    Barcode flow:
    1. Validate barcode shape
    2. Cache lookup (hit with analysis returns immediately)
    3. Directory fetch with retry
    4. Complete product: cache and return
    5. Partial product: return provisional result, refine in background

    Never raises to its caller: every failure becomes a degraded
    KetoAnalysisResult (see `status`).

    Example:
        >>> orchestrator = ResolutionOrchestrator(
        ...     directory=off_client,
        ...     cascade=cascade,
        ...     cache=CacheStore(InMemoryCacheRepository()),
        ...     corrections=CorrectionWorkflow(InMemoryCorrectionLog()),
        ...     event_bus=InMemoryEventBus(),
        ... )
        >>> result = await orchestrator.resolve_by_barcode("3017620422003")
    """

    def __init__(
        self,
        directory: IProductDirectory,
        cascade: VisionCascade,
        cache: CacheStore,
        corrections: CorrectionWorkflow,
        event_bus: IEventBus,
        max_retries: int = 3,
        delay_ms: int = 1000,
        default_country: str = "US",
        carb_limit: float = DEFAULT_CARB_LIMIT,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            directory: Barcode product directory
            cascade: Vision analysis cascade
            cache: Local product cache
            corrections: Correction workflow
            event_bus: Receives refinement events
            max_retries: Attempts per directory fetch or vision call
            delay_ms: Base retry delay in milliseconds
            default_country: Region used when none is given
            carb_limit: Daily net-carb limit for macro scoring
            sleep: Sleep coroutine used between retries
        """
        self.directory = directory
        self.cascade = cascade
        self.cache = cache
        self.corrections = corrections
        self.event_bus = event_bus
        self.max_retries = max_retries
        self.delay_ms = delay_ms
        self.default_country = CountryCode(value=default_country).value
        self.carb_limit = carb_limit
        self._sleep = sleep
        self._refinements: Set["asyncio.Task[None]"] = set()

    @property
    def pending_refinements(self) -> int:
        """Number of background refinements still running."""
        return len(self._refinements)

    # ═══════════════════════════════════════════════════════════
    # Barcode resolution
    # ═══════════════════════════════════════════════════════════

    async def resolve_by_barcode(
        self, barcode: str, region: Optional[str] = None
    ) -> KetoAnalysisResult:
        """
        Resolve a barcode to a keto verdict.

        Args:
            barcode: Scanned barcode (8-14 digits)
            region: Country code of the product record

        Returns:
            KetoAnalysisResult; `status` tells success from degradation
        """
        region = self._region(region)
        code = barcode.strip() if isinstance(barcode, str) else ""

        if not is_valid_barcode(code):
            logger.info("Invalid barcode rejected", barcode=barcode)
            return results.invalid_input(INVALID_BARCODE_REASON, barcode=code)

        try:
            return await self._resolve(code, region)
        except Exception as e:
            logger.error(
                "Barcode resolution failed",
                barcode=code,
                country_code=region,
                error=str(e),
                error_type=type(e).__name__,
            )
            return results.lookup_failed(code, str(e))

    async def _resolve(self, barcode: str, region: str) -> KetoAnalysisResult:
        record = await self.cache.lookup(barcode, region)
        if record is not None and record.keto_analysis is not None:
            result = results.from_cache(record)
            await self._log_scan(record.id, ScanType.BARCODE, region)
            return result

        try:
            lookup = await self._retry(lambda: self.directory.fetch(barcode))
        except BarcodeNotFoundError:
            return results.not_found(barcode)

        if isinstance(lookup, InvalidBarcode):
            return results.invalid_input(lookup.reason, barcode=barcode)

        if isinstance(lookup, ProductNotFound):
            logger.info("Product not found", barcode=barcode)
            return results.not_found(barcode)

        if isinstance(lookup, PartialProduct):
            provisional = results.from_partial(lookup)
            self._schedule(self._refine(lookup, provisional, region))
            logger.info(
                "Partial product, refinement scheduled",
                barcode=barcode,
                label_image=lookup.label_image_url,
            )
            await self._log_scan(None, ScanType.BARCODE, region)
            return provisional

        if isinstance(lookup, CompleteProduct):
            result = results.from_complete(lookup)
            product, analysis = results.to_cache_records(result, region, ProductSource.API)
            stored = await self.cache.save(product, analysis)
            await self._log_scan(stored.id if stored else None, ScanType.BARCODE, region)
            logger.info(
                "Barcode resolved",
                barcode=barcode,
                score=result.score,
                verdict=result.verdict.value,
                cached=stored is not None,
            )
            return result

        raise TypeError(f"Unexpected directory lookup: {type(lookup).__name__}")

    # ═══════════════════════════════════════════════════════════
    # Background refinement
    # ═══════════════════════════════════════════════════════════

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._refinements.add(task)
        task.add_done_callback(self._refinements.discard)

    async def _refine(
        self,
        product: PartialProduct,
        provisional: KetoAnalysisResult,
        region: str,
    ) -> None:
        image_url = product.label_image_url
        if not image_url:
            logger.info("Refinement skipped, no label image", barcode=product.barcode)
            await self.event_bus.publish(
                ProductRefinementFailed.create(
                    barcode=product.barcode,
                    country_code=region,
                    error=NO_LABEL_IMAGE_REASON,
                )
            )
            return

        published = False
        try:
            vision = await self._retry(
                lambda: self.cascade.analyze(image_url, ContentType.PRODUCT, is_url=True)
            )
            result = results.refined(provisional, vision)
            cached, analysis = results.to_cache_records(result, region, ProductSource.OCR)

            logger.info(
                "Product refined from label",
                barcode=product.barcode,
                score=result.score,
                verdict=result.verdict.value,
            )
            await self.event_bus.publish(
                ProductRefined.create(
                    barcode=product.barcode,
                    country_code=region,
                    result=result,
                )
            )
            published = True

            stored = await self.cache.save(cached, analysis)
            await self._log_scan(
                stored.id if stored else None,
                ScanType.OCR,
                region,
                model_confidence=result.plate_confidence,
            )
        except Exception as e:
            if published:
                logger.warning(
                    "Refined product could not be cached",
                    barcode=product.barcode,
                    error=str(e),
                    error_type=type(e).__name__,
                )
            else:
                logger.warning(
                    "Label refinement failed, partial result is final",
                    barcode=product.barcode,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                await self.event_bus.publish(
                    ProductRefinementFailed.create(
                        barcode=product.barcode,
                        country_code=region,
                        error=str(e),
                    )
                )

    async def drain_refinements(self) -> None:
        """Wait for in-flight refinements and cache updates to finish."""
        while self._refinements:
            await asyncio.gather(*list(self._refinements), return_exceptions=True)
        await self.cache.drain()

    # ═══════════════════════════════════════════════════════════
    # Image analysis
    # ═══════════════════════════════════════════════════════════

    async def analyze_image(
        self,
        image: Union[str, bytes],
        content_type: Union[ContentType, str] = ContentType.MEAL,
        is_url: bool = False,
        region: Optional[str] = None,
    ) -> KetoAnalysisResult:
        """
        Analyze a meal photo or product label.

        Args:
            image: Raw bytes, base64 string, or URL (with is_url)
            content_type: "meal" or "product"
            is_url: Treat `image` as a remote URL
            region: Country code recorded in the scan log

        Returns:
            KetoAnalysisResult; `status` tells success from degradation
        """
        try:
            result = await self._retry(
                lambda: self.cascade.analyze(image, content_type, is_url=is_url)
            )
        except InvalidInputError as e:
            logger.info("Image analysis rejected", error=str(e))
            return results.invalid_input(str(e))
        except Exception as e:
            logger.error(
                "Image analysis failed",
                content_type=str(content_type),
                error=str(e),
                error_type=type(e).__name__,
            )
            return results.analysis_failed(str(e))

        scan_type = (
            ScanType.OCR if ContentType(content_type) == ContentType.PRODUCT else ScanType.MEAL
        )
        await self._log_scan(
            None,
            scan_type,
            self._region(region),
            model_confidence=result.plate_confidence,
        )
        return result

    def score_meal(self, macros: Macros, carb_limit: Optional[float] = None) -> KetoScore:
        """Score manually entered macros against the daily carb limit."""
        return calculate_meal_score(macros, carb_limit or self.carb_limit)

    # ═══════════════════════════════════════════════════════════
    # Corrections
    # ═══════════════════════════════════════════════════════════

    async def apply_corrections(
        self,
        items: Sequence[DetectedFoodItem],
        decisions: Sequence[CorrectionDecision],
        score: int,
        verdict: KetoVerdict,
        scan_id: str,
    ) -> CorrectionOutcome:
        """
        Apply user corrections to detected items.

        On unexpected failure the items, score and verdict come back
        unchanged.
        """
        try:
            return await self.corrections.apply(items, decisions, score, verdict, scan_id)
        except Exception as e:
            logger.error(
                "Applying corrections failed",
                scan_id=scan_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return CorrectionOutcome(items=list(items), score=score, verdict=verdict)

    # ═══════════════════════════════════════════════════════════
    # Helpers
    # ═══════════════════════════════════════════════════════════

    def _region(self, region: Optional[str]) -> str:
        if not region:
            return self.default_country
        try:
            return CountryCode(value=region.strip()).value
        except ValidationError:
            logger.warning(
                "Invalid region, using default",
                region=region,
                default=self.default_country,
            )
            return self.default_country

    async def _retry(self, operation: Callable[[], Awaitable[T]]) -> T:
        return await with_retry(
            operation,
            max_retries=self.max_retries,
            delay_ms=self.delay_ms,
            retry_on=is_retryable_error,
            sleep=self._sleep,
        )

    async def _log_scan(
        self,
        product_id: Optional[str],
        scan_type: ScanType,
        region: str,
        model_confidence: Optional[float] = None,
    ) -> None:
        await self.cache.log_scan(
            ScanEvent(
                product_id=product_id,
                scan_type=scan_type,
                model_confidence=model_confidence,
                country_code=region,
            )
        )
