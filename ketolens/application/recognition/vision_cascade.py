"""
Vision analysis cascade.

Routes an image to a vision back end by content type, parses the JSON
result and derives the plate-level confidence.
"""

import base64
from typing import List, Optional, Union

import structlog

from ketolens.domain.keto.food_database import lookup_food
from ketolens.domain.keto.models import (
    DetectedFoodItem,
    KetoAnalysisResult,
    KetoVerdict,
    ResultSource,
    confidence_level,
)
from ketolens.domain.keto.scoring import (
    DEFAULT_POLICY,
    VerdictPolicy,
    calculate_plate_confidence,
)
from ketolens.domain.keto.suggestions import (
    meal_swap_suggestion,
    product_swap_suggestion,
)
from ketolens.domain.recognition.models import (
    ContentType,
    VisionAnalysisPayload,
    VisionImage,
)
from ketolens.domain.recognition.parser import parse_analysis
from ketolens.domain.recognition.ports import IImageFetcher, IVisionBackend
from ketolens.domain.recognition.prompts import user_instruction
from ketolens.domain.shared.errors import (
    ExternalServiceError,
    InvalidInputError,
    ServiceNotConfiguredError,
    TransientNetworkError,
)

logger = structlog.get_logger(__name__)

# Curated matches above this confidence are cited in the reasoning
VERIFIED_MATCH_THRESHOLD = 0.9


class VisionCascade:
    """Image-to-verdict analysis over two vision back ends.

    Routing:
    - product labels -> label back end (OpenAI)
    - meals -> meal back end (Gemini)
    - preferred back end missing -> the other one

    Example:
        >>> cascade = VisionCascade(label_backend=openai, meal_backend=gemini)
        >>> result = await cascade.analyze(image_b64, ContentType.MEAL)
    """

    def __init__(
        self,
        label_backend: Optional[IVisionBackend] = None,
        meal_backend: Optional[IVisionBackend] = None,
        image_fetcher: Optional[IImageFetcher] = None,
        policy: VerdictPolicy = DEFAULT_POLICY,
    ) -> None:
        """Initialize cascade.

        Args:
            label_backend: Back end preferred for product labels
            meal_backend: Back end preferred for meals
            image_fetcher: Downloads remote images for inline submission
            policy: Verdict thresholds applied to the returned score
        """
        self.label_backend = label_backend
        self.meal_backend = meal_backend
        self.image_fetcher = image_fetcher
        self.policy = policy

    def select_backend(self, content_type: ContentType) -> IVisionBackend:
        """Pick the back end for a content type.

        Raises:
            ServiceNotConfiguredError: If no back end is configured
        """
        if content_type == ContentType.PRODUCT:
            preferred, fallback = self.label_backend, self.meal_backend
        else:
            preferred, fallback = self.meal_backend, self.label_backend

        backend = preferred or fallback
        if backend is None:
            raise ServiceNotConfiguredError("No vision back end configured")
        if preferred is None:
            logger.info(
                "Preferred vision back end not configured, using fallback",
                content_type=content_type.value,
                backend=backend.name,
            )
        return backend

    async def analyze(
        self,
        image: Union[str, bytes],
        content_type: Union[ContentType, str] = ContentType.MEAL,
        is_url: bool = False,
    ) -> KetoAnalysisResult:
        """Analyze an image.

        Args:
            image: Raw bytes, base64 string, or URL (with is_url)
            content_type: "meal" or "product"
            is_url: Treat `image` as a remote URL

        Returns:
            KetoAnalysisResult with source=vision

        Raises:
            InvalidInputError: Empty image or unknown content type
            ServiceNotConfiguredError: No back end configured
            AnalysisFormatError: Unparsable or schema-violating response
            TransientNetworkError: Retryable back end failure
            ExternalServiceError: Other back end failure
        """
        try:
            kind = ContentType(content_type)
        except ValueError as e:
            raise InvalidInputError(f"Unknown content type: {content_type!r}") from e

        backend = self.select_backend(kind)
        vision_image = await self._prepare_image(image, is_url, backend)

        logger.info(
            "Starting vision analysis",
            content_type=kind.value,
            backend=backend.name,
            is_url=vision_image.is_url,
        )

        text = await backend.analyze(vision_image, user_instruction(kind))
        payload = parse_analysis(text)
        result = self._to_result(payload, kind)

        logger.info(
            "Vision analysis completed",
            content_type=kind.value,
            backend=backend.name,
            score=result.score,
            verdict=result.verdict.value,
            food_count=len(result.foods),
            plate_confidence=result.plate_confidence,
        )
        return result

    async def _prepare_image(
        self, image: Union[str, bytes], is_url: bool, backend: IVisionBackend
    ) -> VisionImage:
        """Turn the caller's image into what the back end will receive.

        Remote images are downloaded and sent inline. The bare URL is only
        handed over when the download fails for a non-transient reason and
        the back end can fetch URLs itself.

        Raises:
            InvalidInputError: Empty image
            TransientNetworkError: Download timed out or hit a 5xx
            ExternalServiceError: Download failed and the back end
                cannot read URLs
        """
        if isinstance(image, (bytes, bytearray)):
            if not image:
                raise InvalidInputError("Image payload is empty")
            return VisionImage(data=base64.b64encode(image).decode("ascii"))

        if not image or not image.strip():
            raise InvalidInputError("Image payload is empty")

        if not is_url:
            return VisionImage(data=image.strip())

        accepts_urls = backend.accepts_urls is True

        if self.image_fetcher is None:
            if not accepts_urls:
                raise ServiceNotConfiguredError(
                    f"No image fetcher configured and {backend.name} cannot read URLs"
                )
            return VisionImage(data=image, is_url=True)

        try:
            encoded = await self.image_fetcher.fetch_base64(image)
        except TransientNetworkError:
            raise
        except ExternalServiceError as e:
            if not accepts_urls:
                raise
            logger.warning(
                "Image download failed, passing URL through",
                url=image,
                backend=backend.name,
                error=str(e),
            )
            return VisionImage(data=image, is_url=True)
        return VisionImage(data=encoded)

    def _to_result(self, payload: VisionAnalysisPayload, kind: ContentType) -> KetoAnalysisResult:
        foods = [f.to_item() for f in payload.foods]

        # Nothing detected or not food: a zero score is "unknown", not "avoid"
        has_content = bool(foods) and payload.verdict != KetoVerdict.UNKNOWN
        verdict = self.policy.verdict(payload.score, has_content=has_content)

        macros = payload.macros.to_macros()
        plate_confidence = calculate_plate_confidence(foods)

        suggestion = payload.swap_suggestion.strip()
        if not suggestion:
            if kind == ContentType.PRODUCT:
                suggestion = product_swap_suggestion(
                    payload.score, macros.net_carbs, [f.name for f in foods]
                )
            else:
                suggestion = meal_swap_suggestion(foods, verdict)

        return KetoAnalysisResult(
            score=payload.score,
            verdict=verdict,
            confidence=confidence_level(plate_confidence),
            macros=macros,
            swap_suggestion=suggestion,
            foods=foods,
            reasoning=self._verified_reasoning(payload.reasoning, foods),
            plate_confidence=plate_confidence,
            source=ResultSource.VISION,
        )

    @staticmethod
    def _verified_reasoning(
        reasoning: Optional[str], foods: List[DetectedFoodItem]
    ) -> Optional[str]:
        verified: List[str] = []
        for food in foods:
            match = lookup_food(food.name)
            if match and match.confidence > VERIFIED_MATCH_THRESHOLD and match.name not in verified:
                verified.append(match.name)

        if not verified:
            return reasoning

        notes = " ".join(f"(Verified: {name})" for name in verified)
        return f"{reasoning} {notes}" if reasoning else notes
