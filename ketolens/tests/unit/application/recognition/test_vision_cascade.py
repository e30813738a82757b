"""
Tests for VisionCascade.

Back ends and the image fetcher are mocked; routing, parsing and
plate-confidence derivation are exercised for real.
"""

import base64
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from ketolens.application.recognition.vision_cascade import VisionCascade
from ketolens.domain.keto.models import (
    ConfidenceLevel,
    KetoVerdict,
    ResultSource,
)
from ketolens.domain.recognition.models import ContentType, VisionImage
from ketolens.domain.shared.errors import (
    AnalysisFormatError,
    ExternalServiceError,
    InvalidInputError,
    ServiceNotConfiguredError,
    TransientNetworkError,
)
from ketolens.tests.conftest import make_backend


# ═══════════════════════════════════════════════════════════
# ROUTING
# ═══════════════════════════════════════════════════════════


class TestRouting:
    """Test back end selection by content type."""

    async def test_meal_goes_to_meal_backend(
        self, cascade: VisionCascade, label_backend: MagicMock, meal_backend: MagicMock
    ) -> None:
        await cascade.analyze("aGVsbG8=", ContentType.MEAL)

        meal_backend.analyze.assert_awaited_once()
        label_backend.analyze.assert_not_awaited()

    async def test_product_goes_to_label_backend(
        self, cascade: VisionCascade, label_backend: MagicMock, meal_backend: MagicMock
    ) -> None:
        await cascade.analyze("aGVsbG8=", "product")

        label_backend.analyze.assert_awaited_once()
        meal_backend.analyze.assert_not_awaited()

    async def test_falls_back_to_other_backend(self, meal_response_json: str) -> None:
        """Only the label back end configured: meals go there too."""
        only = make_backend("openai", meal_response_json)
        cascade = VisionCascade(label_backend=only)

        result = await cascade.analyze("aGVsbG8=", ContentType.MEAL)

        only.analyze.assert_awaited_once()
        assert result.source == ResultSource.VISION

    def test_no_backend_configured(self) -> None:
        with pytest.raises(ServiceNotConfiguredError):
            VisionCascade().select_backend(ContentType.MEAL)

    async def test_instruction_matches_content_type(
        self, cascade: VisionCascade, label_backend: MagicMock
    ) -> None:
        await cascade.analyze("aGVsbG8=", ContentType.PRODUCT)

        image, instruction = label_backend.analyze.await_args.args
        assert isinstance(image, VisionImage)
        assert "product label" in instruction


# ═══════════════════════════════════════════════════════════
# INPUT HANDLING
# ═══════════════════════════════════════════════════════════


class TestInput:
    """Test image preparation."""

    async def test_bytes_are_base64_encoded(
        self, cascade: VisionCascade, meal_backend: MagicMock
    ) -> None:
        await cascade.analyze(b"\xff\xd8jpeg", ContentType.MEAL)

        image = meal_backend.analyze.await_args.args[0]
        assert image.data == base64.b64encode(b"\xff\xd8jpeg").decode("ascii")
        assert image.is_url is False

    async def test_url_is_downloaded(
        self,
        cascade: VisionCascade,
        meal_backend: MagicMock,
        mock_image_fetcher: MagicMock,
    ) -> None:
        await cascade.analyze("https://example.org/plate.jpg", ContentType.MEAL, is_url=True)

        mock_image_fetcher.fetch_base64.assert_awaited_once_with("https://example.org/plate.jpg")
        image = meal_backend.analyze.await_args.args[0]
        assert image.data == "aGVsbG8="
        assert image.is_url is False

    async def test_transient_download_failure_propagates(
        self,
        cascade: VisionCascade,
        label_backend: MagicMock,
        mock_image_fetcher: MagicMock,
    ) -> None:
        """Timeouts surface so the caller's retry can download again."""
        mock_image_fetcher.fetch_base64.side_effect = TransientNetworkError("timeout")

        with pytest.raises(TransientNetworkError):
            await cascade.analyze(
                "https://example.org/label.jpg", ContentType.PRODUCT, is_url=True
            )

        label_backend.analyze.assert_not_awaited()

    async def test_failed_download_passes_url_to_openai(
        self,
        cascade: VisionCascade,
        label_backend: MagicMock,
        mock_image_fetcher: MagicMock,
    ) -> None:
        mock_image_fetcher.fetch_base64.side_effect = ExternalServiceError(
            "Image download failed: 403"
        )

        await cascade.analyze("https://example.org/label.jpg", ContentType.PRODUCT, is_url=True)

        image = label_backend.analyze.await_args.args[0]
        assert image.is_url is True
        assert image.data == "https://example.org/label.jpg"

    async def test_failed_download_for_gemini_raises(
        self,
        cascade: VisionCascade,
        meal_backend: MagicMock,
        mock_image_fetcher: MagicMock,
    ) -> None:
        mock_image_fetcher.fetch_base64.side_effect = ExternalServiceError(
            "Image download failed: 403"
        )

        with pytest.raises(ExternalServiceError, match="403"):
            await cascade.analyze("https://example.org/plate.jpg", ContentType.MEAL, is_url=True)

        meal_backend.analyze.assert_not_awaited()

    async def test_url_without_fetcher(
        self, label_backend: MagicMock, meal_backend: MagicMock
    ) -> None:
        """Without a fetcher only a URL-capable back end gets the URL."""
        cascade = VisionCascade(label_backend=label_backend, meal_backend=meal_backend)

        await cascade.analyze("https://example.org/label.jpg", ContentType.PRODUCT, is_url=True)
        assert label_backend.analyze.await_args.args[0].is_url is True

        with pytest.raises(ServiceNotConfiguredError):
            await cascade.analyze("https://example.org/plate.jpg", ContentType.MEAL, is_url=True)
        meal_backend.analyze.assert_not_awaited()

    @pytest.mark.parametrize("image", ["", "   ", b""])
    async def test_empty_image_rejected(self, cascade: VisionCascade, image: object) -> None:
        with pytest.raises(InvalidInputError):
            await cascade.analyze(image, ContentType.MEAL)  # type: ignore[arg-type]

    async def test_unknown_content_type_rejected(self, cascade: VisionCascade) -> None:
        with pytest.raises(InvalidInputError):
            await cascade.analyze("aGVsbG8=", "drink")


# ═══════════════════════════════════════════════════════════
# RESULT
# ═══════════════════════════════════════════════════════════


class TestResult:
    """Test result derivation."""

    async def test_meal_result(self, cascade: VisionCascade) -> None:
        result = await cascade.analyze("aGVsbG8=", ContentType.MEAL)

        assert result.score == 85
        assert result.verdict == KetoVerdict.SAFE
        assert result.source == ResultSource.VISION
        assert result.macros is not None
        assert result.macros.protein == 35
        assert [f.name for f in result.foods] == ["Grilled Salmon", "Asparagus"]
        # Salmon is low risk, asparagus (medium risk) decides
        assert result.plate_confidence == 0.7
        assert result.confidence == ConfidenceLevel.MEDIUM

    async def test_verified_foods_noted_in_reasoning(self, cascade: VisionCascade) -> None:
        result = await cascade.analyze("aGVsbG8=", ContentType.MEAL)

        assert result.reasoning == "High fat, low carb plate. (Verified: Atlantic Salmon)"

    async def test_missing_suggestion_is_generated(self, cascade: VisionCascade) -> None:
        result = await cascade.analyze("aGVsbG8=", ContentType.MEAL)

        assert result.swap_suggestion.startswith("Great choice!")

    async def test_backend_suggestion_kept(self, cascade: VisionCascade) -> None:
        result = await cascade.analyze("aGVsbG8=", ContentType.PRODUCT)

        assert result.swap_suggestion == "Look for a bar sweetened with erythritol."

    async def test_verdict_recomputed_from_score(self) -> None:
        """The model's verdict label is not trusted over its score."""
        backend = make_backend(
            "gemini",
            json.dumps(
                {
                    "score": 55,
                    "verdict": "safe",
                    "foods": [{"name": "pizza", "confidence": 0.9, "carb_risk": "high"}],
                }
            ),
        )

        result = await VisionCascade(meal_backend=backend).analyze("aGVsbG8=")

        assert result.verdict == KetoVerdict.AVOID
        assert "healthy fats" in result.swap_suggestion

    async def test_not_food_is_unknown(self) -> None:
        backend = make_backend(
            "gemini", json.dumps({"score": 0, "verdict": "unknown", "foods": []})
        )

        result = await VisionCascade(meal_backend=backend).analyze("aGVsbG8=")

        assert result.verdict == KetoVerdict.UNKNOWN
        assert result.plate_confidence == 1.0
        assert result.confidence == ConfidenceLevel.HIGH

    async def test_unparsable_response(self) -> None:
        backend = make_backend("gemini", "I cannot analyze this image.")

        with pytest.raises(AnalysisFormatError):
            await VisionCascade(meal_backend=backend).analyze("aGVsbG8=")

    async def test_backend_errors_propagate(self) -> None:
        backend = make_backend("gemini")
        backend.analyze = AsyncMock(side_effect=ExternalServiceError("401"))

        with pytest.raises(ExternalServiceError):
            await VisionCascade(meal_backend=backend).analyze("aGVsbG8=")
