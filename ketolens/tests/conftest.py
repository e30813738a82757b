"""
Shared fixtures for KetoLens tests.

Domain samples, in-memory stores and mocked external ports.
"""

import json
from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest

from ketolens.application.cache.cache_store import CacheStore
from ketolens.application.correction.workflow import CorrectionWorkflow
from ketolens.application.recognition.vision_cascade import VisionCascade
from ketolens.application.resolution.orchestrator import ResolutionOrchestrator
from ketolens.domain.barcode.lookup import CompleteProduct, PartialProduct
from ketolens.domain.keto.models import (
    CarbRisk,
    DetectedFoodItem,
    KetoVerdict,
    Macros,
)
from ketolens.infrastructure.events.in_memory_bus import InMemoryEventBus
from ketolens.infrastructure.persistence.in_memory.cache_repository import (
    InMemoryCacheRepository,
)
from ketolens.infrastructure.persistence.in_memory.correction_log import (
    InMemoryCorrectionLog,
)


# ═══════════════════════════════════════════════════════════
# DOMAIN MODEL FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def sample_barcode() -> str:
    """Sample barcode for Nutella."""
    return "3017620422003"


@pytest.fixture
def sample_off_response() -> Dict[str, Any]:
    """Raw OpenFoodFacts response for a complete product."""
    return {
        "status": 1,
        "code": "3017620422003",
        "product": {
            "code": "3017620422003",
            "product_name": "Nutella",
            "brands": "Ferrero",
            "image_url": "https://images.openfoodfacts.org/images/products/301/762/042/2003/front_en.jpg",
            "ingredients_text": "Sugar, palm oil, hazelnuts (13%), skimmed milk powder (8.7%), "
            "fat-reduced cocoa (7.4%), emulsifier: lecithins (soya), vanillin",
            "completeness": 0.89,
            "nutriments": {
                "energy-kcal_100g": 539.0,
                "proteins_100g": 6.3,
                "carbohydrates_100g": 57.5,
                "fat_100g": 30.9,
                "fiber_100g": 0.0,
                "sugars_100g": 56.3,
            },
        },
    }


@pytest.fixture
def sample_complete_product() -> CompleteProduct:
    """Scored complete product (almond butter)."""
    return CompleteProduct(
        barcode="0012345678905",
        product_name="Almond Butter",
        brand="Nutty Co",
        image_url="https://example.org/almond-butter.jpg",
        macros=Macros(net_carbs=6.0, fat=55.0, protein=21.0, calories=614, fiber=10.0),
        ingredients=["almonds", "sea salt"],
        score=100,
        verdict=KetoVerdict.SAFE,
        swap_suggestion="Excellent keto choice!",
    )


@pytest.fixture
def sample_partial_product() -> PartialProduct:
    """Partial product with a label image."""
    return PartialProduct(
        barcode="5000159484695",
        product_name="Protein Bar",
        brand="Snacky",
        image_url="https://example.org/front.jpg",
        image_ingredients_url="https://example.org/ingredients.jpg",
        ingredients=["whey protein", "maltitol"],
    )


@pytest.fixture
def sample_foods() -> List[DetectedFoodItem]:
    """Five detected foods on a plate."""
    return [
        DetectedFoodItem(name="grilled salmon", confidence=0.95, carb_risk=CarbRisk.LOW),
        DetectedFoodItem(
            name="white rice", confidence=0.62, carb_risk=CarbRisk.HIGH, is_offender=True
        ),
        DetectedFoodItem(name="broccoli", confidence=0.9, carb_risk=CarbRisk.LOW),
        DetectedFoodItem(
            name="teriyaki sauce", confidence=0.55, carb_risk=CarbRisk.MEDIUM, is_offender=True
        ),
        DetectedFoodItem(name="butter", confidence=0.85, carb_risk=CarbRisk.LOW),
    ]


@pytest.fixture
def meal_response_json() -> str:
    """Vision back end response for a salmon plate."""
    return json.dumps(
        {
            "score": 85,
            "verdict": "safe",
            "reasoning": "High fat, low carb plate.",
            "macros": {"net_carbs": 6, "fat": 40, "protein": 35, "calories": 540},
            "swapSuggestion": "",
            "foods": [
                {
                    "name": "Grilled Salmon",
                    "confidence": 0.93,
                    "estimated_portion": "150g",
                    "carb_risk": "low",
                    "is_keto_offender": False,
                },
                {
                    "name": "Asparagus",
                    "confidence": 0.7,
                    "carb_risk": "medium",
                    "is_keto_offender": False,
                },
            ],
        }
    )


@pytest.fixture
def label_response_json() -> str:
    """Vision back end response for a product label."""
    return json.dumps(
        {
            "score": 72,
            "verdict": "borderline",
            "reasoning": "Contains maltitol.",
            "macros": {"net_carbs": 8, "fat": 12, "protein": 20, "calories": 210},
            "swapSuggestion": "Look for a bar sweetened with erythritol.",
            "foods": [
                {"name": "whey protein", "confidence": 0.9, "carb_risk": "low"},
                {"name": "maltitol", "confidence": 0.85, "carb_risk": "high",
                 "is_keto_offender": True},
            ],
        }
    )


# ═══════════════════════════════════════════════════════════
# PORT FIXTURES
# ═══════════════════════════════════════════════════════════


def make_backend(name: str, response: str = "") -> MagicMock:
    """Vision back end mock returning a fixed text."""
    backend = MagicMock()
    backend.name = name
    backend.accepts_urls = name == "openai"
    backend.analyze = AsyncMock(return_value=response)
    return backend


@pytest.fixture
def mock_directory() -> MagicMock:
    """Mock product directory."""
    directory = MagicMock()
    directory.fetch = AsyncMock()
    return directory


@pytest.fixture
def cache_repository() -> InMemoryCacheRepository:
    """Empty in-memory cache repository."""
    return InMemoryCacheRepository()


@pytest.fixture
def correction_log() -> InMemoryCorrectionLog:
    """Empty in-memory correction log."""
    return InMemoryCorrectionLog()


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    """Fresh event bus."""
    return InMemoryEventBus()


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Sleep replacement recording requested delays."""
    return AsyncMock(return_value=None)


# ═══════════════════════════════════════════════════════════
# APPLICATION FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def cache_store(cache_repository: InMemoryCacheRepository) -> CacheStore:
    """Cache store over the in-memory repository."""
    return CacheStore(cache_repository)


@pytest.fixture
def label_backend(label_response_json: str) -> MagicMock:
    """Mocked OpenAI back end."""
    return make_backend("openai", label_response_json)


@pytest.fixture
def meal_backend(meal_response_json: str) -> MagicMock:
    """Mocked Gemini back end."""
    return make_backend("gemini", meal_response_json)


@pytest.fixture
def mock_image_fetcher() -> MagicMock:
    """Image fetcher returning a tiny base64 payload."""
    fetcher = MagicMock()
    fetcher.fetch_base64 = AsyncMock(return_value="aGVsbG8=")
    return fetcher


@pytest.fixture
def cascade(
    label_backend: MagicMock,
    meal_backend: MagicMock,
    mock_image_fetcher: MagicMock,
) -> VisionCascade:
    """Vision cascade with both back ends mocked."""
    return VisionCascade(
        label_backend=label_backend,
        meal_backend=meal_backend,
        image_fetcher=mock_image_fetcher,
    )


@pytest.fixture
def orchestrator(
    mock_directory: MagicMock,
    cascade: VisionCascade,
    cache_store: CacheStore,
    correction_log: InMemoryCorrectionLog,
    event_bus: InMemoryEventBus,
    no_sleep: AsyncMock,
) -> ResolutionOrchestrator:
    """Orchestrator with mocked directory and back ends."""
    return ResolutionOrchestrator(
        directory=mock_directory,
        cascade=cascade,
        cache=cache_store,
        corrections=CorrectionWorkflow(correction_log),
        event_bus=event_bus,
        max_retries=3,
        delay_ms=10,
        sleep=no_sleep,
    )
