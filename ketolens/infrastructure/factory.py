"""Factory for the resolution pipeline.

Settings-based wiring of repositories, clients and the orchestrator.
Strategy:
- CACHE_BACKEND=mongodb: MongoDB cache and correction log (production)
- CACHE_BACKEND=memory: in-memory stores (default, tests)
- A vision back end is created only when its API key is set

Usage:
    from ketolens.infrastructure.factory import get_orchestrator

    orchestrator = get_orchestrator()
    result = await orchestrator.resolve_by_barcode("3017620422003")
"""

from typing import Optional, Tuple

import structlog
from motor.motor_asyncio import AsyncIOMotorClient

from ketolens.application.cache.cache_store import CacheStore
from ketolens.application.correction.workflow import CorrectionWorkflow
from ketolens.application.recognition.vision_cascade import VisionCascade
from ketolens.application.resolution.orchestrator import ResolutionOrchestrator
from ketolens.domain.cache.ports import ICacheRepository
from ketolens.domain.correction.ports import ICorrectionLog
from ketolens.infrastructure.ai.gemini_client import GeminiVisionBackend
from ketolens.infrastructure.ai.openai_client import OpenAIVisionBackend
from ketolens.infrastructure.config import Settings
from ketolens.infrastructure.events.in_memory_bus import InMemoryEventBus
from ketolens.infrastructure.images.image_fetcher import HttpImageFetcher
from ketolens.infrastructure.logging_config import configure_logging
from ketolens.infrastructure.openfoodfacts.api_client import OpenFoodFactsClient
from ketolens.infrastructure.persistence.in_memory.cache_repository import (
    InMemoryCacheRepository,
)
from ketolens.infrastructure.persistence.in_memory.correction_log import (
    InMemoryCorrectionLog,
)
from ketolens.infrastructure.persistence.mongodb.cache_repository import (
    MongoCacheRepository,
)
from ketolens.infrastructure.persistence.mongodb.correction_log import (
    MongoCorrectionLog,
)

logger = structlog.get_logger(__name__)


def create_stores(settings: Settings) -> Tuple[ICacheRepository, ICorrectionLog]:
    """Create cache repository and correction log for CACHE_BACKEND.

    Raises:
        ValueError: If mongodb is selected but MONGODB_URI is not set
    """
    if settings.cache_backend == "mongodb":
        if not settings.mongodb_uri:
            raise ValueError(
                "CACHE_BACKEND=mongodb but MONGODB_URI not set. "
                "Set MONGODB_URI in .env or use CACHE_BACKEND=memory"
            )
        client: AsyncIOMotorClient = AsyncIOMotorClient(settings.mongodb_uri)
        db = client[settings.mongodb_database]
        logger.info("Using MongoDB cache", database=settings.mongodb_database)
        return MongoCacheRepository(db), MongoCorrectionLog(db)

    logger.info("Using in-memory cache")
    return InMemoryCacheRepository(), InMemoryCorrectionLog()


def create_vision_cascade(settings: Settings) -> VisionCascade:
    """Create the vision cascade from the configured API keys."""
    label_backend = None
    if settings.openai_api_key:
        label_backend = OpenAIVisionBackend(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout=settings.vision_timeout_seconds,
        )

    meal_backend = None
    if settings.gemini_api_key:
        meal_backend = GeminiVisionBackend(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout=settings.vision_timeout_seconds,
        )

    if label_backend is None and meal_backend is None:
        logger.warning("No vision API key configured, image analysis disabled")

    return VisionCascade(
        label_backend=label_backend,
        meal_backend=meal_backend,
        image_fetcher=HttpImageFetcher(timeout=settings.vision_timeout_seconds),
    )


def create_orchestrator(settings: Optional[Settings] = None) -> ResolutionOrchestrator:
    """Wire the orchestrator from settings (environment when omitted)."""
    settings = settings or Settings.from_env()
    cache_repository, correction_log = create_stores(settings)

    return ResolutionOrchestrator(
        directory=OpenFoodFactsClient(
            base_url=settings.off_base_url,
            timeout_seconds=settings.off_timeout_seconds,
            user_agent=settings.off_user_agent,
        ),
        cascade=create_vision_cascade(settings),
        cache=CacheStore(cache_repository),
        corrections=CorrectionWorkflow(correction_log),
        event_bus=InMemoryEventBus(),
        max_retries=settings.retry_max_attempts,
        delay_ms=settings.retry_delay_ms,
        default_country=settings.default_country_code,
        carb_limit=settings.default_carb_limit,
    )


# Singleton instance (lazy initialization)
_orchestrator: Optional[ResolutionOrchestrator] = None


def get_orchestrator() -> ResolutionOrchestrator:
    """Get singleton orchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        settings = Settings.from_env()
        configure_logging(settings.log_level, settings.log_format)
        _orchestrator = create_orchestrator(settings)
    return _orchestrator


def reset_orchestrator() -> None:
    """Reset singleton orchestrator instance.

    Useful for testing to force re-creation with different env vars.
    """
    global _orchestrator
    _orchestrator = None
