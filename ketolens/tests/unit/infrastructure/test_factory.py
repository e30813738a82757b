"""Unit tests for the pipeline factory.

Tests settings-based store selection and vision back end wiring.
"""

import pytest

from ketolens.application.resolution.orchestrator import ResolutionOrchestrator
from ketolens.domain.recognition.models import ContentType
from ketolens.domain.shared.errors import ServiceNotConfiguredError
from ketolens.infrastructure import factory
from ketolens.infrastructure.ai.gemini_client import GeminiVisionBackend
from ketolens.infrastructure.ai.openai_client import OpenAIVisionBackend
from ketolens.infrastructure.config import Settings
from ketolens.infrastructure.persistence.in_memory.cache_repository import (
    InMemoryCacheRepository,
)
from ketolens.infrastructure.persistence.in_memory.correction_log import (
    InMemoryCorrectionLog,
)


class TestCreateStores:
    """Test create_stores()."""

    def test_memory_backend(self) -> None:
        repository, log = factory.create_stores(Settings())

        assert isinstance(repository, InMemoryCacheRepository)
        assert isinstance(log, InMemoryCorrectionLog)

    def test_mongodb_without_uri_raises_error(self) -> None:
        with pytest.raises(ValueError, match="MONGODB_URI not set"):
            factory.create_stores(Settings(cache_backend="mongodb"))

    def test_mongodb_creates_mongo_stores(self) -> None:
        from ketolens.infrastructure.persistence.mongodb.cache_repository import (
            MongoCacheRepository,
        )
        from ketolens.infrastructure.persistence.mongodb.correction_log import (
            MongoCorrectionLog,
        )

        repository, log = factory.create_stores(
            Settings(cache_backend="mongodb", mongodb_uri="mongodb://localhost:27017")
        )

        assert isinstance(repository, MongoCacheRepository)
        assert isinstance(log, MongoCorrectionLog)


class TestCreateVisionCascade:
    """Test create_vision_cascade()."""

    def test_no_keys(self) -> None:
        cascade = factory.create_vision_cascade(Settings())

        with pytest.raises(ServiceNotConfiguredError):
            cascade.select_backend(ContentType.MEAL)

    def test_both_keys(self) -> None:
        cascade = factory.create_vision_cascade(
            Settings(openai_api_key="sk-test", gemini_api_key="g-test")
        )

        assert isinstance(cascade.select_backend(ContentType.PRODUCT), OpenAIVisionBackend)
        assert isinstance(cascade.select_backend(ContentType.MEAL), GeminiVisionBackend)

    def test_openai_only_serves_meals(self) -> None:
        cascade = factory.create_vision_cascade(Settings(openai_api_key="sk-test"))

        assert isinstance(cascade.select_backend(ContentType.MEAL), OpenAIVisionBackend)


class TestOrchestratorSingleton:
    """Test get_orchestrator()/reset_orchestrator()."""

    def test_create_orchestrator(self) -> None:
        orchestrator = factory.create_orchestrator(Settings(default_country_code="IT"))

        assert isinstance(orchestrator, ResolutionOrchestrator)

    def test_singleton_and_reset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(factory, "configure_logging", lambda level, fmt: None)
        monkeypatch.setattr(Settings, "from_env", classmethod(lambda cls, dotenv=True: cls()))
        factory.reset_orchestrator()

        first = factory.get_orchestrator()
        assert factory.get_orchestrator() is first

        factory.reset_orchestrator()
        assert factory.get_orchestrator() is not first

        factory.reset_orchestrator()
