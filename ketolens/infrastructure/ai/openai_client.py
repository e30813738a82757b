"""OpenAI vision back end.

Used for packaged product labels (stronger text extraction).

Key Features:
- JSON object response mode
- Circuit breaker (5 failures -> 60s open), one per instance
- Library errors mapped onto the domain error taxonomy
"""

from typing import Any, Dict, List, Optional

import structlog
from circuitbreaker import CircuitBreaker, CircuitBreakerError
from openai import (
    APIConnectionError,
    APIError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)

from ketolens.domain.recognition.models import VisionImage
from ketolens.domain.recognition.prompts import KETO_SYSTEM_PROMPT
from ketolens.domain.shared.errors import (
    ExternalServiceError,
    TransientNetworkError,
)

logger = structlog.get_logger(__name__)


class OpenAIVisionBackend:
    """
    OpenAI chat-completions adapter implementing IVisionBackend.

    Example:
        >>> backend = OpenAIVisionBackend(api_key="sk-...")
        >>> text = await backend.analyze(
        ...     VisionImage(data=b64), "Analyze this product label for keto suitability."
        ... )
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o",
        temperature: float = 0.1,
        timeout: float = 30.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize OpenAI back end.

        Args:
            api_key: OpenAI API key
            model: Vision-capable model
            temperature: Sampling temperature (low for consistency)
            timeout: Request timeout in seconds
            client: Optional pre-configured AsyncOpenAI client (for testing)

        Raises:
            ValueError: If neither api_key nor client is provided
        """
        if client is None:
            if not api_key:
                raise ValueError("OPENAI_API_KEY not configured")
            # Retries are owned by the retry executor
            client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

        self._client = client
        self._model = model
        self._temperature = temperature
        self._breaker = CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=60,
            name=f"openai_vision_{id(self)}",
        )
        self._guarded_complete = self._breaker(self._complete)

    @property
    def name(self) -> str:
        return "openai"

    @property
    def accepts_urls(self) -> bool:
        return True

    async def analyze(self, image: VisionImage, instruction: str) -> str:
        """
        Analyze an image and return the raw response text.

        Raises:
            TransientNetworkError: On connection errors, timeouts, 429, 5xx
            ExternalServiceError: On other API errors or open circuit
        """
        try:
            return await self._guarded_complete(image, instruction)
        except CircuitBreakerError as e:
            raise ExternalServiceError(f"OpenAI unavailable: {e}") from e

    async def _complete(self, image: VisionImage, instruction: str) -> str:
        content: List[Dict[str, Any]] = [
            {"type": "text", "text": instruction},
            {"type": "image_url", "image_url": {"url": image.as_data_url()}},
        ]

        logger.info(
            "Calling OpenAI vision",
            model=self._model,
            is_url=image.is_url,
        )

        try:
            completion = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": KETO_SYSTEM_PROMPT},
                    {"role": "user", "content": content},
                ],
                temperature=self._temperature,
                response_format={"type": "json_object"},
            )
        except (APIConnectionError, RateLimitError, InternalServerError) as e:
            raise TransientNetworkError(f"OpenAI network error: {e}") from e
        except APIError as e:
            raise ExternalServiceError(f"OpenAI API failed: {e}") from e

        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""
