"""
Google Gemini vision back end.

Used for plated meals (faster, cheaper).
"""

import base64
import binascii
from typing import Any, List, Optional

import google.generativeai as genai
import structlog
from circuitbreaker import CircuitBreaker, CircuitBreakerError
from google.api_core import exceptions as google_exceptions

from ketolens.domain.recognition.models import VisionImage
from ketolens.domain.recognition.prompts import KETO_SYSTEM_PROMPT
from ketolens.domain.shared.errors import (
    ExternalServiceError,
    InvalidInputError,
    TransientNetworkError,
)

logger = structlog.get_logger(__name__)

_TRANSIENT_ERRORS = (
    google_exceptions.DeadlineExceeded,
    google_exceptions.ServiceUnavailable,
    google_exceptions.InternalServerError,
    google_exceptions.ResourceExhausted,
)


class GeminiVisionBackend:
    """Adapter for Google Gemini vision models implementing IVisionBackend."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gemini-1.5-flash",
        temperature: float = 0.1,
        max_tokens: int = 2048,
        timeout: float = 30.0,
        generative_model: Optional[Any] = None,
    ):
        """
        Initialize Gemini back end.

        Args:
            api_key: Google API key
            model: Model name (gemini-1.5-flash, gemini-1.5-pro)
            temperature: Sampling temperature
            max_tokens: Maximum tokens in response
            timeout: Request timeout in seconds
            generative_model: Optional pre-built model (for testing)

        Raises:
            ValueError: If neither api_key nor generative_model is provided
        """
        if generative_model is None:
            if not api_key:
                raise ValueError("GEMINI_API_KEY not configured")
            genai.configure(api_key=api_key)
            generative_model = genai.GenerativeModel(
                model_name=model,
                generation_config={
                    "temperature": temperature,
                    "max_output_tokens": max_tokens,
                    "response_mime_type": "application/json",
                },
            )

        self.model_name = model
        self.timeout = timeout
        self._model = generative_model
        self._breaker = CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=60,
            name=f"gemini_vision_{id(self)}",
        )
        self._guarded_generate = self._breaker(self._generate)

    @property
    def name(self) -> str:
        return "gemini"

    @property
    def accepts_urls(self) -> bool:
        return False

    async def analyze(self, image: VisionImage, instruction: str) -> str:
        """
        Analyze an image and return the raw response text.

        Raises:
            InvalidInputError: If the inline image is not valid base64
            TransientNetworkError: On deadline, 429 or 5xx
            ExternalServiceError: On other API errors or open circuit
        """
        parts = self._build_parts(image, instruction)
        try:
            return await self._guarded_generate(parts)
        except CircuitBreakerError as e:
            raise ExternalServiceError(f"Gemini unavailable: {e}") from e

    @staticmethod
    def _build_parts(image: VisionImage, instruction: str) -> List[Any]:
        if image.is_url:
            raise InvalidInputError("Gemini needs inline image data, not a URL")
        try:
            data = base64.b64decode("".join(image.data.split()), validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidInputError(f"Image is not valid base64: {e}") from e
        image_part = {"mime_type": image.mime_type, "data": data}
        return [KETO_SYSTEM_PROMPT, image_part, instruction]

    async def _generate(self, parts: List[Any]) -> str:
        logger.info("Calling Gemini vision", model=self.model_name)

        try:
            response = await self._model.generate_content_async(
                parts,
                request_options={"timeout": self.timeout},
            )
        except _TRANSIENT_ERRORS as e:
            raise TransientNetworkError(f"Gemini network error: {e}") from e
        except google_exceptions.GoogleAPIError as e:
            raise ExternalServiceError(f"Gemini API failed: {e}") from e

        try:
            return response.text or ""
        except ValueError as e:
            # Blocked or empty candidates
            raise ExternalServiceError(f"Gemini returned no text: {e}") from e
