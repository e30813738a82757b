"""
Ports for the vision analysis cascade.

Design Pattern: Ports & Adapters (Hexagonal Architecture)
"""

from typing import Protocol, runtime_checkable

from ketolens.domain.recognition.models import VisionImage


@runtime_checkable
class IVisionBackend(Protocol):
    """
    Port for a vision-capable model.

    Implementations send the shared system instruction, the user
    instruction and the image, and return the raw response text.
    Parsing is done by the cascade.
    """

    @property
    def name(self) -> str:
        """Back end identifier used in logs (e.g. "openai")."""
        ...

    @property
    def accepts_urls(self) -> bool:
        """Whether the model can read a remote image URL itself."""
        ...

    async def analyze(self, image: VisionImage, instruction: str) -> str:
        """
        Analyze an image.

        Args:
            image: Base64 payload or remote URL
            instruction: User instruction for the content type

        Returns:
            Raw model response text

        Raises:
            TransientNetworkError: On timeouts, connection errors, 5xx
            ExternalServiceError: On any other API failure
        """
        ...


@runtime_checkable
class IImageFetcher(Protocol):
    """Port for downloading a remote image."""

    async def fetch_base64(self, url: str) -> str:
        """
        Download an image and return it base64-encoded.

        Raises:
            ExternalServiceError: If the image cannot be fetched
        """
        ...
