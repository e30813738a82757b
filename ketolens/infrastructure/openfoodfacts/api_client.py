"""
OpenFoodFacts API client.

Handles HTTP requests to the OpenFoodFacts product database and maps
responses to directory lookup outcomes. Retrying is left to the caller.
"""

import asyncio
import json
from typing import Optional

import aiohttp
import structlog

from ketolens.domain.barcode.lookup import (
    CompleteProduct,
    DirectoryLookup,
    InvalidBarcode,
    PartialProduct,
    ProductNotFound,
)
from ketolens.domain.barcode.openfoodfacts_mapper import OpenFoodFactsMapper
from ketolens.domain.shared.errors import (
    ExternalServiceError,
    TransientNetworkError,
)
from ketolens.domain.shared.value_objects import is_valid_barcode
from ketolens.infrastructure.config import (
    DEFAULT_OFF_BASE_URL,
    DEFAULT_OFF_USER_AGENT,
)

logger = structlog.get_logger(__name__)


class OpenFoodFactsClient:
    """OpenFoodFacts API client.

    Example:
        >>> async with OpenFoodFactsClient() as client:
        ...     lookup = await client.fetch("3017620422003")
    """

    def __init__(
        self,
        base_url: str = DEFAULT_OFF_BASE_URL,
        timeout_seconds: float = 10.0,
        user_agent: str = DEFAULT_OFF_USER_AGENT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """Initialize API client.

        Args:
            base_url: Product endpoint, the barcode is appended
            timeout_seconds: Total request timeout
            user_agent: User-Agent header (OFF asks clients to identify)
            session: Optional pre-configured session (for testing)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "OpenFoodFactsClient":
        """Async context manager entry."""
        self._get_session()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={"User-Agent": self.user_agent})
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def fetch(self, barcode: str) -> DirectoryLookup:
        """Look up a product by barcode.

        The barcode shape is validated before any network call.

        Args:
            barcode: 8-14 digit barcode

        Returns:
            CompleteProduct, PartialProduct, ProductNotFound or InvalidBarcode

        Raises:
            TransientNetworkError: On timeout, connection error or 5xx
            ExternalServiceError: On 4xx (other than 404) or invalid JSON
        """
        if not is_valid_barcode(barcode):
            logger.info("Invalid barcode rejected", barcode=barcode)
            return InvalidBarcode(barcode=str(barcode))

        url = f"{self.base_url}/{barcode}.json"
        session = self._get_session()

        try:
            async with session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                if response.status == 404:
                    logger.info("Barcode not found in OFF", barcode=barcode)
                    return ProductNotFound(barcode=barcode)

                if response.status >= 500:
                    raise TransientNetworkError(
                        f"OpenFoodFacts API error: {response.status}"
                    )

                if response.status >= 400:
                    raise ExternalServiceError(
                        f"OpenFoodFacts API error: {response.status}"
                    )

                data = await response.json(content_type=None)

        except asyncio.TimeoutError as e:
            raise TransientNetworkError("OpenFoodFacts API timeout") from e

        except aiohttp.ClientError as e:
            raise TransientNetworkError(f"OpenFoodFacts network error: {e}") from e

        except json.JSONDecodeError as e:
            raise ExternalServiceError(f"OpenFoodFacts returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ExternalServiceError("OpenFoodFacts returned unexpected payload")

        result = OpenFoodFactsMapper.parse_product_response(data)
        lookup = OpenFoodFactsMapper.to_lookup(barcode, result)

        if isinstance(lookup, ProductNotFound):
            logger.info("Product not found in OFF", barcode=barcode)
        elif isinstance(lookup, PartialProduct):
            logger.info(
                "Partial product in OFF",
                barcode=barcode,
                name=lookup.product_name,
                has_label_image=lookup.label_image_url is not None,
            )
        elif isinstance(lookup, CompleteProduct):
            logger.info(
                "Product found in OFF",
                barcode=barcode,
                name=lookup.product_name,
                score=lookup.score,
                verdict=lookup.verdict.value,
            )

        return lookup
