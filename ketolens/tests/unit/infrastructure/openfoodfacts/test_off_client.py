"""
Unit tests for OpenFoodFacts API client.

HTTP is mocked at aiohttp.ClientSession.get.
Product: Nutella, Barcode: 3017620422003
"""

import asyncio
import json
from typing import Any, Dict
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from ketolens.domain.barcode.lookup import (
    CompleteProduct,
    InvalidBarcode,
    PartialProduct,
    ProductNotFound,
)
from ketolens.domain.shared.errors import (
    ExternalServiceError,
    TransientNetworkError,
)
from ketolens.infrastructure.openfoodfacts.api_client import OpenFoodFactsClient


def _response(status: int = 200, payload: Any = None) -> MagicMock:
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=payload)
    return response


class TestOpenFoodFactsClient:
    """Test OpenFoodFacts API client."""

    async def test_complete_product(self, sample_off_response: Dict[str, Any]) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(200, sample_off_response)

            async with OpenFoodFactsClient() as client:
                lookup = await client.fetch("3017620422003")

        assert isinstance(lookup, CompleteProduct)
        assert lookup.product_name == "Nutella"
        assert lookup.brand == "Ferrero"
        assert lookup.score == 45

        url = mock_get.call_args.args[0]
        assert url.endswith("/3017620422003.json")

    async def test_partial_product(self) -> None:
        payload = {
            "status": 1,
            "product": {
                "product_name": "Granola",
                "image_nutrition_url": "https://example.org/nutrition.jpg",
                "completeness": 0.2,
                "nutriments": {"carbohydrates_100g": 60, "fat_100g": 10, "proteins_100g": 8},
            },
        }

        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(200, payload)

            async with OpenFoodFactsClient() as client:
                lookup = await client.fetch("12345678")

        assert isinstance(lookup, PartialProduct)
        assert lookup.needs_ocr
        assert lookup.label_image_url == "https://example.org/nutrition.jpg"

    async def test_invalid_barcode_makes_no_request(self) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            async with OpenFoodFactsClient() as client:
                lookup = await client.fetch("12ab")

        assert isinstance(lookup, InvalidBarcode)
        mock_get.assert_not_called()

    async def test_not_found_404(self) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(404)

            async with OpenFoodFactsClient() as client:
                lookup = await client.fetch("99999999")

        assert lookup == ProductNotFound(barcode="99999999")

    async def test_not_found_status_zero(self) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(
                200, {"status": 0, "status_verbose": "product not found"}
            )

            async with OpenFoodFactsClient() as client:
                lookup = await client.fetch("99999999")

        assert isinstance(lookup, ProductNotFound)

    async def test_server_error_is_transient(self) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(503)

            async with OpenFoodFactsClient() as client:
                with pytest.raises(TransientNetworkError, match="503"):
                    await client.fetch("3017620422003")

    async def test_client_error_is_not_transient(self) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(403)

            async with OpenFoodFactsClient() as client:
                with pytest.raises(ExternalServiceError) as exc_info:
                    await client.fetch("3017620422003")

        assert not isinstance(exc_info.value, TransientNetworkError)

    async def test_timeout_is_transient(self) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.side_effect = asyncio.TimeoutError()

            async with OpenFoodFactsClient() as client:
                with pytest.raises(TransientNetworkError, match="timeout"):
                    await client.fetch("3017620422003")

    async def test_connection_error_is_transient(self) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.side_effect = aiohttp.ClientConnectionError("reset")

            async with OpenFoodFactsClient() as client:
                with pytest.raises(TransientNetworkError):
                    await client.fetch("3017620422003")

    async def test_invalid_json(self) -> None:
        response = _response(200)
        response.json = AsyncMock(side_effect=json.JSONDecodeError("Expecting value", "", 0))

        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = response

            async with OpenFoodFactsClient() as client:
                with pytest.raises(ExternalServiceError, match="invalid JSON"):
                    await client.fetch("3017620422003")

    async def test_non_object_payload(self) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(200, ["unexpected"])

            async with OpenFoodFactsClient() as client:
                with pytest.raises(ExternalServiceError):
                    await client.fetch("3017620422003")

    async def test_injected_session_is_not_closed(self) -> None:
        session = MagicMock()
        session.closed = False
        session.close = AsyncMock()

        client = OpenFoodFactsClient(session=session)
        await client.close()

        session.close.assert_not_awaited()
