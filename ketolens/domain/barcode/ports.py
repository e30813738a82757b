"""
Product directory port.

Design Pattern: Ports & Adapters (Hexagonal Architecture)
"""

from typing import Protocol, runtime_checkable

from ketolens.domain.barcode.lookup import DirectoryLookup


@runtime_checkable
class IProductDirectory(Protocol):
    """
    Port for a barcode product directory (OpenFoodFacts).

    Implementations validate the barcode before any network call and
    never retry on their own.
    """

    async def fetch(self, barcode: str) -> DirectoryLookup:
        """
        Look up a product by barcode.

        Returns:
            CompleteProduct, PartialProduct, ProductNotFound or InvalidBarcode

        Raises:
            TransientNetworkError: On timeout, connection error or 5xx
            ExternalServiceError: On any other API failure
        """
        ...
