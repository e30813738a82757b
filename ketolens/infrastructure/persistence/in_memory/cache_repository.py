"""In-memory cache repository implementation.

Provides an in-memory implementation of ICacheRepository for testing
and single-process use. Data is lost on process restart.
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from ketolens.domain.cache.models import (
    CachedKetoAnalysis,
    CachedProductRecord,
    ScanEvent,
)
from ketolens.domain.shared.errors import PersistenceError


class InMemoryCacheRepository:
    """
    In-memory implementation of ICacheRepository port.

    Products and analyses are stored as separate rows, like the
    document store, and joined on read. The latest product inserted for a
    (barcode, country_code) key wins.

    Example:
        >>> repository = InMemoryCacheRepository()
        >>> stored = await repository.insert_product(record)
        >>> found = await repository.find_by_barcode(record.barcode, "US")
    """

    def __init__(self) -> None:
        """Initialize repository with empty storage."""
        self._products: Dict[str, CachedProductRecord] = {}
        self._by_key: Dict[Tuple[str, str], str] = {}
        self._analyses: Dict[str, CachedKetoAnalysis] = {}
        self._scans: List[ScanEvent] = []

    async def find_by_barcode(
        self, barcode: str, country_code: str
    ) -> Optional[CachedProductRecord]:
        product_id = self._by_key.get((barcode, country_code))
        if product_id is None:
            return None
        product = self._products[product_id]
        return product.with_analysis(self._analyses.get(product_id))

    async def touch(self, product_id: str, seen_at: datetime) -> None:
        product = self._products.get(product_id)
        if product is None:
            raise PersistenceError(f"Product {product_id} not found")
        self._products[product_id] = product.model_copy(
            update={"last_seen_at": seen_at, "scan_count": product.scan_count + 1}
        )

    async def insert_product(self, record: CachedProductRecord) -> CachedProductRecord:
        stored = record.with_analysis(None)
        self._products[stored.id] = stored
        self._by_key[(stored.barcode, stored.country_code)] = stored.id
        return stored

    async def insert_analysis(self, analysis: CachedKetoAnalysis) -> CachedKetoAnalysis:
        if analysis.product_id not in self._products:
            raise PersistenceError(
                f"Cannot attach analysis: product {analysis.product_id} not found"
            )
        self._analyses[analysis.product_id] = analysis
        return analysis

    async def log_scan(self, event: ScanEvent) -> None:
        self._scans.append(event)

    # Test helpers

    @property
    def scans(self) -> List[ScanEvent]:
        """Recorded scan events, oldest first."""
        return list(self._scans)

    def clear(self) -> None:
        """Clear all storage."""
        self._products.clear()
        self._by_key.clear()
        self._analyses.clear()
        self._scans.clear()
