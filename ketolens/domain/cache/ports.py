"""
Cache repository port.

Storage interface behind the cache store. Implementations raise
`PersistenceError`; the cache store is responsible for swallowing it.
"""

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable

from ketolens.domain.cache.models import (
    CachedKetoAnalysis,
    CachedProductRecord,
    ScanEvent,
)


@runtime_checkable
class ICacheRepository(Protocol):
    """
    Repository interface for cached products.

    Implementations must provide:
    - Lookup by (barcode, country_code) with the analysis row nested
    - Separate inserts for the product row and the analysis row
    - Usage statistics update (last_seen_at, scan_count)
    - Scan log append

    Example:
        >>> repository = InMemoryCacheRepository()
        >>> product = await repository.insert_product(record)
        >>> await repository.insert_analysis(analysis)
        >>> found = await repository.find_by_barcode(record.barcode, "US")
    """

    async def find_by_barcode(
        self, barcode: str, country_code: str
    ) -> Optional[CachedProductRecord]:
        """
        Find a product by barcode and region.

        Returns:
            Record with `keto_analysis` set when an analysis row exists,
            None if the product is not cached

        Raises:
            PersistenceError: On storage failure
        """
        ...

    async def touch(self, product_id: str, seen_at: datetime) -> None:
        """
        Record a cache hit: set last_seen_at, increment scan_count.

        Raises:
            PersistenceError: On storage failure
        """
        ...

    async def insert_product(self, record: CachedProductRecord) -> CachedProductRecord:
        """
        Insert a product row (without analysis).

        Returns:
            Stored record

        Raises:
            PersistenceError: On storage failure
        """
        ...

    async def insert_analysis(self, analysis: CachedKetoAnalysis) -> CachedKetoAnalysis:
        """
        Insert the analysis row for an already stored product.

        Raises:
            PersistenceError: On storage failure
        """
        ...

    async def log_scan(self, event: ScanEvent) -> None:
        """
        Append a scan log entry.

        Raises:
            PersistenceError: On storage failure
        """
        ...
