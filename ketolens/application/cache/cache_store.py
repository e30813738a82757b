"""
Local cache store.

Best-effort cache of resolved products in front of the product
directory. Persistence failures are logged and never surfaced.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Coroutine, Optional, Set

import structlog

from ketolens.domain.cache.models import (
    CachedKetoAnalysis,
    CachedProductRecord,
    ScanEvent,
)
from ketolens.domain.cache.ports import ICacheRepository
from ketolens.domain.shared.errors import PersistenceError

logger = structlog.get_logger(__name__)


class CacheStore:
    """Cache of previously resolved products keyed by (barcode, region).

    Flow:
    1. lookup: read the record, schedule the usage-stat update in background
    2. save: insert the product row, then the dependent analysis row
    """

    def __init__(self, repository: ICacheRepository) -> None:
        """Initialize store.

        Args:
            repository: Storage back end (in-memory or MongoDB)
        """
        self.repository = repository
        self._pending: Set["asyncio.Task[None]"] = set()

    async def lookup(self, barcode: str, region: str) -> Optional[CachedProductRecord]:
        """Find a cached product.

        A hit schedules `last_seen_at`/`scan_count` to be updated in the
        background; the returned record carries the values read.

        Returns:
            Record (with `keto_analysis` when present) or None on miss or
            storage failure
        """
        try:
            record = await self.repository.find_by_barcode(barcode, region)
        except Exception as e:
            logger.warning(
                "Cache lookup failed",
                barcode=barcode,
                country_code=region,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        if record is None:
            logger.debug("Cache miss", barcode=barcode, country_code=region)
            return None

        logger.info(
            "Cache hit",
            barcode=barcode,
            country_code=region,
            product_id=record.id,
            has_analysis=record.keto_analysis is not None,
        )
        self._schedule(self._touch(record.id))
        return record

    async def save(
        self,
        product: CachedProductRecord,
        analysis: CachedKetoAnalysis,
    ) -> Optional[CachedProductRecord]:
        """Store a product and its analysis.

        Returns:
            - record with analysis when both inserts succeed
            - record without analysis when only the product insert succeeds
            - None when the product insert fails
        """
        try:
            stored = await self.repository.insert_product(product)
        except PersistenceError as e:
            logger.warning(
                "Cache product insert failed",
                barcode=product.barcode,
                error=str(e),
            )
            return None

        try:
            saved_analysis = await self.repository.insert_analysis(
                analysis.model_copy(update={"product_id": stored.id})
            )
        except PersistenceError as e:
            logger.warning(
                "Cache analysis insert failed",
                barcode=product.barcode,
                product_id=stored.id,
                error=str(e),
            )
            return stored

        logger.info(
            "Product cached",
            barcode=product.barcode,
            product_id=stored.id,
            score=saved_analysis.keto_score,
        )
        return stored.with_analysis(saved_analysis)

    async def log_scan(self, event: ScanEvent) -> None:
        """Append a scan log entry, best effort."""
        try:
            await self.repository.log_scan(event)
        except PersistenceError as e:
            logger.warning(
                "Scan log write failed",
                scan_type=event.scan_type.value,
                product_id=event.product_id,
                error=str(e),
            )

    async def drain(self) -> None:
        """Wait for scheduled background updates to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _touch(self, product_id: str) -> None:
        try:
            await self.repository.touch(product_id, datetime.now(timezone.utc))
        except Exception as e:
            logger.warning(
                "Cache stats update failed",
                product_id=product_id,
                error=str(e),
            )
