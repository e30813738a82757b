"""
MongoDB implementation of the cache repository.

Products and their keto analysis live in separate collections and are
joined on read.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from ketolens.domain.cache.models import (
    CachedKetoAnalysis,
    CachedProductRecord,
    ProductSource,
    ScanEvent,
)
from ketolens.domain.keto.models import ConfidenceLevel, KetoVerdict, Macros
from ketolens.domain.shared.errors import PersistenceError

logger = structlog.get_logger(__name__)


def _as_utc(value: Optional[datetime]) -> datetime:
    # Motor returns naive UTC datetimes unless the client is tz_aware
    if value is None:
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class MongoCacheRepository:
    """
    MongoDB implementation of ICacheRepository.

    Storage design:
    - products_shadow: one document per product, _id = record id
    - keto_analysis: one document per product, keyed by product_id
    - scan_events: append-only scan log
    - Index on (barcode, country_code) for lookups

    Example:
        >>> from motor.motor_asyncio import AsyncIOMotorClient
        >>> client = AsyncIOMotorClient("mongodb://localhost:27017")
        >>> repository = MongoCacheRepository(client.ketolens)
        >>> record = await repository.find_by_barcode("3017620422003", "US")
    """

    PRODUCTS_COLLECTION = "products_shadow"
    ANALYSIS_COLLECTION = "keto_analysis"
    SCANS_COLLECTION = "scan_events"

    def __init__(self, db: AsyncIOMotorDatabase[Any]):
        """
        Initialize repository with MongoDB database.

        Creates indexes on first use.

        Args:
            db: Motor AsyncIOMotorDatabase instance
        """
        self.db = db
        self.products = db[self.PRODUCTS_COLLECTION]
        self.analyses = db[self.ANALYSIS_COLLECTION]
        self.scans = db[self.SCANS_COLLECTION]
        self._indexes_created = False

    async def _ensure_indexes(self) -> None:
        """
        Create indexes if not already created.

        Indexes:
        - (barcode, country_code) on products_shadow
        - product_id on keto_analysis
        - product_id on scan_events
        """
        if self._indexes_created:
            return

        await self.products.create_index(
            [("barcode", 1), ("country_code", 1)],
            name="idx_barcode_country",
        )
        await self.analyses.create_index("product_id", name="idx_product_id")
        await self.scans.create_index("product_id", name="idx_scan_product_id")

        self._indexes_created = True

    # ============================================================
    # Document mapping
    # ============================================================

    @staticmethod
    def _product_to_document(record: CachedProductRecord) -> dict[str, Any]:
        return {
            "_id": record.id,
            "barcode": record.barcode,
            "country_code": record.country_code,
            "product_name": record.product_name,
            "brand": record.brand,
            "image_url": record.image_url,
            "ingredients_normalized": list(record.ingredients_normalized),
            "macros": record.macros.model_dump() if record.macros else None,
            "source": record.source.value,
            "confidence_level": record.confidence_level.value,
            "last_seen_at": record.last_seen_at,
            "scan_count": record.scan_count,
        }

    @staticmethod
    def _product_from_document(doc: dict[str, Any]) -> CachedProductRecord:
        return CachedProductRecord(
            id=str(doc["_id"]),
            barcode=doc["barcode"],
            country_code=doc.get("country_code", "US"),
            product_name=doc.get("product_name") or "Unknown Product",
            brand=doc.get("brand") or "",
            image_url=doc.get("image_url"),
            ingredients_normalized=doc.get("ingredients_normalized") or [],
            macros=Macros(**doc["macros"]) if doc.get("macros") else None,
            source=ProductSource(doc.get("source", ProductSource.API.value)),
            confidence_level=ConfidenceLevel(
                doc.get("confidence_level", ConfidenceLevel.HIGH.value)
            ),
            last_seen_at=_as_utc(doc.get("last_seen_at")),
            scan_count=doc.get("scan_count", 1),
        )

    @staticmethod
    def _analysis_to_document(analysis: CachedKetoAnalysis) -> dict[str, Any]:
        return {
            "_id": analysis.id,
            "product_id": analysis.product_id,
            "keto_score": analysis.keto_score,
            "verdict": analysis.verdict.value,
            "offenders": list(analysis.offenders),
            "structural_penalties": list(analysis.structural_penalties),
            "ruleset_version": analysis.ruleset_version,
        }

    @staticmethod
    def _analysis_from_document(doc: dict[str, Any]) -> CachedKetoAnalysis:
        return CachedKetoAnalysis(
            id=str(doc["_id"]),
            product_id=doc["product_id"],
            keto_score=doc["keto_score"],
            verdict=KetoVerdict(doc["verdict"]),
            offenders=doc.get("offenders") or [],
            structural_penalties=doc.get("structural_penalties") or [],
            ruleset_version=doc.get("ruleset_version", ""),
        )

    # ============================================================
    # ICacheRepository
    # ============================================================

    async def find_by_barcode(
        self, barcode: str, country_code: str
    ) -> Optional[CachedProductRecord]:
        try:
            await self._ensure_indexes()
            doc = await self.products.find_one(
                {"barcode": barcode, "country_code": country_code},
                sort=[("last_seen_at", -1)],
            )
            if doc is None:
                return None
            analysis_doc = await self.analyses.find_one({"product_id": str(doc["_id"])})
        except PyMongoError as e:
            raise PersistenceError(f"products_shadow lookup failed: {e}") from e

        try:
            record = self._product_from_document(doc)
            analysis = self._analysis_from_document(analysis_doc) if analysis_doc else None
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise PersistenceError(
                f"Malformed cache document for {barcode}/{country_code}: {e!r}"
            ) from e
        return record.with_analysis(analysis)

    async def touch(self, product_id: str, seen_at: datetime) -> None:
        try:
            await self.products.update_one(
                {"_id": product_id},
                {"$set": {"last_seen_at": seen_at}, "$inc": {"scan_count": 1}},
            )
        except PyMongoError as e:
            raise PersistenceError(f"products_shadow stats update failed: {e}") from e

    async def insert_product(self, record: CachedProductRecord) -> CachedProductRecord:
        try:
            await self._ensure_indexes()
            await self.products.insert_one(self._product_to_document(record))
        except PyMongoError as e:
            raise PersistenceError(f"products_shadow insert failed: {e}") from e

        logger.debug(
            "Product row inserted",
            product_id=record.id,
            barcode=record.barcode,
            country_code=record.country_code,
        )
        return record.with_analysis(None)

    async def insert_analysis(self, analysis: CachedKetoAnalysis) -> CachedKetoAnalysis:
        try:
            await self.analyses.insert_one(self._analysis_to_document(analysis))
        except PyMongoError as e:
            raise PersistenceError(f"keto_analysis insert failed: {e}") from e
        return analysis

    async def log_scan(self, event: ScanEvent) -> None:
        try:
            await self.scans.insert_one(
                {
                    "_id": event.id,
                    "product_id": event.product_id,
                    "scan_type": event.scan_type.value,
                    "model_confidence": event.model_confidence,
                    "country_code": event.country_code,
                    "created_at": event.created_at,
                }
            )
        except PyMongoError as e:
            raise PersistenceError(f"scan_events insert failed: {e}") from e
