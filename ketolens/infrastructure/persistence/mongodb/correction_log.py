"""MongoDB correction log (append-only `corrections` collection)."""

from datetime import timezone
from typing import Any, List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from ketolens.domain.correction.models import CorrectionAction, CorrectionEvent
from ketolens.domain.shared.errors import PersistenceError


class MongoCorrectionLog:
    """
    MongoDB implementation of ICorrectionLog.

    Only inserts and reads; documents are never updated or deleted.
    """

    COLLECTION_NAME = "corrections"

    def __init__(self, db: AsyncIOMotorDatabase[Any]):
        self.db = db
        self.collection = db[self.COLLECTION_NAME]
        self._indexes_created = False

    async def _ensure_indexes(self) -> None:
        if self._indexes_created:
            return
        await self.collection.create_index(
            [("product_or_scan_id", 1), ("created_at", 1)],
            name="idx_scan_created",
        )
        self._indexes_created = True

    async def append(self, event: CorrectionEvent) -> None:
        try:
            await self._ensure_indexes()
            await self.collection.insert_one(
                {
                    "product_or_scan_id": event.product_or_scan_id,
                    "action": event.action.value,
                    "original_label": event.original_label,
                    "corrected_label": event.corrected_label,
                    "model_confidence": event.model_confidence,
                    "created_at": event.created_at,
                }
            )
        except PyMongoError as e:
            raise PersistenceError(f"corrections insert failed: {e}") from e

    async def list_for(self, product_or_scan_id: str) -> List[CorrectionEvent]:
        try:
            cursor = self.collection.find(
                {"product_or_scan_id": product_or_scan_id}
            ).sort("created_at", 1)
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise PersistenceError(f"corrections query failed: {e}") from e

        try:
            return [self._from_document(doc) for doc in docs]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise PersistenceError(f"Malformed correction document: {e!r}") from e

    @staticmethod
    def _from_document(doc: dict[str, Any]) -> CorrectionEvent:
        created_at = doc["created_at"]
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return CorrectionEvent(
            product_or_scan_id=doc["product_or_scan_id"],
            action=CorrectionAction(doc["action"]),
            original_label=doc["original_label"],
            corrected_label=doc.get("corrected_label"),
            model_confidence=doc.get("model_confidence"),
            created_at=created_at,
        )
