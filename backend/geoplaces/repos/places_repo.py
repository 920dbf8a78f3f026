from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from geoplaces.core.exceptions import RecordNotFoundError
from geoplaces.models.places_model import PlaceRecord


class PlacesStore(ABC):
    """Durable record store keyed by place id."""

    @abstractmethod
    async def get(self, place_id: str) -> Optional[PlaceRecord]:
        ...

    @abstractmethod
    async def put(self, record: PlaceRecord) -> None:
        """Writes the whole record, creating it if needed."""

    @abstractmethod
    async def update(
        self,
        place_id: str,
        set_fields: Optional[Dict[str, Any]] = None,
        inc_fields: Optional[Dict[str, int]] = None,
    ) -> None:
        """
        Partial update with dotted field paths ("platform.analytics.total_views").
        Raises RecordNotFoundError when the id is not stored.
        """

    async def get_many(self, place_ids: Iterable[str]) -> Dict[str, PlaceRecord]:
        found = {}
        for place_id in place_ids:
            record = await self.get(place_id)
            if record is not None:
                found[place_id] = record
        return found


class PlacesRepository(PlacesStore):
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db["places"]

    @staticmethod
    def _from_document(doc: dict) -> PlaceRecord:
        doc = dict(doc)
        doc.setdefault("id", doc.pop("_id"))
        doc.pop("_id", None)
        return PlaceRecord.model_validate(doc)

    async def get(self, place_id: str) -> Optional[PlaceRecord]:
        doc = await self.collection.find_one({"_id": place_id})
        if doc is None:
            return None
        return self._from_document(doc)

    async def get_many(self, place_ids: Iterable[str]) -> Dict[str, PlaceRecord]:
        ids = list(place_ids)
        if not ids:
            return {}
        found = {}
        async for doc in self.collection.find({"_id": {"$in": ids}}):
            record = self._from_document(doc)
            found[record.id] = record
        return found

    async def put(self, record: PlaceRecord) -> None:
        doc = record.to_storage()
        doc["_id"] = record.id
        await self.collection.replace_one({"_id": record.id}, doc, upsert=True)

    async def update(
        self,
        place_id: str,
        set_fields: Optional[Dict[str, Any]] = None,
        inc_fields: Optional[Dict[str, int]] = None,
    ) -> None:
        ops: Dict[str, Any] = {}
        if set_fields:
            ops["$set"] = set_fields
        if inc_fields:
            ops["$inc"] = inc_fields
        if not ops:
            return
        result = await self.collection.update_one({"_id": place_id}, ops)
        if result.matched_count == 0:
            raise RecordNotFoundError(place_id)
