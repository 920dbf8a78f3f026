from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from geoplaces.core.config import settings
from geoplaces.core.geo import encode_geohash, haversine_km, prefix_range, query_cells
from geoplaces.models.base_model import GeoPoint
from geoplaces.models.places_model import GeoIndexEntry


class GeoIndex(ABC):
    """
    Spatial index of place coordinates, bucketed by geohash.

    find_within_radius returns ids in index order (geohash, then id) and
    guarantees every id is within radius_km of the center by great-circle
    distance.
    """

    precision: int = settings.GEOHASH_STORED_PRECISION

    def make_entry(self, place_id: str, location: GeoPoint) -> GeoIndexEntry:
        return GeoIndexEntry(
            place_id=place_id,
            lat=location.lat,
            lng=location.lng,
            geohash=encode_geohash(location.lat, location.lng, self.precision),
        )

    @abstractmethod
    async def upsert(self, place_id: str, location: GeoPoint) -> GeoIndexEntry:
        ...

    @abstractmethod
    async def remove(self, place_id: str) -> None:
        ...

    @abstractmethod
    async def find_within_radius(
        self, center: GeoPoint, radius_km: float, max_results: Optional[int] = None
    ) -> List[str]:
        ...

    @staticmethod
    def select_within_radius(
        entries: Iterable[GeoIndexEntry],
        center: GeoPoint,
        radius_km: float,
        max_results: Optional[int] = None,
    ) -> List[str]:
        ordered = sorted(entries, key=lambda e: (e.geohash, e.place_id))
        ids: List[str] = []
        for entry in ordered:
            if haversine_km(center.lat, center.lng, entry.lat, entry.lng) > radius_km:
                continue
            ids.append(entry.place_id)
            if max_results is not None and len(ids) >= max_results:
                break
        return ids

    @staticmethod
    def in_cells(geohash: str, cells: Optional[List[str]]) -> bool:
        if cells is None:
            return True
        return any(geohash.startswith(cell) for cell in cells)


class GeoIndexRepository(GeoIndex):
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db["places_geo"]

    async def upsert(self, place_id: str, location: GeoPoint) -> GeoIndexEntry:
        entry = self.make_entry(place_id, location)
        await self.collection.update_one(
            {"_id": place_id},
            {"$set": {"lat": entry.lat, "lng": entry.lng, "geohash": entry.geohash}},
            upsert=True
        )
        return entry

    async def remove(self, place_id: str) -> None:
        await self.collection.delete_one({"_id": place_id})

    async def find_within_radius(
        self, center: GeoPoint, radius_km: float, max_results: Optional[int] = None
    ) -> List[str]:
        cells = query_cells(center.lat, center.lng, radius_km)
        if cells is None:
            query = {}
        else:
            ranges = [prefix_range(cell) for cell in cells]
            query = {"$or": [{"geohash": {"$gte": start, "$lt": end}} for start, end in ranges]}

        entries = []
        cursor = self.collection.find(query).sort([("geohash", 1), ("_id", 1)])
        async for doc in cursor:
            entries.append(
                GeoIndexEntry(place_id=doc["_id"], lat=doc["lat"], lng=doc["lng"], geohash=doc["geohash"])
            )
        return self.select_within_radius(entries, center, radius_km, max_results)
