"""
Local file-based repositories for STORAGE_MODE=local.
Uses JSON files instead of MongoDB, one concern per class, all rooted at the
same data directory.
"""
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from geoplaces.core.config import settings
from geoplaces.core.exceptions import RecordNotFoundError
from geoplaces.core.geo import query_cells
from geoplaces.core.logger import logs
from geoplaces.models.base_model import GeoPoint
from geoplaces.models.places_model import GeoIndexEntry, PlaceRecord
from geoplaces.repos.geo_repo import GeoIndex
from geoplaces.repos.places_repo import PlacesStore


def _safe_name(key: str) -> str:
    """Percent-encode a key into a filename, one file per distinct key."""
    return quote(key, safe="")


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _write_json(path: Path, data: Any) -> None:
    # Write-then-rename so a crash never leaves a half-written document behind.
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False, default=str)
    os.replace(tmp_path, path)


def _apply_dotted(doc: dict, set_fields: Optional[Dict[str, Any]], inc_fields: Optional[Dict[str, int]]) -> dict:
    """Applies Mongo-style $set / $inc with dotted paths to a plain dict."""
    for path, value in (set_fields or {}).items():
        *parents, leaf = path.split(".")
        node = doc
        for key in parents:
            if not isinstance(node.get(key), dict):
                node[key] = {}
            node = node[key]
        if isinstance(value, datetime):
            value = value.isoformat()
        node[leaf] = value
    for path, amount in (inc_fields or {}).items():
        *parents, leaf = path.split(".")
        node = doc
        for key in parents:
            if not isinstance(node.get(key), dict):
                node[key] = {}
            node = node[key]
        node[leaf] = (node.get(leaf) or 0) + amount
    return doc


class LocalPlacesRepository(PlacesStore):
    """Place records as one JSON document per place id."""

    def __init__(self, base_dir: str | Path | None = None):
        self.base_dir = Path(base_dir or settings.LOCAL_DATA_DIR)
        self.places_dir = self.base_dir / "places"
        self.places_dir.mkdir(parents=True, exist_ok=True)

    def _get_place_file(self, place_id: str) -> Path:
        return self.places_dir / f"{_safe_name(place_id)}.json"

    async def get(self, place_id: str) -> Optional[PlaceRecord]:
        doc = _read_json(self._get_place_file(place_id), None)
        if doc is None:
            return None
        return PlaceRecord.model_validate(doc)

    async def put(self, record: PlaceRecord) -> None:
        _write_json(self._get_place_file(record.id), record.model_dump(mode="json"))

    async def update(
        self,
        place_id: str,
        set_fields: Optional[Dict[str, Any]] = None,
        inc_fields: Optional[Dict[str, int]] = None,
    ) -> None:
        place_file = self._get_place_file(place_id)
        doc = _read_json(place_file, None)
        if doc is None:
            raise RecordNotFoundError(place_id)
        doc = _apply_dotted(doc, set_fields, inc_fields)
        # Validate before writing so a bad path never corrupts the record
        record = PlaceRecord.model_validate(doc)
        _write_json(place_file, record.model_dump(mode="json"))


class LocalGeoIndex(GeoIndex):
    """Geohash entries kept in a single JSON file keyed by place id."""

    def __init__(self, base_dir: str | Path | None = None):
        self.base_dir = Path(base_dir or settings.LOCAL_DATA_DIR)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.index_file = self.base_dir / "geo_index.json"

    def _load(self) -> Dict[str, dict]:
        return _read_json(self.index_file, {})

    async def upsert(self, place_id: str, location: GeoPoint) -> GeoIndexEntry:
        entry = self.make_entry(place_id, location)
        index = self._load()
        index[place_id] = {"lat": entry.lat, "lng": entry.lng, "geohash": entry.geohash}
        _write_json(self.index_file, index)
        return entry

    async def remove(self, place_id: str) -> None:
        index = self._load()
        if index.pop(place_id, None) is not None:
            _write_json(self.index_file, index)

    async def find_within_radius(
        self, center: GeoPoint, radius_km: float, max_results: Optional[int] = None
    ) -> List[str]:
        cells = query_cells(center.lat, center.lng, radius_km)
        entries = [
            GeoIndexEntry(place_id=place_id, **data)
            for place_id, data in self._load().items()
            if self.in_cells(data["geohash"], cells)
        ]
        return self.select_within_radius(entries, center, radius_km, max_results)


class LocalAnalyticsRepository:
    """Analytics events appended as JSON lines. Compatible with AnalyticsRepository."""

    def __init__(self, base_dir: str | Path | None = None):
        self.analytics_dir = Path(base_dir or settings.LOCAL_DATA_DIR) / "analytics"
        self.analytics_dir.mkdir(parents=True, exist_ok=True)
        self.events_file = self.analytics_dir / "place_analytics.jsonl"

    async def append_event(self, event: dict):
        with open(self.events_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(event, default=str) + "\n")

    def read_events(self) -> list[dict]:
        if not self.events_file.exists():
            return []
        with open(self.events_file, "r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]


class LocalUsersRepository:
    """User documents as JSON files. Compatible with UsersRepository."""

    def __init__(self, base_dir: str | Path | None = None):
        self.users_dir = Path(base_dir or settings.LOCAL_DATA_DIR) / "users"
        self.users_dir.mkdir(parents=True, exist_ok=True)

    def _get_user_file(self, user_id: str) -> Path:
        return self.users_dir / f"{_safe_name(user_id)}.json"

    async def get_user(self, user_id: str) -> Optional[dict]:
        return _read_json(self._get_user_file(user_id), None)

    async def get_users(self, user_ids: list[str]) -> dict[str, dict]:
        users = {}
        for user_id in user_ids:
            doc = await self.get_user(user_id)
            if doc is not None:
                users[user_id] = doc
        return users

    async def save_user(self, user_id: str, data: dict) -> None:
        _write_json(self._get_user_file(user_id), data)
        logs.log(logging.DEBUG, f"Saved local user {user_id}")


class LocalReviewsRepository:
    """Reviews as one JSON list per place. Compatible with ReviewsRepository."""

    def __init__(self, base_dir: str | Path | None = None):
        self.reviews_dir = Path(base_dir or settings.LOCAL_DATA_DIR) / "reviews"
        self.reviews_dir.mkdir(parents=True, exist_ok=True)

    def _get_reviews_file(self, place_id: str) -> Path:
        return self.reviews_dir / f"{_safe_name(place_id)}.json"

    async def latest_for_place(self, place_id: str, limit: int = 15) -> list[dict]:
        reviews = _read_json(self._get_reviews_file(place_id), [])
        epoch = datetime.min.replace(tzinfo=timezone.utc).isoformat()
        reviews.sort(key=lambda r: r.get("createdAt") or epoch, reverse=True)
        return reviews[:limit]

    async def save_reviews(self, place_id: str, reviews: list[dict]) -> None:
        _write_json(self._get_reviews_file(place_id), reviews)
