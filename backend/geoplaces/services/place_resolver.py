import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

from geoplaces.core.config import settings
from geoplaces.core.exceptions import (
    InternalError,
    PlaceNotFoundError,
    ServiceUnavailableError,
    UpstreamError,
    UpstreamErrorKind,
)
from geoplaces.core.logger import logs
from geoplaces.models.places_model import PlaceRecord
from geoplaces.repos.geo_repo import GeoIndex
from geoplaces.repos.places_repo import PlacesStore
from geoplaces.services.access_recorder import AccessRecorder
from geoplaces.services.merge_policy import merge
from geoplaces.services.upstream_client import UpstreamPlaceClient


class ResolveState(str, Enum):
    FRESH = "fresh"
    STALE = "stale"
    MISSING = "missing"
    RESOLVED = "resolved"
    DEGRADED = "degraded"


@dataclass
class ResolveResult:
    place: PlaceRecord
    from_cache: bool
    degraded: bool = False
    # Outcome of the cache read, None when a refresh was forced
    cache_state: Optional[ResolveState] = None

    @property
    def state(self) -> ResolveState:
        return ResolveState.DEGRADED if self.degraded else ResolveState.RESOLVED


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


async def persist_place(store: PlacesStore, geo_index: GeoIndex, record: PlaceRecord) -> None:
    """Writes the record, then keeps its geo entry in step with it."""
    await store.put(record)
    if record.sync.is_active and record.location is not None:
        await geo_index.upsert(record.id, record.location)
    else:
        await geo_index.remove(record.id)


class PlaceResolver:
    """
    Serves a place from the durable cache when fresh, otherwise refreshes it
    from the provider, merges, and writes it back. A provider failure falls
    back to whatever is cached, however old.
    """

    def __init__(
        self,
        store: PlacesStore,
        geo_index: GeoIndex,
        upstream: UpstreamPlaceClient,
        recorder: Optional[AccessRecorder] = None,
        now: Optional[Callable[[], datetime]] = None,
        ttl: Optional[timedelta] = None,
    ):
        self.store = store
        self.geo_index = geo_index
        self.upstream = upstream
        self.recorder = recorder
        self.now = now or _utc_now
        self.ttl = ttl if ttl is not None else timedelta(days=settings.PLACE_CACHE_TTL_DAYS)

    async def resolve(
        self,
        place_id: str,
        force_refresh: bool = False,
        language: Optional[str] = None,
        caller_id: Optional[str] = None,
    ) -> ResolveResult:
        try:
            return await self._resolve(place_id, force_refresh, language, caller_id)
        finally:
            if self.recorder is not None:
                self.recorder.dispatch(caller_id, place_id)

    async def _read(self, place_id: str) -> Optional[PlaceRecord]:
        try:
            return await self.store.get(place_id)
        except Exception as e:
            logs.log(logging.ERROR, f"Failed to read place {place_id}: {str(e)}", exc_info=True)
            raise InternalError("Failed to read place record") from e

    async def _resolve(
        self,
        place_id: str,
        force_refresh: bool,
        language: Optional[str],
        caller_id: Optional[str],
    ) -> ResolveResult:
        language = language or settings.GOOGLE_MAPS_DEFAULT_LANGUAGE
        existing: Optional[PlaceRecord] = None
        cache_state: Optional[ResolveState] = None

        if not force_refresh:
            existing = await self._read(place_id)
            if existing is None:
                cache_state = ResolveState.MISSING
            elif existing.is_fresh(self.now(), self.ttl):
                logs.log(logging.INFO, f"✓ Place cache HIT for {place_id}")
                return ResolveResult(place=existing, from_cache=True, cache_state=ResolveState.FRESH)
            else:
                cache_state = ResolveState.STALE
            logs.log(logging.INFO, f"✗ Place cache {cache_state.value.upper()} for {place_id}, refreshing")
        else:
            logs.log(logging.INFO, f"Forced refresh for {place_id}")

        try:
            fetched = await self.upstream.fetch_details(place_id, language)
        except UpstreamError as e:
            if force_refresh:
                existing = await self._read(place_id)
            if existing is not None:
                logs.log(
                    logging.WARNING,
                    f"Serving cached place {place_id} after upstream failure",
                    extra={"kind": e.kind.value, "status": e.status},
                )
                return ResolveResult(place=existing, from_cache=True, degraded=True, cache_state=cache_state)
            logs.log(logging.ERROR, f"Upstream failed for {place_id} with nothing cached", extra={"kind": e.kind.value})
            if e.kind == UpstreamErrorKind.NOT_FOUND:
                raise PlaceNotFoundError(place_id) from e
            raise ServiceUnavailableError(details={"place_id": place_id, "reason": e.kind.value}) from e

        if force_refresh:
            existing = await self._read(place_id)

        merged = merge(existing, fetched, self.now(), place_id=place_id, created_by=caller_id)
        try:
            await persist_place(self.store, self.geo_index, merged)
        except Exception as e:
            logs.log(logging.ERROR, f"Failed to persist place {place_id}: {str(e)}", exc_info=True)
            raise InternalError("Fetched place could not be saved", details={"place_id": place_id}) from e

        logs.log(logging.INFO, f"Place {place_id} refreshed from upstream and saved", extra={"created": existing is None})
        return ResolveResult(place=merged, from_cache=False, cache_state=cache_state)
