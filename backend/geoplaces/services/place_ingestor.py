import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from geoplaces.core.exceptions import InternalError, InvalidArgumentError
from geoplaces.core.logger import logs
from geoplaces.models.places_model import PlaceRecord
from geoplaces.repos.geo_repo import GeoIndex
from geoplaces.repos.places_repo import PlacesStore
from geoplaces.services.merge_policy import merge
from geoplaces.services.place_resolver import persist_place
from geoplaces.services.upstream_client import parse_place_details


class PlaceIngestor:
    """Saves provider data the client already fetched, with the same merge rules as a refresh."""

    def __init__(self, store: PlacesStore, geo_index: GeoIndex, now: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.geo_index = geo_index
        self.now = now or (lambda: datetime.now(timezone.utc))

    async def ingest(self, place_id: str, google_data: Dict[str, Any], caller_id: Optional[str] = None) -> PlaceRecord:
        try:
            fetched = parse_place_details(google_data)
        except (ValidationError, AttributeError, TypeError) as e:
            raise InvalidArgumentError("googleData is not a valid place details result", details={"place_id": place_id}) from e

        try:
            existing = await self.store.get(place_id)
            merged = merge(existing, fetched, self.now(), place_id=place_id, created_by=caller_id)
            await persist_place(self.store, self.geo_index, merged)
        except Exception as e:
            logs.log(logging.ERROR, f"Failed to ingest place {place_id}: {str(e)}", exc_info=True)
            raise InternalError("Place could not be saved", details={"place_id": place_id}) from e

        logs.log(logging.INFO, f"Place {place_id} ingested", extra={"created": existing is None, "category": merged.platform.category})
        return merged
