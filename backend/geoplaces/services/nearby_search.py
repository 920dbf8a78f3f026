"""
Nearby place search.

The geo index answers the radius query; everything after that (filters,
pagination, sorting) runs in memory over the matched records.

Pagination is an offset skip over a freshly executed radius query, so pages
are not isolated from writes that land between requests: a record added or
moved between two page requests can be skipped or returned twice.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from geoplaces.core.config import settings
from geoplaces.core.geo import haversine_km
from geoplaces.core.logger import logs
from geoplaces.models.base_model import GeoPoint
from geoplaces.models.places_model import PlaceRecord
from geoplaces.models.search_model import (
    NearbyPlace,
    Pagination,
    SearchFilters,
    SortKey,
)
from geoplaces.repos.geo_repo import GeoIndex
from geoplaces.repos.places_repo import PlacesStore
from geoplaces.services.reviews_reader import ReviewsReader

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class SearchResult:
    places: List[NearbyPlace]
    total: int
    has_more: bool


def _matches(record: PlaceRecord, filters: SearchFilters) -> bool:
    if filters.category is not None and record.platform.category != filters.category:
        return False
    if filters.is_active is not None and record.sync.is_active != filters.is_active:
        return False
    if filters.min_rating is not None:
        rating = record.upstream.rating
        if rating is None or rating < filters.min_rating:
            return False
    if filters.bounds is not None:
        if record.location is None or not filters.bounds.contains(record.location):
            return False
    if filters.tags:
        place_tags = set(record.upstream.types) | set(record.platform.subcategories)
        if not place_tags.intersection(filters.tags):
            return False
    return True


def _sort_page(page: List[NearbyPlace], sort_by: SortKey) -> List[NearbyPlace]:
    if sort_by == SortKey.RATING:
        return sorted(
            page,
            key=lambda p: (p.upstream.rating is None, -(p.upstream.rating or 0.0), p.distance_km),
        )
    if sort_by == SortKey.NEWEST:
        return sorted(page, key=lambda p: p.platform.created_at or _OLDEST, reverse=True)
    return sorted(page, key=lambda p: p.distance_km)


class NearbySearchEngine:
    def __init__(
        self,
        store: PlacesStore,
        geo_index: GeoIndex,
        reviews: Optional[ReviewsReader] = None,
        overfetch_factor: Optional[int] = None,
        max_candidates: Optional[int] = None,
    ):
        self.store = store
        self.geo_index = geo_index
        self.reviews = reviews
        self.overfetch_factor = overfetch_factor or settings.SEARCH_OVERFETCH_FACTOR
        self.max_candidates = max_candidates or settings.SEARCH_MAX_CANDIDATES

    def candidate_cap(self, pagination: Pagination) -> int:
        return min((pagination.offset + pagination.limit) * self.overfetch_factor, self.max_candidates)

    async def search_nearby(
        self,
        center: GeoPoint,
        radius_km: float,
        filters: Optional[SearchFilters] = None,
        pagination: Optional[Pagination] = None,
    ) -> SearchResult:
        filters = filters or SearchFilters()
        pagination = pagination or Pagination()

        # 1. Radius query (the only geography-aware step)
        ids = await self.geo_index.find_within_radius(center, radius_km, max_results=self.candidate_cap(pagination))

        # 2. Resolve records, keeping index order
        records = await self.store.get_many(ids)

        # 3. Filters
        filtered = [records[i] for i in ids if i in records and _matches(records[i], filters)]

        # 4. Offset skip, then collect one page
        window = filtered[pagination.offset:pagination.offset + pagination.limit]
        page = [
            NearbyPlace(
                **record.model_dump(),
                distance_km=round(haversine_km(center.lat, center.lng, record.location.lat, record.location.lng), 3),
            )
            for record in window
            if record.location is not None
        ]

        # 5. Sort the page
        page = _sort_page(page, filters.sort_by)

        if filters.include_reviews:
            await self._attach_reviews(page)

        logs.log(
            logging.INFO,
            f"Nearby search at {center.lat},{center.lng} r={radius_km}km",
            extra={"candidates": len(ids), "filtered": len(filtered), "returned": len(page)},
        )
        return SearchResult(places=page, total=len(filtered), has_more=len(page) == pagination.limit)

    async def _attach_reviews(self, page: List[NearbyPlace]) -> None:
        if self.reviews is None:
            for place in page:
                place.reviews = []
            return
        reviews_by_place = await self.reviews.latest_for_places(place.id for place in page)
        for place in page:
            place.reviews = reviews_by_place[place.id]
