from datetime import datetime
from enum import Enum
from typing import List, Optional, Dict, Any

from pydantic import Field, field_validator

from geoplaces.core.config import settings
from geoplaces.models.base_model import CamelModel, GeoPoint, Bounds
from geoplaces.models.places_model import PlaceRecord

# --- Enums ---
class SortKey(str, Enum):
    DISTANCE = "distance"
    RATING = "rating"
    NEWEST = "newest"

# --- Value objects ---
class SearchFilters(CamelModel):
    category: Optional[str] = None
    is_active: Optional[bool] = True
    min_rating: Optional[float] = Field(default=None, ge=0.0)
    tags: List[str] = Field(default_factory=list)
    bounds: Optional[Bounds] = None
    include_reviews: bool = False
    sort_by: SortKey = SortKey.DISTANCE

class Pagination(CamelModel):
    limit: int = Field(default=settings.SEARCH_DEFAULT_LIMIT, ge=1, le=settings.SEARCH_MAX_LIMIT)
    offset: int = Field(default=0, ge=0)

class PlaceReview(CamelModel):
    id: str
    user_id: Optional[str] = None
    user_name: str = "Usuário"
    user_photo: Optional[str] = None
    rating: Optional[float] = None
    review_type: Optional[str] = None
    comment: Optional[str] = None
    created_at: Optional[datetime] = None

class NearbyPlace(PlaceRecord):
    distance_km: float
    reviews: Optional[List[PlaceReview]] = None

# --- API Request/Response Models ---
class ResolvePlaceRequest(CamelModel):
    place_id: str = Field(..., description="Provider place id")
    force_refresh: bool = False
    language: str = settings.GOOGLE_MAPS_DEFAULT_LANGUAGE

    @field_validator("place_id")
    @classmethod
    def place_id_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("placeId is required")
        return value

class ResponseMeta(CamelModel):
    from_cache: bool
    last_update: Optional[datetime] = None
    language: str

class ResolvePlaceResponse(CamelModel):
    success: bool = True
    place: PlaceRecord
    from_cache: bool
    degraded: bool = False
    meta: ResponseMeta
    reviews: List[PlaceReview] = Field(default_factory=list)

class SearchNearbyRequest(CamelModel):
    center: GeoPoint
    radius_km: float = Field(default=settings.SEARCH_DEFAULT_RADIUS_KM, gt=0.0)
    filters: SearchFilters = Field(default_factory=SearchFilters)
    pagination: Pagination = Field(default_factory=Pagination)
    bounds: Optional[Bounds] = None

class SearchNearbyResponse(CamelModel):
    success: bool = True
    places: List[NearbyPlace]
    total: int
    has_more: bool
    center: GeoPoint
    radius_km: float
    applied_filters: SearchFilters

class IngestPlaceRequest(CamelModel):
    place_id: str
    google_data: Dict[str, Any]

    @field_validator("place_id")
    @classmethod
    def place_id_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("placeId is required")
        return value

class IngestPlaceResponse(CamelModel):
    success: bool = True
    place_id: str
    message: str
    place: PlaceRecord
