from datetime import datetime, timedelta
from typing import List, Optional, Dict, Any

from pydantic import Field, field_validator

from geoplaces.core.config import settings
from geoplaces.models.base_model import CamelModel, GeoPoint

DEFAULT_CATEGORY = "other"

# --- Upstream-owned data (replaced wholesale on every refresh) ---
class OpeningHours(CamelModel):
    weekday_text: List[str] = Field(default_factory=list)
    open_now: Optional[bool] = None

class UpstreamFields(CamelModel):
    name: str = ""
    formatted_address: str = ""
    location: Optional[GeoPoint] = None
    rating: Optional[float] = None
    user_ratings_total: int = 0
    price_level: Optional[int] = None
    types: List[str] = Field(default_factory=list)
    phone: Optional[str] = None
    website: Optional[str] = None
    opening_hours: Optional[OpeningHours] = None
    photos: List[str] = Field(default_factory=list)
    business_status: Optional[str] = None

# What the provider client hands back: exactly the upstream-owned block.
UpstreamPayload = UpstreamFields

# --- Platform-owned data (never replaced by a refresh) ---
class PlaceAnalytics(CamelModel):
    total_views: int = 0
    last_viewed: Optional[datetime] = None

class PlatformFields(CamelModel):
    created_by: Optional[str] = None
    average_rating: float = 0.0
    total_reviews: int = 0
    category: str = DEFAULT_CATEGORY
    subcategories: List[str] = Field(default_factory=list)
    search_keywords: List[str] = Field(default_factory=list)
    total_adds: int = 0
    added_by: List[str] = Field(default_factory=list)
    created_at: datetime
    analytics: PlaceAnalytics = Field(default_factory=PlaceAnalytics)

# --- Sync metadata ---
class SyncMetadata(CamelModel):
    last_synced_at: datetime
    updated_at: Optional[datetime] = None
    is_active: bool = True

class PlaceRecord(CamelModel):
    id: str
    upstream: UpstreamFields
    platform: PlatformFields
    sync: SyncMetadata

    @field_validator("id")
    @classmethod
    def id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("place id must not be blank")
        return value

    @property
    def location(self) -> Optional[GeoPoint]:
        return self.upstream.location

    def is_fresh(self, now: datetime, ttl: timedelta = None) -> bool:
        """True while the last successful sync is younger than the staleness window."""
        ttl = ttl if ttl is not None else timedelta(days=settings.PLACE_CACHE_TTL_DAYS)
        return now - self.sync.last_synced_at < ttl

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(mode="python")

class GeoIndexEntry(CamelModel):
    place_id: str
    lat: float
    lng: float
    geohash: str
