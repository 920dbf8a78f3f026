"""
Merge of a freshly fetched provider payload into a cached place record.

Upstream-owned fields always take the fetched value. Platform-owned fields
keep the cached value, except a category still at the "other" sentinel,
which adopts the newly computed category.
"""
from datetime import datetime
from typing import List, Optional

from geoplaces.models.places_model import (
    DEFAULT_CATEGORY,
    PlaceRecord,
    PlatformFields,
    SyncMetadata,
    UpstreamPayload,
)

# Priority order matters: the first known type in the provider's list wins.
CATEGORY_BY_TYPE = {
    "restaurant": "restaurant",
    "food": "restaurant",
    "meal_takeaway": "restaurant",
    "meal_delivery": "restaurant",
    "cafe": "cafe",
    "bar": "bar",
    "night_club": "nightlife",
    "tourist_attraction": "attraction",
    "museum": "attraction",
    "shopping_mall": "shopping",
    "store": "shopping",
    "lodging": "lodging",
    "hospital": "healthcare",
    "pharmacy": "healthcare",
    "school": "education",
    "university": "education",
    "gym": "sports",
    "spa": "wellness",
    "beauty_salon": "wellness",
    "gas_station": "services",
    "bank": "services",
    "atm": "services",
}

GENERIC_TYPES = {"establishment", "point_of_interest"}
MAX_SUBCATEGORIES = 5
MIN_KEYWORD_LENGTH = 3


def categorize_place(types: List[str]) -> str:
    for place_type in types:
        category = CATEGORY_BY_TYPE.get(place_type)
        if category:
            return category
    return DEFAULT_CATEGORY


def extract_subcategories(types: List[str]) -> List[str]:
    return [t for t in types if t not in GENERIC_TYPES][:MAX_SUBCATEGORIES]


def generate_search_keywords(name: str, address: str, category: str, types: List[str]) -> List[str]:
    words = [name.lower(), address.lower(), category.lower()]
    words.extend(t.replace("_", " ").lower() for t in types)
    text = " ".join(words)

    keywords: List[str] = []
    seen = set()
    for word in text.split():
        word = word.strip(",.;:()")
        if len(word) < MIN_KEYWORD_LENGTH or word in seen:
            continue
        seen.add(word)
        keywords.append(word)
    return keywords


def merge(
    existing: Optional[PlaceRecord],
    fetched: UpstreamPayload,
    fetched_at: datetime,
    place_id: Optional[str] = None,
    created_by: Optional[str] = None,
) -> PlaceRecord:
    """
    Combines the cached record (if any) with a fetched payload.

    place_id is required when there is no existing record. created_by only
    applies on first creation.
    """
    category = categorize_place(fetched.types)
    upstream = fetched.model_copy(deep=True)
    sync = SyncMetadata(
        last_synced_at=fetched_at,
        updated_at=fetched_at,
        is_active=existing.sync.is_active if existing is not None else True,
    )

    if existing is None:
        if not place_id:
            raise ValueError("place_id is required to create a new record")
        platform = PlatformFields(
            created_by=created_by,
            category=category,
            subcategories=extract_subcategories(fetched.types),
            search_keywords=generate_search_keywords(
                fetched.name, fetched.formatted_address, category, fetched.types
            ),
            created_at=fetched_at,
        )
        return PlaceRecord(id=place_id, upstream=upstream, platform=platform, sync=sync)

    platform = existing.platform.model_copy(deep=True)
    if platform.category == DEFAULT_CATEGORY:
        platform.category = category
    return PlaceRecord(id=existing.id, upstream=upstream, platform=platform, sync=sync)
