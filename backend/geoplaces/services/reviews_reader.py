from typing import Dict, Iterable, List, Optional

from geoplaces.core.config import settings
from geoplaces.models.search_model import PlaceReview
from geoplaces.services.identity_service import DEFAULT_USER_NAME, IdentityService


class ReviewsReader:
    """Latest reviews of a place, each with its author's display name and photo."""

    def __init__(self, reviews_repo, identity: Optional[IdentityService] = None, per_place: Optional[int] = None):
        self.reviews_repo = reviews_repo
        self.identity = identity
        self.per_place = per_place or settings.SEARCH_REVIEWS_PER_PLACE

    async def latest_for_place(self, place_id: str) -> List[PlaceReview]:
        return (await self.latest_for_places([place_id]))[place_id]

    async def latest_for_places(self, place_ids: Iterable[str]) -> Dict[str, List[PlaceReview]]:
        raw_by_place = {}
        author_ids = []
        for place_id in place_ids:
            raw = await self.reviews_repo.latest_for_place(place_id, limit=self.per_place)
            raw_by_place[place_id] = raw
            author_ids.extend(r["userId"] for r in raw if r.get("userId"))

        # One profile lookup for every author on the page
        profiles = await self.identity.get_profiles(author_ids) if self.identity and author_ids else {}
        return {
            place_id: [self._to_review(raw, profiles) for raw in raws]
            for place_id, raws in raw_by_place.items()
        }

    @staticmethod
    def _to_review(raw: dict, profiles: Dict[str, dict]) -> PlaceReview:
        profile = profiles.get(raw.get("userId"), {})
        return PlaceReview(
            id=str(raw.get("id")),
            user_id=raw.get("userId"),
            user_name=profile.get("name") or DEFAULT_USER_NAME,
            user_photo=profile.get("photo_url"),
            rating=raw.get("rating"),
            review_type=raw.get("reviewType"),
            comment=raw.get("comment"),
            created_at=raw.get("createdAt"),
        )
