import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from geoplaces.core.config import settings
from geoplaces.core.exceptions import (
    UpstreamError,
    UpstreamNotFoundError,
    UpstreamRateLimitedError,
    UpstreamAccessDeniedError,
    UpstreamTransientError,
)
from geoplaces.core.logger import logs
from geoplaces.models.base_model import GeoPoint
from geoplaces.models.places_model import OpeningHours, UpstreamPayload

DETAIL_FIELDS = [
    "place_id",
    "name",
    "formatted_address",
    "geometry",
    "rating",
    "user_ratings_total",
    "price_level",
    "types",
    "photos",
    "formatted_phone_number",
    "international_phone_number",
    "website",
    "opening_hours",
    "business_status",
]

NOT_FOUND_STATUSES = {"NOT_FOUND", "ZERO_RESULTS"}


def map_provider_status(status: Optional[str], error_message: Optional[str] = None) -> UpstreamError:
    """Maps a non-OK provider status onto the upstream error taxonomy."""
    detail = f"Places API status {status}"
    if error_message:
        detail = f"{detail}: {error_message}"
    if status in NOT_FOUND_STATUSES:
        return UpstreamNotFoundError(detail, status=status)
    if status == "OVER_QUERY_LIMIT":
        return UpstreamRateLimitedError(detail, status=status)
    if status == "REQUEST_DENIED":
        return UpstreamAccessDeniedError(detail, status=status)
    return UpstreamTransientError(detail, status=status)


def parse_place_details(result: Dict[str, Any]) -> UpstreamPayload:
    """
    Normalizes a place details `result` object into the upstream-owned block.
    Raises pydantic.ValidationError when values have the wrong shape.
    """
    location = None
    geo = (result.get("geometry") or {}).get("location") or {}
    if geo.get("lat") is not None and geo.get("lng") is not None:
        location = GeoPoint(lat=geo["lat"], lng=geo["lng"])

    opening_hours = None
    hours = result.get("opening_hours")
    if hours:
        opening_hours = OpeningHours(
            weekday_text=hours.get("weekday_text") or [],
            open_now=hours.get("open_now"),
        )

    photos = []
    for photo in result.get("photos") or []:
        ref = photo.get("photo_reference") if isinstance(photo, dict) else photo
        if ref:
            photos.append(ref)

    return UpstreamPayload(
        name=result.get("name") or "",
        formatted_address=result.get("formatted_address") or "",
        location=location,
        rating=result.get("rating"),
        user_ratings_total=result.get("user_ratings_total") or 0,
        price_level=result.get("price_level"),
        types=result.get("types") or [],
        phone=result.get("international_phone_number") or result.get("formatted_phone_number"),
        website=result.get("website"),
        opening_hours=opening_hours,
        photos=photos,
        business_status=result.get("business_status"),
    )


class UpstreamPlaceClient:
    """
    Google Places "place details" lookup.

    Makes exactly one HTTP attempt per call. Retrying is left to the caller.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        region: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.GOOGLE_MAPS_API_KEY
        self.base_url = base_url or settings.GOOGLE_PLACES_DETAILS_URL
        self.region = region or settings.GOOGLE_MAPS_DEFAULT_REGION
        self.timeout = timeout or settings.UPSTREAM_TIMEOUT_SECONDS
        self.transport = transport

    async def fetch_details(self, place_id: str, language: Optional[str] = None) -> UpstreamPayload:
        language = language or settings.GOOGLE_MAPS_DEFAULT_LANGUAGE
        if not self.api_key:
            raise UpstreamAccessDeniedError("GOOGLE_MAPS_API_KEY is not configured")

        params = {
            "place_id": place_id,
            "key": self.api_key,
            "language": language,
            "region": self.region,
            "fields": ",".join(DETAIL_FIELDS),
        }
        logs.log(logging.INFO, f"Fetching place details for {place_id}", extra={"language": language})

        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            try:
                resp = await client.get(self.base_url, params=params)
            except httpx.HTTPError as e:
                logs.log(logging.ERROR, f"Places API request failed for {place_id}: {str(e)}")
                raise UpstreamTransientError(f"Places API request failed: {str(e)}") from e

        if resp.status_code == 429:
            raise UpstreamRateLimitedError("Places API rate limited", status=str(resp.status_code))
        if resp.status_code in (401, 403):
            raise UpstreamAccessDeniedError("Places API denied access", status=str(resp.status_code))
        if resp.status_code >= 400:
            raise UpstreamTransientError(f"Places API HTTP {resp.status_code}", status=str(resp.status_code))

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamTransientError("Non-JSON response from Places API") from e
        if not isinstance(data, dict):
            raise UpstreamTransientError("Places API response is not a JSON object")

        status = data.get("status")
        if status != "OK":
            error = map_provider_status(status, data.get("error_message"))
            logs.log(
                logging.ERROR,
                f"Places API error for {place_id}",
                extra={"status": status, "kind": error.kind.value, "error_message": data.get("error_message")},
            )
            raise error

        try:
            payload = parse_place_details(data.get("result") or {})
        except (ValidationError, AttributeError, TypeError) as e:
            raise UpstreamTransientError(f"Malformed place details for {place_id}") from e

        logs.log(
            logging.INFO,
            f"Fetched place details for {place_id}",
            extra={"name": payload.name, "has_location": payload.location is not None, "rating": payload.rating},
        )
        return payload
