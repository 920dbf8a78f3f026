import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header

from geoplaces.core.config import settings
from geoplaces.core.db_connection import get_db
from geoplaces.core.exceptions import (
    InternalError,
    PermissionDeniedError,
    PlacesServiceError,
    UnauthenticatedError,
)
from geoplaces.core.logger import logs
from geoplaces.models.search_model import (
    IngestPlaceRequest,
    IngestPlaceResponse,
    ResolvePlaceRequest,
    ResolvePlaceResponse,
    ResponseMeta,
    SearchNearbyRequest,
    SearchNearbyResponse,
)
from geoplaces.repos.analytics_repo import AnalyticsRepository
from geoplaces.repos.geo_repo import GeoIndex, GeoIndexRepository
from geoplaces.repos.local_repo import (
    LocalAnalyticsRepository,
    LocalGeoIndex,
    LocalPlacesRepository,
    LocalReviewsRepository,
    LocalUsersRepository,
)
from geoplaces.repos.places_repo import PlacesRepository, PlacesStore
from geoplaces.repos.reviews_repo import ReviewsRepository
from geoplaces.repos.users_repo import UsersRepository
from geoplaces.services.access_recorder import AccessRecorder
from geoplaces.services.identity_service import IdentityService
from geoplaces.services.nearby_search import NearbySearchEngine
from geoplaces.services.place_ingestor import PlaceIngestor
from geoplaces.services.place_resolver import PlaceResolver
from geoplaces.services.reviews_reader import ReviewsReader
from geoplaces.services.upstream_client import UpstreamPlaceClient

router = APIRouter(prefix="/places", tags=["places"])

# --- Dependency Injection Helpers ---
async def get_places_store() -> PlacesStore:
    """Get the place record store for the configured storage mode."""
    if settings.STORAGE_MODE == "local":
        return LocalPlacesRepository()
    return PlacesRepository(await get_db())

async def get_geo_index() -> GeoIndex:
    if settings.STORAGE_MODE == "local":
        return LocalGeoIndex()
    return GeoIndexRepository(await get_db())

async def get_analytics_repo():
    if settings.STORAGE_MODE == "local":
        return LocalAnalyticsRepository()
    return AnalyticsRepository(await get_db())

async def get_users_repo():
    if settings.STORAGE_MODE == "local":
        return LocalUsersRepository()
    return UsersRepository(await get_db())

async def get_reviews_repo():
    if settings.STORAGE_MODE == "local":
        return LocalReviewsRepository()
    return ReviewsRepository(await get_db())

def get_upstream_client() -> UpstreamPlaceClient:
    return UpstreamPlaceClient()

def get_identity_service(users_repo=Depends(get_users_repo)) -> IdentityService:
    return IdentityService(users_repo)

def get_access_recorder(
    store: PlacesStore = Depends(get_places_store),
    analytics_repo=Depends(get_analytics_repo),
) -> AccessRecorder:
    return AccessRecorder(store, analytics_repo)

def get_resolver(
    store: PlacesStore = Depends(get_places_store),
    geo_index: GeoIndex = Depends(get_geo_index),
    upstream: UpstreamPlaceClient = Depends(get_upstream_client),
    recorder: AccessRecorder = Depends(get_access_recorder),
) -> PlaceResolver:
    return PlaceResolver(store, geo_index, upstream, recorder)

def get_reviews_reader(
    reviews_repo=Depends(get_reviews_repo),
    identity: IdentityService = Depends(get_identity_service),
) -> ReviewsReader:
    return ReviewsReader(reviews_repo, identity)

def get_search_engine(
    store: PlacesStore = Depends(get_places_store),
    geo_index: GeoIndex = Depends(get_geo_index),
    reviews: ReviewsReader = Depends(get_reviews_reader),
) -> NearbySearchEngine:
    return NearbySearchEngine(store, geo_index, reviews=reviews)

def get_ingestor(
    store: PlacesStore = Depends(get_places_store),
    geo_index: GeoIndex = Depends(get_geo_index),
) -> PlaceIngestor:
    return PlaceIngestor(store, geo_index)

async def get_caller_id(
    x_user_id: Optional[str] = Header(default=None),
    identity: IdentityService = Depends(get_identity_service),
) -> str:
    """Caller identity as forwarded by the authenticating gateway."""
    if not x_user_id:
        raise UnauthenticatedError()
    if not await identity.is_caller_active(x_user_id):
        raise PermissionDeniedError(details={"user_id": x_user_id})
    return x_user_id

# --- The Endpoints ---
@router.post("/resolve", response_model=ResolvePlaceResponse)
async def resolve_place_endpoint(
    request: ResolvePlaceRequest,
    caller_id: str = Depends(get_caller_id),
    resolver: PlaceResolver = Depends(get_resolver),
    reviews: ReviewsReader = Depends(get_reviews_reader),
):
    logs.log(
        logging.INFO,
        f"Resolving place {request.place_id} for user {caller_id}",
        extra={"force_refresh": request.force_refresh, "language": request.language},
    )
    try:
        result = await resolver.resolve(
            request.place_id,
            force_refresh=request.force_refresh,
            language=request.language,
            caller_id=caller_id,
        )
        latest_reviews = await reviews.latest_for_place(result.place.id)
    except PlacesServiceError:
        raise
    except Exception as e:
        logs.log(logging.ERROR, f"Error in resolve_place_endpoint: {str(e)}", exc_info=True)
        raise InternalError() from e

    return ResolvePlaceResponse(
        place=result.place,
        from_cache=result.from_cache,
        degraded=result.degraded,
        meta=ResponseMeta(
            from_cache=result.from_cache,
            last_update=result.place.sync.last_synced_at,
            language=request.language,
        ),
        reviews=latest_reviews,
    )

@router.post("/nearby", response_model=SearchNearbyResponse)
async def search_nearby_endpoint(
    request: SearchNearbyRequest,
    caller_id: str = Depends(get_caller_id),
    engine: NearbySearchEngine = Depends(get_search_engine),
):
    filters = request.filters
    if filters.bounds is None and request.bounds is not None:
        filters = filters.model_copy(update={"bounds": request.bounds})

    logs.log(
        logging.INFO,
        f"Nearby search for user {caller_id}",
        extra={"center": request.center.model_dump(), "radius_km": request.radius_km},
    )
    try:
        result = await engine.search_nearby(request.center, request.radius_km, filters, request.pagination)
    except PlacesServiceError:
        raise
    except Exception as e:
        logs.log(logging.ERROR, f"Error in search_nearby_endpoint: {str(e)}", exc_info=True)
        raise InternalError() from e

    return SearchNearbyResponse(
        places=result.places,
        total=result.total,
        has_more=result.has_more,
        center=request.center,
        radius_km=request.radius_km,
        applied_filters=filters,
    )

@router.post("/ingest", response_model=IngestPlaceResponse)
async def ingest_place_endpoint(
    request: IngestPlaceRequest,
    caller_id: str = Depends(get_caller_id),
    ingestor: PlaceIngestor = Depends(get_ingestor),
):
    """Processes and saves provider data the client already fetched."""
    place = await ingestor.ingest(request.place_id, request.google_data, caller_id=caller_id)
    return IngestPlaceResponse(
        place_id=place.id,
        message="Place processed and saved",
        place=place,
    )
