from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Storage mode: "mongodb" or "local"
    STORAGE_MODE: str = "local"

    # MongoDB Configuration (only needed if STORAGE_MODE=mongodb)
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "places_db"

    # Local JSON storage root (only used if STORAGE_MODE=local)
    LOCAL_DATA_DIR: str = "data"

    LOGGER: int = 20

    # Google Places (place details) Configuration
    GOOGLE_MAPS_API_KEY: str = ""
    GOOGLE_MAPS_DEFAULT_LANGUAGE: str = "pt-BR"
    GOOGLE_MAPS_DEFAULT_REGION: str = "BR"
    GOOGLE_PLACES_DETAILS_URL: str = "https://maps.googleapis.com/maps/api/place/details/json"
    UPSTREAM_TIMEOUT_SECONDS: float = 10.0

    # Place cache
    PLACE_CACHE_TTL_DAYS: int = 7
    GEOHASH_STORED_PRECISION: int = 10

    # Nearby search
    SEARCH_DEFAULT_RADIUS_KM: float = 10.0
    SEARCH_DEFAULT_LIMIT: int = 50
    SEARCH_MAX_LIMIT: int = 100
    SEARCH_OVERFETCH_FACTOR: int = 3
    SEARCH_MAX_CANDIDATES: int = 500
    SEARCH_REVIEWS_PER_PLACE: int = 15

    model_config = SettingsConfigDict(
        # Look for .env in the current folder OR the parent folder
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore"
    )

settings = Settings()
