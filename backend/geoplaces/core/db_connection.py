from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from geoplaces.core.config import settings
from geoplaces.core.logger import logs
import logging

class AsyncDBConnection:
    """
    Manages the asynchronous connection to the MongoDB database.
    Only used when STORAGE_MODE=mongodb
    """
    _client: AsyncIOMotorClient | None = None
    _indexes_ready: bool = False

    def __init__(self):
        if settings.STORAGE_MODE == "mongodb":
            if AsyncDBConnection._client is None:
                # tz_aware so sync timestamps round-trip as UTC-aware datetimes
                AsyncDBConnection._client = AsyncIOMotorClient(settings.MONGO_URI, tz_aware=True)
                logs.log(logging.INFO, "MongoDB connection initialized")
        else:
            logs.log(logging.INFO, "Using local file storage - MongoDB not initialized")

    def get_database(self) -> AsyncIOMotorDatabase:
        """
        Returns the async database instance.
        Only available when STORAGE_MODE=mongodb
        """
        if settings.STORAGE_MODE != "mongodb":
            raise RuntimeError("MongoDB not available - STORAGE_MODE is set to 'local'")

        if AsyncDBConnection._client is None:
            self.__init__()

        client = AsyncDBConnection._client
        return client[settings.MONGO_DB_NAME]

    async def ensure_indexes(self):
        """Creates the geohash and lookup indexes once per process."""
        if AsyncDBConnection._indexes_ready:
            return
        db = self.get_database()
        await db["places_geo"].create_index([("geohash", 1), ("_id", 1)])
        await db["place_analytics"].create_index([("place_id", 1), ("timestamp", -1)])
        await db["reviews"].create_index([("placeId", 1), ("createdAt", -1)])
        AsyncDBConnection._indexes_ready = True
        logs.log(logging.INFO, "MongoDB indexes ensured")

    def close(self):
        if AsyncDBConnection._client is not None:
            AsyncDBConnection._client.close()
            AsyncDBConnection._client = None
            AsyncDBConnection._indexes_ready = False

# Instantiate the connection manager
db_connection = AsyncDBConnection()

# Dependency for FastAPI
async def get_db() -> AsyncIOMotorDatabase:
    if settings.STORAGE_MODE != "mongodb":
        raise RuntimeError("MongoDB not available - using local storage")
    return db_connection.get_database()
