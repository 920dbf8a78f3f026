from motor.motor_asyncio import AsyncIOMotorDatabase

class AnalyticsRepository:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db["place_analytics"]

    async def append_event(self, event: dict):
        """Appends one analytics event (e.g. a place details view)."""
        await self.collection.insert_one(dict(event))
