from motor.motor_asyncio import AsyncIOMotorDatabase

class ReviewsRepository:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db["reviews"]

    async def latest_for_place(self, place_id: str, limit: int = 15) -> list[dict]:
        """Most recent reviews of a place, newest first."""
        cursor = self.collection.find({"placeId": place_id}).sort("createdAt", -1).limit(limit)
        reviews = await cursor.to_list(length=limit)
        for review in reviews:
            review["id"] = str(review.pop("_id"))
        return reviews
