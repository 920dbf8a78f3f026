from motor.motor_asyncio import AsyncIOMotorDatabase

class UsersRepository:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db["users"]

    async def get_user(self, user_id: str) -> dict | None:
        """Reads a user document owned by the identity service."""
        return await self.collection.find_one({"_id": user_id})

    async def get_users(self, user_ids: list[str]) -> dict[str, dict]:
        if not user_ids:
            return {}
        users = {}
        async for doc in self.collection.find({"_id": {"$in": list(user_ids)}}):
            users[doc["_id"]] = doc
        return users
