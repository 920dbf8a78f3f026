DEFAULT_USER_NAME = "Usuário"


class IdentityService:
    """Read-only view of the identity service's user documents."""

    def __init__(self, users_repo):
        self.users_repo = users_repo

    async def is_caller_active(self, caller_id: str) -> bool:
        user = await self.users_repo.get_user(caller_id)
        return bool(user and user.get("isActive"))

    @staticmethod
    def _to_profile(user: dict) -> dict:
        return {
            "name": user.get("name") or user.get("displayName") or DEFAULT_USER_NAME,
            "photo_url": user.get("photoURL") or user.get("profileImage"),
        }

    async def get_profiles(self, user_ids: list[str]) -> dict[str, dict]:
        users = await self.users_repo.get_users(list(dict.fromkeys(user_ids)))
        return {user_id: self._to_profile(user) for user_id, user in users.items()}
