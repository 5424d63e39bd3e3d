"""User Repository - Read access to actors"""
from typing import Dict, List, Optional
from pymongo.collection import Collection

from .mongo_client import get_collection
from ..domain.models import User
from ..domain.enums import Role
from ..domain.errors import ActorNotFoundError
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class UserRepository:
    """Repository for actor records (owned by the external user module)"""

    def __init__(self):
        self._users: Collection = get_collection("users")

    def create_user(self, user: User) -> User:
        """Insert a user record"""
        if user.created_at is None:
            user.created_at = utc_now()
        doc = user.model_dump()
        doc["_id"] = user.user_id
        self._users.insert_one(doc)
        logger.info(f"Created user: {user.user_id}", extra={"user_id": user.user_id})
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        """Get user by ID"""
        doc = self._users.find_one({"user_id": user_id})
        if doc:
            doc.pop("_id", None)
            return User.model_validate(doc)
        return None

    def get_active_user_or_raise(self, user_id: str) -> User:
        """Get an active user or raise"""
        user = self.get_user(user_id)
        if not user or not user.is_active:
            raise ActorNotFoundError(
                f"Actor {user_id} not found",
                details={"actor_id": user_id}
            )
        return user

    def list_active_by_role(self, role: Role) -> List[User]:
        """List active users having a role"""
        cursor = self._users.find({"role": Role(role).value, "is_active": True})
        users = []
        for doc in cursor:
            doc.pop("_id", None)
            users.append(User.model_validate(doc))
        return users

    def get_roles(self, user_ids: List[str]) -> Dict[str, str]:
        """Map user IDs to roles for active users"""
        if not user_ids:
            return {}
        cursor = self._users.find(
            {"user_id": {"$in": list(user_ids)}, "is_active": True},
            {"user_id": 1, "role": 1}
        )
        return {doc["user_id"]: doc["role"] for doc in cursor}

    def delete_user(self, user_id: str) -> bool:
        """Remove the user record. Returns True if deleted."""
        result = self._users.delete_one({"user_id": user_id})
        return result.deleted_count > 0
