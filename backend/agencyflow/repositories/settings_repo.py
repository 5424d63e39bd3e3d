"""System Settings Repository - Key/value configuration documents"""
from typing import Any, Dict, Optional
from pymongo.collection import Collection

from .mongo_client import get_collection
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class SettingsRepository:
    """Repository for system settings stored by key"""

    def __init__(self):
        self._settings: Collection = get_collection("system_settings")

    def get_value(self, key: str) -> Optional[Dict[str, Any]]:
        """Get the stored value for a key"""
        doc = self._settings.find_one({"key": key})
        if doc:
            return doc.get("value")
        return None

    def upsert_value(
        self,
        key: str,
        value: Dict[str, Any],
        category: str,
        updated_by: str
    ) -> Dict[str, Any]:
        """Create or replace the value for a key"""
        self._settings.update_one(
            {"key": key},
            {"$set": {
                "key": key,
                "value": value,
                "category": category,
                "updated_by": updated_by,
                "updated_at": utc_now(),
            }},
            upsert=True
        )
        logger.info(f"Updated system setting {key}", extra={"user_id": updated_by})
        return value
