"""Notification Repository - Data access for the notification bell"""
import math
from datetime import timedelta
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, OperationFailure
from pymongo import DESCENDING, ReturnDocument

from .mongo_client import get_collection
from ..domain.models import Notification, NotificationPage
from ..domain.errors import NotificationNotFoundError
from ..utils.logger import get_logger
from ..utils.time import to_naive_utc, utc_now

logger = get_logger(__name__)


class NotificationRepository:
    """Repository for per-recipient notifications"""

    COLLECTION_NAME = "notifications"

    def __init__(self):
        self._collection: Collection = get_collection(self.COLLECTION_NAME)
        self._ensure_indexes()

    def _ensure_indexes(self):
        """Ensure required indexes exist"""
        try:
            # One row per (event, recipient); re-dispatch hits this
            self._collection.create_index(
                [("event_id", 1), ("recipient_user_id", 1)],
                unique=True,
                name="event_recipient_unique"
            )
            self._collection.create_index(
                [("recipient_user_id", 1), ("created_at", -1)],
                name="recipient_notifications"
            )
            self._collection.create_index(
                [("recipient_user_id", 1), ("is_read", 1)],
                name="unread_notifications"
            )
        except OperationFailure as e:
            logger.debug(f"Index creation skipped (may already exist): {e}")

    def insert_if_absent(self, notification: Notification) -> Optional[Notification]:
        """
        Persist a notification unless one already exists for the same
        (event_id, recipient_user_id).

        Returns the stored notification, or None when it was a duplicate.
        """
        doc = notification.model_dump()
        doc["_id"] = notification.notification_id

        try:
            self._collection.insert_one(doc)
        except DuplicateKeyError:
            logger.info(
                f"Skipping duplicate notification for {notification.recipient_user_id}",
                extra={"event_id": notification.event_id, "user_id": notification.recipient_user_id}
            )
            return None

        logger.info(
            f"Created notification for {notification.recipient_user_id}",
            extra={
                "notification_id": notification.notification_id,
                "event_id": notification.event_id,
                "user_id": notification.recipient_user_id,
            }
        )
        return notification

    def get_notification(self, notification_id: str) -> Optional[Notification]:
        """Get a single notification by ID"""
        doc = self._collection.find_one({"notification_id": notification_id})
        if doc:
            doc.pop("_id", None)
            return Notification.model_validate(doc)
        return None

    def list_for_user(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False
    ) -> NotificationPage:
        """Get a recipient's notifications, newest first"""
        query: Dict[str, Any] = {"recipient_user_id": user_id}
        if unread_only:
            query["is_read"] = False

        cursor = (
            self._collection.find(query)
            .sort("created_at", DESCENDING)
            .skip((page - 1) * limit)
            .limit(limit)
        )

        items = []
        for doc in cursor:
            doc.pop("_id", None)
            items.append(Notification.model_validate(doc))

        total = self._collection.count_documents(query)
        return NotificationPage(
            items=items,
            total=total,
            unread_count=self.get_unread_count(user_id),
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if total else 0
        )

    def get_unread_count(self, user_id: str) -> int:
        """Get count of unread notifications for a user"""
        return self._collection.count_documents({
            "recipient_user_id": user_id,
            "is_read": False
        })

    def mark_as_read(self, notification_id: str, user_id: str) -> Notification:
        """
        Mark a notification as read.

        Idempotent: an already-read row is returned unchanged, so its
        read_at and the unread count are not touched twice.
        """
        result = self._collection.find_one_and_update(
            {
                "notification_id": notification_id,
                "recipient_user_id": user_id,
                "is_read": False
            },
            {"$set": {"is_read": True, "read_at": utc_now()}},
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            result = self._collection.find_one({
                "notification_id": notification_id,
                "recipient_user_id": user_id
            })
            if result is None:
                raise NotificationNotFoundError(
                    f"Notification {notification_id} not found",
                    details={"notification_id": notification_id}
                )

        result.pop("_id", None)
        return Notification.model_validate(result)

    def mark_all_as_read(self, user_id: str) -> int:
        """Mark all notifications as read for a user. Returns count of updated."""
        result = self._collection.update_many(
            {"recipient_user_id": user_id, "is_read": False},
            {"$set": {"is_read": True, "read_at": utc_now()}}
        )

        logger.info(
            f"Marked {result.modified_count} notifications as read",
            extra={"user_id": user_id}
        )
        return result.modified_count

    def delete_notification(self, notification_id: str, user_id: str) -> bool:
        """Delete a notification. Returns True if deleted."""
        result = self._collection.delete_one({
            "notification_id": notification_id,
            "recipient_user_id": user_id
        })
        return result.deleted_count > 0

    def delete_for_user(self, user_id: str) -> int:
        """Delete every notification addressed to a user. Returns count deleted."""
        result = self._collection.delete_many({"recipient_user_id": user_id})
        return result.deleted_count

    def delete_expired(self) -> int:
        """Delete notifications past their expiry. Returns count deleted."""
        result = self._collection.delete_many({"expires_at": {"$lt": to_naive_utc(utc_now())}})
        if result.deleted_count > 0:
            logger.info(f"Cleaned up {result.deleted_count} expired notifications")
        return result.deleted_count

    def list_for_event(self, event_id: str) -> List[Notification]:
        """Every notification produced by one event"""
        notifications = []
        for doc in self._collection.find({"event_id": event_id}):
            doc.pop("_id", None)
            notifications.append(Notification.model_validate(doc))
        return notifications

    @staticmethod
    def expiry_from(days: int):
        """Expiry timestamp for a notification created now"""
        return utc_now() + timedelta(days=days)
