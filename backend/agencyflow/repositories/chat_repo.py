"""Chat Repository - Data access for project chat messages"""
from typing import List, Optional
from pymongo.collection import Collection
from pymongo import DESCENDING, ReturnDocument

from .mongo_client import get_collection
from ..domain.models import ChatMessage
from ..domain.errors import ChatMessageNotFoundError
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ChatRepository:
    """Repository for chat messages"""

    def __init__(self):
        self._messages: Collection = get_collection("chat_messages")

    def create_message(self, message: ChatMessage) -> ChatMessage:
        """Persist a new message"""
        doc = message.model_dump()
        doc["_id"] = message.message_id
        self._messages.insert_one(doc)
        logger.info(
            f"Created chat message {message.message_id}",
            extra={"project_id": message.project_id, "user_id": message.sender_id}
        )
        return message

    def get_message(self, message_id: str) -> Optional[ChatMessage]:
        """Get a message by ID"""
        doc = self._messages.find_one({"message_id": message_id})
        if doc:
            doc.pop("_id", None)
            return ChatMessage.model_validate(doc)
        return None

    def get_message_or_raise(self, message_id: str) -> ChatMessage:
        """Get a message by ID or raise"""
        message = self.get_message(message_id)
        if not message:
            raise ChatMessageNotFoundError(
                f"Message {message_id} not found",
                details={"message_id": message_id}
            )
        return message

    def update_body(self, message_id: str, body: str) -> ChatMessage:
        """Replace the body and stamp edited_at"""
        result = self._messages.find_one_and_update(
            {"message_id": message_id, "is_deleted": False},
            {"$set": {"body": body, "edited_at": utc_now()}},
            return_document=ReturnDocument.AFTER
        )
        if result is None:
            raise ChatMessageNotFoundError(f"Message {message_id} not found")
        result.pop("_id", None)
        return ChatMessage.model_validate(result)

    def soft_delete(self, message_id: str) -> bool:
        """Flag a message deleted. Returns True if it was live."""
        result = self._messages.update_one(
            {"message_id": message_id, "is_deleted": False},
            {"$set": {"is_deleted": True}}
        )
        return result.modified_count > 0

    def list_for_project(self, project_id: str) -> List[ChatMessage]:
        """Live messages of a project, newest first"""
        cursor = self._messages.find(
            {"project_id": project_id, "is_deleted": False}
        ).sort("created_at", DESCENDING)

        messages = []
        for doc in cursor:
            doc.pop("_id", None)
            messages.append(ChatMessage.model_validate(doc))
        return messages

    def tombstone_sender(self, user_id: str) -> int:
        """Mark a deleted actor's messages. Returns count updated."""
        result = self._messages.update_many(
            {"sender_id": user_id},
            {"$set": {"sender_deleted": True}}
        )
        return result.modified_count
