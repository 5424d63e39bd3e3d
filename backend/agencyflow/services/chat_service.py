"""Chat Service - Project-scoped messages with role visibility"""
from typing import List, Optional

from ..domain.models import (
    ActorContext, Attachment, AuditMetadata, ChatEvent, ChatMessage
)
from ..domain.enums import AuditAction, ChatPriority, Role
from ..domain.errors import ChatMessageNotFoundError, ForbiddenError, ValidationError
from ..repositories.chat_repo import ChatRepository
from ..repositories.project_repo import ProjectRepository
from ..engine.audit_writer import AuditWriter
from ..realtime.broker import ChannelBroker, get_broker
from .notification_service import NotificationService
from .project_membership import ProjectMembershipService
from ..utils.idgen import generate_chat_message_id, generate_event_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

MAX_BODY_LENGTH = 10000


class ChatService:
    """Service for project chat"""

    def __init__(
        self,
        repo: Optional[ChatRepository] = None,
        project_repo: Optional[ProjectRepository] = None,
        membership: Optional[ProjectMembershipService] = None,
        notification_service: Optional[NotificationService] = None,
        audit_writer: Optional[AuditWriter] = None,
        broker: Optional[ChannelBroker] = None
    ):
        self.repo = repo or ChatRepository()
        self.project_repo = project_repo or ProjectRepository()
        self.membership = membership or ProjectMembershipService(project_repo=self.project_repo)
        self.notification_service = notification_service or NotificationService(
            broker=broker,
            project_repo=self.project_repo,
            membership=self.membership
        )
        self.audit_writer = audit_writer or AuditWriter()
        self._broker = broker

    @property
    def broker(self) -> ChannelBroker:
        return self._broker or get_broker()

    def _require_access(self, actor: ActorContext, project_id: str):
        project = self.project_repo.get_project_or_raise(project_id)
        if not self.membership.has_access(actor, project):
            raise ForbiddenError(
                "You do not have access to this project's chat",
                details={"project_id": project_id}
            )
        return project

    @staticmethod
    def _clean_body(body: str) -> str:
        cleaned = (body or "").strip()
        if not cleaned:
            raise ValidationError("Message body cannot be empty")
        if len(cleaned) > MAX_BODY_LENGTH:
            raise ValidationError(f"Message body exceeds {MAX_BODY_LENGTH} characters")
        return cleaned

    def _broadcast(self, message: ChatMessage, payload: dict) -> None:
        """Room broadcast to sessions whose role may see the message"""
        try:
            self.broker.publish_to_project(
                message.project_id,
                payload,
                roles=message.visible_to_roles or None,
                include_user_id=message.sender_id
            )
        except Exception as e:
            logger.warning(
                f"Chat broadcast failed: {e}",
                extra={"project_id": message.project_id}
            )

    # =========================================================================
    # Mutations
    # =========================================================================

    def send_message(
        self,
        actor: ActorContext,
        project_id: str,
        body: str,
        attachments: Optional[List[Attachment]] = None,
        priority: ChatPriority = ChatPriority.NORMAL,
        visible_to_roles: Optional[List[Role]] = None,
        metadata: Optional[AuditMetadata] = None
    ) -> ChatMessage:
        """
        Post a message to a project.

        An empty visible_to_roles means every member may see it.
        """
        project = self._require_access(actor, project_id)
        cleaned = self._clean_body(body)

        message = ChatMessage(
            message_id=generate_chat_message_id(),
            project_id=project_id,
            sender_id=actor.user_id,
            body=cleaned,
            attachments=attachments or [],
            visible_to_roles=sorted(set(Role(r).value for r in (visible_to_roles or []))),
            priority=priority,
            created_at=utc_now()
        )
        self.repo.create_message(message)

        self.audit_writer.write_chat(
            actor_id=actor.user_id,
            action=AuditAction.CHAT_SEND,
            message_id=message.message_id,
            new_value={
                "project_id": project_id,
                "priority": message.priority,
                "visible_to_roles": message.visible_to_roles,
            },
            metadata=metadata
        )

        self._broadcast(message, {
            "type": "chat:message",
            "message": message.model_dump(mode="json"),
        })

        try:
            self.notification_service.dispatch(ChatEvent(
                event_id=generate_event_id(),
                message=message,
                project_name=project.name
            ))
        except Exception as e:
            logger.warning(
                f"Chat notification dispatch failed: {e}",
                extra={"project_id": project_id}
            )

        return message

    def _own_live_message(self, actor: ActorContext, message_id: str) -> ChatMessage:
        message = self.repo.get_message_or_raise(message_id)
        if message.is_deleted:
            raise ChatMessageNotFoundError(f"Message {message_id} not found")
        if message.sender_id != actor.user_id:
            raise ForbiddenError("You can only change your own messages")
        return message

    def edit_message(
        self,
        actor: ActorContext,
        message_id: str,
        body: str,
        metadata: Optional[AuditMetadata] = None
    ) -> ChatMessage:
        """Replace the body of the actor's own message"""
        message = self._own_live_message(actor, message_id)
        cleaned = self._clean_body(body)

        updated = self.repo.update_body(message_id, cleaned)
        self.audit_writer.write_chat(
            actor_id=actor.user_id,
            action=AuditAction.CHAT_EDIT,
            message_id=message_id,
            old_value={"body": message.body},
            new_value={"body": cleaned},
            metadata=metadata
        )
        self._broadcast(updated, {
            "type": "chat:message:updated",
            "message": updated.model_dump(mode="json"),
        })
        return updated

    def delete_message(
        self,
        actor: ActorContext,
        message_id: str,
        metadata: Optional[AuditMetadata] = None
    ) -> None:
        """Soft-delete the actor's own message"""
        message = self._own_live_message(actor, message_id)
        self.repo.soft_delete(message_id)

        self.audit_writer.write_chat(
            actor_id=actor.user_id,
            action=AuditAction.CHAT_DELETE,
            message_id=message_id,
            old_value={"body": message.body},
            metadata=metadata
        )
        self._broadcast(message, {
            "type": "chat:message:deleted",
            "messageId": message_id,
            "projectId": message.project_id,
        })

    # =========================================================================
    # Reads
    # =========================================================================

    def list_messages(
        self,
        actor: ActorContext,
        project_id: str,
        page: int = 1,
        limit: int = 50
    ) -> List[ChatMessage]:
        """
        Messages the actor may see, oldest first within the page.

        Page 1 holds the most recent messages.
        """
        self._require_access(actor, project_id)
        visible = [
            m for m in self.repo.list_for_project(project_id)
            if m.is_visible_to(actor.role)
        ]
        start = (page - 1) * limit
        return list(reversed(visible[start:start + limit]))
