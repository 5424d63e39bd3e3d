"""Notification Service - Fan-out of transition and chat events

Every event is turned into one persisted notification per recipient and
then pushed to whichever sessions the recipient has open. The persisted
row is the durable copy; the push is best-effort.
"""
from typing import Any, Dict, List, Optional, Union

from ..config.settings import settings
from ..domain.models import (
    ActorContext, ChatEvent, Notification, NotificationPage,
    NotificationSettings, Project, TransitionEvent, WorkItem
)
from ..domain.enums import EventKind, ReferenceType, Role
from ..domain.errors import DeliveryFailedError, NotificationNotFoundError
from ..repositories.notification_repo import NotificationRepository
from ..repositories.project_repo import ProjectRepository
from ..repositories.user_repo import UserRepository
from ..repositories.work_item_repo import WorkItemRepository
from ..realtime.broker import ChannelBroker, get_broker
from .notification_rules import CHAT_RULE, REFERENCE_TYPES, NotificationRule, Recipient, rule_for
from .project_membership import ProjectMembershipService
from .settings_service import SettingsService
from ..utils.idgen import generate_notification_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

CHAT_PREVIEW_LENGTH = 100


class NotificationService:
    """Service for notification fan-out and the notification bell"""

    def __init__(
        self,
        repo: Optional[NotificationRepository] = None,
        broker: Optional[ChannelBroker] = None,
        settings_service: Optional[SettingsService] = None,
        user_repo: Optional[UserRepository] = None,
        project_repo: Optional[ProjectRepository] = None,
        work_item_repo: Optional[WorkItemRepository] = None,
        membership: Optional[ProjectMembershipService] = None
    ):
        self.repo = repo or NotificationRepository()
        self._broker = broker
        self.settings_service = settings_service or SettingsService()
        self.user_repo = user_repo or UserRepository()
        self.project_repo = project_repo or ProjectRepository()
        self.work_item_repo = work_item_repo or WorkItemRepository()
        self.membership = membership or ProjectMembershipService(
            project_repo=self.project_repo,
            user_repo=self.user_repo,
            work_item_repo=self.work_item_repo
        )

    @property
    def broker(self) -> ChannelBroker:
        return self._broker or get_broker()

    # =========================================================================
    # Dispatch
    # =========================================================================

    def dispatch(self, event: Union[TransitionEvent, ChatEvent]) -> List[Notification]:
        """
        Fan an event out to its recipients.

        Idempotent per event: replaying an event ID creates no second row
        for a recipient and does not push again.

        Returns the notifications created by this call.
        """
        if isinstance(event, ChatEvent):
            return self._dispatch_chat(event)
        return self._dispatch_transition(event)

    def _dispatch_transition(self, event: TransitionEvent) -> List[Notification]:
        rule = rule_for(event.kind, event.from_status, event.to_status)
        if rule is None:
            logger.debug(
                f"No notification rule for {event.kind} {event.from_status} -> {event.to_status}",
                extra={"event_id": event.event_id}
            )
            return []

        project = self.project_repo.get_project(event.project_id)
        item = None
        if event.kind != EventKind.PROJECT.value:
            item = self.work_item_repo.get_work_item(event.work_item_id)
            if item is None:
                logger.warning(
                    f"Work item {event.work_item_id} vanished before dispatch",
                    extra={"event_id": event.event_id, "work_item_id": event.work_item_id}
                )
                return []

        recipient_ids = self._resolve_recipients(rule, item, project)
        recipient_ids = [uid for uid in recipient_ids if uid != event.actor_id]

        project_name = project.name if project else event.project_id
        title, body = rule.render(
            title=item.title if item else project_name,
            project_name=project_name,
            from_status=event.from_status or "",
            to_status=event.to_status,
            note=(item.note or "") if item else "",
        )

        return self._fan_out(
            event_id=event.event_id,
            recipient_ids=recipient_ids,
            notification_type=rule.type,
            title=title,
            body=body.strip(),
            reference_type=REFERENCE_TYPES[event.kind],
            reference_id=event.work_item_id,
            build_event=lambda n: {"type": "notification:new", "notification": n.model_dump(mode="json")}
        )

    def _dispatch_chat(self, event: ChatEvent) -> List[Notification]:
        message = event.message
        project = self.project_repo.get_project(message.project_id)
        if project is None:
            logger.warning(
                f"Project {message.project_id} not found for chat dispatch",
                extra={"event_id": event.event_id}
            )
            return []

        members = self.membership.get_members(project)
        recipient_ids = [
            uid for uid, role in members.items()
            if uid != message.sender_id and message.is_visible_to(role)
        ]

        sender = self.user_repo.get_user(message.sender_id)
        preview = message.body[:CHAT_PREVIEW_LENGTH]
        if len(message.body) > CHAT_PREVIEW_LENGTH:
            preview += "..."
        title, body = CHAT_RULE.render(
            project_name=event.project_name,
            sender_name=sender.name if sender else "Someone",
            preview=preview,
        )
        message_json = message.model_dump(mode="json")

        return self._fan_out(
            event_id=event.event_id,
            recipient_ids=recipient_ids,
            notification_type=CHAT_RULE.type,
            title=title,
            body=body,
            reference_type=ReferenceType.PROJECT.value,
            reference_id=message.project_id,
            build_event=lambda n: {
                "type": "chat:notification",
                "message": message_json,
                "projectName": event.project_name,
                "notification": n.model_dump(mode="json"),
            }
        )

    def _resolve_recipients(
        self,
        rule: NotificationRule,
        item: Optional[WorkItem],
        project: Optional[Project]
    ) -> List[str]:
        """Expand symbolic recipients to user IDs, keeping rule order"""
        resolved: List[str] = []
        for recipient in rule.recipients:
            if recipient == Recipient.ASSIGNEE and item:
                resolved.append(item.assigned_actor_id)
            elif recipient == Recipient.CREATOR and item:
                resolved.append(item.created_by_id)
            elif recipient == Recipient.PROJECT_MANAGER and project:
                resolved.append(project.manager_id)
            elif recipient == Recipient.PROJECT_TEAM_LEAD and project:
                resolved.append(project.team_lead_id)
            elif recipient == Recipient.ADMINS:
                resolved.extend(u.user_id for u in self.user_repo.list_active_by_role(Role.ADMIN))

        seen = set()
        unique = []
        for uid in resolved:
            if uid and uid not in seen:
                seen.add(uid)
                unique.append(uid)
        return unique

    def _load_settings(self) -> NotificationSettings:
        """Fresh settings; defaults if the store cannot be read"""
        try:
            return self.settings_service.get_notification_settings()
        except Exception as e:
            logger.warning(f"Failed to read notification settings, using defaults: {e}")
            return NotificationSettings()

    def _fan_out(
        self,
        event_id: str,
        recipient_ids: List[str],
        notification_type: str,
        title: str,
        body: str,
        reference_type: str,
        reference_id: str,
        build_event
    ) -> List[Notification]:
        if not recipient_ids:
            return []

        current = self._load_settings()
        roles = self.user_repo.get_roles(recipient_ids)
        suppressed = not current.is_type_enabled(notification_type)
        now = utc_now()
        expires_at = self.repo.expiry_from(settings.notification_expiry_days)

        created: List[Notification] = []
        for user_id in recipient_ids:
            role = roles.get(user_id)
            if role is None:
                logger.debug(f"Skipping inactive recipient {user_id}", extra={"event_id": event_id})
                continue

            notification = Notification(
                notification_id=generate_notification_id(),
                event_id=event_id,
                recipient_user_id=user_id,
                type=notification_type,
                title=title,
                body=body,
                reference_type=reference_type,
                reference_id=reference_id,
                suppressed=suppressed,
                play_sound=current.sound_enabled and not suppressed,
                sound_url=current.sound_url_for_role(role) or None,
                created_at=now,
                expires_at=expires_at
            )

            try:
                stored = self.repo.insert_if_absent(notification)
            except Exception as e:
                # Persist failures stay local to this recipient
                logger.warning(
                    f"Failed to persist notification: {e}",
                    extra={"event_id": event_id, "user_id": user_id}
                )
                continue

            if stored is None:
                continue
            created.append(stored)
            self._publish(user_id, build_event(stored))

        return created

    def _publish(self, user_id: str, payload: Dict[str, Any]) -> None:
        """Push to live sessions; an offline recipient is not an error"""
        try:
            delivered = self.broker.publish_to_user(user_id, payload)
        except Exception as e:
            error = DeliveryFailedError(f"Publish failed: {e}", details={"user_id": user_id})
            logger.warning(error.message, extra={"user_id": user_id})
            return

        if delivered == 0:
            logger.debug(f"Recipient {user_id} offline, notification kept for next fetch")

    # =========================================================================
    # Notification bell
    # =========================================================================

    def list_notifications(
        self,
        actor: ActorContext,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False
    ) -> NotificationPage:
        """Get the actor's notifications, newest first"""
        return self.repo.list_for_user(actor.user_id, page=page, limit=limit, unread_only=unread_only)

    def get_unread_count(self, actor: ActorContext) -> int:
        return self.repo.get_unread_count(actor.user_id)

    def mark_read(self, notification_id: str, actor: ActorContext) -> Notification:
        """Mark one notification read; already-read is a no-op"""
        return self.repo.mark_as_read(notification_id, actor.user_id)

    def mark_all_read(self, actor: ActorContext) -> int:
        return self.repo.mark_all_as_read(actor.user_id)

    def delete_notification(self, notification_id: str, actor: ActorContext) -> None:
        if not self.repo.delete_notification(notification_id, actor.user_id):
            raise NotificationNotFoundError(
                f"Notification {notification_id} not found",
                details={"notification_id": notification_id}
            )

    def cleanup_expired(self) -> int:
        return self.repo.delete_expired()
