"""User Lifecycle Service - Data clean-up when an actor is deleted"""
from typing import Dict, Optional

from ..domain.models import ActorContext, AuditMetadata
from ..domain.enums import Role
from ..domain.errors import ActorNotFoundError, ForbiddenError, ValidationError
from ..repositories.user_repo import UserRepository
from ..repositories.notification_repo import NotificationRepository
from ..repositories.chat_repo import ChatRepository
from ..repositories.work_item_repo import WorkItemRepository
from ..repositories.project_repo import ProjectRepository
from ..engine.audit_writer import AuditWriter
from ..utils.logger import get_logger

logger = get_logger(__name__)


class UserLifecycleService:
    """
    Remove an actor while keeping history intact.

    - Notifications addressed to the actor are deleted
    - Audit entries are kept untouched
    - Chat messages keep the sender ID and are flagged sender_deleted
    - Work item and project seats held by the actor are cleared
    """

    def __init__(
        self,
        user_repo: Optional[UserRepository] = None,
        notification_repo: Optional[NotificationRepository] = None,
        chat_repo: Optional[ChatRepository] = None,
        work_item_repo: Optional[WorkItemRepository] = None,
        project_repo: Optional[ProjectRepository] = None,
        audit_writer: Optional[AuditWriter] = None
    ):
        self.user_repo = user_repo or UserRepository()
        self.notification_repo = notification_repo or NotificationRepository()
        self.chat_repo = chat_repo or ChatRepository()
        self.work_item_repo = work_item_repo or WorkItemRepository()
        self.project_repo = project_repo or ProjectRepository()
        self.audit_writer = audit_writer or AuditWriter()

    def delete_user(
        self,
        user_id: str,
        actor: ActorContext,
        metadata: Optional[AuditMetadata] = None
    ) -> Dict[str, int]:
        """
        Delete an actor and apply the retention policy.

        Returns counts of the rows touched.
        """
        if actor.role != Role.ADMIN.value:
            raise ForbiddenError("Only admins can delete users")
        if actor.user_id == user_id:
            raise ValidationError("You cannot delete your own account")

        user = self.user_repo.get_user(user_id)
        if user is None:
            raise ActorNotFoundError(f"User {user_id} not found", details={"user_id": user_id})

        # manager_id is required on a project, so it cannot be cleared
        owned = self.project_repo.list_project_ids_managed_by(user_id)
        if owned:
            raise ValidationError(
                "Reassign this manager's projects before deleting the user",
                details={"project_ids": owned}
            )

        summary = {
            "notifications_deleted": self.notification_repo.delete_for_user(user_id),
            "chat_messages_tombstoned": self.chat_repo.tombstone_sender(user_id),
            "work_items_unassigned": self.work_item_repo.unassign_actor(user_id),
            "project_seats_cleared": self.project_repo.clear_member(user_id),
        }
        self.user_repo.delete_user(user_id)

        logger.info(f"Deleted user {user_id}", extra={"user_id": user_id, "actor_id": actor.user_id})
        self.audit_writer.write_user_delete(
            actor_id=actor.user_id,
            user_id=user_id,
            summary=summary,
            metadata=metadata
        )
        return summary
