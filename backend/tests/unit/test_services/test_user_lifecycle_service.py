"""Actor deletion and retention tests"""
import pytest

from agencyflow.domain.models import AuditFilter
from agencyflow.domain.errors import ActorNotFoundError, ForbiddenError, ValidationError
from agencyflow.repositories.audit_repo import AuditRepository
from agencyflow.repositories.chat_repo import ChatRepository
from agencyflow.repositories.notification_repo import NotificationRepository
from agencyflow.repositories.project_repo import ProjectRepository
from agencyflow.repositories.user_repo import UserRepository
from agencyflow.repositories.work_item_repo import WorkItemRepository
from agencyflow.services.chat_service import ChatService
from agencyflow.services.user_lifecycle_service import UserLifecycleService
from agencyflow.engine.engine import WorkflowEngine

from tests.conftest import insert_work_item


@pytest.fixture
def busy_lead(actors, users, project):
    """Team lead with a chat message, an assigned task and notifications"""
    message = ChatService().send_message(actors["lead"], project.project_id, "Kick-off notes")
    insert_work_item("TSK-lead", "TASK", "ASSIGNED", project.project_id,
                     users["lead"].user_id, users["manager"].user_id)
    # Developer's start notifies the lead as the creator of this one
    insert_work_item("TSK-dev", "TASK", "ASSIGNED", project.project_id,
                     users["dev"].user_id, users["lead"].user_id)
    WorkflowEngine().transition(users["dev"].user_id, "TSK-dev", "IN_PROGRESS")
    return message


class TestDeleteUser:

    def test_retention_policy(self, busy_lead, actors, users, project):
        lead_id = users["lead"].user_id
        assert NotificationRepository().list_for_user(lead_id).total > 0
        audit_before = AuditRepository().list_entries(AuditFilter(actor_id=lead_id)).total

        summary = UserLifecycleService().delete_user(lead_id, actors["admin"])

        assert summary["notifications_deleted"] > 0
        assert summary["chat_messages_tombstoned"] == 1
        assert summary["work_items_unassigned"] == 1
        assert summary["project_seats_cleared"] == 1

        assert UserRepository().get_user(lead_id) is None
        assert NotificationRepository().list_for_user(lead_id).total == 0

        message = ChatRepository().get_message(busy_lead.message_id)
        assert message.sender_id == lead_id
        assert message.sender_deleted is True

        assert WorkItemRepository().get_work_item("TSK-lead").assigned_actor_id is None
        assert ProjectRepository().get_project(project.project_id).team_lead_id is None

        # History stays, plus the deletion itself
        assert AuditRepository().list_entries(AuditFilter(actor_id=lead_id)).total == audit_before
        deletion = AuditRepository().list_entries(AuditFilter(action="USER_DELETE")).items
        assert len(deletion) == 1
        assert deletion[0].entity_id == lead_id
        assert deletion[0].new_value == summary

    def test_admin_only(self, actors, users):
        with pytest.raises(ForbiddenError):
            UserLifecycleService().delete_user(users["dev"].user_id, actors["manager"])

    def test_cannot_delete_self(self, actors, users):
        with pytest.raises(ValidationError):
            UserLifecycleService().delete_user(users["admin"].user_id, actors["admin"])

    def test_project_manager_must_be_reassigned_first(self, actors, users, project):
        with pytest.raises(ValidationError) as exc_info:
            UserLifecycleService().delete_user(users["manager"].user_id, actors["admin"])
        assert exc_info.value.details["project_ids"] == [project.project_id]
        assert UserRepository().get_user(users["manager"].user_id) is not None

    def test_unknown_user(self, actors, users):
        with pytest.raises(ActorNotFoundError):
            UserLifecycleService().delete_user("USR-ghost", actors["admin"])
