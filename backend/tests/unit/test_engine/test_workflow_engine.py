"""Workflow engine tests against an in-memory store"""
import logging

import pytest

from agencyflow.domain.models import TransitionPayload
from agencyflow.domain.enums import AuditAction
from agencyflow.domain.errors import (
    ActorNotFoundError, ConflictError, ForbiddenError, InvalidTransitionError,
    SelfApprovalError, ValidationError, WorkItemNotFoundError
)
from agencyflow.engine.audit_writer import AuditWriter
from agencyflow.engine.engine import WorkflowEngine
from agencyflow.repositories.audit_repo import AuditRepository
from agencyflow.repositories.notification_repo import NotificationRepository
from agencyflow.repositories.project_repo import ProjectRepository
from agencyflow.repositories.work_item_repo import WorkItemRepository
from agencyflow.domain.models import AuditFilter

from tests.conftest import insert_work_item


@pytest.fixture
def engine(project):
    return WorkflowEngine()


@pytest.fixture
def task(engine, users, project):
    return engine.create_work_item(
        actor_id=users["lead"].user_id,
        kind="TASK",
        project_id=project.project_id,
        assigned_actor_id=users["dev"].user_id,
        title="Build homepage"
    )


def _audit_actions(entity_id):
    page = AuditRepository().list_entries(AuditFilter(entity_id=entity_id, limit=500))
    return [entry.action for entry in page.items]


def _notification_types(user_id):
    page = NotificationRepository().list_for_user(user_id, limit=100)
    return [n.type for n in page.items]


class TestCreateWorkItem:

    def test_task_starts_assigned_and_notifies_assignee(self, task, users):
        assert task.status == "ASSIGNED"
        assert task.created_by_id == users["lead"].user_id
        assert _notification_types(users["dev"].user_id) == ["task_assigned"]
        assert _audit_actions(task.work_item_id) == [AuditAction.CREATE.value]

    def test_creator_is_not_notified(self, task, users):
        assert _notification_types(users["lead"].user_id) == []

    def test_developer_cannot_create_tasks(self, engine, users, project):
        with pytest.raises(ForbiddenError):
            engine.create_work_item(
                users["dev"].user_id, "TASK", project.project_id, users["dev2"].user_id, "Sneaky"
            )

    def test_lead_of_another_project_cannot_create(self, engine, users, project):
        with pytest.raises(ForbiddenError):
            engine.create_work_item(
                users["lead2"].user_id, "TASK", project.project_id, users["dev"].user_id, "Nope"
            )

    def test_asset_must_go_to_a_designer(self, engine, users, project):
        with pytest.raises(ValidationError):
            engine.create_work_item(
                users["manager"].user_id, "ASSET", project.project_id, users["dev"].user_id, "Logo"
            )

        asset = engine.create_work_item(
            users["manager"].user_id, "ASSET", project.project_id, users["designer"].user_id, "Logo"
        )
        assert asset.status == "REQUESTED"
        assert _notification_types(users["designer"].user_id) == ["asset_requested"]

    def test_revision_notifies_assignee_and_team_lead(self, engine, users, project):
        revision = engine.create_work_item(
            users["manager"].user_id, "REVISION", project.project_id, users["dev"].user_id, "Fix footer"
        )
        assert revision.status == "CREATED"
        assert _notification_types(users["dev"].user_id) == ["revision_created"]
        assert _notification_types(users["lead"].user_id) == ["revision_created"]

    def test_unknown_assignee(self, engine, users, project):
        with pytest.raises(ActorNotFoundError):
            engine.create_work_item(
                users["lead"].user_id, "TASK", project.project_id, "USR-ghost", "Orphan"
            )

    def test_blank_title(self, engine, users, project):
        with pytest.raises(ValidationError):
            engine.create_work_item(
                users["lead"].user_id, "TASK", project.project_id, users["dev"].user_id, "   "
            )


class TestTransition:

    def test_full_task_lifecycle_completes_project(self, engine, task, users, project):
        dev = users["dev"].user_id
        lead = users["lead"].user_id

        engine.transition(dev, task.work_item_id, "IN_PROGRESS")
        assert ProjectRepository().get_project(project.project_id).status == "IN_PROGRESS"

        engine.transition(dev, task.work_item_id, "SUBMITTED",
                          payload=TransitionPayload(note="Ready for review"))
        assert ProjectRepository().get_project(project.project_id).status == "REVIEW"

        approved = engine.transition(lead, task.work_item_id, "APPROVED")
        assert approved.status == "APPROVED"
        assert approved.note == "Ready for review"
        assert ProjectRepository().get_project(project.project_id).status == "COMPLETED"

        assert _audit_actions(task.work_item_id).count(AuditAction.TRANSITION.value) == 3
        assert "task_approved" in _notification_types(dev)
        assert "task_submitted" in _notification_types(lead)
        assert "project_status_changed" in _notification_types(users["manager"].user_id)
        assert "project_status_changed" in _notification_types(users["admin"].user_id)

    def test_skipping_states_is_invalid(self, engine, task, users):
        with pytest.raises(InvalidTransitionError):
            engine.transition(users["lead"].user_id, task.work_item_id, "APPROVED")

        item = WorkItemRepository().get_work_item(task.work_item_id)
        assert item.status == "ASSIGNED"
        assert AuditAction.TRANSITION_DENIED.value in _audit_actions(task.work_item_id)

    def test_only_assignee_may_start(self, engine, task, users):
        with pytest.raises(ForbiddenError):
            engine.transition(users["dev2"].user_id, task.work_item_id, "IN_PROGRESS")
        assert WorkItemRepository().get_work_item(task.work_item_id).status == "ASSIGNED"

    def test_developer_cannot_approve(self, engine, users, project):
        insert_work_item("TSK-x", "TASK", "SUBMITTED", project.project_id,
                         users["dev"].user_id, users["lead"].user_id)
        with pytest.raises(ForbiddenError):
            engine.transition(users["dev2"].user_id, "TSK-x", "APPROVED")

    def test_self_approval_is_denied_and_audited(self, engine, users, project):
        insert_work_item("TSK-self", "TASK", "SUBMITTED", project.project_id,
                         users["manager"].user_id, users["lead"].user_id)

        with pytest.raises(SelfApprovalError) as exc:
            engine.transition(users["manager"].user_id, "TSK-self", "APPROVED")

        assert exc.value.error_code == "SELF_APPROVAL_FORBIDDEN"
        assert exc.value.http_status == 403
        assert WorkItemRepository().get_work_item("TSK-self").status == "SUBMITTED"
        assert _audit_actions("TSK-self") == [AuditAction.TRANSITION_DENIED.value]

    def test_reviewer_must_outrank_assignee(self, engine, users, project):
        insert_work_item("TSK-peer", "TASK", "SUBMITTED", project.project_id,
                         users["lead2"].user_id, users["lead"].user_id)
        with pytest.raises(ForbiddenError):
            engine.transition(users["lead"].user_id, "TSK-peer", "APPROVED")

        approved = engine.transition(users["manager"].user_id, "TSK-peer", "APPROVED")
        assert approved.status == "APPROVED"

    @pytest.mark.parametrize("outsider", ["lead2", "manager2"])
    @pytest.mark.parametrize("target", ["APPROVED", "REJECTED"])
    def test_reviewer_from_another_project_is_denied(self, engine, task, users, project, outsider, target):
        dev = users["dev"].user_id
        engine.transition(dev, task.work_item_id, "IN_PROGRESS")
        engine.transition(dev, task.work_item_id, "SUBMITTED")

        with pytest.raises(ForbiddenError):
            engine.transition(users[outsider].user_id, task.work_item_id, target)

        assert WorkItemRepository().get_work_item(task.work_item_id).status == "SUBMITTED"
        assert ProjectRepository().get_project(project.project_id).status == "REVIEW"
        assert _audit_actions(task.work_item_id)[0] == AuditAction.TRANSITION_DENIED.value

    def test_admin_reviews_any_project(self, engine, task, users):
        dev = users["dev"].user_id
        engine.transition(dev, task.work_item_id, "IN_PROGRESS")
        engine.transition(dev, task.work_item_id, "SUBMITTED")
        assert engine.transition(users["admin"].user_id, task.work_item_id, "APPROVED").status == "APPROVED"

    def test_rejection_and_rework(self, engine, task, users):
        dev = users["dev"].user_id
        engine.transition(dev, task.work_item_id, "IN_PROGRESS")
        engine.transition(dev, task.work_item_id, "SUBMITTED")
        engine.transition(users["lead"].user_id, task.work_item_id, "REJECTED",
                          payload=TransitionPayload(note="Fix spacing"))

        rejected = _notification_types(dev)
        assert "task_rejected" in rejected
        assert engine.transition(dev, task.work_item_id, "IN_PROGRESS").status == "IN_PROGRESS"

    def test_revision_reopen_and_accept(self, engine, users, project):
        revision = engine.create_work_item(
            users["manager"].user_id, "REVISION", project.project_id, users["lead"].user_id, "Copy edits"
        )
        lead = users["lead"].user_id
        engine.transition(lead, revision.work_item_id, "IN_PROGRESS")
        engine.transition(lead, revision.work_item_id, "COMPLETED")
        engine.transition(users["manager"].user_id, revision.work_item_id, "IN_PROGRESS")
        engine.transition(lead, revision.work_item_id, "COMPLETED")
        accepted = engine.transition(users["manager"].user_id, revision.work_item_id, "ACCEPTED")

        assert accepted.status == "ACCEPTED"
        assert "revision_reopened" in _notification_types(lead)
        with pytest.raises(InvalidTransitionError):
            engine.transition(users["manager"].user_id, revision.work_item_id, "IN_PROGRESS")

    def test_stale_read_loses_compare_and_swap(self, engine, task, users, monkeypatch):
        dev = users["dev"].user_id
        stale = WorkItemRepository().get_work_item(task.work_item_id)
        engine.transition(dev, task.work_item_id, "IN_PROGRESS")

        monkeypatch.setattr(engine.work_item_repo, "get_work_item_or_raise", lambda _id: stale)
        with pytest.raises(ConflictError):
            engine.transition(dev, task.work_item_id, "IN_PROGRESS")

        assert WorkItemRepository().get_work_item(task.work_item_id).status == "IN_PROGRESS"
        assert _audit_actions(task.work_item_id).count(AuditAction.TRANSITION.value) == 1

    def test_missing_item(self, engine, users):
        with pytest.raises(WorkItemNotFoundError):
            engine.transition(users["dev"].user_id, "TSK-missing", "IN_PROGRESS")

    def test_inactive_actor(self, engine, task, users, db):
        db["users"].update_one({"user_id": users["dev"].user_id}, {"$set": {"is_active": False}})
        with pytest.raises(ActorNotFoundError):
            engine.transition(users["dev"].user_id, task.work_item_id, "IN_PROGRESS")


class TestSideEffectsAreBestEffort:

    def test_dispatch_failure_does_not_fail_transition(self, engine, task, users, monkeypatch, caplog):
        def boom(event):
            raise RuntimeError("broker down")

        monkeypatch.setattr(engine.notification_service, "dispatch", boom)
        with caplog.at_level(logging.WARNING):
            updated = engine.transition(users["dev"].user_id, task.work_item_id, "IN_PROGRESS")

        assert updated.status == "IN_PROGRESS"
        assert "Notification dispatch failed" in caplog.text

    def test_audit_failure_does_not_fail_transition(self, task, users, caplog):
        class BrokenAuditRepository(AuditRepository):
            calls = 0

            def create_entry(self, entry):
                BrokenAuditRepository.calls += 1
                raise RuntimeError("disk full")

        engine = WorkflowEngine(audit_writer=AuditWriter(repo=BrokenAuditRepository()))
        with caplog.at_level(logging.ERROR):
            updated = engine.transition(users["dev"].user_id, task.work_item_id, "IN_PROGRESS")

        assert updated.status == "IN_PROGRESS"
        # One transition entry and one derived-project entry, each retried once
        assert BrokenAuditRepository.calls == 4
        assert "Failed to write audit entry" in caplog.text


class TestProjects:

    def test_lead_delivers_to_review(self, engine, users, project, db):
        db["projects"].update_one({"project_id": project.project_id}, {"$set": {"status": "IN_PROGRESS"}})
        updated = engine.transition_project(users["lead"].user_id, project.project_id, "REVIEW")
        assert updated.status == "REVIEW"
        assert "project_status_changed" in _notification_types(users["manager"].user_id)

    def test_manager_cannot_deliver_to_review(self, engine, users, project, db):
        db["projects"].update_one({"project_id": project.project_id}, {"$set": {"status": "IN_PROGRESS"}})
        with pytest.raises(ForbiddenError):
            engine.transition_project(users["manager"].user_id, project.project_id, "REVIEW")

    def test_only_admin_cancels(self, engine, users, project):
        with pytest.raises(ForbiddenError):
            engine.transition_project(users["manager"].user_id, project.project_id, "CANCELLED")
        updated = engine.transition_project(users["admin"].user_id, project.project_id, "CANCELLED")
        assert updated.status == "CANCELLED"

    def test_other_manager_denied(self, engine, users, project):
        with pytest.raises(ForbiddenError):
            engine.transition_project(users["manager2"].user_id, project.project_id, "ON_HOLD")

    def test_invalid_project_edge(self, engine, users, project):
        with pytest.raises(InvalidTransitionError):
            engine.transition_project(users["manager"].user_id, project.project_id, "COMPLETED")

    def test_on_hold_pins_derivation(self, engine, task, users, project):
        engine.transition_project(users["manager"].user_id, project.project_id, "ON_HOLD")
        engine.transition(users["dev"].user_id, task.work_item_id, "IN_PROGRESS")
        assert ProjectRepository().get_project(project.project_id).status == "ON_HOLD"

    def test_recompute_is_idempotent(self, engine, task, users, project):
        engine.transition(users["dev"].user_id, task.work_item_id, "IN_PROGRESS")
        assert engine.recompute_project_status(project.project_id, users["dev"].user_id) is None
        assert ProjectRepository().get_project(project.project_id).status == "IN_PROGRESS"

    def test_recompute_conflict_is_swallowed(self, engine, task, users, project, monkeypatch):
        engine.transition(users["dev"].user_id, task.work_item_id, "IN_PROGRESS")

        def conflict(*args, **kwargs):
            raise ConflictError("moved")

        monkeypatch.setattr(engine.project_repo, "compare_and_set_status", conflict)
        engine.transition(users["dev"].user_id, task.work_item_id, "SUBMITTED")
        assert engine.recompute_project_status(project.project_id, users["dev"].user_id) is None
