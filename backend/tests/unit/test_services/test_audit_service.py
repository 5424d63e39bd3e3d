"""Audit writer and audit view tests"""
import logging
from datetime import timedelta

import pytest

from agencyflow.domain.models import AuditFilter, AuditMetadata
from agencyflow.domain.enums import AuditAction, EntityType
from agencyflow.domain.errors import ForbiddenError
from agencyflow.engine.audit_writer import AuditWriter
from agencyflow.repositories.audit_repo import AuditRepository
from agencyflow.services.audit_service import AuditService
from agencyflow.utils.time import utc_now


class FlakyAuditRepository(AuditRepository):
    """Fails the first `failures` writes"""

    def __init__(self, failures):
        super().__init__()
        self.failures = failures
        self.calls = 0

    def create_entry(self, entry):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("audit store down")
        return super().create_entry(entry)


class TestAuditWriter:

    def test_append_stamps_entry(self):
        entry = AuditWriter().write_create(
            actor_id="USR-lead",
            entity_type=EntityType.TASK.value,
            entity_id="TSK-1",
            new_value={"status": "ASSIGNED"},
            metadata=AuditMetadata(ip_address="10.0.0.1", correlation_id="corr-1")
        )
        assert entry.action == "CREATE"
        assert entry.timestamp is not None
        assert entry.metadata.ip_address == "10.0.0.1"
        assert entry.metadata.correlation_id == "corr-1"

    def test_retries_once(self):
        repo = FlakyAuditRepository(failures=1)
        entry = AuditWriter(repo=repo).write_transition(
            "USR-dev", "TASK", "TSK-1", "ASSIGNED", "IN_PROGRESS"
        )
        assert entry is not None
        assert repo.calls == 2
        assert AuditRepository().count_entries_for_entity("TASK", "TSK-1") == 1

    def test_failure_never_raises(self, caplog):
        repo = FlakyAuditRepository(failures=5)
        with caplog.at_level(logging.ERROR):
            entry = AuditWriter(repo=repo).write_transition(
                "USR-dev", "TASK", "TSK-1", "ASSIGNED", "IN_PROGRESS"
            )
        assert entry is None
        assert repo.calls == 2
        assert "Failed to write audit entry" in caplog.text


class TestAuditView:

    @pytest.fixture
    def trail(self):
        writer = AuditWriter()
        writer.write_create("USR-lead", "TASK", "TSK-1", {"status": "ASSIGNED"})
        writer.write_transition("USR-dev", "TASK", "TSK-1", "ASSIGNED", "IN_PROGRESS")
        writer.write_transition_denied(
            "USR-dev2", "TASK", "TSK-1", "IN_PROGRESS", "SUBMITTED", "FORBIDDEN", "Not the assignee"
        )
        writer.write_chat("USR-lead", AuditAction.CHAT_SEND, "MSG-1", new_value={"project_id": "PRJ-1"})
        return writer

    def test_newest_first(self, trail, actors):
        page = AuditService().list_entries(actors["admin"], AuditFilter())
        assert page.total == 4
        assert [e.action for e in page.items] == [
            "CHAT_SEND", "TRANSITION_DENIED", "TRANSITION", "CREATE"
        ]

    def test_action_is_a_case_insensitive_substring(self, trail, actors):
        page = AuditService().list_entries(actors["admin"], AuditFilter(action="transition"))
        assert {e.action for e in page.items} == {"TRANSITION", "TRANSITION_DENIED"}

    def test_filter_by_actor_and_entity(self, trail, actors):
        service = AuditService()
        assert service.list_entries(actors["admin"], AuditFilter(actor_id="USR-lead")).total == 2
        assert service.list_entries(actors["admin"], AuditFilter(entity_type="CHAT_MESSAGE")).total == 1

    def test_date_range(self, trail, actors):
        service = AuditService()
        now = utc_now()
        assert service.list_entries(
            actors["admin"], AuditFilter(start_date=now - timedelta(hours=1))
        ).total == 4
        assert service.list_entries(
            actors["admin"], AuditFilter(end_date=now - timedelta(hours=1))
        ).total == 0

    def test_paging(self, trail, actors):
        page = AuditService().list_entries(actors["admin"], AuditFilter(page=2, limit=3))
        assert len(page.items) == 1
        assert page.total_pages == 2

    def test_stats(self, trail, actors):
        stats = AuditService().get_stats(actors["admin"])
        assert stats.total_today == 4
        assert stats.total_week == 4
        assert stats.total_month == 4
        by_action = {b.key: b.count for b in stats.by_action}
        assert by_action["TRANSITION"] == 1
        assert by_action["CREATE"] == 1
        assert {b.key: b.count for b in stats.by_entity_type}["TASK"] == 3

    @pytest.mark.parametrize("key", ["manager", "lead", "dev"])
    def test_admin_only(self, actors, key):
        service = AuditService()
        with pytest.raises(ForbiddenError):
            service.list_entries(actors[key], AuditFilter())
        with pytest.raises(ForbiddenError):
            service.get_stats(actors[key])
