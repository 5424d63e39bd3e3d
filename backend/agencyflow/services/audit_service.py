"""Audit Service - Operator view over the audit trail"""
from typing import Optional

from ..domain.models import ActorContext, AuditFilter, AuditPage, AuditStats
from ..domain.enums import Role
from ..domain.errors import ForbiddenError
from ..repositories.audit_repo import AuditRepository
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuditService:
    """Read-side queries for the audit trail (admins only)"""

    def __init__(self, repo: Optional[AuditRepository] = None):
        self.repo = repo or AuditRepository()

    def require_admin(self, actor: ActorContext) -> None:
        """Require actor to be an admin"""
        if actor.role != Role.ADMIN.value:
            raise ForbiddenError("Admin access required", details={"actor_id": actor.user_id})

    def list_entries(self, actor: ActorContext, audit_filter: AuditFilter) -> AuditPage:
        """Filtered, paged entries, newest first"""
        self.require_admin(actor)
        return self.repo.list_entries(audit_filter)

    def get_stats(self, actor: ActorContext) -> AuditStats:
        """Counts per day / week / month and top actions and entity types"""
        self.require_admin(actor)
        return self.repo.get_stats()
