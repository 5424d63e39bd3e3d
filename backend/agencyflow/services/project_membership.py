"""Project Membership - Who belongs to a project, and with what role"""
from typing import Dict, Optional

from ..domain.models import ActorContext, Project
from ..domain.enums import Role
from ..repositories.project_repo import ProjectRepository
from ..repositories.user_repo import UserRepository
from ..repositories.work_item_repo import WorkItemRepository
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ProjectMembershipService:
    """
    Resolve active role-memberships on a project.

    Members are the assigned manager, team lead and designer, everyone
    assigned a work item on the project, and every active admin.
    """

    def __init__(
        self,
        project_repo: Optional[ProjectRepository] = None,
        user_repo: Optional[UserRepository] = None,
        work_item_repo: Optional[WorkItemRepository] = None
    ):
        self.project_repo = project_repo or ProjectRepository()
        self.user_repo = user_repo or UserRepository()
        self.work_item_repo = work_item_repo or WorkItemRepository()

    def get_members(self, project: Project) -> Dict[str, str]:
        """Map each active member's user ID to their role"""
        candidate_ids = {project.manager_id}
        if project.team_lead_id:
            candidate_ids.add(project.team_lead_id)
        if project.designer_id:
            candidate_ids.add(project.designer_id)
        for item in self.work_item_repo.list_for_project(project.project_id):
            if item.assigned_actor_id:
                candidate_ids.add(item.assigned_actor_id)

        members = self.user_repo.get_roles(list(candidate_ids))
        for admin in self.user_repo.list_active_by_role(Role.ADMIN):
            members[admin.user_id] = admin.role
        return members

    def has_access(self, actor: ActorContext, project: Project) -> bool:
        """
        Check whether an actor may read or post on a project.

        Admins see every project; the other roles need their seat or an
        assigned work item.
        """
        if actor.role == Role.ADMIN.value:
            return True
        if actor.role == Role.MANAGER.value:
            return project.manager_id == actor.user_id
        if actor.role == Role.TEAM_LEAD.value:
            return project.team_lead_id == actor.user_id
        if actor.role == Role.DESIGNER.value:
            if project.designer_id == actor.user_id:
                return True
        return self.work_item_repo.has_assignment(project.project_id, actor.user_id)

    def has_access_by_id(self, actor: ActorContext, project_id: str) -> bool:
        """has_access for a project ID; unknown projects are never accessible"""
        project = self.project_repo.get_project(project_id)
        if project is None:
            return False
        return self.has_access(actor, project)
