"""Authorization Matrix - Static role table for every state-graph edge

Pure lookups only. The engine combines these checks; nothing here reads
the store or raises for a denied request.
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple

from ..domain.models import WorkItem, Project, ActorContext
from ..domain.enums import (
    Role, WorkItemKind, TaskStatus, AssetStatus, RevisionStatus, ProjectStatus
)
from .state_machine import WORK_ITEM_GRAPHS, PROJECT_GRAPH


@dataclass(frozen=True)
class EdgeRule:
    """Who may traverse one edge"""
    roles: FrozenSet[str]
    assignee_only: bool = False
    review: bool = False


def _roles(*roles: Role) -> FrozenSet[str]:
    return frozenset(r.value for r in roles)


# Tier used for "one tier above the assignee"
ROLE_RANK: Dict[str, int] = {
    Role.ADMIN.value: 4,
    Role.MANAGER.value: 3,
    Role.TEAM_LEAD.value: 2,
    Role.DEVELOPER.value: 1,
    Role.DESIGNER.value: 1,
}

_TASK_WORKERS = _roles(Role.DEVELOPER, Role.DESIGNER)
_TASK_REVIEWERS = _roles(Role.TEAM_LEAD, Role.MANAGER, Role.ADMIN)
_ASSET_WORKERS = _roles(Role.DESIGNER)
_ASSET_REVIEWERS = _roles(Role.TEAM_LEAD, Role.MANAGER, Role.ADMIN)
_REVISION_WORKERS = _roles(Role.DEVELOPER, Role.TEAM_LEAD)
_REVISION_REVIEWERS = _roles(Role.MANAGER, Role.ADMIN)

MATRIX: Dict[Tuple[str, str, str], EdgeRule] = {
    # Task
    (WorkItemKind.TASK.value, TaskStatus.ASSIGNED.value, TaskStatus.IN_PROGRESS.value):
        EdgeRule(_TASK_WORKERS, assignee_only=True),
    (WorkItemKind.TASK.value, TaskStatus.IN_PROGRESS.value, TaskStatus.SUBMITTED.value):
        EdgeRule(_TASK_WORKERS, assignee_only=True),
    (WorkItemKind.TASK.value, TaskStatus.REJECTED.value, TaskStatus.IN_PROGRESS.value):
        EdgeRule(_TASK_WORKERS, assignee_only=True),
    (WorkItemKind.TASK.value, TaskStatus.SUBMITTED.value, TaskStatus.APPROVED.value):
        EdgeRule(_TASK_REVIEWERS, review=True),
    (WorkItemKind.TASK.value, TaskStatus.SUBMITTED.value, TaskStatus.REJECTED.value):
        EdgeRule(_TASK_REVIEWERS, review=True),

    # Asset
    (WorkItemKind.ASSET.value, AssetStatus.REQUESTED.value, AssetStatus.IN_PROGRESS.value):
        EdgeRule(_ASSET_WORKERS, assignee_only=True),
    (WorkItemKind.ASSET.value, AssetStatus.IN_PROGRESS.value, AssetStatus.SUBMITTED.value):
        EdgeRule(_ASSET_WORKERS, assignee_only=True),
    (WorkItemKind.ASSET.value, AssetStatus.REJECTED.value, AssetStatus.IN_PROGRESS.value):
        EdgeRule(_ASSET_WORKERS, assignee_only=True),
    (WorkItemKind.ASSET.value, AssetStatus.SUBMITTED.value, AssetStatus.APPROVED.value):
        EdgeRule(_ASSET_REVIEWERS, review=True),
    (WorkItemKind.ASSET.value, AssetStatus.SUBMITTED.value, AssetStatus.REJECTED.value):
        EdgeRule(_ASSET_REVIEWERS, review=True),

    # Revision
    (WorkItemKind.REVISION.value, RevisionStatus.CREATED.value, RevisionStatus.IN_PROGRESS.value):
        EdgeRule(_REVISION_WORKERS, assignee_only=True),
    (WorkItemKind.REVISION.value, RevisionStatus.IN_PROGRESS.value, RevisionStatus.COMPLETED.value):
        EdgeRule(_REVISION_WORKERS, assignee_only=True),
    (WorkItemKind.REVISION.value, RevisionStatus.COMPLETED.value, RevisionStatus.ACCEPTED.value):
        EdgeRule(_REVISION_REVIEWERS, review=True),
    (WorkItemKind.REVISION.value, RevisionStatus.COMPLETED.value, RevisionStatus.IN_PROGRESS.value):
        EdgeRule(_REVISION_REVIEWERS, review=True),
}

# Project edges: (from, to) -> roles. Edges not listed default to manager/admin.
_PROJECT_MANAGERS = _roles(Role.MANAGER, Role.ADMIN)

PROJECT_MATRIX: Dict[Tuple[str, str], FrozenSet[str]] = {
    (ProjectStatus.IN_PROGRESS.value, ProjectStatus.REVIEW.value):
        _roles(Role.TEAM_LEAD, Role.ADMIN),
}
for _src, _targets in PROJECT_GRAPH.items():
    for _dst in _targets:
        if _dst == ProjectStatus.CANCELLED.value:
            PROJECT_MATRIX[(_src, _dst)] = _roles(Role.ADMIN)
        else:
            PROJECT_MATRIX.setdefault((_src, _dst), _PROJECT_MANAGERS)

# Who may create each kind
CREATE_ROLES: Dict[str, FrozenSet[str]] = {
    WorkItemKind.TASK.value: _roles(Role.TEAM_LEAD, Role.ADMIN),
    WorkItemKind.ASSET.value: _roles(Role.TEAM_LEAD, Role.MANAGER, Role.ADMIN),
    WorkItemKind.REVISION.value: _roles(Role.MANAGER, Role.ADMIN),
}


def _check_kind(kind: str) -> str:
    try:
        value = WorkItemKind(kind).value
    except ValueError:
        value = None
    if value not in WORK_ITEM_GRAPHS:
        raise ValueError(f"Unknown work item kind: {kind}")
    return value


def edge_rule(kind: str, from_status: str, to_status: str) -> Optional[EdgeRule]:
    """Rule for an edge, or None when the edge is not in the table"""
    return MATRIX.get((_check_kind(kind), from_status, to_status))


def allowed(role: str, kind: str, from_status: str, to_status: str) -> bool:
    """Whether a role may traverse an edge at all"""
    rule = edge_rule(kind, from_status, to_status)
    return rule is not None and role in rule.roles


def is_review_edge(kind: str, from_status: str, to_status: str) -> bool:
    """Approve / reject / accept / reopen edges"""
    rule = edge_rule(kind, from_status, to_status)
    return rule is not None and rule.review


def is_self_approval(actor_id: str, work_item: WorkItem, to_status: str) -> bool:
    """Actor reviewing work they are assigned to"""
    if not is_review_edge(work_item.kind, work_item.status, to_status):
        return False
    return work_item.assigned_actor_id is not None and work_item.assigned_actor_id == actor_id


def outranks(reviewer_role: str, assignee_role: Optional[str]) -> bool:
    """Reviewer must sit strictly above the assignee; unknown assignee passes"""
    if assignee_role is None:
        return True
    return ROLE_RANK.get(reviewer_role, 0) > ROLE_RANK.get(assignee_role, 0)


def can_create(role: str, kind: str) -> bool:
    """Whether a role may create a work item of this kind"""
    return role in CREATE_ROLES[_check_kind(kind)]


def project_allowed(role: str, from_status: str, to_status: str) -> bool:
    """Whether a role may move a project along an edge"""
    roles = PROJECT_MATRIX.get((from_status, to_status))
    return roles is not None and role in roles


class PermissionGuard:
    """
    Apply the matrix to concrete actors and entities.

    Rules:
    - Worker edges are for the assignee only
    - Review edges need a role strictly above the assignee
    - Self-approval is denied before the matrix is consulted
    - Team Leads and Managers act only on projects they are assigned to
    """

    def is_assigned_to_project(self, actor: ActorContext, project: Project) -> bool:
        """Check the actor holds the project seat matching their role"""
        if actor.role == Role.ADMIN.value:
            return True
        if actor.role == Role.MANAGER.value:
            return project.manager_id == actor.user_id
        if actor.role == Role.TEAM_LEAD.value:
            return project.team_lead_id == actor.user_id
        if actor.role == Role.DESIGNER.value:
            return project.designer_id == actor.user_id
        return False

    def denial_reason(
        self,
        actor: ActorContext,
        work_item: WorkItem,
        to_status: str,
        assignee_role: Optional[str],
        project: Optional[Project] = None
    ) -> Optional[str]:
        """
        Return why the actor may not move the item, or None if allowed.

        When the item's project is given, reviewers must hold a seat on it.
        Self-approval is checked separately by the engine.
        """
        rule = edge_rule(work_item.kind, work_item.status, to_status)
        if rule is None or actor.role not in rule.roles:
            return f"Role {actor.role} may not move {work_item.kind} from {work_item.status} to {to_status}"
        if rule.assignee_only and work_item.assigned_actor_id != actor.user_id:
            return "Only the assigned actor may perform this transition"
        if rule.review and project is not None and not self.is_assigned_to_project(actor, project):
            return f"Only reviewers assigned to project {project.project_id} may perform this transition"
        if rule.review and not outranks(actor.role, assignee_role):
            return f"Role {actor.role} does not rank above the assignee's role {assignee_role}"
        return None

    def can_create(self, actor: ActorContext, kind: str, project: Project) -> bool:
        """Check creation rights including the project seat"""
        if not can_create(actor.role, kind):
            return False
        return self.is_assigned_to_project(actor, project)

    def can_transition_project(
        self,
        actor: ActorContext,
        project: Project,
        to_status: str
    ) -> bool:
        """Check project-edge rights including the project seat"""
        if not project_allowed(actor.role, project.status, to_status):
            return False
        return self.is_assigned_to_project(actor, project)
