"""
Workflow Engine - The Brain of the System

Owns every status change of tasks, assets, revisions and projects.

=============================================================================
TRANSITION PIPELINE
=============================================================================

1. Resolve the actor and the entity (NotFound)
2. Check the edge is a direct successor in the state graph (InvalidTransition)
3. Deny self-approval on review edges (Forbidden)
4. Consult the authorization matrix and the reviewer's project seat (Forbidden)
5. Compare-and-swap the status in the store (Conflict)
6. Append the audit entry (best-effort)
7. Dispatch the transition event to notification fan-out (best-effort)
8. Re-derive the project status from its tasks (best-effort)

Steps 1-5 fail the call. Steps 6-8 run after the change is stored and
only ever log their failures.

=============================================================================
DEPENDENCIES
=============================================================================

Repositories:
    - UserRepository, ProjectRepository, WorkItemRepository

Services:
    - NotificationService: fan-out and push

Guards & Resolvers:
    - PermissionGuard: authorization matrix applied to actors
    - TransitionResolver: state-graph edge check
    - AuditWriter: audit trail
"""
from typing import Optional

from ..domain.models import (
    ActorContext, AuditMetadata, Project, TransitionEvent, TransitionPayload, WorkItem
)
from ..domain.enums import (
    EntityType, EventKind, INITIAL_STATUS, WorkItemKind
)
from ..domain.errors import (
    ConflictError, DomainError, ForbiddenError, InvalidTransitionError,
    SelfApprovalError, ValidationError
)
from ..repositories.project_repo import ProjectRepository
from ..repositories.user_repo import UserRepository
from ..repositories.work_item_repo import WorkItemRepository
from ..services.notification_service import NotificationService
from .authorization import PermissionGuard, edge_rule, is_self_approval
from .audit_writer import AuditWriter
from .project_derivation import derive_project_status
from .state_machine import TransitionResolver, successors
from ..utils.idgen import generate_event_id, generate_work_item_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Kinds whose transitions trigger project re-derivation
DERIVING_KINDS = frozenset({WorkItemKind.TASK.value, WorkItemKind.ASSET.value})


class WorkflowEngine:
    """
    Central state machine for work items and projects.

    No automatic retries: every failure is reported to the caller as a
    distinct DomainError subclass.
    """

    def __init__(
        self,
        user_repo: Optional[UserRepository] = None,
        project_repo: Optional[ProjectRepository] = None,
        work_item_repo: Optional[WorkItemRepository] = None,
        audit_writer: Optional[AuditWriter] = None,
        notification_service: Optional[NotificationService] = None,
        permission_guard: Optional[PermissionGuard] = None
    ):
        self.user_repo = user_repo or UserRepository()
        self.project_repo = project_repo or ProjectRepository()
        self.work_item_repo = work_item_repo or WorkItemRepository()
        self.audit_writer = audit_writer or AuditWriter()
        self.notification_service = notification_service or NotificationService(
            user_repo=self.user_repo,
            project_repo=self.project_repo,
            work_item_repo=self.work_item_repo
        )
        self.permission_guard = permission_guard or PermissionGuard()
        self.resolver = TransitionResolver()

    def _resolve_actor(self, actor_id: str) -> ActorContext:
        user = self.user_repo.get_active_user_or_raise(actor_id)
        return ActorContext(user_id=user.user_id, role=user.role, display_name=user.name)

    # =========================================================================
    # Work item transitions
    # =========================================================================

    def transition(
        self,
        actor_id: str,
        work_item_id: str,
        target_status: str,
        payload: Optional[TransitionPayload] = None,
        metadata: Optional[AuditMetadata] = None
    ) -> WorkItem:
        """
        Move a work item one edge along its state graph.

        Raises:
            NotFoundError: Actor, work item or project missing
            InvalidTransitionError: Target is not a direct successor
            ForbiddenError: Matrix denied, or self-approval
            ConflictError: Item changed since it was read
        """
        actor = self._resolve_actor(actor_id)
        item = self.work_item_repo.get_work_item_or_raise(work_item_id)
        project = self.project_repo.get_project_or_raise(item.project_id)
        from_status = item.status

        try:
            self.resolver.resolve(item.kind, from_status, target_status, item.work_item_id)

            if is_self_approval(actor.user_id, item, target_status):
                raise SelfApprovalError(
                    "You cannot review your own work",
                    details={"work_item_id": item.work_item_id, "target_status": target_status}
                )

            assignee_role = None
            if item.assigned_actor_id:
                assignee_role = self.user_repo.get_roles([item.assigned_actor_id]).get(item.assigned_actor_id)

            reason = self.permission_guard.denial_reason(actor, item, target_status, assignee_role, project)
            if reason:
                raise ForbiddenError(
                    reason,
                    details={"work_item_id": item.work_item_id, "target_status": target_status}
                )

            updated = self.work_item_repo.compare_and_swap_status(
                item.work_item_id, from_status, target_status, payload
            )
        except (InvalidTransitionError, ForbiddenError, ConflictError) as e:
            self._record_denial(actor, item.kind, item.work_item_id, item.project_id,
                                from_status, target_status, e, metadata)
            raise

        logger.info(
            f"{item.kind} {item.work_item_id}: {from_status} -> {target_status}",
            extra={
                "work_item_id": item.work_item_id,
                "project_id": item.project_id,
                "actor_id": actor.user_id,
                "status": target_status,
            }
        )

        self.audit_writer.write_transition(
            actor_id=actor.user_id,
            entity_type=item.kind,
            entity_id=item.work_item_id,
            from_status=from_status,
            to_status=target_status,
            note=payload.note if payload else None,
            metadata=metadata
        )

        self._dispatch(TransitionEvent(
            event_id=generate_event_id(),
            kind=item.kind,
            work_item_id=item.work_item_id,
            project_id=item.project_id,
            from_status=from_status,
            to_status=target_status,
            actor_id=actor.user_id,
            occurred_at=updated.last_transition_at or utc_now()
        ))

        if item.kind in DERIVING_KINDS:
            self._safe_recompute(item.project_id, actor.user_id, metadata)

        return updated

    def _record_denial(
        self,
        actor: ActorContext,
        entity_type: str,
        entity_id: str,
        project_id: str,
        from_status: str,
        target_status: str,
        error: DomainError,
        metadata: Optional[AuditMetadata]
    ) -> None:
        logger.warning(
            f"Transition denied ({error.error_code}): {error.message}",
            extra={
                "work_item_id": entity_id,
                "project_id": project_id,
                "actor_id": actor.user_id,
                "status": from_status,
            }
        )
        self.audit_writer.write_transition_denied(
            actor_id=actor.user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            from_status=from_status,
            to_status=target_status,
            error_code=error.error_code,
            reason=error.message,
            metadata=metadata
        )

    def _dispatch(self, event: TransitionEvent) -> None:
        """Hand an event to fan-out; failures never reach the caller"""
        try:
            self.notification_service.dispatch(event)
        except Exception as e:
            logger.warning(
                f"Notification dispatch failed: {e}",
                extra={"event_id": event.event_id, "work_item_id": event.work_item_id}
            )

    # =========================================================================
    # Creation
    # =========================================================================

    def create_work_item(
        self,
        actor_id: str,
        kind: str,
        project_id: str,
        assigned_actor_id: str,
        title: str,
        description: Optional[str] = None,
        metadata: Optional[AuditMetadata] = None
    ) -> WorkItem:
        """
        Create a task, asset request or revision in its initial status.

        Raises:
            NotFoundError: Actor, project or assignee missing
            ForbiddenError: Actor may not create this kind on this project
            ValidationError: Bad title or an assignee who cannot work the item
        """
        actor = self._resolve_actor(actor_id)
        try:
            kind = WorkItemKind(kind).value
        except ValueError:
            raise ValidationError(f"Unknown work item kind: {kind}")

        if not title or not title.strip():
            raise ValidationError("Title is required")

        project = self.project_repo.get_project_or_raise(project_id)
        if not self.permission_guard.can_create(actor, kind, project):
            raise ForbiddenError(
                f"Role {actor.role} cannot create a {kind} on this project",
                details={"project_id": project_id, "kind": kind}
            )

        assignee = self.user_repo.get_active_user_or_raise(assigned_actor_id)
        initial_status = INITIAL_STATUS[WorkItemKind(kind)]
        first_edge = self._first_work_edge(kind, initial_status)
        if first_edge is not None and assignee.role not in first_edge.roles:
            raise ValidationError(
                f"A {assignee.role} cannot be assigned a {kind}",
                details={"assigned_actor_id": assigned_actor_id}
            )

        now = utc_now()
        item = WorkItem(
            work_item_id=generate_work_item_id(kind),
            kind=kind,
            project_id=project_id,
            title=title.strip(),
            description=description,
            status=initial_status,
            assigned_actor_id=assignee.user_id,
            created_by_id=actor.user_id,
            last_transition_at=now,
            created_at=now
        )
        self.work_item_repo.create_work_item(item)

        self.audit_writer.write_create(
            actor_id=actor.user_id,
            entity_type=kind,
            entity_id=item.work_item_id,
            new_value={
                "status": initial_status,
                "project_id": project_id,
                "assigned_actor_id": assignee.user_id,
                "title": item.title,
            },
            metadata=metadata
        )

        self._dispatch(TransitionEvent(
            event_id=generate_event_id(),
            kind=kind,
            work_item_id=item.work_item_id,
            project_id=project_id,
            from_status=None,
            to_status=initial_status,
            actor_id=actor.user_id,
            occurred_at=now
        ))

        if kind == WorkItemKind.TASK.value:
            self._safe_recompute(project_id, actor.user_id, metadata)

        return item

    @staticmethod
    def _first_work_edge(kind: str, initial_status: str):
        for target in successors(kind, initial_status):
            rule = edge_rule(kind, initial_status, target)
            if rule is not None and rule.assignee_only:
                return rule
        return None

    # =========================================================================
    # Projects
    # =========================================================================

    def transition_project(
        self,
        actor_id: str,
        project_id: str,
        target_status: str,
        metadata: Optional[AuditMetadata] = None
    ) -> Project:
        """
        Manually move a project along the project graph.

        Raises the same errors as transition().
        """
        actor = self._resolve_actor(actor_id)
        project = self.project_repo.get_project_or_raise(project_id)
        from_status = project.status

        try:
            self.resolver.resolve(EventKind.PROJECT.value, from_status, target_status, project_id)
            if not self.permission_guard.can_transition_project(actor, project, target_status):
                raise ForbiddenError(
                    f"Role {actor.role} may not move this project to {target_status}",
                    details={"project_id": project_id, "target_status": target_status}
                )
            updated = self.project_repo.compare_and_set_status(project_id, from_status, target_status)
        except (InvalidTransitionError, ForbiddenError, ConflictError) as e:
            self._record_denial(actor, EntityType.PROJECT.value, project_id, project_id,
                                from_status, target_status, e, metadata)
            raise

        self.audit_writer.write_transition(
            actor_id=actor.user_id,
            entity_type=EntityType.PROJECT.value,
            entity_id=project_id,
            from_status=from_status,
            to_status=target_status,
            metadata=metadata
        )
        self._emit_project_event(project_id, from_status, target_status, actor.user_id)
        return updated

    def recompute_project_status(
        self,
        project_id: str,
        actor_id: str,
        metadata: Optional[AuditMetadata] = None
    ) -> Optional[Project]:
        """
        Re-derive a project's status from its tasks.

        Returns the updated project, or None when nothing changed.
        Losing the compare-and-swap to another writer is not an error:
        the next transition recomputes the same answer.
        """
        project = self.project_repo.get_project(project_id)
        if project is None:
            return None

        statuses = self.work_item_repo.list_statuses(project_id, WorkItemKind.TASK)
        derived = derive_project_status(project.status, statuses)
        if derived == project.status:
            return None

        try:
            updated = self.project_repo.compare_and_set_status(project_id, project.status, derived)
        except ConflictError:
            logger.info(
                f"Project {project_id} changed during derivation, skipping",
                extra={"project_id": project_id}
            )
            return None

        self.audit_writer.write_project_derived(
            actor_id=actor_id,
            project_id=project_id,
            from_status=project.status,
            to_status=derived,
            metadata=metadata
        )
        self._emit_project_event(project_id, project.status, derived, actor_id)
        return updated

    def _safe_recompute(
        self,
        project_id: str,
        actor_id: str,
        metadata: Optional[AuditMetadata]
    ) -> None:
        try:
            self.recompute_project_status(project_id, actor_id, metadata)
        except Exception as e:
            logger.error(
                f"Project status derivation failed: {e}",
                extra={"project_id": project_id}
            )

    def _emit_project_event(
        self,
        project_id: str,
        from_status: str,
        to_status: str,
        actor_id: str
    ) -> None:
        logger.info(
            f"Project {project_id}: {from_status} -> {to_status}",
            extra={"project_id": project_id, "actor_id": actor_id, "status": to_status}
        )
        self._dispatch(TransitionEvent(
            event_id=generate_event_id(),
            kind=EventKind.PROJECT.value,
            work_item_id=project_id,
            project_id=project_id,
            from_status=from_status,
            to_status=to_status,
            actor_id=actor_id,
            occurred_at=utc_now()
        ))

