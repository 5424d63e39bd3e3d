"""State Machine - Lifecycle graphs for work items and projects"""
from typing import Dict, FrozenSet, Optional

from ..domain.enums import (
    WorkItemKind, TaskStatus, AssetStatus, RevisionStatus, ProjectStatus
)
from ..domain.errors import InvalidTransitionError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _graph(edges: Dict[str, tuple]) -> Dict[str, FrozenSet[str]]:
    return {src: frozenset(dst) for src, dst in edges.items()}


TASK_GRAPH = _graph({
    TaskStatus.ASSIGNED.value: (TaskStatus.IN_PROGRESS.value,),
    TaskStatus.IN_PROGRESS.value: (TaskStatus.SUBMITTED.value,),
    TaskStatus.SUBMITTED.value: (TaskStatus.APPROVED.value, TaskStatus.REJECTED.value),
    TaskStatus.REJECTED.value: (TaskStatus.IN_PROGRESS.value,),
    TaskStatus.APPROVED.value: (),
})

ASSET_GRAPH = _graph({
    AssetStatus.REQUESTED.value: (AssetStatus.IN_PROGRESS.value,),
    AssetStatus.IN_PROGRESS.value: (AssetStatus.SUBMITTED.value,),
    AssetStatus.SUBMITTED.value: (AssetStatus.APPROVED.value, AssetStatus.REJECTED.value),
    AssetStatus.REJECTED.value: (AssetStatus.IN_PROGRESS.value,),
    AssetStatus.APPROVED.value: (),
})

# COMPLETED -> IN_PROGRESS reopens a revision instead of a reject state
REVISION_GRAPH = _graph({
    RevisionStatus.CREATED.value: (RevisionStatus.IN_PROGRESS.value,),
    RevisionStatus.IN_PROGRESS.value: (RevisionStatus.COMPLETED.value,),
    RevisionStatus.COMPLETED.value: (RevisionStatus.ACCEPTED.value, RevisionStatus.IN_PROGRESS.value),
    RevisionStatus.ACCEPTED.value: (),
})

PROJECT_GRAPH = _graph({
    ProjectStatus.NEW.value: (
        ProjectStatus.REQUIREMENTS_PENDING.value,
        ProjectStatus.IN_PROGRESS.value,
        ProjectStatus.ON_HOLD.value,
        ProjectStatus.CANCELLED.value,
    ),
    ProjectStatus.REQUIREMENTS_PENDING.value: (
        ProjectStatus.IN_PROGRESS.value,
        ProjectStatus.ON_HOLD.value,
        ProjectStatus.CANCELLED.value,
    ),
    ProjectStatus.IN_PROGRESS.value: (
        ProjectStatus.REVIEW.value,
        ProjectStatus.ON_HOLD.value,
        ProjectStatus.CANCELLED.value,
    ),
    ProjectStatus.REVIEW.value: (
        ProjectStatus.CLIENT_REVIEW.value,
        ProjectStatus.IN_PROGRESS.value,
        ProjectStatus.COMPLETED.value,
        ProjectStatus.CANCELLED.value,
    ),
    ProjectStatus.CLIENT_REVIEW.value: (
        ProjectStatus.IN_PROGRESS.value,
        ProjectStatus.COMPLETED.value,
        ProjectStatus.CANCELLED.value,
    ),
    ProjectStatus.ON_HOLD.value: (
        ProjectStatus.IN_PROGRESS.value,
        ProjectStatus.CANCELLED.value,
    ),
    ProjectStatus.COMPLETED.value: (),
    ProjectStatus.CANCELLED.value: (),
})

WORK_ITEM_GRAPHS = {
    WorkItemKind.TASK.value: TASK_GRAPH,
    WorkItemKind.ASSET.value: ASSET_GRAPH,
    WorkItemKind.REVISION.value: REVISION_GRAPH,
}


def graph_for(kind: str) -> Dict[str, FrozenSet[str]]:
    """Get the state graph of a work item kind"""
    try:
        return WORK_ITEM_GRAPHS[WorkItemKind(kind).value]
    except (KeyError, ValueError):
        raise ValueError(f"Unknown work item kind: {kind}")


def successors(kind: str, status: str) -> FrozenSet[str]:
    """Direct successors of a status"""
    return graph_for(kind).get(status, frozenset())


def is_direct_successor(kind: str, from_status: str, to_status: str) -> bool:
    """True when from_status -> to_status is a single edge of the kind's graph"""
    return to_status in successors(kind, from_status)


def is_terminal(kind: str, status: str) -> bool:
    """True when the status has no outgoing edges"""
    return not successors(kind, status)


class TransitionResolver:
    """
    Validate a requested transition against the state graph.

    Only direct successors are reachable in one call; there is no
    multi-hop resolution and no role gets to skip states.
    """

    def resolve(
        self,
        kind: str,
        current_status: str,
        target_status: str,
        entity_id: Optional[str] = None
    ) -> str:
        """
        Return target_status if it is a direct successor.

        Raises:
            InvalidTransitionError: If the edge does not exist
        """
        graph = PROJECT_GRAPH if kind == "PROJECT" else graph_for(kind)

        allowed = graph.get(current_status, frozenset())
        if target_status not in allowed:
            raise InvalidTransitionError(
                f"Cannot move {kind} from {current_status} to {target_status}",
                details={
                    "entity_id": entity_id,
                    "kind": kind,
                    "current_status": current_status,
                    "target_status": target_status,
                    "allowed": sorted(allowed),
                }
            )

        logger.debug(
            f"Resolved transition: {current_status} -> {target_status}",
            extra={"work_item_id": entity_id, "status": target_status}
        )
        return target_status
