"""Project Derivation - Coarse project status from child task statuses"""
from typing import Iterable

from ..domain.enums import ProjectStatus, TaskStatus

# Statuses set by people that derivation never overrides
PINNED_STATUSES = frozenset({
    ProjectStatus.ON_HOLD.value,
    ProjectStatus.CANCELLED.value,
    ProjectStatus.CLIENT_REVIEW.value,
    ProjectStatus.COMPLETED.value,
})

SUBMITTED_OR_LATER = frozenset({
    TaskStatus.SUBMITTED.value,
    TaskStatus.APPROVED.value,
})


def derive_project_status(current_status: str, task_statuses: Iterable[str]) -> str:
    """
    Reduce the task statuses of a project to a project status.

    Depends only on its inputs, so running it again over the same
    statuses gives the same answer.
    """
    statuses = list(task_statuses)
    if not statuses or current_status in PINNED_STATUSES:
        return current_status

    if all(s == TaskStatus.APPROVED.value for s in statuses):
        return ProjectStatus.COMPLETED.value
    if all(s in SUBMITTED_OR_LATER for s in statuses):
        return ProjectStatus.REVIEW.value
    if any(s != TaskStatus.ASSIGNED.value for s in statuses):
        return ProjectStatus.IN_PROGRESS.value
    return current_status
