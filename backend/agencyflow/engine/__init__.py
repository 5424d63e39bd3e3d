"""Workflow Engine - The brain of the system

WorkflowEngine lives in .engine and is imported from there; it depends on
the services layer, which itself uses the pieces exported here.
"""
from .authorization import PermissionGuard
from .state_machine import TransitionResolver
from .audit_writer import AuditWriter
from .project_derivation import derive_project_status

__all__ = [
    "PermissionGuard",
    "TransitionResolver",
    "AuditWriter",
    "derive_project_status",
]
