"""Audit Log Routes - Admin view over the audit trail"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query

from ..deps import get_current_user_dep
from ...domain.models import ActorContext, AuditFilter, AuditPage, AuditStats
from ...domain.errors import ValidationError
from ...services.audit_service import AuditService
from ...utils.time import parse_iso

router = APIRouter()


def _parse_date(name: str, value: Optional[str]) -> Optional[datetime]:
    """Accept any ISO 8601 date or datetime; naive values are UTC"""
    if not value:
        return None
    try:
        return parse_iso(value)
    except ValueError:
        raise ValidationError(f"Invalid {name}: {value}", details={name: value})


@router.get("", response_model=AuditPage)
async def list_audit_entries(
    actor_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None, description="Case-insensitive substring"),
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, description="ISO 8601, inclusive"),
    end_date: Optional[str] = Query(None, description="ISO 8601, inclusive"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    actor: ActorContext = Depends(get_current_user_dep)
):
    """List audit entries, newest first (admins only)"""
    service = AuditService()
    return service.list_entries(actor, AuditFilter(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        start_date=_parse_date("start_date", start_date),
        end_date=_parse_date("end_date", end_date),
        page=page,
        limit=limit
    ))


@router.get("/stats", response_model=AuditStats)
async def get_audit_stats(
    actor: ActorContext = Depends(get_current_user_dep)
):
    """Counts for today, this week and this month plus top actions (admins only)"""
    service = AuditService()
    return service.get_stats(actor)
