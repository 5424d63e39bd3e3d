"""API Routes module"""
from fastapi import APIRouter

from .work_items import router as work_items_router
from .projects import router as projects_router
from .notifications import router as notifications_router
from .chat import router as chat_router
from .audit import router as audit_router
from .settings import router as settings_router
from .users import router as users_router

# Main API router
api_router = APIRouter()

# Include all route modules
api_router.include_router(work_items_router, prefix="/work-items", tags=["Work Items"])
api_router.include_router(projects_router, prefix="/projects", tags=["Projects"])
api_router.include_router(notifications_router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(chat_router, prefix="/chat", tags=["Chat"])
api_router.include_router(audit_router, prefix="/audit", tags=["Audit"])
api_router.include_router(settings_router, prefix="/settings", tags=["Settings"])
api_router.include_router(users_router, prefix="/users", tags=["Users"])

__all__ = ["api_router"]
