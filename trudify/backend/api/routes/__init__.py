"""
API Router.

Aggregates all endpoint routers mounted under the API prefix.
"""

from fastapi import APIRouter

from trudify.backend.api.routes.endpoints import (
    applications,
    notifications,
    professionals,
    tasks,
    telegram,
)

router = APIRouter()

router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
router.include_router(applications.router, prefix="/applications", tags=["applications"])
router.include_router(professionals.router, prefix="/professionals", tags=["professionals"])
router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
router.include_router(telegram.router, prefix="/telegram", tags=["telegram"])
