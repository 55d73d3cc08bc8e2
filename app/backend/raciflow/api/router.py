"""Top-level API router."""

from fastapi import APIRouter

from raciflow.api.routes.approvals import router as approvals_router
from raciflow.api.routes.departments import router as departments_router
from raciflow.api.routes.events import router as events_router
from raciflow.api.routes.health import router as health_router
from raciflow.api.routes.matrix import router as matrix_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(departments_router)
api_router.include_router(events_router)
api_router.include_router(matrix_router)
api_router.include_router(approvals_router)
