"""Top-level API router."""

from fastapi import APIRouter

from orgboard.api.routes.assignments import router as assignments_router
from orgboard.api.routes.edit_session import router as edit_session_router
from orgboard.api.routes.graph import router as graph_router
from orgboard.api.routes.health import router as health_router
from orgboard.api.routes.personnel import router as personnel_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(graph_router)
api_router.include_router(edit_session_router)
api_router.include_router(assignments_router)
api_router.include_router(personnel_router)
