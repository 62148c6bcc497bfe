from fastapi import APIRouter

from pixpen.api.v1.endpoints.health import router as health_router
from pixpen.api.v1.endpoints.sessions import router as sessions_router
from pixpen.api.v1.endpoints.selection import router as selection_router
from pixpen.api.v1.endpoints.edits import router as edits_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(sessions_router, tags=["sessions"])
router.include_router(selection_router, tags=["selection"])
router.include_router(edits_router, tags=["edits"])
