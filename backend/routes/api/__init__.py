"""JSON API: health, pilots, matches, uploads and user tokens."""

from fastapi import APIRouter

from .health import router as health_router
from .matches import router as matches_router
from .pilots import router as pilots_router
from .tokens import router as tokens_router

router = APIRouter(prefix="/api", tags=["api"])
router.include_router(health_router)
router.include_router(pilots_router)
router.include_router(matches_router)
router.include_router(tokens_router)

api_router = router
