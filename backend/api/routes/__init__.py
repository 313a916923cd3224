"""API Routes."""

from fastapi import APIRouter

from .analytics import router as analytics_router
from .chat import router as chat_router
from .diagnostics import router as diagnostics_router
from .health import router as health_router
from .keywords import router as keywords_router

# Create main API router
api_router = APIRouter()

# Include route modules
api_router.include_router(health_router, tags=["Health"])
api_router.include_router(chat_router)
api_router.include_router(keywords_router)
api_router.include_router(analytics_router)
api_router.include_router(diagnostics_router)
