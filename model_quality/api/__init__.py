"""
Model Quality API package initialization.

This package contains FastAPI router modules for the Model Quality Monitor:
- model_quality: Dashboard, summary cards and segment drill-down
"""

from fastapi import APIRouter

# Import router modules
from model_quality.api.model_quality import router as model_quality_router

# Create main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(model_quality_router, prefix="/model-quality", tags=["model-quality"])

# Export all routers for selective imports
__all__ = [
    "api_router",
    "model_quality_router",
]
