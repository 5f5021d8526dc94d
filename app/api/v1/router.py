"""API v1 router aggregating all endpoints."""

from fastapi import APIRouter

from app.api.v1 import assessments, catalog, health, screening

api_router = APIRouter()

# Health check
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"],
)

# Domain catalog
api_router.include_router(
    catalog.router,
    prefix="/catalog",
    tags=["catalog"],
)

# Drafts, completed assessments and trends
api_router.include_router(
    assessments.router,
    tags=["assessments"],
)

# Follow-up screening
api_router.include_router(
    screening.router,
    prefix="/screening",
    tags=["screening"],
)
