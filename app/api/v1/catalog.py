"""Domain catalog endpoints."""

from fastapi import APIRouter

from app.api.deps import Catalog
from app.schemas.assessment import CatalogRead

router = APIRouter()


@router.get(
    "",
    response_model=CatalogRead,
    summary="Get the active domain catalog",
)
async def get_active_catalog(catalog: Catalog) -> CatalogRead:
    """Return the domains, questions and workflow step groups in use."""
    return CatalogRead.model_validate(catalog)
