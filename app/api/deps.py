"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.catalog.loader import get_catalog
from app.catalog.models import DomainCatalog
from app.db.session import get_db
from app.services.assessment_store import AssessmentStore


async def get_current_assessor(
    x_assessor_id: Annotated[str | None, Header()] = None,
) -> str:
    """Get the assessor identity forwarded by the auth gateway.

    Args:
        x_assessor_id: Value of the X-Assessor-Id header

    Returns:
        Assessor ID

    Raises:
        HTTPException: If the header is missing or blank
    """
    if not x_assessor_id or not x_assessor_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Assessor identity required",
        )
    return x_assessor_id.strip()


async def get_assessment_store(
    session: Annotated[AsyncSession, Depends(get_db)],
) -> AssessmentStore:
    return AssessmentStore(session)


def get_domain_catalog() -> DomainCatalog:
    return get_catalog()


# Type aliases for common dependencies
DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentAssessor = Annotated[str, Depends(get_current_assessor)]
Store = Annotated[AssessmentStore, Depends(get_assessment_store)]
Catalog = Annotated[DomainCatalog, Depends(get_domain_catalog)]
