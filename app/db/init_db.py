"""Database initialization utilities."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.catalog import get_catalog
from app.db.base import Base
from app.db.session import engine

logger = logging.getLogger(__name__)


async def create_tables() -> None:
    """Create all database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def drop_tables() -> None:
    """Drop all database tables (use with caution)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("Database tables dropped")


async def init_db(session: AsyncSession) -> None:
    """Initialize database with tables and warm the domain catalog."""
    # Import models so they register on Base.metadata
    import app.models  # noqa: F401

    await create_tables()

    catalog = get_catalog()
    logger.info(
        f"Domain catalog {catalog.id} v{catalog.version} loaded "
        f"({len(catalog.domains)} domains, hash={catalog.content_hash[:12]})"
    )
    await session.commit()
