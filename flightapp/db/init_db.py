import asyncio
import logging
from sqlalchemy.ext.asyncio import AsyncEngine

from db.models import Base

logger = logging.getLogger(__name__)


async def init_db(engine: AsyncEngine) -> None:
    """Create missing tables. Alembic owns the schema in production."""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception:
        logger.exception("Error initializing database")
        raise


if __name__ == "__main__":
    from config.conf import load_settings
    from db.db import build_async_engine

    settings = load_settings()
    if not settings.database_url:
        raise SystemExit("DATABASE_URL or POSTGRES_* must be set")

    asyncio.run(init_db(build_async_engine(settings.database_url)))
