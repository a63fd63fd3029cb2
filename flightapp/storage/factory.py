import logging

from config.conf import Settings, STORAGE_SQL, STORAGE_MEMORY
from db.db import build_async_engine, build_session_factory
from db.init_db import init_db
from .domain import BookingStore, StorageUnavailable
from .in_memory_store import InMemoryBookingStore
from .sql_store import SqlBookingStore

logger = logging.getLogger(__name__)


async def build_store(settings: Settings) -> BookingStore:
    """Pick the persistence backend once, at startup."""
    if settings.storage_backend == STORAGE_MEMORY:
        logger.warning("No database configured, bookings are kept in memory only")
        return InMemoryBookingStore()

    if settings.storage_backend == STORAGE_SQL:
        if not settings.database_url:
            raise StorageUnavailable("STORAGE_BACKEND=sql requires DATABASE_URL or POSTGRES_* settings")

        engine = build_async_engine(settings.database_url, echo=settings.db_echo)
        if settings.db_create_schema:
            await init_db(engine)
        logger.info("Using SQL booking store")
        return SqlBookingStore(engine, build_session_factory(engine))

    raise StorageUnavailable(f"Unknown storage backend: {settings.storage_backend}")
