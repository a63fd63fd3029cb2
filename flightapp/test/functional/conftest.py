import pytest

from db.db import build_async_engine, build_session_factory
from db.init_db import init_db
from storage import SqlBookingStore


@pytest.fixture
async def sql_store(tmp_path):
    engine = build_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'flights.db'}")
    await init_db(engine)
    store = SqlBookingStore(engine, build_session_factory(engine))
    yield store
    await store.close()
