import pytest
from sqlalchemy import inspect

from courseflow import dependencies
from courseflow.main import app, lifespan
from sqlite_engine import create_test_engine


@pytest.mark.asyncio
async def test_lifespan_creates_tables_on_shared_engine(monkeypatch, tmp_path):
    engine = create_test_engine(f"sqlite+aiosqlite:///{tmp_path / 'app.db'}")
    monkeypatch.setattr(dependencies, "engine", engine)

    async with lifespan(app):
        async with engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

    assert {"users", "courses", "lesson_progress", "certificates"} <= set(tables)
    await engine.dispose()
