import os
import sys
import tempfile

# Ensure Python path includes project root for `import agenda`
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Test environment: file-backed SQLite (each test's event loop opens its own connections)
_DB_DIR = tempfile.mkdtemp(prefix="agenda-tests-")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'agenda.db')}")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.db.base import async_session_context, create_db_and_tables, drop_db_and_tables
from agenda.workers.tasks import celery_app

celery_app.conf.task_always_eager = True
celery_app.conf.task_eager_propagates = True


@pytest_asyncio.fixture
async def setup_db():
    await create_db_and_tables()
    yield
    await drop_db_and_tables()


@pytest_asyncio.fixture
async def db_session(setup_db) -> AsyncSession:
    async with async_session_context() as session:
        yield session
