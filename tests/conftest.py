import os, asyncio, tempfile
from pathlib import Path

import pytest

# must be set before tribe_api.config is imported
_DB_DIR = Path(tempfile.mkdtemp(prefix="tribe_api_test_"))
os.environ["DB_URL"] = f"sqlite+aiosqlite:///{_DB_DIR / 'test.db'}"
os.environ["WORDPRESS_SYNC_TOKEN"] = ""
os.environ["APP_DEBUG"] = "false"
os.environ["WORKFLOW_WEBHOOK_URL"] = "http://workflow.test/webhook/coach"
os.environ["TELEGRAM_COACHING_URL"] = "https://t.me/tribe_coaching"

from fastapi.testclient import TestClient  # noqa: E402

from tribe_api.db.models import Base  # noqa: E402
from tribe_api.db.session import engine  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_db():
    async def reset():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
    asyncio.run(reset())
    yield


@pytest.fixture
def app():
    from tribe_api.main import app
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
