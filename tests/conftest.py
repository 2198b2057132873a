import os
import tempfile

# Settings are read at import time, so the environment must be ready first
_DB_PATH = os.path.join(tempfile.mkdtemp(prefix="keepmeontrack-"), "test.db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ["GROQ_API_KEY"] = ""

from datetime import date, datetime  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402

from keepmeontrack.adapters.demo_store import DemoStore  # noqa: E402
from keepmeontrack.api.deps import limiter  # noqa: E402
from keepmeontrack.core.database import AsyncSessionLocal, drop_db, engine, init_db  # noqa: E402
from keepmeontrack.core.session import SessionContext  # noqa: E402
from keepmeontrack.main import app  # noqa: E402
from keepmeontrack.services.tracker import GoalTracker  # noqa: E402

NOW = datetime(2026, 10, 18, 12, 0, 0)
TODAY = date(2026, 10, 18)


@pytest.fixture
async def db():
    await init_db()
    yield
    await drop_db()
    # pooled connections belong to this test's event loop
    await engine.dispose()


@pytest.fixture
async def db_session(db):
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def demo_tracker():
    """Tracker over an empty in-memory store."""
    ctx = SessionContext(user_id="user-1", store=DemoStore(today=TODAY, seed=False))
    return GoalTracker(ctx)


@pytest.fixture
async def client(db):
    limiter.reset()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def register(client, email="runner@example.com", password="s3cret-pass"):
    resp = await client.post("/api/v1/auth/register", json={
        "email": email, "password": password, "full_name": "Test Runner",
    })
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
async def auth_headers(client):
    return await register(client)
