import asyncio
import os
import tempfile

# app.config reads these at import time
_DB_DIR = tempfile.mkdtemp(prefix="mindcare-tests-")
os.environ["ASYNC_DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(_DB_DIR, "test.db")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["KAFKA_BOOTSTRAP"] = ""
os.environ.pop("FUNCTIONS_API_KEY", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from app.db import Base, SessionLocal, engine
from app.main import app
from app.models import Meditation, Therapist
from app.services import notification_client


def run(coro):
    return asyncio.run(coro)


async def _reset_schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def _add(*objs):
    async with SessionLocal() as session:
        session.add_all(objs)
        await session.commit()
    return objs


async def _all(model):
    async with SessionLocal() as session:
        result = await session.execute(select(model).order_by(model.id))
        return list(result.scalars().unique().all())


def add_rows(*objs):
    return run(_add(*objs))


def all_rows(model):
    return run(_all(model))


@pytest.fixture(autouse=True)
def fresh_db():
    run(_reset_schema())
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def register_and_login(client, email="alex@mindcare-users.com", password="password123", name="Alex Kim"):
    client.post("/auth/register", json={"email": email, "password": password, "name": name})
    resp = client.post("/auth/login", data={"username": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def auth_headers(client):
    return register_and_login(client)


@pytest.fixture
def therapist():
    (t,) = add_rows(Therapist(
        name="Dr. Sarah Johnson",
        specialization="Anxiety & Stress",
        bio="CBT-focused therapist.",
        email="sarah.johnson@mindcare.example",
    ))
    return t


@pytest.fixture
def meditation():
    (m,) = add_rows(Meditation(title="Deep Sleep Journey", duration_minutes=20, category="Sleep"))
    return m


@pytest.fixture
def sent_notifications(monkeypatch):
    """Replaces the notification proxy call; collects every payload sent."""
    calls = []

    async def fake_send(payload, **kwargs):
        calls.append(payload)
        return {"success": True}

    monkeypatch.setattr(notification_client, "send_booking_email", fake_send)
    return calls
