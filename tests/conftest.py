import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

# settings are read at import time , point them at a throw-away database first
_DB_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{Path(_DB_DIR) / 'storefront-test.db'}"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["OTP_STORE_BACKEND"] = "memory"
os.environ["OTP_DELIVERY_BACKEND"] = "log"
os.environ["FEDERATED_CLIENT_ID"] = "storefront-test-client"
os.environ["ENV"] = "dev"

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from storefront.db.connection import async_session, create_tables, drop_tables
from storefront.main import app
from storefront.otp.delivery import OtpDeliveryChannel
from storefront.otp.issuer import OneTimeCodeIssuer
from storefront.otp.store import InMemoryKeyValueStore

url_prefix = "/api/v1"

STRONG_PASSWORD = "Sunset#2024"


class FakeClock:
    def __init__(self, start=None):
        self.current = start or datetime(2026, 1, 1, 9, 30, tzinfo=timezone.utc)

    def __call__(self):
        return self.current

    def advance(self, seconds):
        self.current = self.current + timedelta(seconds=seconds)


class RecordingChannel(OtpDeliveryChannel):
    def __init__(self):
        self.sent = []

    async def deliver(self, email, code, expires_at):
        self.sent.append((email, code))

    def last_code(self, email):
        codes = [c for e, c in self.sent if e == email]
        return codes[-1] if codes else None


@pytest.fixture
async def fresh_schema():
    await create_tables()
    yield
    await drop_tables()


@pytest.fixture
async def db_session(fresh_schema):
    async with async_session() as session:
        yield session


@pytest.fixture
def otp_channel():
    return RecordingChannel()


@pytest.fixture
def otp_issuer(otp_channel):
    return OneTimeCodeIssuer(InMemoryKeyValueStore(), otp_channel)


@pytest.fixture
async def ac_client(fresh_schema, otp_issuer):
    app.state.otp_issuer = otp_issuer
    try:
        async with LifespanManager(app):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
                yield ac
    finally:
        app.dependency_overrides.clear()
        app.state.otp_issuer = None


async def register(ac, email, name="Asha Rao", password=STRONG_PASSWORD):
    resp = await ac.post(f"{url_prefix}/users/register", json={"name": name, "email": email, "password": password})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["token"]


def auth_headers(token):
    return {"X-Auth-Token": token}
