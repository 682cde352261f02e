import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

# Settings refuse to load without a signing key
os.environ.setdefault("SECRET_KEY", "alumni-test-secret-key-0123456789abcdef")

from app.infra import postgres
from app.infra.redis import set_redis_client
from app.main import app
from app.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	client = FakeRedis(decode_responses=True)
	original = set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests authenticate via X-User-Id/X-User-Role/X-School-Id headers, which are
	only accepted in dev mode.
	"""
	original_env = settings.environment
	original_rate_limit = settings.rate_limit_enabled
	settings.environment = "dev"
	settings.rate_limit_enabled = True
	try:
		yield
	finally:
		settings.environment = original_env
		settings.rate_limit_enabled = original_rate_limit


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
