import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
TESTS_ROOT = Path(__file__).resolve().parent
for _root in (BACKEND_ROOT, TESTS_ROOT):
	if str(_root) not in sys.path:
		sys.path.insert(0, str(_root))

from undongjang.infra import postgres
from undongjang.main import app
from undongjang.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from undongjang.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
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
	"""API tests authenticate via X-User-Id headers, which are only accepted in dev mode."""
	original_env = settings.environment
	original_tz = settings.display_timezone
	settings.environment = "dev"
	settings.display_timezone = "America/Chicago"
	try:
		yield
	finally:
		settings.environment = original_env
		settings.display_timezone = original_tz


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
