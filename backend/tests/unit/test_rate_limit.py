import pytest
from fastapi import HTTPException
from redis.exceptions import ConnectionError as RedisConnectionError

from undongjang.api.errors import to_http_error
from undongjang.domain.exceptions import RateLimitedError
from undongjang.domain.search import guards
from undongjang.infra import rate_limit
from undongjang.infra.rate_limit import hit
from undongjang.settings import settings


@pytest.mark.asyncio
async def test_rate_limit_allows_within_budget():
	assert (await hit("search", "u5", limit=2, window_seconds=60)).allowed
	assert (await hit("search", "u5", limit=2, window_seconds=60)).allowed


@pytest.mark.asyncio
async def test_rate_limit_blocks_when_budget_exhausted():
	await hit("suggest", "u6", limit=1, window_seconds=60)
	assert not (await hit("suggest", "u6", limit=1, window_seconds=60)).allowed


@pytest.mark.asyncio
async def test_rate_limit_windows_are_separate():
	assert (await hit("search", "u7", limit=1, window_seconds=60, now=120.0)).allowed
	assert (await hit("search", "u7", limit=1, window_seconds=60, now=180.0)).allowed


@pytest.mark.asyncio
async def test_zero_budget_never_allows():
	decision = await hit("search", "u10", limit=0)
	assert not decision.allowed
	assert decision.remaining == 0


@pytest.mark.asyncio
async def test_search_throttle_raises_when_exhausted(monkeypatch):
	monkeypatch.setattr(settings, "search_rate_limit_per_minute", 1)
	await guards.enforce_rate_limit("u8")
	with pytest.raises(RateLimitedError):
		await guards.enforce_rate_limit("u8")


@pytest.mark.asyncio
async def test_decision_reports_retry_after_until_window_end():
	first = await hit("search", "u9", limit=1, window_seconds=60, now=125.5)
	second = await hit("search", "u9", limit=1, window_seconds=60, now=130.0)
	assert first.allowed and first.remaining == 0
	assert not second.allowed
	assert second.retry_after == 50


@pytest.mark.asyncio
async def test_search_throttle_lets_requests_through_when_redis_is_down(monkeypatch):
	async def unreachable(*args, **kwargs):
		raise RedisConnectionError("connection refused")

	monkeypatch.setattr(rate_limit, "hit", unreachable)
	await guards.enforce_rate_limit("u11")


def test_unexpected_errors_map_to_generic_server_error():
	error = to_http_error(RuntimeError("pool internals: password=hunter2"))
	assert isinstance(error, HTTPException)
	assert error.status_code == 500
	assert error.detail == "request_failed"
