import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from undongjang.api import search as search_api
from undongjang.domain.search.schemas import Suggestion
from undongjang.infra import rate_limit
from undongjang.settings import settings


class _StubSearch:
	def __init__(self) -> None:
		self.queries: list[str] = []

	async def get_search_suggestions(self, query):
		self.queries.append(query)
		return [
			Suggestion(label="Park run", type="event", id="e1"),
			Suggestion(label="Park Runners · Austin", type="group", id="g1"),
		]

	async def search_events(self, query):
		self.queries.append(query)
		return []

	async def search_groups(self, query):
		self.queries.append(query)
		return []


@pytest.fixture
def stub_search(monkeypatch):
	stub = _StubSearch()
	monkeypatch.setattr(search_api, "_service", stub)
	return stub


@pytest.mark.asyncio
async def test_short_query_returns_empty_without_lookup(api_client, stub_search):
	response = await api_client.get("/api/search/suggestions", params={"q": "a"})
	assert response.status_code == 200
	assert response.json() == []
	response = await api_client.get("/api/search/events", params={"q": "   "})
	assert response.json() == []
	assert stub_search.queries == []


@pytest.mark.asyncio
async def test_suggestions_endpoint_returns_typed_items(api_client, stub_search):
	response = await api_client.get("/api/search/suggestions", params={"q": "park"}, headers={"X-User-Id": "u1"})
	assert response.status_code == 200
	payload = response.json()
	assert [item["type"] for item in payload] == ["event", "group"]
	assert payload[1]["label"] == "Park Runners · Austin"
	assert stub_search.queries == ["park"]


@pytest.mark.asyncio
async def test_search_is_rate_limited_per_actor(api_client, stub_search, monkeypatch):
	monkeypatch.setattr(settings, "search_rate_limit_per_minute", 2)
	headers = {"X-User-Id": "busy-user"}
	codes = [
		(await api_client.get("/api/search/groups", params={"q": "park"}, headers=headers)).status_code
		for _ in range(3)
	]
	assert codes == [200, 200, 429]
	throttled = await api_client.get("/api/search/groups", params={"q": "park"}, headers=headers)
	assert int(throttled.headers["Retry-After"]) >= 1
	other = await api_client.get("/api/search/groups", params={"q": "park"}, headers={"X-User-Id": "calm-user"})
	assert other.status_code == 200


@pytest.mark.asyncio
async def test_search_still_answers_when_throttle_store_fails(api_client, stub_search, monkeypatch):
	async def unreachable(*args, **kwargs):
		raise RedisConnectionError("connection refused")

	monkeypatch.setattr(rate_limit, "hit", unreachable)
	response = await api_client.get("/api/search/suggestions", params={"q": "park"})
	assert response.status_code == 200
	assert len(response.json()) == 2
