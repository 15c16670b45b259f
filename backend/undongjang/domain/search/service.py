"""Free-text search over upcoming events and active groups."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from undongjang.domain.events.formatting import format_clock_time, format_event_location, format_event_time
from undongjang.domain.groups.models import count_members
from undongjang.domain.search import guards
from undongjang.domain.search import repo as repo_module
from undongjang.domain.search.schemas import (
	DEFAULT_EVENT_IMAGE,
	DEFAULT_GROUP_COVER,
	SearchEventResult,
	SearchGroupResult,
	Suggestion,
)
from undongjang.obs import metrics as obs_metrics
from undongjang.settings import settings

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


def _event_result(row: dict[str, Any]) -> SearchEventResult:
	end_at = row.get("end_time")
	return SearchEventResult(
		id=str(row["id"]),
		title=row["title"],
		kind=row.get("event_type") or "standard",
		start_at=row["start_time"],
		end_at=end_at,
		time_label=format_event_time(row["start_time"], end_at),
		end_time_label=format_clock_time(end_at) if end_at else "",
		image_url=row.get("banner_image_url") or DEFAULT_EVENT_IMAGE,
		location=format_event_location(row.get("address"), row.get("location_name")),
	)


def _event_label(row: dict[str, Any]) -> str:
	place = row.get("location_name") or row.get("address")
	return f"{row['title']} · {place}" if place else row["title"]


def _group_label(row: dict[str, Any]) -> str:
	city = row.get("location_city")
	return f"{row['name']} · {city}" if city else row["name"]


class SearchService:
	"""Search events and groups; failures degrade to fewer or no results."""

	def __init__(
		self,
		*,
		repository: repo_module.SearchRepository | None = None,
		clock: Callable[[], datetime] | None = None,
	) -> None:
		self.repo = repository or repo_module.SearchRepository()
		self._now = clock or _utcnow

	async def _event_rows(self, pattern: str, *, limit: int, kind: str) -> list[dict[str, Any]]:
		"""Run the event query, retrying once without the privacy filter."""
		now = self._now()
		try:
			return await self.repo.search_events(pattern, now=now, limit=limit)
		except Exception as exc:
			obs_metrics.inc_search_fallback(kind)
			logger.warning("search.events.fallback", extra={"kind": kind, "error": str(exc)})
		try:
			return await self.repo.search_events(pattern, now=now, limit=limit, restrict_privacy=False)
		except Exception:
			logger.exception("search.events.failed", extra={"kind": kind})
			return []

	async def _group_rows(self, pattern: str, *, limit: int, suggest: bool) -> list[dict[str, Any]]:
		try:
			return await self.repo.search_groups(pattern, limit=limit, suggest=suggest)
		except Exception:
			logger.exception("search.groups.failed", extra={"suggest": suggest})
			return []

	async def search_events(self, query: Optional[str]) -> list[SearchEventResult]:
		q = guards.normalize_query(query)
		if not q:
			obs_metrics.inc_search_short_circuit("events", "empty")
			return []
		obs_metrics.inc_search_query("events")
		started = time.perf_counter()
		rows = await self._event_rows(guards.to_pattern(q), limit=settings.search_result_limit, kind="events")
		obs_metrics.observe_search_latency("events", time.perf_counter() - started)
		return [_event_result(row) for row in rows[: settings.search_result_limit]]

	async def search_groups(self, query: Optional[str]) -> list[SearchGroupResult]:
		q = guards.normalize_query(query)
		if not q:
			obs_metrics.inc_search_short_circuit("groups", "empty")
			return []
		obs_metrics.inc_search_query("groups")
		started = time.perf_counter()
		rows = await self._group_rows(guards.to_pattern(q), limit=settings.search_result_limit, suggest=False)
		rows = rows[: settings.search_result_limit]
		members: dict[str, set[str]] = {}
		if rows:
			try:
				members = await self.repo.member_ids_by_group([str(row["id"]) for row in rows])
			except Exception:
				logger.exception("search.groups.members_failed")
		obs_metrics.observe_search_latency("groups", time.perf_counter() - started)
		results = []
		for row in rows:
			group_id = str(row["id"])
			organizer_id = str(row["organizer_id"]) if row.get("organizer_id") else None
			results.append(
				SearchGroupResult(
					id=group_id,
					name=row["name"],
					description=row.get("description"),
					image_url=row.get("cover_image_url") or DEFAULT_GROUP_COVER,
					location_city=row.get("location_city"),
					member_count=count_members(members.get(group_id, ()), organizer_id),
					is_private=row.get("privacy") == "private",
				)
			)
		return results

	async def get_search_suggestions(self, query: Optional[str]) -> list[Suggestion]:
		"""Up to five events and five groups, events first."""
		q = guards.normalize_query(query)
		if not guards.is_suggestible(q):
			obs_metrics.inc_search_short_circuit("suggestions", "too_short")
			return []
		obs_metrics.inc_search_query("suggestions")
		started = time.perf_counter()
		pattern = guards.to_pattern(q)
		per_kind = settings.suggestion_per_kind
		events, groups = await asyncio.gather(
			self._event_rows(pattern, limit=per_kind, kind="suggestions"),
			self._group_rows(pattern, limit=per_kind, suggest=True),
		)
		obs_metrics.observe_search_latency("suggestions", time.perf_counter() - started)
		suggestions = [Suggestion(label=_event_label(row), type="event", id=str(row["id"])) for row in events[:per_kind]]
		suggestions.extend(
			Suggestion(label=_group_label(row), type="group", id=str(row["id"])) for row in groups[:per_kind]
		)
		return suggestions[: settings.suggestion_limit]


__all__ = ["SearchService"]
