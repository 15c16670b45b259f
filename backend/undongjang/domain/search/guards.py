"""Query normalisation and rate limits for search."""

from __future__ import annotations

import logging

from redis.exceptions import RedisError

from undongjang.domain.exceptions import RateLimitedError
from undongjang.infra import rate_limit
from undongjang.settings import settings

_LOG = logging.getLogger(__name__)

_LIKE_SPECIALS = ("\\", "%", "_")


def normalize_query(raw: str | None) -> str:
	return (raw or "").strip()


def escape_like(text: str) -> str:
	"""Escape LIKE metacharacters so user input only ever matches literally."""
	for char in _LIKE_SPECIALS:
		text = text.replace(char, "\\" + char)
	return text


def to_pattern(query: str) -> str:
	return f"%{escape_like(query)}%"


def is_suggestible(query: str) -> bool:
	return len(query) >= settings.suggestion_min_length


async def enforce_rate_limit(actor_id: str, *, kind: str = "search") -> None:
	"""Raise when the actor is over budget. An unreachable Redis lets the request through."""
	try:
		decision = await rate_limit.hit(kind, actor_id, limit=settings.search_rate_limit_per_minute)
	except (RedisError, OSError) as exc:
		_LOG.warning("search.rate_limit.unavailable", extra={"kind": kind, "error": str(exc)})
		return
	if not decision.allowed:
		raise RateLimitedError(retry_after=decision.retry_after)
