"""Liveness and readiness checks.

Postgres is required to serve traffic. Redis only backs search throttling,
so losing it degrades readiness without failing it.
"""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Dict, Tuple

from undongjang.infra import postgres
from undongjang.infra.redis import redis_client
from undongjang.settings import settings

LOGGER = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
	return round((perf_counter() - start) * 1000, 2)


async def _redis_status(timeout: float = 0.2) -> Dict[str, Any]:
	start = perf_counter()
	try:
		await asyncio.wait_for(redis_client.ping(), timeout=timeout)
	except Exception as exc:  # pragma: no cover - depends on runtime
		LOGGER.warning("health.redis_unavailable", exc_info=True)
		return {"ok": False, "error": str(exc) or exc.__class__.__name__}
	return {"ok": True, "latency_ms": _elapsed_ms(start)}


async def _postgres_status(timeout: float = 0.3) -> Dict[str, Any]:
	pool = await postgres.pool_or_none()
	if pool is None:
		return {"ok": False, "error": "pool_unavailable"}
	start = perf_counter()
	try:
		async with pool.acquire() as conn:
			await asyncio.wait_for(conn.execute("SELECT 1"), timeout=timeout)
	except Exception as exc:  # pragma: no cover - depends on runtime
		LOGGER.warning("health.postgres_query_failed", exc_info=True)
		return {"ok": False, "error": str(exc) or exc.__class__.__name__}
	return {"ok": True, "latency_ms": _elapsed_ms(start)}


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


async def readiness() -> Tuple[int, Dict[str, Any]]:
	redis_state, postgres_state = await asyncio.gather(_redis_status(), _postgres_status())
	if not postgres_state["ok"]:
		status = "unavailable"
	elif not redis_state["ok"]:
		status = "degraded"
	else:
		status = "ok"
	return (
		503 if status == "unavailable" else 200,
		{
			"status": status,
			"service": settings.service_name,
			"commit": settings.git_commit,
			"checks": {"redis": redis_state, "postgres": postgres_state},
		},
	)
