"""AsyncPG pool management for the backend."""

from __future__ import annotations

import logging
from typing import Optional

import asyncpg

from undongjang.settings import settings

_LOG = logging.getLogger(__name__)

_pool: Optional[asyncpg.pool.Pool] = None


class PoolUnavailable(RuntimeError):
	"""Raised when no pool exists and none could be created."""


async def init_pool() -> asyncpg.pool.Pool:
	global _pool
	if _pool is None:
		_pool = await asyncpg.create_pool(
			dsn=settings.postgres_url,
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			command_timeout=settings.postgres_command_timeout,
		)
		_LOG.info(
			"postgres.pool.ready",
			extra={"min_size": settings.postgres_min_pool_size, "max_size": settings.postgres_max_pool_size},
		)
	return _pool


def set_pool(pool: Optional[asyncpg.pool.Pool]) -> None:
	global _pool
	_pool = pool


async def get_pool() -> asyncpg.pool.Pool:
	if _pool is None:
		await init_pool()
	if _pool is None:
		raise PoolUnavailable("postgres pool is not initialised")
	return _pool


async def pool_or_none() -> Optional[asyncpg.pool.Pool]:
	"""Return the pool, or None when the database cannot be reached."""
	try:
		return await get_pool()
	except (PoolUnavailable, OSError, asyncpg.PostgresError) as exc:
		_LOG.warning("postgres.pool.unavailable", extra={"error": str(exc) or exc.__class__.__name__})
		return None


async def close_pool() -> None:
	global _pool
	if _pool is not None:
		await _pool.close()
		_pool = None
		_LOG.info("postgres.pool.closed")
