"""Fixed-window request budgets kept in Redis."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Optional

from undongjang.infra.redis import redis_client


@dataclass(frozen=True, slots=True)
class Decision:
	allowed: bool
	count: int
	limit: int
	retry_after: int

	@property
	def remaining(self) -> int:
		return max(0, self.limit - self.count)


async def hit(
	kind: str,
	actor_id: str,
	*,
	limit: int,
	window_seconds: int = 60,
	now: Optional[float] = None,
) -> Decision:
	"""Count one request against the actor's budget for the current window.

	``retry_after`` is the number of whole seconds until the window rolls over.
	"""
	window = max(1, int(window_seconds))
	now = now or time.time()
	slot = int(math.floor(now / window))
	retry_after = max(1, math.ceil((slot + 1) * window - now))
	if limit <= 0:
		return Decision(allowed=False, count=0, limit=0, retry_after=retry_after)
	key = f"rl:{kind}:{actor_id}:{slot}:{window}"
	async with redis_client.pipeline(transaction=True) as pipe:
		pipe.incr(key)
		pipe.expire(key, window)
		count, _ = await pipe.execute()
	count = int(count)
	return Decision(allowed=count <= limit, count=count, limit=limit, retry_after=retry_after)

