"""Fixed-window counters in Redis, one bucket per (kind, actor)."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

from app.infra.redis import redis_client


@dataclass(slots=True, frozen=True)
class Budget:
	allowed: bool
	remaining: int
	retry_after: int


def bucket_key(kind: str, actor_id: str, *, window_seconds: int, now: float) -> str:
	window_start = int(now // window_seconds) * window_seconds
	return f"rl:{kind}:{actor_id}:{window_start}"


async def consume(
	kind: str,
	actor_id: str,
	*,
	limit: int,
	window_seconds: int = 60,
	now: Optional[float] = None,
) -> Budget:
	"""Spend one unit from the actor's current window."""
	window_seconds = max(1, int(window_seconds))
	if limit <= 0:
		return Budget(allowed=False, remaining=0, retry_after=window_seconds)
	now = time.time() if now is None else now
	key = bucket_key(kind, actor_id, window_seconds=window_seconds, now=now)
	async with redis_client.pipeline(transaction=True) as pipe:
		pipe.incr(key)
		pipe.expire(key, window_seconds)
		used, _ = await pipe.execute()
	used = int(used)
	# Seconds until the fixed window rolls over
	retry_after = max(1, int(window_seconds - (now % window_seconds)))
	return Budget(allowed=used <= limit, remaining=max(0, limit - used), retry_after=retry_after)
