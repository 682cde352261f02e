"""Process-wide Redis handle used for rate-limit buckets and readiness pings.

``redis_client`` is created on first use and forwards every command to the
underlying ``redis.asyncio`` client, so tests can swap in fakeredis without
re-importing modules that already hold the handle.
"""

from __future__ import annotations

from typing import Optional

import redis.asyncio as redis

from app.settings import settings


class LazyRedis:
	def __init__(self, url: str) -> None:
		self._url = url
		self._client: Optional[redis.Redis] = None

	@property
	def client(self) -> redis.Redis:
		if self._client is None:
			self._client = redis.from_url(self._url, decode_responses=True)
		return self._client

	def swap(self, client: Optional[redis.Redis]) -> Optional[redis.Redis]:
		previous, self._client = self._client, client
		return previous

	async def close(self) -> None:
		client = self.swap(None)
		if client is not None:
			await client.aclose()

	def __getattr__(self, name: str):
		return getattr(self.client, name)


redis_client = LazyRedis(settings.redis_url)


def set_redis_client(client: Optional[redis.Redis]) -> Optional[redis.Redis]:
	"""Install ``client`` and return whatever was installed before."""
	return redis_client.swap(client)
