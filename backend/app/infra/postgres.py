"""Shared asyncpg pool for the alumni services."""

from __future__ import annotations

from typing import Optional

import asyncpg

from app.settings import settings

_pool: Optional[asyncpg.pool.Pool] = None


def _dsn() -> str:
	# 127.0.0.1 avoids IPv6 resolution of localhost inside containers
	return settings.postgres_url.replace("localhost", "127.0.0.1")


async def init_pool() -> asyncpg.pool.Pool:
	global _pool
	if _pool is None:
		_pool = await asyncpg.create_pool(
			dsn=_dsn(),
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			ssl="require" if settings.postgres_ssl else "disable",
		)
	return _pool


async def get_pool() -> asyncpg.pool.Pool:
	return _pool if _pool is not None else await init_pool()


async def close_pool() -> None:
	global _pool
	pool, _pool = _pool, None
	if pool is not None:
		await pool.close()


async def schema_version() -> Optional[str]:
	"""Newest version recorded by scripts/apply_migrations.py, or None before the first run."""
	pool = await get_pool()
	async with pool.acquire() as conn:
		exists = await conn.fetchval("SELECT to_regclass('schema_migrations') IS NOT NULL")
		if not exists:
			return None
		version = await conn.fetchval("SELECT max(version) FROM schema_migrations")
	return str(version) if version is not None else None
