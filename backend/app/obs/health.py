"""Liveness and readiness checks for the alumni API."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from time import perf_counter
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from app.infra import postgres
from app.infra.redis import redis_client
from app.obs import metrics
from app.settings import settings

LOGGER = logging.getLogger(__name__)

Check = Callable[[], Awaitable[Optional[Dict[str, Any]]]]
Marker = Callable[..., None]


async def _run_check(name: str, check: Check, *, timeout: float, mark: Optional[Marker] = None) -> Dict[str, Any]:
	"""Time one dependency check; a check may downgrade itself by returning ``ok: False``."""
	started = perf_counter()
	try:
		details = await asyncio.wait_for(check(), timeout=timeout)
	except Exception as exc:  # pragma: no cover - depends on runtime
		if mark is not None:
			mark(False)
		LOGGER.warning("readiness check failed", extra={"check": name}, exc_info=True)
		return {"ok": False, "error": str(exc)}
	latency = perf_counter() - started
	if mark is not None:
		mark(True, latency_seconds=latency)
	return {"ok": True, "latency_ms": round(latency * 1000, 2), **(details or {})}


async def _ping_redis() -> None:
	await redis_client.ping()


async def _ping_postgres() -> None:
	pool = await postgres.get_pool()
	async with pool.acquire() as conn:
		await conn.execute("SELECT 1")


async def _check_schema() -> Dict[str, Any]:
	current = await postgres.schema_version()
	required = settings.health_min_migration
	if current is None:
		return {"ok": False, "error": "no_migrations", "required": required}
	# Versions are zero-padded file prefixes, so string order is release order
	return {"ok": current >= required, "version": current, "required": required}


async def _check_uploads() -> Dict[str, Any]:
	root = Path(settings.upload_root)
	writable = root.is_dir() and os.access(root, os.W_OK)
	return {"ok": writable}


async def liveness() -> Dict[str, Any]:
	return {"status": "ok", "service": settings.service_name}


async def readiness() -> Tuple[int, Dict[str, Any]]:
	checks = {
		"redis": await _run_check("redis", _ping_redis, timeout=0.2, mark=metrics.mark_redis),
		"postgres": await _run_check("postgres", _ping_postgres, timeout=0.3, mark=metrics.mark_postgres),
		"migrations": await _run_check("migrations", _check_schema, timeout=0.3),
		"uploads": await _run_check("uploads", _check_uploads, timeout=0.1),
	}
	ok = all(check["ok"] for check in checks.values())
	return (200 if ok else 503, {"status": "ok" if ok else "degraded", "checks": checks})
