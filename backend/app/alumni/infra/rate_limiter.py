"""Per-member posting and reporting budgets for the forums."""

from __future__ import annotations

from app.alumni.domain.exceptions import RateLimitedError
from app.infra import rate_limit
from app.obs import metrics as obs_metrics
from app.settings import settings

TOPIC_KIND = "forum:topic"
POST_KIND = "forum:post"
REPORT_KIND = "forum:report"


async def _enforce(kind: str, actor_id: str, *, limit: int) -> None:
	if not settings.rate_limit_enabled:
		return
	budget = await rate_limit.consume(kind, actor_id, limit=limit, window_seconds=60)
	if budget.allowed:
		return
	obs_metrics.inc_rate_limited(kind)
	raise RateLimitedError(retry_after=budget.retry_after)


async def enforce_topic(actor_id: str) -> None:
	"""Topics share the per-minute posting budget."""
	await _enforce(TOPIC_KIND, actor_id, limit=settings.posts_per_minute)


async def enforce_post(actor_id: str) -> None:
	await _enforce(POST_KIND, actor_id, limit=settings.posts_per_minute)


async def enforce_report(actor_id: str) -> None:
	await _enforce(REPORT_KIND, actor_id, limit=settings.reports_per_minute)
