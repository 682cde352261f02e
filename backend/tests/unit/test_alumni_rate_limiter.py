import pytest

from app.alumni.domain.exceptions import RateLimitedError
from app.alumni.infra import rate_limiter
from app.infra import rate_limit
from app.settings import settings


@pytest.mark.asyncio
async def test_report_budget_is_enforced(monkeypatch):
	monkeypatch.setattr(settings, "reports_per_minute", 2)
	await rate_limiter.enforce_report("u1")
	await rate_limiter.enforce_report("u1")
	with pytest.raises(RateLimitedError) as info:
		await rate_limiter.enforce_report("u1")
	assert info.value.status_code == 429
	# Budgets are per actor
	await rate_limiter.enforce_report("u2")


@pytest.mark.asyncio
async def test_topics_and_posts_have_separate_buckets(monkeypatch):
	monkeypatch.setattr(settings, "posts_per_minute", 1)
	await rate_limiter.enforce_topic("u3")
	await rate_limiter.enforce_post("u3")
	with pytest.raises(RateLimitedError):
		await rate_limiter.enforce_post("u3")


@pytest.mark.asyncio
async def test_disabled_limiter_allows_everything(monkeypatch):
	monkeypatch.setattr(settings, "rate_limit_enabled", False)
	monkeypatch.setattr(settings, "posts_per_minute", 1)
	for _ in range(5):
		await rate_limiter.enforce_post("u4")


@pytest.mark.asyncio
async def test_exhausted_budget_reports_window_rollover():
	first = await rate_limit.consume("forum:post", "u5", limit=2, window_seconds=60, now=1_000_050.0)
	assert first.allowed and first.remaining == 1
	await rate_limit.consume("forum:post", "u5", limit=2, window_seconds=60, now=1_000_051.0)
	denied = await rate_limit.consume("forum:post", "u5", limit=2, window_seconds=60, now=1_000_052.0)
	assert not denied.allowed
	assert denied.remaining == 0
	# Window started at 1_000_020, so it rolls over 28 seconds later
	assert denied.retry_after == 28

	next_window = await rate_limit.consume("forum:post", "u5", limit=2, window_seconds=60, now=1_000_081.0)
	assert next_window.allowed


@pytest.mark.asyncio
async def test_rate_limited_error_carries_retry_after(monkeypatch):
	monkeypatch.setattr(settings, "reports_per_minute", 0)
	with pytest.raises(RateLimitedError) as info:
		await rate_limiter.enforce_report("u6")
	assert info.value.retry_after is not None
	assert 1 <= info.value.retry_after <= 60
