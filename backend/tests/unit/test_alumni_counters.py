from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

from app.alumni.domain import counters, models


def _topic(replies: int = 0) -> models.Topic:
	created = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
	author = uuid4()
	return models.Topic(
		id=uuid4(),
		forum_id=uuid4(),
		user_id=author,
		title="Reunion planning",
		content="Who is coming?",
		replies=replies,
		last_post_at=created,
		last_post_user_id=author,
		created_at=created,
		updated_at=created,
	)


def _ref(minutes: int, *, deleted: bool = False) -> counters.PostRef:
	at = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc) + timedelta(minutes=minutes)
	return counters.PostRef(id=uuid4(), user_id=uuid4(), created_at=at, deleted=deleted)


def test_latest_non_deleted_post_skips_tombstones():
	first = _ref(1)
	newest_deleted = _ref(5, deleted=True)
	second = _ref(3)
	assert counters.latest_non_deleted_post([first, newest_deleted, second]) == second


def test_latest_non_deleted_post_empty():
	assert counters.latest_non_deleted_post([]) is None
	assert counters.latest_non_deleted_post([_ref(1, deleted=True)]) is None


def test_latest_non_deleted_post_breaks_ties_on_id():
	at = datetime(2026, 3, 1, tzinfo=timezone.utc)
	refs = [counters.PostRef(id=uuid4(), user_id=uuid4(), created_at=at) for _ in range(4)]
	expected = max(refs, key=lambda ref: str(ref.id))
	assert counters.latest_non_deleted_post(refs) == expected
	assert counters.latest_non_deleted_post(list(reversed(refs))) == expected


def test_resolve_last_post_reverts_to_topic_author():
	topic = _topic()
	last = counters.resolve_last_post(topic, [_ref(2, deleted=True)])
	assert last.post_id is None
	assert last.user_id == topic.user_id
	assert last.at == topic.created_at


def test_resolve_last_post_points_at_newest_live_post():
	topic = _topic()
	newest = _ref(10)
	last = counters.resolve_last_post(topic, [_ref(2), newest])
	assert last == counters.LastPost(post_id=newest.id, at=newest.created_at, user_id=newest.user_id)


def test_forum_posts_removed_with_counts_opening_contribution():
	assert counters.forum_posts_removed_with(_topic(replies=0)) == 1
	assert counters.forum_posts_removed_with(_topic(replies=4)) == 5
