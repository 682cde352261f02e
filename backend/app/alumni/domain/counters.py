"""Denormalised forum counter bookkeeping.

Counter conventions:

- ``Topic.replies`` counts the live posts of a topic. The opening message is
  the topic's own ``content`` and is not a post row.
- ``Forum.posts`` counts live posts *plus* one opening contribution per live
  topic: creating a topic adds one, deleting it removes ``replies + 1``.
- ``Topic.last_post_*`` points at the newest live post, or back at the topic's
  own creation time and author once no live post remains.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from app.alumni.domain import models

OPENING_POST_CONTRIBUTION = 1


@dataclass(slots=True, frozen=True)
class PostRef:
	id: UUID
	user_id: UUID
	created_at: datetime
	deleted: bool = False


@dataclass(slots=True, frozen=True)
class LastPost:
	post_id: Optional[UUID]
	at: datetime
	user_id: UUID


def latest_non_deleted_post(posts: Iterable[PostRef]) -> Optional[PostRef]:
	"""Newest live post; ties on created_at break on id so the answer is stable."""
	latest: Optional[PostRef] = None
	for ref in posts:
		if ref.deleted:
			continue
		if latest is None or (ref.created_at, str(ref.id)) > (latest.created_at, str(latest.id)):
			latest = ref
	return latest


def resolve_last_post(topic: models.Topic, posts: Iterable[PostRef]) -> LastPost:
	latest = latest_non_deleted_post(posts)
	if latest is None:
		return LastPost(post_id=None, at=topic.created_at, user_id=topic.user_id)
	return LastPost(post_id=latest.id, at=latest.created_at, user_id=latest.user_id)


def last_post_for_new(post: models.Post) -> LastPost:
	return LastPost(post_id=post.id, at=post.created_at, user_id=post.user_id)


def forum_posts_removed_with(topic: models.Topic) -> int:
	"""How much ``Forum.posts`` drops when ``topic`` is deleted."""
	return topic.replies + OPENING_POST_CONTRIBUTION
