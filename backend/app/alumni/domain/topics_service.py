"""Topic lifecycle: creation, edits, moderation toggles and cascading deletes."""

from __future__ import annotations

import logging
import math
from uuid import UUID

from app.alumni.domain import counters, models
from app.alumni.domain.access import load_forum_access
from app.alumni.domain.exceptions import NotFoundError
from app.alumni.domain.policies import MODERATION_GRANTS, Grant
from app.alumni.domain.repo import AlumniRepository
from app.alumni.infra import rate_limiter
from app.alumni.schemas import dto
from app.infra.auth import AuthenticatedUser
from app.infra.postgres import get_pool
from app.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


def _topic_out(topic: models.Topic) -> dto.TopicResponse:
	return dto.TopicResponse.model_validate(topic, from_attributes=True)


def total_pages(total: int, limit: int) -> int:
	return math.ceil(total / limit) if limit > 0 else 0


class TopicsService:
	"""Keeps ``Forum.topics``/``Forum.posts`` in step with topic creation and deletion."""

	def __init__(self, repository: AlumniRepository | None = None) -> None:
		self.repo = repository or AlumniRepository()

	async def list_topics(
		self,
		forum_id: UUID,
		*,
		sort: models.TopicSort = models.TopicSort.LATEST,
		page: int = 1,
		limit: int = 20,
	) -> dto.TopicListResponse:
		forum = await self.repo.get_forum(forum_id)
		if forum is None:
			raise NotFoundError("Forum not found")
		topics, total = await self.repo.list_topics(forum.id, sort=sort, limit=limit, offset=(page - 1) * limit)
		return dto.TopicListResponse(
			count=len(topics),
			total_pages=total_pages(total, limit),
			current_page=page,
			total_topics=total,
			topics=[_topic_out(topic) for topic in topics],
		)

	async def get_topic(self, topic_id: UUID) -> dto.TopicEnvelope:
		topic = await self.repo.increment_topic_views(topic_id)
		if topic is None:
			raise NotFoundError("Topic not found")
		return dto.TopicEnvelope(topic=_topic_out(topic))

	async def create_topic(self, actor: AuthenticatedUser, payload: dto.TopicCreateRequest) -> dto.TopicEnvelope:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				forum = await self.repo.get_forum(payload.forum_id, conn=conn, for_update=True)
				if forum is None:
					raise NotFoundError("Forum not found")
				await rate_limiter.enforce_topic(actor.id)
				topic = await self.repo.create_topic(
					forum_id=forum.id,
					user_id=actor.id,
					title=payload.title,
					content=payload.content,
					tags=payload.tags,
					conn=conn,
				)
				await self.repo.adjust_forum_counters(
					forum.id,
					topics_delta=1,
					posts_delta=counters.OPENING_POST_CONTRIBUTION,
					conn=conn,
				)
		obs_metrics.inc_topic_created()
		logger.info("topic_created", extra={"topic_id": str(topic.id), "forum_id": str(forum.id), "user_id": actor.id})
		return dto.TopicEnvelope(message="Topic created successfully", topic=_topic_out(topic))

	async def update_topic(
		self,
		actor: AuthenticatedUser,
		topic_id: UUID,
		payload: dto.TopicUpdateRequest,
	) -> dto.TopicEnvelope:
		topic = await self.repo.get_topic(topic_id)
		if topic is None:
			raise NotFoundError("Topic not found")
		_, ctx = await load_forum_access(self.repo, actor, topic.forum_id, owners=(topic.user_id,))
		ctx.require(Grant.OWNER, *MODERATION_GRANTS, message="Not authorized to update this topic")
		fields = payload.model_dump(exclude_none=True)
		if fields:
			topic = await self.repo.update_topic(topic.id, fields)
		return dto.TopicEnvelope(message="Topic updated successfully", topic=_topic_out(topic))

	async def delete_topic(self, actor: AuthenticatedUser, topic_id: UUID) -> dto.MessageResponse:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				# Same order as post deletes: posts, then topic, then forum
				await self.repo.lock_topic_posts(topic_id, conn=conn)
				topic = await self.repo.get_topic(topic_id, conn=conn, for_update=True)
				if topic is None:
					raise NotFoundError("Topic not found")
				forum, ctx = await load_forum_access(
					self.repo,
					actor,
					topic.forum_id,
					owners=(topic.user_id,),
					conn=conn,
					for_update=True,
				)
				ctx.require(Grant.OWNER, *MODERATION_GRANTS, message="Not authorized to delete this topic")
				if not await self.repo.soft_delete_topic(topic.id, conn=conn):
					raise NotFoundError("Topic not found")
				cascaded = await self.repo.cascade_delete_topic_posts(topic.id, conn=conn)
				await self.repo.adjust_forum_counters(
					forum.id,
					topics_delta=-1,
					posts_delta=-counters.forum_posts_removed_with(topic),
					touch_activity=False,
					conn=conn,
				)
		obs_metrics.inc_topic_deleted()
		logger.info(
			"topic_deleted",
			extra={"topic_id": str(topic.id), "forum_id": str(forum.id), "user_id": actor.id, "posts_cascaded": cascaded},
		)
		return dto.MessageResponse(message="Topic deleted successfully")

	async def toggle_pin(self, actor: AuthenticatedUser, topic_id: UUID) -> dto.TopicEnvelope:
		topic = await self._toggle(actor, topic_id, flag="is_pinned", message="Not authorized to pin/unpin topics")
		message = "Topic pinned successfully" if topic.is_pinned else "Topic unpinned successfully"
		return dto.TopicEnvelope(message=message, topic=_topic_out(topic))

	async def toggle_lock(self, actor: AuthenticatedUser, topic_id: UUID) -> dto.TopicEnvelope:
		topic = await self._toggle(actor, topic_id, flag="is_locked", message="Not authorized to lock/unlock topics")
		message = "Topic locked successfully" if topic.is_locked else "Topic unlocked successfully"
		return dto.TopicEnvelope(message=message, topic=_topic_out(topic))

	async def _toggle(self, actor: AuthenticatedUser, topic_id: UUID, *, flag: str, message: str) -> models.Topic:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				topic = await self.repo.get_topic(topic_id, conn=conn, for_update=True)
				if topic is None:
					raise NotFoundError("Topic not found")
				_, ctx = await load_forum_access(self.repo, actor, topic.forum_id, conn=conn)
				ctx.require(*MODERATION_GRANTS, message=message)
				updated = await self.repo.set_topic_flag(topic.id, flag=flag, value=not getattr(topic, flag), conn=conn)
		obs_metrics.inc_moderation(f"{flag}:{getattr(updated, flag)}")
		return updated
