"""Post lifecycle: replies, edits, likes and the reporting workflow."""

from __future__ import annotations

import logging
from uuid import UUID

import asyncpg

from app.alumni.domain import counters, models
from app.alumni.domain.access import load_forum_access
from app.alumni.domain.exceptions import ForbiddenError, NotFoundError
from app.alumni.domain.policies import MODERATION_GRANTS, Grant
from app.alumni.domain.repo import AlumniRepository
from app.alumni.domain.topics_service import total_pages
from app.alumni.infra import rate_limiter
from app.alumni.schemas import dto
from app.infra.auth import AuthenticatedUser
from app.infra.postgres import get_pool
from app.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


def _post_out(post: models.Post) -> dto.PostResponse:
	return dto.PostResponse.model_validate(post, from_attributes=True)


def _report_out(report: models.Report) -> dto.ReportResponse:
	return dto.ReportResponse.model_validate(report, from_attributes=True)


class PostsService:
	"""Post operations; counter writes run in one transaction locking post, topic, then forum."""

	def __init__(self, repository: AlumniRepository | None = None) -> None:
		self.repo = repository or AlumniRepository()

	async def list_posts(self, topic_id: UUID, *, page: int = 1, limit: int = 20) -> dto.PostListResponse:
		topic = await self.repo.get_topic(topic_id)
		if topic is None:
			raise NotFoundError("Topic not found")
		posts, total = await self.repo.list_posts(topic.id, limit=limit, offset=(page - 1) * limit)
		return dto.PostListResponse(
			count=len(posts),
			total_pages=total_pages(total, limit),
			current_page=page,
			total_posts=total,
			posts=[_post_out(post) for post in posts],
		)

	async def create_post(self, actor: AuthenticatedUser, payload: dto.PostCreateRequest) -> dto.PostEnvelope:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				topic = await self.repo.get_topic(payload.topic_id, conn=conn, for_update=True)
				if topic is None:
					raise NotFoundError("Topic not found")
				if topic.is_locked:
					raise ForbiddenError("This topic is locked and cannot receive new posts")
				if payload.parent_post_id is not None:
					parent = await self.repo.get_post(payload.parent_post_id, conn=conn)
					if parent is None or parent.topic_id != topic.id:
						raise NotFoundError("Parent post not found")
				forum = await self.repo.get_forum(topic.forum_id, include_inactive=True, conn=conn, for_update=True)
				if forum is None:
					raise NotFoundError("Forum not found")
				await rate_limiter.enforce_post(actor.id)
				post = await self.repo.create_post(
					topic_id=topic.id,
					user_id=actor.id,
					content=payload.content,
					parent_post_id=payload.parent_post_id,
					conn=conn,
				)
				await self.repo.record_reply_change(
					topic.id,
					replies_delta=1,
					last_post=counters.last_post_for_new(post),
					conn=conn,
				)
				await self.repo.adjust_forum_counters(forum.id, posts_delta=1, conn=conn)
		obs_metrics.inc_post("created")
		logger.info("post_created", extra={"post_id": str(post.id), "topic_id": str(topic.id), "user_id": actor.id})
		return dto.PostEnvelope(message="Post created successfully", post=_post_out(post))

	async def update_post(
		self,
		actor: AuthenticatedUser,
		post_id: UUID,
		payload: dto.PostUpdateRequest,
	) -> dto.PostEnvelope:
		post = await self.repo.get_post(post_id)
		if post is None:
			raise NotFoundError("Post not found")
		topic = await self.repo.get_topic(post.topic_id)
		if topic is None:
			raise NotFoundError("Topic not found")
		_, ctx = await load_forum_access(self.repo, actor, topic.forum_id, owners=(post.user_id,))
		ctx.require(Grant.OWNER, *MODERATION_GRANTS, message="Not authorized to update this post")
		post = await self.repo.update_post_content(post.id, content=payload.content)
		obs_metrics.inc_post("edited")
		return dto.PostEnvelope(message="Post updated successfully", post=_post_out(post))

	async def delete_post(self, actor: AuthenticatedUser, post_id: UUID) -> dto.MessageResponse:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				post = await self.repo.get_post(post_id, conn=conn, for_update=True)
				if post is None:
					raise NotFoundError("Post not found")
				topic = await self.repo.get_topic(post.topic_id, conn=conn, for_update=True)
				if topic is None:
					raise NotFoundError("Topic not found")
				forum, ctx = await load_forum_access(
					self.repo,
					actor,
					topic.forum_id,
					owners=(post.user_id,),
					conn=conn,
					for_update=True,
				)
				ctx.require(Grant.OWNER, *MODERATION_GRANTS, message="Not authorized to delete this post")
				if not await self._remove_post(post, topic, forum, conn=conn):
					raise NotFoundError("Post not found")
		logger.info("post_deleted", extra={"post_id": str(post.id), "topic_id": str(topic.id), "user_id": actor.id})
		return dto.MessageResponse(message="Post deleted successfully")

	async def _remove_post(
		self,
		post: models.Post,
		topic: models.Topic,
		forum: models.Forum,
		*,
		conn: asyncpg.Connection,
	) -> bool:
		"""Tombstone ``post`` and roll the topic and forum counters back by one."""
		if not await self.repo.soft_delete_post(post.id, conn=conn):
			return False
		last_post = None
		if topic.last_post_id is not None and topic.last_post_id == post.id:
			refs = await self.repo.list_post_refs(topic.id, conn=conn)
			last_post = counters.resolve_last_post(topic, refs)
		await self.repo.record_reply_change(topic.id, replies_delta=-1, last_post=last_post, conn=conn)
		await self.repo.adjust_forum_counters(forum.id, posts_delta=-1, touch_activity=False, conn=conn)
		obs_metrics.inc_post("deleted")
		return True

	async def toggle_like(self, actor: AuthenticatedUser, post_id: UUID) -> dto.LikeResponse:
		result = await self.repo.toggle_like(post_id, actor.id)
		if result is None:
			raise NotFoundError("Post not found")
		liked, likes = result
		obs_metrics.inc_like("like" if liked else "unlike")
		message = "Post liked successfully" if liked else "Post unliked successfully"
		return dto.LikeResponse(message=message, liked=liked, likes=likes)

	async def report_post(
		self,
		actor: AuthenticatedUser,
		post_id: UUID,
		payload: dto.ReportRequest,
	) -> dto.ReportEnvelope:
		post = await self.repo.get_post(post_id)
		if post is None:
			raise NotFoundError("Post not found")
		await rate_limiter.enforce_report(actor.id)
		report = await self.repo.create_report(post_id=post.id, user_id=actor.id, reason=payload.reason)
		obs_metrics.inc_report("filed")
		logger.info("post_reported", extra={"post_id": str(post.id), "report_id": str(report.id), "user_id": actor.id})
		return dto.ReportEnvelope(message="Post reported successfully", report=_report_out(report))

	async def resolve_report(
		self,
		actor: AuthenticatedUser,
		post_id: UUID,
		report_id: UUID,
		payload: dto.ReportResolveRequest,
	) -> dto.ReportEnvelope:
		action = payload.action
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				post = await self.repo.get_post(post_id, include_deleted=True, conn=conn, for_update=True)
				if post is None:
					raise NotFoundError("Post not found")
				topic = await self.repo.get_topic(post.topic_id, include_deleted=True, conn=conn, for_update=True)
				if topic is None:
					raise NotFoundError("Topic not found")
				forum, ctx = await load_forum_access(self.repo, actor, topic.forum_id, conn=conn, for_update=True)
				ctx.require(*MODERATION_GRANTS, message="Not authorized to handle post reports")
				report = await self.repo.get_report(report_id, conn=conn, for_update=True)
				if report is None or report.post_id != post.id:
					raise NotFoundError("Report not found")
				# Posts already tombstoned (directly or via their topic) keep their counters
				if action == models.ReportAction.DELETE_POST and not post.is_deleted and not topic.is_deleted:
					await self._remove_post(post, topic, forum, conn=conn)
				report = await self.repo.resolve_report(
					report.id,
					status=models.ReportStatus.REVIEWED,
					action=action,
					reviewed_by=actor.id,
					conn=conn,
				)
		obs_metrics.inc_report(action.value)
		logger.info(
			"report_resolved",
			extra={"post_id": str(post.id), "report_id": str(report.id), "action": action.value, "user_id": actor.id},
		)
		message = "Report dismissed" if action == models.ReportAction.DISMISS else "Post deleted based on report"
		return dto.ReportEnvelope(message=message, report=_report_out(report))
