"""Forum registry and moderator management."""

from __future__ import annotations

import logging
from uuid import UUID

from app.alumni.domain import models
from app.alumni.domain.access import load_forum_access
from app.alumni.domain.exceptions import ConflictError, NotFoundError
from app.alumni.domain.policies import MANAGEMENT_GRANTS, AccessContext, Grant
from app.alumni.domain.repo import AlumniRepository
from app.alumni.schemas import dto
from app.infra.auth import AuthenticatedUser
from app.infra.postgres import get_pool
from app.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


def _forum_out(forum: models.Forum) -> dto.ForumResponse:
	return dto.ForumResponse.model_validate(forum, from_attributes=True)


def _require_manage(forum: models.Forum, ctx: AccessContext, *, scoped: str, general: str) -> None:
	# General forums belong to no school, so only platform admins manage them
	if forum.school_id is None:
		ctx.require(Grant.PLATFORM_ADMIN, message=general)
	else:
		ctx.require(*MANAGEMENT_GRANTS, message=scoped)


def _dedupe(ids: list[UUID]) -> list[UUID]:
	seen: dict[str, UUID] = {}
	for value in ids:
		seen.setdefault(str(value), value)
	return list(seen.values())


class ForumsService:
	def __init__(self, repository: AlumniRepository | None = None) -> None:
		self.repo = repository or AlumniRepository()

	async def list_forums(self) -> dto.ForumListResponse:
		forums = await self.repo.list_forums()
		return dto.ForumListResponse(count=len(forums), forums=[_forum_out(forum) for forum in forums])

	async def get_general_forum(self) -> dto.ForumEnvelope:
		forum = await self.repo.get_general_forum()
		if forum is None:
			raise NotFoundError("General forum not found")
		return dto.ForumEnvelope(forum=_forum_out(forum))

	async def list_forums_by_school(self, school_id: UUID) -> dto.ForumListResponse:
		school = await self.repo.get_school(school_id)
		if school is None:
			raise NotFoundError("School not found")
		forums = await self.repo.list_forums(school_id=school.id)
		return dto.ForumListResponse(count=len(forums), forums=[_forum_out(forum) for forum in forums])

	async def get_forum(self, forum_id: UUID) -> dto.ForumEnvelope:
		forum = await self.repo.get_forum(forum_id)
		if forum is None:
			raise NotFoundError("Forum not found")
		return dto.ForumEnvelope(forum=_forum_out(forum))

	async def create_forum(self, actor: AuthenticatedUser, payload: dto.ForumCreateRequest) -> dto.ForumEnvelope:
		if payload.school_id is not None:
			school = await self.repo.get_school(payload.school_id)
			if school is None:
				raise NotFoundError("School not found")
			AccessContext.for_school(actor, school).require(
				*MANAGEMENT_GRANTS,
				message="Not authorized to create forums for this school",
			)
		else:
			AccessContext.for_school(actor, None).require(
				Grant.PLATFORM_ADMIN,
				message="Not authorized to create general forums",
			)
		moderators = _dedupe(payload.moderators or []) or [UUID(str(actor.id))]
		forum = await self.repo.create_forum(
			name=payload.name,
			description=payload.description,
			school_id=payload.school_id,
			moderators=moderators,
		)
		logger.info("forum_created", extra={"forum_id": str(forum.id), "user_id": actor.id})
		return dto.ForumEnvelope(message="Forum created successfully", forum=_forum_out(forum))

	async def update_forum(
		self,
		actor: AuthenticatedUser,
		forum_id: UUID,
		payload: dto.ForumUpdateRequest,
	) -> dto.ForumEnvelope:
		forum, ctx = await load_forum_access(self.repo, actor, forum_id)
		_require_manage(
			forum,
			ctx,
			scoped="Not authorized to update this forum",
			general="Not authorized to update general forums",
		)
		fields = payload.model_dump(exclude_none=True, exclude={"moderators"})
		moderators = _dedupe(payload.moderators) if payload.moderators is not None else None
		forum = await self.repo.update_forum(forum.id, fields, moderators=moderators)
		return dto.ForumEnvelope(message="Forum updated successfully", forum=_forum_out(forum))

	async def add_moderator(self, actor: AuthenticatedUser, payload: dto.ModeratorRequest) -> dto.ForumEnvelope:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				forum, ctx = await load_forum_access(self.repo, actor, payload.forum_id, conn=conn, for_update=True)
				_require_manage(
					forum,
					ctx,
					scoped="Not authorized to add moderators to this forum",
					general="Not authorized to add moderators to general forums",
				)
				user = await self.repo.get_user(payload.user_id, conn=conn)
				if user is None:
					raise NotFoundError("User not found")
				if user.id in forum.moderators:
					raise ConflictError("User is already a moderator for this forum")
				forum = await self.repo.update_forum(
					forum.id,
					{},
					moderators=[*forum.moderators, user.id],
					conn=conn,
				)
		obs_metrics.inc_moderation("moderator_added")
		logger.info("moderator_added", extra={"forum_id": str(forum.id), "moderator_id": str(user.id), "user_id": actor.id})
		return dto.ForumEnvelope(message="Moderator added successfully", forum=_forum_out(forum))

	async def remove_moderator(self, actor: AuthenticatedUser, payload: dto.ModeratorRequest) -> dto.ForumEnvelope:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				forum, ctx = await load_forum_access(self.repo, actor, payload.forum_id, conn=conn, for_update=True)
				_require_manage(
					forum,
					ctx,
					scoped="Not authorized to remove moderators from this forum",
					general="Not authorized to remove moderators from general forums",
				)
				if payload.user_id not in forum.moderators:
					raise ConflictError("User is not a moderator for this forum")
				if len(forum.moderators) == 1:
					raise ConflictError("Cannot remove the last moderator from a forum")
				forum = await self.repo.update_forum(
					forum.id,
					{},
					moderators=[moderator for moderator in forum.moderators if moderator != payload.user_id],
					conn=conn,
				)
		obs_metrics.inc_moderation("moderator_removed")
		logger.info(
			"moderator_removed",
			extra={"forum_id": str(forum.id), "moderator_id": str(payload.user_id), "user_id": actor.id},
		)
		return dto.ForumEnvelope(message="Moderator removed successfully", forum=_forum_out(forum))
