"""School directory: profiles, administrators and images."""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import UploadFile

from app.alumni.domain import models
from app.alumni.domain.access import load_school_access
from app.alumni.domain.exceptions import ConflictError, NotFoundError
from app.alumni.domain.policies import MANAGEMENT_GRANTS, AccessContext, Grant
from app.alumni.domain.repo import AlumniRepository
from app.alumni.domain.roles import PROMOTABLE_ROLES, Role
from app.alumni.infra.uploads import ImageStore
from app.alumni.schemas import dto
from app.infra.auth import AuthenticatedUser
from app.infra.postgres import get_pool
from app.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

SCHOOL_IMAGE_FOLDER = "schools"


def _school_out(school: models.School) -> dto.SchoolResponse:
	return dto.SchoolResponse.model_validate(school, from_attributes=True)


def _denied(actor: AuthenticatedUser, *, scoped: str, general: str) -> str:
	return scoped if actor.role == Role.SCHOOL_ADMIN else general


class SchoolsService:
	def __init__(self, repository: AlumniRepository | None = None, images: ImageStore | None = None) -> None:
		self.repo = repository or AlumniRepository()
		self.images = images or ImageStore()

	async def list_schools(self, *, region: Optional[models.Region] = None) -> dto.SchoolListResponse:
		schools = await self.repo.list_schools(region=region)
		return dto.SchoolListResponse(count=len(schools), schools=[_school_out(school) for school in schools])

	async def get_school(self, school_id: UUID) -> dto.SchoolEnvelope:
		school = await self.repo.get_school(school_id)
		if school is None:
			raise NotFoundError("School not found")
		return dto.SchoolEnvelope(school=_school_out(school))

	async def create_school(self, actor: AuthenticatedUser, payload: dto.SchoolCreateRequest) -> dto.SchoolEnvelope:
		AccessContext.for_school(actor, None).require(Grant.PLATFORM_ADMIN, message="Not authorized to create schools")
		if await self.repo.get_school_by_name(payload.name) is not None:
			raise ConflictError("School with this name already exists")
		fields = payload.model_dump(mode="json", exclude={"admin_users"}, exclude_none=True)
		admin_users = payload.admin_users or [UUID(str(actor.id))]
		school = await self.repo.create_school(fields, admin_users=admin_users)
		logger.info("school_created", extra={"school_id": str(school.id), "user_id": actor.id})
		return dto.SchoolEnvelope(message="School created successfully", school=_school_out(school))

	async def update_school(
		self,
		actor: AuthenticatedUser,
		school_id: UUID,
		payload: dto.SchoolUpdateRequest,
	) -> dto.SchoolEnvelope:
		school, ctx = await load_school_access(self.repo, actor, school_id)
		ctx.require(
			*MANAGEMENT_GRANTS,
			message=_denied(actor, scoped="Not authorized to update this school", general="Not authorized to update schools"),
		)
		fields = payload.model_dump(mode="json", exclude_none=True)
		if fields.get("name") and fields["name"] != school.name:
			if await self.repo.get_school_by_name(fields["name"]) is not None:
				raise ConflictError("School with this name already exists")
		if fields:
			school = await self.repo.update_school(school.id, fields)
		return dto.SchoolEnvelope(message="School updated successfully", school=_school_out(school))

	async def deactivate_school(self, actor: AuthenticatedUser, school_id: UUID) -> dto.MessageResponse:
		school, ctx = await load_school_access(self.repo, actor, school_id)
		ctx.require(Grant.PLATFORM_ADMIN, message="Not authorized to delete schools")
		await self.repo.update_school(school.id, {"is_active": False})
		logger.info("school_deactivated", extra={"school_id": str(school.id), "user_id": actor.id})
		return dto.MessageResponse(message="School deleted successfully")

	async def add_school_admin(self, actor: AuthenticatedUser, payload: dto.SchoolAdminRequest) -> dto.SchoolEnvelope:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				school, ctx = await load_school_access(self.repo, actor, payload.school_id, conn=conn, for_update=True)
				ctx.require(
					*MANAGEMENT_GRANTS,
					message=_denied(
						actor,
						scoped="Not authorized to add admins to this school",
						general="Not authorized to add school admins",
					),
				)
				user = await self.repo.get_user(payload.user_id, conn=conn)
				if user is None:
					raise NotFoundError("User not found")
				if school.has_admin(user.id):
					raise ConflictError("User is already an admin for this school")
				school = await self.repo.set_school_admins(school.id, [*school.admin_users, user.id], conn=conn)
				if user.role in PROMOTABLE_ROLES:
					await self.repo.set_user_role(user.id, Role.SCHOOL_ADMIN, conn=conn)
		obs_metrics.inc_school_admin_change("added")
		logger.info("school_admin_added", extra={"school_id": str(school.id), "admin_id": str(user.id), "user_id": actor.id})
		return dto.SchoolEnvelope(message="School admin added successfully", school=_school_out(school))

	async def remove_school_admin(
		self,
		actor: AuthenticatedUser,
		payload: dto.SchoolAdminRequest,
	) -> dto.SchoolEnvelope:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				school, ctx = await load_school_access(self.repo, actor, payload.school_id, conn=conn, for_update=True)
				grant = ctx.require(
					*MANAGEMENT_GRANTS,
					message=_denied(
						actor,
						scoped="Not authorized to remove admins from this school",
						general="Not authorized to remove school admins",
					),
				)
				if grant is Grant.SCHOOL_ADMIN and str(payload.user_id) == str(actor.id):
					raise ConflictError("Cannot remove yourself as admin")
				if not school.has_admin(payload.user_id):
					raise ConflictError("User is not an admin for this school")
				remaining = [admin for admin in school.admin_users if admin != payload.user_id]
				if not remaining:
					raise ConflictError("Cannot remove the last admin from a school")
				school = await self.repo.set_school_admins(school.id, remaining, conn=conn)
		obs_metrics.inc_school_admin_change("removed")
		logger.info(
			"school_admin_removed",
			extra={"school_id": str(school.id), "admin_id": str(payload.user_id), "user_id": actor.id},
		)
		return dto.SchoolEnvelope(message="School admin removed successfully", school=_school_out(school))

	async def replace_image(
		self,
		actor: AuthenticatedUser,
		school_id: UUID,
		*,
		kind: str,
		upload: Optional[UploadFile],
	) -> dto.ImageUploadResponse:
		"""Store a new ``logo`` or ``banner``; the file is written before the school is checked."""
		if kind not in ("logo", "banner"):
			raise ValueError(f"unknown school image kind: {kind}")
		stored = await self.images.save(SCHOOL_IMAGE_FOLDER, "school", upload)
		try:
			school, ctx = await load_school_access(self.repo, actor, school_id)
			ctx.require(
				*MANAGEMENT_GRANTS,
				message=_denied(actor, scoped="Not authorized to update this school", general="Not authorized to update schools"),
			)
			previous = getattr(school, kind)
			await self.repo.update_school(school.id, {kind: stored.url})
		except Exception:
			self.images.discard(stored)
			obs_metrics.inc_upload(f"school_{kind}", "rejected")
			raise
		self.images.discard_url(previous)
		obs_metrics.inc_upload(f"school_{kind}", "stored")
		return dto.ImageUploadResponse(message=f"School {kind} uploaded successfully", url=stored.url)
