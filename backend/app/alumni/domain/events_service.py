"""Event registry: visibility-scoped reads, CRUD, attendee updates and banners."""

from __future__ import annotations

import logging
from typing import Any, Optional
from uuid import UUID

from fastapi import UploadFile

from app.alumni.domain import models
from app.alumni.domain.access import load_event_access
from app.alumni.domain.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.alumni.domain.policies import MANAGEMENT_GRANTS, Grant, event_scope, view_denial
from app.alumni.domain.repo import AlumniRepository
from app.alumni.domain.roles import EVENT_CREATOR_ROLES, Role
from app.alumni.domain.topics_service import total_pages
from app.alumni.infra.uploads import ImageStore
from app.alumni.schemas import dto
from app.infra.auth import AuthenticatedUser
from app.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

EVENT_IMAGE_FOLDER = "events"
EDIT_GRANTS = (Grant.OWNER, *MANAGEMENT_GRANTS)
# Columns that may be cleared explicitly by sending null
_NULLABLE_UPDATES = frozenset({"school_id", "capacity", "registration_deadline"})


def attendee_out(attendee: models.Attendee) -> dto.AttendeeResponse:
	return dto.AttendeeResponse.model_validate(attendee, from_attributes=True)


def event_out(event: models.Event, attendees: list[models.Attendee] | None = None) -> dto.EventResponse:
	response = dto.EventResponse.model_validate(event, from_attributes=True)
	if attendees:
		response.attendees = [attendee_out(attendee) for attendee in attendees]
	return response


def _fee_columns(fee: Optional[dict[str, Any]]) -> dict[str, Any]:
	if fee is None:
		return {}
	return {"fee_amount": fee.get("amount", 0), "fee_currency": fee.get("currency", "NGN")}


class EventsService:
	def __init__(self, repository: AlumniRepository | None = None, images: ImageStore | None = None) -> None:
		self.repo = repository or AlumniRepository()
		self.images = images or ImageStore()

	async def _school_for(self, actor: AuthenticatedUser, school_id: UUID, *, denied: str) -> models.School:
		school = await self.repo.get_school(school_id, include_inactive=True)
		if school is None:
			raise NotFoundError("School not found")
		if actor.role == Role.SCHOOL_ADMIN and not school.has_admin(actor.id):
			raise ForbiddenError(denied)
		return school

	async def list_events(
		self,
		actor: Optional[AuthenticatedUser],
		*,
		event_type: Optional[models.EventType] = None,
		school_id: Optional[UUID] = None,
		status: Optional[models.EventStatus] = None,
		upcoming: bool = True,
		page: int = 1,
		limit: int = 10,
	) -> dto.EventListResponse:
		events, total = await self.repo.list_events(
			scope=event_scope(actor),
			event_type=event_type,
			school_id=school_id,
			status=status or models.EventStatus.PUBLISHED,
			upcoming=upcoming,
			limit=limit,
			offset=(page - 1) * limit,
		)
		return dto.EventListResponse(
			count=len(events),
			total_pages=total_pages(total, limit),
			current_page=page,
			total_events=total,
			events=[event_out(event) for event in events],
		)

	async def get_event(self, actor: Optional[AuthenticatedUser], event_id: UUID) -> dto.EventEnvelope:
		event = await self.repo.get_event(event_id)
		if event is None:
			raise NotFoundError("Event not found")
		attendees = await self.repo.list_attendees(event.id)
		is_attendee = actor is not None and any(str(item.user_id) == str(actor.id) for item in attendees)
		denial = view_denial(event, actor, is_attendee=is_attendee)
		if denial:
			raise ForbiddenError(denial)
		return dto.EventEnvelope(event=event_out(event, attendees))

	async def create_event(self, actor: AuthenticatedUser, payload: dto.EventCreateRequest) -> dto.EventEnvelope:
		if actor.role not in EVENT_CREATOR_ROLES:
			raise ForbiddenError("Not authorized to create events")
		if payload.school_id is not None:
			await self._school_for(actor, payload.school_id, denied="Not authorized to create events for this school")
		fields = payload.model_dump(exclude={"registration_fee", "is_school_specific"})
		fields.update(_fee_columns(payload.registration_fee.model_dump()))
		fields["is_school_specific"] = payload.school_id is not None
		fields["organizer_id"] = actor.id
		fields["updated_by"] = actor.id
		event = await self.repo.create_event(fields, created_by=actor.id)
		obs_metrics.inc_event_written("created")
		logger.info("event_created", extra={"event_id": str(event.id), "user_id": actor.id})
		return dto.EventEnvelope(message="Event created successfully", event=event_out(event))

	async def update_event(
		self,
		actor: AuthenticatedUser,
		event_id: UUID,
		payload: dto.EventUpdateRequest,
	) -> dto.EventEnvelope:
		event, ctx = await load_event_access(self.repo, actor, event_id)
		ctx.require(*EDIT_GRANTS, message="Not authorized to update this event")

		data = payload.model_dump(exclude_unset=True)
		fields = {key: value for key, value in data.items() if value is not None or key in _NULLABLE_UPDATES}
		fields.update(_fee_columns(fields.pop("registration_fee", None)))
		if "school_id" in fields:
			new_school = fields["school_id"]
			if new_school is None:
				fields["is_school_specific"] = False
			elif str(new_school) != str(event.school_id):
				await self._school_for(actor, new_school, denied="Not authorized to assign event to this school")
				fields["is_school_specific"] = True
		start = dto.as_utc(fields.get("start_date", event.start_date))
		end = dto.as_utc(fields.get("end_date", event.end_date))
		if end < start:
			raise ValidationError("end_date must not be before start_date")
		fields["updated_by"] = actor.id
		event = await self.repo.update_event(event.id, fields)
		obs_metrics.inc_event_written("updated")
		return dto.EventEnvelope(message="Event updated successfully", event=event_out(event))

	async def delete_event(self, actor: AuthenticatedUser, event_id: UUID) -> dto.MessageResponse:
		event, ctx = await load_event_access(self.repo, actor, event_id)
		ctx.require(*EDIT_GRANTS, message="Not authorized to delete this event")
		if not await self.repo.delete_event(event.id):
			raise NotFoundError("Event not found")
		obs_metrics.inc_event_written("deleted")
		logger.info("event_deleted", extra={"event_id": str(event.id), "user_id": actor.id})
		return dto.MessageResponse(message="Event deleted successfully")

	async def update_attendee(
		self,
		actor: AuthenticatedUser,
		event_id: UUID,
		user_id: UUID,
		payload: dto.AttendeeUpdateRequest,
	) -> dto.AttendeeEnvelope:
		# The roster belongs to the organizer; the creator gets no owner grant here
		event, ctx = await load_event_access(self.repo, actor, event_id, owners=())
		if str(event.organizer_id) != str(actor.id):
			ctx.require(*MANAGEMENT_GRANTS, message="Not authorized to update attendee status")
		attendee = await self.repo.get_attendee(event.id, user_id)
		if attendee is None:
			raise NotFoundError("Attendee not found")
		fields = payload.model_dump(exclude_none=True)
		if fields:
			attendee = await self.repo.update_attendee(event.id, user_id, fields) or attendee
		logger.info(
			"attendee_updated",
			extra={"event_id": str(event.id), "attendee_id": str(user_id), "user_id": actor.id},
		)
		return dto.AttendeeEnvelope(message="Attendee status updated successfully", attendee=attendee_out(attendee))

	async def replace_banner(
		self,
		actor: AuthenticatedUser,
		event_id: UUID,
		upload: Optional[UploadFile],
	) -> dto.ImageUploadResponse:
		stored = await self.images.save(EVENT_IMAGE_FOLDER, "event", upload)
		try:
			event, ctx = await load_event_access(self.repo, actor, event_id)
			ctx.require(*EDIT_GRANTS, message="Not authorized to update this event")
			previous = event.banner
			await self.repo.update_event(event.id, {"banner": stored.url, "updated_by": actor.id})
		except Exception:
			self.images.discard(stored)
			obs_metrics.inc_upload("event_banner", "rejected")
			raise
		self.images.discard_url(previous)
		obs_metrics.inc_upload("event_banner", "stored")
		return dto.ImageUploadResponse(message="Event banner uploaded successfully", url=stored.url)
