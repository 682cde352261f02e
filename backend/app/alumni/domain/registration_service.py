"""Attendee roster: self-registration, cancellation and invitations."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable
from uuid import UUID

from app.alumni.domain import models, policies
from app.alumni.domain.access import load_event_access
from app.alumni.domain.events_service import EDIT_GRANTS, attendee_out
from app.alumni.domain.exceptions import AlumniError, ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.alumni.domain.repo import AlumniRepository
from app.alumni.schemas import dto
from app.infra.auth import AuthenticatedUser
from app.infra.postgres import get_pool
from app.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


class RegistrationService:
	"""Roster writes lock the event row so capacity checks and inserts cannot interleave."""

	def __init__(
		self,
		repository: AlumniRepository | None = None,
		clock: Callable[[], datetime] | None = None,
	) -> None:
		self.repo = repository or AlumniRepository()
		self._clock = clock

	def _now(self) -> datetime | None:
		return self._clock() if self._clock else None

	async def register(self, actor: AuthenticatedUser, event_id: UUID) -> dto.RegistrationResponse:
		try:
			attendee = await self._register(actor, event_id)
		except AlumniError:
			obs_metrics.inc_event_registration("rejected")
			raise
		obs_metrics.inc_event_registration("registered")
		logger.info("event_registration", extra={"event_id": str(event_id), "user_id": actor.id})
		return dto.RegistrationResponse(
			message="Successfully registered for event",
			requires_payment=attendee.payment_status == models.PaymentStatus.PENDING,
			attendee=attendee_out(attendee),
		)

	async def _register(self, actor: AuthenticatedUser, event_id: UUID) -> models.Attendee:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				event = await self.repo.get_event(event_id, conn=conn, for_update=True)
				if event is None:
					raise NotFoundError("Event not found")
				if event.status != models.EventStatus.PUBLISHED:
					raise ConflictError("Cannot register for an unpublished event")
				if not event.registration_required:
					raise ConflictError("Registration is not required for this event")
				if policies.registration_closed(event, now=self._now()):
					raise ConflictError("Registration deadline has passed")
				if event.capacity:
					taken = await self.repo.count_attendees(event.id, conn=conn)
					if taken >= event.capacity:
						raise ConflictError("Event has reached maximum capacity")
				existing = await self.repo.get_attendee(event.id, actor.id, conn=conn)
				# A cancelled entry stays on the roster and still blocks a second registration
				if existing is not None:
					raise ConflictError("You are already registered for this event")
				denial = policies.self_registration_denial(event, actor)
				if denial:
					raise ForbiddenError(denial)
				return await self.repo.insert_attendee(
					event.id,
					actor.id,
					status=models.AttendeeStatus.REGISTERED,
					payment_status=policies.payment_status_for(event),
					conn=conn,
				)

	async def cancel_registration(self, actor: AuthenticatedUser, event_id: UUID) -> dto.MessageResponse:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				event = await self.repo.get_event(event_id, conn=conn, for_update=True)
				if event is None:
					raise NotFoundError("Event not found")
				attendee = await self.repo.get_attendee(event.id, actor.id, conn=conn)
				if attendee is None:
					raise NotFoundError("You are not registered for this event")
				await self.repo.update_attendee(
					event.id,
					actor.id,
					{"status": models.AttendeeStatus.CANCELLED},
					conn=conn,
				)
		obs_metrics.inc_event_registration("cancelled")
		logger.info("event_registration_cancelled", extra={"event_id": str(event.id), "user_id": actor.id})
		return dto.MessageResponse(message="Registration cancelled successfully")

	async def invite(
		self,
		actor: AuthenticatedUser,
		event_id: UUID,
		payload: dto.InviteRequest,
	) -> dto.InviteResponse:
		if not payload.user_ids:
			raise ValidationError("User IDs are required")
		user_ids = list(dict.fromkeys(payload.user_ids))
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				event, ctx = await load_event_access(self.repo, actor, event_id, conn=conn, for_update=True)
				ctx.require(*EDIT_GRANTS, message="Not authorized to invite users to this event")
				found = await self.repo.existing_user_ids(user_ids, conn=conn)
				if len(found) != len(user_ids):
					raise ValidationError("One or more users not found")
				added = await self.repo.add_attendees(
					event.id,
					user_ids,
					payment_status=policies.payment_status_for(event),
					conn=conn,
				)
		obs_metrics.inc_event_registration("invited")
		logger.info("event_invitations", extra={"event_id": str(event.id), "invited": len(added), "user_id": actor.id})
		return dto.InviteResponse(
			message=f"Successfully invited {len(added)} users to the event",
			invited=len(added),
			attendees=[attendee_out(attendee) for attendee in added],
		)
