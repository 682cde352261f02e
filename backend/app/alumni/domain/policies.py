"""Authorization predicates for schools, events and forums.

Every mutating operation builds one :class:`AccessContext` describing what the
actor is being checked against (the resource's school, the forum moderator set,
the owners of the content) and asks it for the grants that operation accepts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional
from uuid import UUID

from app.alumni.domain import models
from app.alumni.domain.exceptions import ForbiddenError
from app.alumni.domain.roles import PLATFORM_ADMIN_ROLES, Role
from app.infra.auth import AuthenticatedUser


class Grant(str, Enum):
	PLATFORM_ADMIN = "platform_admin"
	SCHOOL_ADMIN = "school_admin"
	MODERATOR = "moderator"
	OWNER = "owner"


# Who may moderate forum content (pin, lock, delete others' posts, resolve reports)
MODERATION_GRANTS = (Grant.MODERATOR, Grant.SCHOOL_ADMIN, Grant.PLATFORM_ADMIN)
# Who may manage a school-scoped resource (school profile, forum settings, moderators)
MANAGEMENT_GRANTS = (Grant.SCHOOL_ADMIN, Grant.PLATFORM_ADMIN)


def _ids(values: Iterable[UUID | str | None]) -> frozenset[str]:
	return frozenset(str(value) for value in values if value is not None)


@dataclass(slots=True, frozen=True)
class AccessContext:
	actor: AuthenticatedUser
	school: Optional[models.School] = None
	moderators: frozenset[str] = field(default_factory=frozenset)
	owners: frozenset[str] = field(default_factory=frozenset)

	@classmethod
	def for_school(cls, actor: AuthenticatedUser, school: Optional[models.School]) -> AccessContext:
		return cls(actor=actor, school=school)

	@classmethod
	def for_forum(
		cls,
		actor: AuthenticatedUser,
		forum: models.Forum,
		school: Optional[models.School],
		*,
		owners: Iterable[UUID | str | None] = (),
	) -> AccessContext:
		return cls(actor=actor, school=school, moderators=_ids(forum.moderators), owners=_ids(owners))

	@classmethod
	def for_event(
		cls,
		actor: AuthenticatedUser,
		event: models.Event,
		school: Optional[models.School],
		*,
		owners: Iterable[UUID | str | None] | None = None,
	) -> AccessContext:
		owner_ids = (event.organizer_id, event.created_by) if owners is None else owners
		return cls(actor=actor, school=school, owners=_ids(owner_ids))

	def holds(self, grant: Grant) -> bool:
		actor_id = str(self.actor.id)
		if grant is Grant.PLATFORM_ADMIN:
			return self.actor.role in PLATFORM_ADMIN_ROLES
		if grant is Grant.SCHOOL_ADMIN:
			return (
				self.actor.role == Role.SCHOOL_ADMIN
				and self.school is not None
				and self.school.has_admin(actor_id)
			)
		if grant is Grant.MODERATOR:
			return actor_id in self.moderators
		if grant is Grant.OWNER:
			return actor_id in self.owners
		return False

	def allows(self, *grants: Grant) -> bool:
		return any(self.holds(grant) for grant in grants)

	def require(self, *grants: Grant, message: str | None = None) -> Grant:
		"""Return the first grant the actor holds or raise ForbiddenError."""
		for grant in grants:
			if self.holds(grant):
				return grant
		raise ForbiddenError(message)


# --- Event visibility --------------------------------------------------------


@dataclass(slots=True, frozen=True)
class EventScope:
	"""Visibility filter for event listings.

	``unrestricted`` actors see every tier. Otherwise only ``visibilities`` are
	listed, plus ``school_alumni_only`` events of ``school_id``.
	"""

	unrestricted: bool = False
	visibilities: tuple[models.Visibility, ...] = (models.Visibility.PUBLIC,)
	school_id: Optional[str] = None


def event_scope(actor: Optional[AuthenticatedUser]) -> EventScope:
	if actor is None or actor.role == Role.GUEST:
		return EventScope()
	if actor.role in (Role.USER, Role.ALUMNI):
		return EventScope(
			visibilities=(models.Visibility.PUBLIC, models.Visibility.ALUMNI_ONLY),
			school_id=actor.school_id,
		)
	return EventScope(unrestricted=True)


def view_denial(
	event: models.Event,
	actor: Optional[AuthenticatedUser],
	*,
	is_attendee: bool = False,
) -> Optional[str]:
	"""Return why ``actor`` may not see ``event``, or None when it is visible."""
	visibility = event.visibility
	if visibility == models.Visibility.PUBLIC:
		return None
	if actor is None:
		return "Not authorized to view this event"
	if actor.role in PLATFORM_ADMIN_ROLES:
		return None
	if visibility == models.Visibility.ALUMNI_ONLY:
		return "This event is for alumni only" if actor.role == Role.GUEST else None
	if visibility == models.Visibility.SCHOOL_ALUMNI_ONLY:
		if actor.role == Role.SCHOOL_ADMIN or _same_school(event, actor):
			return None
		return "This event is for alumni of a specific school only"
	# invite_only
	if is_attendee or str(event.organizer_id) == str(actor.id):
		return None
	return "This event is by invitation only"


def _same_school(event: models.Event, actor: AuthenticatedUser) -> bool:
	return event.school_id is not None and str(event.school_id) == str(actor.school_id or "")


def self_registration_denial(event: models.Event, actor: AuthenticatedUser) -> Optional[str]:
	"""Return why ``actor`` may not register themselves, or None when allowed."""
	visibility = event.visibility
	if visibility == models.Visibility.ALUMNI_ONLY and actor.role == Role.GUEST:
		return "This event is for alumni only"
	if visibility == models.Visibility.SCHOOL_ALUMNI_ONLY:
		if not _same_school(event, actor):
			return "This event is for alumni of a specific school only"
	if visibility == models.Visibility.INVITE_ONLY:
		return "This event is by invitation only"
	return None


def payment_status_for(event: models.Event) -> models.PaymentStatus:
	if event.fee_amount > 0:
		return models.PaymentStatus.PENDING
	return models.PaymentStatus.NOT_APPLICABLE


def registration_closed(event: models.Event, *, now: datetime | None = None) -> bool:
	if event.registration_deadline is None:
		return False
	now = now or datetime.now(timezone.utc)
	return now > event.registration_deadline
