from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from app.alumni.domain import models
from app.alumni.domain.events_service import EventsService
from app.alumni.domain.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.alumni.domain.registration_service import RegistrationService
from app.alumni.domain.roles import Role
from app.alumni.schemas import dto
from app.infra.auth import AuthenticatedUser


def _actor(user) -> AuthenticatedUser:
	return AuthenticatedUser(id=str(user.id), role=user.role, school_id=str(user.school_id) if user.school_id else None)


def _registrations(repo, *, now: datetime | None = None) -> RegistrationService:
	return RegistrationService(repository=repo, clock=(lambda: now) if now else None)


@pytest.mark.asyncio
async def test_capacity_counts_every_roster_entry(alumni_repo, fake_pool):
	organizer = alumni_repo.add_user()
	event = alumni_repo.add_event(organizer_id=organizer.id, capacity=2)
	first, second, third = (_actor(alumni_repo.add_user()) for _ in range(3))
	service = _registrations(alumni_repo)

	registered = await service.register(first, event.id)
	assert registered.message == "Successfully registered for event"
	assert not registered.requires_payment
	await service.register(second, event.id)

	cancelled = await service.cancel_registration(first, event.id)
	assert cancelled.message == "Registration cancelled successfully"

	# The cancelled entry still holds its seat
	with pytest.raises(ConflictError) as info:
		await service.register(third, event.id)
	assert info.value.detail == "Event has reached maximum capacity"
	assert await alumni_repo.count_attendees(event.id, conn=None) == 2


@pytest.mark.asyncio
async def test_cancelled_member_cannot_register_again(alumni_repo, fake_pool):
	event = alumni_repo.add_event(organizer_id=alumni_repo.add_user().id, fee_amount=2500)
	member = _actor(alumni_repo.add_user())
	service = _registrations(alumni_repo)

	paid = await service.register(member, event.id)
	assert paid.requires_payment
	assert paid.attendee.payment_status == models.PaymentStatus.PENDING

	with pytest.raises(ConflictError) as info:
		await service.register(member, event.id)
	assert info.value.detail == "You are already registered for this event"

	await service.cancel_registration(member, event.id)
	with pytest.raises(ConflictError) as info:
		await service.register(member, event.id)
	assert info.value.detail == "You are already registered for this event"

	roster = await alumni_repo.list_attendees(event.id)
	assert [attendee.status for attendee in roster] == [models.AttendeeStatus.CANCELLED]


@pytest.mark.asyncio
async def test_registration_checks_event_state_in_order(alumni_repo, fake_pool):
	organizer = alumni_repo.add_user().id
	member = _actor(alumni_repo.add_user())
	deadline = datetime(2026, 6, 1, tzinfo=timezone.utc)

	draft = alumni_repo.add_event(organizer_id=organizer, status=models.EventStatus.DRAFT, capacity=1)
	open_door = alumni_repo.add_event(organizer_id=organizer, registration_required=False)
	late = alumni_repo.add_event(organizer_id=organizer, registration_deadline=deadline)
	service = _registrations(alumni_repo, now=deadline + timedelta(minutes=1))

	expectations = [
		(draft, "Cannot register for an unpublished event"),
		(open_door, "Registration is not required for this event"),
		(late, "Registration deadline has passed"),
	]
	for event, message in expectations:
		with pytest.raises(ConflictError) as info:
			await service.register(member, event.id)
		assert info.value.detail == message

	with pytest.raises(NotFoundError):
		await service.register(member, uuid4())


@pytest.mark.asyncio
async def test_visibility_limits_self_registration(alumni_repo, fake_pool):
	school = alumni_repo.add_school()
	organizer = alumni_repo.add_user().id
	school_only = alumni_repo.add_event(
		organizer_id=organizer,
		visibility=models.Visibility.SCHOOL_ALUMNI_ONLY,
		school_id=school.id,
	)
	invite_only = alumni_repo.add_event(organizer_id=organizer, visibility=models.Visibility.INVITE_ONLY)
	service = _registrations(alumni_repo)

	with pytest.raises(ForbiddenError):
		await service.register(_actor(alumni_repo.add_user()), school_only.id)
	await service.register(_actor(alumni_repo.add_user(school_id=school.id)), school_only.id)

	with pytest.raises(ForbiddenError) as info:
		await service.register(_actor(alumni_repo.add_user(role=Role.SUPER_ADMIN)), invite_only.id)
	assert info.value.detail == "This event is by invitation only"


@pytest.mark.asyncio
async def test_cancel_without_registration_is_not_found(alumni_repo, fake_pool):
	event = alumni_repo.add_event(organizer_id=alumni_repo.add_user().id)
	with pytest.raises(NotFoundError) as info:
		await _registrations(alumni_repo).cancel_registration(_actor(alumni_repo.add_user()), event.id)
	assert info.value.detail == "You are not registered for this event"


@pytest.mark.asyncio
async def test_invite_skips_existing_attendees(alumni_repo, fake_pool):
	organizer = alumni_repo.add_user()
	event = alumni_repo.add_event(organizer_id=organizer.id, visibility=models.Visibility.INVITE_ONLY)
	already, fresh = alumni_repo.add_user(), alumni_repo.add_user()
	service = _registrations(alumni_repo)
	await alumni_repo.insert_attendee(
		event.id,
		already.id,
		status=models.AttendeeStatus.CONFIRMED,
		payment_status=models.PaymentStatus.NOT_APPLICABLE,
		conn=None,
	)

	result = await service.invite(
		_actor(organizer),
		event.id,
		dto.InviteRequest(user_ids=[already.id, fresh.id, fresh.id]),
	)
	assert result.invited == 1
	assert result.message == "Successfully invited 1 users to the event"
	assert [attendee.user_id for attendee in result.attendees] == [fresh.id]

	with pytest.raises(ValidationError) as info:
		await service.invite(_actor(organizer), event.id, dto.InviteRequest(user_ids=[uuid4()]))
	assert info.value.detail == "One or more users not found"

	with pytest.raises(ValidationError):
		await service.invite(_actor(organizer), event.id, dto.InviteRequest(user_ids=[]))

	with pytest.raises(ForbiddenError):
		await service.invite(_actor(fresh), event.id, dto.InviteRequest(user_ids=[already.id]))


@pytest.mark.asyncio
async def test_get_event_applies_visibility(alumni_repo, fake_pool):
	organizer = alumni_repo.add_user()
	event = alumni_repo.add_event(organizer_id=organizer.id, visibility=models.Visibility.INVITE_ONLY)
	invitee = alumni_repo.add_user()
	service = EventsService(repository=alumni_repo)

	with pytest.raises(ForbiddenError) as info:
		await service.get_event(_actor(invitee), event.id)
	assert info.value.detail == "This event is by invitation only"
	with pytest.raises(ForbiddenError):
		await service.get_event(None, event.id)

	await _registrations(alumni_repo).invite(_actor(organizer), event.id, dto.InviteRequest(user_ids=[invitee.id]))
	envelope = await service.get_event(_actor(invitee), event.id)
	assert [attendee.user_id for attendee in envelope.event.attendees] == [invitee.id]


@pytest.mark.asyncio
async def test_list_events_scopes_by_role(alumni_repo, fake_pool):
	school = alumni_repo.add_school()
	organizer = alumni_repo.add_user().id
	public = alumni_repo.add_event(organizer_id=organizer, visibility=models.Visibility.PUBLIC)
	alumni_only = alumni_repo.add_event(organizer_id=organizer, visibility=models.Visibility.ALUMNI_ONLY)
	school_only = alumni_repo.add_event(
		organizer_id=organizer,
		visibility=models.Visibility.SCHOOL_ALUMNI_ONLY,
		school_id=school.id,
	)
	alumni_repo.add_event(organizer_id=organizer, status=models.EventStatus.DRAFT)
	service = EventsService(repository=alumni_repo)

	anonymous = await service.list_events(None)
	assert [event.id for event in anonymous.events] == [public.id]

	classmate = _actor(alumni_repo.add_user(school_id=school.id))
	seen = {event.id for event in (await service.list_events(classmate)).events}
	assert seen == {public.id, alumni_only.id, school_only.id}

	admin = _actor(alumni_repo.add_user(role=Role.USOSA_ADMIN))
	paged = await service.list_events(admin, page=2, limit=2)
	assert paged.total_events == 3
	assert paged.total_pages == 2
	assert paged.current_page == 2
	assert paged.count == 1


@pytest.mark.asyncio
async def test_create_and_update_event(alumni_repo, fake_pool):
	admin_user = alumni_repo.add_user(role=Role.SCHOOL_ADMIN)
	school = alumni_repo.add_school(admins=[admin_user.id])
	other = alumni_repo.add_school(name="Federal Government Girls College Bida")
	service = EventsService(repository=alumni_repo)
	start = datetime.now(timezone.utc) + timedelta(days=10)
	payload = dto.EventCreateRequest(
		title="Founders Day",
		description="Celebration",
		event_type=models.EventType.SOCIAL,
		start_date=start,
		end_date=start + timedelta(hours=5),
		location=models.EventLocation(venue="Quadrangle"),
		school_id=school.id,
		registration_fee=models.RegistrationFee(amount=1000),
	)

	with pytest.raises(ForbiddenError):
		await service.create_event(_actor(alumni_repo.add_user(role=Role.USER)), payload)

	created = await service.create_event(_actor(admin_user), payload)
	event = created.event
	assert event.is_school_specific
	assert str(event.organizer_id) == str(admin_user.id)
	assert event.registration_fee.amount == 1000

	with pytest.raises(ForbiddenError) as info:
		await service.update_event(_actor(admin_user), event.id, dto.EventUpdateRequest(school_id=other.id))
	assert info.value.detail == "Not authorized to assign event to this school"

	with pytest.raises(ValidationError):
		await service.update_event(
			_actor(admin_user),
			event.id,
			dto.EventUpdateRequest(end_date=start - timedelta(days=1)),
		)

	cleared = await service.update_event(
		_actor(admin_user),
		event.id,
		dto.EventUpdateRequest(school_id=None, capacity=None, title="Founders Day 2026"),
	)
	assert cleared.event.school_id is None
	assert not cleared.event.is_school_specific
	assert cleared.event.title == "Founders Day 2026"

	stranger = _actor(alumni_repo.add_user())
	with pytest.raises(ForbiddenError):
		await service.delete_event(stranger, event.id)
	deleted = await service.delete_event(_actor(admin_user), event.id)
	assert deleted.message == "Event deleted successfully"
	with pytest.raises(NotFoundError):
		await service.get_event(None, event.id)


@pytest.mark.asyncio
async def test_update_attendee_by_organizer_only(alumni_repo, fake_pool):
	organizer = alumni_repo.add_user()
	creator = alumni_repo.add_user()
	event = alumni_repo.add_event(organizer_id=organizer.id, created_by=creator.id, fee_amount=500)
	member = _actor(alumni_repo.add_user())
	await _registrations(alumni_repo).register(member, event.id)
	service = EventsService(repository=alumni_repo)
	payload = dto.AttendeeUpdateRequest(
		status=models.AttendeeStatus.CONFIRMED,
		payment_status=models.PaymentStatus.COMPLETED,
		payment_reference="PSK-1234",
	)

	with pytest.raises(ForbiddenError) as info:
		await service.update_attendee(_actor(creator), event.id, member.id, payload)
	assert info.value.detail == "Not authorized to update attendee status"

	updated = await service.update_attendee(_actor(organizer), event.id, member.id, payload)
	assert updated.attendee.status == models.AttendeeStatus.CONFIRMED
	assert updated.attendee.payment_reference == "PSK-1234"

	with pytest.raises(NotFoundError):
		await service.update_attendee(_actor(organizer), event.id, uuid4(), payload)


@pytest.mark.asyncio
async def test_single_seat_event_rejects_second_registration(alumni_repo, fake_pool):
	event = alumni_repo.add_event(organizer_id=alumni_repo.add_user().id, capacity=1)
	service = _registrations(alumni_repo)

	first = await service.register(_actor(alumni_repo.add_user()), event.id)
	assert first.attendee.payment_status == models.PaymentStatus.NOT_APPLICABLE
	with pytest.raises(ConflictError) as info:
		await service.register(_actor(alumni_repo.add_user()), event.id)
	assert "maximum capacity" in info.value.detail


def test_event_dates_without_offset_are_read_as_utc():
	payload = dto.EventCreateRequest(
		title="Class of 1999 Reunion",
		description="Dinner and awards",
		event_type=models.EventType.REUNION,
		start_date="2030-01-01T10:00:00Z",
		end_date="2030-01-02T10:00:00",
		registration_deadline="2029-12-20T00:00:00",
		location=models.EventLocation(venue="Eko Hotel"),
	)
	assert payload.end_date == datetime(2030, 1, 2, 10, tzinfo=timezone.utc)
	assert payload.registration_deadline.tzinfo is not None

	with pytest.raises(ValueError):
		dto.EventCreateRequest(
			title="Class of 1999 Reunion",
			description="Dinner and awards",
			event_type=models.EventType.REUNION,
			start_date="2030-01-02T10:00:00+01:00",
			end_date="2030-01-01T10:00:00",
			location=models.EventLocation(venue="Eko Hotel"),
		)


@pytest.mark.asyncio
async def test_update_end_date_without_offset_compares_with_stored_start(alumni_repo, fake_pool):
	organizer = alumni_repo.add_user()
	start = datetime(2030, 1, 1, 10, tzinfo=timezone.utc)
	event = alumni_repo.add_event(organizer_id=organizer.id, start_date=start, end_date=start + timedelta(hours=4))
	service = EventsService(repository=alumni_repo)

	with pytest.raises(ValidationError):
		await service.update_event(_actor(organizer), event.id, dto.EventUpdateRequest(end_date="2029-12-31T10:00:00"))

	moved = await service.update_event(_actor(organizer), event.id, dto.EventUpdateRequest(end_date="2030-01-01T18:00:00"))
	assert moved.event.end_date == datetime(2030, 1, 1, 18, tzinfo=timezone.utc)
