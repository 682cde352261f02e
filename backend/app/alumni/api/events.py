"""Events API endpoints."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile

from app.alumni.api._errors import to_http_error
from app.alumni.domain.events_service import EventsService
from app.alumni.domain.models import EventStatus, EventType
from app.alumni.domain.registration_service import RegistrationService
from app.alumni.schemas import dto
from app.infra.auth import AuthenticatedUser, get_current_user, get_optional_user

router = APIRouter(tags=["alumni:events"])
_service = EventsService()
_registrations = RegistrationService()


@router.get("/events", response_model=dto.EventListResponse)
async def list_events_endpoint(
	event_type: Optional[EventType] = Query(default=None, alias="type"),
	school: Optional[UUID] = None,
	status: Optional[EventStatus] = None,
	upcoming: bool = True,
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=10, ge=1, le=100),
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> dto.EventListResponse:
	try:
		return await _service.list_events(
			auth_user,
			event_type=event_type,
			school_id=school,
			status=status,
			upcoming=upcoming,
			page=page,
			limit=limit,
		)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/events/{event_id}", response_model=dto.EventEnvelope)
async def get_event_endpoint(
	event_id: UUID,
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> dto.EventEnvelope:
	try:
		return await _service.get_event(auth_user, event_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/events", response_model=dto.EventEnvelope, status_code=201)
async def create_event_endpoint(
	payload: dto.EventCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.EventEnvelope:
	try:
		return await _service.create_event(auth_user, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/events/{event_id}", response_model=dto.EventEnvelope)
async def update_event_endpoint(
	event_id: UUID,
	payload: dto.EventUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.EventEnvelope:
	try:
		return await _service.update_event(auth_user, event_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.delete("/events/{event_id}", response_model=dto.MessageResponse)
async def delete_event_endpoint(
	event_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MessageResponse:
	try:
		return await _service.delete_event(auth_user, event_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/events/{event_id}/register", response_model=dto.RegistrationResponse)
async def register_endpoint(
	event_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.RegistrationResponse:
	try:
		return await _registrations.register(auth_user, event_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/events/{event_id}/cancel-registration", response_model=dto.MessageResponse)
async def cancel_registration_endpoint(
	event_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MessageResponse:
	try:
		return await _registrations.cancel_registration(auth_user, event_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/events/{event_id}/attendee/{user_id}", response_model=dto.AttendeeEnvelope)
async def update_attendee_endpoint(
	event_id: UUID,
	user_id: UUID,
	payload: dto.AttendeeUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.AttendeeEnvelope:
	try:
		return await _service.update_attendee(auth_user, event_id, user_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/events/{event_id}/invite", response_model=dto.InviteResponse)
async def invite_endpoint(
	event_id: UUID,
	payload: dto.InviteRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.InviteResponse:
	try:
		return await _registrations.invite(auth_user, event_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/events/{event_id}/banner", response_model=dto.ImageUploadResponse)
async def upload_event_banner_endpoint(
	event_id: UUID,
	banner: Optional[UploadFile] = File(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ImageUploadResponse:
	try:
		return await _service.replace_banner(auth_user, event_id, banner)
	except Exception as exc:
		raise to_http_error(exc) from exc
