"""Forum API endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from app.alumni.api._errors import to_http_error
from app.alumni.domain.forums_service import ForumsService
from app.alumni.schemas import dto
from app.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["alumni:forums"])
_service = ForumsService()


@router.get("/forums", response_model=dto.ForumListResponse)
async def list_forums_endpoint() -> dto.ForumListResponse:
	try:
		return await _service.list_forums()
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/forums/general", response_model=dto.ForumEnvelope)
async def get_general_forum_endpoint() -> dto.ForumEnvelope:
	try:
		return await _service.get_general_forum()
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/forums/school/{school_id}", response_model=dto.ForumListResponse)
async def list_school_forums_endpoint(school_id: UUID) -> dto.ForumListResponse:
	try:
		return await _service.list_forums_by_school(school_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/forums/{forum_id}", response_model=dto.ForumEnvelope)
async def get_forum_endpoint(forum_id: UUID) -> dto.ForumEnvelope:
	try:
		return await _service.get_forum(forum_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/forums", response_model=dto.ForumEnvelope, status_code=201)
async def create_forum_endpoint(
	payload: dto.ForumCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ForumEnvelope:
	try:
		return await _service.create_forum(auth_user, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/forums/{forum_id}", response_model=dto.ForumEnvelope)
async def update_forum_endpoint(
	forum_id: UUID,
	payload: dto.ForumUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ForumEnvelope:
	try:
		return await _service.update_forum(auth_user, forum_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/forums/moderator/add", response_model=dto.ForumEnvelope)
async def add_moderator_endpoint(
	payload: dto.ModeratorRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ForumEnvelope:
	try:
		return await _service.add_moderator(auth_user, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/forums/moderator/remove", response_model=dto.ForumEnvelope)
async def remove_moderator_endpoint(
	payload: dto.ModeratorRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ForumEnvelope:
	try:
		return await _service.remove_moderator(auth_user, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc
