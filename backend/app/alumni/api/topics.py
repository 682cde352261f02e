"""Forum topic API endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.alumni.api._errors import to_http_error
from app.alumni.domain.models import TopicSort
from app.alumni.domain.topics_service import TopicsService
from app.alumni.schemas import dto
from app.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["alumni:topics"])
_service = TopicsService()


@router.get("/topics/forum/{forum_id}", response_model=dto.TopicListResponse)
async def list_topics_endpoint(
	forum_id: UUID,
	sort: TopicSort = TopicSort.LATEST,
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=20, ge=1, le=100),
) -> dto.TopicListResponse:
	try:
		return await _service.list_topics(forum_id, sort=sort, page=page, limit=limit)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/topics/{topic_id}", response_model=dto.TopicEnvelope)
async def get_topic_endpoint(topic_id: UUID) -> dto.TopicEnvelope:
	try:
		return await _service.get_topic(topic_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/topics", response_model=dto.TopicEnvelope, status_code=201)
async def create_topic_endpoint(
	payload: dto.TopicCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.TopicEnvelope:
	try:
		return await _service.create_topic(auth_user, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/topics/{topic_id}", response_model=dto.TopicEnvelope)
async def update_topic_endpoint(
	topic_id: UUID,
	payload: dto.TopicUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.TopicEnvelope:
	try:
		return await _service.update_topic(auth_user, topic_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.delete("/topics/{topic_id}", response_model=dto.MessageResponse)
async def delete_topic_endpoint(
	topic_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MessageResponse:
	try:
		return await _service.delete_topic(auth_user, topic_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/topics/{topic_id}/pin", response_model=dto.TopicEnvelope)
async def toggle_pin_endpoint(
	topic_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.TopicEnvelope:
	try:
		return await _service.toggle_pin(auth_user, topic_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/topics/{topic_id}/lock", response_model=dto.TopicEnvelope)
async def toggle_lock_endpoint(
	topic_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.TopicEnvelope:
	try:
		return await _service.toggle_lock(auth_user, topic_id)
	except Exception as exc:
		raise to_http_error(exc) from exc
