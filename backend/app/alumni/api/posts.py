"""Forum post API endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.alumni.api._errors import to_http_error
from app.alumni.domain.posts_service import PostsService
from app.alumni.schemas import dto
from app.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["alumni:posts"])
_service = PostsService()


@router.get("/posts/topic/{topic_id}", response_model=dto.PostListResponse)
async def list_posts_endpoint(
	topic_id: UUID,
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=20, ge=1, le=100),
) -> dto.PostListResponse:
	try:
		return await _service.list_posts(topic_id, page=page, limit=limit)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/posts", response_model=dto.PostEnvelope, status_code=201)
async def create_post_endpoint(
	payload: dto.PostCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.PostEnvelope:
	try:
		return await _service.create_post(auth_user, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/posts/{post_id}", response_model=dto.PostEnvelope)
async def update_post_endpoint(
	post_id: UUID,
	payload: dto.PostUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.PostEnvelope:
	try:
		return await _service.update_post(auth_user, post_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.delete("/posts/{post_id}", response_model=dto.MessageResponse)
async def delete_post_endpoint(
	post_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MessageResponse:
	try:
		return await _service.delete_post(auth_user, post_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/posts/{post_id}/like", response_model=dto.LikeResponse)
async def toggle_like_endpoint(
	post_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.LikeResponse:
	try:
		return await _service.toggle_like(auth_user, post_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/posts/{post_id}/report", response_model=dto.ReportEnvelope)
async def report_post_endpoint(
	post_id: UUID,
	payload: dto.ReportRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ReportEnvelope:
	try:
		return await _service.report_post(auth_user, post_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/posts/{post_id}/report/{report_id}/handle", response_model=dto.ReportEnvelope)
async def resolve_report_endpoint(
	post_id: UUID,
	report_id: UUID,
	payload: dto.ReportResolveRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ReportEnvelope:
	try:
		return await _service.resolve_report(auth_user, post_id, report_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc
