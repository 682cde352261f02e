"""School directory API endpoints."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, UploadFile

from app.alumni.api._errors import to_http_error
from app.alumni.domain.models import Region
from app.alumni.domain.schools_service import SchoolsService
from app.alumni.schemas import dto
from app.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["alumni:schools"])
_service = SchoolsService()


@router.get("/schools", response_model=dto.SchoolListResponse)
async def list_schools_endpoint() -> dto.SchoolListResponse:
	try:
		return await _service.list_schools()
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/schools/region/{region}", response_model=dto.SchoolListResponse)
async def list_schools_by_region_endpoint(region: Region) -> dto.SchoolListResponse:
	try:
		return await _service.list_schools(region=region)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/schools/{school_id}", response_model=dto.SchoolEnvelope)
async def get_school_endpoint(school_id: UUID) -> dto.SchoolEnvelope:
	try:
		return await _service.get_school(school_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/schools", response_model=dto.SchoolEnvelope, status_code=201)
async def create_school_endpoint(
	payload: dto.SchoolCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.SchoolEnvelope:
	try:
		return await _service.create_school(auth_user, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/schools/{school_id}", response_model=dto.SchoolEnvelope)
async def update_school_endpoint(
	school_id: UUID,
	payload: dto.SchoolUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.SchoolEnvelope:
	try:
		return await _service.update_school(auth_user, school_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.delete("/schools/{school_id}", response_model=dto.MessageResponse)
async def deactivate_school_endpoint(
	school_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MessageResponse:
	try:
		return await _service.deactivate_school(auth_user, school_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/schools/admin/add", response_model=dto.SchoolEnvelope)
async def add_school_admin_endpoint(
	payload: dto.SchoolAdminRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.SchoolEnvelope:
	try:
		return await _service.add_school_admin(auth_user, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/schools/admin/remove", response_model=dto.SchoolEnvelope)
async def remove_school_admin_endpoint(
	payload: dto.SchoolAdminRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.SchoolEnvelope:
	try:
		return await _service.remove_school_admin(auth_user, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/schools/{school_id}/logo", response_model=dto.ImageUploadResponse)
async def upload_school_logo_endpoint(
	school_id: UUID,
	logo: Optional[UploadFile] = File(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ImageUploadResponse:
	try:
		return await _service.replace_image(auth_user, school_id, kind="logo", upload=logo)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/schools/{school_id}/banner", response_model=dto.ImageUploadResponse)
async def upload_school_banner_endpoint(
	school_id: UUID,
	banner: Optional[UploadFile] = File(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ImageUploadResponse:
	try:
		return await _service.replace_image(auth_user, school_id, kind="banner", upload=banner)
	except Exception as exc:
		raise to_http_error(exc) from exc
