"""Health and metrics endpoints for operators."""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from app.obs import health
from app.settings import settings

router = APIRouter(tags=["ops"])


def _presented_token(x_admin_token: Optional[str], authorization: Optional[str]) -> str:
	if x_admin_token:
		return x_admin_token
	scheme, _, credential = (authorization or "").partition(" ")
	return credential if scheme.lower() == "bearer" else ""


async def require_ops_token(
	x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
	authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
	if settings.obs_metrics_public:
		return
	expected = settings.obs_admin_token
	# Without a configured token the scrape endpoint stays closed
	presented = _presented_token(x_admin_token, authorization)
	if not expected or not hmac.compare_digest(presented.encode(), expected.encode()):
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="Not authorized to read metrics")


@router.get("/health/live")
async def health_live() -> dict[str, str]:
	return await health.liveness()


@router.get("/health/ready")
async def health_ready() -> JSONResponse:
	status_code, payload = await health.readiness()
	return JSONResponse(content=payload, status_code=status_code)


@router.get("/metrics", dependencies=[Depends(require_ops_token)])
async def prometheus_metrics() -> Response:
	return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
