"""FastAPI application entrypoint for the USOSA alumni API."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.staticfiles import StaticFiles

from app.alumni.api import router as alumni_router
from app.api import ops
from app.api.errors import install_error_handlers
from app.infra import postgres
from app.infra.redis import redis_client
from app.obs import init as obs_init
from app.settings import settings

_DEV_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	try:
		yield
	finally:
		await postgres.close_pool()
		await redis_client.close()


def _cors_origins() -> list[str]:
	origins = [origin for origin in settings.cors_allow_origins if origin]
	# Credentialed CORS cannot use a wildcard origin
	if not origins or "*" in origins:
		return list(_DEV_ORIGINS) if settings.is_dev() else [o for o in origins if o != "*"]
	return origins


def _mount_uploads(app: FastAPI) -> None:
	"""Serve stored logos and banners from disk; production fronts them with a CDN."""
	upload_root = Path(settings.upload_root).resolve()
	upload_root.mkdir(parents=True, exist_ok=True)
	app.mount(settings.upload_base_url, StaticFiles(directory=str(upload_root)), name="uploads")


app = FastAPI(title="USOSA Alumni API", lifespan=lifespan)
install_error_handlers(app)
app.add_middleware(
	CORSMiddleware,
	allow_origins=_cors_origins(),
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)
if settings.is_dev():
	_mount_uploads(app)
obs_init(app)

app.include_router(ops.router)
app.include_router(alumni_router)
