"""Observability wiring for the alumni API."""

from __future__ import annotations

from fastapi import FastAPI

from app.obs import logging as obs_logging
from app.obs.middleware import RequestContextMiddleware
from app.settings import settings


def init(app: FastAPI) -> None:
	"""Install request tagging; JSON logging only when observability is enabled."""
	if getattr(app.state, "obs_installed", False):
		return
	if settings.obs_enabled:
		obs_logging.configure_logging()
	app.add_middleware(RequestContextMiddleware)
	app.state.obs_installed = True


__all__ = ["init"]
