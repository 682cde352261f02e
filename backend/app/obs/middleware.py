"""Request middleware: request ids, Prometheus timings and access logs."""

from __future__ import annotations

import time
from typing import Optional
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from app.api.request_id import REQUEST_ID_ATTR
from app.obs import logging as obs_logging
from app.obs import metrics
from app.settings import settings

REQUEST_ID_HEADER = "X-Request-Id"


def _route_template(request: Request) -> str:
	route = request.scope.get("route")
	return getattr(route, "path", None) or request.url.path


class RequestContextMiddleware(BaseHTTPMiddleware):
	"""Tag each request with an id; time and log it when observability is on."""

	def __init__(self, app) -> None:
		super().__init__(app)
		self._logger = obs_logging.get_logger("alumni.http")

	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
		setattr(request.state, REQUEST_ID_ATTR, request_id)
		if settings.obs_enabled:
			response = await self._observed(request, call_next, request_id)
		else:
			response = await call_next(request)
		response.headers.setdefault(REQUEST_ID_HEADER, request_id)
		return response

	async def _observed(self, request: Request, call_next: RequestResponseEndpoint, request_id: str) -> Response:
		client = request.client
		tokens = obs_logging.bind_context(
			request_id=request_id,
			route=request.url.path,
			user_id=request.headers.get("X-User-Id"),
			client_ip=client.host if client else None,
		)
		started = time.perf_counter()
		response: Optional[Response] = None
		try:
			response = await call_next(request)
			return response
		except Exception:
			self._logger.exception("http_request_error", extra={"method": request.method})
			raise
		finally:
			elapsed = time.perf_counter() - started
			status_code = response.status_code if response is not None else 500
			# Templates such as /api/v1/events/{event_id} only exist after routing
			template = _route_template(request)
			metrics.observe_request(template, request.method, status_code, elapsed)
			self._logger.info(
				"http_request",
				extra={
					"status": status_code,
					"method": request.method,
					"latency_ms": round(elapsed * 1000, 3),
					"route": template,
				},
			)
			obs_logging.reset_context(tokens)
