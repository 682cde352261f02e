"""JSON access and domain logs enriched with the current request context.

Domain services log with ``extra={...}`` (forum ids, event ids, actions); those
fields are copied into the JSON line after member-authored text and contact
details are redacted.
"""

from __future__ import annotations

import json
import logging
import random
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app.settings import settings

_LOGGER_NAME = "alumni"

# Output key -> context variable bound per request
_CONTEXT: Dict[str, ContextVar[Optional[str]]] = {
	"request_id": ContextVar("alumni_request_id", default=None),
	"route": ContextVar("alumni_route", default=None),
	"user_id": ContextVar("alumni_user_id", default=None),
	"ip": ContextVar("alumni_client_ip", default=None),
}

# Post bodies, report reasons and contact details never reach the log sink
_REDACTED = ("token", "secret", "authorization", "password", "email", "phone", "payment_reference", "content", "reason")

_MAX_TEXT = 256
_MAX_ITEMS = 10

# Standard LogRecord attributes; anything else on a record came from ``extra``
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "taskName"}


def bind_context(
	*,
	request_id: Optional[str] = None,
	route: Optional[str] = None,
	user_id: Optional[str] = None,
	client_ip: Optional[str] = None,
) -> Dict[str, Token]:
	"""Bind request fields for log lines emitted while handling it; pass the result to reset_context."""
	values = {"request_id": request_id, "route": route, "user_id": user_id, "ip": client_ip}
	return {key: _CONTEXT[key].set(value) for key, value in values.items() if value is not None}


def reset_context(tokens: Dict[str, Token]) -> None:
	for key, token in tokens.items():
		_CONTEXT[key].reset(token)


def current_request_id() -> Optional[str]:
	return _CONTEXT["request_id"].get()


def _scrub(key: str, value: Any) -> Any:
	if any(marker in key.lower() for marker in _REDACTED):
		return "[redacted]"
	if value is None or isinstance(value, (bool, int, float)):
		return value
	if isinstance(value, str):
		return value[:_MAX_TEXT] + "..." if len(value) > _MAX_TEXT else value
	if isinstance(value, dict):
		items = list(value.items())
		scrubbed = {str(k): _scrub(str(k), v) for k, v in items[:_MAX_ITEMS]}
		if len(items) > _MAX_ITEMS:
			scrubbed["_truncated"] = len(items) - _MAX_ITEMS
		return scrubbed
	if isinstance(value, (list, tuple, set, frozenset)):
		items = list(value)
		scrubbed = [_scrub(key, item) for item in items[:_MAX_ITEMS]]
		if len(items) > _MAX_ITEMS:
			scrubbed.append(f"+{len(items) - _MAX_ITEMS} more")
		return scrubbed
	return str(value)


class JSONLogFormatter(logging.Formatter):
	def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (match logging api)
		line: Dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"logger": record.name,
			"msg": record.getMessage(),
			"service": settings.service_name,
			"env": settings.environment,
			"commit": settings.git_commit,
		}
		line.update({key: var.get() for key, var in _CONTEXT.items() if var.get()})
		if record.exc_info:
			line["exc_info"] = self.formatException(record.exc_info)
		for key, value in vars(record).items():
			if key not in _RESERVED_ATTRS and key not in line:
				line[key] = _scrub(key, value)
		return json.dumps(line, separators=(",", ":"), default=str)


class InfoSamplingFilter(logging.Filter):
	"""Drop a share of INFO lines under load; warnings and errors always pass."""

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO:
			return True
		rate = min(1.0, max(0.0, settings.obs_log_sampling_rate_info))
		return rate >= 1.0 or random.random() < rate


def configure_logging() -> logging.Logger:
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter())
	root = logging.getLogger()
	root.handlers[:] = [handler]
	root.setLevel(settings.obs_log_level)
	return logging.getLogger(_LOGGER_NAME)


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or _LOGGER_NAME)
