"""Domain exceptions for the alumni services.

Each carries the HTTP status the API layer answers with and a human readable
message that is returned verbatim in the ``message`` field.
"""

from __future__ import annotations

from fastapi import status


class AlumniError(Exception):
	"""Base class for business-rule violations."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "Request could not be completed"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class NotFoundError(AlumniError):
	"""Referenced entity is absent, inactive or soft-deleted."""

	status_code = status.HTTP_404_NOT_FOUND
	detail = "Resource not found"


class ForbiddenError(AlumniError):
	"""Authorization predicate failed."""

	status_code = status.HTTP_403_FORBIDDEN
	detail = "Not authorized for this action"


class ConflictError(AlumniError):
	"""Business-rule conflict: duplicates, capacity, deadlines, last moderator/admin."""

	status_code = status.HTTP_400_BAD_REQUEST
	detail = "Request conflicts with current state"


class ValidationError(AlumniError):
	"""Missing or invalid input not caught by schema validation."""

	status_code = status.HTTP_400_BAD_REQUEST
	detail = "Invalid request"


class RateLimitedError(AlumniError):
	status_code = status.HTTP_429_TOO_MANY_REQUESTS
	detail = "Too many requests, slow down"

	def __init__(self, detail: str | None = None, *, retry_after: int | None = None) -> None:
		super().__init__(detail)
		self.retry_after = retry_after
