"""Infrastructure helpers scoped to the alumni domain."""

from . import rate_limiter, uploads  # noqa: F401

__all__ = [
	"rate_limiter",
	"uploads",
]
