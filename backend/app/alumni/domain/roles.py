"""Closed role enumeration shared by authentication and authorization."""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
	GUEST = "guest"
	USER = "user"
	ALUMNI = "alumni"
	SCHOOL_ADMIN = "school_admin"
	USOSA_ADMIN = "usosa_admin"
	SUPER_ADMIN = "super_admin"

	@classmethod
	def parse(cls, value: object, default: Role | None = None) -> Role:
		"""Coerce a claim/header value into a role, falling back to ``default`` (or USER)."""
		if isinstance(value, Role):
			return value
		text = str(value or "").strip().lower()
		try:
			return cls(text)
		except ValueError:
			return default or cls.USER


PLATFORM_ADMIN_ROLES = frozenset({Role.USOSA_ADMIN, Role.SUPER_ADMIN})
# Roles allowed to publish events
EVENT_CREATOR_ROLES = frozenset({Role.ALUMNI, Role.SCHOOL_ADMIN, *PLATFORM_ADMIN_ROLES})
# Roles promoted to school_admin when granted school administration
PROMOTABLE_ROLES = frozenset({Role.ALUMNI, Role.USER})
