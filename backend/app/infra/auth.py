"""Authentication helpers for FastAPI endpoints.

- Bearer JWTs (HS256, settings.secret_key) carry ``sub``, ``role`` and ``school_id``.
- Dev headers (X-User-Id / X-User-Role / X-School-Id) are only honoured in development.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidTokenError

from app.alumni.domain.roles import PLATFORM_ADMIN_ROLES, Role
from app.infra import jwt as jwt_helper
from app.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	role: Role = Role.USER
	school_id: Optional[str] = None

	def has_role(self, *roles: Role) -> bool:
		return self.role in roles

	@property
	def is_platform_admin(self) -> bool:
		return self.role in PLATFORM_ADMIN_ROLES


_bearer_scheme = HTTPBearer(auto_error=False)


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return an AuthenticatedUser."""
	try:
		claims = jwt_helper.read_access_token(token)
	except InvalidTokenError:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authorized, token failed")
	return AuthenticatedUser(id=claims.subject, role=Role.parse(claims.role), school_id=claims.school_id)


def _from_dev_headers(
	x_user_id: Optional[str],
	x_user_role: Optional[str],
	x_school_id: Optional[str],
) -> Optional[AuthenticatedUser]:
	if not settings.is_dev() or not x_user_id:
		return None
	return AuthenticatedUser(
		id=x_user_id.strip(),
		role=Role.parse(x_user_role),
		school_id=x_school_id.strip() if x_school_id else None,
	)


async def get_optional_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_role: Optional[str] = Header(default=None, alias="X-User-Role"),
	x_school_id: Optional[str] = Header(default=None, alias="X-School-Id"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[AuthenticatedUser]:
	"""Resolve the caller when credentials are presented; anonymous reads get None."""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)
	return _from_dev_headers(x_user_id, x_user_role, x_school_id)


async def get_current_user(
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> AuthenticatedUser:
	"""Resolve the authenticated user or fail with 401."""
	if user is None:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authorized, no token")
	return user


def require_roles(*required: Role):
	"""Return a dependency that enforces the presence of any of the given roles.

	Usage:
		@router.post("/schools", dependencies=[Depends(require_roles(Role.SUPER_ADMIN))])
	"""
	required_set = frozenset(required)

	async def _dep(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
		if not required_set or user.role in required_set:
			return user
		raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized for this action")

	return _dep
