"""Access tokens for alumni members.

Tokens are HS256-signed with ``settings.secret_key`` and carry the member id
(``sub``) together with the role and home school used for authorization.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt
from jwt import InvalidTokenError

from app.settings import settings


ISSUER = "alumni-api"
AUDIENCE = "alumni-web"
_ALGORITHM = "HS256"


@dataclass(slots=True, frozen=True)
class AccessClaims:
	subject: str
	role: Optional[str]
	school_id: Optional[str]
	expires_at: int


def issue_access_token(
	user_id: str,
	*,
	role: str,
	school_id: Optional[str] = None,
	ttl_seconds: Optional[int] = None,
) -> str:
	issued_at = int(time.time())
	lifetime = settings.access_ttl_minutes * 60 if ttl_seconds is None else ttl_seconds
	claims: Dict[str, Any] = {
		"iss": ISSUER,
		"aud": AUDIENCE,
		"sub": str(user_id),
		"role": role,
		"iat": issued_at,
		"exp": issued_at + lifetime,
	}
	if school_id:
		claims["school_id"] = str(school_id)
	return jwt.encode(claims, settings.secret_key, algorithm=_ALGORITHM)


def read_access_token(token: str) -> AccessClaims:
	"""Validate signature, expiry and audience, then return the member claims.

	Raises jwt.InvalidTokenError subclasses on failure.
	"""
	decoded = jwt.decode(
		token,
		settings.secret_key,
		algorithms=[_ALGORITHM],
		audience=AUDIENCE,
		issuer=ISSUER,
		leeway=5,
		options={"require": ["exp", "iat", "iss", "aud", "sub"]},
	)
	subject = str(decoded.get("sub") or "").strip()
	if not subject:
		raise InvalidTokenError("empty subject")
	school_id = decoded.get("school_id")
	return AccessClaims(
		subject=subject,
		role=decoded.get("role"),
		school_id=str(school_id).strip() if school_id else None,
		expires_at=int(decoded["exp"]),
	)
