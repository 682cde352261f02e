"""Loaders that pair a resource with the AccessContext used to authorize it."""

from __future__ import annotations

from typing import Iterable, Optional
from uuid import UUID

import asyncpg

from app.alumni.domain import models
from app.alumni.domain.exceptions import NotFoundError
from app.alumni.domain.policies import AccessContext
from app.alumni.domain.repo import AlumniRepository
from app.infra.auth import AuthenticatedUser


async def _school_of(
	repo: AlumniRepository,
	school_id: Optional[UUID],
	*,
	conn: asyncpg.Connection | None,
) -> Optional[models.School]:
	if school_id is None:
		return None
	return await repo.get_school(school_id, include_inactive=True, conn=conn)


async def load_school_access(
	repo: AlumniRepository,
	actor: AuthenticatedUser,
	school_id: UUID | str,
	*,
	conn: asyncpg.Connection | None = None,
	for_update: bool = False,
) -> tuple[models.School, AccessContext]:
	school = await repo.get_school(school_id, include_inactive=True, conn=conn, for_update=for_update)
	if school is None:
		raise NotFoundError("School not found")
	return school, AccessContext.for_school(actor, school)


async def load_forum_access(
	repo: AlumniRepository,
	actor: AuthenticatedUser,
	forum_id: UUID | str,
	*,
	owners: Iterable[UUID | str | None] = (),
	include_inactive: bool = True,
	conn: asyncpg.Connection | None = None,
	for_update: bool = False,
) -> tuple[models.Forum, AccessContext]:
	forum = await repo.get_forum(forum_id, include_inactive=include_inactive, conn=conn, for_update=for_update)
	if forum is None:
		raise NotFoundError("Forum not found")
	school = await _school_of(repo, forum.school_id, conn=conn)
	return forum, AccessContext.for_forum(actor, forum, school, owners=owners)


async def load_event_access(
	repo: AlumniRepository,
	actor: AuthenticatedUser,
	event_id: UUID | str,
	*,
	owners: Iterable[UUID | str | None] | None = None,
	conn: asyncpg.Connection | None = None,
	for_update: bool = False,
) -> tuple[models.Event, AccessContext]:
	event = await repo.get_event(event_id, conn=conn, for_update=for_update)
	if event is None:
		raise NotFoundError("Event not found")
	school = await _school_of(repo, event.school_id, conn=conn)
	return event, AccessContext.for_event(actor, event, school, owners=owners)
