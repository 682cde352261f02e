"""Async repository helpers for the alumni domain."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence
from uuid import UUID

import asyncpg

from app.alumni.domain import counters, models
from app.alumni.domain.exceptions import ConflictError, NotFoundError
from app.alumni.domain.policies import EventScope
from app.alumni.domain.roles import Role
from app.infra.postgres import get_pool
from app.infra.soft_delete import cascade_soft_delete, live_clause, soft_delete

# Columns callers may write through the generic update helpers
_SCHOOL_COLUMNS = frozenset(
	{
		"name",
		"short_name",
		"type",
		"gender",
		"location",
		"founded_year",
		"logo",
		"banner",
		"description",
		"website",
		"email",
		"phone_number",
		"address",
		"alumni_count",
		"is_active",
	}
)
_EVENT_COLUMNS = frozenset(
	{
		"title",
		"description",
		"event_type",
		"start_date",
		"end_date",
		"location",
		"organizer_id",
		"school_id",
		"is_school_specific",
		"banner",
		"capacity",
		"registration_required",
		"registration_deadline",
		"fee_amount",
		"fee_currency",
		"agenda",
		"sponsors",
		"status",
		"visibility",
		"updated_by",
	}
)
_FORUM_COLUMNS = frozenset({"name", "description", "is_active"})
_TOPIC_COLUMNS = frozenset({"title", "content", "tags"})
_ATTENDEE_COLUMNS = frozenset({"status", "payment_status", "payment_reference"})
_JSON_COLUMNS = frozenset({"location", "agenda", "sponsors"})

_TOPIC_ORDER = {
	models.TopicSort.LATEST: "is_pinned DESC, last_post_at DESC",
	models.TopicSort.NEWEST: "is_pinned DESC, created_at DESC",
	models.TopicSort.POPULAR: "is_pinned DESC, views DESC, last_post_at DESC",
	models.TopicSort.MOST_REPLIES: "is_pinned DESC, replies DESC, last_post_at DESC",
}


def _db_value(column: str, value: Any) -> Any:
	if column in _JSON_COLUMNS:
		return json.dumps(value, default=str)
	if isinstance(value, UUID):
		return str(value)
	if isinstance(value, Enum):
		return value.value
	return value


def _set_clause(fields: Mapping[str, Any], allowed: frozenset[str], *, offset: int) -> tuple[list[str], list[Any]]:
	"""Build ``col=$n`` fragments for an UPDATE; placeholders start after ``offset``."""
	assignments: list[str] = []
	values: list[Any] = []
	for column, value in fields.items():
		if column not in allowed:
			raise ValueError(f"column not writable: {column}")
		values.append(_db_value(column, value))
		cast = "::jsonb" if column in _JSON_COLUMNS else ""
		assignments.append(f"{column}=${offset + len(values)}{cast}")
	return assignments, values


def _uuid_list(values: Iterable[UUID | str]) -> list[str]:
	return [str(value) for value in values]


class AlumniRepository:
	"""Thin data-access layer around asyncpg.

	Reads of topics and posts skip tombstoned rows unless ``include_deleted`` is
	passed. Methods taking ``conn`` join the caller's transaction when given one.
	"""

	async def _run(self, conn: asyncpg.Connection | None, fetch):
		if conn is not None:
			return await fetch(conn)
		pool = await get_pool()
		async with pool.acquire() as pooled_conn:
			return await fetch(pooled_conn)

	# --- Users --------------------------------------------------------------

	async def get_user(self, user_id: UUID | str, *, conn: asyncpg.Connection | None = None) -> models.User | None:
		async def _fetch(connection: asyncpg.Connection) -> models.User | None:
			record = await connection.fetchrow(
				"SELECT id, first_name, last_name, email, role, school_id FROM app_user WHERE id=$1",
				str(user_id),
			)
			return models.User.model_validate(dict(record)) if record else None
		return await self._run(conn, _fetch)

	async def existing_user_ids(
		self,
		user_ids: Sequence[UUID | str],
		*,
		conn: asyncpg.Connection | None = None,
	) -> set[UUID]:
		async def _fetch(connection: asyncpg.Connection) -> set[UUID]:
			rows = await connection.fetch("SELECT id FROM app_user WHERE id = ANY($1::uuid[])", _uuid_list(user_ids))
			return {UUID(str(row["id"])) for row in rows}
		return await self._run(conn, _fetch)

	async def set_user_role(self, user_id: UUID | str, role: Role, *, conn: asyncpg.Connection) -> None:
		await conn.execute(
			"UPDATE app_user SET role=$2, updated_at=NOW() WHERE id=$1",
			str(user_id),
			role.value,
		)

	# --- Schools ------------------------------------------------------------

	async def list_schools(self, *, region: models.Region | None = None) -> list[models.School]:
		query = "SELECT * FROM school WHERE is_active"
		params: list[Any] = []
		if region is not None:
			params.append(region.value)
			query += " AND location->>'region' = $1"
		query += " ORDER BY name ASC"
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		return [models.School.model_validate(dict(row)) for row in rows]

	async def get_school(
		self,
		school_id: UUID | str,
		*,
		include_inactive: bool = False,
		conn: asyncpg.Connection | None = None,
		for_update: bool = False,
	) -> models.School | None:
		query = "SELECT * FROM school WHERE id=$1"
		if not include_inactive:
			query += " AND is_active"
		if for_update:
			query += " FOR UPDATE"
		async def _fetch(connection: asyncpg.Connection) -> models.School | None:
			record = await connection.fetchrow(query, str(school_id))
			return models.School.model_validate(dict(record)) if record else None
		return await self._run(conn, _fetch)

	async def get_school_by_name(self, name: str, *, conn: asyncpg.Connection | None = None) -> models.School | None:
		async def _fetch(connection: asyncpg.Connection) -> models.School | None:
			record = await connection.fetchrow("SELECT * FROM school WHERE name=$1", name)
			return models.School.model_validate(dict(record)) if record else None
		return await self._run(conn, _fetch)

	async def create_school(self, fields: Mapping[str, Any], *, admin_users: Sequence[UUID | str]) -> models.School:
		columns = [column for column in fields if column in _SCHOOL_COLUMNS]
		values = [_db_value(column, fields[column]) for column in columns]
		placeholders = [
			f"${idx}::jsonb" if column in _JSON_COLUMNS else f"${idx}"
			for idx, column in enumerate(columns, start=1)
		]
		columns.append("admin_users")
		values.append(_uuid_list(admin_users))
		placeholders.append(f"${len(values)}::uuid[]")
		query = "INSERT INTO school ({cols}) VALUES ({vals}) RETURNING *".format(
			cols=", ".join(columns),
			vals=", ".join(placeholders),
		)
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				record = await conn.fetchrow(query, *values)
			except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
				raise ConflictError("School with this name already exists") from exc
		return models.School.model_validate(dict(record))

	async def update_school(
		self,
		school_id: UUID | str,
		fields: Mapping[str, Any],
		*,
		conn: asyncpg.Connection | None = None,
	) -> models.School:
		assignments, values = _set_clause(fields, _SCHOOL_COLUMNS, offset=1)
		assignments.append("updated_at=NOW()")
		query = f"UPDATE school SET {', '.join(assignments)} WHERE id=$1 RETURNING *"
		async def _fetch(connection: asyncpg.Connection) -> models.School:
			try:
				record = await connection.fetchrow(query, str(school_id), *values)
			except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
				raise ConflictError("School with this name already exists") from exc
			if not record:
				raise NotFoundError("School not found")
			return models.School.model_validate(dict(record))
		return await self._run(conn, _fetch)

	async def set_school_admins(
		self,
		school_id: UUID | str,
		admin_users: Sequence[UUID | str],
		*,
		conn: asyncpg.Connection,
	) -> models.School:
		record = await conn.fetchrow(
			"UPDATE school SET admin_users=$2::uuid[], updated_at=NOW() WHERE id=$1 RETURNING *",
			str(school_id),
			_uuid_list(admin_users),
		)
		if not record:
			raise NotFoundError("School not found")
		return models.School.model_validate(dict(record))

	# --- Events -------------------------------------------------------------

	async def list_events(
		self,
		*,
		scope: EventScope,
		event_type: models.EventType | None,
		school_id: UUID | None,
		status: models.EventStatus | None,
		upcoming: bool,
		limit: int,
		offset: int,
	) -> tuple[list[models.Event], int]:
		params: list[Any] = []
		where: list[str] = []
		if status is not None:
			params.append(status.value)
			where.append(f"status=${len(params)}")
		if event_type is not None:
			params.append(event_type.value)
			where.append(f"event_type=${len(params)}")
		if school_id is not None:
			params.append(str(school_id))
			where.append(f"school_id=${len(params)}")
		if upcoming:
			where.append("start_date >= NOW()")
		if not scope.unrestricted:
			params.append([visibility.value for visibility in scope.visibilities])
			visible = f"visibility = ANY(${len(params)}::text[])"
			if scope.school_id:
				params.append(str(scope.school_id))
				visible = f"({visible} OR (visibility='school_alumni_only' AND school_id=${len(params)}))"
			where.append(visible)
		where_sql = " AND ".join(where) if where else "TRUE"
		pool = await get_pool()
		async with pool.acquire() as conn:
			total = await conn.fetchval(f"SELECT COUNT(*) FROM event_entity WHERE {where_sql}", *params)
			rows = await conn.fetch(
				f"""
				SELECT * FROM event_entity
				WHERE {where_sql}
				ORDER BY start_date ASC, id ASC
				LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}
				""",
				*params,
				limit,
				offset,
			)
		return [models.Event.model_validate(dict(row)) for row in rows], int(total or 0)

	async def get_event(
		self,
		event_id: UUID | str,
		*,
		conn: asyncpg.Connection | None = None,
		for_update: bool = False,
	) -> models.Event | None:
		query = "SELECT * FROM event_entity WHERE id=$1"
		if for_update:
			query += " FOR UPDATE"
		async def _fetch(connection: asyncpg.Connection) -> models.Event | None:
			record = await connection.fetchrow(query, str(event_id))
			return models.Event.model_validate(dict(record)) if record else None
		return await self._run(conn, _fetch)

	async def create_event(self, fields: Mapping[str, Any], *, created_by: UUID | str) -> models.Event:
		columns = [column for column in fields if column in _EVENT_COLUMNS]
		values = [_db_value(column, fields[column]) for column in columns]
		placeholders = [
			f"${idx}::jsonb" if column in _JSON_COLUMNS else f"${idx}"
			for idx, column in enumerate(columns, start=1)
		]
		columns.append("created_by")
		values.append(str(created_by))
		placeholders.append(f"${len(values)}")
		query = "INSERT INTO event_entity ({cols}) VALUES ({vals}) RETURNING *".format(
			cols=", ".join(columns),
			vals=", ".join(placeholders),
		)
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(query, *values)
		return models.Event.model_validate(dict(record))

	async def update_event(
		self,
		event_id: UUID | str,
		fields: Mapping[str, Any],
		*,
		conn: asyncpg.Connection | None = None,
	) -> models.Event:
		assignments, values = _set_clause(fields, _EVENT_COLUMNS, offset=1)
		assignments.append("updated_at=NOW()")
		query = f"UPDATE event_entity SET {', '.join(assignments)} WHERE id=$1 RETURNING *"
		async def _fetch(connection: asyncpg.Connection) -> models.Event:
			record = await connection.fetchrow(query, str(event_id), *values)
			if not record:
				raise NotFoundError("Event not found")
			return models.Event.model_validate(dict(record))
		return await self._run(conn, _fetch)

	async def delete_event(self, event_id: UUID | str) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute("DELETE FROM event_entity WHERE id=$1", str(event_id))
		return status.endswith(" 1")

	async def list_attendees(self, event_id: UUID | str, *, conn: asyncpg.Connection | None = None) -> list[models.Attendee]:
		async def _fetch(connection: asyncpg.Connection) -> list[models.Attendee]:
			rows = await connection.fetch(
				"SELECT * FROM event_attendee WHERE event_id=$1 ORDER BY id ASC",
				str(event_id),
			)
			return [models.Attendee.model_validate(dict(row)) for row in rows]
		return await self._run(conn, _fetch)

	async def get_attendee(
		self,
		event_id: UUID | str,
		user_id: UUID | str,
		*,
		conn: asyncpg.Connection | None = None,
	) -> models.Attendee | None:
		async def _fetch(connection: asyncpg.Connection) -> models.Attendee | None:
			record = await connection.fetchrow(
				"SELECT * FROM event_attendee WHERE event_id=$1 AND user_id=$2",
				str(event_id),
				str(user_id),
			)
			return models.Attendee.model_validate(dict(record)) if record else None
		return await self._run(conn, _fetch)

	async def count_attendees(self, event_id: UUID | str, *, conn: asyncpg.Connection) -> int:
		"""Roster size; cancelled entries keep their seat."""
		value = await conn.fetchval(
			"SELECT COUNT(*) FROM event_attendee WHERE event_id=$1",
			str(event_id),
		)
		return int(value or 0)

	async def insert_attendee(
		self,
		event_id: UUID | str,
		user_id: UUID | str,
		*,
		status: models.AttendeeStatus,
		payment_status: models.PaymentStatus,
		conn: asyncpg.Connection,
	) -> models.Attendee:
		record = await conn.fetchrow(
			"""
			INSERT INTO event_attendee (event_id, user_id, status, payment_status)
			VALUES ($1, $2, $3, $4)
			RETURNING *
			""",
			str(event_id),
			str(user_id),
			status.value,
			payment_status.value,
		)
		return models.Attendee.model_validate(dict(record))

	async def add_attendees(
		self,
		event_id: UUID | str,
		user_ids: Sequence[UUID | str],
		*,
		payment_status: models.PaymentStatus,
		conn: asyncpg.Connection,
	) -> list[models.Attendee]:
		"""Insert ``user_ids`` in order, skipping anyone already on the roster."""
		added: list[models.Attendee] = []
		for user_id in user_ids:
			record = await conn.fetchrow(
				"""
				INSERT INTO event_attendee (event_id, user_id, status, payment_status)
				VALUES ($1, $2, 'registered', $3)
				ON CONFLICT (event_id, user_id) DO NOTHING
				RETURNING *
				""",
				str(event_id),
				str(user_id),
				payment_status.value,
			)
			if record:
				added.append(models.Attendee.model_validate(dict(record)))
		return added

	async def update_attendee(
		self,
		event_id: UUID | str,
		user_id: UUID | str,
		fields: Mapping[str, Any],
		*,
		conn: asyncpg.Connection | None = None,
	) -> models.Attendee | None:
		assignments, values = _set_clause(fields, _ATTENDEE_COLUMNS, offset=2)
		if not assignments:
			return await self.get_attendee(event_id, user_id, conn=conn)
		query = f"UPDATE event_attendee SET {', '.join(assignments)} WHERE event_id=$1 AND user_id=$2 RETURNING *"
		async def _fetch(connection: asyncpg.Connection) -> models.Attendee | None:
			record = await connection.fetchrow(query, str(event_id), str(user_id), *values)
			return models.Attendee.model_validate(dict(record)) if record else None
		return await self._run(conn, _fetch)

	# --- Forums -------------------------------------------------------------

	async def list_forums(self, *, school_id: UUID | str | None = None) -> list[models.Forum]:
		query = "SELECT * FROM forum WHERE is_active"
		params: list[Any] = []
		if school_id is not None:
			params.append(str(school_id))
			query += " AND school_id=$1"
		query += " ORDER BY is_general DESC, name ASC"
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		return [models.Forum.model_validate(dict(row)) for row in rows]

	async def get_general_forum(self) -> models.Forum | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM forum WHERE is_active AND is_general ORDER BY created_at ASC LIMIT 1"
			)
		return models.Forum.model_validate(dict(record)) if record else None

	async def get_forum(
		self,
		forum_id: UUID | str,
		*,
		include_inactive: bool = False,
		conn: asyncpg.Connection | None = None,
		for_update: bool = False,
	) -> models.Forum | None:
		query = "SELECT * FROM forum WHERE id=$1"
		if not include_inactive:
			query += " AND is_active"
		if for_update:
			query += " FOR UPDATE"
		async def _fetch(connection: asyncpg.Connection) -> models.Forum | None:
			record = await connection.fetchrow(query, str(forum_id))
			return models.Forum.model_validate(dict(record)) if record else None
		return await self._run(conn, _fetch)

	async def create_forum(
		self,
		*,
		name: str,
		description: str,
		school_id: UUID | str | None,
		moderators: Sequence[UUID | str],
	) -> models.Forum:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				INSERT INTO forum (name, description, school_id, moderators)
				VALUES ($1, $2, $3, $4::uuid[])
				RETURNING *
				""",
				name,
				description,
				str(school_id) if school_id else None,
				_uuid_list(moderators),
			)
		return models.Forum.model_validate(dict(record))

	async def update_forum(
		self,
		forum_id: UUID | str,
		fields: Mapping[str, Any],
		*,
		moderators: Sequence[UUID | str] | None = None,
		conn: asyncpg.Connection | None = None,
	) -> models.Forum:
		assignments, values = _set_clause(fields, _FORUM_COLUMNS, offset=1)
		if moderators is not None:
			values.append(_uuid_list(moderators))
			assignments.append(f"moderators=${len(values) + 1}::uuid[]")
		assignments.append("updated_at=NOW()")
		query = f"UPDATE forum SET {', '.join(assignments)} WHERE id=$1 RETURNING *"
		async def _fetch(connection: asyncpg.Connection) -> models.Forum:
			record = await connection.fetchrow(query, str(forum_id), *values)
			if not record:
				raise NotFoundError("Forum not found")
			return models.Forum.model_validate(dict(record))
		return await self._run(conn, _fetch)

	async def adjust_forum_counters(
		self,
		forum_id: UUID | str,
		*,
		conn: asyncpg.Connection,
		topics_delta: int = 0,
		posts_delta: int = 0,
		touch_activity: bool = True,
	) -> models.Forum:
		record = await conn.fetchrow(
			"""
			UPDATE forum
			SET topics = GREATEST(topics + $2, 0),
				posts = GREATEST(posts + $3, 0),
				last_activity = CASE WHEN $4 THEN NOW() ELSE last_activity END,
				updated_at = NOW()
			WHERE id = $1
			RETURNING *
			""",
			str(forum_id),
			topics_delta,
			posts_delta,
			touch_activity,
		)
		if not record:
			raise NotFoundError("Forum not found")
		return models.Forum.model_validate(dict(record))

	# --- Topics -------------------------------------------------------------

	async def list_topics(
		self,
		forum_id: UUID | str,
		*,
		sort: models.TopicSort,
		limit: int,
		offset: int,
	) -> tuple[list[models.Topic], int]:
		live = live_clause()
		pool = await get_pool()
		async with pool.acquire() as conn:
			total = await conn.fetchval(
				f"SELECT COUNT(*) FROM forum_topic WHERE forum_id=$1 AND {live}",
				str(forum_id),
			)
			rows = await conn.fetch(
				f"""
				SELECT * FROM forum_topic
				WHERE forum_id=$1 AND {live}
				ORDER BY {_TOPIC_ORDER[sort]}
				LIMIT $2 OFFSET $3
				""",
				str(forum_id),
				limit,
				offset,
			)
		return [models.Topic.model_validate(dict(row)) for row in rows], int(total or 0)

	async def get_topic(
		self,
		topic_id: UUID | str,
		*,
		include_deleted: bool = False,
		conn: asyncpg.Connection | None = None,
		for_update: bool = False,
	) -> models.Topic | None:
		query = "SELECT * FROM forum_topic WHERE id=$1"
		if not include_deleted:
			query += f" AND {live_clause()}"
		if for_update:
			query += " FOR UPDATE"
		async def _fetch(connection: asyncpg.Connection) -> models.Topic | None:
			record = await connection.fetchrow(query, str(topic_id))
			return models.Topic.model_validate(dict(record)) if record else None
		return await self._run(conn, _fetch)

	async def increment_topic_views(self, topic_id: UUID | str) -> models.Topic | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				f"UPDATE forum_topic SET views = views + 1 WHERE id=$1 AND {live_clause()} RETURNING *",
				str(topic_id),
			)
		return models.Topic.model_validate(dict(record)) if record else None

	async def create_topic(
		self,
		*,
		forum_id: UUID | str,
		user_id: UUID | str,
		title: str,
		content: str,
		tags: Sequence[str],
		conn: asyncpg.Connection,
	) -> models.Topic:
		record = await conn.fetchrow(
			"""
			INSERT INTO forum_topic (forum_id, user_id, title, content, tags, last_post_at, last_post_user_id)
			VALUES ($1, $2, $3, $4, $5, NOW(), $2)
			RETURNING *
			""",
			str(forum_id),
			str(user_id),
			title,
			content,
			list(tags),
		)
		return models.Topic.model_validate(dict(record))

	async def update_topic(
		self,
		topic_id: UUID | str,
		fields: Mapping[str, Any],
		*,
		conn: asyncpg.Connection | None = None,
	) -> models.Topic:
		assignments, values = _set_clause(fields, _TOPIC_COLUMNS, offset=1)
		assignments.append("updated_at=NOW()")
		query = f"UPDATE forum_topic SET {', '.join(assignments)} WHERE id=$1 AND {live_clause()} RETURNING *"
		async def _fetch(connection: asyncpg.Connection) -> models.Topic:
			record = await connection.fetchrow(query, str(topic_id), *values)
			if not record:
				raise NotFoundError("Topic not found")
			return models.Topic.model_validate(dict(record))
		return await self._run(conn, _fetch)

	async def set_topic_flag(
		self,
		topic_id: UUID | str,
		*,
		flag: str,
		value: bool,
		conn: asyncpg.Connection,
	) -> models.Topic:
		if flag not in ("is_pinned", "is_locked"):
			raise ValueError(f"unknown topic flag: {flag}")
		record = await conn.fetchrow(
			f"UPDATE forum_topic SET {flag}=$2, updated_at=NOW() WHERE id=$1 RETURNING *",
			str(topic_id),
			value,
		)
		if not record:
			raise NotFoundError("Topic not found")
		return models.Topic.model_validate(dict(record))

	async def record_reply_change(
		self,
		topic_id: UUID | str,
		*,
		replies_delta: int,
		last_post: counters.LastPost | None,
		conn: asyncpg.Connection,
	) -> models.Topic:
		"""Apply a replies delta and, when given, move the last-post pointer."""
		if last_post is None:
			record = await conn.fetchrow(
				"""
				UPDATE forum_topic SET replies = GREATEST(replies + $2, 0), updated_at = NOW()
				WHERE id=$1 RETURNING *
				""",
				str(topic_id),
				replies_delta,
			)
		else:
			record = await conn.fetchrow(
				"""
				UPDATE forum_topic
				SET replies = GREATEST(replies + $2, 0),
					last_post_id = $3,
					last_post_at = $4,
					last_post_user_id = $5,
					updated_at = NOW()
				WHERE id=$1
				RETURNING *
				""",
				str(topic_id),
				replies_delta,
				str(last_post.post_id) if last_post.post_id else None,
				last_post.at,
				str(last_post.user_id),
			)
		if not record:
			raise NotFoundError("Topic not found")
		return models.Topic.model_validate(dict(record))

	async def soft_delete_topic(self, topic_id: UUID | str, *, conn: asyncpg.Connection) -> bool:
		return await soft_delete(conn, "forum_topic", "id", str(topic_id))

	async def lock_topic_posts(self, topic_id: UUID | str, *, conn: asyncpg.Connection) -> int:
		"""Row-lock every post of a topic, deleted or not, ahead of the topic row."""
		rows = await conn.fetch(
			"SELECT id FROM forum_post WHERE topic_id=$1 ORDER BY id FOR UPDATE",
			str(topic_id),
		)
		return len(rows)

	async def cascade_delete_topic_posts(self, topic_id: UUID | str, *, conn: asyncpg.Connection) -> int:
		return await cascade_soft_delete(conn, "forum_post", "topic_id", str(topic_id))

	# --- Posts --------------------------------------------------------------

	async def list_posts(
		self,
		topic_id: UUID | str,
		*,
		limit: int,
		offset: int,
	) -> tuple[list[models.Post], int]:
		live = live_clause()
		pool = await get_pool()
		async with pool.acquire() as conn:
			total = await conn.fetchval(
				f"SELECT COUNT(*) FROM forum_post WHERE topic_id=$1 AND {live}",
				str(topic_id),
			)
			rows = await conn.fetch(
				f"""
				SELECT * FROM forum_post
				WHERE topic_id=$1 AND {live}
				ORDER BY created_at ASC, id ASC
				LIMIT $2 OFFSET $3
				""",
				str(topic_id),
				limit,
				offset,
			)
		return [models.Post.model_validate(dict(row)) for row in rows], int(total or 0)

	async def get_post(
		self,
		post_id: UUID | str,
		*,
		include_deleted: bool = False,
		conn: asyncpg.Connection | None = None,
		for_update: bool = False,
	) -> models.Post | None:
		query = "SELECT * FROM forum_post WHERE id=$1"
		if not include_deleted:
			query += f" AND {live_clause()}"
		if for_update:
			query += " FOR UPDATE"
		async def _fetch(connection: asyncpg.Connection) -> models.Post | None:
			record = await connection.fetchrow(query, str(post_id))
			return models.Post.model_validate(dict(record)) if record else None
		return await self._run(conn, _fetch)

	async def create_post(
		self,
		*,
		topic_id: UUID | str,
		user_id: UUID | str,
		content: str,
		parent_post_id: UUID | str | None,
		conn: asyncpg.Connection,
	) -> models.Post:
		record = await conn.fetchrow(
			"""
			INSERT INTO forum_post (topic_id, user_id, content, parent_post_id)
			VALUES ($1, $2, $3, $4)
			RETURNING *
			""",
			str(topic_id),
			str(user_id),
			content,
			str(parent_post_id) if parent_post_id else None,
		)
		return models.Post.model_validate(dict(record))

	async def update_post_content(
		self,
		post_id: UUID | str,
		*,
		content: str,
		conn: asyncpg.Connection | None = None,
	) -> models.Post:
		async def _fetch(connection: asyncpg.Connection) -> models.Post:
			record = await connection.fetchrow(
				f"""
				UPDATE forum_post
				SET content=$2, is_edited=TRUE, edited_at=NOW(), updated_at=NOW()
				WHERE id=$1 AND {live_clause()}
				RETURNING *
				""",
				str(post_id),
				content,
			)
			if not record:
				raise NotFoundError("Post not found")
			return models.Post.model_validate(dict(record))
		return await self._run(conn, _fetch)

	async def soft_delete_post(self, post_id: UUID | str, *, conn: asyncpg.Connection) -> bool:
		return await soft_delete(conn, "forum_post", "id", str(post_id))

	async def list_post_refs(self, topic_id: UUID | str, *, conn: asyncpg.Connection) -> list[counters.PostRef]:
		rows = await conn.fetch(
			f"SELECT id, user_id, created_at FROM forum_post WHERE topic_id=$1 AND {live_clause()}",
			str(topic_id),
		)
		return [
			counters.PostRef(id=UUID(str(row["id"])), user_id=UUID(str(row["user_id"])), created_at=row["created_at"])
			for row in rows
		]

	async def toggle_like(
		self,
		post_id: UUID | str,
		user_id: UUID | str,
		*,
		conn: asyncpg.Connection | None = None,
	) -> tuple[bool, int] | None:
		"""Flip ``user_id`` in the like set atomically; return (liked, like_count)."""
		async def _fetch(connection: asyncpg.Connection) -> tuple[bool, int] | None:
			record = await connection.fetchrow(
				f"""
				UPDATE forum_post
				SET likes = CASE
					WHEN $2::uuid = ANY(likes) THEN array_remove(likes, $2::uuid)
					ELSE array_append(likes, $2::uuid)
				END
				WHERE id=$1 AND {live_clause()}
				RETURNING $2::uuid = ANY(likes) AS liked, cardinality(likes) AS like_count
				""",
				str(post_id),
				str(user_id),
			)
			if not record:
				return None
			return bool(record["liked"]), int(record["like_count"])
		return await self._run(conn, _fetch)

	# --- Reports ------------------------------------------------------------

	async def create_report(self, *, post_id: UUID | str, user_id: UUID | str, reason: str) -> models.Report:
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				record = await conn.fetchrow(
					"""
					INSERT INTO post_report (post_id, user_id, reason)
					VALUES ($1, $2, $3)
					RETURNING *
					""",
					str(post_id),
					str(user_id),
					reason,
				)
			except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
				raise ConflictError("You have already reported this post") from exc
		return models.Report.model_validate(dict(record))

	async def get_report(
		self,
		report_id: UUID | str,
		*,
		conn: asyncpg.Connection | None = None,
		for_update: bool = False,
	) -> models.Report | None:
		query = "SELECT * FROM post_report WHERE id=$1"
		if for_update:
			query += " FOR UPDATE"
		async def _fetch(connection: asyncpg.Connection) -> models.Report | None:
			record = await connection.fetchrow(query, str(report_id))
			return models.Report.model_validate(dict(record)) if record else None
		return await self._run(conn, _fetch)

	async def resolve_report(
		self,
		report_id: UUID | str,
		*,
		status: models.ReportStatus,
		action: models.ReportAction,
		reviewed_by: UUID | str,
		conn: asyncpg.Connection,
	) -> models.Report:
		record = await conn.fetchrow(
			"""
			UPDATE post_report
			SET status=$2, action=$3, reviewed_by=$4, reviewed_at=NOW()
			WHERE id=$1
			RETURNING *
			""",
			str(report_id),
			status.value,
			action.value,
			str(reviewed_by),
		)
		if not record:
			raise NotFoundError("Report not found")
		return models.Report.model_validate(dict(record))
