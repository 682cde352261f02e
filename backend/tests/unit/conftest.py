"""In-memory stand-ins for the alumni repository and the asyncpg pool."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping
from uuid import UUID, uuid4

import pytest
import pytest_asyncio

from app.alumni.domain import counters, models
from app.alumni.domain.exceptions import ConflictError, NotFoundError
from app.alumni.domain.roles import Role

SERVICE_MODULES = (
	"app.alumni.domain.schools_service",
	"app.alumni.domain.forums_service",
	"app.alumni.domain.topics_service",
	"app.alumni.domain.posts_service",
	"app.alumni.domain.registration_service",
)


class _FakeTransaction:
	async def __aenter__(self):
		return None

	async def __aexit__(self, exc_type, exc, tb):
		return False


class _FakeAcquire:
	def __init__(self, conn):
		self._conn = conn

	async def __aenter__(self):
		return self._conn

	async def __aexit__(self, exc_type, exc, tb):
		return False


class _FakeConnection:
	def transaction(self):
		return _FakeTransaction()


class _FakePool:
	def __init__(self, conn):
		self._conn = conn

	def acquire(self):
		return _FakeAcquire(self._conn)


def _floor(value: int) -> int:
	return max(value, 0)


def _uuid(value: UUID | str) -> UUID:
	return value if isinstance(value, UUID) else UUID(str(value))


class FakeAlumniRepository:
	"""Dict-backed repository; every write advances a one-second clock so ordering is stable."""

	def __init__(self) -> None:
		self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)
		self.users: dict[UUID, models.User] = {}
		self.schools: dict[UUID, models.School] = {}
		self.events: dict[UUID, models.Event] = {}
		self.attendees: dict[tuple[UUID, UUID], models.Attendee] = {}
		self.forums: dict[UUID, models.Forum] = {}
		self.topics: dict[UUID, models.Topic] = {}
		self.posts: dict[UUID, models.Post] = {}
		self.reports: dict[UUID, models.Report] = {}
		# (table, id) in the order rows were locked FOR UPDATE
		self.row_locks: list[tuple[str, UUID]] = []

	def now(self) -> datetime:
		self._clock += timedelta(seconds=1)
		return self._clock

	# --- seeding helpers ------------------------------------------------------

	def add_user(self, *, role: Role = Role.ALUMNI, school_id: UUID | None = None) -> models.User:
		user = models.User(id=uuid4(), first_name="Ada", last_name="Obi", role=role, school_id=school_id)
		self.users[user.id] = user
		return user

	def add_school(self, *, name: str = "Kings College Lagos", admins: Iterable[UUID] = ()) -> models.School:
		now = self.now()
		school = models.School(
			id=uuid4(),
			name=name,
			type=models.SchoolType.KINGS_COLLEGE,
			gender=models.Gender.MALE,
			location=models.SchoolLocation(city="Lagos", state="Lagos", region=models.Region.SOUTH_WEST),
			admin_users=list(admins),
			created_at=now,
			updated_at=now,
		)
		self.schools[school.id] = school
		return school

	def add_forum(
		self,
		*,
		moderators: Iterable[UUID] = (),
		school_id: UUID | None = None,
		is_active: bool = True,
	) -> models.Forum:
		now = self.now()
		forum = models.Forum(
			id=uuid4(),
			name="Class of 1999",
			description="Catch up with classmates",
			school_id=school_id,
			is_general=school_id is None,
			moderators=list(moderators),
			last_activity=now,
			is_active=is_active,
			created_at=now,
			updated_at=now,
		)
		self.forums[forum.id] = forum
		return forum

	def add_event(self, *, organizer_id: UUID, **overrides: Any) -> models.Event:
		now = self.now()
		fields: dict[str, Any] = {
			"id": uuid4(),
			"title": "Homecoming",
			"description": "Annual reunion",
			"event_type": models.EventType.REUNION,
			"start_date": datetime.now(timezone.utc) + timedelta(days=30),
			"end_date": datetime.now(timezone.utc) + timedelta(days=30, hours=4),
			"location": models.EventLocation(venue="School Hall", city="Lagos"),
			"organizer_id": organizer_id,
			"status": models.EventStatus.PUBLISHED,
			"visibility": models.Visibility.PUBLIC,
			"created_by": organizer_id,
			"created_at": now,
			"updated_at": now,
		}
		fields.update(overrides)
		event = models.Event(**fields)
		self.events[event.id] = event
		return event

	# --- users ----------------------------------------------------------------

	async def get_user(self, user_id, *, conn=None):
		return self.users.get(_uuid(user_id))

	async def existing_user_ids(self, user_ids, *, conn=None):
		return {_uuid(value) for value in user_ids if _uuid(value) in self.users}

	async def set_user_role(self, user_id, role, *, conn):
		user = self.users[_uuid(user_id)]
		self.users[user.id] = user.model_copy(update={"role": role})

	# --- schools --------------------------------------------------------------

	async def list_schools(self, *, region=None):
		schools = [school for school in self.schools.values() if school.is_active]
		if region is not None:
			schools = [school for school in schools if school.location.region == region]
		return sorted(schools, key=lambda school: school.name)

	async def get_school(self, school_id, *, include_inactive=False, conn=None, for_update=False):
		school = self.schools.get(_uuid(school_id))
		if school is None or (not include_inactive and not school.is_active):
			return None
		return school

	async def get_school_by_name(self, name, *, conn=None):
		for school in self.schools.values():
			if school.name == name:
				return school
		return None

	async def create_school(self, fields: Mapping[str, Any], *, admin_users):
		now = self.now()
		school = models.School.model_validate(
			{**fields, "id": uuid4(), "admin_users": list(admin_users), "created_at": now, "updated_at": now}
		)
		self.schools[school.id] = school
		return school

	async def update_school(self, school_id, fields, *, conn=None):
		school = self.schools.get(_uuid(school_id))
		if school is None:
			raise NotFoundError("School not found")
		data = school.model_dump()
		data.update(fields)
		data["updated_at"] = self.now()
		school = models.School.model_validate(data)
		self.schools[school.id] = school
		return school

	async def set_school_admins(self, school_id, admin_users, *, conn):
		return await self.update_school(school_id, {"admin_users": [_uuid(value) for value in admin_users]})

	# --- events ---------------------------------------------------------------

	async def list_events(self, *, scope, event_type, school_id, status, upcoming, limit, offset):
		now = datetime.now(timezone.utc)
		matches = []
		for event in self.events.values():
			if status is not None and event.status != status:
				continue
			if event_type is not None and event.event_type != event_type:
				continue
			if school_id is not None and event.school_id != _uuid(school_id):
				continue
			if upcoming and event.start_date < now:
				continue
			if not scope.unrestricted:
				same_school = (
					scope.school_id is not None
					and event.visibility == models.Visibility.SCHOOL_ALUMNI_ONLY
					and str(event.school_id) == str(scope.school_id)
				)
				if event.visibility not in scope.visibilities and not same_school:
					continue
			matches.append(event)
		matches.sort(key=lambda event: (event.start_date, str(event.id)))
		return matches[offset : offset + limit], len(matches)

	async def get_event(self, event_id, *, conn=None, for_update=False):
		return self.events.get(_uuid(event_id))

	async def create_event(self, fields, *, created_by):
		now = self.now()
		event = models.Event.model_validate(
			{**fields, "id": uuid4(), "created_by": created_by, "created_at": now, "updated_at": now}
		)
		self.events[event.id] = event
		return event

	async def update_event(self, event_id, fields, *, conn=None):
		event = self.events.get(_uuid(event_id))
		if event is None:
			raise NotFoundError("Event not found")
		data = event.model_dump()
		data.update(fields)
		data["updated_at"] = self.now()
		event = models.Event.model_validate(data)
		self.events[event.id] = event
		return event

	async def delete_event(self, event_id):
		event_id = _uuid(event_id)
		if self.events.pop(event_id, None) is None:
			return False
		for key in [key for key in self.attendees if key[0] == event_id]:
			del self.attendees[key]
		return True

	async def list_attendees(self, event_id, *, conn=None):
		event_id = _uuid(event_id)
		return [attendee for key, attendee in self.attendees.items() if key[0] == event_id]

	async def get_attendee(self, event_id, user_id, *, conn=None):
		return self.attendees.get((_uuid(event_id), _uuid(user_id)))

	async def count_attendees(self, event_id, *, conn):
		return len(await self.list_attendees(event_id))

	async def insert_attendee(self, event_id, user_id, *, status, payment_status, conn):
		assert (_uuid(event_id), _uuid(user_id)) not in self.attendees, "duplicate roster entry"
		attendee = models.Attendee(
			event_id=_uuid(event_id),
			user_id=_uuid(user_id),
			registered_at=self.now(),
			status=status,
			payment_status=payment_status,
		)
		self.attendees[(attendee.event_id, attendee.user_id)] = attendee
		return attendee

	async def add_attendees(self, event_id, user_ids, *, payment_status, conn):
		added = []
		for user_id in user_ids:
			key = (_uuid(event_id), _uuid(user_id))
			if key in self.attendees:
				continue
			attendee = models.Attendee(
				event_id=key[0],
				user_id=key[1],
				registered_at=self.now(),
				payment_status=payment_status,
			)
			self.attendees[key] = attendee
			added.append(attendee)
		return added

	async def update_attendee(self, event_id, user_id, fields, *, conn=None):
		key = (_uuid(event_id), _uuid(user_id))
		attendee = self.attendees.get(key)
		if attendee is None:
			return None
		attendee = attendee.model_copy(update=dict(fields))
		self.attendees[key] = attendee
		return attendee

	# --- forums ---------------------------------------------------------------

	async def list_forums(self, *, school_id=None):
		forums = [forum for forum in self.forums.values() if forum.is_active]
		if school_id is not None:
			forums = [forum for forum in forums if forum.school_id == _uuid(school_id)]
		return forums

	async def get_general_forum(self):
		for forum in self.forums.values():
			if forum.is_general and forum.is_active:
				return forum
		return None

	async def get_forum(self, forum_id, *, include_inactive=False, conn=None, for_update=False):
		if for_update:
			self.row_locks.append(("forum", _uuid(forum_id)))
		forum = self.forums.get(_uuid(forum_id))
		if forum is None or (not include_inactive and not forum.is_active):
			return None
		return forum

	async def create_forum(self, *, name, description, school_id, moderators):
		now = self.now()
		forum = models.Forum(
			id=uuid4(),
			name=name,
			description=description,
			school_id=school_id,
			is_general=school_id is None,
			moderators=[_uuid(value) for value in moderators],
			last_activity=now,
			created_at=now,
			updated_at=now,
		)
		self.forums[forum.id] = forum
		return forum

	async def update_forum(self, forum_id, fields, *, moderators=None, conn=None):
		forum = self.forums.get(_uuid(forum_id))
		if forum is None:
			raise NotFoundError("Forum not found")
		update = dict(fields)
		if moderators is not None:
			update["moderators"] = [_uuid(value) for value in moderators]
		update["updated_at"] = self.now()
		forum = forum.model_copy(update=update)
		self.forums[forum.id] = forum
		return forum

	async def adjust_forum_counters(self, forum_id, *, conn, topics_delta=0, posts_delta=0, touch_activity=True):
		forum = self.forums[_uuid(forum_id)]
		update: dict[str, Any] = {
			"topics": _floor(forum.topics + topics_delta),
			"posts": _floor(forum.posts + posts_delta),
		}
		if touch_activity:
			update["last_activity"] = self.now()
		forum = forum.model_copy(update=update)
		self.forums[forum.id] = forum
		return forum

	# --- topics ---------------------------------------------------------------

	async def list_topics(self, forum_id, *, sort, limit, offset):
		live = [
			topic for topic in self.topics.values() if topic.forum_id == _uuid(forum_id) and not topic.is_deleted
		]
		if sort == models.TopicSort.POPULAR:
			live.sort(key=lambda topic: topic.views, reverse=True)
		elif sort == models.TopicSort.MOST_REPLIES:
			live.sort(key=lambda topic: topic.replies, reverse=True)
		elif sort == models.TopicSort.NEWEST:
			live.sort(key=lambda topic: topic.created_at, reverse=True)
		else:
			live.sort(key=lambda topic: topic.last_post_at, reverse=True)
		live.sort(key=lambda topic: topic.is_pinned, reverse=True)
		return live[offset : offset + limit], len(live)

	async def get_topic(self, topic_id, *, include_deleted=False, conn=None, for_update=False):
		if for_update:
			self.row_locks.append(("topic", _uuid(topic_id)))
		topic = self.topics.get(_uuid(topic_id))
		if topic is None or (topic.is_deleted and not include_deleted):
			return None
		return topic

	async def increment_topic_views(self, topic_id):
		topic = await self.get_topic(topic_id)
		if topic is None:
			return None
		topic = topic.model_copy(update={"views": topic.views + 1})
		self.topics[topic.id] = topic
		return topic

	async def create_topic(self, *, forum_id, user_id, title, content, tags, conn):
		now = self.now()
		topic = models.Topic(
			id=uuid4(),
			forum_id=_uuid(forum_id),
			user_id=_uuid(user_id),
			title=title,
			content=content,
			tags=list(tags),
			last_post_at=now,
			last_post_user_id=_uuid(user_id),
			created_at=now,
			updated_at=now,
		)
		self.topics[topic.id] = topic
		return topic

	def _replace_topic(self, topic_id, **update):
		topic = self.topics[_uuid(topic_id)].model_copy(update=update)
		self.topics[topic.id] = topic
		return topic

	async def update_topic(self, topic_id, fields, *, conn=None):
		return self._replace_topic(topic_id, updated_at=self.now(), **fields)

	async def set_topic_flag(self, topic_id, *, flag, value, conn):
		return self._replace_topic(topic_id, **{flag: value})

	async def record_reply_change(self, topic_id, *, replies_delta, last_post, conn):
		topic = self.topics[_uuid(topic_id)]
		update: dict[str, Any] = {"replies": _floor(topic.replies + replies_delta)}
		if last_post is not None:
			update.update(
				last_post_id=last_post.post_id,
				last_post_at=last_post.at,
				last_post_user_id=last_post.user_id,
			)
		return self._replace_topic(topic_id, **update)

	async def soft_delete_topic(self, topic_id, *, conn):
		topic = self.topics.get(_uuid(topic_id))
		if topic is None or topic.is_deleted:
			return False
		self._replace_topic(topic_id, deleted_at=self.now())
		return True

	async def lock_topic_posts(self, topic_id, *, conn):
		locked = [post.id for post in self.posts.values() if post.topic_id == _uuid(topic_id)]
		self.row_locks.extend(("post", post_id) for post_id in sorted(locked, key=str))
		return len(locked)

	async def cascade_delete_topic_posts(self, topic_id, *, conn):
		removed = 0
		for post in list(self.posts.values()):
			if post.topic_id == _uuid(topic_id) and not post.is_deleted:
				self.posts[post.id] = post.model_copy(update={"deleted_at": self.now()})
				removed += 1
		return removed

	# --- posts ----------------------------------------------------------------

	async def list_posts(self, topic_id, *, limit, offset):
		live = [post for post in self.posts.values() if post.topic_id == _uuid(topic_id) and not post.is_deleted]
		live.sort(key=lambda post: (post.created_at, str(post.id)))
		return live[offset : offset + limit], len(live)

	async def get_post(self, post_id, *, include_deleted=False, conn=None, for_update=False):
		if for_update:
			self.row_locks.append(("post", _uuid(post_id)))
		post = self.posts.get(_uuid(post_id))
		if post is None or (post.is_deleted and not include_deleted):
			return None
		return post

	async def create_post(self, *, topic_id, user_id, content, parent_post_id, conn):
		now = self.now()
		post = models.Post(
			id=uuid4(),
			topic_id=_uuid(topic_id),
			user_id=_uuid(user_id),
			content=content,
			parent_post_id=_uuid(parent_post_id) if parent_post_id else None,
			created_at=now,
			updated_at=now,
		)
		self.posts[post.id] = post
		return post

	async def update_post_content(self, post_id, *, content, conn=None):
		post = await self.get_post(post_id)
		if post is None:
			raise NotFoundError("Post not found")
		now = self.now()
		post = post.model_copy(update={"content": content, "is_edited": True, "edited_at": now, "updated_at": now})
		self.posts[post.id] = post
		return post

	async def soft_delete_post(self, post_id, *, conn):
		post = await self.get_post(post_id)
		if post is None:
			return False
		self.posts[post.id] = post.model_copy(update={"deleted_at": self.now()})
		return True

	async def list_post_refs(self, topic_id, *, conn):
		return [
			counters.PostRef(id=post.id, user_id=post.user_id, created_at=post.created_at, deleted=post.is_deleted)
			for post in self.posts.values()
			if post.topic_id == _uuid(topic_id) and not post.is_deleted
		]

	async def toggle_like(self, post_id, user_id, *, conn=None):
		post = await self.get_post(post_id)
		if post is None:
			return None
		user_id = _uuid(user_id)
		liked = user_id not in post.likes
		likes = [*post.likes, user_id] if liked else [value for value in post.likes if value != user_id]
		self.posts[post.id] = post.model_copy(update={"likes": likes})
		return liked, len(likes)

	# --- reports --------------------------------------------------------------

	async def create_report(self, *, post_id, user_id, reason):
		for report in self.reports.values():
			if report.post_id == _uuid(post_id) and report.user_id == _uuid(user_id):
				raise ConflictError("You have already reported this post")
		report = models.Report(
			id=uuid4(),
			post_id=_uuid(post_id),
			user_id=_uuid(user_id),
			reason=reason,
			created_at=self.now(),
		)
		self.reports[report.id] = report
		return report

	async def get_report(self, report_id, *, conn=None, for_update=False):
		return self.reports.get(_uuid(report_id))

	async def resolve_report(self, report_id, *, status, action, reviewed_by, conn):
		report = self.reports[_uuid(report_id)].model_copy(
			update={
				"status": status,
				"action": action,
				"reviewed_by": _uuid(reviewed_by),
				"reviewed_at": self.now(),
			}
		)
		self.reports[report.id] = report
		return report


@pytest.fixture
def alumni_repo() -> FakeAlumniRepository:
	return FakeAlumniRepository()


@pytest_asyncio.fixture
async def fake_pool(monkeypatch):
	connection = _FakeConnection()
	pool = _FakePool(connection)

	async def _get_pool():
		return pool

	for module in SERVICE_MODULES:
		monkeypatch.setattr(f"{module}.get_pool", _get_pool)
	return pool
