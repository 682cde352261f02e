"""Domain models for schools, events and the discussion forums."""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.alumni.domain.roles import Role


def _decode_json(value: Any) -> Any:
	# asyncpg hands JSONB back as text unless a codec is registered
	if isinstance(value, (str, bytes)):
		return json.loads(value)
	return value


class SchoolType(str, Enum):
	FEDERAL_GOVERNMENT_COLLEGE = "Federal Government College"
	FEDERAL_GOVERNMENT_GIRLS_COLLEGE = "Federal Government Girls College"
	KINGS_COLLEGE = "Kings College"
	QUEENS_COLLEGE = "Queens College"
	FEDERAL_SCIENCE_COLLEGE = "Federal Science College"
	OTHER = "Other"


class Gender(str, Enum):
	MALE = "Male"
	FEMALE = "Female"
	MIXED = "Mixed"


class Region(str, Enum):
	NORTH_EAST = "North East"
	NORTH_CENTRAL = "North Central"
	NORTH_WEST = "North West"
	SOUTH_WEST = "South West"
	SOUTH_EAST = "South East"
	SOUTH_SOUTH = "South South"


class EventType(str, Enum):
	REUNION = "Reunion"
	SEMINAR = "Seminar"
	WORKSHOP = "Workshop"
	CONFERENCE = "Conference"
	NETWORKING = "Networking"
	SOCIAL = "Social"
	OTHER = "Other"


class EventStatus(str, Enum):
	DRAFT = "draft"
	PUBLISHED = "published"
	CANCELLED = "cancelled"
	COMPLETED = "completed"


class Visibility(str, Enum):
	PUBLIC = "public"
	ALUMNI_ONLY = "alumni_only"
	SCHOOL_ALUMNI_ONLY = "school_alumni_only"
	INVITE_ONLY = "invite_only"


class AttendeeStatus(str, Enum):
	REGISTERED = "registered"
	CONFIRMED = "confirmed"
	ATTENDED = "attended"
	CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
	NOT_APPLICABLE = "not_applicable"
	PENDING = "pending"
	COMPLETED = "completed"
	FAILED = "failed"


class ReportStatus(str, Enum):
	PENDING = "pending"
	REVIEWED = "reviewed"
	DISMISSED = "dismissed"


class ReportAction(str, Enum):
	DISMISS = "dismiss"
	DELETE_POST = "delete_post"


class TopicSort(str, Enum):
	LATEST = "latest"
	NEWEST = "newest"
	POPULAR = "popular"
	MOST_REPLIES = "most_replies"


class Coordinates(BaseModel):
	latitude: Optional[float] = None
	longitude: Optional[float] = None


class SchoolLocation(BaseModel):
	city: str
	state: str
	region: Region
	country: str = "Nigeria"
	coordinates: Optional[Coordinates] = None


class School(BaseModel):
	id: UUID
	name: str
	short_name: Optional[str] = None
	type: SchoolType
	gender: Gender
	location: SchoolLocation
	founded_year: Optional[int] = None
	logo: Optional[str] = None
	banner: Optional[str] = None
	description: Optional[str] = None
	website: Optional[str] = None
	email: Optional[str] = None
	phone_number: Optional[str] = None
	address: Optional[str] = None
	admin_users: list[UUID] = Field(default_factory=list)
	alumni_count: int = 0
	is_active: bool = True
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)

	@field_validator("location", mode="before")
	@classmethod
	def _decode_location(cls, value: Any) -> Any:
		return _decode_json(value)

	def has_admin(self, user_id: UUID | str) -> bool:
		return str(user_id) in {str(admin) for admin in self.admin_users}


class User(BaseModel):
	"""Reference projection of an account; only what authorization needs."""

	id: UUID
	first_name: str = ""
	last_name: str = ""
	email: Optional[str] = None
	role: Role = Role.USER
	school_id: Optional[UUID] = None

	model_config = ConfigDict(from_attributes=True)


class EventLocation(BaseModel):
	venue: str
	address: Optional[str] = None
	city: Optional[str] = None
	state: Optional[str] = None
	country: str = "Nigeria"
	coordinates: Optional[Coordinates] = None
	is_virtual: bool = False
	virtual_link: Optional[str] = None


class AgendaItem(BaseModel):
	time: str
	title: str
	description: Optional[str] = None
	speaker: Optional[str] = None


class Sponsor(BaseModel):
	name: str
	logo: Optional[str] = None
	website: Optional[str] = None


class RegistrationFee(BaseModel):
	amount: float = 0
	currency: str = "NGN"


class Event(BaseModel):
	id: UUID
	title: str
	description: str
	event_type: EventType
	start_date: datetime
	end_date: datetime
	location: EventLocation
	organizer_id: UUID
	school_id: Optional[UUID] = None
	is_school_specific: bool = False
	banner: Optional[str] = None
	capacity: Optional[int] = None
	registration_required: bool = True
	registration_deadline: Optional[datetime] = None
	fee_amount: float = 0
	fee_currency: str = "NGN"
	agenda: list[AgendaItem] = Field(default_factory=list)
	sponsors: list[Sponsor] = Field(default_factory=list)
	status: EventStatus = EventStatus.DRAFT
	visibility: Visibility = Visibility.ALUMNI_ONLY
	created_by: UUID
	updated_by: Optional[UUID] = None
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)

	@field_validator("location", "agenda", "sponsors", mode="before")
	@classmethod
	def _decode_json_columns(cls, value: Any) -> Any:
		return _decode_json(value)

	@property
	def registration_fee(self) -> RegistrationFee:
		return RegistrationFee(amount=self.fee_amount, currency=self.fee_currency)

	def is_owned_by(self, user_id: UUID | str) -> bool:
		return str(user_id) in (str(self.organizer_id), str(self.created_by))


class Attendee(BaseModel):
	event_id: UUID
	user_id: UUID
	registered_at: datetime
	status: AttendeeStatus = AttendeeStatus.REGISTERED
	payment_status: PaymentStatus = PaymentStatus.NOT_APPLICABLE
	payment_reference: Optional[str] = None

	model_config = ConfigDict(from_attributes=True)


class Forum(BaseModel):
	id: UUID
	name: str
	description: str
	school_id: Optional[UUID] = None
	is_general: bool = False
	moderators: list[UUID] = Field(default_factory=list)
	topics: int = 0
	posts: int = 0
	last_activity: datetime
	is_active: bool = True
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)


class Topic(BaseModel):
	id: UUID
	forum_id: UUID
	user_id: UUID
	title: str
	content: str
	tags: list[str] = Field(default_factory=list)
	views: int = 0
	replies: int = 0
	is_pinned: bool = False
	is_locked: bool = False
	last_post_id: Optional[UUID] = None
	last_post_at: datetime
	last_post_user_id: UUID
	created_at: datetime
	updated_at: datetime
	deleted_at: Optional[datetime] = None

	model_config = ConfigDict(from_attributes=True)

	@property
	def is_deleted(self) -> bool:
		return self.deleted_at is not None


class Post(BaseModel):
	id: UUID
	topic_id: UUID
	user_id: UUID
	content: str
	likes: list[UUID] = Field(default_factory=list)
	parent_post_id: Optional[UUID] = None
	is_edited: bool = False
	edited_at: Optional[datetime] = None
	created_at: datetime
	updated_at: datetime
	deleted_at: Optional[datetime] = None

	model_config = ConfigDict(from_attributes=True)

	@property
	def is_deleted(self) -> bool:
		return self.deleted_at is not None

	@property
	def like_count(self) -> int:
		return len(self.likes)


class Report(BaseModel):
	id: UUID
	post_id: UUID
	user_id: UUID
	reason: str
	status: ReportStatus = ReportStatus.PENDING
	action: Optional[ReportAction] = None
	reviewed_by: Optional[UUID] = None
	reviewed_at: Optional[datetime] = None
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)
