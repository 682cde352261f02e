"""Pydantic schemas for the alumni API."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.alumni.domain.models import (
	AgendaItem,
	AttendeeStatus,
	EventLocation,
	EventStatus,
	EventType,
	Gender,
	PaymentStatus,
	RegistrationFee,
	ReportAction,
	ReportStatus,
	SchoolLocation,
	SchoolType,
	Sponsor,
	Visibility,
)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
	"""Treat timestamps sent without an offset as UTC."""
	if value is not None and value.tzinfo is None:
		return value.replace(tzinfo=timezone.utc)
	return value


class MessageResponse(BaseModel):
	message: str


# --- Schools ---------------------------------------------------------------


class SchoolBase(BaseModel):
	name: str = Field(..., min_length=2, max_length=200)
	short_name: Optional[str] = Field(default=None, max_length=40)
	type: SchoolType
	gender: Gender
	location: SchoolLocation
	founded_year: Optional[int] = Field(default=None, ge=1800, le=2100)
	description: Optional[str] = Field(default=None, max_length=4000)
	website: Optional[str] = None
	email: Optional[str] = None
	phone_number: Optional[str] = None
	address: Optional[str] = None


class SchoolCreateRequest(SchoolBase):
	admin_users: Optional[List[UUID]] = None


class SchoolUpdateRequest(BaseModel):
	name: Optional[str] = Field(default=None, min_length=2, max_length=200)
	short_name: Optional[str] = Field(default=None, max_length=40)
	type: Optional[SchoolType] = None
	gender: Optional[Gender] = None
	location: Optional[SchoolLocation] = None
	founded_year: Optional[int] = Field(default=None, ge=1800, le=2100)
	description: Optional[str] = Field(default=None, max_length=4000)
	website: Optional[str] = None
	email: Optional[str] = None
	phone_number: Optional[str] = None
	address: Optional[str] = None
	alumni_count: Optional[int] = Field(default=None, ge=0)


class SchoolAdminRequest(BaseModel):
	school_id: UUID
	user_id: UUID


class SchoolResponse(SchoolBase):
	id: UUID
	logo: Optional[str] = None
	banner: Optional[str] = None
	admin_users: List[UUID] = Field(default_factory=list)
	alumni_count: int = 0
	is_active: bool = True
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)


class SchoolEnvelope(BaseModel):
	message: Optional[str] = None
	school: SchoolResponse


class SchoolListResponse(BaseModel):
	count: int
	schools: List[SchoolResponse]


# --- Events ----------------------------------------------------------------


class EventCreateRequest(BaseModel):
	title: str = Field(..., min_length=3, max_length=200)
	description: str = Field(..., min_length=1, max_length=10000)
	event_type: EventType
	start_date: datetime
	end_date: datetime
	location: EventLocation
	school_id: Optional[UUID] = None
	is_school_specific: bool = False
	capacity: Optional[int] = Field(default=None, ge=1)
	registration_required: bool = True
	registration_deadline: Optional[datetime] = None
	registration_fee: RegistrationFee = Field(default_factory=RegistrationFee)
	agenda: List[AgendaItem] = Field(default_factory=list)
	sponsors: List[Sponsor] = Field(default_factory=list)
	status: EventStatus = EventStatus.DRAFT
	visibility: Visibility = Visibility.ALUMNI_ONLY

	@field_validator("start_date", "end_date", "registration_deadline")
	@classmethod
	def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
		return as_utc(value)

	@model_validator(mode="after")
	def _check_dates(self) -> "EventCreateRequest":
		if self.end_date < self.start_date:
			raise ValueError("end_date must not be before start_date")
		return self


class EventUpdateRequest(BaseModel):
	title: Optional[str] = Field(default=None, min_length=3, max_length=200)
	description: Optional[str] = Field(default=None, min_length=1, max_length=10000)
	event_type: Optional[EventType] = None
	start_date: Optional[datetime] = None
	end_date: Optional[datetime] = None
	location: Optional[EventLocation] = None
	school_id: Optional[UUID] = None
	is_school_specific: Optional[bool] = None
	capacity: Optional[int] = Field(default=None, ge=1)
	registration_required: Optional[bool] = None
	registration_deadline: Optional[datetime] = None
	registration_fee: Optional[RegistrationFee] = None
	agenda: Optional[List[AgendaItem]] = None
	sponsors: Optional[List[Sponsor]] = None
	status: Optional[EventStatus] = None
	visibility: Optional[Visibility] = None

	@field_validator("start_date", "end_date", "registration_deadline")
	@classmethod
	def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
		return as_utc(value)


class AttendeeUpdateRequest(BaseModel):
	status: Optional[AttendeeStatus] = None
	payment_status: Optional[PaymentStatus] = None
	payment_reference: Optional[str] = Field(default=None, max_length=200)


class InviteRequest(BaseModel):
	user_ids: List[UUID] = Field(default_factory=list)


class AttendeeResponse(BaseModel):
	user_id: UUID
	registered_at: datetime
	status: AttendeeStatus
	payment_status: PaymentStatus
	payment_reference: Optional[str] = None

	model_config = ConfigDict(from_attributes=True)


class EventResponse(BaseModel):
	id: UUID
	title: str
	description: str
	event_type: EventType
	start_date: datetime
	end_date: datetime
	location: EventLocation
	organizer_id: UUID
	school_id: Optional[UUID] = None
	is_school_specific: bool
	banner: Optional[str] = None
	capacity: Optional[int] = None
	registration_required: bool
	registration_deadline: Optional[datetime] = None
	registration_fee: RegistrationFee
	agenda: List[AgendaItem] = Field(default_factory=list)
	sponsors: List[Sponsor] = Field(default_factory=list)
	status: EventStatus
	visibility: Visibility
	created_by: UUID
	updated_by: Optional[UUID] = None
	created_at: datetime
	updated_at: datetime
	attendees: List[AttendeeResponse] = Field(default_factory=list)

	model_config = ConfigDict(from_attributes=True)


class EventEnvelope(BaseModel):
	message: Optional[str] = None
	event: EventResponse


class EventListResponse(BaseModel):
	count: int
	total_pages: int
	current_page: int
	total_events: int
	events: List[EventResponse]


class AttendeeEnvelope(BaseModel):
	message: str
	attendee: AttendeeResponse


class InviteResponse(BaseModel):
	message: str
	invited: int
	attendees: List[AttendeeResponse]


# --- Forums ----------------------------------------------------------------


class ForumCreateRequest(BaseModel):
	name: str = Field(..., min_length=3, max_length=120)
	description: str = Field(..., min_length=1, max_length=2000)
	school_id: Optional[UUID] = None
	moderators: Optional[List[UUID]] = None


class ForumUpdateRequest(BaseModel):
	name: Optional[str] = Field(default=None, min_length=3, max_length=120)
	description: Optional[str] = Field(default=None, min_length=1, max_length=2000)
	moderators: Optional[List[UUID]] = Field(default=None, min_length=1)
	is_active: Optional[bool] = None


class ModeratorRequest(BaseModel):
	forum_id: UUID
	user_id: UUID


class ForumResponse(BaseModel):
	id: UUID
	name: str
	description: str
	school_id: Optional[UUID] = None
	is_general: bool
	moderators: List[UUID]
	topics: int
	posts: int
	last_activity: datetime
	is_active: bool
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)


class ForumEnvelope(BaseModel):
	message: Optional[str] = None
	forum: ForumResponse


class ForumListResponse(BaseModel):
	count: int
	forums: List[ForumResponse]


# --- Topics ----------------------------------------------------------------


class TopicCreateRequest(BaseModel):
	forum_id: UUID
	title: str = Field(..., min_length=3, max_length=200)
	content: str = Field(..., min_length=1, max_length=20000)
	tags: List[str] = Field(default_factory=list, max_length=10)


class TopicUpdateRequest(BaseModel):
	title: Optional[str] = Field(default=None, min_length=3, max_length=200)
	content: Optional[str] = Field(default=None, min_length=1, max_length=20000)
	tags: Optional[List[str]] = Field(default=None, max_length=10)


class TopicResponse(BaseModel):
	id: UUID
	forum_id: UUID
	user_id: UUID
	title: str
	content: str
	tags: List[str]
	views: int
	replies: int
	is_pinned: bool
	is_locked: bool
	last_post_id: Optional[UUID] = None
	last_post_at: datetime
	last_post_user_id: UUID
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)


class TopicEnvelope(BaseModel):
	message: Optional[str] = None
	topic: TopicResponse


class TopicListResponse(BaseModel):
	count: int
	total_pages: int
	current_page: int
	total_topics: int
	topics: List[TopicResponse]


# --- Posts -----------------------------------------------------------------


class PostCreateRequest(BaseModel):
	topic_id: UUID
	content: str = Field(..., min_length=1, max_length=20000)
	parent_post_id: Optional[UUID] = None


class PostUpdateRequest(BaseModel):
	content: str = Field(..., min_length=1, max_length=20000)


class PostResponse(BaseModel):
	id: UUID
	topic_id: UUID
	user_id: UUID
	content: str
	likes: List[UUID]
	like_count: int
	parent_post_id: Optional[UUID] = None
	is_edited: bool
	edited_at: Optional[datetime] = None
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)


class PostEnvelope(BaseModel):
	message: str
	post: PostResponse


class PostListResponse(BaseModel):
	count: int
	total_pages: int
	current_page: int
	total_posts: int
	posts: List[PostResponse]


class LikeResponse(BaseModel):
	message: str
	liked: bool
	likes: int


class ReportRequest(BaseModel):
	reason: str = Field(..., min_length=1, max_length=1000)


class ReportResolveRequest(BaseModel):
	action: ReportAction


class ReportResponse(BaseModel):
	id: UUID
	post_id: UUID
	user_id: UUID
	reason: str
	status: ReportStatus
	action: Optional[ReportAction] = None
	reviewed_by: Optional[UUID] = None
	reviewed_at: Optional[datetime] = None
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


class ReportEnvelope(BaseModel):
	message: str
	report: ReportResponse


class ImageUploadResponse(BaseModel):
	message: str
	url: str


class RegistrationResponse(BaseModel):
	message: str
	requires_payment: bool
	attendee: AttendeeResponse
