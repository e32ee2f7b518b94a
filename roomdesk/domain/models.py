"""Domain models for rooms, bookings, calendar events and the conflict core."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator

from roomdesk.domain.errors import InvalidIntervalError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so every comparison is aware-vs-aware."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class ReservationStatus(StrEnum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class BookingStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class EventStatus(StrEnum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RoomStatus(StrEnum):
    AVAILABLE = "available"
    MAINTENANCE = "maintenance"
    OCCUPIED = "occupied"


class AlertType(StrEnum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class AlertSource(StrEnum):
    MANUAL = "manual"
    IOT = "iot"
    SYSTEM = "system"


class AlertPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ---------------------------------------------------------------------------
# Conflict core value types
# ---------------------------------------------------------------------------


class Interval(BaseModel):
    """Half-open time range ``[start, end)``."""

    model_config = ConfigDict(frozen=True)

    start: UtcDatetime
    end: UtcDatetime

    @model_validator(mode="after")
    def _end_after_start(self) -> Interval:
        if self.end <= self.start:
            raise InvalidIntervalError(self.start, self.end)
        return self


def make_interval(start: datetime, end: datetime) -> Interval:
    """Build an Interval, raising InvalidIntervalError unless ``start < end``."""
    start, end = as_utc(start), as_utc(end)
    if end <= start:
        raise InvalidIntervalError(start, end)
    return Interval(start=start, end=end)


class ResourceScope(BaseModel):
    """Partition of reservations that are compared with one another.

    ``resource_id=None`` is the global partition used by calendar events.
    """

    model_config = ConfigDict(frozen=True)

    resource_id: str | None = None

    @classmethod
    def for_resource(cls, resource_id: str) -> ResourceScope:
        return cls(resource_id=resource_id)

    @classmethod
    def unscoped(cls) -> ResourceScope:
        return cls(resource_id=None)

    @property
    def is_global(self) -> bool:
        return self.resource_id is None


class Reservation(BaseModel):
    """Read-only snapshot of something occupying a resource for an interval."""

    model_config = ConfigDict(frozen=True)

    id: str
    resource_id: str | None = None
    interval: Interval
    status: ReservationStatus = ReservationStatus.ACTIVE
    owner_id: str | None = None
    title: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == ReservationStatus.ACTIVE


class ConflictResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_conflict: bool
    conflicts: list[Reservation] = Field(default_factory=list)

    @classmethod
    def from_conflicts(cls, conflicts: list[Reservation]) -> ConflictResult:
        return cls(has_conflict=len(conflicts) > 0, conflicts=conflicts)


# ---------------------------------------------------------------------------
# Product records
# ---------------------------------------------------------------------------


class Room(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    location: str
    capacity: int = Field(gt=0)
    amenities: list[str] = Field(default_factory=list)
    status: RoomStatus = RoomStatus.AVAILABLE
    images: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)


# Rejected requests never held the room, so only pending and confirmed block it
_ACTIVE_BOOKING_STATUSES = {BookingStatus.PENDING, BookingStatus.CONFIRMED}


class Booking(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str
    description: str | None = None
    room_id: str
    organizer_id: str
    attendees: list[str] = Field(default_factory=list)
    start_time: UtcDatetime
    end_time: UtcDatetime
    status: BookingStatus = BookingStatus.CONFIRMED
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _end_after_start(self) -> Booking:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def interval(self) -> Interval:
        return Interval(start=self.start_time, end=self.end_time)

    def to_reservation(self) -> Reservation:
        status = (
            ReservationStatus.ACTIVE
            if self.status in _ACTIVE_BOOKING_STATUSES
            else ReservationStatus.CANCELLED
        )
        return Reservation(
            id=self.id,
            resource_id=self.room_id,
            interval=self.interval,
            status=status,
            owner_id=self.organizer_id,
            title=self.title,
        )


class CalendarEvent(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str = Field(min_length=1)
    description: str | None = None
    start: UtcDatetime
    end: UtcDatetime
    location: str | None = None
    created_by: str
    attendees: list[str] = Field(default_factory=list)
    status: EventStatus = EventStatus.SCHEDULED
    color: str = "#3b82f6"
    reminders: list[UtcDatetime] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _end_after_start(self) -> CalendarEvent:
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self

    @property
    def interval(self) -> Interval:
        return Interval(start=self.start, end=self.end)

    def to_reservation(self) -> Reservation:
        status = (
            ReservationStatus.CANCELLED
            if self.status == EventStatus.CANCELLED
            else ReservationStatus.ACTIVE
        )
        return Reservation(
            id=self.id,
            resource_id=None,
            interval=self.interval,
            status=status,
            owner_id=self.created_by,
            title=self.title,
        )


class Alert(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    type: AlertType = AlertType.INFO
    source: AlertSource = AlertSource.MANUAL
    target_users: list[str] = Field(default_factory=list)
    read_by: list[str] = Field(default_factory=list)
    priority: AlertPriority = AlertPriority.MEDIUM
    metadata: dict[str, Any] = Field(default_factory=dict)
    expires_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    def visible_to(self, user_id: str) -> bool:
        """Broadcast alerts (no targets) are visible to everyone."""
        return not self.target_users or user_id in self.target_users


class ReminderScheduleItem(BaseModel):
    id: str = Field(default_factory=_new_id)
    event_id: str
    trigger_time: UtcDatetime
    was_sent: bool = False
    sent_at: datetime | None = None


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class RoomCreate(BaseModel):
    name: str
    location: str
    capacity: int = Field(gt=0)
    amenities: list[str] = Field(default_factory=list)
    status: RoomStatus = RoomStatus.AVAILABLE
    images: list[str] = Field(default_factory=list)


class RoomUpdate(BaseModel):
    name: str | None = None
    location: str | None = None
    capacity: int | None = Field(default=None, gt=0)
    amenities: list[str] | None = None
    status: RoomStatus | None = None
    images: list[str] | None = None


class BookingCreate(BaseModel):
    title: str
    description: str | None = None
    room_id: str
    organizer_id: str
    attendees: list[str] = Field(default_factory=list)
    start_time: UtcDatetime
    end_time: UtcDatetime

    @model_validator(mode="after")
    def _end_after_start(self) -> BookingCreate:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class BookingReschedule(BaseModel):
    start_time: UtcDatetime
    end_time: UtcDatetime

    @model_validator(mode="after")
    def _end_after_start(self) -> BookingReschedule:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class BookingCancel(BaseModel):
    organizer_id: str


class BookingConflictResponse(BaseModel):
    detail: str
    conflicts: list[Reservation]


class EventCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str | None = None
    start: UtcDatetime
    end: UtcDatetime
    location: str | None = None
    created_by: str
    attendees: list[str] = Field(default_factory=list)
    status: EventStatus = EventStatus.SCHEDULED
    color: str | None = None
    reminders: list[UtcDatetime] = Field(default_factory=list)

    @model_validator(mode="after")
    def _end_after_start(self) -> EventCreate:
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class EventUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    start: UtcDatetime | None = None
    end: UtcDatetime | None = None
    location: str | None = None
    attendees: list[str] | None = None
    status: EventStatus | None = None
    color: str | None = None
    reminders: list[UtcDatetime] | None = None


class EventWithConflicts(BaseModel):
    """An event plus the calendar reservations it overlaps (warnings only)."""

    event: CalendarEvent
    conflicts: list[Reservation] = Field(default_factory=list)


class ConflictCheckRequest(BaseModel):
    start: UtcDatetime
    end: UtcDatetime
    exclude_id: str | None = None


class AlertView(BaseModel):
    id: str
    title: str
    message: str
    type: AlertType
    source: AlertSource
    priority: AlertPriority
    metadata: dict[str, Any]
    is_read: bool
    created_at: datetime
    expires_at: datetime | None = None


class MarkReadRequest(BaseModel):
    user_id: str
