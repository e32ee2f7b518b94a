"""Domain events emitted by booking and calendar workflows."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class BookingCreated(BaseModel):
    """Fired when a room booking passed the conflict check and was stored."""

    booking_id: str


class BookingCancelled(BaseModel):
    """Fired when an organizer cancels a booking, freeing its slot."""

    booking_id: str
    cancelled_by: str


class EventCreated(BaseModel):
    """Fired when a new calendar event is persisted."""

    event_id: str


class ConflictDetected(BaseModel):
    """Fired when a calendar event overlaps other calendar events."""

    event_id: str
    conflicting_event_ids: list[str]


class ReminderSent(BaseModel):
    """Fired when a reminder's time has been reached (via /tick)."""

    event_id: str
    schedule_item_id: str
    sent_at: datetime
