"""In-memory repositories and the reservation readers built on them."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from roomdesk.domain.models import (
    Alert,
    Booking,
    BookingStatus,
    CalendarEvent,
    EventStatus,
    Interval,
    ReminderScheduleItem,
    Reservation,
    Room,
    as_utc,
)
from roomdesk.services.conflicts import overlaps


class RoomRepository:
    """Dict-backed store for Room instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Room] = {}

    def add(self, room: Room) -> None:
        self._store[room.id] = room

    def get(self, room_id: str) -> Room | None:
        return self._store.get(room_id)

    def list_all(
        self, search: str | None = None, min_capacity: int | None = None
    ) -> list[Room]:
        rooms = list(self._store.values())
        if search:
            needle = search.lower()
            rooms = [
                r
                for r in rooms
                if needle in r.name.lower() or needle in r.location.lower()
            ]
        if min_capacity is not None:
            rooms = [r for r in rooms if r.capacity >= min_capacity]
        return sorted(rooms, key=lambda r: r.name)

    def delete(self, room_id: str) -> Room | None:
        return self._store.pop(room_id, None)


class BookingRepository:
    """Dict-backed store for Booking instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Booking] = {}

    def add(self, booking: Booking) -> None:
        self._store[booking.id] = booking

    def get(self, booking_id: str) -> Booking | None:
        return self._store.get(booking_id)

    def list_all(
        self,
        room_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[Booking]:
        """Return bookings sorted by start; date bounds apply to the start time."""
        bookings = list(self._store.values())
        if room_id is not None:
            bookings = [b for b in bookings if b.room_id == room_id]
        if start_date is not None:
            bookings = [b for b in bookings if b.start_time >= as_utc(start_date)]
        if end_date is not None:
            bookings = [b for b in bookings if b.start_time <= as_utc(end_date)]
        return sorted(bookings, key=lambda b: (b.start_time, b.id))

    def list_for_room(self, room_id: str) -> list[Booking]:
        return [b for b in self._store.values() if b.room_id == room_id]

    def update_status(self, booking_id: str, status: BookingStatus) -> None:
        booking = self._store.get(booking_id)
        if booking is not None:
            booking.status = status


class CalendarEventRepository:
    """Dict-backed store for CalendarEvent instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, CalendarEvent] = {}

    def add(self, event: CalendarEvent) -> None:
        self._store[event.id] = event

    def get(self, event_id: str) -> CalendarEvent | None:
        return self._store.get(event_id)

    def list_all(
        self,
        window: Interval | None = None,
        status: EventStatus | None = None,
    ) -> list[CalendarEvent]:
        events = list(self._store.values())
        if window is not None:
            events = [e for e in events if overlaps(window, e.interval)]
        if status is not None:
            events = [e for e in events if e.status == status]
        return sorted(events, key=lambda e: (e.start, e.id))

    def delete(self, event_id: str) -> CalendarEvent | None:
        return self._store.pop(event_id, None)


class AlertRepository:
    """List-backed store for Alert instances."""

    def __init__(self) -> None:
        self._alerts: list[Alert] = []

    def add(self, alert: Alert) -> None:
        self._alerts.append(alert)

    def get(self, alert_id: str) -> Alert | None:
        for alert in self._alerts:
            if alert.id == alert_id:
                return alert
        return None

    def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = 50,
        now: datetime | None = None,
    ) -> list[Alert]:
        """Return alerts visible to *user_id*, newest first, skipping expired ones."""
        now = now or datetime.now(timezone.utc)
        alerts = [
            a
            for a in self._alerts
            if a.visible_to(user_id)
            and (a.expires_at is None or a.expires_at > now)
            and not (unread_only and user_id in a.read_by)
        ]
        alerts.sort(key=lambda a: a.created_at, reverse=True)
        return alerts[:limit]

    def unread_count(self, user_id: str) -> int:
        return len(self.list_for_user(user_id, unread_only=True, limit=len(self._alerts)))

    def mark_read(self, alert_id: str, user_id: str) -> Alert | None:
        alert = self.get(alert_id)
        if alert is not None and user_id not in alert.read_by:
            alert.read_by.append(user_id)
        return alert

    def mark_all_read(self, user_id: str) -> int:
        """Mark every alert visible to *user_id* as read; returns how many changed."""
        changed = 0
        for alert in self._alerts:
            if alert.visible_to(user_id) and user_id not in alert.read_by:
                alert.read_by.append(user_id)
                changed += 1
        return changed


class ReminderScheduleRepository:
    """List-backed store for ReminderScheduleItem instances."""

    def __init__(self) -> None:
        self._items: list[ReminderScheduleItem] = []

    def add(self, item: ReminderScheduleItem) -> None:
        self._items.append(item)

    def list_due(self, now: datetime) -> list[ReminderScheduleItem]:
        return [i for i in self._items if not i.was_sent and i.trigger_time <= now]

    def mark_sent(self, item_id: str, sent_at: datetime) -> None:
        for item in self._items:
            if item.id == item_id:
                item.was_sent = True
                item.sent_at = sent_at
                return

    def list_for_event(self, event_id: str) -> list[ReminderScheduleItem]:
        return [i for i in self._items if i.event_id == event_id]

    def delete_for_event(self, event_id: str) -> None:
        """Drop unsent reminders for an event; sent ones stay as history."""
        self._items = [
            i for i in self._items if i.event_id != event_id or i.was_sent
        ]


# ---------------------------------------------------------------------------
# Reservation readers
# ---------------------------------------------------------------------------


class BookingReservationReader:
    """Exposes room bookings to the conflict checker."""

    def __init__(self, bookings: BookingRepository) -> None:
        self.bookings = bookings

    def find_active_by_resource(
        self, resource_id: str | None, interval_hint: Interval
    ) -> list[Reservation]:
        if resource_id is None:
            return []
        reservations = (b.to_reservation() for b in self.bookings.list_for_room(resource_id))
        return [
            r
            for r in reservations
            if r.is_active and overlaps(interval_hint, r.interval)
        ]


class EventReservationReader:
    """Exposes calendar events to the conflict checker as one global partition."""

    def __init__(self, events: CalendarEventRepository) -> None:
        self.events = events

    def find_active_by_resource(
        self, resource_id: str | None, interval_hint: Interval
    ) -> list[Reservation]:
        if resource_id is not None:
            return []
        return [
            e.to_reservation()
            for e in self.events.list_all(window=interval_hint)
            if e.status != EventStatus.CANCELLED
        ]


# ---------------------------------------------------------------------------
# Seed data – a couple of rooms with bookings, useful for manual testing
# ---------------------------------------------------------------------------


def seed_demo_data(rooms: RoomRepository, bookings: BookingRepository) -> None:
    now = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)

    boardroom = Room(
        name="Boardroom",
        location="HQ 3rd floor",
        capacity=12,
        amenities=["projector", "video conferencing"],
    )
    huddle = Room(name="Huddle 1", location="HQ 2nd floor", capacity=4)
    rooms.add(boardroom)
    rooms.add(huddle)

    bookings.add(
        Booking(
            title="Weekly planning",
            room_id=boardroom.id,
            organizer_id="demo-user",
            start_time=now + timedelta(hours=1),
            end_time=now + timedelta(hours=2),
        )
    )
    bookings.add(
        Booking(
            title="1:1",
            room_id=huddle.id,
            organizer_id="demo-user",
            start_time=now + timedelta(days=1),
            end_time=now + timedelta(days=1, minutes=30),
        )
    )
