"""FastAPI application: entry point for the room and calendar scheduling service."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from roomdesk import config
from roomdesk.domain.bus import EventBus
from roomdesk.domain.errors import DataAccessError, InvalidIntervalError
from roomdesk.domain.events import (
    BookingCancelled,
    BookingCreated,
    ConflictDetected,
    EventCreated,
    ReminderSent,
)
from roomdesk.domain.handlers import HandlerRegistry
from roomdesk.domain.models import (
    AlertView,
    Booking,
    BookingCancel,
    BookingConflictResponse,
    BookingCreate,
    BookingReschedule,
    BookingStatus,
    CalendarEvent,
    ConflictCheckRequest,
    ConflictResult,
    EventCreate,
    EventStatus,
    EventUpdate,
    EventWithConflicts,
    MarkReadRequest,
    ResourceScope,
    Room,
    RoomCreate,
    RoomUpdate,
    as_utc,
    make_interval,
)
from roomdesk.repos.memory import (
    AlertRepository,
    BookingRepository,
    BookingReservationReader,
    CalendarEventRepository,
    EventReservationReader,
    ReminderScheduleRepository,
    RoomRepository,
    seed_demo_data,
)
from roomdesk.services.conflicts import ConflictChecker
from roomdesk.services.policy import ConflictPolicy, resolve
from roomdesk.services.reminders import schedule_reminders

config.configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=config.APP_TITLE)

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
room_repo = RoomRepository()
booking_repo = BookingRepository()
event_repo = CalendarEventRepository()
alert_repo = AlertRepository()
reminder_schedule_repo = ReminderScheduleRepository()

booking_checker = ConflictChecker(BookingReservationReader(booking_repo))
event_checker = ConflictChecker(EventReservationReader(event_repo))

handler_registry = HandlerRegistry(
    bus=event_bus,
    room_repo=room_repo,
    booking_repo=booking_repo,
    event_repo=event_repo,
    alert_repo=alert_repo,
    reminder_schedule_repo=reminder_schedule_repo,
    event_checker=event_checker,
)

if config.SEED_DEMO_DATA:
    seed_demo_data(room_repo, booking_repo)


# ── Error mapping ─────────────────────────────────────────────────────


@app.exception_handler(InvalidIntervalError)
def _invalid_interval(request: Request, exc: InvalidIntervalError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(DataAccessError)
def _data_access(request: Request, exc: DataAccessError) -> JSONResponse:
    logger.error("Reservation store failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Reservation store unavailable"})


def _conflict_response(detail: str, result: ConflictResult) -> JSONResponse:
    body = BookingConflictResponse(detail=detail, conflicts=result.conflicts)
    return JSONResponse(status_code=409, content=jsonable_encoder(body))


# ── Rooms ─────────────────────────────────────────────────────────────


@app.get("/rooms", response_model=list[Room])
def list_rooms(search: str | None = None, min_capacity: int | None = None) -> list[Room]:
    """Return rooms sorted by name, optionally filtered by text and capacity."""
    return room_repo.list_all(search=search, min_capacity=min_capacity)


@app.post("/rooms", response_model=Room, status_code=201)
def create_room(body: RoomCreate) -> Room:
    room = Room(**body.model_dump())
    room_repo.add(room)
    return room


def _get_room_or_404(room_id: str) -> Room:
    room = room_repo.get(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


@app.get("/rooms/{room_id}", response_model=Room)
def get_room(room_id: str) -> Room:
    return _get_room_or_404(room_id)


@app.patch("/rooms/{room_id}", response_model=Room)
def update_room(room_id: str, body: RoomUpdate) -> Room:
    room = _get_room_or_404(room_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(room, field, value)
    return room


@app.delete("/rooms/{room_id}")
def delete_room(room_id: str) -> dict:
    """Delete a room; refused while it still has pending or confirmed bookings."""
    _get_room_or_404(room_id)
    if any(b.to_reservation().is_active for b in booking_repo.list_for_room(room_id)):
        raise HTTPException(status_code=409, detail="Room has active bookings")
    room_repo.delete(room_id)
    return {"success": True}


@app.get("/rooms/{room_id}/availability", response_model=ConflictResult)
def room_availability(room_id: str, start: datetime, end: datetime) -> ConflictResult:
    """Report which bookings, if any, occupy the room during [start, end)."""
    _get_room_or_404(room_id)
    return booking_checker.check_conflict(
        ResourceScope.for_resource(room_id), make_interval(start, end)
    )


# ── Bookings ──────────────────────────────────────────────────────────


@app.get("/bookings", response_model=list[Booking])
def list_bookings(
    room_id: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> list[Booking]:
    return booking_repo.list_all(room_id=room_id, start_date=start_date, end_date=end_date)


@app.post("/bookings", response_model=Booking, status_code=201)
def create_booking(body: BookingCreate):
    """Book a room; any overlap with an active booking rejects the request."""
    _get_room_or_404(body.room_id)

    interval = make_interval(body.start_time, body.end_time)
    result = booking_checker.check_conflict(ResourceScope.for_resource(body.room_id), interval)
    resolution = resolve(result, ConflictPolicy.HARD)
    if not resolution.accepted:
        logger.info(
            "Rejected booking of room %s: %d conflict(s)", body.room_id, len(result.conflicts)
        )
        return _conflict_response("Room is already booked for this time slot", result)

    booking = Booking(**body.model_dump(), status=BookingStatus.CONFIRMED)
    booking_repo.add(booking)
    event_bus.publish(BookingCreated(booking_id=booking.id))
    return booking


@app.get("/bookings/{booking_id}", response_model=Booking)
def get_booking(booking_id: str) -> Booking:
    booking = booking_repo.get(booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


@app.patch("/bookings/{booking_id}/reschedule", response_model=Booking)
def reschedule_booking(booking_id: str, body: BookingReschedule):
    """Move a booking to a new interval, checked against every other booking."""
    booking = booking_repo.get(booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    if not booking.to_reservation().is_active:
        raise HTTPException(status_code=400, detail=f"Booking is already {booking.status}")

    interval = make_interval(body.start_time, body.end_time)
    result = booking_checker.check_conflict(
        ResourceScope.for_resource(booking.room_id), interval, exclude_id=booking.id
    )
    if not resolve(result, ConflictPolicy.HARD).accepted:
        return _conflict_response("Room is already booked for this time slot", result)

    booking.start_time = interval.start
    booking.end_time = interval.end
    return booking


@app.post("/bookings/{booking_id}/cancel")
def cancel_booking(booking_id: str, body: BookingCancel) -> dict:
    """Cancel a booking; only its organizer may do so."""
    booking = booking_repo.get(booking_id)
    if booking is None or booking.organizer_id != body.organizer_id:
        raise HTTPException(status_code=404, detail="Booking not found or not authorized")
    if not booking.to_reservation().is_active:
        raise HTTPException(status_code=400, detail=f"Booking is already {booking.status}")

    booking_repo.update_status(booking_id, BookingStatus.CANCELLED)
    logger.info("Booking %s cancelled by %s", booking_id, body.organizer_id)
    event_bus.publish(BookingCancelled(booking_id=booking_id, cancelled_by=body.organizer_id))
    return {"success": True}


# ── Calendar events ───────────────────────────────────────────────────


@app.get("/events", response_model=list[CalendarEvent])
def list_events(
    start: datetime | None = None,
    end: datetime | None = None,
    status: EventStatus | None = None,
) -> list[CalendarEvent]:
    """Return events, optionally only those overlapping [start, end)."""
    window = make_interval(start, end) if start and end else None
    return event_repo.list_all(window=window, status=status)


@app.post("/events/check-conflicts", response_model=ConflictResult)
def check_event_conflicts(body: ConflictCheckRequest) -> ConflictResult:
    return event_checker.check_conflict(
        ResourceScope.unscoped(), make_interval(body.start, body.end), exclude_id=body.exclude_id
    )


@app.post("/events", response_model=EventWithConflicts, status_code=201)
def create_event(body: EventCreate) -> EventWithConflicts:
    """Create an event; overlaps with other events are returned as warnings."""
    interval = make_interval(body.start, body.end)
    warnings = []
    if body.status != EventStatus.CANCELLED:
        result = event_checker.check_conflict(ResourceScope.unscoped(), interval)
        warnings = resolve(result, ConflictPolicy.SOFT).warnings

    data = body.model_dump(exclude_none=True)
    event = CalendarEvent(**data)
    event_repo.add(event)

    # Publish to the event bus: schedules reminders and raises conflict alerts
    event_bus.publish(EventCreated(event_id=event.id))

    return EventWithConflicts(event=event, conflicts=warnings)


@app.get("/events/{event_id}", response_model=CalendarEvent)
def get_event(event_id: str) -> CalendarEvent:
    event = event_repo.get(event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@app.patch("/events/{event_id}", response_model=EventWithConflicts)
def update_event(event_id: str, body: EventUpdate) -> EventWithConflicts:
    """Apply a partial update; a moved event is re-checked against the others."""
    stored = event_repo.get(event_id)
    if stored is None:
        raise HTTPException(status_code=404, detail="Event not found")

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if stored.status == EventStatus.CANCELLED and changes.get("status", stored.status) != stored.status:
        raise HTTPException(status_code=400, detail="Cancelled events cannot be reopened")

    interval = make_interval(changes.get("start", stored.start), changes.get("end", stored.end))
    updated = stored.model_copy(update=changes)
    event_repo.add(updated)

    if updated.status == EventStatus.CANCELLED:
        reminder_schedule_repo.delete_for_event(event_id)
    elif "reminders" in changes or "start" in changes:
        reminder_schedule_repo.delete_for_event(event_id)
        schedule_reminders(event_id, updated.reminders, reminder_schedule_repo)

    warnings = []
    if updated.status != EventStatus.CANCELLED and interval != stored.interval:
        result = event_checker.check_conflict(
            ResourceScope.unscoped(), interval, exclude_id=event_id
        )
        warnings = resolve(result, ConflictPolicy.SOFT).warnings
        if warnings:
            event_bus.publish(
                ConflictDetected(
                    event_id=event_id, conflicting_event_ids=[c.id for c in warnings]
                )
            )

    return EventWithConflicts(event=updated, conflicts=warnings)


@app.delete("/events/{event_id}")
def delete_event(event_id: str) -> dict:
    if event_repo.delete(event_id) is None:
        raise HTTPException(status_code=404, detail="Event not found")
    reminder_schedule_repo.delete_for_event(event_id)
    return {"success": True}


# ── Alerts ────────────────────────────────────────────────────────────


@app.get("/alerts", response_model=list[AlertView])
def list_alerts(
    user_id: str,
    unread_only: bool = False,
    limit: int = Query(default=config.ALERT_LIST_LIMIT, ge=1, le=config.ALERT_LIST_MAX),
) -> list[AlertView]:
    """Return alerts visible to the user, newest first."""
    return [
        AlertView(
            **alert.model_dump(exclude={"target_users", "read_by"}),
            is_read=user_id in alert.read_by,
        )
        for alert in alert_repo.list_for_user(user_id, unread_only=unread_only, limit=limit)
    ]


@app.get("/alerts/unread-count")
def unread_alert_count(user_id: str) -> dict:
    return {"count": alert_repo.unread_count(user_id)}


@app.post("/alerts/{alert_id}/read")
def mark_alert_read(alert_id: str, body: MarkReadRequest) -> dict:
    if alert_repo.mark_read(alert_id, body.user_id) is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    return {"success": True}


@app.post("/alerts/read-all")
def mark_all_alerts_read(body: MarkReadRequest) -> dict:
    return {"success": True, "updated": alert_repo.mark_all_read(body.user_id)}


# ── Simulated clock ───────────────────────────────────────────────────


@app.post("/tick")
def tick(now: datetime | None = None) -> dict:
    """Advance simulated time and fire any due event reminders.

    Pass *now* as a query param to control the simulated clock.
    Defaults to ``datetime.now(timezone.utc)`` when omitted.
    """
    current_time = as_utc(now) if now else datetime.now(timezone.utc)
    due_items = reminder_schedule_repo.list_due(current_time)

    fired: list[str] = []
    for item in due_items:
        event_bus.publish(
            ReminderSent(
                event_id=item.event_id,
                schedule_item_id=item.id,
                sent_at=current_time,
            )
        )
        fired.append(item.id)

    return {"time": current_time.isoformat(), "reminders_fired": fired}
