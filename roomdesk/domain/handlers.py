"""Domain event handlers: wired up at application startup."""

from __future__ import annotations

import logging

from roomdesk.domain.bus import EventBus
from roomdesk.domain.events import (
    BookingCancelled,
    BookingCreated,
    ConflictDetected,
    EventCreated,
    ReminderSent,
)
from roomdesk.domain.models import (
    Alert,
    AlertPriority,
    AlertSource,
    AlertType,
    EventStatus,
    ResourceScope,
)
from roomdesk.repos.memory import (
    AlertRepository,
    BookingRepository,
    CalendarEventRepository,
    ReminderScheduleRepository,
    RoomRepository,
)
from roomdesk.services.conflicts import ConflictChecker
from roomdesk.services.reminders import schedule_reminders

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Wires domain-event handlers to the bus with access to all repositories."""

    def __init__(
        self,
        bus: EventBus,
        room_repo: RoomRepository,
        booking_repo: BookingRepository,
        event_repo: CalendarEventRepository,
        alert_repo: AlertRepository,
        reminder_schedule_repo: ReminderScheduleRepository,
        event_checker: ConflictChecker,
    ) -> None:
        self.bus = bus
        self.room_repo = room_repo
        self.booking_repo = booking_repo
        self.event_repo = event_repo
        self.alert_repo = alert_repo
        self.reminder_schedule_repo = reminder_schedule_repo
        self.event_checker = event_checker
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(BookingCreated, self.on_booking_created)
        self.bus.subscribe(BookingCancelled, self.on_booking_cancelled)
        self.bus.subscribe(EventCreated, self.on_event_created)
        self.bus.subscribe(ConflictDetected, self.on_conflict_detected)
        self.bus.subscribe(ReminderSent, self.on_reminder_sent)

    def _room_name(self, room_id: str) -> str:
        room = self.room_repo.get(room_id)
        return room.name if room else room_id

    def _add_alert(self, alert: Alert) -> None:
        self.alert_repo.add(alert)
        logger.info("Alert %r created for %s", alert.title, alert.target_users or "everyone")

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_booking_created(self, event: BookingCreated) -> None:
        booking = self.booking_repo.get(event.booking_id)
        if booking is None:
            return

        self._add_alert(
            Alert(
                title="Room booked",
                message=(
                    f"{self._room_name(booking.room_id)} is booked for "
                    f"'{booking.title}' from {booking.start_time.isoformat()} "
                    f"to {booking.end_time.isoformat()}"
                ),
                type=AlertType.SUCCESS,
                source=AlertSource.SYSTEM,
                priority=AlertPriority.LOW,
                target_users=[booking.organizer_id],
                metadata={"booking_id": booking.id, "room_id": booking.room_id},
            )
        )

    def on_booking_cancelled(self, event: BookingCancelled) -> None:
        booking = self.booking_repo.get(event.booking_id)
        if booking is None:
            return

        self._add_alert(
            Alert(
                title="Booking cancelled",
                message=(
                    f"'{booking.title}' in {self._room_name(booking.room_id)} "
                    "was cancelled; the slot is free again"
                ),
                type=AlertType.INFO,
                source=AlertSource.SYSTEM,
                target_users=[booking.organizer_id, *booking.attendees],
                metadata={"booking_id": booking.id, "room_id": booking.room_id},
            )
        )

    def on_event_created(self, event: EventCreated) -> None:
        stored = self.event_repo.get(event.event_id)
        if stored is None or stored.status == EventStatus.CANCELLED:
            return

        # 1. Schedule reminders
        schedule_reminders(
            event_id=stored.id,
            reminder_times=stored.reminders,
            schedule_repo=self.reminder_schedule_repo,
        )

        # 2. Soft conflict check against other calendar events
        result = self.event_checker.check_conflict(
            ResourceScope.unscoped(), stored.interval, exclude_id=stored.id
        )
        if result.has_conflict:
            self.bus.publish(
                ConflictDetected(
                    event_id=stored.id,
                    conflicting_event_ids=[c.id for c in result.conflicts],
                )
            )

    def on_conflict_detected(self, event: ConflictDetected) -> None:
        stored = self.event_repo.get(event.event_id)
        if stored is None:
            return

        conflict_titles = []
        for cid in event.conflicting_event_ids:
            conflicting = self.event_repo.get(cid)
            if conflicting:
                conflict_titles.append(f"{conflicting.title} ({cid})")
            else:
                conflict_titles.append(cid)

        self._add_alert(
            Alert(
                title="Scheduling conflict",
                message=f"'{stored.title}' overlaps with: {', '.join(conflict_titles)}",
                type=AlertType.WARNING,
                source=AlertSource.SYSTEM,
                priority=AlertPriority.MEDIUM,
                target_users=[stored.created_by],
                metadata={
                    "event_id": stored.id,
                    "conflicting_event_ids": event.conflicting_event_ids,
                },
            )
        )

    def on_reminder_sent(self, event: ReminderSent) -> None:
        stored = self.event_repo.get(event.event_id)
        if stored is None:
            return
        if stored.status == EventStatus.CANCELLED:
            logger.info("Dropping reminders for cancelled event %s", stored.id)
            self.reminder_schedule_repo.delete_for_event(stored.id)
            return

        self.reminder_schedule_repo.mark_sent(event.schedule_item_id, event.sent_at)
        self._add_alert(
            Alert(
                title="Event reminder",
                message=f"'{stored.title}' starts at {stored.start.isoformat()}",
                type=AlertType.INFO,
                source=AlertSource.SYSTEM,
                target_users=[stored.created_by, *stored.attendees],
                metadata={
                    "event_id": stored.id,
                    "schedule_item_id": event.schedule_item_id,
                },
            )
        )
