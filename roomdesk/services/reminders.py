"""Service for scheduling calendar-event reminders."""

from __future__ import annotations

from datetime import datetime

from roomdesk.domain.models import ReminderScheduleItem
from roomdesk.repos.memory import ReminderScheduleRepository


def schedule_reminders(
    event_id: str,
    reminder_times: list[datetime],
    schedule_repo: ReminderScheduleRepository,
) -> list[ReminderScheduleItem]:
    """Create one schedule item per distinct reminder time.

    Returns the created ReminderScheduleItem instances in trigger order.
    """
    items: list[ReminderScheduleItem] = []
    for trigger_time in sorted(set(reminder_times)):
        item = ReminderScheduleItem(event_id=event_id, trigger_time=trigger_time)
        schedule_repo.add(item)
        items.append(item)

    return items
