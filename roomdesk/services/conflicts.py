"""Service for detecting scheduling conflicts between reservations."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Protocol

from roomdesk.domain.models import (
    ConflictResult,
    Interval,
    Reservation,
    ResourceScope,
)

logger = logging.getLogger(__name__)


def overlaps(a: Interval, b: Interval) -> bool:
    """Return True when two half-open intervals share at least one instant.

    Overlap rule: conflict if a.start < b.end AND b.start < a.end.
    Exact boundary touches (a.end == b.start) are NOT considered conflicts.
    """
    return a.start < b.end and b.start < a.end


class ReservationReader(Protocol):
    """Read side of a reservation store.

    Must return every active reservation for ``resource_id`` that could
    overlap ``interval_hint``. Returning extra rows is harmless; missing rows
    lets conflicting writes through.
    """

    def find_active_by_resource(
        self, resource_id: str | None, interval_hint: Interval
    ) -> Sequence[Reservation]: ...


def _sort_key(reservation: Reservation):
    return (reservation.interval.start, reservation.id)


def find_conflicts(
    scope: ResourceScope,
    candidate: Interval,
    existing: Iterable[Reservation],
    exclude_id: str | None = None,
) -> list[Reservation]:
    """Filter ``existing`` down to the reservations that conflict with ``candidate``.

    Drops the excluded id, cancelled reservations and anything outside
    ``scope`` before applying the overlap rule. The result is sorted by
    interval start, then id.
    """
    conflicts = [
        reservation
        for reservation in existing
        if reservation.id != exclude_id
        and reservation.is_active
        and reservation.resource_id == scope.resource_id
        and overlaps(candidate, reservation.interval)
    ]
    conflicts.sort(key=_sort_key)
    return conflicts


class ConflictChecker:
    """Entry point for conflict checks against an injected reservation reader.

    Each call performs exactly one read; failures from the reader propagate
    unchanged.
    """

    def __init__(self, reader: ReservationReader) -> None:
        self.reader = reader

    def check_conflict(
        self,
        scope: ResourceScope | str | None,
        interval: Interval,
        exclude_id: str | None = None,
    ) -> ConflictResult:
        if not isinstance(scope, ResourceScope):
            scope = ResourceScope(resource_id=scope)

        candidates = self.reader.find_active_by_resource(scope.resource_id, interval)
        conflicts = find_conflicts(scope, interval, candidates, exclude_id=exclude_id)
        logger.debug(
            "Conflict check for %s [%s, %s): %d candidates, %d conflicts",
            scope.resource_id or "<global>",
            interval.start.isoformat(),
            interval.end.isoformat(),
            len(candidates),
            len(conflicts),
        )
        return ConflictResult.from_conflicts(conflicts)
