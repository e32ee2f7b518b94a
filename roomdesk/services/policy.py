"""Accept/reject decisions on top of a ConflictResult."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

from roomdesk.domain.models import ConflictResult, Reservation


class ConflictPolicy(StrEnum):
    HARD = "hard"  # room bookings: the slot is exclusive
    SOFT = "soft"  # calendar events: overlaps are only reported


class Resolution(BaseModel):
    accepted: bool
    policy: ConflictPolicy
    conflicts: list[Reservation] = Field(default_factory=list)

    @property
    def warnings(self) -> list[Reservation]:
        """Conflicts that were reported but did not block the write."""
        return self.conflicts if self.accepted else []


def resolve(result: ConflictResult, policy: ConflictPolicy) -> Resolution:
    """Decide whether the caller may persist the checked reservation."""
    accepted = policy == ConflictPolicy.SOFT or not result.has_conflict
    return Resolution(accepted=accepted, policy=policy, conflicts=result.conflicts)
