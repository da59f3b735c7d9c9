"""
Resource Calendar Aggregate

In-memory view of what a single unit or crew is already committed to.
The availability engine loads every live block for the candidate resources
in one query, folds them into calendars and asks each calendar whether a
window is free.

The calendar is advisory. The authoritative guard is the unique index on
BlockSlice: two writers that both saw a calendar as free still cannot both
commit overlapping blocks.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Iterable, List, Optional

from shared.domain.base import Aggregate
from shared.domain.value_objects import TimeRange

UNIT = "unit"
CREW = "crew"


@dataclass(frozen=True)
class Occupancy:
    """One existing block on the resource."""

    interval: TimeRange
    block_type: str = ""
    booking_id: Optional[int] = None
    hold_id: Optional[int] = None


@dataclass(eq=False)
class ResourceCalendar(Aggregate):
    """
    Calendar for one resource

    Overlap is judged on intervals widened to the slice granularity, exactly
    as the storage constraint judges it, so a window reported free here is
    never rejected at insert time for want of a concurrent writer.
    """

    resource_type: str = UNIT
    resource_id: int = 0
    granularity: timedelta = timedelta(minutes=15)
    occupancies: List[Occupancy] = field(default_factory=list)

    def add(self, occupancy: Occupancy):
        self.occupancies.append(occupancy)

    def conflicts_for(self, window: TimeRange) -> List[Occupancy]:
        wanted = window.expanded_to(self.granularity)
        return [
            occ for occ in self.occupancies
            if occ.interval.expanded_to(self.granularity).overlaps_with(wanted)
        ]

    def is_free(self, window: TimeRange) -> bool:
        return not self.conflicts_for(window)

    def __str__(self):
        return f"ResourceCalendar({self.resource_type}:{self.resource_id}, occupancies={len(self.occupancies)})"


def build_calendars(
    resource_type: str,
    resource_ids: Iterable[int],
    occupancies: Iterable[tuple[int, Occupancy]],
    granularity: timedelta,
) -> dict[int, ResourceCalendar]:
    """Calendars for every candidate, including ones with nothing booked."""
    calendars = {
        rid: ResourceCalendar(resource_type=resource_type, resource_id=rid, granularity=granularity)
        for rid in resource_ids
    }
    for rid, occupancy in occupancies:
        if rid in calendars:
            calendars[rid].add(occupancy)
    return calendars
