"""
Common Value Objects

Value objects used across multiple domains:
- DateRange: A range of calendar dates (blackouts, day-rental spans)
- TimeRange: A half-open interval between two timezone-aware instants
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterator

from shared.domain.base import ValueObject


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Date range value object

    Represents a range from start_date (inclusive) to end_date (exclusive).
    Used for blackout periods and the dates a rental touches.
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.start_date >= self.end_date:
            raise ValueError(f"Start date ({self.start_date}) must be before end date ({self.end_date})")

    @classmethod
    def inclusive(cls, first: date, last: date) -> 'DateRange':
        """Build a range from an inclusive first and last day."""
        return cls(first, last + timedelta(days=1))

    def overlaps_with(self, other: 'DateRange') -> bool:
        """
        Check if this range overlaps with another

        Note: end_date is exclusive, so adjacent ranges don't overlap.

        Examples:
            - DateRange(25, 28) overlaps with DateRange(27, 30) -> True
            - DateRange(25, 28) overlaps with DateRange(28, 31) -> False (adjacent)
        """
        if not isinstance(other, DateRange):
            raise TypeError("Can only check overlap with another DateRange")

        return (self.start_date < other.end_date and
                self.end_date > other.start_date)

    def contains(self, check_date: date) -> bool:
        """start_date is inclusive, end_date is exclusive"""
        return self.start_date <= check_date < self.end_date

    def days(self) -> Iterator[date]:
        current = self.start_date
        while current < self.end_date:
            yield current
            current += timedelta(days=1)

    def __len__(self) -> int:
        return (self.end_date - self.start_date).days

    def __str__(self):
        return f"{self.start_date.isoformat()} - {self.end_date.isoformat()}"

    def __repr__(self):
        return f"DateRange({self.start_date}, {self.end_date})"


@dataclass(frozen=True)
class TimeRange(ValueObject):
    """
    Time range value object

    A half-open interval [start, end) between two aware datetimes. Two ranges
    that merely touch (one ends exactly when the other starts) do not overlap.
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("TimeRange requires timezone-aware datetimes")
        if self.start >= self.end:
            raise ValueError(f"Start ({self.start}) must be before end ({self.end})")

    def overlaps_with(self, other: 'TimeRange') -> bool:
        if not isinstance(other, TimeRange):
            raise TypeError("Can only check overlap with another TimeRange")
        return self.start < other.end and self.end > other.start

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def expanded_to(self, granularity: timedelta) -> 'TimeRange':
        """
        Widen the range outward to the nearest multiples of ``granularity``

        Quanta are aligned to the Unix epoch, so any two ranges expanded with
        the same granularity share a quantum exactly when they would claim a
        common slice.
        """
        step = int(granularity.total_seconds())
        start_ts = int(self.start.timestamp())
        end_ts = int(-(-self.end.timestamp() // 1))
        floor = start_ts - start_ts % step
        ceil = end_ts if end_ts % step == 0 else end_ts + step - end_ts % step
        return TimeRange(
            datetime.fromtimestamp(floor, tz=timezone.utc),
            datetime.fromtimestamp(ceil, tz=timezone.utc),
        )

    def slice_starts(self, granularity: timedelta) -> Iterator[datetime]:
        """Yield the start of every quantum the range touches."""
        expanded = self.expanded_to(granularity)
        current = expanded.start
        while current < expanded.end:
            yield current
            current += granularity

    def __str__(self):
        return f"{self.start.isoformat()} - {self.end.isoformat()}"

    def __repr__(self):
        return f"TimeRange({self.start.isoformat()}, {self.end.isoformat()})"
