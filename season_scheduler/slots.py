"""
Slot calendar: the legal game start times for a field.

A field's calendar is derived from the season window, the field's
availability rules, its exclusion dates, its start increment and the
account-wide season exclusion windows. Days step forward one at a time; each
day's open ranges are unioned and cut into back-to-back slots of exactly
``increment`` minutes with no partial trailing slot.

A day with no matching availability rule is closed. Any enabled exclusion
wins over any availability.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator, Sequence

from .data.models import (
    AvailabilityRule,
    ExclusionWindow,
    FieldExclusionDate,
    SeasonWindow,
)


MINUTES_PER_DAY = 1440


@dataclass(frozen=True)
class Slot:
    """A candidate (field, start time) pair with a fixed duration."""
    field_id: str
    start: datetime
    duration_minutes: int

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)

    @property
    def date(self) -> date:
        return self.start.date()

    @property
    def sort_key(self) -> tuple[datetime, str]:
        """Earliest date, then earliest time, then lowest field id."""
        return (self.start, self.field_id)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and self.end > start

    def __str__(self) -> str:
        return f"{self.field_id} {self.start:%Y-%m-%d %H:%M}-{self.end:%H:%M}"


def _at_minutes(day: date, minutes: int) -> datetime:
    """Timestamp for minutes-from-midnight on a given day (1440 = next midnight)."""
    return datetime.combine(day, time()) + timedelta(minutes=minutes)


def open_ranges(day: date, rules: Iterable[AvailabilityRule]) -> list[tuple[int, int]]:
    """
    Get the open (start_minutes, end_minutes) ranges for a day.

    Ranges from every matching rule are unioned; overlapping or touching
    ranges merge into one. Zero-length ranges are dropped.
    """
    ranges = sorted(
        (rule.start_minutes, rule.end_minutes)
        for rule in rules
        if rule.applies_on(day) and rule.end_minutes > rule.start_minutes
    )

    merged: list[tuple[int, int]] = []
    for start, end in ranges:
        if merged and start <= merged[-1][1]:
            prev_start, prev_end = merged[-1]
            merged[-1] = (prev_start, max(prev_end, end))
        else:
            merged.append((start, end))
    return merged


def legal_slots(
    field_id: str,
    season: SeasonWindow,
    rules: Sequence[AvailabilityRule],
    exclusion_dates: Iterable[FieldExclusionDate | date],
    increment_minutes: int,
    season_exclusions: Sequence[ExclusionWindow] = (),
) -> Iterator[Slot]:
    """
    Generate the legal slots for one field, in ascending start order.

    Args:
        field_id: Field the slots belong to
        season: Season window (inclusive dates)
        rules: The field's availability rules
        exclusion_dates: Dates on which the field is closed (disabled
            FieldExclusionDate entries are ignored)
        increment_minutes: Minutes between consecutive slot starts; also the
            slot duration
        season_exclusions: Account-wide blackout windows

    Yields:
        Slot objects
    """
    if increment_minutes <= 0:
        raise ValueError(f"increment_minutes must be positive, got {increment_minutes}")

    closed_days: set[date] = set()
    for entry in exclusion_dates:
        if isinstance(entry, FieldExclusionDate):
            if entry.enabled:
                closed_days.add(entry.date)
        else:
            closed_days.add(entry)

    blackouts = [w for w in season_exclusions if w.enabled]

    day = season.start_date
    while day <= season.end_date:
        if day not in closed_days:
            for range_start, range_end in open_ranges(day, rules):
                start = range_start
                while start + increment_minutes <= range_end:
                    slot_start = _at_minutes(day, start)
                    slot_end = slot_start + timedelta(minutes=increment_minutes)
                    if not any(w.overlaps(slot_start, slot_end) for w in blackouts):
                        yield Slot(field_id, slot_start, increment_minutes)
                    start += increment_minutes
        day += timedelta(days=1)


class SlotCalendar:
    """
    Restartable view of one field's legal slots.

    Iterating the calendar re-runs legal_slots, so every pass yields the same
    sequence.
    """

    def __init__(
        self,
        field_id: str,
        season: SeasonWindow,
        rules: Sequence[AvailabilityRule],
        exclusion_dates: Iterable[FieldExclusionDate | date],
        increment_minutes: int,
        season_exclusions: Sequence[ExclusionWindow] = (),
    ):
        self.field_id = field_id
        self.season = season
        self.rules = tuple(rules)
        self.exclusion_dates = tuple(exclusion_dates)
        self.increment_minutes = increment_minutes
        self.season_exclusions = tuple(season_exclusions)

    def __iter__(self) -> Iterator[Slot]:
        return legal_slots(
            self.field_id,
            self.season,
            self.rules,
            self.exclusion_dates,
            self.increment_minutes,
            self.season_exclusions,
        )

    def slots(self) -> list[Slot]:
        return list(self)

    def __repr__(self) -> str:
        return (
            f"SlotCalendar(field_id={self.field_id!r}, "
            f"increment={self.increment_minutes}, rules={len(self.rules)})"
        )


def merge_calendars(calendars: Iterable[Iterable[Slot]]) -> Iterator[Slot]:
    """Merge per-field slot sequences into one (date, time, field) ordered stream."""
    return heapq.merge(*calendars, key=lambda s: s.sort_key)
