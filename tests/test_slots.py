"""Tests for slot calendar generation."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from season_scheduler.data.models import (
    AvailabilityRule,
    ExclusionWindow,
    FieldExclusionDate,
    SeasonWindow,
)
from season_scheduler.slots import (
    Slot,
    SlotCalendar,
    legal_slots,
    merge_calendars,
    open_ranges,
)


WEEK = SeasonWindow(start_date=date(2025, 1, 1), end_date=date(2025, 1, 7))


def rule(start: int, end: int, days: list[int] | None = None, **kwargs) -> AvailabilityRule:
    return AvailabilityRule(days_of_week=days or [], start_minutes=start, end_minutes=end, **kwargs)


class TestOpenRanges:
    """Tests for per-day range union."""

    def test_single_rule(self):
        assert open_ranges(date(2025, 1, 1), [rule(1080, 1260)]) == [(1080, 1260)]

    def test_overlapping_rules_merge(self):
        ranges = open_ranges(date(2025, 1, 1), [rule(1140, 1260), rule(1080, 1170)])
        assert ranges == [(1080, 1260)]

    def test_touching_rules_merge(self):
        ranges = open_ranges(date(2025, 1, 1), [rule(600, 700), rule(700, 800)])
        assert ranges == [(600, 800)]

    def test_disjoint_rules_stay_separate(self):
        ranges = open_ranges(date(2025, 1, 1), [rule(900, 1000), rule(600, 700)])
        assert ranges == [(600, 700), (900, 1000)]

    def test_day_of_week_filter(self):
        # 2025-01-01 is a Wednesday (2)
        assert open_ranges(date(2025, 1, 1), [rule(600, 700, days=[2])]) == [(600, 700)]
        assert open_ranges(date(2025, 1, 1), [rule(600, 700, days=[0, 1])]) == []

    def test_rule_date_window(self):
        r = rule(600, 700, start_date=date(2025, 1, 3), end_date=date(2025, 1, 4))
        assert open_ranges(date(2025, 1, 2), [r]) == []
        assert open_ranges(date(2025, 1, 3), [r]) == [(600, 700)]
        assert open_ranges(date(2025, 1, 4), [r]) == [(600, 700)]
        assert open_ranges(date(2025, 1, 5), [r]) == []

    def test_disabled_rule_ignored(self):
        assert open_ranges(date(2025, 1, 1), [rule(600, 700, enabled=False)]) == []

    def test_zero_length_rule_dropped(self):
        assert open_ranges(date(2025, 1, 1), [rule(600, 600)]) == []


class TestLegalSlots:
    """Tests for legal slot generation."""

    def test_subdivides_each_day(self):
        slots = list(legal_slots("F1", WEEK, [rule(1080, 1260)], [], 90))
        assert len(slots) == 14
        assert slots[0] == Slot("F1", datetime(2025, 1, 1, 18, 0), 90)
        assert slots[1] == Slot("F1", datetime(2025, 1, 1, 19, 30), 90)
        assert slots[-1].start == datetime(2025, 1, 7, 19, 30)

    def test_no_partial_trailing_slot(self):
        slots = list(legal_slots("F1", WEEK, [rule(1080, 1250)], [], 90))
        assert len(slots) == 7
        assert all(s.start.hour == 18 for s in slots)

    def test_no_rules_means_closed(self):
        assert list(legal_slots("F1", WEEK, [], [], 90)) == []

    def test_exclusion_date_drops_day(self):
        closed = [FieldExclusionDate(date=date(2025, 1, 1))]
        slots = list(legal_slots("F1", WEEK, [rule(1080, 1260)], closed, 90))
        assert slots[0].start == datetime(2025, 1, 2, 18, 0)
        assert len(slots) == 12

    def test_disabled_exclusion_date_ignored(self):
        closed = [FieldExclusionDate(date=date(2025, 1, 1), enabled=False)]
        slots = list(legal_slots("F1", WEEK, [rule(1080, 1260)], closed, 90))
        assert len(slots) == 14

    def test_plain_dates_accepted(self):
        slots = list(legal_slots("F1", WEEK, [rule(1080, 1260)], [date(2025, 1, 7)], 90))
        assert slots[-1].start == datetime(2025, 1, 6, 19, 30)

    def test_season_exclusion_removes_overlapping_slots(self):
        blackout = ExclusionWindow(
            start=datetime(2025, 1, 2, 19, 0), end=datetime(2025, 1, 2, 19, 30)
        )
        slots = list(legal_slots("F1", WEEK, [rule(1080, 1260)], [], 90, [blackout]))
        jan_2 = [s for s in slots if s.date == date(2025, 1, 2)]
        # The 19:30 slot only touches the window
        assert [s.start.time().isoformat() for s in jan_2] == ["19:30:00"]

    def test_disabled_season_exclusion_ignored(self):
        blackout = ExclusionWindow(
            start=datetime(2025, 1, 1), end=datetime(2025, 1, 8), enabled=False
        )
        slots = list(legal_slots("F1", WEEK, [rule(1080, 1260)], [], 90, [blackout]))
        assert len(slots) == 14

    def test_slot_may_end_at_midnight(self):
        slots = list(legal_slots("F1", WEEK, [rule(1350, 1440)], [], 90))
        assert slots[0].end == datetime(2025, 1, 2, 0, 0)
        assert slots[0].date == date(2025, 1, 1)

    def test_invalid_increment(self):
        with pytest.raises(ValueError, match="increment_minutes"):
            list(legal_slots("F1", WEEK, [rule(1080, 1260)], [], 0))


class TestSlotCalendar:
    """Tests for the restartable calendar wrapper."""

    def test_iterating_twice_yields_same_sequence(self):
        calendar = SlotCalendar("F1", WEEK, [rule(1080, 1260)], [], 90)
        assert list(calendar) == list(calendar)
        assert calendar.slots() == list(calendar)

    def test_merge_orders_by_time_then_field(self):
        f2 = SlotCalendar("F2", WEEK, [rule(1080, 1260)], [], 90)
        f1 = SlotCalendar("F1", WEEK, [rule(1140, 1260)], [], 120)
        merged = list(merge_calendars([f1, f2]))
        assert [s.sort_key for s in merged] == sorted(s.sort_key for s in merged)
        assert merged[0] == Slot("F2", datetime(2025, 1, 1, 18, 0), 90)
        assert merged[1] == Slot("F1", datetime(2025, 1, 1, 19, 0), 120)

    def test_same_start_lower_field_first(self):
        a = SlotCalendar("A", WEEK, [rule(1080, 1260)], [], 90)
        b = SlotCalendar("B", WEEK, [rule(1080, 1260)], [], 90)
        merged = list(merge_calendars([b, a]))
        assert [s.field_id for s in merged[:2]] == ["A", "B"]


class TestSlot:
    """Tests for Slot helpers."""

    def test_end_and_overlap(self):
        slot = Slot("F1", datetime(2025, 1, 1, 18, 0), 90)
        assert slot.end == datetime(2025, 1, 1, 19, 30)
        assert slot.overlaps(datetime(2025, 1, 1, 19, 0), datetime(2025, 1, 1, 20, 0))
        assert not slot.overlaps(datetime(2025, 1, 1, 19, 30), datetime(2025, 1, 1, 21, 0))
        assert str(slot) == "F1 2025-01-01 18:00-19:30"
