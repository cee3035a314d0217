from datetime import date, datetime
from types import SimpleNamespace

import pytest

from tattoo_crm.domain.appointments.availability import (
    TimeRange,
    build_slot_starts,
    compute_available_slots,
    js_weekday,
    merge_ranges,
    parse_branch_business_hours,
    parse_hhmm,
    subtract_ranges,
)


def test_parse_hhmm_rejects_garbage():
    assert parse_hhmm("09:30") == 570
    with pytest.raises(ValueError):
        parse_hhmm("nine")


def test_js_weekday_starts_on_sunday():
    assert js_weekday(date(2025, 1, 5)) == 0
    assert js_weekday(date(2025, 1, 11)) == 6


def test_merge_and_subtract():
    assert merge_ranges([TimeRange(100, 180), TimeRange(60, 120), TimeRange(200, 240)]) == [
        TimeRange(60, 180),
        TimeRange(200, 240),
    ]
    assert subtract_ranges([TimeRange(600, 1320)], [TimeRange(720, 780)]) == [
        TimeRange(600, 720),
        TimeRange(780, 1320),
    ]
    assert subtract_ranges([TimeRange(600, 700)], [TimeRange(500, 800)]) == []


def test_slot_starts_stay_on_the_day():
    assert build_slot_starts([TimeRange(600, 720)], 60, 30) == ["10:00", "10:30", "11:00"]
    assert build_slot_starts([TimeRange(1380, 1560)], 60, 60) == ["23:00"]


def test_business_hours_formats():
    assert parse_branch_business_hours({"1": [{"start": "10:00", "end": "20:00"}]}, 1) == [TimeRange(600, 1200)]
    overnight = {"days": {"5": {"open": "20:00", "close": "02:00"}}}
    assert parse_branch_business_hours(overnight, 5) == [TimeRange(1200, 1560)]
    assert parse_branch_business_hours(None, 1) is None
    assert parse_branch_business_hours({"1": [{"start": "xx", "end": "20:00"}]}, 1) is None


def test_default_hours_minus_booked_appointment():
    booked = SimpleNamespace(start_at=datetime(2025, 1, 6, 12, 0), end_at=datetime(2025, 1, 6, 13, 0))
    slots = compute_available_slots(None, date(2025, 1, 6), 60, 60, appointments=[booked])
    assert "12:00" not in slots
    assert slots[:2] == ["10:00", "11:00"]
    assert slots[-1] == "21:00"
    assert len(slots) == 11


def test_artist_availability_overrides_branch_hours():
    records = [
        SimpleNamespace(start_time="14:00", end_time="18:00", is_blocked=False),
        SimpleNamespace(start_time="15:00", end_time="16:00", is_blocked=True),
    ]
    hours = {"1": [{"start": "10:00", "end": "20:00"}]}
    slots = compute_available_slots(hours, date(2025, 1, 6), 60, 60, availability_records=records)
    assert slots == ["14:00", "16:00", "17:00"]
