"""
Slot computation for the public booking page.

Times are minutes from 00:00 of the selected day. A range may end after 24:00
when business hours or an artist shift cross midnight.
"""

from datetime import date, datetime, timedelta
from typing import Any, Iterable, NamedTuple, Optional

MINUTES_PER_DAY = 24 * 60
DEFAULT_BUSINESS_HOURS = ((10 * 60, 22 * 60),)


class TimeRange(NamedTuple):
    start_min: int
    end_min: int


def parse_hhmm(value: str) -> int:
    try:
        hours, minutes = (int(part) for part in value.split(":"))
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid time: {value!r}") from e
    return hours * 60 + minutes


def format_hhmm(total_min: int) -> str:
    return f"{total_min // 60:02d}:{total_min % 60:02d}"


def js_weekday(day: date) -> int:
    """0=Sunday .. 6=Saturday"""
    return (day.weekday() + 1) % 7


def _span(start: str, end: str) -> TimeRange:
    start_min = parse_hhmm(start)
    end_min = parse_hhmm(end)
    if end_min < start_min:
        end_min += MINUTES_PER_DAY
    return TimeRange(start_min, end_min)


def merge_ranges(ranges: Iterable[TimeRange]) -> list[TimeRange]:
    merged: list[TimeRange] = []
    for r in sorted(ranges, key=lambda r: r.start_min):
        if merged and r.start_min <= merged[-1].end_min:
            last = merged[-1]
            merged[-1] = TimeRange(last.start_min, max(last.end_min, r.end_min))
        else:
            merged.append(TimeRange(*r))
    return merged


def subtract_ranges(base: Iterable[TimeRange], blocks: Iterable[TimeRange]) -> list[TimeRange]:
    result = merge_ranges(base)
    for block in merge_ranges(blocks):
        remaining = []
        for r in result:
            if block.end_min <= r.start_min or block.start_min >= r.end_min:
                remaining.append(r)
                continue
            if block.start_min > r.start_min:
                remaining.append(TimeRange(r.start_min, block.start_min))
            if block.end_min < r.end_min:
                remaining.append(TimeRange(block.end_min, r.end_min))
        result = remaining
    return result


def build_slot_starts(ranges: Iterable[TimeRange], duration_min: int, step_min: int) -> list[str]:
    """Start times that fit `duration_min`; starts stay on the day, the session may spill past midnight."""
    slots = []
    for r in merge_ranges(ranges):
        t = r.start_min
        while t + duration_min <= r.end_min and t < MINUTES_PER_DAY:
            slots.append(format_hhmm(t))
            t += step_min
    return slots


def parse_branch_business_hours(business_hours: Any, weekday: int) -> Optional[list[TimeRange]]:
    """
    Accepts either
        {"<weekday>": [{"start": "10:00", "end": "20:00"}, ...]}
    or
        {"days": {"<weekday>": {"open": "10:00", "close": "20:00"}}}
    Returns None when the value is missing or not understood.
    """
    if not isinstance(business_hours, dict):
        return None
    try:
        direct = business_hours.get(str(weekday), business_hours.get(weekday))
        if isinstance(direct, list):
            return [
                _span(entry["start"], entry["end"])
                for entry in direct
                if isinstance(entry, dict) and entry.get("start") and entry.get("end")
            ]
        days = business_hours.get("days")
        if isinstance(days, dict):
            day = days.get(str(weekday), days.get(weekday))
            if isinstance(day, dict) and day.get("open") and day.get("close"):
                return [_span(day["open"], day["close"])]
    except ValueError:
        return None
    return None


def availability_to_ranges(records: Iterable[Any]) -> tuple[list[TimeRange], list[TimeRange]]:
    """(available, blocked) ranges from ArtistAvailability rows"""
    available, blocked = [], []
    for record in records:
        r = _span(record.start_time, record.end_time)
        (blocked if record.is_blocked else available).append(r)
    return merge_ranges(available), merge_ranges(blocked)


def appointments_to_ranges(appointments: Iterable[Any], day: date) -> list[TimeRange]:
    day_start = datetime(day.year, day.month, day.day)
    ranges = []
    for appointment in appointments:
        start = (appointment.start_at - day_start) // timedelta(minutes=1)
        # Round the end up to the next whole minute
        end = -((day_start - appointment.end_at) // timedelta(minutes=1))
        ranges.append(TimeRange(max(0, start), min(MINUTES_PER_DAY, end)))
    return ranges


def compute_available_slots(
    branch_business_hours: Any,
    day: date,
    duration_min: int,
    step_min: int,
    availability_records: Iterable[Any] = (),
    appointments: Iterable[Any] = (),
) -> list[str]:
    """Artist availability overrides branch hours; blocked windows and booked appointments are removed."""
    branch_ranges = parse_branch_business_hours(branch_business_hours, js_weekday(day))
    if branch_ranges is None:
        branch_ranges = [TimeRange(*r) for r in DEFAULT_BUSINESS_HOURS]

    available, blocked = availability_to_ranges(availability_records)
    base = available or branch_ranges
    open_ranges = subtract_ranges(subtract_ranges(base, blocked), appointments_to_ranges(appointments, day))
    return build_slot_starts(open_ranges, duration_min, step_min)
