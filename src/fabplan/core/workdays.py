from __future__ import annotations

import math
from datetime import date, timedelta

# weekday name -> enabled
CompanyCalendar = dict[str, bool]

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
# Days a calendar can enable; weekends are always off.
WORKING_WEEKDAYS = WEEKDAYS[:5]

DEFAULT_CALENDAR: CompanyCalendar = {
    "monday": True,
    "tuesday": True,
    "wednesday": True,
    "thursday": True,
    "friday": True,
    "saturday": False,
    "sunday": False,
}


def is_working_day(day: date, calendar: CompanyCalendar | None = None) -> bool:
    """Weekends never count, even if enabled in the calendar."""
    name = WEEKDAYS[day.weekday()]
    if name not in WORKING_WEEKDAYS:
        return False
    cal = DEFAULT_CALENDAR if calendar is None else calendar
    return bool(cal.get(name, False))


def has_working_days(calendar: CompanyCalendar) -> bool:
    return any(calendar.get(day, False) for day in WORKING_WEEKDAYS)


def next_working_day(day: date, calendar: CompanyCalendar | None = None) -> date:
    if calendar is not None and not has_working_days(calendar):
        raise ValueError("El calendario no tiene días hábiles")
    nxt = day + timedelta(days=1)
    while not is_working_day(nxt, calendar):
        nxt += timedelta(days=1)
    return nxt


def add_working_days(start: date, days: float, calendar: CompanyCalendar | None = None) -> date:
    """Move forward `days` working days from start.

    A non-working start is first shifted to the next working day. Fractions
    are dropped: anything under one day finishes on the (shifted) start day.
    """
    current = start if is_working_day(start, calendar) else next_working_day(start, calendar)
    if days < 1:
        return current

    remaining = int(math.floor(days))
    while remaining > 0:
        current = next_working_day(current, calendar)
        remaining -= 1
    return current


def business_days_between(start: date, end: date) -> int:
    """Weekdays in [start, end); negative when end is before start."""
    if end < start:
        return -business_days_between(end, start)
    count = 0
    day = start
    while day < end:
        if day.weekday() < 5:
            count += 1
        day += timedelta(days=1)
    return count
