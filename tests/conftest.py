from datetime import datetime, timedelta
from pathlib import Path

import dateutil.tz
import pytest

from mcal.models import CalendarEvent, SelectionWindow

TZ = dateutil.tz.tzoffset('AEST', 10 * 3600)

WORK_ICS = """\
BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//mcal tests//EN
X-WR-CALNAME:Work
BEGIN:VEVENT
UID:standup@example.com
DTSTART:20261019T090000
DTEND:20261019T093000
RRULE:FREQ=DAILY;COUNT=5
EXDATE:20261022T090000
SUMMARY:Standup
END:VEVENT
BEGIN:VEVENT
UID:standup@example.com
RECURRENCE-ID:20261020T090000
SEQUENCE:1
DTSTART:20261020T100000
DTEND:20261020T103000
SUMMARY:Standup (moved)
END:VEVENT
BEGIN:VEVENT
UID:lunch@example.com
DTSTART:20261019T020000Z
DURATION:PT1H
SUMMARY:Team lunch
END:VEVENT
BEGIN:VEVENT
UID:offsite@example.com
DTSTART;VALUE=DATE:20261019
DTEND;VALUE=DATE:20261020
SUMMARY:Offsite
END:VEVENT
BEGIN:VEVENT
UID:conference@example.com
DTSTART:20261018T090000
DTEND:20261021T170000
SUMMARY:Conference
END:VEVENT
BEGIN:VEVENT
UID:review@example.com
DTSTART:20261019T140000
DTEND:20261019T150000
SUMMARY:Quarterly Planning Session
END:VEVENT
END:VCALENDAR
"""

HOME_ICS = """\
BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//mcal tests//EN
BEGIN:VEVENT
UID:gym@example.com
DTSTART:20261019T070000
DTEND:20261019T080000
SUMMARY:Gym
END:VEVENT
BEGIN:VEVENT
UID:dinner@example.com
DTSTART:20261019T190000
DTEND:20261019T210000
END:VEVENT
END:VCALENDAR
"""


@pytest.fixture
def tz():
    return TZ


@pytest.fixture
def now():
    return datetime(2026, 10, 19, 8, 30, tzinfo=TZ)


@pytest.fixture
def today_window():
    start = datetime(2026, 10, 19, tzinfo=TZ)
    return SelectionWindow(start_of_range=start, end_of_range=start + timedelta(days=1))


@pytest.fixture
def make_event():
    def _make_event(
        identifier: str | None = 'A',
        start: str | None = '09:00',
        end: str | None = '09:30',
        title: str | None = 'Standup',
        all_day: bool = False,
        day: int = 19,
    ) -> CalendarEvent:
        def at(hhmm):
            if hhmm is None:
                return None
            hour, minute = map(int, hhmm.split(':'))
            return datetime(2026, 10, day, hour, minute, tzinfo=TZ)

        return CalendarEvent(
            identifier=identifier,
            title=title,
            start=at(start),
            end=at(end),
            all_day=all_day,
        )

    return _make_event


@pytest.fixture
def calendar_dir(tmp_path) -> Path:
    """Directory holding a 'Work' calendar (named by X-WR-CALNAME) and a 'home' calendar (named by file)."""
    (tmp_path / 'work-feed.ics').write_text(WORK_ICS, encoding='utf-8')
    (tmp_path / 'home.ics').write_text(HOME_ICS, encoding='utf-8')
    return tmp_path
