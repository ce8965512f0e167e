"""
iCalendar event source

Loads calendars from .ics files, directories, URLs or stdin and expands
their events, recurrences included, for a date range.
"""
import logging
import sys
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import IO
from urllib.parse import urlparse

import dateutil.rrule
import dateutil.tz
import requests
from icalendar import Calendar, Component, vDDDLists, vInt, vRecur

from mcal.errors import AuthorizationError
from mcal.models import CalendarEvent

REMOTE_SCHEMES = ('http://', 'https://', 'webcal://')


def to_local_datetime(dt: date, tzinfo) -> datetime:
    """Convert a date or datetime to an aware datetime in the given timezone.

    Args:
        dt: date or datetime object; naive (floating) values are taken as local
        tzinfo: Local timezone

    Returns:
        Aware datetime object in ``tzinfo``
    """
    if isinstance(dt, datetime):
        if dt.tzinfo:
            return dt.astimezone(tzinfo)
        return dt.replace(tzinfo=tzinfo)
    return datetime(dt.year, dt.month, dt.day, tzinfo=tzinfo)


def to_naive_local_datetime(dt: date, tzinfo) -> datetime:
    return to_local_datetime(dt, tzinfo).replace(tzinfo=None)


def decoded_value(component: Component, key: str):
    prop = component.get(key)
    if prop is None:
        return None
    if isinstance(prop, list):
        prop = prop[0]
    return getattr(prop, 'dt', None)


def extract_datetime(component: Component, key: str, tzinfo) -> datetime | None:
    """Read a date or date-time property as a naive local datetime."""
    dt = decoded_value(component, key)
    if isinstance(dt, date):
        return to_naive_local_datetime(dt, tzinfo)
    return None


def get_sequence(component: Component) -> int:
    seq_prop = component.get('SEQUENCE')
    if isinstance(seq_prop, vInt):
        return int(seq_prop)
    return 0


def component_uid(component: Component) -> str | None:
    uid = component.get('UID')
    return str(uid) if uid is not None else None


def event_duration(component: Component, dtstart: datetime, all_day: bool, tzinfo) -> timedelta:
    """Duration from DTEND, then DURATION, then the RFC 5545 defaults."""
    dtend = extract_datetime(component, 'DTEND', tzinfo)
    if dtend is not None:
        return dtend - dtstart

    duration = decoded_value(component, 'DURATION')
    if isinstance(duration, timedelta):
        return duration

    return timedelta(days=1) if all_day else timedelta(0)


def extract_dates(props: list[vDDDLists] | vDDDLists, tzinfo) -> list[datetime]:
    extracted = []
    if not isinstance(props, list):
        props = [props]
    for prop in props:
        for ddd in prop.dts:
            ddd_dt = ddd.dt
            # RDATE periods are (start, end or duration); only the start matters here
            if isinstance(ddd_dt, tuple) and len(ddd_dt) == 2:
                ddd_dt = ddd_dt[0]
            if isinstance(ddd_dt, date):
                extracted.append(to_naive_local_datetime(ddd_dt, tzinfo))
    return extracted


def localize_until(prop: vRecur, tzinfo) -> vRecur:
    """Rewrite a UTC (or other aware) UNTIL as naive local time.

    Expansion runs in naive local time, where an aware UNTIL would be read
    as local wall-clock time.
    """
    until = prop.get('UNTIL')
    if not until:
        return prop
    until_value = until[0] if isinstance(until, list) else until
    if not isinstance(until_value, datetime) or until_value.tzinfo is None:
        return prop

    localized = vRecur(prop)
    localized['UNTIL'] = [to_naive_local_datetime(until_value, tzinfo)]
    return localized


def get_occurrences_in_range(
    component: Component,
    dtstart: datetime,
    range_start: datetime,
    range_end: datetime,
    tzinfo,
) -> list[datetime]:
    """Get the start times of all occurrences of an event within a range.

    Handles recurring events using RRULE, RDATE and EXDATE properties. All
    datetimes are naive local time, so recurrences keep their wall-clock time
    across DST changes.

    Args:
        component: VEVENT component
        dtstart: Naive local start of the first occurrence
        range_start: Start of the query range, inclusive
        range_end: End of the query range, inclusive
        tzinfo: Local timezone used for RDATE/EXDATE values

    Returns:
        List of naive local datetimes, one per occurrence
    """
    rules = dateutil.rrule.rruleset()

    has_rrule = False

    rrule_props = component.get('RRULE')
    if rrule_props:
        if not isinstance(rrule_props, list):
            rrule_props = [rrule_props]

        for prop in rrule_props:
            rrule_str = localize_until(prop, tzinfo).to_ical().decode('utf-8')
            try:
                rule = dateutil.rrule.rrulestr(
                    rrule_str,
                    dtstart=dtstart,
                    forceset=False,
                    ignoretz=True
                )
                rules.rrule(rule)
                has_rrule = True
            except ValueError:
                logging.warning(f"Invalid RRULE format: {rrule_str}, skipped.")
                continue

    if not has_rrule:
        rules.rdate(dtstart)

    rdates = component.get('RDATE')
    if rdates:
        for rdate in extract_dates(rdates, tzinfo):
            rules.rdate(rdate)

    exdates = component.get('EXDATE')
    if exdates:
        for exdate in extract_dates(exdates, tzinfo):
            rules.exdate(exdate)

    try:
        return list(rules.between(range_start, range_end, inc=True))
    except (ValueError, TypeError) as e:
        logging.warning(f"Error expanding occurrences of {component_uid(component)}: {e}")
        return []


def latest_overrides(components: list[Component], tzinfo) -> dict[tuple[str | None, datetime], Component]:
    """Map (UID, RECURRENCE-ID) to the override with the highest SEQUENCE."""
    latest: dict[tuple[str | None, datetime], Component] = {}
    for component in components:
        rid_value = extract_datetime(component, 'RECURRENCE-ID', tzinfo)
        if rid_value is None:
            continue
        key = (component_uid(component), rid_value)
        if key not in latest or get_sequence(component) > get_sequence(latest[key]):
            latest[key] = component
    return latest


def calendar_name(calendar: Calendar, fallback: str) -> str:
    name = calendar.get('X-WR-CALNAME')
    if name is not None and str(name).strip():
        return str(name).strip()
    return fallback


@dataclass
class CalendarHandle:
    name: str
    calendar: Calendar
    origin: str


class IcsEventSource:
    """Event source backed by iCalendar data"""

    def __init__(
        self,
        sources: list[str],
        tzinfo=None,
        timeout: int = 10,
        stdin: IO[str] | None = None,
    ):
        """
        Initialize the event source

        Args:
            sources: .ics files, directories or http(s)/webcal URLs; empty reads stdin
            tzinfo: Local timezone events are converted to (default: system local)
            timeout: HTTP request timeout in seconds
            stdin: Stream read when no sources are given (default: sys.stdin)
        """
        self.sources = list(sources)
        self.tzinfo = tzinfo or dateutil.tz.tzlocal()
        self.timeout = timeout
        self.stdin = stdin
        self._calendars: list[CalendarHandle] | None = None

    def load(self) -> list[CalendarHandle]:
        """Read every source.

        Missing, empty or unparsable sources are logged and skipped.

        Raises:
            AuthorizationError: If a source exists but access to it is denied
        """
        handles: list[CalendarHandle] = []

        if not self.sources:
            stream = self.stdin if self.stdin is not None else sys.stdin
            handles.extend(self._parse(stream.read(), 'stdin', 'stdin'))

        for source in self.sources:
            if source.lower().startswith(REMOTE_SCHEMES):
                handles.extend(self._read_url(source))
            else:
                handles.extend(self._read_path(Path(source).expanduser()))

        logging.info(f"Loaded {len(handles)} calendars: {', '.join(h.name for h in handles)}")
        self._calendars = handles
        return handles

    def list_calendars(self) -> list[CalendarHandle]:
        if self._calendars is None:
            raise RuntimeError("load() must be called before listing calendars")
        return list(self._calendars)

    def find_calendars(self, names: list[str]) -> list[CalendarHandle]:
        return [handle for handle in self.list_calendars() if handle.name in names]

    def fetch_events(
        self,
        handles: list[CalendarHandle],
        start_of_range: datetime,
        end_of_range: datetime,
    ) -> list[CalendarEvent]:
        """Fetch event occurrences overlapping a time range.

        Args:
            handles: Calendars to search
            start_of_range: Start of the range, inclusive
            end_of_range: End of the range, exclusive

        Returns:
            Events ordered by start and end time
        """
        range_start = to_naive_local_datetime(start_of_range, self.tzinfo)
        range_end = to_naive_local_datetime(end_of_range, self.tzinfo)

        events: list[CalendarEvent] = []
        for handle in handles:
            calendar_events = self._calendar_events(handle.calendar, range_start, range_end)
            logging.debug(f"{len(calendar_events)} events in range from calendar '{handle.name}'")
            events.extend(calendar_events)

        events.sort(key=lambda event: (
            event.start_timestamp,
            event.end.timestamp() if event.end is not None else 0.0,
        ))
        return events

    def _calendar_events(
        self,
        calendar: Calendar,
        range_start: datetime,
        range_end: datetime,
    ) -> list[CalendarEvent]:
        components = list(calendar.walk('VEVENT'))
        overrides = latest_overrides(components, self.tzinfo)

        overridden: dict[str | None, set[datetime]] = {}
        for uid, rid_value in overrides:
            overridden.setdefault(uid, set()).add(rid_value)

        events: list[CalendarEvent] = []
        for component in components:
            uid = component_uid(component)
            rid_value = extract_datetime(component, 'RECURRENCE-ID', self.tzinfo)

            if rid_value is not None:
                # An older SEQUENCE of the same override
                if overrides.get((uid, rid_value)) is not component:
                    continue
                excluded: set[datetime] = set()
            else:
                excluded = overridden.get(uid, set())

            events.extend(self._expand_component(component, range_start, range_end, excluded))
        return events

    def _expand_component(
        self,
        component: Component,
        range_start: datetime,
        range_end: datetime,
        excluded: set[datetime],
    ) -> list[CalendarEvent]:
        uid = component_uid(component)

        dtstart_value = decoded_value(component, 'DTSTART')
        if not isinstance(dtstart_value, date):
            logging.warning(f"Event {uid} has no DTSTART, skipped.")
            return []

        all_day = not isinstance(dtstart_value, datetime)
        dtstart = to_naive_local_datetime(dtstart_value, self.tzinfo)
        duration = event_duration(component, dtstart, all_day, self.tzinfo)

        occurrences = get_occurrences_in_range(
            component,
            dtstart,
            range_start - max(duration, timedelta(0)),
            range_end,
            self.tzinfo
        )

        summary = component.get('SUMMARY')
        title = str(summary) if summary is not None else None

        events = []
        for occurrence in occurrences:
            if occurrence in excluded:
                continue
            occurrence_end = occurrence + duration
            if occurrence >= range_end:
                continue
            if occurrence_end <= range_start and occurrence < range_start:
                continue
            events.append(CalendarEvent(
                identifier=uid,
                title=title,
                start=occurrence.replace(tzinfo=self.tzinfo),
                end=occurrence_end.replace(tzinfo=self.tzinfo),
                all_day=all_day,
            ))
        return events

    def _parse(self, content: str, fallback_name: str, origin: str) -> list[CalendarHandle]:
        content = content.strip()
        if not content:
            logging.warning(f"No content in {origin}, skipped.")
            return []

        try:
            components = Calendar.from_ical(content, multiple=True)
        except ValueError as e:
            logging.warning(f"Error parsing {origin}: {e}")
            return []

        return [
            CalendarHandle(calendar_name(component, fallback_name), component, origin)
            for component in components
            if isinstance(component, Calendar)
        ]

    def _read_path(self, path: Path) -> list[CalendarHandle]:
        if not path.exists():
            logging.warning(f"Path '{path}' does not exist, skipped.")
            return []

        if path.is_dir():
            handles = []
            for ics_file in sorted(path.rglob('*.ics')):
                if ics_file.is_file():
                    handles.extend(self._read_file(ics_file))
            return handles

        return self._read_file(path)

    def _read_file(self, path: Path) -> list[CalendarHandle]:
        try:
            with path.open('r', encoding='utf-8-sig') as f:
                content = f.read()
        except PermissionError as e:
            raise AuthorizationError(
                f"Permission denied reading {path}",
                hint=f"Grant read access to the calendar file, e.g. chmod u+r '{path}'"
            ) from e
        except (OSError, UnicodeDecodeError) as e:
            logging.warning(f"Error reading file {path}: {e}")
            return []
        return self._parse(content, path.stem, str(path))

    def _read_url(self, url: str) -> list[CalendarHandle]:
        if url.lower().startswith('webcal://'):
            url = 'https://' + url[len('webcal://'):]

        try:
            response = requests.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logging.warning(f"Error fetching {url}: {e}")
            return []

        if response.status_code in (401, 403):
            raise AuthorizationError(
                f"Access denied fetching {url}: HTTP {response.status_code}",
                hint="Check that the calendar is shared and the URL includes its access token"
            )
        if response.status_code != 200:
            logging.warning(f"Error fetching {url}: HTTP {response.status_code}")
            return []

        parsed = urlparse(url)
        fallback_name = Path(parsed.path).stem or parsed.netloc
        return self._parse(response.content.decode('utf-8-sig', 'replace'), fallback_name, url)
