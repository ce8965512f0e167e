"""
Event selection: filter, deduplicate and limit fetched events
"""
from datetime import datetime
from typing import Iterable

from mcal.models import CalendarEvent, SelectionWindow

MAX_EVENT_DURATION = 86400.0


def ends_after(event: CalendarEvent, now: datetime) -> bool:
    return event.end is not None and event.end > now


def within_duration_cap(event: CalendarEvent) -> bool:
    """Drop multi-day entries that were not flagged as all-day."""
    return event.duration < MAX_EVENT_DURATION


def dedupe_events(events: Iterable[CalendarEvent]) -> list[CalendarEvent]:
    """Keep the first event seen for each (identifier, start time) pair.

    Args:
        events: Events in the order returned by the source

    Returns:
        Unique events, input order preserved
    """
    unique_events = []
    seen_keys = set()

    for event in events:
        key = event.instance_key
        if key in seen_keys:
            continue
        seen_keys.add(key)
        unique_events.append(event)

    return unique_events


def select_events(
    events: Iterable[CalendarEvent],
    window: SelectionWindow,
    now: datetime,
    max_items: int | None = None,
) -> list[CalendarEvent]:
    """Select the events to display.

    Filters are applied in a fixed order: all-day events, events that have
    already ended (only with ``window.from_now_only``), events lasting a day
    or more, duplicates, and finally the item limit. Surviving events keep
    the order they arrived in.

    Args:
        events: Candidate events from the event source
        window: Query window and "from now" flag
        now: Current instant, compared against event end times
        max_items: Maximum number of events to return, None for no limit

    Returns:
        List of selected events
    """
    candidates = [event for event in events if not event.all_day]

    if window.from_now_only:
        candidates = [event for event in candidates if ends_after(event, now)]

    candidates = [event for event in candidates if within_duration_cap(event)]
    candidates = dedupe_events(candidates)

    if max_items is not None:
        candidates = candidates[:max(0, max_items)]

    return candidates
