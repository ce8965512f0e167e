"""
Text and JSON rendering of selected events
"""
import json
from datetime import datetime
from typing import Any

from mcal.models import CalendarEvent, DisplayOptions

ELLIPSIS = '...'
CONDENSED_SEPARATOR = ' | '
TIME_FORMAT = '%H:%M'
ISO_FORMAT = '%Y-%m-%dT%H:%M:%S%z'


def truncate_title(title: str, max_length: int | None) -> str:
    """Shorten a title to at most ``max_length`` characters.

    Args:
        title: Event title
        max_length: Maximum length including the ellipsis, None for no limit

    Returns:
        The title, or its prefix with trailing spaces stripped followed by '...'
    """
    if max_length is None or len(title) <= max_length:
        return title
    keep = max(0, max_length - len(ELLIPSIS))
    return title[:keep].rstrip(' ') + ELLIPSIS


def format_time(value: datetime | None) -> str:
    return value.strftime(TIME_FORMAT) if value is not None else 'Unknown'


def format_iso(value: datetime | None) -> str:
    return value.strftime(ISO_FORMAT) if value is not None else ''


def render_text(events: list[CalendarEvent], options: DisplayOptions) -> str:
    """Render events as lines of text, or a single line when condensed."""
    if options.condensed:
        entries = [
            f"{format_time(event.start)} {truncate_title(event.display_title, options.max_title_length)}"
            for event in events
        ]
        return CONDENSED_SEPARATOR.join(entries)

    lines = [
        f"{format_time(event.start)} - {format_time(event.end)}: "
        f"{truncate_title(event.display_title, options.max_title_length)}"
        for event in events
    ]
    return '\n'.join(lines)


def event_to_dict(event: CalendarEvent) -> dict[str, Any]:
    return {
        'uuid': event.uuid,
        'title': event.display_title,
        'startDate': format_iso(event.start),
        'endDate': format_iso(event.end),
        'duration': event.duration,
        'isAllDay': event.all_day,
    }


def render_json(events: list[CalendarEvent]) -> str:
    """Render events as a pretty-printed JSON array.

    Title truncation and condensing do not apply to JSON output.
    """
    return json.dumps([event_to_dict(event) for event in events], indent=2, ensure_ascii=False)


def render(events: list[CalendarEvent], options: DisplayOptions) -> str:
    if options.json_output:
        return render_json(events)
    return render_text(events, options)
