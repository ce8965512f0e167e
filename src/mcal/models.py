"""
Records passed between the pipeline stages
"""
from dataclasses import dataclass
from datetime import datetime

UNKNOWN_ID = 'Unknown'
NO_TITLE = 'No Title'


@dataclass(frozen=True)
class CalendarEvent:
    """A single event occurrence as returned by an event source.

    Missing fields stay None here; the properties below are the only place
    their defaults are decided.
    """
    identifier: str | None = None
    title: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    all_day: bool = False

    @property
    def uuid(self) -> str:
        return self.identifier if self.identifier is not None else UNKNOWN_ID

    @property
    def display_title(self) -> str:
        return self.title if self.title is not None else NO_TITLE

    @property
    def start_timestamp(self) -> float:
        return self.start.timestamp() if self.start is not None else 0.0

    @property
    def instance_key(self) -> tuple[str, float]:
        # Recurring occurrences share an identifier, the start time tells them apart
        return (self.uuid, self.start_timestamp)

    @property
    def duration(self) -> float:
        """Length in seconds, 0 when either end is unknown."""
        if self.start is None or self.end is None:
            return 0.0
        return self.end.timestamp() - self.start.timestamp()


@dataclass(frozen=True)
class SelectionWindow:
    start_of_range: datetime
    end_of_range: datetime
    from_now_only: bool = False


@dataclass(frozen=True)
class DisplayOptions:
    max_items: int | None = None
    max_title_length: int | None = None
    condensed: bool = False
    json_output: bool = False
