"""
Output handlers

A handler is any callable taking the selected events and the display
options. Modules in this package expose theirs as ``Handler``.
"""
from typing import Protocol

from mcal.models import CalendarEvent, DisplayOptions


class BaseHandler(Protocol):
    def __call__(self, events: list[CalendarEvent], options: DisplayOptions) -> None: ...
