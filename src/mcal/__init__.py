"""
mcal - list upcoming calendar events from iCalendar sources
"""
from mcal.models import CalendarEvent, DisplayOptions, SelectionWindow
from mcal.selector import select_events

__version__ = '1.0.0'

__all__ = [
    'CalendarEvent',
    'DisplayOptions',
    'SelectionWindow',
    'select_events',
    '__version__',
]
