"""
Console output handler
"""
from mcal.models import CalendarEvent, DisplayOptions
from mcal.render import render


class Handler:
    """Console output handler class"""

    def __call__(self, events: list[CalendarEvent], options: DisplayOptions) -> None:
        """
        Print events as text lines or JSON

        Args:
            events: Selected events
            options: Display options
        """
        output = render(events, options)
        if output:
            print(output, flush=True)
