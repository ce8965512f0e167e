"""
File output handler
"""
import logging
from pathlib import Path

from mcal.models import CalendarEvent, DisplayOptions
from mcal.render import render


class Handler:
    """File writer handler class"""

    def __init__(self, output_file: str):
        """
        Initialize file output handler

        Args:
            output_file: Output file path
        """
        self.output_file = Path(output_file)

    def __call__(self, events: list[CalendarEvent], options: DisplayOptions) -> None:
        """
        Write rendered events to file

        Args:
            events: Selected events
            options: Display options
        """
        content = render(events, options)
        if content:
            content += '\n'
        try:
            with open(self.output_file, 'w', encoding='utf-8') as f:
                f.write(content)
            logging.info(f"{len(events)} events written to file: {self.output_file}")

        except OSError as e:
            logging.error(f"Failed to write file: {e}")
