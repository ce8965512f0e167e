"""
Ntfy handler
"""
import logging
from dataclasses import replace

import requests

from mcal.models import CalendarEvent, DisplayOptions
from mcal.render import render_text


class Handler:
    """Handler class for sending events to an Ntfy topic"""

    def __init__(
        self,
        url: str = "https://ntfy.sh/calendar",
        headers: dict | None = None,
        individual: bool = False,
        timeout: int = 10,
    ):
        """
        Initialize Ntfy webhook handler

        Args:
            url: Ntfy topic URL
            headers: Custom headers for the request
            individual: False (default) sends one summary message, True sends each event separately
            timeout: Request timeout in seconds
        """
        self.url = url
        self.headers = headers or {}
        self.individual = individual
        self.timeout = timeout

    def __call__(self, events: list[CalendarEvent], options: DisplayOptions) -> None:
        """
        Send event information to the Ntfy topic

        JSON and condensed options are ignored, messages are always plain text lines.

        Args:
            events: Selected events
            options: Display options
        """
        options = replace(options, condensed=False, json_output=False)

        if self.individual:
            for event in events:
                self._post(render_text([event], options), "Calendar Event", event.display_title)
        else:
            message = render_text(events, options) or "No upcoming events."
            self._post(message, f"Calendar Events ({len(events)} events)", f"{len(events)} events")

    def _post(self, message: str, title: str, label: str) -> None:
        headers = {
            "Content-Type": "text/plain; charset=utf-8",
            "Title": title,
            "Tags": "calendar",
        }
        headers.update(self.headers)

        try:
            response = requests.post(
                self.url,
                data=message.encode('utf-8'),
                headers=headers,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logging.error(f"Error sending {label} to {self.url}: {e}")
            return

        if response.status_code == 200:
            logging.info(f"Sent {label} to {self.url}")
        else:
            logging.error(f"Failed to send {label}: HTTP {response.status_code}, {response.text}")
