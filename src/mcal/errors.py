"""
Terminal error conditions, each reported to the user with exit code 1
"""


class McalError(Exception):
    """Base class for all reported failures"""


class UsageError(McalError):
    """Missing or invalid command line arguments"""


class AuthorizationError(McalError):
    """Calendar data could not be accessed"""

    def __init__(self, message: str, hint: str | None = None):
        super().__init__(message)
        self.hint = hint


class NoMatchingCalendarsError(McalError):
    """None of the requested calendar names matched a loaded calendar"""

    def __init__(self, names: list[str]):
        super().__init__("No matching calendars found for the provided names.")
        self.names = names
