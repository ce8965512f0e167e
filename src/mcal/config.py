"""
Command line parsing and resolution of the query window and display options
"""
import argparse
import os
import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from mcal import __version__
from mcal.errors import UsageError
from mcal.models import DisplayOptions, SelectionWindow

SOURCES_ENV = 'MCAL_CALENDARS'

DESCRIPTION = 'List calendar events for today, or a window of days, from iCalendar sources'


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting with status 2"""

    def error(self, message):
        raise UsageError(message)


@dataclass(frozen=True)
class ResolvedConfig:
    calendar_names: list[str]
    window: SelectionWindow
    options: DisplayOptions


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog='mcal',
        description=DESCRIPTION,
        allow_abbrev=False,
    )

    parser.add_argument(
        'calendars',
        help='comma-separated list of calendar names to filter on'
    )

    parser.add_argument(
        'items',
        nargs='?',
        help='limits the number of events displayed'
    )

    parser.add_argument(
        '--json',
        action='store_true',
        help='output events in JSON format'
    )

    parser.add_argument(
        '--now',
        action='store_true',
        help='only output events that have not ended yet (default: the whole day)'
    )

    parser.add_argument(
        '--condense',
        action='store_true',
        help='condense output to one line (ignored for JSON output)'
    )

    parser.add_argument(
        '--max-title-length',
        metavar='LENGTH',
        help='trims event titles in plain text output'
    )

    parser.add_argument(
        '--no-days',
        metavar='DAYS',
        default='1',
        help='number of days to display (default: 1 - today)'
    )

    parser.add_argument(
        '--start-day',
        metavar='DAYS',
        default='0',
        help='moves start day this many days forward or back (default: 0 - today)'
    )

    parser.add_argument(
        '-s', '--source',
        action='append',
        default=[],
        help=f'.ics file, directory of .ics files or http(s)/webcal URL; repeatable; defaults to ${SOURCES_ENV}, then stdin'
    )

    parser.add_argument(
        '-m', '--module',
        type=str,
        help='output handler module name (default: print to console)'
    )

    parser.add_argument(
        '-p', '--params',
        type=str,
        help='handler initialization parameters in JSON format'
    )

    parser.add_argument(
        '-l', '--log-level',
        type=str.upper,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default='WARNING',
        help='set the logging level (default: WARNING)'
    )

    parser.add_argument(
        '-v', '--version',
        action='version',
        version=f'mcal {__version__}',
        help='show program version and exit'
    )

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments, flags and positionals in any order.

    Raises:
        UsageError: If no arguments are given or any argument is invalid
    """
    return build_parser().parse_intermixed_args(argv)


def parse_int(value: str, name: str, minimum: int | None = None) -> int:
    """Parse a strictly formatted integer flag value.

    Args:
        value: Raw value, digits with an optional sign
        name: Flag name used in the error message
        minimum: Smallest accepted value, None for no bound

    Raises:
        UsageError: If the value is not an integer or is below ``minimum``
    """
    if not re.match(r'^[+-]?\d+$', value.strip()):
        raise UsageError(f"Invalid value for {name}: {value}")
    number = int(value)
    if minimum is not None and number < minimum:
        raise UsageError(f"Invalid value for {name}: {value}")
    return number


def parse_calendar_names(raw: str) -> list[str]:
    names = [name.strip() for name in raw.split(',')]
    names = [name for name in names if name]
    if not names:
        raise UsageError('no calendar names given')
    return names


def parse_item_count(raw: str | None) -> int | None:
    if raw is None:
        return None
    if not re.match(r'^\+?\d+$', raw.strip()):
        raise UsageError(f"Invalid argument: {raw}")
    return int(raw)


def resolve_sources(args: argparse.Namespace, environ: dict | None = None) -> list[str]:
    """Event sources from --source, falling back to the environment.

    An empty list means ICS data is read from stdin.
    """
    if args.source:
        return list(args.source)
    environ = os.environ if environ is None else environ
    return environ.get(SOURCES_ENV, '').split()


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def resolve_config(args: argparse.Namespace, now: datetime) -> ResolvedConfig:
    """Turn parsed arguments into a query window and display options.

    Args:
        args: Parsed command line arguments
        now: Current local time; day boundaries are taken from its timezone

    Returns:
        ResolvedConfig with calendar names, selection window and display options

    Raises:
        UsageError: If any value fails validation
    """
    calendar_names = parse_calendar_names(args.calendars)
    max_items = parse_item_count(args.items)

    days = parse_int(args.no_days, '--no-days', minimum=1)
    start_day = parse_int(args.start_day, '--start-day')

    max_title_length = None
    if args.max_title_length is not None:
        max_title_length = parse_int(args.max_title_length, '--max-title-length', minimum=1)

    # Aware datetime arithmetic is wall-clock, so midnight stays midnight across DST
    start_of_range = start_of_day(now) + timedelta(days=start_day)
    end_of_range = start_of_range + timedelta(days=days)

    window = SelectionWindow(
        start_of_range=start_of_range,
        end_of_range=end_of_range,
        from_now_only=args.now,
    )
    options = DisplayOptions(
        max_items=max_items,
        max_title_length=max_title_length,
        condensed=args.condense,
        json_output=args.json,
    )
    return ResolvedConfig(calendar_names=calendar_names, window=window, options=options)
