#!/usr/bin/env python
'''
@File    :   main.py
@Version :   1.0
@Desc    :   List upcoming calendar events from iCalendar sources
'''
import importlib
import importlib.util
import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

import dateutil.tz

from mcal.config import build_parser, parse_args, resolve_config, resolve_sources
from mcal.errors import AuthorizationError, McalError, NoMatchingCalendarsError, UsageError
from mcal.handlers import BaseHandler
from mcal.handlers.console import Handler as ConsoleHandler
from mcal.selector import select_events
from mcal.source import IcsEventSource


def load_handler(handler_name: str, handler_params: dict | None = None) -> BaseHandler:
    """Load and instantiate an output handler module.

    Args:
        handler_name: Builtin handler name, module name or path to handler script
        handler_params: Optional parameters to pass to handler constructor

    Returns:
        Callable handler instance
    """
    handler_file = Path(handler_name)
    if handler_file.is_file() and handler_file.suffix == '.py':
        spec = importlib.util.spec_from_file_location(handler_file.stem, handler_name)
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot load handler from {handler_name}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
    else:
        try:
            module = importlib.import_module(f'mcal.handlers.{handler_name}')
        except ImportError:
            module = importlib.import_module(handler_name)

    handler_class = getattr(module, 'Handler')

    if handler_params:
        return handler_class(**handler_params)
    else:
        return handler_class()


def parse_handler_params(raw: str | None) -> dict | None:
    if not raw:
        return None
    try:
        params = json.loads(raw)
    except json.JSONDecodeError as e:
        raise UsageError(f"Invalid JSON format for handler parameters: {e}") from e
    if not isinstance(params, dict):
        raise UsageError("Params must be a JSON object (dict)")
    return params


def main(argv: list[str] | None = None, now: datetime | None = None) -> int:
    """Run the event listing pipeline.

    Args:
        argv: Command line arguments without the program name (default: sys.argv[1:])
        now: Current time; its timezone is used as local time (default: system clock)

    Returns:
        Process exit code
    """
    logging.basicConfig(
        level=logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    now = now or datetime.now(dateutil.tz.tzlocal())

    try:
        args = parse_args(argv)
        logging.getLogger().setLevel(getattr(logging, args.log_level))

        config = resolve_config(args, now)
        params = parse_handler_params(args.params)

        sources = resolve_sources(args)
        if not sources and sys.stdin.isatty():
            raise UsageError("no calendar sources given and stdin is a terminal")

    except UsageError as e:
        logging.error(str(e))
        build_parser().print_usage(sys.stderr)
        return 1

    if args.module:
        try:
            handler = load_handler(args.module, params)
        except Exception as e:
            logging.error(f"Error loading handler module: {e}")
            return 1
    else:
        handler: BaseHandler = ConsoleHandler()

    source = IcsEventSource(sources, tzinfo=now.tzinfo)

    try:
        source.load()
        calendars = source.find_calendars(config.calendar_names)
        if not calendars:
            raise NoMatchingCalendarsError(config.calendar_names)
    except AuthorizationError as e:
        logging.error(str(e))
        if e.hint:
            print(e.hint, file=sys.stderr)
        return 1
    except McalError as e:
        logging.error(str(e))
        return 1

    window = config.window
    logging.info(f"Time Range: {window.start_of_range} to {window.end_of_range}")

    candidates = source.fetch_events(calendars, window.start_of_range, window.end_of_range)
    events = select_events(candidates, window, now, config.options.max_items)
    logging.info(f"Selected {len(events)} of {len(candidates)} events")

    handler(events, config.options)
    return 0


def run():
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print(file=sys.stderr)
        sys.exit(130)
    except BrokenPipeError:
        sys.stderr = open(os.devnull, 'w')
        sys.exit(1)


if __name__ == "__main__":
    run()
