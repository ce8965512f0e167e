"""
End-to-end tests for the command line entry point.
"""
import json

import pytest
import requests

from mcal.main import load_handler, main, parse_handler_params
from mcal.errors import UsageError
from mcal.handlers.console import Handler as ConsoleHandler


def run_main(calendar_dir, now, *argv):
    return main([*argv, '--source', str(calendar_dir)], now=now)


class TestTextOutput:

    def test_today(self, calendar_dir, now, capsys) -> None:
        assert run_main(calendar_dir, now, 'Work,home') == 0

        assert capsys.readouterr().out.splitlines() == [
            '07:00 - 08:00: Gym',
            '09:00 - 09:30: Standup',
            '12:00 - 13:00: Team lunch',
            '14:00 - 15:00: Quarterly Planning Session',
            '19:00 - 21:00: No Title',
        ]

    def test_limit_and_truncation(self, calendar_dir, now, capsys) -> None:
        assert run_main(calendar_dir, now, 'Work', '--max-title-length=10', '3') == 0

        assert capsys.readouterr().out.splitlines() == [
            '09:00 - 09:30: Standup',
            '12:00 - 13:00: Team lunch',
            '14:00 - 15:00: Quarter...',
        ]

    def test_condensed_from_now(self, calendar_dir, now, capsys) -> None:
        assert run_main(calendar_dir, now, 'home, Work', '--condense', '--now', '2') == 0

        assert capsys.readouterr().out == '09:00 Standup | 12:00 Team lunch\n'

    def test_window_of_days(self, calendar_dir, now, capsys) -> None:
        assert run_main(calendar_dir, now, 'Work', '--start-day=1', '--no-days=2') == 0

        assert capsys.readouterr().out.splitlines() == [
            '10:00 - 10:30: Standup (moved)',
            '09:00 - 09:30: Standup',
        ]

    def test_no_events_prints_nothing(self, calendar_dir, now, capsys) -> None:
        assert run_main(calendar_dir, now, 'Work', '--start-day=30') == 0

        assert capsys.readouterr().out == ''


class TestJsonOutput:

    def test_json(self, calendar_dir, now, capsys) -> None:
        assert run_main(calendar_dir, now, 'Work', '--json', '--condense', '1') == 0

        assert json.loads(capsys.readouterr().out) == [{
            'uuid': 'standup@example.com',
            'title': 'Standup',
            'startDate': '2026-10-19T09:00:00+1000',
            'endDate': '2026-10-19T09:30:00+1000',
            'duration': 1800.0,
            'isAllDay': False,
        }]

    def test_no_events_prints_empty_array(self, calendar_dir, now, capsys) -> None:
        assert run_main(calendar_dir, now, 'Work', '--json', '0') == 0

        assert json.loads(capsys.readouterr().out) == []


class TestFailures:

    @pytest.mark.parametrize('argv', [
        [],
        ['Work', '--no-days=0'],
        ['Work', '--max-title-length=abc'],
        ['Work', 'bogus'],
        ['Work', '--unknown'],
        ['Work', '--params', '[1, 2]'],
    ])
    def test_usage_errors_exit_1(self, argv, now, capsys) -> None:
        assert main(argv, now=now) == 1

        captured = capsys.readouterr()
        assert captured.out == ''
        assert 'usage: mcal' in captured.err

    def test_no_matching_calendars(self, calendar_dir, now, capsys, caplog) -> None:
        assert run_main(calendar_dir, now, 'Personal') == 1

        assert capsys.readouterr().out == ''
        assert 'No matching calendars' in caplog.text

    def test_access_denied_exits_with_hint(self, now, monkeypatch, capsys) -> None:
        class Forbidden:
            status_code = 403
            content = b''
            text = ''

        monkeypatch.setattr(requests, 'get', lambda url, timeout: Forbidden())

        assert main(['Work', '--source', 'https://example.com/private.ics'], now=now) == 1

        captured = capsys.readouterr()
        assert captured.out == ''
        assert 'Check that the calendar is shared' in captured.err

    def test_bad_handler_module(self, calendar_dir, now, caplog) -> None:
        assert run_main(calendar_dir, now, 'Work', '-m', 'no_such_handler_module') == 1

        assert 'Error loading handler module' in caplog.text


class TestHandlerLoading:

    def test_builtin_handler(self) -> None:
        assert isinstance(load_handler('console'), ConsoleHandler)

    def test_handler_with_params(self, tmp_path) -> None:
        handler = load_handler('file', {'output_file': str(tmp_path / 'out.txt')})

        assert handler.output_file == tmp_path / 'out.txt'

    def test_handler_from_script(self, tmp_path) -> None:
        script = tmp_path / 'collect.py'
        script.write_text(
            "collected = []\n"
            "\n"
            "class Handler:\n"
            "    def __call__(self, events, options):\n"
            "        collected.extend(event.title for event in events)\n",
            encoding='utf-8'
        )

        handler = load_handler(str(script))
        assert type(handler).__name__ == 'Handler'

    def test_file_handler_from_command_line(self, tmp_path, calendar_dir, now) -> None:
        out = tmp_path / 'today.txt'
        params = json.dumps({'output_file': str(out)})

        assert run_main(calendar_dir, now, 'home', '-m', 'file', '-p', params) == 0

        assert out.read_text(encoding='utf-8') == '07:00 - 08:00: Gym\n19:00 - 21:00: No Title\n'

    @pytest.mark.parametrize('raw', ['{not json', '"text"'])
    def test_invalid_params(self, raw) -> None:
        with pytest.raises(UsageError):
            parse_handler_params(raw)

    def test_empty_params(self) -> None:
        assert parse_handler_params(None) is None
