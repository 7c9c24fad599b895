"""Tests for the cleaner.py command line interface."""

import csv
import json

import pytest

from archery import Field, IssueTicket
from cleaner import build_parser, main, review_interactively


def _ticket(ticket_id: str) -> IssueTicket:
    return IssueTicket(
        id=ticket_id, field=Field.CLUB, original_value='Xx', suggested_value='TLVK',
        confidence=40, method='fuzzy', record_ids=(1,),
    )


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = build_parser().parse_args(['a.csv'])
        assert args.review_threshold == 90
        assert args.senior_pick == 'oldest'
        assert args.youth_pick == 'youngest'
        assert not args.interactive and not args.accept_all

    def test_interactive_and_accept_all_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(['a.csv', '--interactive', '--accept-all'])

    def test_files_or_club_option_required(self):
        with pytest.raises(SystemExit):
            main([])


class TestReviewInteractively:
    """Tests for the terminal review loop."""

    def test_commands(self, capsys):
        answers = iter(['a TVK', 'x', 'r', 's'])
        tickets = [_ticket('a'), _ticket('b'), _ticket('c')]
        decisions = review_interactively(tickets, [], prompt=lambda _: next(answers))
        assert decisions['a'].value == 'TVK'
        assert not decisions['b'].approved
        assert 'c' not in decisions

    def test_approve_rest(self, capsys):
        answers = iter(['A'])
        decisions = review_interactively([_ticket('a'), _ticket('b')], [], prompt=lambda _: next(answers))
        assert {k: d.value for k, d in decisions.items()} == {'a': 'TLVK', 'b': 'TLVK'}

    def test_end_of_input_stops(self, capsys):
        def prompt(_):
            raise EOFError

        assert review_interactively([_ticket('a')], [], prompt=prompt) == {}


class TestMain:
    """End-to-end runs of the CLI."""

    def test_exports(self, data_dir, tmp_path, capsys):
        out = tmp_path / 'clean.csv'
        main([
            str(data_dir / 'sample_et.csv'), str(data_dir / 'sample_en.csv'),
            '--output', str(out), '--json', str(tmp_path / 'clean.json'),
            '--log', str(tmp_path / 'log.csv'), '--html', str(tmp_path / 'report.html'),
            '--clubs-file', str(tmp_path / 'clubs.json'), '--summary',
        ])
        with open(out, encoding='utf-8-sig', newline='') as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 18
        assert len(json.loads((tmp_path / 'clean.json').read_text(encoding='utf-8'))) == 18
        assert (tmp_path / 'log.csv').exists()
        assert 'Open tickets' in (tmp_path / 'report.html').read_text(encoding='utf-8')
        assert 'Cleaning report' in capsys.readouterr().out

    def test_accept_all_keeps_flagged_rows(self, data_dir, tmp_path):
        out = tmp_path / 'clean.csv'
        main([str(data_dir / 'sample_et.csv'), '--accept-all', '--output', str(out)])
        with open(out, encoding='utf-8-sig', newline='') as f:
            assert len(list(csv.DictReader(f))) == 15

    def test_club_management(self, tmp_path, capsys):
        clubs = str(tmp_path / 'clubs.json')
        main(['--clubs-file', clubs, '--add-club', 'new', 'New Archers'])
        main(['--clubs-file', clubs, '--list-clubs'])
        assert '* NEW' in capsys.readouterr().out
        main(['--clubs-file', clubs, '--remove-club', 'NEW', '--list-clubs'])
        assert 'NEW' not in capsys.readouterr().out
