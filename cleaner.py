"""archery-csv-cleaner – CLI tool for normalizing archery competition CSVs."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable

from archery import CompetitionRecord, Decision, IssueTicket
from archery.ageclass import OLDEST, YOUNGEST, AgeClassPolicy
from archery.clubs import ClubStore, JsonClubStorage
from archery.parser import REVIEW_THRESHOLD
from archery.pipeline import review_batch
from archery.reader import import_files
from archery.reporter import (
    print_summary,
    write_corrections_log,
    write_csv_export,
    write_html_report,
    write_json_export,
)
from archery.resolution import ReviewSession, batch_approve

HELP_TEXT = "[a]pprove (a VALUE to override), [r]eject, [s]kip, [A]pprove rest, [R]eject rest, [q]uit phase"


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        description='Normalize and reconcile archery competition result CSVs.',
        prog='cleaner.py',
    )
    parser.add_argument(
        'files', nargs='*', type=Path,
        help='CSV files to import (processed in the given order)',
    )
    parser.add_argument(
        '--output', type=Path,
        help='Path for the cleaned CSV export',
    )
    parser.add_argument(
        '--json', type=Path,
        help='Path for the public JSON export',
    )
    parser.add_argument(
        '--log', type=Path,
        help='Path for the corrections audit log (CSV)',
    )
    parser.add_argument(
        '--html', type=Path,
        help='Path for the HTML review report',
    )
    parser.add_argument(
        '--summary', action='store_true',
        help='Print a summary to stdout',
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        '--interactive', action='store_true',
        help='Review tickets one at a time on the terminal',
    )
    mode.add_argument(
        '--accept-all', action='store_true',
        help='Approve every ticket with its suggested value',
    )
    parser.add_argument(
        '--clubs-file', type=Path,
        help='JSON file holding the club list (default: built-in clubs only)',
    )
    parser.add_argument(
        '--add-club', nargs=2, metavar=('CODE', 'NAME'),
        help='Add a club to the club list',
    )
    parser.add_argument(
        '--remove-club', metavar='CODE',
        help='Remove a user-added club',
    )
    parser.add_argument(
        '--list-clubs', action='store_true',
        help='Print the club list',
    )
    parser.add_argument(
        '--reset-clubs', action='store_true',
        help='Remove all user-added clubs',
    )
    parser.add_argument(
        '--review-threshold', type=int, default=REVIEW_THRESHOLD,
        help=f'Club confidence below which a record needs review (default: {REVIEW_THRESHOLD})',
    )
    parser.add_argument(
        '--flag-suspicious', action='store_true',
        help='Flag valid scores above 90%% of the maximum for review',
    )
    parser.add_argument(
        '--senior-pick', choices=(OLDEST, YOUNGEST), default=OLDEST,
        help='Senior class kept on conflicting +50/+60/+70 entries (default: oldest)',
    )
    parser.add_argument(
        '--youth-pick', choices=(YOUNGEST, OLDEST), default=YOUNGEST,
        help='Youth class kept on conflicting U13..U21 entries (default: youngest)',
    )
    parser.add_argument(
        '--verbose', action='store_true',
        help='Enable debug logging',
    )
    return parser


def manage_clubs(store: ClubStore, args: argparse.Namespace) -> None:
    """Apply the club list options in a fixed order: reset, remove, add, list."""
    if args.reset_clubs:
        store.reset()
    if args.remove_club and not store.remove(args.remove_club):
        logging.warning("Club %s not removed (unknown or built-in)", args.remove_club)
    if args.add_club:
        code, name = args.add_club
        if not store.add(code, name):
            logging.warning("Club %s not added (empty or duplicate code)", code)
    if args.list_clubs:
        for club in store.get_all():
            marker = '*' if club.user_added else ' '
            print(f"{marker} {club.code:<6} {club.name}")


def describe_ticket(ticket: IssueTicket, position: int, total: int) -> str:
    """One ticket as shown in interactive review."""
    return (
        f"\n[{position}/{total}] {ticket.field.value}: {ticket.original_value!r}\n"
        f"    suggested: {ticket.suggested_value!r} "
        f"(confidence {ticket.confidence}, {ticket.method}, {len(ticket.record_ids)} records)"
    )


def review_interactively(
    tickets: list[IssueTicket],
    records: list[CompetitionRecord],
    prompt: Callable[[str], str] = input,
) -> dict[str, Decision]:
    """Walk the tickets with a ReviewSession driven by terminal input.

    Args:
        tickets: Tickets of the current phase.
        records: Records the tickets refer to (unused, for the Decider signature).
        prompt: Input function, replaceable in tests.

    Returns:
        ticket id → Decision for every decided ticket.
    """
    session = ReviewSession(tickets)
    total = len(tickets)
    if total:
        print(HELP_TEXT)
    while not session.is_complete:
        print(describe_ticket(session.current, session.position + 1, total))
        try:
            answer = prompt('> ').strip()
        except EOFError:
            break
        command, _, value = answer.partition(' ')
        if command == 'a':
            session.approve(value.strip() or None)
        elif command == 'r':
            session.reject()
        elif command == 's':
            session.skip()
        elif command == 'A':
            session.approve_remaining()
        elif command == 'R':
            session.reject_remaining()
        elif command == 'q':
            break
        else:
            print(HELP_TEXT)
    return session.decisions


def approve_all(tickets: list[IssueTicket], records: list[CompetitionRecord]) -> dict[str, Decision]:
    return batch_approve(tickets, {})


def leave_open(tickets: list[IssueTicket], records: list[CompetitionRecord]) -> dict[str, Decision]:
    return {}


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s: %(message)s',
    )

    club_action = args.add_club or args.remove_club or args.list_clubs or args.reset_clubs
    if not args.files and not club_action:
        parser.error('At least one CSV file or a club list option is required.')

    store = ClubStore(JsonClubStorage(args.clubs_file) if args.clubs_file else None)
    manage_clubs(store, args)
    if not args.files:
        return

    policy = AgeClassPolicy(senior_pick=args.senior_pick, youth_pick=args.youth_pick)
    if args.interactive:
        decide = review_interactively
    elif args.accept_all:
        decide = approve_all
    else:
        decide = leave_open

    try:
        batch = import_files(
            args.files, store,
            review_threshold=args.review_threshold,
            flag_suspicious=args.flag_suspicious,
        )
    except (OSError, ValueError) as exc:
        logging.error("%s", exc)
        sys.exit(1)

    for suggestion in batch.name_suggestions:
        logging.info(
            "Possible typo: %s (known: %s)",
            suggestion.original_name, suggestion.match.athlete.full_name,
        )

    outcome = review_batch(batch.records, decide, decide, policy, args.review_threshold)
    records = outcome.records

    title = ', '.join(p.name for p in args.files)
    if args.output:
        write_csv_export(records, args.output)
    if args.json:
        write_json_export(records, args.json)
    if args.log:
        write_corrections_log(records, args.log)
    if args.html:
        write_html_report(records, args.html, title, outcome.open_tickets, batch.name_suggestions)
    if args.summary:
        print_summary(records, title)


if __name__ == '__main__':
    main()
