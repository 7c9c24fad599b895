"""Apply ticket decisions back onto the record set."""

import logging
from dataclasses import replace
from typing import Optional

from archery import METHODS, CompetitionRecord, Correction, Decision, Field, IssueTicket

log = logging.getLogger(__name__)

APPROVED_CONFIDENCE = 100


def _approved_fixes(
    tickets: list[IssueTicket],
    decisions: dict[str, Decision],
) -> dict[int, list[tuple[Field, str, IssueTicket]]]:
    """record id → (field, value, ticket) assignments, in ticket order."""
    fixes: dict[int, list[tuple[Field, str, IssueTicket]]] = {}
    for ticket in tickets:
        decision = decisions.get(ticket.id)
        if decision is None or not decision.approved:
            continue
        for record_id in ticket.record_ids:
            fixes.setdefault(record_id, []).append((ticket.field, decision.value, ticket))
    return fixes


def _apply(
    record: CompetitionRecord,
    assignments: list[tuple[Field, str, IssueTicket]],
) -> CompetitionRecord:
    for target, value, ticket in assignments:
        current = record.get(target)
        if value == current:
            continue
        record = record.with_value(target, value, Correction(
            field=target, original=current, corrected=value,
            method=ticket.method if ticket.method in METHODS else 'exact',
            confidence=APPROVED_CONFIDENCE,
        ))
    return record


def _warn_unknown(tickets: list[IssueTicket], decisions: dict[str, Decision]) -> None:
    known = {t.id for t in tickets}
    for ticket_id in decisions:
        if ticket_id not in known:
            log.debug("Decision for unknown ticket %s ignored", ticket_id)


def apply_import_decisions(
    records: list[CompetitionRecord],
    tickets: list[IssueTicket],
    decisions: dict[str, Decision],
) -> list[CompetitionRecord]:
    """Apply import-phase decisions.

    Approved tickets overwrite their field on every affected record.
    Rejected tickets drop every affected record from the set: a rejected
    import issue means the row is bad data.

    Args:
        records: Parsed records.
        tickets: Import-issue tickets.
        decisions: ticket id → Decision; undecided tickets change nothing.

    Returns:
        New record list without rejected records.
    """
    _warn_unknown(tickets, decisions)
    rejected: set[int] = set()
    for ticket in tickets:
        decision = decisions.get(ticket.id)
        if decision is not None and not decision.approved:
            rejected.update(ticket.record_ids)

    fixes = _approved_fixes(tickets, decisions)
    out = [
        _apply(r, fixes.get(r.id, []))
        for r in records
        if r.id not in rejected
    ]
    log.info(
        "Import decisions: %d records updated, %d removed",
        sum(1 for r in out if r.id in fixes), len(records) - len(out),
    )
    return out


def apply_consistency_decisions(
    records: list[CompetitionRecord],
    tickets: list[IssueTicket],
    decisions: dict[str, Decision],
) -> list[CompetitionRecord]:
    """Apply consistency-phase decisions.

    Only approvals change records; a rejected consistency ticket is a skip
    and leaves both the record count and the field untouched.
    """
    _warn_unknown(tickets, decisions)
    fixes = _approved_fixes(tickets, decisions)
    out = [_apply(r, fixes.get(r.id, [])) for r in records]
    log.info("Consistency decisions: %d records updated", sum(1 for r in records if r.id in fixes))
    return out


def batch_approve(
    tickets: list[IssueTicket],
    decisions: dict[str, Decision],
    start: int = 0,
) -> dict[str, Decision]:
    """Approve every undecided ticket from ``start`` on with its suggested value."""
    out = dict(decisions)
    for ticket in tickets[start:]:
        if ticket.id not in out:
            out[ticket.id] = Decision.approve(ticket.suggested_value)
    return out


def batch_reject(
    tickets: list[IssueTicket],
    decisions: dict[str, Decision],
    start: int = 0,
) -> dict[str, Decision]:
    """Reject every undecided ticket from ``start`` on."""
    out = dict(decisions)
    for ticket in tickets[start:]:
        if ticket.id not in out:
            out[ticket.id] = Decision.reject()
    return out


class ReviewSession:
    """Walks one phase's tickets one at a time.

    Each call decides the current ticket and moves on; the batch calls
    decide everything from the current ticket onward at once.
    """

    def __init__(self, tickets: list[IssueTicket]):
        self.tickets = list(tickets)
        self.position = 0
        self._decisions: dict[str, Decision] = {}

    @property
    def current(self) -> Optional[IssueTicket]:
        if self.position < len(self.tickets):
            return self.tickets[self.position]
        return None

    @property
    def is_complete(self) -> bool:
        return self.current is None

    @property
    def decisions(self) -> dict[str, Decision]:
        return dict(self._decisions)

    def approve(self, value: Optional[str] = None) -> None:
        """Approve the current ticket, with its suggestion unless a value is given."""
        ticket = self._require_current()
        chosen = ticket.suggested_value if value is None else value
        self._decisions[ticket.id] = Decision.approve(chosen)
        self.position += 1

    def reject(self) -> None:
        ticket = self._require_current()
        self._decisions[ticket.id] = Decision.reject()
        self.position += 1

    def skip(self) -> None:
        """Leave the current ticket undecided."""
        self._require_current()
        self.position += 1

    def approve_remaining(self) -> None:
        self._decisions = batch_approve(self.tickets, self._decisions, self.position)
        self.position = len(self.tickets)

    def reject_remaining(self) -> None:
        self._decisions = batch_reject(self.tickets, self._decisions, self.position)
        self.position = len(self.tickets)

    def decided_tickets(self) -> list[IssueTicket]:
        """Tickets decided so far, with the resolved value filled in (approvals only)."""
        return [
            replace(t, resolved_value=self._decisions[t.id].value if self._decisions[t.id].approved else None)
            for t in self.tickets
            if t.id in self._decisions
        ]

    def _require_current(self) -> IssueTicket:
        ticket = self.current
        if ticket is None:
            raise IndexError("No ticket left to review")
        return ticket
