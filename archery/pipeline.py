"""Sequencing of the two review phases.

Each step is a function from (records, decisions) to the next record set
and, where there is one, the next phase's tickets:

    parsed records ─ start_review ─> import tickets
    ─ finish_import_phase ─> age classes auto-resolved + consistency tickets
    ─ finish_consistency_phase ─> final records
"""

from dataclasses import dataclass, field
from typing import Callable

from archery import CompetitionRecord, Decision, IssueTicket
from archery.ageclass import DEFAULT_POLICY, AgeClassPolicy, resolve_age_classes
from archery.parser import REVIEW_THRESHOLD
from archery.resolution import apply_consistency_decisions, apply_import_decisions
from archery.tickets import build_consistency_tickets, build_import_tickets

Decider = Callable[[list[IssueTicket], list[CompetitionRecord]], dict[str, Decision]]


@dataclass
class PhaseState:
    """Records entering a review phase together with that phase's tickets."""

    records: list[CompetitionRecord]
    tickets: list[IssueTicket]


def start_review(
    records: list[CompetitionRecord],
    review_threshold: int = REVIEW_THRESHOLD,
) -> PhaseState:
    return PhaseState(records=list(records), tickets=build_import_tickets(records, review_threshold))


def finish_import_phase(
    state: PhaseState,
    decisions: dict[str, Decision],
    policy: AgeClassPolicy = DEFAULT_POLICY,
) -> PhaseState:
    """Apply import decisions, auto-resolve age classes, build consistency tickets."""
    records = apply_import_decisions(state.records, state.tickets, decisions)
    records = resolve_age_classes(records, policy)
    return PhaseState(records=records, tickets=build_consistency_tickets(records, policy))


def finish_consistency_phase(
    state: PhaseState,
    decisions: dict[str, Decision],
) -> list[CompetitionRecord]:
    return apply_consistency_decisions(state.records, state.tickets, decisions)


def open_tickets(tickets: list[IssueTicket], decisions: dict[str, Decision]) -> list[IssueTicket]:
    """Tickets left undecided."""
    return [t for t in tickets if t.id not in decisions]


@dataclass
class ReviewOutcome:
    """Final records plus the tickets nobody decided, from both phases."""

    records: list[CompetitionRecord]
    open_tickets: list[IssueTicket] = field(default_factory=list)


def review_batch(
    records: list[CompetitionRecord],
    decide_import: Decider,
    decide_consistency: Decider,
    policy: AgeClassPolicy = DEFAULT_POLICY,
    review_threshold: int = REVIEW_THRESHOLD,
) -> ReviewOutcome:
    """Run both phases, asking the deciders for each phase's decisions.

    Args:
        records: Parsed import batch.
        decide_import: Returns decisions for the import-issue tickets.
        decide_consistency: Returns decisions for the consistency tickets.
        policy: Age class ladder policy.
        review_threshold: Club confidence below which a club needs a ticket.

    Returns:
        ReviewOutcome with the final record set and the undecided tickets.
    """
    state = start_review(records, review_threshold)
    decisions = decide_import(state.tickets, state.records)
    undecided = open_tickets(state.tickets, decisions)

    state = finish_import_phase(state, decisions, policy)
    decisions = decide_consistency(state.tickets, state.records)
    undecided += open_tickets(state.tickets, decisions)

    return ReviewOutcome(
        records=finish_consistency_phase(state, decisions),
        open_tickets=undecided,
    )


def run_review(
    records: list[CompetitionRecord],
    decide_import: Decider,
    decide_consistency: Decider,
    policy: AgeClassPolicy = DEFAULT_POLICY,
) -> list[CompetitionRecord]:
    """Run both phases and return only the final record set."""
    return review_batch(records, decide_import, decide_consistency, policy).records
