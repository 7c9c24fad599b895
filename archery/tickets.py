"""Group record defects into reviewable issue tickets.

Import pass: one ticket per distinct (field, original value) across all
flagged records, least certain first. Consistency pass: one ticket per
athlete (and year, for age classes) whose records disagree, most certain
first.
"""

import logging
from collections import Counter, defaultdict

from archery import CompetitionRecord, Field, IssueTicket, percent
from archery.ageclass import DEFAULT_POLICY, AgeClassPolicy, ladder_resolution
from archery.normalize import athlete_key, extract_year
from archery.parser import REVIEW_THRESHOLD

log = logging.getLogger(__name__)


def build_import_tickets(
    records: list[CompetitionRecord],
    review_threshold: int = REVIEW_THRESHOLD,
) -> list[IssueTicket]:
    """Build import-issue tickets from records flagged for review.

    A flagged record whose club match is below the threshold but which
    carries no Club correction (an empty club cell, for one) still gets a
    Club ticket keyed on its current club value.

    Args:
        records: Parsed records.
        review_threshold: Club confidence below which a club needs review.

    Returns:
        Tickets sorted by ascending confidence.
    """
    tickets: dict[str, dict] = {}

    def add(key: str, target: Field, original: str, suggested: str,
            confidence: int, method: str, record_id: int) -> None:
        if key not in tickets:
            tickets[key] = {
                'field': target, 'original': original, 'suggested': suggested,
                'confidence': confidence, 'method': method, 'ids': [],
            }
        if record_id not in tickets[key]['ids']:
            tickets[key]['ids'].append(record_id)

    for record in records:
        if not record.needs_review:
            continue
        for c in record.corrections:
            add(f"{c.field.value}::{c.original}", c.field, c.original, c.corrected,
                c.confidence, c.method, record.id)
        has_club_fix = any(c.field is Field.CLUB for c in record.corrections)
        if record.confidence < review_threshold and not has_club_fix:
            add(f"{Field.CLUB.value}::{record.club}", Field.CLUB, record.club, record.club,
                record.confidence, 'unknown', record.id)

    result = [
        IssueTicket(
            id=key, field=t['field'], original_value=t['original'],
            suggested_value=t['suggested'], confidence=t['confidence'],
            method=t['method'], record_ids=tuple(t['ids']),
        )
        for key, t in tickets.items()
    ]
    result.sort(key=lambda t: t.confidence)
    log.info(
        "%d import tickets covering %d records",
        len(result), len({i for t in result for i in t.record_ids}),
    )
    return result


def count_variants(values: list[str]) -> tuple[list[tuple[str, int]], float]:
    """Count values, most common first (ties in first-seen order), plus the top share."""
    counts = Counter(values)
    ordered = sorted(counts.items(), key=lambda kv: -kv[1])
    dominance = ordered[0][1] / len(values) if values else 0.0
    return ordered, dominance


def _summary(ordered: list[tuple[str, int]]) -> str:
    return ' / '.join(f"{value} ({n}x)" for value, n in ordered)


def _variant_ticket(
    ticket_id: str,
    target: Field,
    original: str,
    suggested: str,
    dominance: float,
    recs: list[CompetitionRecord],
) -> IssueTicket:
    return IssueTicket(
        id=ticket_id, field=target, original_value=original,
        suggested_value=suggested, confidence=percent(dominance),
        method='consistency', record_ids=tuple(r.id for r in recs),
    )


def build_consistency_tickets(
    records: list[CompetitionRecord],
    policy: AgeClassPolicy = DEFAULT_POLICY,
) -> list[IssueTicket]:
    """Build cross-record consistency tickets per athlete.

    Flags name spelling variants, gender conflicts, bow type conflicts and,
    per competition year, remaining age class conflicts. Suggestions are the
    majority value; age classes prefer the ladder resolution when it is unique.

    Args:
        records: Records after import decisions and age class auto-resolution.
        policy: Ladder policy used for age class suggestions.

    Returns:
        Tickets sorted by descending confidence.
    """
    groups: dict[str, list[CompetitionRecord]] = defaultdict(list)
    for r in records:
        key = athlete_key(r.athlete)
        if key:
            groups[key].append(r)

    tickets: list[IssueTicket] = []
    for key, recs in groups.items():
        if len(recs) < 2:
            continue

        names, name_dominance = count_variants([r.athlete for r in recs])
        display = names[0][0]

        if len(names) > 1:
            tickets.append(_variant_ticket(
                f"consistency::{Field.ATHLETE.value}::{key}", Field.ATHLETE,
                ' / '.join(v for v, _ in names), names[0][0], name_dominance, recs,
            ))

        genders, dominance = count_variants([r.gender for r in recs])
        if len(genders) > 1:
            tickets.append(_variant_ticket(
                f"consistency::{Field.GENDER.value}::{key}", Field.GENDER,
                f"{display}: {_summary(genders)}", genders[0][0], dominance, recs,
            ))

        bows, dominance = count_variants([r.bow_type for r in recs])
        if len(bows) > 1:
            tickets.append(_variant_ticket(
                f"consistency::{Field.BOW_TYPE.value}::{key}", Field.BOW_TYPE,
                f"{display}: {_summary(bows)}", bows[0][0], dominance, recs,
            ))

        years: dict[str, list[CompetitionRecord]] = defaultdict(list)
        for r in recs:
            years[extract_year(r.date)].append(r)
        for year, year_recs in years.items():
            ages, dominance = count_variants([r.age_class for r in year_recs])
            if len(ages) <= 1:
                continue
            suggested = ladder_resolution({a for a, _ in ages}, policy) or ages[0][0]
            tickets.append(_variant_ticket(
                f"consistency::{Field.AGE_CLASS.value}::{key}::{year}", Field.AGE_CLASS,
                f"{display} ({year}): {_summary(ages)}", suggested, dominance, year_recs,
            ))

    tickets.sort(key=lambda t: -t.confidence)
    log.info("%d consistency tickets", len(tickets))
    return tickets
