"""Automatic resolution of conflicting age classes per athlete and year.

An athlete competes in a single age class per competition year. When the
recorded classes of one athlete-year all sit on the same ladder the conflict
is resolved without review; any other mix is left to a consistency ticket.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, replace
from typing import Optional

from archery import CompetitionRecord, Correction, Field
from archery.normalize import athlete_key, extract_year

log = logging.getLogger(__name__)

SENIOR_LADDER = ('+50', '+60', '+70')
YOUTH_LADDER = ('U13', 'U15', 'U18', 'U21')

AUTO_RESOLVE_CONFIDENCE = 95

OLDEST = 'oldest'
YOUNGEST = 'youngest'


@dataclass(frozen=True)
class AgeClassPolicy:
    """Ladder definitions and which end of each ladder wins a conflict.

    Ladders are ordered youngest → oldest bracket.
    """

    senior_ladder: tuple[str, ...] = SENIOR_LADDER
    youth_ladder: tuple[str, ...] = YOUTH_LADDER
    senior_pick: str = OLDEST
    youth_pick: str = YOUNGEST


DEFAULT_POLICY = AgeClassPolicy()


def _pick(values: set[str], ladder: tuple[str, ...], direction: str) -> str:
    ranked = [v for v in ladder if v in values]
    return ranked[-1] if direction == OLDEST else ranked[0]


def ladder_resolution(values: set[str], policy: AgeClassPolicy = DEFAULT_POLICY) -> Optional[str]:
    """Resolve a set of conflicting age classes, or None when ambiguous.

    All-senior sets resolve to policy.senior_pick, all-youth sets to
    policy.youth_pick; mixed ladders or classes on neither ladder (such as
    'Adult') give None.
    """
    if len(values) < 2:
        return None
    if all(v in policy.senior_ladder for v in values):
        return _pick(values, policy.senior_ladder, policy.senior_pick)
    if all(v in policy.youth_ladder for v in values):
        return _pick(values, policy.youth_ladder, policy.youth_pick)
    return None


def resolve_age_classes(
    records: list[CompetitionRecord],
    policy: AgeClassPolicy = DEFAULT_POLICY,
) -> list[CompetitionRecord]:
    """Collapse unambiguous age-class conflicts within each athlete-year.

    Changed records get an 'extraction' Correction; their review flag is left
    as it was. Input records are not modified.

    Args:
        records: Records after the import-issue phase.
        policy: Ladder resolution policy.

    Returns:
        New record list in the same order.
    """
    groups: dict[tuple[str, str], list[CompetitionRecord]] = defaultdict(list)
    for r in records:
        key = athlete_key(r.athlete)
        if not key:
            continue
        groups[(key, extract_year(r.date))].append(r)

    fixes: dict[int, str] = {}
    for recs in groups.values():
        resolved = ladder_resolution({r.age_class for r in recs}, policy)
        if resolved is None:
            continue
        for r in recs:
            if r.age_class != resolved:
                fixes[r.id] = resolved

    if not fixes:
        return list(records)

    log.info("Age class auto-resolved on %d records", len(fixes))
    out = []
    for r in records:
        fix = fixes.get(r.id)
        if fix is None:
            out.append(r)
            continue
        out.append(replace(
            r,
            age_class=fix,
            corrections=[*r.corrections, Correction(
                field=Field.AGE_CLASS, original=r.age_class, corrected=fix,
                method='extraction', confidence=AUTO_RESOLVE_CONFIDENCE,
            )],
        ))
    return out
