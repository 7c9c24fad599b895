"""Core module for archery-csv-cleaner."""

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


BOW_TYPES = ('Recurve', 'Compound', 'Barebow', 'Longbow')
AGE_CLASSES = ('Adult', 'U21', 'U18', 'U15', 'U13', '+50', '+60', '+70')
GENDERS = ('Men', 'Women')

# Correction method tags
METHODS = ('exact', 'fuzzy', 'translation', 'extraction', 'validation', 'consistency')


class Field(str, Enum):
    """Canonical record fields a Correction or IssueTicket can target."""

    DATE = 'Date'
    ATHLETE = 'Athlete'
    CLUB = 'Club'
    BOW_TYPE = 'Bow Type'
    AGE_CLASS = 'Age Class'
    GENDER = 'Gender'
    DISTANCE = 'Shooting Exercise'
    RESULT = 'Result'
    COMPETITION = 'Competition'


# Field -> CompetitionRecord attribute
_ATTRIBUTES: dict[Field, str] = {
    Field.DATE: 'date',
    Field.ATHLETE: 'athlete',
    Field.CLUB: 'club',
    Field.BOW_TYPE: 'bow_type',
    Field.AGE_CLASS: 'age_class',
    Field.GENDER: 'gender',
    Field.DISTANCE: 'distance',
    Field.RESULT: 'result',
    Field.COMPETITION: 'competition',
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def percent(ratio: float) -> int:
    """Ratio (0.0 – 1.0) as a 0 – 100 integer, halves rounded up."""
    return int(math.floor(ratio * 100 + 0.5))


@dataclass(frozen=True)
class Correction:
    """One atomic change applied (or proposed) to a record field."""

    field: Field
    original: str
    corrected: str
    method: str           # one of METHODS
    confidence: int       # 0 – 100
    timestamp: datetime = field(default_factory=_now)


@dataclass
class CompetitionRecord:
    """One athlete's result in one event."""

    id: int
    date: str             # YYYY-MM-DD
    athlete: str
    club: str
    bow_type: str
    age_class: str
    gender: str
    distance: str         # e.g. 18m, 2x18m, 90m+70m+50m+30m
    result: int
    competition: str
    source_file: str = ''
    corrections: list[Correction] = field(default_factory=list)
    needs_review: bool = False
    confidence: int = 100
    original_data: dict[str, str] = field(default_factory=dict)

    def get(self, target: Field) -> str:
        """Return the value of a canonical field as text."""
        return str(getattr(self, _ATTRIBUTES[target]))

    def with_value(
        self,
        target: Field,
        value: str,
        correction: Optional[Correction] = None,
    ) -> 'CompetitionRecord':
        """Return a copy with one field overwritten.

        Result is parsed back to an int; text that does not parse keeps the
        current score. The optional correction is appended to the copy's
        audit trail.
        """
        new_value: object = value
        if target is Field.RESULT:
            try:
                new_value = int(str(value).strip())
            except ValueError:
                new_value = self.result
        corrections = list(self.corrections)
        if correction is not None:
            corrections.append(correction)
        return replace(self, **{_ATTRIBUTES[target]: new_value}, corrections=corrections)

    def to_row(self) -> dict[str, str]:
        """Canonical English-header row, e.g. for re-parsing or CSV export."""
        return {f.value: self.get(f) for f in Field}

    def public_dict(self) -> dict:
        """Record without audit-only fields (corrections, review flag, confidence, raw row)."""
        row: dict = {'id': self.id}
        for f in Field:
            row[f.value] = self.result if f is Field.RESULT else self.get(f)
        row['Source File'] = self.source_file
        return row


@dataclass
class Club:
    """Reference vocabulary entry."""

    code: str
    name: str
    user_added: bool = False


@dataclass(frozen=True)
class IssueTicket:
    """A batched, reviewable defect shared by one or more records."""

    id: str
    field: Field
    original_value: str
    suggested_value: str
    confidence: int
    method: str
    record_ids: tuple[int, ...]
    resolved_value: Optional[str] = None


@dataclass(frozen=True)
class Decision:
    """A reviewer's (or batch) decision on one ticket."""

    action: str           # APPROVE or REJECT
    value: str = ''

    APPROVE = 'approve'
    REJECT = 'reject'

    @classmethod
    def approve(cls, value: str) -> 'Decision':
        return cls(cls.APPROVE, value)

    @classmethod
    def reject(cls) -> 'Decision':
        return cls(cls.REJECT, '')

    @property
    def approved(self) -> bool:
        return self.action == self.APPROVE
