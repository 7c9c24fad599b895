"""Registry of athletes seen so far, used to spot one-letter name typos."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional

from archery import CompetitionRecord
from archery.matching import levenshtein
from archery.normalize import athlete_key, extract_year

log = logging.getLogger(__name__)


def split_name(full_name: str) -> tuple[str, str]:
    """First word is the first name, the rest the last name."""
    parts = full_name.split()
    if not parts:
        return '', ''
    return parts[0], ' '.join(parts[1:])


@dataclass
class Athlete:
    """Everything the registry knows about one athlete."""

    id: str
    first_name: str
    last_name: str
    club: str = ''
    clubs: set[str] = field(default_factory=set)
    bow_types: set[str] = field(default_factory=set)
    age_classes_by_year: dict[str, set[str]] = field(default_factory=lambda: defaultdict(set))

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class AthleteMatch:
    athlete: Athlete
    distance: int
    match_type: str       # exact, typo, similar


@dataclass
class NameSuggestion:
    """A name from the import that looks like a typo of a known athlete."""

    original_name: str
    match: AthleteMatch


class AthleteRegistry:
    """Athletes keyed by normalized full name."""

    def __init__(self):
        self._athletes: dict[str, Athlete] = {}

    def __len__(self) -> int:
        return len(self._athletes)

    def get_all(self) -> list[Athlete]:
        return list(self._athletes.values())

    def find_exact(self, first_name: str, last_name: str) -> Optional[Athlete]:
        return self._athletes.get(athlete_key(f"{first_name} {last_name}"))

    def find_similar(self, first_name: str, last_name: str, max_distance: int = 1) -> list[AthleteMatch]:
        """Athletes whose first plus last name distance is 1..max_distance, closest first."""
        matches = []
        for athlete in self._athletes.values():
            d = levenshtein(first_name.strip(), athlete.first_name) + levenshtein(last_name.strip(), athlete.last_name)
            if 0 < d <= max_distance:
                matches.append(AthleteMatch(athlete, d, 'typo' if d == 1 else 'similar'))
        matches.sort(key=lambda m: m.distance)
        return matches

    def find_best_match(self, first_name: str, last_name: str) -> Optional[AthleteMatch]:
        exact = self.find_exact(first_name, last_name)
        if exact is not None:
            return AthleteMatch(exact, 0, 'exact')
        similar = self.find_similar(first_name, last_name, 1)
        return similar[0] if similar else None

    def add_record(self, record: CompetitionRecord) -> Athlete:
        """Add or update the athlete of a record."""
        first, last = split_name(record.athlete)
        key = athlete_key(record.athlete)
        athlete = self._athletes.get(key)
        if athlete is None:
            athlete = Athlete(id=key.replace(' ', '-'), first_name=first, last_name=last)
            self._athletes[key] = athlete
        athlete.club = record.club
        athlete.clubs.add(record.club)
        athlete.bow_types.add(record.bow_type)
        athlete.age_classes_by_year[extract_year(record.date)].add(record.age_class)
        return athlete


def suggest_name_typos(
    records: list[CompetitionRecord],
    registry: Optional[AthleteRegistry] = None,
) -> list[NameSuggestion]:
    """Check each distinct name against athletes registered before it.

    Names are registered in record order, so within one batch the first
    spelling seen is treated as the known one.

    Args:
        records: Records in import order.
        registry: Registry to check against and extend; a fresh one if omitted.

    Returns:
        One suggestion per name that is a one-letter variant of a known athlete.
    """
    registry = registry if registry is not None else AthleteRegistry()
    seen: set[str] = set()
    suggestions: list[NameSuggestion] = []
    for record in records:
        key = athlete_key(record.athlete)
        if not key:
            continue
        if key not in seen:
            seen.add(key)
            first, last = split_name(record.athlete)
            match = registry.find_best_match(first, last)
            if match is not None and match.match_type == 'typo':
                suggestions.append(NameSuggestion(original_name=record.athlete, match=match))
        registry.add_record(record)
    if suggestions:
        log.info("%d possible athlete name typos found", len(suggestions))
    return suggestions
