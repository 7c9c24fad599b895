"""Multi-stage club matching against the reference vocabulary."""

import logging
import re
from dataclasses import dataclass

from rapidfuzz.distance import Levenshtein

from archery import percent
from archery.clubs import ClubStore

log = logging.getLogger(__name__)

# Inputs up to this length are treated as codes: never stripped, eligible for prefix lookup
SHORT_CODE_MAX_LENGTH = 5
SHORT_CODE_MIN_LENGTH = 2
SHORT_CODE_CONFIDENCE = 95

# Organizational noise words removed before fuzzy comparison
STRIP_TERMS = (
    # archery
    'vibuklubi', 'vibukool', 'vibu',
    # sports organizations
    'spordiklubi', 'spordikool', 'spordikeskus', 'spordiühing', 'sportklubi',
    # generic
    'klubi', 'kool', 'ühing', 'selts', 'liit', 'rahvaspordiklubi', 'laskurvibuklubi',
    'club', 'school',
    # abbreviations
    'sk',
)

_STRIP_PATTERNS = [(term, re.compile(rf'\b{re.escape(term)}\b', re.IGNORECASE)) for term in STRIP_TERMS]
_WHITESPACE_RE = re.compile(r'\s+')


def levenshtein(a: str, b: str) -> int:
    """Case-insensitive edit distance (insert, delete, substitute all cost 1).

    Diacritics are ordinary characters: 'õ' vs 'o' costs one edit.
    """
    return Levenshtein.distance(a.lower(), b.lower())


def strip_noise_terms(text: str) -> str:
    """Lowercase text and remove common club-name noise words.

    Strings of SHORT_CODE_MAX_LENGTH characters or fewer are only lowercased.
    A removal that would leave two characters or fewer is skipped.
    """
    if not text:
        return ''
    result = text.lower()
    if len(text) <= SHORT_CODE_MAX_LENGTH:
        return result
    for _term, pattern in _STRIP_PATTERNS:
        stripped = _WHITESPACE_RE.sub(' ', pattern.sub('', result)).strip()
        if len(stripped) > 2:
            result = stripped
    return result.strip()


@dataclass
class ClubMatch:
    """Outcome of matching free-text club input."""

    code: str
    confidence: int       # 0 – 100
    method: str           # exact-code, exact-name, short-code, fuzzy-stripped, fuzzy-raw, unknown


def match_club(text: str, store: ClubStore) -> ClubMatch:
    """Match raw club text against the current vocabulary.

    Uses a cascade, first hit wins:
    1. Exact code (case-insensitive)
    2. Exact display name (case-insensitive)
    3. Unique code prefix for 2–5 character input
    4. Minimum edit distance over stripped and raw code/name
    5. No clubs at all → input returned as-is with confidence 0

    Args:
        text: Club text from the CSV.
        store: Vocabulary to match against.

    Returns:
        ClubMatch with the chosen code.
    """
    trimmed = (text or '').strip()
    if not trimmed:
        return ClubMatch(code='', confidence=0, method='unknown')

    clubs = store.get_all()
    lowered = trimmed.lower()

    # Stage 1: exact code
    for club in clubs:
        if club.code.lower() == lowered:
            return ClubMatch(code=club.code, confidence=100, method='exact-code')

    # Stage 2: exact name
    for club in clubs:
        if club.name.lower() == lowered:
            return ClubMatch(code=club.code, confidence=100, method='exact-name')

    # Stage 3: short code prefix, only when unambiguous
    if SHORT_CODE_MIN_LENGTH <= len(trimmed) <= SHORT_CODE_MAX_LENGTH:
        prefixed = [c for c in clubs if c.code.lower().startswith(lowered)]
        if len(prefixed) == 1:
            return ClubMatch(code=prefixed[0].code, confidence=SHORT_CODE_CONFIDENCE, method='short-code')

    # Stage 4: fuzzy
    stripped = strip_noise_terms(trimmed)
    best = None
    best_distance = None
    for club in clubs:
        d = min(
            levenshtein(stripped, strip_noise_terms(club.code)),
            levenshtein(stripped, strip_noise_terms(club.name)),
            levenshtein(trimmed, club.code),
            levenshtein(trimmed, club.name),
        )
        if best_distance is None or d < best_distance:
            best, best_distance = club, d

    if best is not None:
        max_len = max(len(stripped), len(best.code), 1)
        confidence = max(0, percent(1 - best_distance / max_len))
        method = 'fuzzy-stripped' if stripped != lowered else 'fuzzy-raw'
        log.debug("Club %r → %s (%s, %d)", trimmed, best.code, method, confidence)
        return ClubMatch(code=best.code, confidence=confidence, method=method)

    # Stage 5: empty vocabulary
    return ClubMatch(code=trimmed, confidence=0, method='unknown')
