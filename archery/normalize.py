"""Deterministic normalizers mapping raw CSV text to canonical field values.

None of these raise on bad input: unrecognized text resolves to the named
DEFAULT_* constant and the caller records the fallback as a Correction.
"""

import re
from typing import Optional

DEFAULT_BOW_TYPE = 'Recurve'
DEFAULT_AGE_CLASS = 'Adult'
DEFAULT_GENDER = 'Men'

# Source-language header → canonical field name
HEADER_MAP: dict[str, str] = {
    # Estonian
    'Kuupäev': 'Date',
    'Sportlane': 'Athlete',
    'Nimi': 'Athlete',
    'Sportlase nimi': 'Athlete',
    'Võistleja': 'Athlete',
    'Eesnimi': 'First Name',
    'Perekonnanimi': 'Last Name',
    'Võistlus': 'Competition',
    'Klubi': 'Club',
    'Võistlusklass': 'Class',
    'Vanuserühm': 'AgeClass',
    'Vanuseklass': 'AgeClass',
    'Distants': 'Distance',
    'Tulemus': 'Result',
    'Sugu': 'Gender',
    # English variants
    'Name': 'Athlete',
    'Athlete Name': 'Athlete',
    'Event': 'Competition',
    'Bow Type': 'Class',
    'Age Class': 'AgeClass',
    'Shooting Exercise': 'Distance',
    'Score': 'Result',
    'Sex': 'Gender',
}

_HEADER_LOOKUP = {k.casefold(): v for k, v in HEADER_MAP.items()}

BOW_TRANSLATIONS: dict[str, str] = {
    # Estonian → English
    'sportvibu': 'Recurve',
    'plokkvibu': 'Compound',
    'vaistuvibu': 'Barebow',
    'pikkvibu': 'Longbow',
    # English passthrough
    'recurve': 'Recurve',
    'compound': 'Compound',
    'barebow': 'Barebow',
    'longbow': 'Longbow',
}

_TAG_RE = re.compile(r'<[^>]*>')
_WHITESPACE_RE = re.compile(r'\s+')
_AGE_CLASS_RE = re.compile(r'U\d+|\+\d+', re.IGNORECASE)
_WOMEN_RE = re.compile(r'naised|women|naine|female|^n$|^w$|^f$', re.IGNORECASE)
_MEN_RE = re.compile(r'mehed|men|mees|male|^m$', re.IGNORECASE)
_WOMEN_CLASS_RE = re.compile(r'naised|women', re.IGNORECASE)
_MEN_CLASS_RE = re.compile(r'mehed|\bmen\b', re.IGNORECASE)
_BARE_DISTANCE_RE = re.compile(r'^\d+$')
_SUFFIXED_DISTANCE_RE = re.compile(r'^\d+m$', re.IGNORECASE)
_MULTIPLIER_DISTANCE_RE = re.compile(r'^(\d+)\s*x\s*(\d+)\s*m?$', re.IGNORECASE)
_DOTTED_DATE_RE = re.compile(r'^(\d{1,2})\.(\d{1,2})\.(\d{4})$')
_NAME_SPLIT_RE = re.compile(r'(\s+|-)')

# Mac- names shorter than this (Mack, Macey) are capitalized normally
MAC_PREFIX_MIN_LENGTH = 6


def sanitize(value: Optional[object]) -> str:
    """Strip HTML-like tags and collapse whitespace."""
    if value is None:
        return ''
    return _WHITESPACE_RE.sub(' ', _TAG_RE.sub('', str(value))).strip()


def map_headers(row: dict[str, str]) -> dict[str, str]:
    """Rename known source headers to canonical names; unknown headers pass through."""
    mapped: dict[str, str] = {}
    for key, value in row.items():
        if key is None:
            continue
        clean = sanitize(key)
        mapped[_HEADER_LOOKUP.get(clean.casefold(), clean)] = value
    return mapped


def translate_bow_type(text: str) -> str:
    """Translate the first word of a class description to a bow type.

    Unknown or empty input falls back to DEFAULT_BOW_TYPE.
    """
    token = first_token(text)
    return BOW_TRANSLATIONS.get(token.lower(), DEFAULT_BOW_TYPE)


def first_token(text: str) -> str:
    parts = (text or '').split()
    return parts[0] if parts else ''


def is_known_bow_token(text: str) -> bool:
    return first_token(text).lower() in BOW_TRANSLATIONS


def extract_age_class(age_field: str, class_field: str = '') -> str:
    """Find U<n> or +<n> in the age and class fields; otherwise DEFAULT_AGE_CLASS."""
    m = _AGE_CLASS_RE.search(f"{age_field or ''} {class_field or ''}")
    if not m:
        return DEFAULT_AGE_CLASS
    return m.group(0).upper()


def match_gender(text: str) -> Optional[str]:
    """Gender named by an explicit gender value, or None if unrecognized."""
    value = (text or '').strip()
    if not value:
        return None
    if _WOMEN_RE.search(value):
        return 'Women'
    if _MEN_RE.search(value):
        return 'Men'
    return None


def class_gender(class_field: str) -> Optional[str]:
    """Gender marker inside a class description such as 'Sportvibu naised'."""
    if _WOMEN_CLASS_RE.search(class_field or ''):
        return 'Women'
    if _MEN_CLASS_RE.search(class_field or ''):
        return 'Men'
    return None


def extract_gender(gender_field: str, class_field: str = '') -> str:
    """Explicit gender field first, then the class description, else DEFAULT_GENDER."""
    return match_gender(gender_field) or class_gender(class_field) or DEFAULT_GENDER


def normalize_distance(text: str) -> str:
    """Canonicalize distance notation.

    '18' → '18m', '18M' → '18m', '2 X 18' → '2x18m'. Anything else,
    including composite rounds like '90m+70m+50m+30m', passes through.
    """
    if not text:
        return ''
    s = text.strip()
    if _BARE_DISTANCE_RE.match(s):
        return f"{s}m"
    if _SUFFIXED_DISTANCE_RE.match(s):
        return s.lower()
    m = _MULTIPLIER_DISTANCE_RE.match(s)
    if m:
        return f"{m.group(1)}x{m.group(2)}m"
    return s


def _capitalize_part(part: str) -> str:
    lower = part.lower()
    if lower.startswith("o'") and len(lower) > 2:
        return "O'" + lower[2:].capitalize()
    if lower.startswith('mc') and len(lower) > 2:
        return 'Mc' + lower[2:].capitalize()
    if lower.startswith('mac') and len(lower) >= MAC_PREFIX_MIN_LENGTH:
        return 'Mac' + lower[3:].capitalize()
    return lower.capitalize()


def capitalize_name(name: str) -> str:
    """Capitalize each name part, keeping spaces and hyphens.

    'mari mägi' → 'Mari Mägi', 'võsu-järvi' → 'Võsu-Järvi',
    'mcdonald' → 'McDonald', "o'brien" → "O'Brien", 'macdonald' → 'MacDonald'.
    The Mac prefix only applies from MAC_PREFIX_MIN_LENGTH letters on, so
    'mack' stays 'Mack'.
    """
    if not name:
        return name
    return ''.join(
        part if not part.strip() or part == '-' else _capitalize_part(part)
        for part in _NAME_SPLIT_RE.split(name)
    )


def format_date(text: str) -> str:
    """DD.MM.YYYY → YYYY-MM-DD; other formats pass through unchanged."""
    m = _DOTTED_DATE_RE.match((text or '').strip())
    if not m:
        return text
    day, month, year = m.groups()
    return f"{year}-{int(month):02d}-{int(day):02d}"


def athlete_key(name: str) -> str:
    """Grouping key for one athlete: case-folded, trimmed, single-spaced."""
    return _WHITESPACE_RE.sub(' ', (name or '').strip()).casefold()


def extract_year(date: str) -> str:
    """Year of a DD.MM.YYYY or YYYY-MM-DD date, else 'unknown'."""
    date = (date or '').strip()
    parts = date.split('.')
    if len(parts) == 3 and len(parts[2]) == 4 and parts[2].isdigit():
        return parts[2]
    parts = date.split('-')
    if len(parts) == 3 and len(parts[0]) == 4 and parts[0].isdigit():
        return parts[0]
    return 'unknown'
