"""Turn raw CSV rows into CompetitionRecords with an audit trail."""

import logging
import re

from archery import CompetitionRecord, Correction, Field
from archery.clubs import ClubStore
from archery.matching import match_club
from archery.normalize import (
    DEFAULT_AGE_CLASS,
    DEFAULT_GENDER,
    capitalize_name,
    class_gender,
    extract_age_class,
    extract_gender,
    first_token,
    format_date,
    is_known_bow_token,
    map_headers,
    match_gender,
    normalize_distance,
    sanitize,
    translate_bow_type,
)
from archery.scoring import is_suspiciously_high, validate_score

log = logging.getLogger(__name__)

# Club confidence below this flags the record for review
REVIEW_THRESHOLD = 90

SUSPICIOUS_SCORE_CONFIDENCE = 50

_LEADING_INT_RE = re.compile(r'^[+-]?\d+')


def _parse_result(text: str) -> tuple[int, bool]:
    """Parse a leading integer. Returns (value, parsed_ok); empty text is 0 and ok."""
    if not text:
        return 0, True
    m = _LEADING_INT_RE.match(text.replace(' ', ''))
    if not m:
        return 0, False
    return int(m.group(0)), True


def _athlete_name(row: dict[str, str]) -> str:
    name = sanitize(row.get('Athlete'))
    if not name:
        name = ' '.join(p for p in (sanitize(row.get('First Name')), sanitize(row.get('Last Name'))) if p)
    return capitalize_name(name)


def parse_row(
    raw_row: dict[str, str],
    store: ClubStore,
    source_file: str = '',
    record_id: int = 0,
    review_threshold: int = REVIEW_THRESHOLD,
    flag_suspicious: bool = False,
) -> CompetitionRecord:
    """Normalize one raw CSV row.

    Every normalizer output that differs from the cleaned input, and every
    score problem, is logged as a Correction. The record needs review when
    the club match is below the threshold or the score did not validate.

    Args:
        raw_row: Row as read from the CSV, source-language headers allowed.
        store: Club vocabulary.
        source_file: Name of the file the row came from.
        record_id: Provisional id; batches are re-sequenced afterwards.
        review_threshold: Minimum club confidence that needs no review.
        flag_suspicious: Also flag valid scores near the maximum.

    Returns:
        The parsed CompetitionRecord.
    """
    row = map_headers(raw_row)
    corrections: list[Correction] = []

    club_raw = sanitize(row.get('Club'))
    bow_class = sanitize(row.get('Class'))
    gender_raw = sanitize(row.get('Gender'))
    age_raw = sanitize(row.get('AgeClass'))
    distance_raw = sanitize(row.get('Distance'))
    result_raw = sanitize(row.get('Result'))

    # Club
    club = match_club(club_raw, store)
    if club_raw and club.confidence < 100:
        corrections.append(Correction(
            field=Field.CLUB, original=club_raw, corrected=club.code,
            method='fuzzy', confidence=club.confidence,
        ))

    # Bow type
    bow_type = translate_bow_type(bow_class)
    raw_bow = first_token(bow_class)
    if raw_bow and raw_bow.lower() != bow_type.lower():
        corrections.append(Correction(
            field=Field.BOW_TYPE, original=raw_bow, corrected=bow_type,
            method='translation', confidence=100 if is_known_bow_token(raw_bow) else 0,
        ))

    # Age class
    age_class = extract_age_class(age_raw, bow_class)
    if age_raw and age_raw.lower() != age_class.lower():
        defaulted = age_class == DEFAULT_AGE_CLASS
        corrections.append(Correction(
            field=Field.AGE_CLASS, original=age_raw, corrected=age_class,
            method='extraction', confidence=0 if defaulted else 100,
        ))

    # Gender
    gender = extract_gender(gender_raw, bow_class)
    if match_gender(gender_raw) is None and class_gender(bow_class) is None:
        corrections.append(Correction(
            field=Field.GENDER, original=gender_raw, corrected=DEFAULT_GENDER,
            method='extraction', confidence=0,
        ))

    # Distance
    distance = normalize_distance(distance_raw)
    if distance != distance_raw:
        corrections.append(Correction(
            field=Field.DISTANCE, original=distance_raw, corrected=distance,
            method='extraction', confidence=100,
        ))

    # Result
    result, parsed = _parse_result(result_raw)
    score_issue = False
    if not parsed:
        log.warning("Unparseable result %r in %s, using 0", result_raw, source_file or 'input')
        corrections.append(Correction(
            field=Field.RESULT, original=result_raw, corrected=str(result),
            method='validation', confidence=0,
        ))
        score_issue = True
    else:
        check = validate_score(result, distance)
        if not check.valid:
            corrections.append(Correction(
                field=Field.RESULT, original=str(result), corrected=str(result),
                method='validation', confidence=0,
            ))
            score_issue = True
        elif flag_suspicious and is_suspiciously_high(result, distance):
            corrections.append(Correction(
                field=Field.RESULT, original=str(result), corrected=str(result),
                method='validation', confidence=SUSPICIOUS_SCORE_CONFIDENCE,
            ))
            score_issue = True

    return CompetitionRecord(
        id=record_id,
        date=format_date(sanitize(row.get('Date'))),
        athlete=_athlete_name(row),
        club=club.code,
        bow_type=bow_type,
        age_class=age_class,
        gender=gender,
        distance=distance,
        result=result,
        competition=sanitize(row.get('Competition')),
        source_file=source_file,
        corrections=corrections,
        needs_review=club.confidence < review_threshold or score_issue,
        confidence=club.confidence,
        original_data=dict(raw_row),
    )


def parse_rows(
    rows: list[dict[str, str]],
    store: ClubStore,
    source_file: str = '',
    review_threshold: int = REVIEW_THRESHOLD,
    flag_suspicious: bool = False,
) -> list[CompetitionRecord]:
    """Parse all rows of one file; ids are numbered from 1 within the file."""
    records = [
        parse_row(row, store, source_file, i, review_threshold, flag_suspicious)
        for i, row in enumerate(rows, start=1)
    ]
    flagged = sum(1 for r in records if r.needs_review)
    log.info("%d rows parsed from %s (%d need review)", len(records), source_file or 'input', flagged)
    return records


def resequence(records: list[CompetitionRecord]) -> list[CompetitionRecord]:
    """Assign contiguous ids 1..n across a whole import batch."""
    for i, record in enumerate(records, start=1):
        record.id = i
    return records
