"""Score validation against distance-dependent maxima.

Every round (one complete distance) is worth at most 360 points, so
'70m' allows 360, '2x70m' 720 and '90m+70m+50m+30m' 1440.
"""

import re
from dataclasses import dataclass
from typing import Optional

POINTS_PER_ROUND = 360

# Scores above this share of the maximum are valid but flagged for review
SUSPICIOUS_RATIO = 0.9

_MULTIPLIER_RE = re.compile(r'^(\d+)\s*x', re.IGNORECASE)


def _segment_rounds(segment: str) -> int:
    m = _MULTIPLIER_RE.match(segment.strip())
    if m:
        return max(int(m.group(1)), 1)
    return 1


def parse_distance_count(distance: str) -> int:
    """Number of rounds implied by a distance string.

    '70m' → 1, '2x70m' → 2, '90m+70m+50m+30m' → 4, '2x90m+2x70m' → 4.
    Empty or unparseable input counts as one round.
    """
    if not distance or not isinstance(distance, str):
        return 1
    segments = [s for s in distance.lower().split('+') if s.strip()]
    if not segments:
        return 1
    return sum(_segment_rounds(s) for s in segments)


def get_max_score(distance: str) -> int:
    """Maximum possible score for a distance string."""
    return parse_distance_count(distance) * POINTS_PER_ROUND


@dataclass
class ScoreValidation:
    """Outcome of validating one score."""

    valid: bool
    max_score: int
    kind: Optional[str] = None      # 'negative' or 'exceeds-maximum'
    error: str = ''


def validate_score(score: int, distance: str) -> ScoreValidation:
    """Check a score against zero and the distance maximum.

    Args:
        score: Parsed result value.
        distance: Normalized distance string.

    Returns:
        ScoreValidation carrying the computed maximum either way.
    """
    max_score = get_max_score(distance)
    if score < 0:
        return ScoreValidation(
            valid=False, max_score=max_score, kind='negative',
            error='Score cannot be negative',
        )
    if score > max_score:
        return ScoreValidation(
            valid=False, max_score=max_score, kind='exceeds-maximum',
            error=f"Score {score} exceeds maximum {max_score} for {distance or 'unknown distance'}",
        )
    return ScoreValidation(valid=True, max_score=max_score)


def is_suspiciously_high(score: int, distance: str, ratio: float = SUSPICIOUS_RATIO) -> bool:
    """True for a valid score above the given share of the maximum."""
    max_score = get_max_score(distance)
    return 0 <= score <= max_score and score > max_score * ratio
