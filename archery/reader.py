"""CSV reading with encoding detection, file validation and batch import."""

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from archery import CompetitionRecord
from archery.clubs import ClubStore
from archery.parser import REVIEW_THRESHOLD, parse_rows, resequence
from archery.registry import AthleteRegistry, NameSuggestion, suggest_name_typos

log = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024

DELIMITERS = (',', ';', '\t')

# Matches any sequence of whitespace (including Unicode whitespace like U+2006)
_WHITESPACE_RE = re.compile(r'\s+')


def detect_encoding(path: Path) -> str:
    """Detect file encoding by checking for BOM bytes.

    Args:
        path: Path to the CSV file.

    Returns:
        Encoding string suitable for open().
    """
    with open(path, 'rb') as f:
        bom = f.read(2)
    if bom == b'\xff\xfe':
        return 'utf-16-le'
    return 'utf-8-sig'


def normalize_whitespace(value: str) -> str:
    """Collapse any whitespace run into one space and strip the ends."""
    return _WHITESPACE_RE.sub(' ', value).strip()


def detect_delimiter(header_line: str) -> str:
    """Pick the delimiter occurring most often in the header line (comma on a tie)."""
    return max(DELIMITERS, key=header_line.count)


@dataclass
class FileValidation:
    valid: bool
    error: str = ''


def validate_file(path: str | Path) -> FileValidation:
    """Accept only existing .csv files up to MAX_FILE_SIZE bytes."""
    path = Path(path)
    if not path.name.lower().endswith('.csv'):
        return FileValidation(False, 'Only CSV files are allowed')
    if not path.is_file():
        return FileValidation(False, 'File not found')
    size = path.stat().st_size
    if size > MAX_FILE_SIZE:
        return FileValidation(
            False, f"File too large: {size / 1024 / 1024:.1f} MB (max {MAX_FILE_SIZE // 1024 // 1024} MB)",
        )
    return FileValidation(True)


def _ends_inside_quotes(tail: str, delimiter: str) -> bool:
    """True when the last record leaves a quoted field open at end of input."""
    try:
        for _row in csv.reader(io.StringIO(tail), delimiter=delimiter, strict=True):
            pass
    except csv.Error as exc:
        return 'unexpected end of data' in str(exc)
    return False


def read_csv_text(text: str, source: str = 'input') -> list[dict[str, str]]:
    """Split CSV text into header-keyed rows.

    Headers are whitespace-normalized; blank lines are skipped. Stray quotes
    inside a cell (``"Mari" Mägi``) are read leniently as part of the value.

    Raises:
        ValueError: If there is no header row, a quoted field is never closed,
            or the CSV structure is otherwise broken.
    """
    # Strip BOM if present
    text = text.lstrip('\ufeff')
    header_line = next((line for line in text.splitlines() if line.strip()), '')
    if not header_line:
        raise ValueError(f"{source} is empty or has no header row.")

    delimiter = detect_delimiter(header_line)
    reader = csv.DictReader(io.StringIO(text), delimiter=delimiter)
    record_start, line = 1, 0
    try:
        if reader.fieldnames is None:
            raise ValueError(f"{source} is empty or has no header row.")
        reader.fieldnames = [normalize_whitespace(h) for h in reader.fieldnames]
        line = reader.line_num
        rows = []
        for row in reader:
            record_start, line = line + 1, reader.line_num
            if not any((v or '').strip() for k, v in row.items() if k is not None and isinstance(v, str)):
                continue
            rows.append(row)
    except csv.Error as exc:
        raise ValueError(f"Malformed CSV in {source} (line {line + 1}): {exc}") from exc

    tail = ''.join(io.StringIO(text).readlines()[record_start - 1:])
    if _ends_inside_quotes(tail, delimiter):
        raise ValueError(f"Malformed CSV in {source} (line {record_start}): unterminated quoted field")
    return rows


def read_rows(path: str | Path) -> list[dict[str, str]]:
    """Read all rows of a CSV file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the CSV is empty or malformed.
    """
    path = Path(path)
    encoding = detect_encoding(path)
    with open(path, 'r', encoding=encoding, newline='') as f:
        content = f.read()
    rows = read_csv_text(content, path.name)
    log.info("%d rows read from %s", len(rows), path)
    return rows


@dataclass
class ImportBatch:
    """Result of importing several files in one go."""

    records: list[CompetitionRecord] = field(default_factory=list)
    rejected_files: list[tuple[str, str]] = field(default_factory=list)
    name_suggestions: list[NameSuggestion] = field(default_factory=list)


def import_files(
    paths: list[str | Path],
    store: ClubStore,
    progress: Optional[Callable[[float], None]] = None,
    review_threshold: int = REVIEW_THRESHOLD,
    flag_suspicious: bool = False,
    registry: Optional[AthleteRegistry] = None,
) -> ImportBatch:
    """Validate, read and parse files one after another.

    Files are handled sequentially so that ids are contiguous across the
    batch in file order. Invalid files are reported, not raised.

    Args:
        paths: CSV files to import.
        store: Club vocabulary.
        progress: Called with the completed fraction after each file.
        review_threshold: Club confidence below which records need review.
        flag_suspicious: Flag valid scores near the maximum.
        registry: Known athletes for name-typo suggestions.

    Returns:
        ImportBatch with re-sequenced records.

    Raises:
        ValueError: If an accepted file is not parseable CSV.
    """
    batch = ImportBatch()
    total = len(paths)
    for i, path in enumerate(paths, start=1):
        path = Path(path)
        check = validate_file(path)
        if not check.valid:
            log.warning("%s skipped: %s", path.name, check.error)
            batch.rejected_files.append((path.name, check.error))
        else:
            rows = read_rows(path)
            batch.records.extend(
                parse_rows(rows, store, path.name, review_threshold, flag_suspicious)
            )
        if progress is not None:
            progress(i / total)

    resequence(batch.records)
    batch.name_suggestions = suggest_name_typos(batch.records, registry)
    log.info(
        "Import finished: %d records from %d files (%d rejected)",
        len(batch.records), total - len(batch.rejected_files), len(batch.rejected_files),
    )
    return batch


def parse_csv_text(
    text: str,
    store: ClubStore,
    source_file: str = '',
    review_threshold: int = REVIEW_THRESHOLD,
    flag_suspicious: bool = False,
) -> list[CompetitionRecord]:
    """Read and parse CSV text in one step."""
    rows = read_csv_text(text, source_file or 'input')
    return resequence(parse_rows(rows, store, source_file, review_threshold, flag_suspicious))
