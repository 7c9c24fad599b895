"""Export of cleaned records (CSV, JSON, corrections log, HTML, summary)."""

import csv
import json
import logging
from collections import Counter
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader

from archery import METHODS, CompetitionRecord, Field, IssueTicket
from archery.registry import NameSuggestion

log = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent / 'templates'

CSV_COLUMNS = [f.value for f in Field]

LOG_COLUMNS = [
    'Record',
    'Athlete',
    'Field',
    'Original',
    'Corrected',
    'Method',
    'Confidence',
    'Timestamp',
]


def _correction_rows(records: list[CompetitionRecord]) -> list[dict]:
    """One flat row per Correction, in record order."""
    rows = []
    for r in records:
        for c in r.corrections:
            rows.append({
                'Record': r.id,
                'Athlete': r.athlete,
                'Field': c.field.value,
                'Original': c.original,
                'Corrected': c.corrected,
                'Method': c.method,
                'Confidence': c.confidence,
                'Timestamp': c.timestamp.isoformat(timespec='seconds'),
            })
    return rows


def write_csv_export(records: list[CompetitionRecord], output_path: Path) -> None:
    """Write records as CSV with the canonical English headers.

    Uses UTF-8 with BOM (utf-8-sig) so spreadsheet programs pick up the
    Estonian characters; embedded commas, quotes and newlines are quoted.

    Args:
        records: Cleaned records.
        output_path: Path for the output CSV file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', newline='', encoding='utf-8-sig') as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS, extrasaction='ignore')
        writer.writeheader()
        for record in records:
            writer.writerow(record.to_row())

    log.info("CSV export written: %s (%d rows)", output_path, len(records))


def write_json_export(records: list[CompetitionRecord], output_path: Path) -> None:
    """Write the public view of the records (no audit fields) as JSON."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    data = [r.public_dict() for r in records]
    output_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding='utf-8')
    log.info("JSON export written: %s (%d records)", output_path, len(records))


def write_corrections_log(records: list[CompetitionRecord], output_path: Path) -> None:
    """Write the audit trail, one line per Correction."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    rows = _correction_rows(records)

    with open(output_path, 'w', newline='', encoding='utf-8-sig') as f:
        writer = csv.DictWriter(f, fieldnames=LOG_COLUMNS)
        writer.writeheader()
        writer.writerows(rows)

    log.info("Corrections log written: %s (%d corrections)", output_path, len(rows))


def write_html_report(
    records: list[CompetitionRecord],
    output_path: Path,
    title: str = '',
    tickets: Optional[list[IssueTicket]] = None,
    suggestions: Optional[list[NameSuggestion]] = None,
) -> None:
    """Write a review report as HTML using Jinja2.

    Args:
        records: Cleaned records.
        output_path: Path for the output HTML file.
        title: Report title, usually the imported file names.
        tickets: Tickets still open after review.
        suggestions: Athlete name typo suggestions from the import.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=True,
    )
    template = env.get_template('report.html')

    html = template.render(
        title=title,
        columns=CSV_COLUMNS,
        rows=[dict(r.to_row(), _review=r.needs_review, _id=r.id) for r in records],
        stats=_compute_stats(records),
        tickets=tickets or [],
        suggestions=suggestions or [],
        corrections=_correction_rows(records),
    )

    output_path.write_text(html, encoding='utf-8')
    log.info("HTML report written: %s", output_path)


def _compute_stats(records: list[CompetitionRecord]) -> dict:
    """Compute summary statistics over records and their corrections."""
    methods = Counter(c.method for r in records for c in r.corrections)
    fields = Counter(c.field.value for r in records for c in r.corrections)
    return {
        'total': len(records),
        'needs_review': sum(1 for r in records if r.needs_review),
        'corrected': sum(1 for r in records if r.corrections),
        'corrections_total': sum(methods.values()),
        'by_method': {m: methods.get(m, 0) for m in METHODS},
        'by_field': dict(fields),
        'files': sorted({r.source_file for r in records if r.source_file}),
    }


def print_summary(records: list[CompetitionRecord], title: str = '') -> None:
    """Print a summary of the cleaned records to stdout.

    Args:
        records: Cleaned records.
        title: Heading, usually the imported file names.
    """
    stats = _compute_stats(records)

    print(f"\n=== Cleaning report: {title} ===")
    print(f"Records:                   {stats['total']:>5}")
    print(f"Records with corrections:  {stats['corrected']:>5}")
    print(f"Records needing review:    {stats['needs_review']:>5}")
    print("---")
    print(f"Corrections total:         {stats['corrections_total']:>5}")
    for method in METHODS:
        print(f"  - {method + ':':<23}{stats['by_method'][method]:>5}")
    print()
