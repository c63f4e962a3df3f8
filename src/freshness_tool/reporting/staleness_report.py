#!/usr/bin/env python3
"""
Staleness Report Output

Presentation layer for the reconciliation result: a console summary plus
CSV and JSON report files in the run's reports/ directory.

When a review cutoff is supplied (the date the local tests were last
reviewed against the criteria), dated techniques are further split into
'current' (remote unchanged since review) and 'possibly-stale' (remote
committed after review). Without a cutoff they are reported as 'dated'.
"""

from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import orjson
import pandas as pd

from ..core.models import StalenessEntry, StalenessStatus
from ..logging.workflow_logger import get_logger

logger = get_logger()

CURRENT = "current"
POSSIBLY_STALE = "possibly-stale"

REPORT_COLUMNS = ["technique", "status", "review_status", "local_found",
                  "remote_timestamp", "test_id", "source_file"]


def review_status(entry: StalenessEntry, reviewed_at: Optional[datetime] = None) -> str:
    """Status of an entry relative to an optional review cutoff"""
    if entry.status is StalenessStatus.NOT_FOUND_REMOTELY or reviewed_at is None:
        return entry.status.value
    return POSSIBLY_STALE if entry.remote_timestamp > reviewed_at else CURRENT


def build_report_rows(entries: List[StalenessEntry], reviewed_at: Optional[datetime] = None) -> List[Dict[str, Any]]:
    rows = []
    for entry in entries:
        row = entry.to_dict()
        row["review_status"] = review_status(entry, reviewed_at)
        rows.append(row)
    return rows


def format_summary(entries: List[StalenessEntry], reviewed_at: Optional[datetime] = None,
                   catalog_id: str = "") -> str:
    """Human-readable summary block for the console"""
    counts = Counter(review_status(entry, reviewed_at) for entry in entries)
    lines = [
        "\n" + "=" * 80,
        "CRITERIA STALENESS REPORT" + (f" - {catalog_id}" if catalog_id else ""),
        "=" * 80,
        f"Local techniques:          {len(entries):,}",
    ]
    if reviewed_at is None:
        lines.append(f"  - Dated:                 {counts.get(StalenessStatus.DATED.value, 0):,}")
    else:
        lines.append(f"Reviewed at:               {reviewed_at.isoformat()}")
        lines.append(f"  - Current:               {counts.get(CURRENT, 0):,}")
        lines.append(f"  - Possibly stale:        {counts.get(POSSIBLY_STALE, 0):,}")
    lines.append(f"  - Not found remotely:    {counts.get(StalenessStatus.NOT_FOUND_REMOTELY.value, 0):,}")

    flagged = [entry for entry in entries
               if review_status(entry, reviewed_at) in (POSSIBLY_STALE, StalenessStatus.NOT_FOUND_REMOTELY.value)]
    if flagged:
        lines.append("\nFlagged techniques:")
        for entry in flagged[:20]:
            when = entry.remote_timestamp.isoformat() if entry.remote_timestamp else "-"
            lines.append(f"  - {entry.technique:<10} {review_status(entry, reviewed_at):<20} {when}")
        if len(flagged) > 20:
            lines.append(f"  ... and {len(flagged) - 20} more (see report files)")
    lines.append("=" * 80 + "\n")
    return "\n".join(lines)


def write_csv_report(rows: List[Dict[str, Any]], output_path: Path) -> Path:
    df = pd.DataFrame(rows, columns=REPORT_COLUMNS)
    df.to_csv(output_path, index=False)
    logger.file_operation("saved", str(output_path), f"{len(df)} rows", group="REPORT")
    return output_path


def write_json_report(rows: List[Dict[str, Any]], output_path: Path, metadata: Optional[Dict[str, Any]] = None) -> Path:
    document = {
        "metadata": {
            "generated": datetime.now(timezone.utc).isoformat(),
            **(metadata or {}),
        },
        "entries": rows,
    }
    with open(output_path, 'wb') as f:
        f.write(orjson.dumps(document, option=orjson.OPT_INDENT_2))
    logger.file_operation("saved", str(output_path), f"{len(rows)} entries", group="REPORT")
    return output_path


def write_reports(entries: List[StalenessEntry], reports_dir, reporting_config: Optional[Dict[str, Any]] = None,
                  reviewed_at: Optional[datetime] = None, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Path]:
    """
    Write CSV and JSON staleness reports.

    Returns:
        Dict with 'csv' and 'json' output paths
    """
    reporting_config = reporting_config or {}
    reports_dir = Path(reports_dir)
    reports_dir.mkdir(parents=True, exist_ok=True)

    rows = build_report_rows(entries, reviewed_at)
    metadata = dict(metadata or {})
    metadata["reviewed_at"] = reviewed_at.isoformat() if reviewed_at else None

    return {
        "csv": write_csv_report(rows, reports_dir / reporting_config.get('csv_filename', 'staleness_report.csv')),
        "json": write_json_report(rows, reports_dir / reporting_config.get('json_filename', 'staleness_report.json'), metadata),
    }
