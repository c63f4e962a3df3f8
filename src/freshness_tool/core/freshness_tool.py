#!/usr/bin/env python3
"""
Criteria Freshness Script

Flags which local atomic tests may be out of date relative to the upstream
validation criteria. Criteria files are listed per platform directory, each
file's last commit date is fanned out to every technique the file covers,
and the resulting index is reconciled against the local atomic test index.
"""

import argparse
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import gatherData
from .date_index import DateIndexBuilder, DateIndexStats
from .errors import IndexUnreadable, ListingUnavailable
from .local_index import load_local_index
from .models import StalenessEntry
from .reconciler import reconcile, summarize
from ..logging.workflow_logger import (
    get_logger,
    start_listing, end_listing,
    start_date_index, end_date_index,
    start_local_index, end_local_index,
    start_reconciliation, end_reconciliation,
)
from ..reporting.staleness_report import format_summary, write_reports
from ..storage.commit_archive import CommitArchive
from ..storage.run_organization import create_run_directory, get_run_paths, resolve_project_path

# Get logger instance
logger = get_logger()

config = gatherData.config


@dataclass
class ReconciliationResult:
    """Outputs of one reconciliation pass"""
    entries: List[StalenessEntry]
    date_index_stats: DateIndexStats
    remote_files: int
    local_techniques: int
    summary: Dict[str, int] = field(default_factory=dict)


def run_reconciliation(client: gatherData.GitHubCatalogClient, catalog_id: str, paths: List[str],
                       local_root, max_workers: int = 1,
                       index_config: Optional[Dict[str, Any]] = None) -> ReconciliationResult:
    """
    Run the full listing -> date index -> local index -> reconcile pipeline.

    Raises:
        ListingUnavailable: a remote directory listing could not be read
        IndexUnreadable: the local index could not be loaded
    """
    start_listing(f"{catalog_id} {', '.join(paths)}")
    remote_entries = gatherData.gatherRemoteListing(client, catalog_id, paths)
    end_listing(f"{len(remote_entries)} criteria files")

    start_date_index(f"{len(remote_entries)} files, {max_workers} workers")
    builder = DateIndexBuilder(client.commit_lookup(catalog_id), max_workers=max_workers)
    date_index = builder.build(remote_entries)
    end_date_index(f"{len(date_index)} techniques dated")
    logger.debug(builder.stats.report(), group="DATE_INDEX")

    start_local_index(str(local_root))
    local_index = load_local_index(local_root, index_config)
    end_local_index(f"{len(local_index)} techniques")

    start_reconciliation()
    entries = reconcile(date_index, local_index)
    summary = summarize(entries)
    end_reconciliation(", ".join(f"{status}={count}" for status, count in summary.items()))

    return ReconciliationResult(
        entries=entries,
        date_index_stats=builder.stats,
        remote_files=len(remote_entries),
        local_techniques=len(local_index),
        summary=summary,
    )


def parse_review_date(value: str) -> datetime:
    """argparse type for --reviewed-since: YYYY-MM-DD or full ISO-8601"""
    try:
        parsed = gatherData.parse_commit_date(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}' (expected YYYY-MM-DD or ISO-8601)")
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def build_parser() -> argparse.ArgumentParser:
    catalog_defaults = config['catalogs']['criteria']
    parser = argparse.ArgumentParser(description="Flag local atomic tests whose upstream validation criteria changed")
    parser.add_argument("--catalog", default=catalog_defaults['catalog_id'],
                        help="Remote criteria repository (owner/name)")
    parser.add_argument("--paths", nargs="+", default=catalog_defaults['paths'],
                        help="Catalog directories to list, in overwrite order (later wins)")
    parser.add_argument("--atomics-dir", default=config['local_index']['default_root'],
                        help="Local atomic-red-team atomics directory")
    parser.add_argument("--token", help="GitHub token (optional but recommended for rate limits)")
    parser.add_argument("--workers", type=int, default=config['api'].get('max_workers', 1),
                        help="Concurrent commit lookups")
    parser.add_argument("--reviewed-since", type=parse_review_date,
                        help="Date local tests were last reviewed; splits dated techniques into current/possibly-stale")
    parser.add_argument("--no-archive", action="store_true", help="Don't persist raw commit listings")
    parser.add_argument("--runs-dir", help="Parent directory for run output (defaults to <project>/runs)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main function: run one reconciliation pass from command line arguments."""
    args = build_parser().parse_args(argv)

    if args.workers < 1:
        logger.error(f"--workers must be at least 1, got {args.workers}", group="initialization")
        return 2
    if args.verbose:
        logger.set_level("DEBUG")

    run_path, run_id = create_run_directory(args.catalog.replace('/', '_'),
                                            runs_root=Path(args.runs_dir) if args.runs_dir else None)
    run_paths = get_run_paths(run_path)
    logger.set_run_logs_directory(str(run_paths["logs"]))
    logger.start_file_logging(f"freshness_{args.catalog.replace('/', '_')}")
    logger.info(f"Created run directory: {run_id}", group="initialization")

    token = args.token or config['defaults'].get('default_token') or ""
    if token:
        logger.info("Using GitHub token for authenticated requests", group="initialization")
    else:
        logger.warning("No GitHub token provided - unauthenticated requests are limited to 60 per hour", group="initialization")

    archive_config = dict(config.get('commit_archive', {}))
    if args.no_archive:
        archive_config['enabled'] = False
    archive = CommitArchive(archive_config)
    client = gatherData.GitHubCatalogClient(token=token, archive=archive)

    try:
        result = run_reconciliation(client, args.catalog, args.paths,
                                    resolve_project_path(args.atomics_dir),
                                    max_workers=args.workers,
                                    index_config=config['local_index'])
    except ListingUnavailable as e:
        logger.error(f"Remote listing unavailable - no report produced: {e}", group="listing")
        logger.stop_file_logging()
        return 1
    except IndexUnreadable as e:
        logger.error(f"Local index unreadable - no report produced: {e}", group="local_index")
        logger.stop_file_logging()
        return 1

    try:
        archive.write_metadata(run_id)

        print(format_summary(result.entries, args.reviewed_since, args.catalog))
        outputs = write_reports(result.entries, run_paths["reports"], config.get('reporting', {}),
                                reviewed_at=args.reviewed_since,
                                metadata={
                                    "run_id": run_id,
                                    "catalog": args.catalog,
                                    "paths": args.paths,
                                    "remote_files": result.remote_files,
                                    "techniques_dated": result.date_index_stats.techniques_indexed,
                                    "remote_files_skipped": result.date_index_stats.entries_skipped,
                                })
        logger.info(f"Reports written: {outputs['csv']}, {outputs['json']}", group="reporting")
    except OSError as e:
        logger.error(f"Could not write staleness reports: {e}", group="reporting")
        return 1
    finally:
        logger.stop_file_logging()
    return 0


if __name__ == "__main__":
    sys.exit(main())
