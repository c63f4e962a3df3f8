#!/usr/bin/env python3
"""
Technique Date Index Builder

Maps every technique ID covered by a remote criteria listing to the latest
commit timestamp of the file that covers it.

Each remote file gets exactly one commit lookup. Lookups are independent and
may run on a thread pool, but results are always applied in listing order
after every lookup has completed: when a range file and a single-technique
file cover the same ID, the file that appears later in the listing wins,
regardless of which lookup returned first.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple

from tqdm import tqdm

from .errors import CommitLookupError
from .models import DateIndex, RemoteFileEntry
from .range_resolver import resolve_technique_ids
from ..logging.workflow_logger import get_logger

logger = get_logger()

# LatestCommitTimestamp(path) capability supplied by the remote catalog client
CommitLookup = Callable[[str], datetime]


class DateIndexStats:
    """Track date index build statistics"""

    def __init__(self):
        self.start_time = datetime.now(timezone.utc)
        self.entries_total: int = 0
        self.entries_indexed: int = 0
        self.lookup_failures: int = 0
        self.unresolved_names: int = 0
        self.assignments: int = 0
        self.overwrites: int = 0
        self.techniques_indexed: int = 0
        self.errors: List[str] = []

    @property
    def entries_skipped(self) -> int:
        return self.lookup_failures + self.unresolved_names

    def report(self) -> str:
        """Generate human-readable statistics report"""
        elapsed = (datetime.now(timezone.utc) - self.start_time).total_seconds()
        lines = [
            "\n" + "=" * 80,
            "DATE INDEX BUILD SUMMARY",
            "=" * 80,
            f"Remote files listed:       {self.entries_total:,}",
            f"Remote files indexed:      {self.entries_indexed:,}",
            f"  - Lookup failures:       {self.lookup_failures:,}",
            f"  - Unresolved names:      {self.unresolved_names:,}",
            f"Techniques indexed:        {self.techniques_indexed:,}",
            f"Overwritten assignments:   {self.overwrites:,}",
            f"Elapsed time:              {elapsed:.1f}s",
        ]
        if self.errors:
            lines.append(f"\nErrors encountered:        {len(self.errors)}")
            for error in self.errors[:5]:
                lines.append(f"  - {error}")
            if len(self.errors) > 5:
                lines.append(f"  ... and {len(self.errors) - 5} more")
        lines.append("=" * 80 + "\n")
        return "\n".join(lines)


class DateIndexBuilder:
    """Builds a technique -> last commit timestamp index from a remote listing"""

    def __init__(self, lookup: CommitLookup, max_workers: int = 1):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.lookup = lookup
        self.max_workers = max_workers
        self.stats = DateIndexStats()

    def _lookup_entry(self, entry: RemoteFileEntry) -> Tuple[Optional[datetime], Optional[str]]:
        """Run one commit lookup (thread-safe worker function)"""
        try:
            return self.lookup(entry.path), None
        except CommitLookupError as e:
            return None, str(e)

    def _lookup_all(self, entries: Sequence[RemoteFileEntry]) -> List[Tuple[Optional[datetime], Optional[str]]]:
        if self.max_workers == 1 or len(entries) <= 1:
            return [self._lookup_entry(entry) for entry in tqdm(entries, desc="Querying commit history", unit="file")]

        logger.info(f"Querying commit history for {len(entries)} files with {self.max_workers} workers", group="DATE_INDEX")
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            # map() yields in submission order, not completion order
            return list(tqdm(executor.map(self._lookup_entry, entries), total=len(entries),
                             desc="Querying commit history", unit="file"))

    def build(self, entries: Sequence[RemoteFileEntry]) -> DateIndex:
        """
        Build the date index for an ordered remote listing.

        Args:
            entries: Remote file entries in listing order

        Returns:
            Dict mapping technique ID to the commit timestamp of the last
            listed file covering it
        """
        entries = list(entries)
        self.stats = DateIndexStats()
        self.stats.entries_total = len(entries)

        lookups = self._lookup_all(entries)

        date_index: DateIndex = {}
        for position, (entry, (timestamp, error)) in enumerate(zip(entries, lookups), start=1):
            if timestamp is None:
                self.stats.lookup_failures += 1
                self.stats.errors.append(error)
                logger.warning(f"Skipping {entry.path}: {error}", group="DATE_INDEX")
                continue

            resolution = resolve_technique_ids(entry.name)
            if not resolution.ok:
                self.stats.unresolved_names += 1
                self.stats.errors.append(resolution.describe())
                logger.warning(f"Skipping {entry.path}: {resolution.describe()}", group="DATE_INDEX")
                continue

            logger.debug(f"[{position:>4}/{len(entries)}] {entry.name:<24} {resolution.describe()} -> {timestamp.isoformat()}", group="DATE_INDEX")
            for technique_id in resolution:
                previous = date_index.get(technique_id)
                if previous is not None and previous != timestamp:
                    self.stats.overwrites += 1
                    logger.debug(f"{technique_id} reassigned from {previous.isoformat()} to {timestamp.isoformat()} by {entry.name}", group="DATE_INDEX")
                date_index[technique_id] = timestamp
                self.stats.assignments += 1
            self.stats.entries_indexed += 1

        self.stats.techniques_indexed = len(date_index)
        logger.data_summary("Date index built", group="DATE_INDEX",
                            files=self.stats.entries_total,
                            indexed=self.stats.entries_indexed,
                            skipped=self.stats.entries_skipped,
                            techniques=self.stats.techniques_indexed)
        return date_index


def build_date_index(entries: Sequence[RemoteFileEntry], lookup: CommitLookup, max_workers: int = 1) -> DateIndex:
    """Convenience wrapper around DateIndexBuilder for one-shot builds"""
    return DateIndexBuilder(lookup, max_workers=max_workers).build(entries)
