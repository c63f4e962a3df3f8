"""
Staleness reconciliation of the local technique index against the remote date index.
"""

from collections import Counter
from typing import Dict, List

from .models import DateIndex, LocalIndex, StalenessEntry, StalenessStatus
from ..logging.workflow_logger import get_logger

logger = get_logger()


def reconcile(date_index: DateIndex, local_index: LocalIndex) -> List[StalenessEntry]:
    """
    Classify each distinct local technique against the remote date index.

    Args:
        date_index: Technique ID -> remote commit timestamp
        local_index: Technique ID -> local tests, in the order to report

    Returns:
        One StalenessEntry per local technique, in local index order
    """
    entries = []
    for technique, tests in local_index.items():
        # Report is keyed by technique, one representative test is enough
        representative = tests[0] if tests else None
        remote_timestamp = date_index.get(technique)

        if remote_timestamp is None:
            entries.append(StalenessEntry(technique, False, None, StalenessStatus.NOT_FOUND_REMOTELY, representative))
            logger.debug(f"{technique}: not found in remote criteria", group="RECONCILE")
        else:
            entries.append(StalenessEntry(technique, True, remote_timestamp, StalenessStatus.DATED, representative))
            logger.debug(f"{technique}: remote criteria last committed {remote_timestamp.isoformat()}", group="RECONCILE")

    return entries


def summarize(entries: List[StalenessEntry]) -> Dict[str, int]:
    """Count report entries per status value"""
    counts = Counter(entry.status.value for entry in entries)
    return {status.value: counts.get(status.value, 0) for status in StalenessStatus}
