#!/usr/bin/env python3
"""
Commit Archive

Persists the raw GitHub commit listing for every criteria file that was
queried, so a run can be audited later against exactly what the API said.
Payloads are stored verbatim (one JSON file per remote path) with orjson,
alongside a metadata file describing the archive.

The archive is write-only from the pipeline's point of view: the date index
is always rebuilt from fresh lookups and never from archived payloads.
"""

import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import orjson

from .run_organization import resolve_project_path
from ..logging.workflow_logger import get_logger

logger = get_logger()


def _safe_component(value: str) -> str:
    cleaned = "".join(c if (c.isalnum() or c in ("-", "_", ".")) else "_" for c in value.strip("/"))
    # Never let a component climb out of the archive directory
    return cleaned if cleaned.strip(".") else "_"


class CommitArchive:
    """Stores raw commit listings per catalog path"""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.enabled = config.get('enabled', False)
        self.archive_dir = resolve_project_path(config.get('path', 'cache/commits'))
        self.metadata_file = self.archive_dir / 'archive_metadata.json'
        self._lock = threading.Lock()
        self.files_written = 0

    def path_for(self, catalog_id: str, remote_path: str) -> Path:
        """Archive file location for a catalog path, e.g. owner_repo/windows/T1000.csv.json"""
        parts = [_safe_component(part) for part in remote_path.strip("/").split("/") if part]
        target = self.archive_dir / _safe_component(catalog_id)
        for part in parts[:-1]:
            target = target / part
        return target / f"{parts[-1] if parts else '_'}.json"

    def store(self, catalog_id: str, remote_path: str, payload: Any) -> Optional[Path]:
        """
        Write the raw commits payload for one path.

        Failures are logged and never propagate: the archive is an audit
        aid, not part of the reconciliation result.
        """
        if not self.enabled:
            return None

        target = self.path_for(catalog_id, remote_path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, 'wb') as f:
                f.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
        except (OSError, orjson.JSONEncodeError, TypeError) as e:
            logger.warning(f"Failed to archive commits for {catalog_id}:{remote_path}: {e}", group="CACHE_MANAGEMENT")
            return None

        with self._lock:
            self.files_written += 1
        logger.debug(f"Archived commit listing: {target}", group="CACHE_MANAGEMENT")
        return target

    def write_metadata(self, run_id: Optional[str] = None) -> Optional[Path]:
        """Update archive_metadata.json with totals for this run"""
        if not self.enabled:
            return None

        metadata: Dict[str, Any] = {}
        try:
            if self.metadata_file.exists():
                with open(self.metadata_file, 'rb') as f:
                    metadata = orjson.loads(f.read())
        except (OSError, orjson.JSONDecodeError) as e:
            logger.warning(f"Archive metadata unreadable, rewriting: {e}", group="CACHE_MANAGEMENT")
            metadata = {}

        now = datetime.now(timezone.utc).isoformat()
        metadata.setdefault('created', now)
        metadata.update({
            'description': self.config.get('description', 'Raw commit listings'),
            'directory_path': str(self.archive_dir),
            'last_updated': now,
            'last_run_id': run_id,
            'files_written_last_run': self.files_written,
            'total_files': sum(1 for p in self.archive_dir.rglob("*.json") if p != self.metadata_file),
        })

        try:
            self.archive_dir.mkdir(parents=True, exist_ok=True)
            with open(self.metadata_file, 'wb') as f:
                f.write(orjson.dumps(metadata, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS))
        except OSError as e:
            logger.warning(f"Could not update archive metadata: {e}", group="CACHE_MANAGEMENT")
            return None
        return self.metadata_file
