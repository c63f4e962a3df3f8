#!/usr/bin/env python3
"""
Local Atomic Test Index Loader

Reads the Indexes-CSV files of a local atomic-red-team checkout and groups
the atomic tests by technique ID.

Sub-techniques (T1003.001) are grouped under their parent technique
(T1003), since remote criteria files are named by parent technique only.
The full sub-technique string is kept on each LocalTestSpec.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd

from .errors import IndexUnreadable
from .models import LocalIndex, LocalTestSpec
from .range_resolver import TECHNIQUE_PATTERN
from ..logging.workflow_logger import get_logger

logger = get_logger()

TECHNIQUE_COLUMN = "Technique #"
TEST_NUMBER_COLUMN = "Test #"
TEST_NAME_COLUMN = "Test Name"
TEST_GUID_COLUMN = "Test GUID"
REQUIRED_COLUMNS = {TECHNIQUE_COLUMN, TEST_NUMBER_COLUMN}


def _platform_from_filename(csv_path: Path) -> str:
    # windows-index.csv -> windows, index.csv -> all
    stem = csv_path.stem
    return stem[:-len("-index")] if stem.endswith("-index") else "all"


def _read_index_csv(csv_path: Path) -> Optional[pd.DataFrame]:
    """Read one index CSV as strings, or None if it cannot be parsed"""
    try:
        df = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        logger.warning(f"Cannot read local index file {csv_path}: {e}", group="LOCAL_INDEX")
        return None
    df.columns = [str(column).strip() for column in df.columns]
    return df


def load_local_index(root_dir, index_config: Optional[Dict[str, Any]] = None) -> LocalIndex:
    """
    Load the local atomic test index.

    Args:
        root_dir: The atomics directory of an atomic-red-team checkout
        index_config: 'local_index' config section (csv_directory, csv_files)

    Returns:
        Dict mapping technique ID to its tests, in first-seen order

    Raises:
        IndexUnreadable: no index CSV could be read or one lacks required columns
    """
    index_config = index_config or {}
    root_dir = Path(root_dir)
    csv_dir = root_dir / index_config.get('csv_directory', 'Indexes/Indexes-CSV')
    csv_files = index_config.get('csv_files', ['index.csv'])

    if not csv_dir.is_dir():
        raise IndexUnreadable(root_dir, f"Index directory not found: {csv_dir}")

    local_index: LocalIndex = {}
    seen_tests = set()
    files_loaded = 0

    for filename in csv_files:
        csv_path = csv_dir / filename
        if not csv_path.exists():
            logger.debug(f"Local index file not present: {csv_path}", group="LOCAL_INDEX")
            continue

        df = _read_index_csv(csv_path)
        if df is None:
            continue

        missing = REQUIRED_COLUMNS - set(df.columns)
        if missing:
            raise IndexUnreadable(root_dir, f"{csv_path} is missing required columns: {', '.join(sorted(missing))}")

        platform = _platform_from_filename(csv_path)
        files_loaded += 1
        rows_added = 0

        for row in df.to_dict(orient="records"):
            raw_technique = row[TECHNIQUE_COLUMN].strip()
            match = TECHNIQUE_PATTERN.search(raw_technique)
            if not match:
                logger.warning(f"Skipping row without technique ID in {csv_path.name}: '{raw_technique}'", group="LOCAL_INDEX")
                continue

            technique = f"T{match.group(1)}"
            test_id = row.get(TEST_GUID_COLUMN, "").strip() or f"{raw_technique}-{row[TEST_NUMBER_COLUMN].strip()}"

            # Same test is listed once per tactic and once per platform file
            if (technique, test_id) in seen_tests:
                continue
            seen_tests.add((technique, test_id))

            local_index.setdefault(technique, []).append(LocalTestSpec(
                technique=technique,
                test_id=test_id,
                source_file=f"atomics/{raw_technique}/{raw_technique}.yaml",
                sub_technique=raw_technique,
                test_name=row.get(TEST_NAME_COLUMN, "").strip(),
                platform=platform,
            ))
            rows_added += 1

        logger.info(f"Loaded {rows_added} atomic tests from {csv_path.name}", group="LOCAL_INDEX")

    if files_loaded == 0:
        raise IndexUnreadable(root_dir, f"No readable index CSV files in {csv_dir} (expected one of: {', '.join(csv_files)})")

    logger.data_summary("Local index loaded", group="LOCAL_INDEX",
                        files=files_loaded, techniques=len(local_index),
                        tests=sum(len(tests) for tests in local_index.values()))
    return local_index
