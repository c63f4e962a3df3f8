"""
Directory organization utilities for run-based output management.
Manages the creation and organization of freshness runs with timestamp-based naming.
"""

import datetime
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

DEFAULT_SUBDIRS = ["logs", "reports"]


def get_project_root() -> Path:
    """Get the root directory of the project (where run_tools.py lives)"""
    current_file = Path(__file__).resolve()
    for parent in current_file.parents:
        if (parent / "run_tools.py").exists():
            return parent
    # Installed without the source checkout: fall back to the working directory
    return Path.cwd()


def resolve_project_path(path) -> Path:
    """Resolve a config path relative to the project root unless it is absolute"""
    path = Path(path)
    if path.is_absolute():
        return path
    return get_project_root() / path


def _clean_context(context: str) -> str:
    return "".join(c for c in context if c.isalnum() or c in ("-", "_", "."))


def create_run_directory(run_context: Optional[str] = None, is_test: bool = False,
                         subdirs: Optional[List[str]] = None,
                         runs_root: Optional[Path] = None) -> Tuple[Path, str]:
    """
    Create a new run directory with timestamp-based naming.

    Args:
        run_context: Optional context string (e.g. catalog name) appended to the timestamp
        is_test: Whether this is a test run (adds 'TEST_' prefix to context)
        subdirs: Subdirectories to create (defaults to ["logs", "reports"])
        runs_root: Parent directory for runs (defaults to <project>/runs)

    Returns:
        Tuple of (run_directory_path, run_id)
    """
    timestamp = datetime.datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    context = run_context or "run"
    if is_test:
        context = f"TEST_{context}"
    run_id = f"{timestamp}_{_clean_context(context)}"

    if runs_root is None:
        if os.environ.get('CONSOLIDATED_TEST_RUN') == '1' and os.environ.get('CONSOLIDATED_TEST_RUN_PATH'):
            runs_root = Path(os.environ['CONSOLIDATED_TEST_RUN_PATH']) / "logs"
        else:
            runs_root = get_project_root() / "runs"

    run_path = Path(runs_root) / run_id
    # Two runs in the same second get a numeric suffix
    suffix = 2
    while run_path.exists():
        run_path = Path(runs_root) / f"{run_id}_{suffix}"
        suffix += 1
    run_id = run_path.name

    run_path.mkdir(parents=True)
    for subdir in (subdirs if subdirs is not None else DEFAULT_SUBDIRS):
        (run_path / subdir).mkdir(exist_ok=True)

    return run_path, run_id


def get_run_paths(run_path: Path) -> Dict[str, Path]:
    """Get standard paths within a run directory"""
    run_path = Path(run_path)
    return {
        "run": run_path,
        "logs": run_path / "logs",
        "reports": run_path / "reports",
    }
