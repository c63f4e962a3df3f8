"""
Freshness Tool Package

Flags local atomic tests whose upstream validation criteria may have changed.
"""

import json
from pathlib import Path


def _get_version():
    """Get version from config.json"""
    try:
        with open(Path(__file__).parent / "config.json", 'r') as f:
            config = json.load(f)
        return config.get("application", {}).get("version", "unknown")
    except (OSError, ValueError):
        return "unknown"


__version__ = _get_version()
