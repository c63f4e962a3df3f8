#!/usr/bin/env python3
"""
Freshness Tool Entry Point

This script provides a convenient way to run the criteria freshness check from the project root.
It properly sets up the Python path and imports to work with the package structure.
"""

import sys
from pathlib import Path

# Add the src directory to Python path so we can import the freshness_tool package
project_root = Path(__file__).parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

from freshness_tool.core.freshness_tool import main

if __name__ == "__main__":
    sys.exit(main())
