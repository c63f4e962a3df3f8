#!/usr/bin/env python3
"""
Source Code Package

Contains the Criteria Freshness Tools source code.
"""

from .freshness_tool import __version__

__author__ = "Hashmire"
