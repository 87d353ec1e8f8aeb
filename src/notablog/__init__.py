"""Incremental static blog generator for hosted tables."""

from __future__ import annotations

__version__ = "0.1.0"
