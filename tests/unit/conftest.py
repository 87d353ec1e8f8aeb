"""Unit-specific fixtures (no I/O beyond tmp_path)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from notablog.cache import Cache

if TYPE_CHECKING:
    from pathlib import Path

    from structlog.typing import FilteringBoundLogger


@pytest.fixture()
def cache(tmp_path: Path, log: FilteringBoundLogger) -> Cache:
    """File cache rooted in a fresh temporary directory."""
    return Cache(tmp_path / "cache", log)
