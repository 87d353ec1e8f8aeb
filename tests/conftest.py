"""Shared fixtures: an event-collecting logger and a starter work directory."""

from __future__ import annotations

import io
import json
import logging
from typing import TYPE_CHECKING, Any

import pytest
import structlog
from helpers import SOURCE_URL, THEME_TEMPLATES, page_id

if TYPE_CHECKING:
    from pathlib import Path

    from structlog.typing import FilteringBoundLogger


@pytest.fixture()
def log_events() -> list[dict[str, Any]]:
    return []


@pytest.fixture()
def log(log_events: list[dict[str, Any]]) -> FilteringBoundLogger:
    """Logger that records event dicts into ``log_events`` instead of printing."""

    def collect(logger: Any, method_name: str, event_dict: dict[str, Any]) -> Any:
        log_events.append({"level": method_name, **event_dict})
        raise structlog.DropEvent

    return structlog.wrap_logger(
        structlog.PrintLogger(file=io.StringIO()),
        processors=[collect],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
    )


@pytest.fixture()
def work_dir(tmp_path: Path) -> Path:
    """A starter directory with config.json and a minimal ``pure`` theme."""
    (tmp_path / "config.json").write_text(
        json.dumps(
            {
                "theme": "pure",
                "url": f"{SOURCE_URL}/me/Blog-{page_id(999)}?v=1",
                "previewBrowser": "/usr/bin/true",
                "concurrency": 2,
            }
        ),
        encoding="utf-8",
    )
    layout = tmp_path / "themes" / "pure" / "layout"
    layout.mkdir(parents=True)
    for name, content in THEME_TEMPLATES.items():
        (layout / name).write_text(content, encoding="utf-8")
    assets = tmp_path / "themes" / "pure" / "assets" / "css"
    assets.mkdir(parents=True)
    (assets / "theme.css").write_text("body {}", encoding="utf-8")
    return tmp_path
