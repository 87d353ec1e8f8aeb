"""Integration test fixtures.

Provides a three-page blog table and an in-memory content source whose
first page links to the second. The starter work directory and the
collecting logger come from tests/conftest.py.
"""

from __future__ import annotations

import os

import pytest
from helpers import FIRST, SECOND, THIRD, FakeSource, make_row, make_table, make_tree

from notablog.models.table import RawTable


@pytest.fixture()
def table() -> RawTable:
    # Listed out of date order on purpose
    return make_table(
        [
            make_row(THIRD, title="Third", tags=("python",)),
            make_row(SECOND, title="Second", tags=("python",), date="2023-06-01"),
            make_row(FIRST, title="First", tags=("python",), date="2024-01-01", url="first"),
        ]
    )


@pytest.fixture()
def source(table: RawTable) -> FakeSource:
    first_body = make_tree(
        {"id": "t1", "type": "text", "title": [["see ", []], ["second", [["a", f"/{SECOND}"]]]]},
    )
    return FakeSource(table, {FIRST: first_body})


@pytest.fixture()
def subprocess_env() -> dict[str, str]:
    """Current environment without any NOTABLOG__ overrides."""
    return {k: v for k, v in os.environ.items() if not k.startswith("NOTABLOG__")}
