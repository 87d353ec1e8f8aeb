"""End-to-end tests for the generate pipeline against an in-memory source."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import pytest
from helpers import FIRST, SCHEMA, SECOND, THIRD, FakeSource, make_row, make_table, page_id

from notablog.cache import Cache
from notablog.errors import ErrorCode, NotablogError
from notablog.generate import CONTENT_NAMESPACE, GenerateOptions, generate, partition_pages
from notablog.ids import to_dash_id
from notablog.table import build_site_model

if TYPE_CHECKING:
    from pathlib import Path

    from structlog.typing import FilteringBoundLogger

    from notablog.models.table import RawTable


def _public(work_dir: Path) -> set[str]:
    out = work_dir / "public"
    return {str(p.relative_to(out)) for p in out.rglob("*.html")}


def _cache_path(work_dir: Path, pid: str) -> Path:
    return work_dir / "cache" / Cache.key(CONTENT_NAMESPACE, to_dash_id(pid))


def _events(log_events: list[dict[str, Any]], name: str) -> list[dict[str, Any]]:
    return [e for e in log_events if e["event"] == name]


# ---------------------------------------------------------------------------
# First run
# ---------------------------------------------------------------------------


class TestFirstRun:
    async def test_writes_index_tags_and_pages(
        self, work_dir: Path, source: FakeSource, log: FilteringBoundLogger
    ) -> None:
        failed = await generate(work_dir, source=source, log=log)
        assert failed == 0
        assert _public(work_dir) == {
            "index.html",
            "tag/python.html",
            "first.html",
            f"{SECOND}.html",
            f"{THIRD}.html",
        }
        assert sorted(source.fetched) == sorted(to_dash_id(p) for p in (FIRST, SECOND, THIRD))

    async def test_pages_sorted_newest_first(
        self, work_dir: Path, source: FakeSource, log: FilteringBoundLogger
    ) -> None:
        await generate(work_dir, source=source, log=log)
        tag_page = (work_dir / "public" / "tag" / "python.html").read_text(encoding="utf-8")
        assert "<h1>python</h1>" in tag_page
        assert tag_page.splitlines() == [
            "<h1>python</h1><li>first.html|2024-01-01</li>",
            f"<li>{SECOND}.html|2023-06-01</li>",
            f"<li>{THIRD}.html|None</li>",
        ]
        index = (work_dir / "public" / "index.html").read_text(encoding="utf-8")
        assert index.startswith("<h1>My Blog</h1>")
        assert index.index("First") < index.index("Second") < index.index("Third")

    async def test_links_resolved_in_output_and_cache(
        self, work_dir: Path, source: FakeSource, log: FilteringBoundLogger
    ) -> None:
        await generate(work_dir, source=source, log=log)
        html = (work_dir / "public" / "first.html").read_text(encoding="utf-8")
        assert html == (
            "<h1>First</h1><article>"
            f'<p id="t1">see <a href="{SECOND}.html">second</a></p>'
            "</article>"
        )
        cached = json.loads(_cache_path(work_dir, FIRST).read_text(encoding="utf-8"))
        assert cached["nodes"][1]["title"][1]["marks"][0]["value"] == f"{SECOND}.html"

    async def test_theme_assets_copied(
        self, work_dir: Path, source: FakeSource, log: FilteringBoundLogger
    ) -> None:
        await generate(work_dir, source=source, log=log)
        assert (work_dir / "public" / "css" / "theme.css").is_file()

    async def test_progress_logged(
        self,
        work_dir: Path,
        source: FakeSource,
        log: FilteringBoundLogger,
        log_events: list[dict[str, Any]],
    ) -> None:
        await generate(work_dir, source=source, log=log)
        assert _events(log_events, "pages_updated")[0]["updated"] == 3
        assert _events(log_events, "pages_published")[0]["published"] == 3
        assert _events(log_events, "generate_complete")[0] == {
            "level": "info",
            "event": "generate_complete",
            "pages": 3,
            "failed": 0,
        }


# ---------------------------------------------------------------------------
# Incremental runs
# ---------------------------------------------------------------------------


class TestIncremental:
    async def test_second_run_reads_cache(
        self, work_dir: Path, table: RawTable, source: FakeSource, log: FilteringBoundLogger
    ) -> None:
        await generate(work_dir, source=source, log=log)
        first_html = (work_dir / "public" / "first.html").read_text(encoding="utf-8")
        (work_dir / "public" / "first.html").unlink()

        again = FakeSource(table)
        assert await generate(work_dir, source=again, log=log) == 0
        assert again.fetched == []
        # Rendered from the cached, already-resolved tree
        assert (work_dir / "public" / "first.html").read_text(encoding="utf-8") == first_html

    async def test_edited_page_refetched(
        self, work_dir: Path, source: FakeSource, log: FilteringBoundLogger
    ) -> None:
        await generate(work_dir, source=source, log=log)

        future = datetime(2100, 1, 1, tzinfo=UTC)
        edited = make_table(
            [
                make_row(THIRD, title="Third", tags=("python",)),
                make_row(SECOND, title="Second v2", date="2023-06-01", last_edited=future),
                make_row(FIRST, title="First", date="2024-01-01", url="first"),
            ]
        )
        again = FakeSource(edited)
        assert await generate(work_dir, source=again, log=log) == 0
        assert again.fetched == [to_dash_id(SECOND)]
        html = (work_dir / "public" / f"{SECOND}.html").read_text(encoding="utf-8")
        assert html.startswith("<h1>Second v2</h1>")

    async def test_updated_pages_queued_first(
        self,
        work_dir: Path,
        source: FakeSource,
        log: FilteringBoundLogger,
        log_events: list[dict[str, Any]],
    ) -> None:
        await generate(work_dir, source=source, log=log)
        log_events.clear()

        future = datetime(2100, 1, 1, tzinfo=UTC)
        edited = make_table(
            [
                make_row(FIRST, title="First", date="2024-01-01", url="first"),
                make_row(THIRD, title="Third", last_edited=future),
            ]
        )
        await generate(
            work_dir, GenerateOptions(concurrency=1), source=FakeSource(edited), log=log
        )
        order = [e["event"] for e in log_events if e["event"] in ("page_fetch", "page_cache_read")]
        assert order == ["page_fetch", "page_cache_read"]

    async def test_ignore_cache_refetches_everything(
        self, work_dir: Path, table: RawTable, source: FakeSource, log: FilteringBoundLogger
    ) -> None:
        await generate(work_dir, source=source, log=log)
        again = FakeSource(table)
        await generate(work_dir, GenerateOptions(ignore_cache=True), source=again, log=log)
        assert len(again.fetched) == 3

    async def test_partition_is_complete_and_disjoint(
        self, work_dir: Path, table: RawTable, source: FakeSource, log: FilteringBoundLogger
    ) -> None:
        await generate(work_dir, source=source, log=log)
        _cache_path(work_dir, SECOND).unlink()

        site = build_site_model(table, log)
        partition = partition_pages(site.pages, Cache(work_dir / "cache", log), False)
        updated = {p.id for p in partition.updated}
        not_updated = {p.id for p in partition.not_updated}
        assert updated == {SECOND}
        assert not_updated == {FIRST, THIRD}
        assert updated | not_updated == {p.id for p in site.pages}


# ---------------------------------------------------------------------------
# Page-scoped failures
# ---------------------------------------------------------------------------


class TestPageFailures:
    async def test_corrupted_cache_entry_fails_only_that_page(
        self,
        work_dir: Path,
        table: RawTable,
        source: FakeSource,
        log: FilteringBoundLogger,
        log_events: list[dict[str, Any]],
    ) -> None:
        await generate(work_dir, source=source, log=log)
        _cache_path(work_dir, SECOND).write_text("{garbage", encoding="utf-8")
        for name in ("first.html", f"{SECOND}.html", f"{THIRD}.html"):
            (work_dir / "public" / name).unlink()

        assert await generate(work_dir, source=FakeSource(table), log=log) == 1
        assert (work_dir / "public" / "first.html").is_file()
        assert (work_dir / "public" / f"{THIRD}.html").is_file()
        assert not (work_dir / "public" / f"{SECOND}.html").exists()
        failure = _events(log_events, "page_failed")[0]
        assert failure["code"] == ErrorCode.CACHE_CORRUPTED
        assert failure["page_id"] == to_dash_id(SECOND)

    async def test_wrong_shape_cache_entry_is_corrupted(
        self, work_dir: Path, table: RawTable, source: FakeSource, log: FilteringBoundLogger
    ) -> None:
        await generate(work_dir, source=source, log=log)
        _cache_path(work_dir, SECOND).write_text('{"nodes": "no"}', encoding="utf-8")
        assert await generate(work_dir, source=FakeSource(table), log=log) == 1

    async def test_fetch_failure_isolated(
        self,
        work_dir: Path,
        source: FakeSource,
        log: FilteringBoundLogger,
        log_events: list[dict[str, Any]],
    ) -> None:
        source.failing.add(SECOND)
        assert await generate(work_dir, source=source, log=log) == 1
        assert _public(work_dir) == {"index.html", "tag/python.html", "first.html", f"{THIRD}.html"}
        assert not _cache_path(work_dir, SECOND).exists()
        assert _events(log_events, "page_failed")[0]["code"] == ErrorCode.PAGE_FETCH_FAILED

    async def test_failed_fetch_retried_next_run(
        self, work_dir: Path, table: RawTable, source: FakeSource, log: FilteringBoundLogger
    ) -> None:
        source.failing.add(SECOND)
        await generate(work_dir, source=source, log=log)
        again = FakeSource(table)
        assert await generate(work_dir, source=again, log=log) == 0
        assert again.fetched == [to_dash_id(SECOND)]


# ---------------------------------------------------------------------------
# Publishing and templates
# ---------------------------------------------------------------------------


class TestPublishing:
    async def test_unpublished_page_cached_not_rendered(
        self, work_dir: Path, log: FilteringBoundLogger
    ) -> None:
        pid = page_id(5)
        source = FakeSource(make_table([make_row(pid, publish=False)]))
        assert await generate(work_dir, source=source, log=log) == 0
        assert source.fetched == [to_dash_id(pid)]
        assert _cache_path(work_dir, pid).is_file()
        assert _public(work_dir) == {"index.html"}

    async def test_missing_template_renders_message(
        self, work_dir: Path, log: FilteringBoundLogger
    ) -> None:
        pid = page_id(6)
        source = FakeSource(make_table([make_row(pid, template="special")]))
        assert await generate(work_dir, source=source, log=log) == 0
        html = (work_dir / "public" / f"{pid}.html").read_text(encoding="utf-8")
        assert html.startswith('Cannot find "special.html"')


# ---------------------------------------------------------------------------
# Output file names
# ---------------------------------------------------------------------------


class TestOutputNames:
    async def test_duplicate_url_keeps_both_pages(
        self,
        work_dir: Path,
        log: FilteringBoundLogger,
        log_events: list[dict[str, Any]],
    ) -> None:
        source = FakeSource(
            make_table([make_row(page_id(1), url="same"), make_row(page_id(2), url="same")])
        )
        assert await generate(work_dir, source=source, log=log) == 0
        assert _public(work_dir) == {"index.html", "same.html", f"{page_id(2)}.html"}
        same = (work_dir / "public" / "same.html").read_text(encoding="utf-8")
        assert same.startswith(f"<h1>{page_id(1)}</h1>")
        assert _events(log_events, "duplicate_url")[0]["page_id"] == page_id(2)

    async def test_tag_filenames_sanitized(
        self,
        work_dir: Path,
        log: FilteringBoundLogger,
        log_events: list[dict[str, Any]],
    ) -> None:
        source = FakeSource(make_table([make_row(page_id(1), tags=("c/c++", "/"))]))
        assert await generate(work_dir, source=source, log=log) == 0
        assert _public(work_dir) == {"index.html", "tag/cc++.html", f"{page_id(1)}.html"}
        skipped = _events(log_events, "tag_page_skipped")
        assert [e["tag"] for e in skipped] == ["/"]


# ---------------------------------------------------------------------------
# Run-fatal errors
# ---------------------------------------------------------------------------


class TestFatal:
    async def test_missing_required_column_aborts_before_fetch(
        self, work_dir: Path, log: FilteringBoundLogger
    ) -> None:
        schema = {k: v for k, v in SCHEMA.items() if k != "c_publish"}
        source = FakeSource(make_table([make_row(page_id(1))], schema=schema))
        with pytest.raises(NotablogError) as exc_info:
            await generate(work_dir, source=source, log=log)
        assert exc_info.value.code == ErrorCode.REQUIRED_COLUMN_MISSING
        assert source.fetched == []
        assert _public(work_dir) == set()

    async def test_missing_theme(
        self, work_dir: Path, source: FakeSource, log: FilteringBoundLogger
    ) -> None:
        config = json.loads((work_dir / "config.json").read_text(encoding="utf-8"))
        config["theme"] = "dark"
        (work_dir / "config.json").write_text(json.dumps(config), encoding="utf-8")
        with pytest.raises(NotablogError) as exc_info:
            await generate(work_dir, source=source, log=log)
        assert exc_info.value.code == ErrorCode.THEME_NOT_FOUND
        assert source.fetched == []

    async def test_missing_config(self, tmp_path: Path, source: FakeSource) -> None:
        with pytest.raises(NotablogError) as exc_info:
            await generate(tmp_path, source=source)
        assert exc_info.value.code == ErrorCode.CONFIG_INVALID
