"""Generate a blog: the incremental fetch-render pipeline.

One run:
  1. load config, check the theme, copy theme assets
  2. fetch the table and build the site model (fatal on a bad schema)
  3. render the home page and one page per tag
  4. split pages into updated / not updated using the cache
  5. fetch-or-load, resolve links and render every page through a
     bounded worker pool; updated pages are queued first

Steps 1-2 raise ``NotablogError`` and abort before any page work. In
step 5 each page succeeds or fails on its own; failures are logged per
page and counted in the return value.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import aiofiles
from pydantic import ValidationError

from notablog.cache import Cache
from notablog.config import Settings
from notablog.errors import ErrorCode, NotablogError
from notablog.html import render_content
from notablog.ids import to_dash_id
from notablog.links import resolve_links
from notablog.log import make_logger
from notablog.models.content import ContentTree
from notablog.pool import run_bounded
from notablog.renderer import Renderer, TemplateProvider, page_view, site_view
from notablog.source import HttpContentSource, build_http_client
from notablog.state import BuildContext, SitePaths
from notablog.table import build_site_model, tag_url

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from notablog.models.site import PageMetadata, SiteModel
    from notablog.source import ContentSource

CONTENT_NAMESPACE = "content"


@dataclass
class GenerateOptions:
    concurrency: int | None = None  # None: use config.json
    verbose: bool = False
    ignore_cache: bool = False


class PageStatus(Enum):
    RENDERED = "rendered"
    SKIPPED = "skipped"  # Not published; content still fetched and cached


@dataclass
class Partition:
    updated: list[PageMetadata] = field(default_factory=list)
    not_updated: list[PageMetadata] = field(default_factory=list)


@dataclass(frozen=True)
class PageJob:
    page: PageMetadata
    do_fetch: bool


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def prepare_dirs(paths: SitePaths) -> None:
    if not paths.theme_dir.is_dir():
        raise NotablogError(
            ErrorCode.THEME_NOT_FOUND,
            f'Cannot find "{paths.theme_dir.name}" in themes/ folder',
            suggestion='check the "theme" field of config.json',
        )
    paths.out_dir.mkdir(parents=True, exist_ok=True)
    paths.tag_dir.mkdir(parents=True, exist_ok=True)


def copy_assets(paths: SitePaths, log: FilteringBoundLogger) -> None:
    if not paths.asset_dir.is_dir():
        log.debug("theme_assets_missing", path=str(paths.asset_dir))
        return
    log.info("theme_assets_copy", source=str(paths.asset_dir))
    shutil.copytree(paths.asset_dir, paths.out_dir, dirs_exist_ok=True)


def partition_pages(pages: list[PageMetadata], cache: Cache, ignore_cache: bool) -> Partition:
    """Split pages by whether their cached content is stale. Computed once per run."""
    partition = Partition()
    for page in pages:
        key = to_dash_id(page.id)
        if ignore_cache or cache.should_update(CONTENT_NAMESPACE, key, page.last_edited_time):
            partition.updated.append(page)
        else:
            partition.not_updated.append(page)
    return partition


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def render_index(ctx: BuildContext) -> int:
    """Render the home page and one listing per tag. Returns files written."""
    site = site_view(ctx.site)

    ctx.log.info("render_home_page")
    html = ctx.renderer.render("index", {"site": site})
    (ctx.paths.out_dir / "index.html").write_text(html, encoding="utf-8")
    written = 1

    for tag_name, pages in ctx.site.tag_map.items():
        url = tag_url(tag_name)
        if url is None:
            ctx.log.warning("tag_page_skipped", tag=tag_name, reason="empty filename")
            continue
        ctx.log.info("render_tag_page", tag=tag_name, url=url)
        html = ctx.renderer.render(
            "tag",
            {
                "site": site,
                "tag_name": tag_name,
                "tag_url": url,
                "pages": [page_view(page) for page in pages],
            },
        )
        (ctx.paths.out_dir / url).write_text(html, encoding="utf-8")
        written += 1
    return written


async def load_content(ctx: BuildContext, page: PageMetadata, do_fetch: bool) -> ContentTree:
    page_key = to_dash_id(page.id)

    if do_fetch:
        ctx.log.info("page_fetch", page_id=page_key)
        tree = await ctx.source.fetch_page(page_key)
        resolve_links(tree, ctx.site, ctx.log, ctx.settings.source.source_url)
        await ctx.cache.set(CONTENT_NAMESPACE, page_key, tree.model_dump(mode="json"))
        ctx.log.info("page_cached", page_id=page_key)
        return tree

    ctx.log.info("page_cache_read", page_id=page_key)
    data = await ctx.cache.get(CONTENT_NAMESPACE, page_key)
    corrupted = NotablogError(
        ErrorCode.CACHE_CORRUPTED,
        f'Cache of page "{page_key}" is corrupted',
        suggestion=f'delete {ctx.paths.cache_dir} to rebuild, or run with ignore_cache',
    )
    if data is None:
        raise corrupted
    try:
        return ContentTree.model_validate(data)
    except ValidationError as exc:
        raise corrupted from exc


async def render_post(ctx: BuildContext, page: PageMetadata, do_fetch: bool) -> PageStatus:
    """Fetch or load one page and render it if published."""
    tree = await load_content(ctx, page, do_fetch)
    page_key = to_dash_id(page.id)

    if not page.publish:
        ctx.log.info("page_render_skipped", page_id=page_key, reason="unpublished")
        return PageStatus.SKIPPED

    ctx.log.info("page_render", page_id=page_key, template=page.template)
    html = ctx.renderer.render(
        page.template,
        {"site": site_view(ctx.site), "post": page_view(page, render_content(tree))},
    )
    async with aiofiles.open(ctx.paths.out_dir / page.url, "w", encoding="utf-8") as f:
        await f.write(html)
    return PageStatus.RENDERED


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def build_pages(ctx: BuildContext, options: GenerateOptions) -> int:
    """Render index/tag pages and every page task. Returns the number of failed pages."""
    render_index(ctx)

    partition = partition_pages(ctx.site.pages, ctx.cache, options.ignore_cache)
    total = len(ctx.site.pages)
    published = sum(1 for page in ctx.site.pages if page.publish)
    ctx.log.info("pages_updated", updated=len(partition.updated), total=total)
    ctx.log.info("pages_published", published=published, total=total)

    jobs = [PageJob(page, do_fetch=True) for page in partition.updated]
    jobs += [PageJob(page, do_fetch=False) for page in partition.not_updated]

    async def handle(job: PageJob) -> PageStatus:
        return await render_post(ctx, job.page, job.do_fetch)

    concurrency = options.concurrency or ctx.settings.concurrency
    outcomes = await run_bounded(jobs, handle, concurrency, ctx.log)

    failed = 0
    for outcome in outcomes:
        if outcome.ok:
            continue
        failed += 1
        error = outcome.error
        ctx.log.error(
            "page_failed",
            page_id=to_dash_id(outcome.item.page.id),
            fetched=outcome.item.do_fetch,
            code=str(error.code) if isinstance(error, NotablogError) else None,
            error=str(error),
            exc_info=error,
        )

    ctx.log.info("generate_complete", pages=total, failed=failed)
    return failed


async def generate(
    work_dir: Path,
    options: GenerateOptions | None = None,
    *,
    source: ContentSource | None = None,
    log: FilteringBoundLogger | None = None,
) -> int:
    """Generate the blog in *work_dir*.

    Returns the number of pages that failed (0 means success).

    Raises:
        NotablogError: for run-fatal problems (config, theme, table schema),
            before any page is fetched or rendered.
    """
    options = options or GenerateOptions()
    settings = Settings.from_work_dir(Path(work_dir))
    if log is None:
        log = make_logger(settings.logging, verbose=options.verbose)

    paths = SitePaths.for_work_dir(Path(work_dir), settings.theme)
    prepare_dirs(paths)
    copy_assets(paths, log)

    cache = Cache(paths.cache_dir, log)
    renderer = Renderer(TemplateProvider(paths.template_dir, log))

    if source is not None:
        site = await _fetch_site(source, settings, log)
        ctx = BuildContext(settings, paths, cache, source, renderer, site, log)
        return await build_pages(ctx, options)

    async with build_http_client(settings.source) as client:
        http_source = HttpContentSource(client, log)
        site = await _fetch_site(http_source, settings, log)
        ctx = BuildContext(settings, paths, cache, http_source, renderer, site, log)
        return await build_pages(ctx, options)


async def _fetch_site(
    source: ContentSource, settings: Settings, log: FilteringBoundLogger
) -> SiteModel:
    log.info("site_metadata_fetch", url=settings.url)
    table = await source.fetch_table(settings.url)
    return build_site_model(table, log)
