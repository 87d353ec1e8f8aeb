"""Rewrite internal references in a page's content tree.

Pages reference each other with source-internal identifiers. Once the
site model is known, every reference to a page that is part of the site
is rewritten to that page's output url; references to pages outside the
site are pointed back at the hosted source so they keep working.

Only source-internal references are touched: bare page ids, uris under
the source url and ``/``-prefixed link paths. Output urls never have
those shapes, so resolving an already-resolved tree is a no-op.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING

from notablog.ids import is_page_id, page_id_from_uri, to_dash_id

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from notablog.models.content import Block, ContentTree, Mark, RichText
    from notablog.models.site import SiteModel

DEFAULT_SOURCE_URL = "https://www.notion.so"


class Visit(Enum):
    CONTINUE = "continue"
    SKIP = "skip"  # Do not descend into this node's children


Visitor = Callable[["Block", "Block"], Visit]


def walk(tree: ContentTree, visitor: Visitor) -> None:
    """Call *visitor(node, parent)* for every node reachable from the root.

    The root itself is not visited. Each arena index is visited once even
    when several parents (or a cycle) lead to it.
    """
    seen = {tree.root}
    stack = [(child, tree.root) for child in reversed(tree.root_block.children)]
    while stack:
        index, parent_index = stack.pop()
        if index in seen:
            continue
        seen.add(index)
        node = tree.nodes[index]
        if visitor(node, tree.nodes[parent_index]) is Visit.SKIP:
            continue
        stack.extend((child, index) for child in reversed(node.children))


class LinkResolver:
    """Rewrites page references against a resolved :class:`SiteModel`."""

    def __init__(
        self,
        site: SiteModel,
        log: FilteringBoundLogger,
        source_url: str = DEFAULT_SOURCE_URL,
    ) -> None:
        self._site = site
        self._log = log
        self._source_url = source_url.rstrip("/")
        self._rewrites = 0

    def resolve(self, tree: ContentTree) -> int:
        """Rewrite *tree* in place. Returns the number of rewritten references."""
        self._rewrites = 0
        walk(tree, self._visit)
        return self._rewrites

    # ------------------------------------------------------------------
    # Visitor
    # ------------------------------------------------------------------

    def _visit(self, node: Block, parent: Block) -> Visit:
        if node.type == "page":
            self._resolve_page_node(node)
            return Visit.CONTINUE

        for run in node.title:
            if run.is_mention:
                self._resolve_mention(run)
                continue
            for mark in run.marks:
                if mark.type == "a":
                    self._resolve_link_mark(mark)
        return Visit.CONTINUE

    def _is_source_uri(self, uri: str) -> bool:
        return uri.startswith(f"{self._source_url}/") or is_page_id(uri)

    def _resolve_page_node(self, node: Block) -> None:
        if not node.uri or not self._is_source_uri(node.uri):
            return
        page_id = page_id_from_uri(node.uri)
        page = self._site.find_page(page_id) if page_id else None
        if page is None:
            return
        self._replace(node.uri, page.url)
        node.uri = page.url

    def _resolve_mention(self, run: RichText) -> None:
        mark = run.marks[0]
        uri = mark.value
        if not isinstance(uri, str) or not self._is_source_uri(uri):
            return
        page_id = page_id_from_uri(uri)
        if not page_id:
            return
        page = self._site.find_page(page_id)
        new_uri = page.url if page is not None else f"{self._source_url}/{page_id}"
        if new_uri != uri:
            self._replace(uri, new_uri)
            mark.value = new_uri

    def _resolve_link_mark(self, mark: Mark) -> None:
        # Link to a page:            /65166b7333374374b13b040ca1599593
        # Link to a block in a page: /ec83369b...#aa3f7c1b...
        # Page opened in a collection view (unsupported): /5953...?v=...&p=6516...
        path = mark.value
        if not isinstance(path, str) or not path.startswith("/"):
            return

        if "?" in path:
            new_path = f"{self._source_url}{path}"
        else:
            page_id, _, block_id = path.replace("/", "").partition("#")
            page = self._site.find_page(page_id) if page_id else None
            if page is not None:
                new_path = f"{page.url}#{to_dash_id(block_id)}" if block_id else page.url
            else:
                new_path = f"{self._source_url}{path}"

        self._replace(path, new_path)
        mark.value = new_path

    def _replace(self, old: str, new: str) -> None:
        self._rewrites += 1
        self._log.debug("link_replaced", old=old, new=new)


def resolve_links(
    tree: ContentTree,
    site: SiteModel,
    log: FilteringBoundLogger,
    source_url: str = DEFAULT_SOURCE_URL,
) -> int:
    return LinkResolver(site, log, source_url).resolve(tree)
