"""Builders shared by unit and integration tests."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from notablog.errors import ErrorCode, NotablogError
from notablog.models.content import ContentTree
from notablog.models.table import RawTable

SOURCE_URL = "https://www.notion.so"
MENTION = "‣"

SCHEMA: dict[str, Any] = {
    "title": {"name": "Name", "type": "title"},
    "c_tags": {
        "name": "tags",
        "type": "multi_select",
        "options": [
            {"id": "o1", "value": "python", "color": "blue"},
            {"id": "o2", "value": "web", "color": "red"},
        ],
    },
    "c_publish": {"name": "publish", "type": "checkbox"},
    "c_menu": {"name": "inMenu", "type": "checkbox"},
    "c_list": {"name": "inList", "type": "checkbox"},
    "c_template": {"name": "template", "type": "select"},
    "c_url": {"name": "url", "type": "text"},
    "c_description": {"name": "description", "type": "text"},
    "c_date": {"name": "date", "type": "date"},
    "c_canonical": {"name": "canonical", "type": "text"},
}

EDITED = datetime(2024, 6, 1, tzinfo=UTC)


def page_id(n: int) -> str:
    return f"{n:032x}"


FIRST = page_id(1)
SECOND = page_id(2)
THIRD = page_id(3)


def make_row(
    pid: str,
    *,
    title: str = "",
    tags: tuple[str, ...] = (),
    publish: bool = True,
    template: str = "post",
    url: str = "",
    date: str | None = None,
    description: str = "",
    last_edited: datetime = EDITED,
) -> dict[str, Any]:
    properties: dict[str, Any] = {
        "title": [[title or pid]],
        "c_publish": [["Yes" if publish else "No"]],
        "c_list": [["Yes"]],
        "c_template": [[template]],
    }
    if tags:
        properties["c_tags"] = [[",".join(tags)]]
    if url:
        properties["c_url"] = [[url]]
    if description:
        properties["c_description"] = [[description]]
    if date:
        properties["c_date"] = [[MENTION, [["d", {"type": "date", "start_date": date}]]]]
    return {
        "uri": f"{SOURCE_URL}/{pid}",
        "title": [[title or pid]],
        "properties": properties,
        "lastEditedTime": int(last_edited.timestamp() * 1000),
    }


def make_table(rows: list[dict[str, Any]], schema: dict[str, Any] | None = None) -> RawTable:
    return RawTable.model_validate(
        {
            "name": [["My Blog"]],
            "description": [["Notes on ", []], ["things", [["b"]]]],
            "icon": "📝",
            "schema": schema if schema is not None else SCHEMA,
            "rows": rows,
        }
    )


def make_tree(*blocks: dict[str, Any]) -> ContentTree:
    """Root page block at index 0 whose children are *blocks* in order."""
    nodes = [{"id": "root", "type": "page", "children": list(range(1, len(blocks) + 1))}]
    nodes.extend(blocks)
    return ContentTree.model_validate({"root": 0, "nodes": nodes})


class FakeSource:
    """In-memory ContentSource that records every fetch."""

    def __init__(self, table: RawTable, pages: dict[str, ContentTree] | None = None) -> None:
        self.table = table
        self.pages = pages or {}
        self.fetched: list[str] = []
        self.failing: set[str] = set()

    async def fetch_table(self, collection_url: str) -> RawTable:
        return self.table

    async def fetch_page(self, pid: str) -> ContentTree:
        self.fetched.append(pid)
        plain = pid.replace("-", "")
        if plain in self.failing:
            raise NotablogError(ErrorCode.PAGE_FETCH_FAILED, f"boom {pid}", recoverable=True)
        tree = self.pages.get(plain)
        if tree is None:
            tree = make_tree({"id": f"{plain}-p", "type": "text", "title": [[f"Body of {plain}"]]})
        # Hand out a copy: the pipeline mutates trees in place
        return tree.model_copy(deep=True)


THEME_TEMPLATES = {
    "index.html": (
        "<h1>{{ site.title }}</h1>"
        "{% for page in site.pages %}"
        "<a href=\"{{ page.url }}\">{{ page.title_plain }}</a>\n"
        "{% endfor %}"
    ),
    "tag.html": (
        "<h1>{{ tag_name }}</h1>"
        "{% for page in pages %}<li>{{ page.url }}|{{ page.date }}</li>\n{% endfor %}"
    ),
    "post.html": "<h1>{{ post.title_plain }}</h1><article>{{ post.content_html }}</article>",
}