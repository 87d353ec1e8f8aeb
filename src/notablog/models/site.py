from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from notablog.ids import to_plain_id
from notablog.models.content import RichText


class Tag(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    color: str | None = None  # CSS class taken from the tag's palette color


class PageMetadata(BaseModel):
    """One table row, projected for rendering. Immutable for the run."""

    model_config = ConfigDict(frozen=True)

    id: str  # Page id as it appears in the row uri
    icon: str | None = None
    icon_html: str = ""
    cover: str | None = None
    title: list[RichText] = Field(default_factory=list)
    title_plain: str = ""
    tags: list[Tag] = Field(default_factory=list)
    publish: bool = False
    in_menu: bool = False
    in_list: bool = False
    template: str = ""
    url: str  # Output path relative to public/
    canonical: str = ""
    description: list[RichText] = Field(default_factory=list)
    description_plain: str = ""
    description_html: str = ""
    date: str | None = None  # YYYY-MM-DD
    date_string: str | None = None  # Mon, Jan 1, 2024
    created_time: datetime | None = None
    last_edited_time: datetime


class SiteModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    description: list[RichText] = Field(default_factory=list)
    description_plain: str = ""
    description_html: str = ""
    icon: str | None = None
    icon_html: str = ""
    cover: str | None = None
    pages: list[PageMetadata] = Field(default_factory=list)
    # tag value -> pages carrying it, in page order
    tag_map: dict[str, list[PageMetadata]] = Field(default_factory=dict)

    _page_index: dict[str, PageMetadata] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self._page_index = {to_plain_id(page.id): page for page in self.pages}

    def find_page(self, page_id: str) -> PageMetadata | None:
        """Look up a page by id in either dashed or plain spelling."""
        return self._page_index.get(to_plain_id(page_id))
