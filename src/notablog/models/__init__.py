from __future__ import annotations

from notablog.models.cache import CacheEntry
from notablog.models.content import Block, ContentTree, Mark, RichText
from notablog.models.site import PageMetadata, SiteModel, Tag
from notablog.models.table import (
    Cell,
    CheckboxCell,
    DateTimeCell,
    MultiSelectCell,
    RawColumn,
    RawRow,
    RawTable,
    SelectCell,
    SelectOption,
    TextCell,
)

__all__ = [
    # cache
    "CacheEntry",
    # content
    "Block",
    "ContentTree",
    "Mark",
    "RichText",
    # table
    "RawColumn",
    "RawRow",
    "RawTable",
    "SelectOption",
    "Cell",
    "TextCell",
    "CheckboxCell",
    "SelectCell",
    "MultiSelectCell",
    "DateTimeCell",
    # site
    "Tag",
    "PageMetadata",
    "SiteModel",
]
