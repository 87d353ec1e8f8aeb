"""Raw table as delivered by the content source, and its decoded cells."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from notablog.models.content import RichText


class _SourceModel(BaseModel):
    # The source speaks camelCase (lastEditedTime); snake_case also accepted.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SelectOption(_SourceModel):
    id: str = ""
    value: str
    color: str | None = None


class RawColumn(_SourceModel):
    name: str
    type: str
    options: list[SelectOption] = Field(default_factory=list)


class RawRow(_SourceModel):
    uri: str
    title: list[RichText] = Field(default_factory=list)
    icon: str | None = None
    cover: str | None = None
    # None for empty placeholder rows
    properties: dict[str, list[RichText]] | None = None
    created_time: datetime | None = None
    last_edited_time: datetime


class RawTable(_SourceModel):
    name: list[RichText] = Field(default_factory=list)
    description: list[RichText] = Field(default_factory=list)
    icon: str | None = None
    cover: str | None = None
    # column id -> column; the source allows several columns with one name
    table_schema: dict[str, RawColumn] = Field(alias="schema")
    rows: list[RawRow] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Decoded cells
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextCell:
    value: tuple[RichText, ...] = ()
    kind: Literal["text"] = "text"


@dataclass(frozen=True)
class CheckboxCell:
    value: bool = False
    kind: Literal["checkbox"] = "checkbox"


@dataclass(frozen=True)
class SelectCell:
    value: str | None = None
    kind: Literal["select"] = "select"


@dataclass(frozen=True)
class MultiSelectCell:
    value: tuple[str, ...] = ()
    kind: Literal["multi_select"] = "multi_select"


@dataclass(frozen=True)
class DateTimeCell:
    value: str | None = None  # start date, YYYY-MM-DD
    kind: Literal["date"] = "date"


Cell = TextCell | CheckboxCell | SelectCell | MultiSelectCell | DateTimeCell
