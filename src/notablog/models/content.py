"""Page content tree.

A page body is an arena of blocks: ``ContentTree.nodes`` holds every
block once and blocks refer to their children by arena index. Because
references are indices rather than nested objects, a tree whose blocks
point back at an ancestor still dumps to plain JSON and reloads intact.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator

MENTION_SENTINEL = "\u2023"


class Mark(BaseModel):
    """Inline annotation on a text run.

    ``type`` follows the source's one-letter codes: ``b`` bold, ``i``
    italic, ``s`` strike, ``c`` code, ``_`` underline, ``a`` link
    (value = href), ``h`` color (value = color name), ``p`` page mention
    (value = page uri or id, also accepted as ``{"uri": ...}``), ``d``
    date (value = date dict).
    """

    type: str
    value: str | dict[str, Any] | None = None

    @model_validator(mode="before")
    @classmethod
    def from_compact(cls, data: Any) -> Any:
        # Wire form: ["a", "/target"] or ["b"]
        if isinstance(data, (list, tuple)):
            data = {"type": data[0], "value": data[1] if len(data) > 1 else None}
        # Mentions may carry the target as {"uri": ...}
        if isinstance(data, dict) and data.get("type") == "p":
            value = data.get("value")
            if isinstance(value, dict):
                uri = value.get("uri")
                if not isinstance(uri, str):
                    raise ValueError("page mention needs a string uri")
                data = {**data, "value": uri}
        return data


class RichText(BaseModel):
    """A run of text with its marks."""

    text: str = ""
    marks: list[Mark] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def from_compact(cls, data: Any) -> Any:
        # Wire form: ["text"] or ["text", [["b"], ["a", "/x"]]]
        if isinstance(data, (list, tuple)):
            return {"text": data[0] if data else "", "marks": data[1] if len(data) > 1 else []}
        if isinstance(data, str):
            return {"text": data}
        return data

    def first_mark(self, mark_type: str) -> Mark | None:
        for mark in self.marks:
            if mark.type == mark_type:
                return mark
        return None

    @property
    def is_mention(self) -> bool:
        return (
            self.text.startswith(MENTION_SENTINEL)
            and bool(self.marks)
            and self.marks[0].type == "p"
        )


def plain_text(runs: list[RichText]) -> str:
    return "".join(run.text for run in runs)


class Block(BaseModel):
    id: str
    type: str
    uri: str | None = None
    title: list[RichText] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)
    children: list[int] = Field(default_factory=list)  # Arena indices


class ContentTree(BaseModel):
    root: int = 0
    nodes: list[Block]

    @model_validator(mode="after")
    def check_indices(self) -> ContentTree:
        size = len(self.nodes)
        if not 0 <= self.root < size:
            raise ValueError(f"root index {self.root} out of range for {size} nodes")
        for node in self.nodes:
            for child in node.children:
                if not 0 <= child < size:
                    raise ValueError(f"block {node.id!r} has child index {child} out of range")
        return self

    @property
    def root_block(self) -> Block:
        return self.nodes[self.root]

    def child_blocks(self, block: Block) -> list[Block]:
        return [self.nodes[index] for index in block.children]
