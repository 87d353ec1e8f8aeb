"""Render content trees and rich text to HTML fragments.

Block ids become element ids, so ``page.html#<block id>`` lands on the
block. Unknown block types degrade to a plain ``div`` with their text.
"""

from __future__ import annotations

from markupsafe import Markup, escape

from notablog.models.content import MENTION_SENTINEL, Block, ContentTree, RichText

_INLINE_TAGS = {
    "b": "strong",
    "i": "em",
    "s": "del",
    "c": "code",
    "_": "u",
}

_HEADINGS = {
    "header": "h1",
    "sub_header": "h2",
    "sub_sub_header": "h3",
}

_LIST_TAGS = {
    "bulleted_list": "ul",
    "numbered_list": "ol",
}


def _render_run(run: RichText) -> Markup:
    mention = run.first_mark("p")
    if run.text.startswith(MENTION_SENTINEL) and mention is not None:
        href = mention.value if isinstance(mention.value, str) else ""
        label = run.text[len(MENTION_SENTINEL) :] or href
        return Markup('<a class="mention" href="{}">{}</a>').format(href, label)

    date_mark = run.first_mark("d")
    if date_mark is not None and isinstance(date_mark.value, dict):
        return Markup('<span class="date">{}</span>').format(
            date_mark.value.get("start_date", "")
        )

    html = escape(run.text)
    for mark in run.marks:
        if mark.type in _INLINE_TAGS:
            tag = _INLINE_TAGS[mark.type]
            html = Markup("<{0}>{1}</{0}>").format(Markup(tag), html)
        elif mark.type == "a":
            href = mark.value if isinstance(mark.value, str) else ""
            html = Markup('<a href="{}">{}</a>').format(href, html)
        elif mark.type == "h" and mark.value:
            html = Markup('<span class="color-{}">{}</span>').format(mark.value, html)
    return html


def render_rich_text(runs: list[RichText]) -> Markup:
    return Markup("").join(_render_run(run) for run in runs)


class _ContentRenderer:
    def __init__(self, tree: ContentTree) -> None:
        self._tree = tree
        self._rendering: set[int] = set()

    def render(self) -> Markup:
        self._rendering.add(self._tree.root)
        return self._children(self._tree.root)

    def _children(self, index: int) -> Markup:
        block = self._tree.nodes[index]
        parts: list[Markup] = []
        pending_list: tuple[str, list[Markup]] | None = None

        for child_index in block.children:
            # A block reachable from itself is rendered only on its first visit
            if child_index in self._rendering:
                continue
            child = self._tree.nodes[child_index]
            list_tag = _LIST_TAGS.get(child.type)
            if pending_list is not None and pending_list[0] != list_tag:
                parts.append(self._wrap_list(*pending_list))
                pending_list = None
            if list_tag is not None:
                if pending_list is None:
                    pending_list = (list_tag, [])
                pending_list[1].append(self._block(child_index))
            else:
                parts.append(self._block(child_index))

        if pending_list is not None:
            parts.append(self._wrap_list(*pending_list))
        return Markup("").join(parts)

    @staticmethod
    def _wrap_list(tag: str, items: list[Markup]) -> Markup:
        return Markup("<{0}>{1}</{0}>").format(Markup(tag), Markup("").join(items))

    def _block(self, index: int) -> Markup:
        self._rendering.add(index)
        try:
            return self._render_block(self._tree.nodes[index], self._children(index))
        finally:
            self._rendering.discard(index)

    def _render_block(self, block: Block, inner: Markup) -> Markup:
        text = render_rich_text(block.title)
        block_id = block.id

        if block.type in _HEADINGS:
            tag = Markup(_HEADINGS[block.type])
            return Markup('<{0} id="{1}">{2}</{0}>').format(tag, block_id, text)
        if block.type in _LIST_TAGS:
            return Markup('<li id="{}">{}{}</li>').format(block_id, text, inner)

        match block.type:
            case "text":
                return Markup('<p id="{}">{}</p>{}').format(block_id, text, inner)
            case "page":
                href = block.uri or ""
                return Markup('<p id="{}"><a class="page-link" href="{}">{}</a></p>').format(
                    block_id, href, text
                )
            case "quote":
                return Markup('<blockquote id="{}">{}</blockquote>').format(block_id, text)
            case "callout":
                icon = block.properties.get("icon", "")
                return Markup(
                    '<div class="callout" id="{}"><span>{}</span><div>{}</div></div>'
                ).format(block_id, icon, text)
            case "divider":
                return Markup('<hr id="{}">').format(block_id)
            case "code":
                language = block.properties.get("language", "")
                return Markup('<pre id="{}"><code class="language-{}">{}</code></pre>').format(
                    block_id, language, text
                )
            case "image":
                source = block.properties.get("source") or block.uri or ""
                caption = render_rich_text(
                    [RichText.model_validate(run) for run in block.properties.get("caption", [])]
                )
                return Markup(
                    '<figure id="{}"><img src="{}"><figcaption>{}</figcaption></figure>'
                ).format(block_id, source, caption)
            case "bookmark":
                link = block.properties.get("link") or block.uri or ""
                return Markup('<p id="{}"><a class="bookmark" href="{}">{}</a></p>').format(
                    block_id, link, text or link
                )
            case "to_do":
                checked = Markup(" checked") if block.properties.get("checked") else Markup("")
                return Markup(
                    '<div class="to-do" id="{}"><input type="checkbox" disabled{}> {}</div>{}'
                ).format(block_id, checked, text, inner)
            case "toggle":
                return Markup(
                    '<details id="{}"><summary>{}</summary>{}</details>'
                ).format(block_id, text, inner)
            case _:
                return Markup('<div id="{}">{}{}</div>').format(block_id, text, inner)


def render_content(tree: ContentTree) -> Markup:
    """Render the children of the tree's root block."""
    return _ContentRenderer(tree).render()
