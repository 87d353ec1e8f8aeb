"""Build the typed site model from a raw table.

The raw table addresses columns by random ids because the source allows
several columns with the same name. Blog semantics are attached to
columns by *name*, so the first step maps names to ids and checks that
every required column exists. A table without them is unusable and the
whole run stops here, before anything is fetched or rendered.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time
from typing import TYPE_CHECKING, Any, assert_never

from markupsafe import Markup

from notablog.errors import ErrorCode, NotablogError
from notablog.html import render_rich_text
from notablog.ids import page_id_from_uri
from notablog.models.content import RichText, plain_text
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
    TextCell,
)

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

REQUIRED_COLUMNS = (
    "tags",
    "publish",
    "inMenu",
    "inList",
    "template",
    "url",
    "description",
    "date",
    "canonical",
)

CHECKBOX_MARKER = "Yes"


def build_column_map(schema: dict[str, RawColumn], log: FilteringBoundLogger) -> dict[str, str]:
    """Map column name -> column id. On duplicate names the first id wins."""
    mapping: dict[str, str] = {}
    for column_id, column in schema.items():
        if column.name in mapping:
            log.warning(
                "duplicate_column",
                column=column.name,
                used_id=mapping[column.name],
                ignored_id=column_id,
            )
            continue
        mapping[column.name] = column_id
    return mapping


def check_required_columns(column_map: dict[str, str]) -> None:
    for name in REQUIRED_COLUMNS:
        if name not in column_map:
            raise NotablogError(
                ErrorCode.REQUIRED_COLUMN_MISSING,
                f'Required column "{name}" is missing in table.',
                suggestion=f"add a column named {name!r} to the table",
            )


# ---------------------------------------------------------------------------
# Cells
# ---------------------------------------------------------------------------


def _split_options(raw: list[RichText]) -> tuple[str, ...]:
    # Options arrive comma-joined in the first run: [["css,web"]]
    if not raw:
        return ()
    return tuple(option for option in raw[0].text.split(",") if option)


def _date_start(raw: list[RichText]) -> str | None:
    # Date cells look like [["‣", [["d", {"start_date": "2024-01-01", ...}]]]];
    # any missing level means "no date".
    if not raw or not raw[0].marks:
        return None
    value = raw[0].marks[0].value
    if not isinstance(value, dict):
        return None
    start = value.get("start_date")
    return start if isinstance(start, str) and start else None


def decode_cell(column: RawColumn, raw: list[RichText] | None) -> Cell:
    """Decode a raw property value according to its column type."""
    raw = raw or []
    match column.type:
        case "checkbox":
            return CheckboxCell(value=bool(raw) and raw[0].text == CHECKBOX_MARKER)
        case "select":
            options = _split_options(raw)
            return SelectCell(value=options[0] if options else None)
        case "multi_select":
            return MultiSelectCell(value=_split_options(raw))
        case "date":
            return DateTimeCell(value=_date_start(raw))
        case _:
            return TextCell(value=tuple(raw))


def cell_bool(cell: Cell) -> bool:
    match cell:
        case CheckboxCell(value=value):
            return value
        case TextCell(value=runs):
            return plain_text(list(runs)) == CHECKBOX_MARKER
        case SelectCell(value=value):
            return value == CHECKBOX_MARKER
        case MultiSelectCell() | DateTimeCell():
            return False
        case _:
            assert_never(cell)


def cell_options(cell: Cell) -> list[str]:
    match cell:
        case MultiSelectCell(value=values):
            return list(values)
        case SelectCell(value=value):
            return [value] if value else []
        case TextCell(value=runs):
            return list(_split_options(list(runs)))
        case CheckboxCell() | DateTimeCell():
            return []
        case _:
            assert_never(cell)


def cell_text(cell: Cell) -> list[RichText]:
    match cell:
        case TextCell(value=runs):
            return list(runs)
        case SelectCell(value=value):
            return [RichText(text=value)] if value else []
        case MultiSelectCell(value=values):
            return [RichText(text=",".join(values))] if values else []
        case CheckboxCell(value=value):
            return [RichText(text=CHECKBOX_MARKER)] if value else []
        case DateTimeCell(value=value):
            return [RichText(text=value)] if value else []
        case _:
            assert_never(cell)


def cell_date(cell: Cell) -> str | None:
    match cell:
        case DateTimeCell(value=value):
            return value
        case TextCell() | CheckboxCell() | SelectCell() | MultiSelectCell():
            return None
        case _:
            assert_never(cell)


# ---------------------------------------------------------------------------
# Projection helpers
# ---------------------------------------------------------------------------


def safe_url(url: str) -> str:
    """Remove path separators, which cannot appear in a filename."""
    return url.replace("/", "").replace("\\", "")


def real_url(wanted: str, page_id: str) -> str:
    safe = safe_url(wanted)
    return f"{safe}.html" if safe else f"{page_id}.html"


def tag_url(tag: str) -> str | None:
    """Output path of a tag listing, relative to public/. None if nothing is left of the name."""
    safe = safe_url(tag)
    return f"tag/{safe}.html" if safe else None


def render_icon_html(icon: str | None) -> str:
    """Wrap url icons in ``<img>``; emoji icons in a plain span."""
    if not icon:
        return ""
    if icon.startswith("http"):
        return str(Markup('<span><img class="inline-img-icon" src="{}"></span>').format(icon))
    return str(Markup("<span>{}</span>").format(icon))


def parse_date(raw: str | None) -> date | None:
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def format_date(raw: str | None) -> str | None:
    """``2024-01-01`` -> ``Mon, Jan 1, 2024``."""
    parsed = parse_date(raw)
    if parsed is None:
        return None
    return f"{parsed:%a, %b} {parsed.day}, {parsed.year}"


def date_timestamp(page: PageMetadata) -> float:
    """Sort key: the page date as a UTC timestamp, 0 when undated."""
    parsed = parse_date(page.date)
    if parsed is None:
        return 0.0
    return datetime.combine(parsed, time(), UTC).timestamp()


def sort_pages(pages: list[PageMetadata]) -> list[PageMetadata]:
    """Most recent first; undated pages count as the oldest. Stable."""
    return sorted(pages, key=date_timestamp, reverse=True)


def dedupe_urls(pages: list[PageMetadata], log: FilteringBoundLogger) -> list[PageMetadata]:
    """Give a published page whose url is already taken its id-based url.

    Pages are checked in table order, so the first row keeps the url.
    Unpublished pages are never written and do not take a url.
    """
    taken: dict[str, str] = {}
    result: list[PageMetadata] = []
    for page in pages:
        if page.publish:
            owner = taken.get(page.url)
            if owner is not None:
                fallback = real_url("", page.id)
                log.warning(
                    "duplicate_url",
                    url=page.url,
                    page_id=page.id,
                    taken_by=owner,
                    fallback=fallback,
                )
                page = page.model_copy(update={"url": fallback})
            taken.setdefault(page.url, page.id)
        result.append(page)
    return result


def build_tag_map(pages: list[PageMetadata]) -> dict[str, list[PageMetadata]]:
    tag_map: dict[str, list[PageMetadata]] = {}
    for page in pages:
        for tag in page.tags:
            tag_map.setdefault(tag.value, []).append(page)
    return tag_map


def _rich_text_html(runs: list[RichText]) -> str:
    return str(render_rich_text(runs)) if runs else ""


def project_row(
    row: RawRow,
    schema: dict[str, RawColumn],
    column_map: dict[str, str],
    tag_colors: dict[str, str | None],
) -> PageMetadata:
    """Turn one table row into a :class:`PageMetadata`."""
    properties = row.properties or {}

    def cell(name: str) -> Cell:
        column_id = column_map[name]
        return decode_cell(schema[column_id], properties.get(column_id))

    page_id = page_id_from_uri(row.uri)
    description = cell_text(cell("description"))
    raw_date = cell_date(cell("date"))

    return PageMetadata(
        id=page_id,
        icon=row.icon,
        icon_html=render_icon_html(row.icon),
        cover=row.cover,
        title=row.title,
        title_plain=plain_text(row.title),
        tags=[Tag(value=v, color=tag_colors.get(v)) for v in cell_options(cell("tags"))],
        publish=cell_bool(cell("publish")),
        in_menu=cell_bool(cell("inMenu")),
        in_list=cell_bool(cell("inList")),
        template=next(iter(cell_options(cell("template"))), ""),
        url=real_url(plain_text(cell_text(cell("url"))), page_id),
        canonical=plain_text(cell_text(cell("canonical"))),
        description=description,
        description_plain=plain_text(description),
        description_html=_rich_text_html(description),
        date=raw_date,
        date_string=format_date(raw_date),
        created_time=row.created_time,
        last_edited_time=row.last_edited_time,
    )


def build_site_model(table: RawTable, log: FilteringBoundLogger) -> SiteModel:
    """Validate *table* and build the sorted site model.

    Raises:
        NotablogError: ``REQUIRED_COLUMN_MISSING`` if the schema lacks a
            required column.
    """
    schema = table.table_schema
    column_map = build_column_map(schema, log)
    log.debug("table_structure", columns=peek_structure(table))
    check_required_columns(column_map)

    tag_colors = {option.value: option.color for option in schema[column_map["tags"]].options}

    rows = [row for row in table.rows if row.properties]
    skipped = len(table.rows) - len(rows)
    if skipped:
        log.debug("empty_rows_skipped", count=skipped)

    projected = [project_row(row, schema, column_map, tag_colors) for row in rows]
    pages = sort_pages(dedupe_urls(projected, log))
    return SiteModel(
        title=plain_text(table.name),
        description=table.description,
        description_plain=plain_text(table.description),
        description_html=_rich_text_html(table.description),
        icon=table.icon,
        icon_html=render_icon_html(table.icon),
        cover=table.cover,
        pages=pages,
        tag_map=build_tag_map(pages),
    )


def peek_structure(table: RawTable) -> list[dict[str, Any]]:
    """Column summary (id, name, type, option values) for debugging a table."""
    return [
        {
            "id": column_id,
            "name": column.name,
            "type": column.type,
            "options": [option.value for option in column.options],
        }
        for column_id, column in table.table_schema.items()
    ]

