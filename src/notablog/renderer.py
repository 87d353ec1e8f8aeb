"""Template rendering for theme layouts.

Templates live in ``themes/<theme>/layout/<name>.html``. A page whose
``template`` column names a missing file still renders: the output is a
short message explaining what is missing, so one bad row never stops
the rest of the site.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import Environment, FileSystemLoader, Template, TemplateNotFound, select_autoescape
from markupsafe import Markup

from notablog.table import tag_url

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from notablog.models.site import PageMetadata, SiteModel


class TemplateProvider:
    """Load theme templates by name (filename without extension)."""

    def __init__(self, template_dir: Path, log: FilteringBoundLogger) -> None:
        self._template_dir = Path(template_dir)
        self._log = log
        self._templates: dict[str, Template] = {}
        self._env = Environment(
            loader=FileSystemLoader(self._template_dir),
            autoescape=select_autoescape(["html", "xml"]),
            keep_trailing_newline=True,
        )

    @property
    def template_dir(self) -> Path:
        return self._template_dir

    def template_path(self, name: str) -> Path:
        return self._template_dir / f"{name}.html"

    def get(self, name: str) -> Template | str:
        """Return the compiled template, or a placeholder message if it cannot be loaded."""
        cached = self._templates.get(name)
        if cached is not None:
            return cached

        if not name:
            return (
                "The template name has zero length, "
                'please check the "template" field in your table.'
            )

        self._log.debug("template_load", template=name)
        try:
            template = self._env.get_template(f"{name}.html")
        except TemplateNotFound:
            self._log.warning(
                "template_not_found", template=name, path=str(self.template_path(name))
            )
            return f'Cannot find "{name}.html" in "{self._template_dir}".'
        self._templates[name] = template
        return template


class Renderer:
    """``render(template_name, data) -> str`` over a :class:`TemplateProvider`."""

    def __init__(self, provider: TemplateProvider) -> None:
        self._provider = provider

    def render(self, template_name: str, data: dict[str, Any]) -> str:
        template = self._provider.get(template_name)
        if isinstance(template, str):
            return template
        return template.render(**data)


# ---------------------------------------------------------------------------
# Template views
# ---------------------------------------------------------------------------

_HTML_FIELDS = ("icon_html", "description_html")


def page_view(page: PageMetadata, content_html: str | None = None) -> dict[str, Any]:
    """Template data for one page; pre-rendered HTML fields are marked safe."""
    view = page.model_dump()
    for field in _HTML_FIELDS:
        view[field] = Markup(view[field])
    if content_html is not None:
        view["content_html"] = Markup(content_html)
    return view


def site_view(site: SiteModel) -> dict[str, Any]:
    view = site.model_dump(exclude={"pages", "tag_map"})
    for field in _HTML_FIELDS:
        view[field] = Markup(view[field])
    view["pages"] = [page_view(page) for page in site.pages]
    view["tag_map"] = {
        tag: [page_view(page) for page in pages] for tag, pages in site.tag_map.items()
    }
    # Tags with no usable filename have no listing page
    view["tag_urls"] = {
        tag: url for tag in site.tag_map if (url := tag_url(tag)) is not None
    }
    return view
