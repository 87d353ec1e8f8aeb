from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from notablog.cache import Cache
    from notablog.config import Settings
    from notablog.models.site import SiteModel
    from notablog.renderer import Renderer
    from notablog.source import ContentSource


@dataclass(frozen=True)
class SitePaths:
    work_dir: Path
    theme_dir: Path
    out_dir: Path
    tag_dir: Path
    cache_dir: Path

    @classmethod
    def for_work_dir(cls, work_dir: Path, theme: str) -> SitePaths:
        work_dir = Path(work_dir)
        out_dir = work_dir / "public"
        return cls(
            work_dir=work_dir,
            theme_dir=work_dir / "themes" / theme,
            out_dir=out_dir,
            tag_dir=out_dir / "tag",
            cache_dir=work_dir / "cache",
        )

    @property
    def template_dir(self) -> Path:
        return self.theme_dir / "layout"

    @property
    def asset_dir(self) -> Path:
        return self.theme_dir / "assets"


@dataclass
class BuildContext:
    """Everything a page task needs, wired once per run and shared read-only."""

    settings: Settings
    paths: SitePaths
    cache: Cache
    source: ContentSource
    renderer: Renderer
    site: SiteModel
    log: FilteringBoundLogger
