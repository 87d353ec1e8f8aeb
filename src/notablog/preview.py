from __future__ import annotations

import subprocess
from pathlib import Path

from notablog.config import Settings
from notablog.errors import ErrorCode, NotablogError
from notablog.state import SitePaths


def open_detached(binary: str, target: Path) -> subprocess.Popen[bytes]:
    """Start *binary target* without tying it to this process."""
    return subprocess.Popen(
        [binary, str(target)],
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )


def preview(work_dir: Path) -> subprocess.Popen[bytes]:
    """Open the generated home page with the browser set in config.json."""
    settings = Settings.from_work_dir(Path(work_dir))
    if not settings.preview_browser:
        raise NotablogError(
            ErrorCode.PREVIEW_BROWSER_NOT_SET,
            '"previewBrowser" property is not set in your config file.',
        )
    paths = SitePaths.for_work_dir(Path(work_dir), settings.theme)
    return open_detached(settings.preview_browser, paths.out_dir / "index.html")
