"""Content-addressable file cache with mtime-based staleness.

Every entry is one flat file under the cache directory, named by the
SHA-256 hex digest of ``namespace + id``. The file holds the JSON value;
its mtime is the reference time for ``should_update``.

Read failures (missing file, OS error, undecodable JSON) degrade to a
cache miss and are logged. Write failures propagate to the caller: a page
task that cannot persist its content fails on its own, siblings continue.
"""

from __future__ import annotations

import hashlib
import json
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiofiles
import aiofiles.os

from notablog.models.cache import CacheEntry

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger


class Cache:
    """Namespaced key/value store on disk."""

    def __init__(self, cache_dir: Path, log: FilteringBoundLogger) -> None:
        self._dir = Path(cache_dir)
        self._log = log
        self._dir.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._dir

    @staticmethod
    def key(namespace: str, entry_id: str) -> str:
        return hashlib.sha256((namespace + entry_id).encode("utf-8")).hexdigest()

    def path(self, namespace: str, entry_id: str) -> Path:
        return self._dir / self.key(namespace, entry_id)

    # ------------------------------------------------------------------
    # Read / write
    # ------------------------------------------------------------------

    async def get(self, namespace: str, entry_id: str) -> Any | None:
        """Read an entry. Returns ``None`` on miss, read failure or corruption."""
        path = self.path(namespace, entry_id)
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                data = await f.read()
        except FileNotFoundError:
            self._log.debug("cache_miss", namespace=namespace, entry_id=entry_id)
            return None
        except OSError:
            self._log.warning(
                "cache_read_error", namespace=namespace, entry_id=entry_id, exc_info=True
            )
            return None

        try:
            return json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError):
            self._log.warning(
                "cache_entry_corrupted", namespace=namespace, entry_id=entry_id, exc_info=True
            )
            return None

    async def set(self, namespace: str, entry_id: str, value: Any) -> None:
        """Write an entry, replacing any previous content.

        The payload goes to a sibling temp file first and is moved into
        place, so readers never observe a half-written entry.
        """
        path = self.path(namespace, entry_id)
        payload = json.dumps(value, ensure_ascii=False)
        tmp_path = path.with_name(f"{path.name}.{os.getpid()}.tmp")
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
            await aiofiles.os.replace(tmp_path, path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        self._log.debug("cache_written", namespace=namespace, entry_id=entry_id)

    # ------------------------------------------------------------------
    # Staleness
    # ------------------------------------------------------------------

    def stat(self, namespace: str, entry_id: str) -> CacheEntry | None:
        path = self.path(namespace, entry_id)
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return None
        except OSError:
            self._log.warning(
                "cache_stat_error", namespace=namespace, entry_id=entry_id, exc_info=True
            )
            return None
        return CacheEntry(
            namespace=namespace,
            entry_id=entry_id,
            key=path.name,
            path=path,
            modified_at=datetime.fromtimestamp(mtime, UTC),
        )

    def should_update(self, namespace: str, entry_id: str, source_modified_at: datetime) -> bool:
        """True if there is no entry or the source changed after it was written."""
        entry = self.stat(namespace, entry_id)
        if entry is None:
            return True
        if source_modified_at.tzinfo is None:
            source_modified_at = source_modified_at.replace(tzinfo=UTC)
        return source_modified_at > entry.modified_at
