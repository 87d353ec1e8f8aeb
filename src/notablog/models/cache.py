from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel


class CacheEntry(BaseModel):
    """Metadata of one on-disk cache entry."""

    namespace: str
    entry_id: str
    key: str  # SHA-256 hex of namespace + entry_id, also the filename
    path: Path
    modified_at: datetime  # File mtime (UTC), the staleness reference
