"""Error codes and the single exception type raised across notablog.

Run-fatal errors (bad config, missing theme, unusable table) abort
``generate()`` before any page task is scheduled. Page-scoped errors
(fetch failures, corrupted cache entries) are raised inside a page task
and reported by the orchestrator without affecting sibling pages.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    CONFIG_INVALID = "CONFIG_INVALID"
    THEME_NOT_FOUND = "THEME_NOT_FOUND"
    REQUIRED_COLUMN_MISSING = "REQUIRED_COLUMN_MISSING"
    INVALID_COLLECTION_URL = "INVALID_COLLECTION_URL"
    PAGE_NOT_FOUND = "PAGE_NOT_FOUND"
    PAGE_FETCH_FAILED = "PAGE_FETCH_FAILED"
    INVALID_SOURCE_RESPONSE = "INVALID_SOURCE_RESPONSE"
    CACHE_CORRUPTED = "CACHE_CORRUPTED"
    PREVIEW_BROWSER_NOT_SET = "PREVIEW_BROWSER_NOT_SET"


class NotablogError(Exception):
    """Structured error carrying a machine-readable code."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str = "",
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message} ({self.suggestion})"
        return self.message
