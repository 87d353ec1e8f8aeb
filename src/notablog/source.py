"""Content source: where the table and page trees come from.

The pipeline depends only on :class:`ContentSource`. The shipped
implementation talks to a JSON content API over httpx:

    GET {api_url}/tables/{collection page id}  -> RawTable
    GET {api_url}/pages/{page id}              -> ContentTree

Transport errors and non-2xx responses are raised as ``NotablogError``
so the calling page task fails with a structured code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from notablog.errors import ErrorCode, NotablogError
from notablog.ids import page_id_from_collection_url, to_dash_id
from notablog.models.content import ContentTree
from notablog.models.table import RawTable

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from notablog.config import SourceSettings

ModelT = TypeVar("ModelT", bound=BaseModel)

USER_AGENT = "notablog/0.1.0"


class ContentSource(Protocol):
    async def fetch_table(self, collection_url: str) -> RawTable: ...

    async def fetch_page(self, page_id: str) -> ContentTree: ...


def build_http_client(settings: SourceSettings) -> httpx.AsyncClient:
    """Create the shared httpx client for one run."""
    return httpx.AsyncClient(
        base_url=settings.api_url,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        follow_redirects=True,
        max_redirects=settings.max_redirects,
    )


class HttpContentSource:
    """``ContentSource`` backed by a JSON content API."""

    def __init__(self, client: httpx.AsyncClient, log: FilteringBoundLogger) -> None:
        self._client = client
        self._log = log

    async def fetch_table(self, collection_url: str) -> RawTable:
        table_id = page_id_from_collection_url(collection_url)
        self._log.info("table_fetch_start", table_id=table_id)
        return await self._get(f"/tables/{table_id}", RawTable)

    async def fetch_page(self, page_id: str) -> ContentTree:
        page_id = to_dash_id(page_id)
        self._log.debug("page_fetch_start", page_id=page_id)
        return await self._get(f"/pages/{page_id}", ContentTree)

    async def _get(self, path: str, model: type[ModelT]) -> ModelT:
        try:
            response = await self._client.get(path)
        except httpx.TooManyRedirects as exc:
            raise NotablogError(
                ErrorCode.PAGE_FETCH_FAILED,
                f"Too many redirects fetching {path}",
                recoverable=False,
            ) from exc
        except httpx.HTTPError as exc:
            raise NotablogError(
                ErrorCode.PAGE_FETCH_FAILED,
                f"Network error fetching {path}: {exc}",
                suggestion="check that the content API is reachable",
                recoverable=True,
            ) from exc

        if response.status_code == 404:
            raise NotablogError(
                ErrorCode.PAGE_NOT_FOUND,
                f"Nothing found at {path}",
                recoverable=False,
            )
        if not response.is_success:
            raise NotablogError(
                ErrorCode.PAGE_FETCH_FAILED,
                f"HTTP {response.status_code} fetching {path}",
                recoverable=True,
            )

        try:
            return model.model_validate_json(response.content)
        except ValidationError as exc:
            raise NotablogError(
                ErrorCode.INVALID_SOURCE_RESPONSE,
                f"Unexpected payload from {path}: {exc.error_count()} validation error(s)",
                recoverable=False,
            ) from exc
