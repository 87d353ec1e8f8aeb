"""Page id helpers.

Source page ids come in two spellings: 32 hex characters, or the same
characters grouped 8-4-4-4-12 with dashes. Urls and uris embed the id as
the last path segment, optionally after a slug (``My-Page-<id>``).
"""

from __future__ import annotations

import re

from notablog.errors import ErrorCode, NotablogError

DASH_ID_LEN = len("0eeee000-cccc-bbbb-aaaa-123450000000")
NO_DASH_ID_LEN = len("0eeee000ccccbbbbaaaa123450000000")

_HEX_ID = re.compile(r"^[0-9a-fA-F]{32}$")


def is_valid_dash_id(value: str) -> bool:
    return len(value) == DASH_ID_LEN and "-" in value


def to_dash_id(value: str) -> str:
    """Return the dashed form of a page id; unknown shapes pass through."""
    if is_valid_dash_id(value):
        return value
    plain = value.replace("-", "")
    if len(plain) != NO_DASH_ID_LEN:
        return value
    return f"{plain[:8]}-{plain[8:12]}-{plain[12:16]}-{plain[16:20]}-{plain[20:]}"


def to_plain_id(value: str) -> str:
    return value.replace("-", "")


def is_page_id(value: str) -> bool:
    """True for either spelling of a page id."""
    return bool(_HEX_ID.match(to_plain_id(value)))


def page_id_from_uri(uri: str) -> str:
    """Last path segment of *uri* without its query string."""
    return uri.rstrip("/").split("/")[-1].split("?")[0]


def page_id_from_collection_url(url: str) -> str:
    """Extract the dashed page id of a shared collection page url.

    ``https://www.notion.so/user/Blog-0eeee000ccccbbbbaaaa123450000000?v=...``
    """
    last_segment = url.split("/")[-1]
    candidate = last_segment.split("-")[-1].split("?")[0]
    if len(candidate) != NO_DASH_ID_LEN:
        raise NotablogError(
            ErrorCode.INVALID_COLLECTION_URL,
            f"Cannot get page id from {url}",
            suggestion='check the "url" field of config.json',
        )
    return to_dash_id(candidate)
