"""Request forms and JSON response decoding for the site's AJAX endpoint."""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Any

AJAX_PATH = "/ajax.php"
RESPONSE_TYPE_SUCCESS = "success"

_INT_RE = re.compile(r"[+-]?\d+", re.ASCII)
_SNIPPET_LIMIT = 200


class SiteResponseError(Exception):
    """The site's AJAX response was undecodable or reported a failure.

    ``result`` holds the decoded response when there was one.
    """

    def __init__(self, message: str, result: Any = None) -> None:
        super().__init__(message)
        self.result = result


@dataclass
class EntryResult:
    """Response to an entry request.

    ``points`` arrives as a number on success and as a string on error.
    """

    type: str = ""
    entry_count: str = ""
    points: Any = None
    msg: str = ""

    def points_value(self) -> int:
        """Return points as an int, whichever form the site sent."""
        value = self.points
        if isinstance(value, bool):
            return 0
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value) if math.isfinite(value) else 0
        if isinstance(value, str):
            return int(value) if _INT_RE.fullmatch(value) else 0
        return 0


@dataclass
class SyncResult:
    """Response to a Steam sync request."""

    type: str = ""
    msg: str = ""


def build_entry_form(code: str, xsrf: str) -> dict[str, str]:
    """Form fields for entering the giveaway with the given code."""
    return {"xsrf_token": xsrf, "do": "entry_insert", "code": code}


def build_sync_form(xsrf: str) -> dict[str, str]:
    """Form fields for asking the site to sync the account with Steam."""
    return {"xsrf_token": xsrf, "do": "sync"}


def _snippet(body: bytes | str) -> str:
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    text = " ".join(text.split())
    if len(text) > _SNIPPET_LIMIT:
        return text[:_SNIPPET_LIMIT] + "…"
    return text


def _decode(body: bytes | str, label: str) -> dict[str, Any]:
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError) as exc:
        raise SiteResponseError(
            f"{label}: decode response: {exc} (body: {_snippet(body)})"
        ) from exc
    if not isinstance(data, dict):
        raise SiteResponseError(
            f"{label}: decode response: expected a JSON object (body: {_snippet(body)})"
        )
    return data


def _string_field(data: dict[str, Any], key: str, label: str, body: bytes | str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise SiteResponseError(
            f"{label}: decode response: field {key!r} is not a string (body: {_snippet(body)})"
        )
    return value


def parse_entry_response(code: str, body: bytes | str) -> EntryResult:
    """Decode an entry response; raise SiteResponseError unless it succeeded."""
    label = f"enter {code}"
    data = _decode(body, label)
    result = EntryResult(
        type=_string_field(data, "type", label, body),
        entry_count=_string_field(data, "entry_count", label, body),
        points=data.get("points"),
        msg=_string_field(data, "msg", label, body),
    )
    if result.type != RESPONSE_TYPE_SUCCESS:
        raise SiteResponseError(
            f"{label}: server returned {result.type}: {result.msg}", result=result
        )
    return result


def parse_sync_response(body: bytes | str) -> SyncResult:
    """Decode a sync response; raise SiteResponseError unless it succeeded."""
    label = "sync"
    data = _decode(body, label)
    result = SyncResult(
        type=_string_field(data, "type", label, body),
        msg=_string_field(data, "msg", label, body),
    )
    if result.type != RESPONSE_TYPE_SUCCESS:
        raise SiteResponseError(
            f"{label}: server returned {result.type}: {result.msg}", result=result
        )
    return result