"""Check the release feed for a newer version of the bot."""

from __future__ import annotations

import dataclasses
import os
import shutil
import sys
import threading
from dataclasses import dataclass, field
from typing import Any, Mapping

import requests

from .logsetup import StructuredLogger

RELEASE_URL = "https://api.github.com/repos/steamgifts-bot/steamgifts-bot/releases/latest"
ACCEPT_HEADER = "application/vnd.github+json"
BOT_COMMAND = "steamgifts-bot"
_TIMEOUT = 5.0


@dataclass
class Asset:
    """A downloadable file attached to a release."""

    name: str = ""
    browser_download_url: str = ""
    size: int = 0


@dataclass
class Release:
    """Metadata about a published release."""

    tag_name: str = ""
    html_url: str = ""
    assets: list[Asset] = field(default_factory=list)


@dataclass
class CheckResult:
    """The outcome of an update check."""

    available: bool
    current_version: str
    latest_version: str
    download_url: str
    release: Release


_latest_lock = threading.Lock()
_latest_result: CheckResult | None = None


def latest() -> CheckResult | None:
    """The most recent check result, or None if no check has completed."""
    with _latest_lock:
        if _latest_result is None:
            return None
        return dataclasses.replace(_latest_result)


def _string(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key}: expected a string")
    return value


def _release_from(data: Any) -> Release:
    if not isinstance(data, Mapping):
        raise ValueError("release: expected an object")
    assets_data = data.get("assets") or []
    if not isinstance(assets_data, list):
        raise ValueError("assets: expected a list")
    assets = []
    for item in assets_data:
        if not isinstance(item, Mapping):
            raise ValueError("asset: expected an object")
        size = item.get("size") or 0
        if isinstance(size, bool) or not isinstance(size, int):
            raise ValueError("size: expected an integer")
        assets.append(
            Asset(
                name=_string(item, "name"),
                browser_download_url=_string(item, "browser_download_url"),
                size=size,
            )
        )
    return Release(
        tag_name=_string(data, "tag_name"),
        html_url=_string(data, "html_url"),
        assets=assets,
    )


def fetch_latest(current_version: str, release_url: str = RELEASE_URL) -> CheckResult | None:
    """Compare current_version with the latest release; None on any failure.

    Empty and development versions are never checked.
    """
    if not current_version or current_version.startswith("dev"):
        return None
    try:
        response = requests.get(
            release_url, headers={"Accept": ACCEPT_HEADER}, timeout=_TIMEOUT
        )
    except requests.RequestException:
        return None
    with response:
        if response.status_code != 200:
            return None
        try:
            release = _release_from(response.json())
        except ValueError:
            return None

    newest = release.tag_name.removeprefix("v")
    current = current_version.removeprefix("v")
    return CheckResult(
        available=bool(newest) and newest != current,
        current_version=current_version,
        latest_version=release.tag_name,
        download_url=release.html_url,
        release=release,
    )


def check(logger: StructuredLogger, current_version: str) -> CheckResult | None:
    """Run a check, remember its result and warn when a newer version exists."""
    global _latest_result
    result = fetch_latest(current_version, RELEASE_URL)
    if result is None:
        return None
    with _latest_lock:
        _latest_result = result
    if result.available:
        logger.warning(
            "a newer version is available",
            current=current_version,
            latest=result.latest_version,
            download=result.release.html_url,
        )
    return result


def _executable() -> str:
    found = shutil.which(BOT_COMMAND)
    if found:
        return os.path.realpath(found)
    if sys.argv and sys.argv[0]:
        return os.path.realpath(sys.argv[0])
    return os.path.realpath(sys.executable)


def cleanup_old_binary() -> None:
    """Remove a leftover ".old" binary from a previous self-update, if any."""
    try:
        os.remove(_executable() + ".old")
    except OSError:
        pass