"""The bot's small persistent state file.

It records per-account "last successful Steam sync" times so restarts do
not burn through the daily sync cooldown. The file is JSON with named
fields, so new fields can be added without breaking older files. Writes
are atomic (temp file plus rename) and all methods are thread-safe.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

STATE_FILE_NAME = "state.json"
CURRENT_VERSION = 1

_TIME_RE = re.compile(
    r"^(?P<base>\d{4,}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d+))?"
    r"(?P<tz>Z|[+-]\d{2}:\d{2})$"
)


class StateError(Exception):
    """The state file could not be read, parsed or written."""


def _format_time(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.astimezone()
    text = moment.isoformat()
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


def _parse_time(text: str) -> datetime:
    match = _TIME_RE.match(text)
    if match is None:
        raise ValueError(f"invalid timestamp {text!r}")
    base = datetime.fromisoformat(match.group("base"))
    frac = match.group("frac") or ""
    micros = int((frac + "000000")[:6]) if frac else 0
    tz_text = match.group("tz")
    if tz_text == "Z":
        tz = timezone.utc
    else:
        sign = -1 if tz_text[0] == "-" else 1
        hours, minutes = int(tz_text[1:3]), int(tz_text[4:6])
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))
    return base.replace(microsecond=micros, tzinfo=tz)


class Store:
    """In-memory state backed by atomic writes to a file on disk."""

    def __init__(
        self,
        path: str | os.PathLike[str],
        version: int = CURRENT_VERSION,
        last_sync: Mapping[str, datetime] | None = None,
    ) -> None:
        self._path = os.fspath(path)
        self.version = version
        self._last_sync: dict[str, datetime] = dict(last_sync or {})
        self._lock = threading.Lock()

    @property
    def path(self) -> str:
        """The path the store reads and writes."""
        return self._path

    def last_sync(self, account: str) -> datetime | None:
        """The last successful sync time for account, or None if there is none."""
        with self._lock:
            return self._last_sync.get(account)

    def set_last_sync(self, account: str, when: datetime) -> None:
        """Record when as the last successful sync for account and persist it."""
        with self._lock:
            self._last_sync[account] = when
            snapshot = {
                "version": self.version,
                "last_sync": {name: _format_time(t) for name, t in self._last_sync.items()},
            }
        self._save(snapshot)

    def _save(self, snapshot: dict[str, Any]) -> None:
        if not self._path:
            raise StateError("state: no path configured")
        directory = os.path.dirname(self._path) or "."
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as exc:
            raise StateError(f"state: mkdir: {exc}") from exc
        payload = json.dumps(snapshot, indent=2)
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".state-", suffix=".json", dir=directory)
        except OSError as exc:
            raise StateError(f"state: tempfile: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(payload)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            try:
                os.remove(tmp_name)
            except OSError:
                pass
            raise StateError(f"state: write: {exc}") from exc


def default_path_for(config_path: str) -> str:
    """The default state file path beside the given config file."""
    if not config_path:
        return STATE_FILE_NAME
    return os.path.normpath(os.path.join(os.path.dirname(config_path), STATE_FILE_NAME))


def load(path: str | os.PathLike[str]) -> Store:
    """Read the state file at path; a missing or empty file gives an empty store."""
    path = os.fspath(path)
    try:
        with open(path, "rb") as fh:
            raw = fh.read()
    except FileNotFoundError:
        return Store(path)
    except OSError as exc:
        raise StateError(f"state: read {path}: {exc}") from exc
    if not raw:
        return Store(path)
    try:
        data = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as exc:
        raise StateError(f"state: parse {path}: {exc}") from exc
    if data is None:
        return Store(path)
    if not isinstance(data, dict):
        raise StateError(f"state: parse {path}: expected a JSON object")

    version = data.get("version")
    if version is None:
        version = 0
    if isinstance(version, bool) or not isinstance(version, int):
        raise StateError(f"state: parse {path}: version must be an integer")
    if version == 0:
        version = CURRENT_VERSION

    entries = data.get("last_sync")
    if entries is None:
        entries = {}
    if not isinstance(entries, dict):
        raise StateError(f"state: parse {path}: last_sync must be an object")
    last_sync: dict[str, datetime] = {}
    for account, stamp in entries.items():
        if not isinstance(stamp, str):
            raise StateError(f"state: parse {path}: last_sync[{account!r}] must be a string")
        try:
            last_sync[account] = _parse_time(stamp)
        except ValueError as exc:
            raise StateError(f"state: parse {path}: {exc}") from exc
    return Store(path, version=version, last_sync=last_sync)