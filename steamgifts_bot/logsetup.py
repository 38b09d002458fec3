"""Structured logging: level parsing, format selection, colour detection,
dual console and file output, and redaction of sensitive values in files."""

from __future__ import annotations

import gzip
import json
import logging
import os
import shutil
import sys
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, TextIO

LEVEL_DEBUG = logging.DEBUG
LEVEL_INFO = logging.INFO
LEVEL_WARN = logging.WARNING
LEVEL_ERROR = logging.ERROR

_LEVEL_NAMES = {
    LEVEL_DEBUG: "DEBUG",
    LEVEL_INFO: "INFO",
    LEVEL_WARN: "WARN",
    LEVEL_ERROR: "ERROR",
}
_LEVEL_SHORT = {
    LEVEL_DEBUG: ("DBG", "\x1b[37m"),
    LEVEL_INFO: ("INF", "\x1b[92m"),
    LEVEL_WARN: ("WRN", "\x1b[93m"),
    LEVEL_ERROR: ("ERR", "\x1b[91m"),
}

REDACTED = "***REDACTED***"
SENSITIVE_KEYS = frozenset(
    {
        "cookie",
        "phpsessid",
        "token",
        "xsrf_token",
        "xsrf",
        "password",
        "secret",
        "webhook",
        "proxy",
    }
)

_MAX_BYTES = 100 * 1024 * 1024
_MAX_BACKUPS = 3
_MAX_AGE = timedelta(days=30)

_Attr = tuple[tuple[str, ...], str, Any]


def parse_level(s: str) -> int:
    """Convert "debug" / "info" / "warn" / "error" into a logging level."""
    key = s.strip().lower()
    if key in ("", "info"):
        return LEVEL_INFO
    if key == "debug":
        return LEVEL_DEBUG
    if key in ("warn", "warning"):
        return LEVEL_WARN
    if key in ("error", "err"):
        return LEVEL_ERROR
    raise ValueError(f"unknown log level {s!r} (valid: debug, info, warn, error)")


def use_color(stream: Any) -> bool:
    """Report whether output to stream should be colourised."""
    if os.environ.get("NO_COLOR", ""):
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    isatty = getattr(stream, "isatty", None)
    if isatty is None:
        return False
    try:
        return bool(isatty())
    except (OSError, ValueError):
        return False


def redact_attrs(attrs: Mapping[str, Any]) -> dict[str, Any]:
    """Return attrs with the values of sensitive keys replaced."""
    return {
        key: REDACTED if key.lower() in SENSITIVE_KEYS else value
        for key, value in attrs.items()
    }


@dataclass(frozen=True)
class _Record:
    time: datetime
    level: int
    msg: str
    attrs: tuple[_Attr, ...]

    def redacted(self) -> _Record:
        return replace(
            self,
            attrs=tuple(
                (groups, key, REDACTED if key.lower() in SENSITIVE_KEYS else value)
                for groups, key, value in self.attrs
            ),
        )


def _level_name(level: int) -> str:
    return _LEVEL_NAMES.get(level, logging.getLevelName(level))


def _text(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _quote(s: str) -> str:
    if s == "" or any(c.isspace() or c in '"=' or not c.isprintable() for c in s):
        return json.dumps(s, ensure_ascii=False)
    return s


def _timestamp(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds")


def _render_json(record: _Record) -> str:
    obj: dict[str, Any] = {
        "time": _timestamp(record.time),
        "level": _level_name(record.level),
        "msg": record.msg,
    }
    for groups, key, value in record.attrs:
        target = obj
        for group in groups:
            nested = target.get(group)
            if not isinstance(nested, dict):
                nested = {}
                target[group] = nested
            target = nested
        target[key] = value
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False, default=_text) + "\n"


def _render_text(record: _Record) -> str:
    parts = [
        f"time={_timestamp(record.time)}",
        f"level={_level_name(record.level)}",
        f"msg={_quote(record.msg)}",
    ]
    parts.extend(
        f"{'.'.join((*groups, key))}={_quote(_text(value))}"
        for groups, key, value in record.attrs
    )
    return " ".join(parts) + "\n"


def _render_color(record: _Record) -> str:
    clock = f"{record.time:%I:%M%p}".lstrip("0")
    short, colour = _LEVEL_SHORT.get(record.level, (_level_name(record.level), ""))
    parts = [f"\x1b[2m{clock}\x1b[0m", f"{colour}{short}\x1b[0m", record.msg]
    parts.extend(
        f"\x1b[2m{'.'.join((*groups, key))}=\x1b[0m{_quote(_text(value))}"
        for groups, key, value in record.attrs
    )
    return " ".join(parts) + "\n"


class _RotatingFile:
    """Append-only file that rotates into gzip backups when it grows too big."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._fh = self._open()
        self._size = path.stat().st_size

    def _open(self) -> TextIO:
        return open(
            self._path,
            "a",
            encoding="utf-8",
            opener=lambda p, flags: os.open(p, flags, 0o600),
        )

    def write(self, text: str) -> None:
        data = text.encode("utf-8")
        with self._lock:
            if self._fh.closed:
                return
            if self._size > 0 and self._size + len(data) > _MAX_BYTES:
                self._rotate()
            self._fh.write(text)
            self._fh.flush()
            self._size += len(data)

    def _rotate(self) -> None:
        self._fh.close()
        stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S.%f")[:-3]
        backup = self._path.with_name(f"{self._path.stem}-{stamp}{self._path.suffix}.gz")
        with open(self._path, "rb") as src, gzip.open(backup, "wb") as dst:
            shutil.copyfileobj(src, dst)
        self._path.unlink()
        self._fh = self._open()
        self._size = 0
        self._prune()

    def _prune(self) -> None:
        pattern = f"{self._path.stem}-*{self._path.suffix}.gz"
        backups = sorted(
            self._path.parent.glob(pattern), key=lambda p: p.stat().st_mtime, reverse=True
        )
        cutoff = datetime.now().timestamp() - _MAX_AGE.total_seconds()
        for index, backup in enumerate(backups):
            if index >= _MAX_BACKUPS or backup.stat().st_mtime < cutoff:
                backup.unlink(missing_ok=True)

    def close(self) -> None:
        with self._lock:
            if not self._fh.closed:
                self._fh.close()


class _Sink:
    def __init__(
        self,
        write: Callable[[str], None],
        level: int,
        render: Callable[[_Record], str],
        redact: bool = False,
        closer: Callable[[], None] | None = None,
    ) -> None:
        self._write = write
        self.level = level
        self._render = render
        self._redact = redact
        self._closer = closer

    def enabled(self, level: int) -> bool:
        return level >= self.level

    def emit(self, record: _Record) -> None:
        self._write(self._render(record.redacted() if self._redact else record))

    def close(self) -> None:
        if self._closer is not None:
            self._closer()


def _stream_writer(stream: TextIO) -> Callable[[str], None]:
    def write(text: str) -> None:
        stream.write(text)
        flush = getattr(stream, "flush", None)
        if flush is not None:
            flush()

    return write


def _stream_sink(stream: TextIO, level: int, fmt: str) -> _Sink:
    key = fmt.strip().lower()
    if key == "json":
        render = _render_json
    elif key == "text":
        render = _render_text
    elif key in ("", "auto"):
        render = _render_color if use_color(stream) else _render_text
    else:
        raise ValueError(f"unknown log format {fmt!r} (valid: auto, text, json)")
    return _Sink(_stream_writer(stream), level, render)


class StructuredLogger:
    """A logger that emits key/value records to one or more outputs."""

    def __init__(
        self,
        sinks: Iterable[_Sink],
        attrs: Iterable[_Attr] = (),
        groups: Iterable[str] = (),
    ) -> None:
        self._sinks = tuple(sinks)
        self._attrs = tuple(attrs)
        self._groups = tuple(groups)

    def bind(self, **kwargs: Any) -> StructuredLogger:
        """Return a child logger that adds kwargs to every record."""
        added = tuple((self._groups, key, value) for key, value in kwargs.items())
        return StructuredLogger(self._sinks, self._attrs + added, self._groups)

    def with_group(self, name: str) -> StructuredLogger:
        """Return a child logger that nests later attributes under name."""
        if not name:
            return self
        return StructuredLogger(self._sinks, self._attrs, self._groups + (name,))

    def enabled(self, level: int) -> bool:
        """Report whether any output accepts records at level."""
        return any(sink.enabled(level) for sink in self._sinks)

    def log(self, level: int, msg: str, **kwargs: Any) -> None:
        """Emit a record at level to every output that accepts it."""
        if not self.enabled(level):
            return
        attrs = self._attrs + tuple((self._groups, k, v) for k, v in kwargs.items())
        record = _Record(datetime.now().astimezone(), level, msg, attrs)
        for sink in self._sinks:
            if sink.enabled(level):
                sink.emit(record)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self.log(LEVEL_DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self.log(LEVEL_INFO, msg, **kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self.log(LEVEL_WARN, msg, **kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self.log(LEVEL_ERROR, msg, **kwargs)

    def close(self) -> None:
        """Close any files the outputs hold open."""
        for sink in self._sinks:
            sink.close()

    def __enter__(self) -> StructuredLogger:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def new_logger(
    stream: TextIO | None = None, level: str = "info", fmt: str = "auto"
) -> StructuredLogger:
    """Build a logger writing to stream (stderr by default) at level and format."""
    if stream is None:
        stream = sys.stderr
    return StructuredLogger([_stream_sink(stream, parse_level(level), fmt)])


def new_with_file(level: str, fmt: str, log_path: str | os.PathLike[str]) -> StructuredLogger:
    """Build a logger writing to stderr and, as redacted JSON, to a rotating file.

    Close the returned logger to release the file.
    """
    lvl = parse_level(level)
    console = _stream_sink(sys.stderr, lvl, fmt)
    path = Path(log_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_CREAT | os.O_WRONLY, 0o600)
    os.close(fd)
    rotator = _RotatingFile(path)
    file_sink = _Sink(rotator.write, lvl, _render_json, redact=True, closer=rotator.close)
    return StructuredLogger([console, file_sink])


def account_logger(parent: StructuredLogger, name: str) -> StructuredLogger:
    """Return a child logger tagged with the account name."""
    return parent.bind(account=name)