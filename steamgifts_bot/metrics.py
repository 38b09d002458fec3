"""Per-account counters and gauges exposed in the Prometheus text format."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

_log = logging.getLogger(__name__)


class MetricKind(str, Enum):
    COUNTER = "counter"
    GAUGE = "gauge"


def _format_value(value: float) -> str:
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


class Metric:
    """A counter or gauge with one value per account. Thread-safe."""

    def __init__(
        self, name: str, help_text: str, kind: MetricKind, label: str = "account"
    ) -> None:
        self.name = name
        self.help_text = help_text
        self.kind = MetricKind(kind)
        self.label = label
        self._values: dict[str, float] = {}
        self._lock = threading.Lock()

    def inc(self, account: str, amount: float = 1.0) -> None:
        """Add amount to the value for account; counters only go up."""
        if self.kind is MetricKind.COUNTER and amount < 0:
            raise ValueError(f"{self.name}: counter cannot decrease")
        with self._lock:
            self._values[account] = self._values.get(account, 0.0) + float(amount)

    def set(self, account: str, value: float) -> None:
        """Set the value for account; gauges only."""
        if self.kind is MetricKind.COUNTER:
            raise ValueError(f"{self.name}: counter cannot be set")
        with self._lock:
            self._values[account] = float(value)

    def value(self, account: str) -> float:
        """The current value for account, 0 if never touched."""
        with self._lock:
            return self._values.get(account, 0.0)

    def render(self) -> str:
        """Render this metric in the Prometheus text exposition format."""
        with self._lock:
            items = sorted(self._values.items())
        lines = [f"# HELP {self.name} {self.help_text}", f"# TYPE {self.name} {self.kind.value}"]
        lines.extend(
            f'{self.name}{{{self.label}="{_escape_label(account)}"}} {_format_value(v)}'
            for account, v in items
        )
        return "\n".join(lines) + "\n"


ENTRIES_ATTEMPTED = Metric(
    "steamgifts_entries_attempted_total", "Total giveaway entries attempted.", MetricKind.COUNTER
)
ENTRIES_SUCCEEDED = Metric(
    "steamgifts_entries_succeeded_total",
    "Total giveaway entries that succeeded.",
    MetricKind.COUNTER,
)
ENTRIES_FAILED = Metric(
    "steamgifts_entries_failed_total", "Total giveaway entries that failed.", MetricKind.COUNTER
)
POINTS = Metric("steamgifts_points", "Current point balance per account.", MetricKind.GAUGE)
CYCLES_COMPLETED = Metric(
    "steamgifts_cycles_completed_total", "Total scan cycles completed.", MetricKind.COUNTER
)
CANDIDATES_SCANNED = Metric(
    "steamgifts_candidates_scanned",
    "Number of joinable candidates found in the last cycle.",
    MetricKind.GAUGE,
)
SYNC_SUCCEEDED = Metric(
    "steamgifts_sync_succeeded_total",
    "Total successful Steam sync operations.",
    MetricKind.COUNTER,
)
WINS_DETECTED = Metric(
    "steamgifts_wins_detected_total", "Total new wins detected.", MetricKind.COUNTER
)

ALL_METRICS = (
    ENTRIES_ATTEMPTED,
    ENTRIES_SUCCEEDED,
    ENTRIES_FAILED,
    POINTS,
    CYCLES_COMPLETED,
    CANDIDATES_SCANNED,
    SYNC_SUCCEEDED,
    WINS_DETECTED,
)


def render_all() -> str:
    """Render every bot metric in the Prometheus text format."""
    return "".join(metric.render() for metric in ALL_METRICS)


class _MetricsHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:  # noqa: N802
        if self.path.split("?", 1)[0] != "/metrics":
            self.send_error(404)
            return
        body = render_all().encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/plain; version=0.0.4; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:
        """Send access lines to the module logger instead of stderr."""
        _log.debug("metrics: %s - " + format, self.address_string(), *args)


def _split_addr(addr: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"metrics: address {addr!r} has no port")
    try:
        return host.strip("[]"), int(port)
    except ValueError:
        raise ValueError(f"metrics: invalid port in address {addr!r}") from None


def serve(addr: str, stop_event: threading.Event) -> None:
    """Serve /metrics on addr ("host:port" or ":port") until stop_event is set."""
    server = ThreadingHTTPServer(_split_addr(addr), _MetricsHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        stop_event.wait()
    finally:
        server.shutdown()
        server.server_close()
        thread.join()