"""Prometheus text exposition for the VideOracle server.

HTTP traffic is recorded by ``MetricsMiddleware``; market gauges are read
from the service at scrape time. Families:

- videoracle_http_requests_total{method,path,status}
- videoracle_http_request_duration_seconds{method,path} (histogram)
- videoracle_active_connections
- videoracle_requests_total
- videoracle_fees_collected
- videoracle_events_total{type}
"""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter, defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from ..core.market import OracleService

logger = logging.getLogger(__name__)

# Upper bounds in seconds; +Inf is implied
LATENCY_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

# Path segments following these are caller identities, not route names
_IDENTITY_PARENTS = frozenset({"verifiers"})


@dataclass
class HistogramData:
    """Latency observations for one (method, path) pair.

    ``buckets`` counts observations at or under each bound, so a value lands
    in every bucket it fits.
    """

    buckets: dict[float, int] = field(default_factory=lambda: defaultdict(int))
    sum: float = 0.0
    count: int = 0

    def observe(self, value: float) -> None:
        self.count += 1
        self.sum += value
        for bound in LATENCY_BUCKETS:
            if value <= bound:
                self.buckets[bound] += 1


def _family(name: str, kind: str, help_text: str, samples: Iterable[str]) -> list[str]:
    return ["", f"# HELP {name} {help_text}", f"# TYPE {name} {kind}", *samples]


class MetricsCollector:
    """In-process request counters shared by all worker threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._request_counts: dict[tuple[str, str, int], int] = defaultdict(int)
        self._latency_histograms: dict[tuple[str, str], HistogramData] = defaultdict(HistogramData)
        self._active_connections = 0

    def record_request(self, method: str, path: str, status_code: int, duration_seconds: float) -> None:
        route = self._normalize_path(path)
        with self._lock:
            self._request_counts[(method, route, status_code)] += 1
            self._latency_histograms[(method, route)].observe(duration_seconds)

    def _normalize_path(self, path: str) -> str:
        """Replace request/proof indices and identities so labels stay bounded."""
        segments = path.split("/")
        out = []
        previous = ""
        for segment in segments:
            if segment.isdigit():
                out.append("{id}")
            elif previous in _IDENTITY_PARENTS:
                out.append("{identity}")
            else:
                out.append(segment)
            previous = segment
        return "/".join(out)

    def increment_connections(self) -> None:
        with self._lock:
            self._active_connections += 1

    def decrement_connections(self) -> None:
        with self._lock:
            if self._active_connections > 0:
                self._active_connections -= 1

    def get_active_connections(self) -> int:
        with self._lock:
            return self._active_connections

    def _http_samples(self) -> list[str]:
        with self._lock:
            counts = sorted(self._request_counts.items())
            histograms = sorted(
                (key, (dict(h.buckets), h.sum, h.count)) for key, h in self._latency_histograms.items()
            )
            active = self._active_connections

        lines = _family(
            "videoracle_http_requests_total",
            "counter",
            "Total HTTP requests",
            (
                f'videoracle_http_requests_total{{method="{method}",path="{path}",status="{status}"}} {n}'
                for (method, path, status), n in counts
            ),
        )

        latency: list[str] = []
        for (method, path), (buckets, total, n) in histograms:
            labels = f'method="{method}",path="{path}"'
            # Stored counts are already cumulative
            for bound in LATENCY_BUCKETS:
                latency.append(
                    f'videoracle_http_request_duration_seconds_bucket{{{labels},le="{bound}"}} {buckets.get(bound, 0)}'
                )
            latency.append(f'videoracle_http_request_duration_seconds_bucket{{{labels},le="+Inf"}} {n}')
            latency.append(f"videoracle_http_request_duration_seconds_sum{{{labels}}} {total:.6f}")
            latency.append(f"videoracle_http_request_duration_seconds_count{{{labels}}} {n}")
        lines += _family("videoracle_http_request_duration_seconds", "histogram", "HTTP request latency", latency)

        lines += _family(
            "videoracle_active_connections",
            "gauge",
            "Currently active HTTP connections",
            [f"videoracle_active_connections {active}"],
        )
        return lines

    @staticmethod
    def _market_samples(service: OracleService) -> list[str]:
        by_type = Counter(event.type.value for event in service.events())
        return [
            *_family(
                "videoracle_requests_total",
                "counter",
                "Requests created in the market",
                [f"videoracle_requests_total {service.total_requests}"],
            ),
            *_family(
                "videoracle_fees_collected",
                "gauge",
                "Fees awaiting withdrawal",
                [f"videoracle_fees_collected {service.fees_collected}"],
            ),
            *_family(
                "videoracle_events_total",
                "counter",
                "Market events by type",
                (f'videoracle_events_total{{type="{kind}"}} {n}' for kind, n in sorted(by_type.items())),
            ),
        ]

    def format_prometheus(self, service: OracleService | None = None) -> str:
        """Render every family; market families only when ``service`` is given."""
        lines = self._http_samples()
        if service is not None:
            lines += self._market_samples(service)
        # Drop the separator before the first family, end with a newline
        return "\n".join(lines[1:]) + "\n"


_metrics_collector: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector


class MetricsMiddleware(BaseHTTPMiddleware):
    """Counts every request except scrapes of /metrics itself."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        collector = get_metrics_collector()
        collector.increment_connections()
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            collector.record_request(request.method, request.url.path, status_code, time.perf_counter() - started)
            collector.decrement_connections()


async def metrics_endpoint(request: Request) -> PlainTextResponse:
    service = getattr(request.app.state, "service", None)
    return PlainTextResponse(get_metrics_collector().format_prometheus(service), media_type=CONTENT_TYPE)
