"""Tests for Prometheus metrics endpoint."""

from __future__ import annotations

from videoracle.server.metrics import (
    LATENCY_BUCKETS,
    HistogramData,
    MetricsCollector,
    get_metrics_collector,
)


class TestHistogramData:
    """Tests for HistogramData class."""

    def test_observe_increments_count(self):
        h = HistogramData()
        h.observe(0.1)
        assert h.count == 1
        assert h.sum == 0.1

    def test_observe_fills_buckets(self):
        """Observations fill every bucket at or above their value."""
        h = HistogramData()
        h.observe(0.003)
        h.observe(0.05)
        h.observe(0.5)

        assert h.buckets[0.005] == 1
        assert h.buckets[0.05] == 2
        assert h.buckets[0.5] == 3

    def test_observe_large_value(self):
        """Large values only increment count, not buckets."""
        h = HistogramData()
        h.observe(100.0)

        assert h.count == 1
        for bucket in LATENCY_BUCKETS:
            assert h.buckets.get(bucket, 0) == 0


class TestMetricsCollector:
    """Tests for MetricsCollector class."""

    def test_record_request(self):
        collector = MetricsCollector()
        collector.record_request("GET", "/api/v1/health", 200, 0.05)

        assert collector._request_counts[("GET", "/api/v1/health", 200)] == 1
        assert collector._latency_histograms[("GET", "/api/v1/health")].count == 1

    def test_record_multiple_requests(self):
        collector = MetricsCollector()
        collector.record_request("POST", "/api/v1/requests", 201, 0.05)
        collector.record_request("POST", "/api/v1/requests", 201, 0.1)
        collector.record_request("POST", "/api/v1/requests", 402, 0.2)

        assert collector._request_counts[("POST", "/api/v1/requests", 201)] == 2
        assert collector._request_counts[("POST", "/api/v1/requests", 402)] == 1

    def test_normalize_path_numeric(self):
        collector = MetricsCollector()
        path = "/api/v1/requests/12/proofs/0/upvote"
        assert collector._normalize_path(path) == "/api/v1/requests/{id}/proofs/{id}/upvote"

    def test_normalize_path_identity(self):
        collector = MetricsCollector()
        path = "/api/v1/requests/3/verifiers/alice"
        assert collector._normalize_path(path) == "/api/v1/requests/{id}/verifiers/{identity}"

    def test_connection_tracking(self):
        collector = MetricsCollector()
        assert collector.get_active_connections() == 0

        collector.increment_connections()
        collector.increment_connections()
        assert collector.get_active_connections() == 2

        collector.decrement_connections()
        assert collector.get_active_connections() == 1

    def test_connection_decrement_floor(self):
        """Connection count doesn't go negative."""
        collector = MetricsCollector()
        collector.decrement_connections()
        assert collector.get_active_connections() == 0

    def test_format_prometheus_request_counts(self):
        collector = MetricsCollector()
        collector.record_request("GET", "/api/v1/health", 200, 0.01)
        collector.record_request("POST", "/api/v1/claims/voter", 200, 0.1)

        output = collector.format_prometheus()

        assert "videoracle_http_requests_total" in output
        assert 'method="GET"' in output
        assert 'method="POST"' in output
        assert 'status="200"' in output

    def test_format_prometheus_histograms(self):
        collector = MetricsCollector()
        collector.record_request("GET", "/api/v1/health", 200, 0.01)

        output = collector.format_prometheus()

        assert "videoracle_http_request_duration_seconds_bucket" in output
        assert "videoracle_http_request_duration_seconds_sum" in output
        assert "videoracle_http_request_duration_seconds_count" in output
        assert 'le="0.01"' in output
        assert 'le="+Inf"' in output

    def test_format_prometheus_bucket_counts_not_doubled(self):
        collector = MetricsCollector()
        collector.record_request("GET", "/api/v1/health", 200, 0.003)
        collector.record_request("GET", "/api/v1/health", 200, 0.03)

        output = collector.format_prometheus()

        prefix = 'videoracle_http_request_duration_seconds_bucket{method="GET",path="/api/v1/health"'
        assert f'{prefix},le="0.005"}} 1' in output
        assert f'{prefix},le="0.05"}} 2' in output
        assert f'{prefix},le="10.0"}} 2' in output
        assert output.endswith("\n")
        assert output.startswith("# HELP videoracle_http_requests_total")

    def test_format_prometheus_without_market(self):
        output = MetricsCollector().format_prometheus()
        assert "videoracle_active_connections 0" in output
        assert "videoracle_requests_total" not in output

    def test_format_prometheus_market_gauges(self, service, make_request):
        make_request()
        make_request()
        service.submit_proof("alice", 1, 1)

        output = MetricsCollector().format_prometheus(service)

        assert "videoracle_requests_total 2" in output
        assert f"videoracle_fees_collected {2 * service.fee}" in output
        assert 'videoracle_events_total{type="request_created"} 2' in output
        assert 'videoracle_events_total{type="proof_submitted"} 1' in output

    def test_global_collector_is_shared(self):
        assert get_metrics_collector() is get_metrics_collector()


class TestMetricsEndpoint:
    def test_metrics_endpoint(self, client):
        client.get("/api/v1/health")
        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert 'path="/api/v1/health",status="200"' in response.text
        assert "videoracle_requests_total 0" in response.text

    def test_metrics_endpoint_not_counted(self, client):
        client.get("/metrics")
        assert 'path="/metrics"' not in client.get("/metrics").text

    def test_paths_are_normalized(self, client, make_request):
        make_request()
        client.get("/api/v1/requests/1")
        assert 'path="/api/v1/requests/{id}"' in client.get("/metrics").text
