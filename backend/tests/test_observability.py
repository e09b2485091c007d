import unittest
from unittest.mock import MagicMock, patch

from backend.observability import otel


class ObservabilityTests(unittest.TestCase):
    def test_otlp_endpoint_normalization(self) -> None:
        self.assertEqual(otel._normalize_otlp_endpoint("http://collector:4318", "/v1/traces"), "http://collector:4318/v1/traces")
        self.assertEqual(otel._normalize_otlp_endpoint("http://collector:4318/v1/", "/v1/metrics"), "http://collector:4318/v1/metrics")
        self.assertEqual(otel._normalize_otlp_endpoint("", "/v1/traces"), "")

    def test_helpers_are_noops_when_disabled(self) -> None:
        with patch.object(otel, "_enabled", False), patch.object(otel, "_prom_enabled", False):
            with otel.start_span("sessions.list", {"limit": 1}) as span:
                self.assertIsNone(span)
            otel.record_listing("find", "ok", 1.5)
            otel.record_decode_failure("session_log", 2)
            otel.record_cache_lookup("repo_status", hit=True)

    def test_metrics_are_recorded_when_enabled(self) -> None:
        counter = MagicMock()
        with patch.object(otel, "_enabled", True), patch.object(otel, "_prom_enabled", False), patch.object(
            otel, "_cache_lookup_counter", counter
        ), patch.object(otel, "_decode_failure_counter", counter):
            otel.record_cache_lookup("repo_status", hit=False)
            otel.record_decode_failure("session_log", 0)
            otel.record_decode_failure("session_log", 3)

        counter.add.assert_any_call(1, {"cache": "repo_status", "outcome": "miss"})
        counter.add.assert_any_call(3, {"source": "session_log"})
        self.assertEqual(counter.add.call_count, 2)


if __name__ == "__main__":
    unittest.main()
