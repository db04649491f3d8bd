import threading
import unittest

import requests

from live_server import unused_port

from apitest.metrics import RunMetrics

LABELS = {"name": "create", "hostname": "api.local", "path": "/todos", "method": "POST"}


class RunMetricsTests(unittest.TestCase):
    def test_record_counts_requests_errors_and_durations(self) -> None:
        metrics = RunMetrics()
        metrics.record("create", "api.local", "/todos", "POST", 0.25)
        metrics.record("create", "api.local", "/todos", "POST", 0.75, failed=True)

        registry = metrics.registry
        self.assertEqual(registry.get_sample_value("apitest_requests_total", LABELS), 2.0)
        self.assertEqual(registry.get_sample_value("apitest_requests_errors_total", LABELS), 1.0)
        self.assertEqual(registry.get_sample_value("apitest_requests_duration_count", LABELS), 2.0)
        self.assertAlmostEqual(registry.get_sample_value("apitest_requests_duration_sum", LABELS), 1.0)

    def test_separate_instances_do_not_collide(self) -> None:
        first = RunMetrics()
        second = RunMetrics()
        first.record("create", "api.local", "/todos", "POST", 0.1)

        self.assertIsNone(second.registry.get_sample_value("apitest_requests_total", LABELS))

    def test_concurrent_increments(self) -> None:
        metrics = RunMetrics()

        def work() -> None:
            for _ in range(200):
                metrics.record("create", "api.local", "/todos", "POST", 0.01)

        threads = [threading.Thread(target=work) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(metrics.registry.get_sample_value("apitest_requests_total", LABELS), 800.0)

    def test_exposition_and_http_endpoint(self) -> None:
        metrics = RunMetrics()
        metrics.record("create", "api.local", "/todos", "POST", 0.1)
        self.assertIn(b"apitest_requests_total", metrics.exposition())

        port = unused_port()
        served = metrics.serve(port, addr="127.0.0.1")
        if isinstance(served, tuple):
            server, _ = served
            self.addCleanup(server.server_close)
            self.addCleanup(server.shutdown)

        response = requests.get(f"http://127.0.0.1:{port}/metrics", timeout=5)
        self.assertEqual(response.status_code, 200)
        sample = next(
            line for line in response.text.splitlines() if line.startswith("apitest_requests_total{")
        )
        self.assertIn('name="create"', sample)
        self.assertTrue(sample.endswith(" 1.0"))


if __name__ == "__main__":
    unittest.main()
