"""
tests/parallel/test_parallel_error_collector.py - geco/parallel/errors.py tests
"""

import logging
import threading

from conftest import make_http_error

from geco.parallel.errors import ErrorCollector, ErrorSeverity
from geco.parallel.types import ErrorCategory


class TestErrorCollector:
    """ErrorCollector"""

    def test_empty(self):
        collector = ErrorCollector()

        assert not collector.has_errors
        assert collector.get_summary() == "no errors"

    def test_collect(self):
        collector = ErrorCollector()
        collected = collector.collect(make_http_error(503), "proj-a", "instances", "compute.instances.aggregatedList")

        assert collected.severity == ErrorSeverity.WARNING
        assert collected.category == ErrorCategory.SERVICE_ERROR
        assert collected.error_code == "503"
        assert collector.errors == [collected]
        assert collected.severity == ErrorSeverity.WARNING

    def test_access_denied_downgraded(self):
        collector = ErrorCollector()
        collected = collector.collect(make_http_error(403), "proj-a", "instances", "compute.instances.aggregatedList")

        assert collected.severity == ErrorSeverity.INFO

    def test_logs_ignored_line(self, caplog):
        collector = ErrorCollector()
        with caplog.at_level(logging.WARNING, logger="geco.parallel.errors"):
            collector.collect(make_http_error(500), "proj-a", "instances", "compute.instances.aggregatedList")

        assert "ignored" in caplog.text
        assert "proj-a" in caplog.text

    def test_summary_and_grouping(self):
        collector = ErrorCollector()
        collector.collect(make_http_error(403), "proj-a", "instances", "op")
        collector.collect(make_http_error(500), "proj-a", "instance groups", "op")
        collector.collect(make_http_error(500), "proj-b", "instances", "op", resource_id="zone/web")

        assert collector.get_summary() == "3 error(s) (info: 1, warning: 2)"
        assert len(collector.get_by_project()["proj-a"]) == 2
        assert str(collector.errors[2]).startswith("[WARNING] proj-b/zone/web")

    def test_thread_safe(self):
        collector = ErrorCollector()

        def worker(n):
            for _ in range(50):
                collector.collect(ValueError("x"), f"proj-{n}", "instances", "op", severity=ErrorSeverity.DEBUG)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(collector.errors) == 400

    def test_clear(self):
        collector = ErrorCollector()
        collector.collect(ValueError("x"), "proj-a", "instances", "op")
        collector.clear()
        assert not collector.has_errors
