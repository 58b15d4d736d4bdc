"""
Tests for the FileLoader: immediate loads, caching and the sequential queue.
"""

import logging

import pytest
from classlink.runtime.file_loader import FileLoader, LoadStatus, cache_key
from classlink.runtime.scheduling import ManualScheduler
from classlink.utils.config import LoaderConfig
from tests.test_utils import StubFetcher


def _recorder(events):
    return lambda path, status: events.append((path, status))


class TestImmediateLoads:

    def test_loaded_callback(self, scheduler):
        fetcher = StubFetcher()
        files = FileLoader(fetcher, scheduler)
        events = []
        files.load("/a.py", _recorder(events))
        assert events == [("/a.py", LoadStatus.LOADED)]
        assert files.is_loaded("/a.py")

    def test_not_found_is_reported_and_logged(self, scheduler, caplog):
        fetcher = StubFetcher(missing={"/missing.py"})
        files = FileLoader(fetcher, scheduler)
        events = []
        with caplog.at_level(logging.ERROR):
            files.load("/missing.py", _recorder(events))
        assert events == [("/missing.py", LoadStatus.NOT_FOUND)]
        assert "File not found: /missing.py" in caplog.text
        assert files.status("/missing.py") is LoadStatus.NOT_FOUND

    def test_in_flight_requests_share_one_fetch(self, scheduler):
        fetcher = StubFetcher(manual=True)
        files = FileLoader(fetcher, scheduler)
        events = []
        files.load("/a.py", _recorder(events))
        files.load("/a.py", _recorder(events))
        assert fetcher.requests == ["/a.py"]
        assert files.in_flight("/a.py")
        assert events == []

        fetcher.complete("/a.py")
        assert events == [("/a.py", LoadStatus.LOADED), ("/a.py", LoadStatus.LOADED)]
        assert not files.in_flight("/a.py")

    def test_completed_load_is_served_from_cache(self, scheduler):
        fetcher = StubFetcher(missing={"/gone.py"})
        files = FileLoader(fetcher, scheduler)
        files.load("/gone.py")
        events = []
        files.load("/gone.py", _recorder(events))
        assert fetcher.requests == ["/gone.py"]
        assert events == [("/gone.py", LoadStatus.NOT_FOUND)]

    def test_cache_key_sanitizes_separators(self):
        assert cache_key("/math/point.py") == "_math_point_py"

    def test_base_url_prefix(self, scheduler):
        fetcher = StubFetcher()
        files = FileLoader(fetcher, scheduler, LoaderConfig(base_url="/static"))
        files.load("/a.py")
        assert fetcher.requests == ["/static/a.py"]
        assert files.loaded_scripts() == ["/static/a.py"]

    def test_progress(self, scheduler):
        fetcher = StubFetcher(missing={"/b.py"})
        files = FileLoader(fetcher, scheduler)
        assert files.progress == 0.0
        files.load("/a.py")
        files.load("/b.py")
        assert files.requested == 2
        assert files.processed == 1
        assert files.progress == pytest.approx(0.5)

    def test_clear_cache_allows_refetch(self, scheduler):
        fetcher = StubFetcher()
        files = FileLoader(fetcher, scheduler)
        files.load("/a.py")
        files.clear_cache()
        assert files.loaded_scripts() == []
        files.load("/a.py")
        assert fetcher.requests == ["/a.py", "/a.py"]

    def test_late_completion_after_clear_is_ignored(self, scheduler):
        fetcher = StubFetcher(manual=True)
        files = FileLoader(fetcher, scheduler)
        events = []
        files.load("/a.py", _recorder(events))
        files.clear_cache()
        fetcher.complete("/a.py")
        assert events == []

    def test_raising_fetcher_reports_not_found(self, scheduler, caplog):
        fetcher = StubFetcher(raising={"/a.py"})
        files = FileLoader(fetcher, scheduler)
        events = []
        with caplog.at_level(logging.ERROR):
            files.load("/a.py", _recorder(events))
        assert events == [("/a.py", LoadStatus.NOT_FOUND)]
        assert not files.in_flight("/a.py")
        assert "Fetcher raised while loading '/a.py'" in caplog.text
        assert "cannot reach /a.py" in caplog.text

        later = []
        files.load("/a.py", _recorder(later))
        assert later == [("/a.py", LoadStatus.NOT_FOUND)]
        assert files.progress == 0.0


class TestSequentialQueue:

    def test_pause_then_resume_keeps_order(self, scheduler):
        fetcher = StubFetcher()
        files = FileLoader(fetcher, scheduler)
        events = []
        for path in ("/p1.py", "/p2.py", "/p3.py"):
            files.enqueue(path, _recorder(events))
        files.pause()

        scheduler.advance(1.0)
        assert events == []
        assert fetcher.requests == []

        files.resume()
        scheduler.advance(1.0)
        assert [path for path, _ in events] == ["/p1.py", "/p2.py", "/p3.py"]

    def test_next_entry_waits_for_previous_completion(self, scheduler):
        fetcher = StubFetcher(manual=True)
        files = FileLoader(fetcher, scheduler)
        files.enqueue("/p1.py")
        files.enqueue("/p2.py")

        scheduler.advance(0.5)
        assert fetcher.requests == ["/p1.py"]

        fetcher.complete("/p1.py")
        scheduler.advance(0.5)
        assert fetcher.requests == ["/p1.py", "/p2.py"]

    def test_not_found_does_not_block_queue(self, scheduler):
        fetcher = StubFetcher(missing={"/p1.py"})
        files = FileLoader(fetcher, scheduler)
        events = []
        files.enqueue("/p1.py", _recorder(events))
        files.enqueue("/p2.py", _recorder(events))
        scheduler.advance(0.5)
        assert events == [("/p1.py", LoadStatus.NOT_FOUND), ("/p2.py", LoadStatus.LOADED)]

    def test_queue_callbacks_run_in_order(self, scheduler):
        fetcher = StubFetcher()
        files = FileLoader(fetcher, scheduler)
        order = []
        files.enqueue("/p1.py", lambda path, status: order.append(path))
        files.enqueue_callback(lambda: order.append("callback"))
        files.enqueue("/p2.py", lambda path, status: order.append(path))
        scheduler.advance(0.5)
        assert order == ["/p1.py", "callback", "/p2.py"]

    def test_forgotten_pause_is_force_resumed(self, caplog):
        scheduler = ManualScheduler()
        fetcher = StubFetcher()
        files = FileLoader(fetcher, scheduler, LoaderConfig(queue_pause_limit=3))
        events = []
        files.pause()
        files.enqueue("/p1.py", _recorder(events))

        with caplog.at_level(logging.WARNING):
            scheduler.advance(0.1)

        assert not files.paused
        assert events == [("/p1.py", LoadStatus.LOADED)]
        assert "not resumed -- restarting" in caplog.text

    def test_force_resume_after_limit_paused_ticks(self):
        scheduler = ManualScheduler()
        files = FileLoader(StubFetcher(), scheduler, LoaderConfig(queue_pause_limit=3))
        files.pause()
        files.enqueue("/p1.py")

        scheduler.advance(0.025)
        assert files.paused
        scheduler.advance(0.01)
        assert not files.paused

    def test_raising_fetcher_does_not_block_queue(self, scheduler):
        fetcher = StubFetcher(raising={"/p1.py"})
        files = FileLoader(fetcher, scheduler)
        events = []
        files.enqueue("/p1.py", _recorder(events))
        files.enqueue("/p2.py", _recorder(events))
        scheduler.advance(0.5)
        assert events == [("/p1.py", LoadStatus.NOT_FOUND), ("/p2.py", LoadStatus.LOADED)]

    def test_pump_stops_when_queue_drains(self, scheduler):
        files = FileLoader(StubFetcher(), scheduler)
        files.enqueue("/p1.py")
        scheduler.advance(0.5)
        assert files.queued == 0
        assert scheduler.pending == 0

    def test_close_cancels_pump(self, scheduler):
        fetcher = StubFetcher()
        files = FileLoader(fetcher, scheduler)
        files.enqueue("/p1.py")
        files.close()
        scheduler.advance(1.0)
        assert fetcher.requests == []
        assert files.queued == 1
