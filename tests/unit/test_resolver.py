"""
Tests for the DependencyResolver tick: ordering, cycle tie-break, re-entrancy.

All loaders here run on a ManualScheduler with the stock 0.1s tick.
"""

import logging

import pytest
from classlink.loader import Loader
from tests.test_utils import OrderRecorder, StubFetcher

TICK = 0.1


@pytest.fixture
def recorder():
    return OrderRecorder()


class TestOrdering:

    def test_dependency_resolves_first(self, loader, scheduler, recorder):
        loader.define({"class": "App.A", "requires": ["App.B"], "factory": recorder.factory("App.A")})
        assert not loader.is_resolved("App.A")

        assert loader.define({"class": "App.B", "factory": recorder.factory("App.B")})
        scheduler.advance(TICK)

        assert loader.is_resolved("App.A")
        assert recorder.order == ["App.B", "App.A"]

    def test_dependent_resolves_in_a_later_tick(self, scheduler, recorder):
        fetcher = StubFetcher(manual=True)
        loader = Loader(fetcher, scheduler=scheduler)
        loader.define({"class": "App.A", "requires": ["App.B"], "factory": recorder.factory("App.A")})
        loader.define({"class": "App.B", "includes": ["/lib.py"], "factory": recorder.factory("App.B")})

        scheduler.advance(5 * TICK)
        assert recorder.order == []

        fetcher.complete("/lib.py")
        assert loader.tick() == 1
        assert loader.is_resolved("App.B")
        assert not loader.is_resolved("App.A")

        assert loader.tick() == 1
        assert recorder.order == ["App.B", "App.A"]
        loader.close()

    def test_chain_resolves(self, loader, scheduler, recorder):
        loader.define({"class": "App.C", "requires": ["App.B"], "factory": recorder.factory("App.C")})
        loader.define({"class": "App.B", "requires": ["App.A"], "factory": recorder.factory("App.B")})
        loader.define({"class": "App.A", "factory": recorder.factory("App.A")})
        scheduler.advance(10 * TICK)
        assert recorder.order.index("App.A") < recorder.order.index("App.B") < recorder.order.index("App.C")
        assert loader.pending_classes() == []

    def test_timer_stops_when_nothing_pending(self, loader, scheduler):
        loader.define({"class": "App.A", "requires": ["App.B"]})
        loader.define({"class": "App.B"})
        scheduler.advance(TICK)
        assert not loader.resolver.running
        assert scheduler.pending == 0


class TestScenarios:

    def test_leaf_resolves_synchronously(self, loader):
        assert loader.define({"class": "App.Leaf"})
        assert loader.is_resolved("App.Leaf")

    def test_branch_waits_for_late_leaf(self, loader, scheduler, fetcher):
        assert not loader.define({"class": "App.Branch", "requires": ["App.Leaf"]})
        assert loader.pending_classes() == ["App.Branch"]
        assert not loader.registry.is_known("App.Leaf")
        assert fetcher.requests == ["/leaf.py"]

        assert loader.define({"class": "App.Leaf"})
        assert not loader.is_resolved("App.Branch")

        scheduler.advance(TICK)
        assert loader.is_resolved("App.Branch")


class TestCycles:

    def test_mutual_cycle_resolves(self, loader, scheduler):
        loader.define({"class": "App.A", "requires": ["App.B"]})
        loader.define({"class": "App.B", "requires": ["App.A"]})
        scheduler.advance(3 * TICK)
        assert loader.is_resolved("App.A")
        assert loader.is_resolved("App.B")

    def test_three_cycle_stays_pending(self, loader, scheduler):
        loader.define({"class": "App.A", "requires": ["App.B"]})
        loader.define({"class": "App.B", "requires": ["App.C"]})
        loader.define({"class": "App.C", "requires": ["App.A"]})
        scheduler.advance(50 * TICK)
        assert sorted(loader.pending_classes()) == ["App.A", "App.B", "App.C"]

    def test_back_edge_only_ignored_for_direct_pair(self, loader):
        loader.define({"class": "App.A", "requires": ["App.B", "App.C"]})
        loader.define({"class": "App.B", "requires": ["App.A"]})
        definition = loader.registry.get("App.A")
        assert loader.resolver.unresolved_classes(definition) == ("App.C",)


class TestReentrancy:

    def test_factory_submitting_pending_class_waits_for_next_tick(self, loader, scheduler, recorder):
        def make_a():
            recorder.order.append("App.A")
            loader.define({"class": "App.Late", "requires": ["App.B"], "factory": recorder.factory("App.Late")})
            return "a"

        loader.define({"class": "App.B", "factory": recorder.factory("App.B")})
        loader.define({"class": "App.A", "requires": ["App.B"], "factory": make_a})

        assert loader.tick() == 1
        assert loader.is_resolved("App.A")
        assert loader.pending_classes() == ["App.Late"]

        assert loader.tick() == 1
        assert recorder.order == ["App.B", "App.A", "App.Late"]

    def test_hook_submitting_ready_class(self, loader, scheduler):
        class Boot:
            @staticmethod
            def on_resolved():
                loader.define({"class": "App.Game", "value": "game"})

        loader.define({"class": "App.Boot", "requires": ["App.Core"], "value": Boot})
        loader.define({"class": "App.Core"})
        scheduler.advance(TICK)
        assert loader.is_resolved("App.Boot")
        assert loader.lookup("App.Game") == "game"

    def test_each_class_materialized_once(self, loader, scheduler):
        calls = []
        loader.define({"class": "App.A", "requires": ["App.B"], "factory": lambda: calls.append("A")})
        loader.define({"class": "App.B", "requires": ["App.A"], "factory": lambda: calls.append("B")})
        for _ in range(5):
            loader.tick()
        assert sorted(calls) == ["A", "B"]


def _boom():
    raise RuntimeError("boom")


class TestFailingInitializers:

    def test_raising_factory_does_not_stop_the_resolver(self, scheduler, caplog):
        fetcher = StubFetcher(manual=True)
        loader = Loader(fetcher, scheduler=scheduler)
        loader.define({"class": "App.Core"})
        loader.define({"class": "App.Bad", "requires": ["App.Core"], "factory": _boom})
        loader.define({"class": "App.Good", "includes": ["/lib.py"], "value": "good"})

        with caplog.at_level(logging.ERROR):
            scheduler.advance(TICK)
        assert "Failed to initialize App.Bad" in caplog.text
        assert loader.registry.is_pending("App.Bad")
        assert not loader.is_resolved("App.Bad")
        assert loader.resolver.running

        fetcher.complete("/lib.py")
        scheduler.advance(50 * TICK)
        assert loader.lookup("App.Good") == "good"
        assert loader.pending_classes() == ["App.Bad"]
        assert loader.stall_report().pending_names == ["App.Bad"]
        loader.close()

    def test_raising_hook_still_resolves_and_tick_continues(self, loader):
        class Noisy:
            @staticmethod
            def on_resolved():
                raise RuntimeError("hook failed")

        loader.define({"class": "App.Core"})
        loader.define({"class": "App.Noisy", "requires": ["App.Core"], "value": Noisy})
        loader.define({"class": "App.Quiet", "requires": ["App.Core"], "value": "quiet"})

        assert loader.tick() == 2
        assert loader.is_resolved("App.Noisy")
        assert loader.lookup("App.Quiet") == "quiet"
        assert not loader.resolver.running

    def test_raising_factory_on_submit_leaves_class_pending(self, loader, scheduler):
        with pytest.raises(RuntimeError, match="boom"):
            loader.define({"class": "App.Eager", "factory": _boom})
        assert loader.pending_classes() == ["App.Eager"]
        assert loader.resolver.running
        assert loader.watchdog.armed
