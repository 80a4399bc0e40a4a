#!/usr/bin/env python3
"""
Tests for request dispatchers, session metrics and the chart snapshot

Tests cover:
- completions only run from drain(), on the calling thread
- ThreadedDispatcher with a real session end to end
- Prometheus text rendering
- PNG output of a view with a forecast overlay
"""
import threading

from src.core.chart import render_snapshot
from src.core.dispatch import InlineDispatcher, ThreadedDispatcher
from src.core.metrics import SessionMetrics
from src.core.session import ViewSession
from tests.fakes import FakeTsApiClient, make_dataset


class TestDispatchers:
    """Test completion delivery of the dispatchers"""

    def test_inline_defers_delivery_until_drain(self):
        """Test inline requests complete only when drained"""
        d = InlineDispatcher()
        seen = []
        d.submit("t", lambda: 41 + 1, seen.append, seen.append)
        assert seen == []
        assert d.in_flight == 0
        assert not d.idle
        assert d.drain() == 1
        assert seen == [42]
        assert d.idle

    def test_failure_routes_to_on_failure(self):
        """Test a raising call is delivered to on_failure"""
        d = InlineDispatcher()
        errors = []

        def boom():
            raise RuntimeError("nope")

        d.submit("t", boom, lambda r: None, errors.append)
        d.drain()
        assert isinstance(errors[0], RuntimeError)

    def test_threaded_delivers_on_caller_thread(self):
        """Test pooled requests are delivered on the draining thread"""
        d = ThreadedDispatcher(max_workers=2)
        threads = []
        try:
            for i in range(3):
                d.submit(f"t{i}", lambda i=i: i, lambda r: threads.append(threading.current_thread()), lambda e: None)
            delivered = 0
            while delivered < 3:
                delivered += d.drain(block=True, timeout=5.0)
        finally:
            d.close()
        assert len(threads) == 3
        assert all(t is threading.current_thread() for t in threads)


def test_session_with_thread_pool():
    """Test a session end to end on the thread pool dispatcher"""
    client = FakeTsApiClient([make_dataset()])
    dispatcher = ThreadedDispatcher(max_workers=2)
    try:
        session = ViewSession(client, dispatcher)
        session.load_catalog()
        assert session.run_until_idle(5.0)
        session.open_dataset("ds1")
        session.toggle_selection(["A", "B"])
        assert session.run_until_idle(5.0)
    finally:
        dispatcher.close()
    snap = session.snapshot()
    assert snap.descriptor.plot == ("A", "B")
    assert len(snap.data) == 4


def test_metrics_render():
    """Test Prometheus text rendering of session metrics"""
    m = SessionMetrics()
    m.count(m.requests, "create")
    m.loading.set(1)
    text = m.render()
    assert 'tsview_requests_total{kind="create"} 1.0' in text
    assert "tsview_loading 1.0" in text
    assert m.value("requests_total", "update") == 0.0


def test_render_snapshot_with_forecast(tmp_path):
    """Test a PNG is written for a view with a forecast overlay"""
    client = FakeTsApiClient([make_dataset()])
    session = ViewSession(client)
    session.load_catalog()
    session.run_until_idle(1.0)
    session.open_dataset("ds1")
    session.toggle_selection(["A"])
    session.run_until_idle(1.0)
    session.request_forecast("A", 3)
    session.run_until_idle(1.0)

    out = render_snapshot(session.snapshot(), str(tmp_path / "charts" / "view.png"), dpi=50, width=4, height=3)
    data = (tmp_path / "charts" / "view.png").read_bytes()
    assert out.endswith("view.png")
    assert data[:8] == b"\x89PNG\r\n\x1a\n"


def test_render_empty_snapshot(tmp_path):
    """Test a PNG is written with no dataset open"""
    session = ViewSession(FakeTsApiClient())
    out = render_snapshot(session.snapshot(), str(tmp_path / "empty.png"), dpi=50, width=3, height=2, title="empty")
    assert (tmp_path / "empty.png").stat().st_size > 0
    assert out.endswith("empty.png")


def test_render_without_series_lines_has_no_legend(tmp_path, recwarn):
    """Test a view with nothing drawn is rendered without a legend warning"""
    client = FakeTsApiClient([make_dataset()])
    session = ViewSession(client)
    session.load_catalog()
    session.run_until_idle(1.0)
    session.open_dataset("ds1")
    session.toggle_selection(["A"])
    session.drag_complete(0, 0)
    session.run_until_idle(1.0)
    assert len(session.snapshot().data) == 0

    render_snapshot(session.snapshot(), str(tmp_path / "blank.png"), dpi=50, width=4, height=3)
    assert (tmp_path / "blank.png").stat().st_size > 0
    assert not [w for w in recwarn if "No artists" in str(w.message)]
