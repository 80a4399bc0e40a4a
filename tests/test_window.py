#!/usr/bin/env python3
"""
Unit tests for the query window controller

Tests cover:
- reduce() for range commits, offset/limit edits and local drags
- optional clamping into [0, max_length]
- Debouncer quiescence with an explicit clock
- WindowController text input commit rules
"""
import pytest

from src.core.window import (
    Debouncer,
    DragRange,
    SetLimit,
    SetOffset,
    SetRange,
    WindowController,
    WindowState,
    initial_window,
    parse_count,
    reduce,
)
from src.shared.models import QueryDescriptor
from tests.fakes import make_dataset


def _committed(offset, limit):
    return reduce(WindowState(), SetRange(offset, offset + limit))


class TestInitialWindow:
    """Test the initial window of a dataset"""

    def test_full_range_without_descriptor(self):
        """Test the full row range is used without a descriptor"""
        state = initial_window(make_dataset(max_length=1000))
        assert (state.offset, state.limit) == (0, 1000)
        assert state.bounds == (0, 1000)

    def test_seeded_from_descriptor(self):
        """Test the window is seeded from the descriptor"""
        desc = QueryDescriptor(id="5", dataset_id="ds1", plot=("A",), offset=100, limit=200)
        state = initial_window(make_dataset(ops=(desc,)))
        assert state.bounds == (100, 300)
        assert state.offset_text == "100"
        assert state.limit_text == "200"

    def test_no_dataset(self):
        """Test the empty window with no dataset"""
        assert initial_window(None) == WindowState()


class TestReduce:
    """Test the window reducer"""

    def test_range_commit_sets_offset_and_limit(self):
        """Test a range commit sets offset and limit"""
        state = reduce(WindowState(), SetRange(250, 400))
        assert (state.offset, state.limit) == (250, 150)
        assert state.bounds == (250, 400)
        assert (state.offset_text, state.limit_text) == ("250", "150")

    def test_range_bounds_are_ordered(self):
        """Test reversed range bounds are ordered"""
        state = reduce(WindowState(), SetRange(50, 10))
        assert (state.offset, state.limit) == (10, 40)

    def test_set_offset_keeps_limit(self):
        """Test a new offset keeps the limit"""
        state = reduce(_committed(0, 100), SetOffset(30))
        assert (state.offset, state.limit) == (30, 100)
        assert state.upper - state.lower == state.limit

    def test_set_limit_keeps_offset(self):
        """Test a new limit keeps the offset"""
        state = reduce(_committed(20, 100), SetLimit(5))
        assert state.bounds == (20, 25)

    def test_negative_values_rejected(self):
        """Test negative offsets and limits are rejected"""
        with pytest.raises(ValueError):
            reduce(WindowState(), SetOffset(-1))
        with pytest.raises(ValueError):
            reduce(WindowState(), SetLimit(-3))

    def test_drag_only_moves_bounds(self):
        """Test a drag moves the bounds only"""
        before = _committed(0, 100)
        state = reduce(before, DragRange(40, 10))
        assert state.bounds == (10, 40)
        assert (state.offset, state.limit) == (0, 100)

    def test_clamp_to_max_length(self):
        """Test clamping into the dataset length"""
        state = reduce(_committed(0, 50), SetOffset(90), max_length=100)
        assert (state.offset, state.limit) == (90, 10)

    def test_no_clamp_by_default(self):
        """Test windows are not clamped by default"""
        state = reduce(_committed(0, 50), SetOffset(5000))
        assert (state.offset, state.limit) == (5000, 50)

    def test_unknown_action(self):
        """Test an unknown action raises TypeError"""
        with pytest.raises(TypeError):
            reduce(WindowState(), object())


class TestDebouncer:
    """Test the quiet-period debouncer"""

    def test_releases_last_value_after_quiet_period(self):
        """Test the last value is released after the quiet period"""
        d = Debouncer(1.0)
        d.push("1", now=0.0)
        d.push("12", now=0.5)
        assert d.poll(1.4) is None
        assert d.poll(1.5) == "12"
        assert d.poll(5.0) is None
        assert not d.pending

    def test_cancel(self):
        """Test cancel drops the pending value"""
        d = Debouncer(1.0)
        d.push("7", now=0.0)
        d.cancel()
        assert d.poll(10.0) is None

    def test_negative_delay_rejected(self):
        """Test a negative delay is rejected"""
        with pytest.raises(ValueError):
            Debouncer(-0.1)


@pytest.mark.parametrize("text,expected", [("42", 42), (" 7 ", 7), ("0", 0), ("-1", None), ("abc", None), ("", None)])
def test_parse_count(text, expected):
    """Test parsing of typed counts"""
    assert parse_count(text) == expected


class TestWindowController:
    """Test the window controller"""

    def _controller(self, **kwargs):
        ctl = WindowController(**kwargs)
        ctl.seed(make_dataset(max_length=1000))
        return ctl

    def test_typed_offset_commits_after_debounce(self):
        """Test a typed offset commits after the quiet period"""
        ctl = self._controller()
        ctl.type_offset("1", now=0.0)
        ctl.type_offset("10", now=0.3)
        assert ctl.state.offset_text == "10"
        assert not ctl.tick(1.0)
        assert ctl.window == (0, 1000)
        assert ctl.tick(1.5)
        assert ctl.window == (10, 1000)
        assert ctl.state.bounds == (10, 1010)

    def test_invalid_text_is_not_committed(self):
        """Test invalid text is never committed"""
        ctl = self._controller()
        ctl.type_limit("-5", now=0.0)
        assert not ctl.tick(2.0)
        assert ctl.window == (0, 1000)
        assert not ctl.pending_input

    def test_seed_cancels_pending_input(self):
        """Test seeding cancels pending text"""
        ctl = self._controller()
        ctl.type_limit("3", now=0.0)
        assert ctl.pending_input
        ctl.seed(make_dataset(id="ds2", max_length=50))
        assert not ctl.pending_input
        assert not ctl.tick(5.0)
        assert ctl.window == (0, 50)

    def test_drag_then_complete(self):
        """Test a drag commits only when completed"""
        ctl = self._controller()
        ctl.drag(100, 200)
        assert ctl.window == (0, 1000)
        assert ctl.drag_complete(100, 200)
        assert ctl.window == (100, 100)

    def test_repeat_commit_reports_no_change(self):
        """Test committing the same window reports no change"""
        ctl = self._controller()
        assert not ctl.drag_complete(0, 1000)

    def test_clamping_enabled(self):
        """Test clamping when enabled"""
        ctl = self._controller(clamp_to_max_length=True)
        ctl.drag_complete(900, 1500)
        assert ctl.window == (900, 100)

    def test_drag_complete_drops_pending_text(self):
        """Test a completed drag is not overridden by text typed before it"""
        ctl = self._controller()
        ctl.type_offset("50", now=0.0)
        assert ctl.drag_complete(10, 110)
        assert not ctl.pending_input
        assert ctl.state.offset_text == "10"
        assert not ctl.tick(1.5)
        assert ctl.window == (10, 100)

    def test_committed_offset_keeps_pending_limit_text(self):
        """Test committing one field leaves the other field's typing in place"""
        ctl = self._controller()
        ctl.type_offset("5", now=0.0)
        ctl.type_limit("20", now=0.8)
        assert ctl.tick(1.0)
        assert ctl.window == (5, 1000)
        assert ctl.state.limit_text == "20"
        assert ctl.tick(1.8)
        assert ctl.window == (5, 20)

    def test_adopt_keeps_pending_text(self):
        """Test adopting a confirmed window shows it without cancelling typing"""
        ctl = self._controller()
        ctl.type_limit("7", now=0.0)
        state = ctl.adopt(100, 200)
        assert state.bounds == (100, 300)
        assert state.offset_text == "100"
        assert state.limit_text == "7"
        assert ctl.pending_input
