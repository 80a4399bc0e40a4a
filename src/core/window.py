#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Query window controller

Reconciles the three window input channels into one (offset, limit) pair:
- range drag: moves the displayed [lower, upper] bounds only
- drag completion: commits offset = lower, limit = upper - lower
- offset/limit text fields: debounced, the value present at the end of the
  quiet period commits

All commits go through a single reducer over typed actions so the window is
always consistent: after any commit upper - lower == limit.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Generic, Optional, Tuple, TypeVar, Union

from ..shared.models import Dataset

log = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 1000

T = TypeVar("T")


@dataclass(frozen=True)
class WindowState:
    offset: int = 0
    limit: int = 0
    lower: int = 0
    upper: int = 0
    offset_text: str = "0"
    limit_text: str = "0"

    @property
    def bounds(self) -> Tuple[int, int]:
        return (self.lower, self.upper)


@dataclass(frozen=True)
class SetOffset:
    offset: int


@dataclass(frozen=True)
class SetLimit:
    limit: int


@dataclass(frozen=True)
class SetRange:
    lower: int
    upper: int


@dataclass(frozen=True)
class DragRange:
    """Local-only bounds update while the range handle is moving."""
    lower: int
    upper: int


WindowAction = Union[SetOffset, SetLimit, SetRange, DragRange]


def _clamp(offset: int, limit: int, max_length: Optional[int]) -> Tuple[int, int]:
    if max_length is None:
        return offset, limit
    offset = min(max(0, offset), max_length)
    limit = min(max(0, limit), max_length - offset)
    return offset, limit


def _committed(state: WindowState, offset: int, limit: int) -> WindowState:
    return replace(
        state,
        offset=offset,
        limit=limit,
        lower=offset,
        upper=offset + limit,
        offset_text=str(offset),
        limit_text=str(limit),
    )


def reduce(state: WindowState, action: WindowAction, max_length: Optional[int] = None) -> WindowState:
    """
    Apply one window action.

    Args:
        state: Current window state
        action: SetOffset | SetLimit | SetRange | DragRange
        max_length: When given, committed windows are clamped into [0, max_length]

    Returns:
        New WindowState (input is never modified)
    """
    if isinstance(action, DragRange):
        lo, hi = sorted((int(action.lower), int(action.upper)))
        return replace(state, lower=lo, upper=hi)
    if isinstance(action, SetRange):
        lo, hi = sorted((int(action.lower), int(action.upper)))
        start = max(0, lo)
        offset, limit = _clamp(start, max(0, hi - start), max_length)
        return _committed(state, offset, limit)
    if isinstance(action, SetOffset):
        if action.offset < 0:
            raise ValueError("offset cannot be negative")
        offset, limit = _clamp(action.offset, state.limit, max_length)
        return _committed(state, offset, limit)
    if isinstance(action, SetLimit):
        if action.limit < 0:
            raise ValueError("limit cannot be negative")
        offset, limit = _clamp(state.offset, action.limit, max_length)
        return _committed(state, offset, limit)
    raise TypeError(f"Unknown window action: {action!r}")


def initial_window(ds: Optional[Dataset]) -> WindowState:
    """Window seeded from the dataset's descriptor, else the full [0, max_length] range."""
    if ds is None:
        return WindowState()
    desc = ds.descriptor
    if desc is not None:
        return _committed(WindowState(), desc.offset, desc.limit)
    return _committed(WindowState(), 0, ds.max_length)


class Debouncer(Generic[T]):
    """
    Quiescence debouncer driven by explicit clock readings.

    push() records the latest value; poll() releases it once no push happened
    for `delay_s` seconds. Intermediate values are dropped.
    """

    def __init__(self, delay_s: float) -> None:
        if delay_s < 0:
            raise ValueError("debounce delay cannot be negative")
        self.delay_s = delay_s
        self._value: Optional[T] = None
        self._last_push: Optional[float] = None

    @property
    def pending(self) -> bool:
        return self._last_push is not None

    @property
    def value(self) -> Optional[T]:
        """Latest pushed value still waiting for its quiet period"""
        return self._value

    def push(self, value: T, now: float) -> None:
        self._value = value
        self._last_push = now

    def poll(self, now: float) -> Optional[T]:
        if self._last_push is None or now - self._last_push < self.delay_s:
            return None
        value = self._value
        self.cancel()
        return value

    def cancel(self) -> None:
        self._value = None
        self._last_push = None


def parse_count(text: str) -> Optional[int]:
    """Non-negative integer typed in a window field, or None."""
    try:
        value = int(str(text).strip())
    except ValueError:
        return None
    return value if value >= 0 else None


class WindowController:
    """Owns the window state of the open dataset and its two text debouncers."""

    def __init__(self, debounce_ms: int = DEFAULT_DEBOUNCE_MS, clamp_to_max_length: bool = False) -> None:
        self.state = WindowState()
        self.clamp_to_max_length = clamp_to_max_length
        self._max_length: Optional[int] = None
        self._offset_input: Debouncer[str] = Debouncer(debounce_ms / 1000.0)
        self._limit_input: Debouncer[str] = Debouncer(debounce_ms / 1000.0)

    def seed(self, ds: Optional[Dataset]) -> WindowState:
        self._offset_input.cancel()
        self._limit_input.cancel()
        self._max_length = ds.max_length if ds is not None else None
        self.state = initial_window(ds)
        return self.state

    @property
    def window(self) -> Tuple[int, int]:
        return (self.state.offset, self.state.limit)

    @property
    def pending_input(self) -> bool:
        return self._offset_input.pending or self._limit_input.pending

    def dispatch(self, action: WindowAction) -> bool:
        """
        Reduce one action; returns True when (offset, limit) changed.

        A committed range overwrites both text fields, so any text still
        waiting for its quiet period is dropped. A committed offset or limit
        leaves the other field's pending text in place.
        """
        before = self.window
        bound = self._max_length if self.clamp_to_max_length else None
        self.state = reduce(self.state, action, bound)
        if isinstance(action, SetRange):
            self._offset_input.cancel()
            self._limit_input.cancel()
        elif isinstance(action, (SetOffset, SetLimit)):
            self._keep_pending_text()
        return self.window != before

    def _keep_pending_text(self) -> None:
        if self._offset_input.pending:
            self.state = replace(self.state, offset_text=self._offset_input.value)
        if self._limit_input.pending:
            self.state = replace(self.state, limit_text=self._limit_input.value)

    def adopt(self, offset: int, limit: int) -> WindowState:
        """Show a window confirmed elsewhere without dropping text being typed."""
        self.state = _committed(self.state, offset, limit)
        self._keep_pending_text()
        return self.state

    def drag(self, lower: int, upper: int) -> WindowState:
        self.dispatch(DragRange(lower, upper))
        return self.state

    def drag_complete(self, lower: int, upper: int) -> bool:
        return self.dispatch(SetRange(lower, upper))

    def type_offset(self, text: str, now: float) -> None:
        self.state = replace(self.state, offset_text=text)
        self._offset_input.push(text, now)

    def type_limit(self, text: str, now: float) -> None:
        self.state = replace(self.state, limit_text=text)
        self._limit_input.push(text, now)

    def tick(self, now: float) -> bool:
        """Commit any text input whose quiet period has elapsed."""
        changed = False
        changed |= self._commit_text(self._offset_input.poll(now), SetOffset, "offset")
        changed |= self._commit_text(self._limit_input.poll(now), SetLimit, "limit")
        return changed

    def _commit_text(self, text: Optional[str], action: Callable[[int], WindowAction], field_name: str) -> bool:
        if text is None:
            return False
        value = parse_count(text)
        if value is None:
            log.warning(f"Ignoring {field_name} input {text!r}: not a non-negative integer")
            return False
        return self.dispatch(action(value))
