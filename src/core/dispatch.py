#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Request dispatchers for the view session.

Network calls are submitted with a pair of callbacks. Whatever thread runs the
call, its completion is queued and the callbacks only run from drain() on the
caller's thread, so session state has a single writer. No submitted call can
be cancelled.
"""
from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Optional

log = logging.getLogger(__name__)


@dataclass
class Completion:
    tag: str
    on_success: Callable[[Any], None]
    on_failure: Callable[[Exception], None]
    result: Any = None
    error: Optional[Exception] = None

    def deliver(self) -> None:
        if self.error is not None:
            self.on_failure(self.error)
        else:
            self.on_success(self.result)


class Dispatcher:
    """Base dispatcher: completion queue plus in-flight accounting."""

    def __init__(self) -> None:
        self._completions: "queue.Queue[Completion]" = queue.Queue()
        self._lock = threading.Lock()
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    @property
    def idle(self) -> bool:
        return self.in_flight == 0 and self._completions.empty()

    def submit(self, tag: str, call: Callable[[], Any], on_success: Callable[[Any], None], on_failure: Callable[[Exception], None]) -> None:
        raise NotImplementedError

    def _run(self, completion: Completion, call: Callable[[], Any]) -> None:
        try:
            completion.result = call()
        except Exception as e:
            completion.error = e
        # Queue before releasing the in-flight slot so idle never reads true in between
        self._completions.put(completion)
        with self._lock:
            self._in_flight -= 1

    def _begin(self) -> None:
        with self._lock:
            self._in_flight += 1

    def drain(self, block: bool = False, timeout: Optional[float] = None) -> int:
        """
        Deliver queued completions on the calling thread.

        Args:
            block: Wait for at least one completion when none is queued
            timeout: Maximum wait in seconds when blocking

        Returns:
            Number of completions delivered
        """
        delivered = 0
        if block and self._completions.empty():
            try:
                item = self._completions.get(timeout=timeout)
            except queue.Empty:
                return 0
            log.debug(f"Delivering completion: {item.tag}")
            item.deliver()
            delivered += 1
        while True:
            try:
                item = self._completions.get_nowait()
            except queue.Empty:
                break
            log.debug(f"Delivering completion: {item.tag}")
            item.deliver()
            delivered += 1
        return delivered

    def close(self) -> None:
        pass


class InlineDispatcher(Dispatcher):
    """Runs calls synchronously at submit time; delivery still waits for drain()."""

    def submit(self, tag, call, on_success, on_failure) -> None:
        self._begin()
        self._run(Completion(tag, on_success, on_failure), call)


class ThreadedDispatcher(Dispatcher):
    """Runs calls on a thread pool; completions may arrive in any order."""

    def __init__(self, max_workers: int = 4) -> None:
        super().__init__()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="tsview-io")

    def submit(self, tag, call, on_success, on_failure) -> None:
        self._begin()
        self._executor.submit(self._run, Completion(tag, on_success, on_failure), call)

    def close(self) -> None:
        self._executor.shutdown(wait=True)
