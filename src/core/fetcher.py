#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Time-series data fetcher

Retrieves the data window named by a confirmed descriptor and replaces the
display buffer wholesale. Every fetch bumps a generation counter; a response
is applied only if it belongs to the current generation of the dataset that
is still open, so superseded fetches can finish without overwriting newer
state.
"""
from __future__ import annotations

import logging
from typing import Optional

from ..shared.models import QueryDescriptor, TimeSeriesWindow
from ..shared.tsapi_client import TsApiClient
from .dispatch import Dispatcher
from .metrics import SessionMetrics


class DataFetcher:
    def __init__(self, client: TsApiClient, dispatcher: Dispatcher, metrics: Optional[SessionMetrics] = None):
        self.client = client
        self.dispatcher = dispatcher
        self.metrics = metrics
        self.logger = logging.getLogger(self.__class__.__name__)
        self.dataset_id: Optional[str] = None
        self.descriptor: Optional[QueryDescriptor] = None
        self.window = TimeSeriesWindow()
        self.generation = 0
        self.loading = False
        self.error: Optional[str] = None

    def _set_loading(self, value: bool) -> None:
        self.loading = value
        if self.metrics:
            self.metrics.loading.set(1 if value else 0)

    def reset(self, dataset_id: Optional[str]) -> None:
        """Open another dataset: drop the buffer and orphan in-flight fetches."""
        self.generation += 1
        self.dataset_id = dataset_id
        self.descriptor = None
        self.window = TimeSeriesWindow()
        self.error = None
        self._set_loading(False)

    def fetch(self, dataset_id: str, descriptor: QueryDescriptor) -> bool:
        """
        Fetch the window for a confirmed descriptor of the open dataset.

        Returns:
            True when a request was issued
        """
        if dataset_id != self.dataset_id:
            self.logger.debug(f"Not fetching for {dataset_id}: dataset {self.dataset_id} is open")
            return False
        if descriptor is self.descriptor:
            return False
        self.descriptor = descriptor
        self.generation += 1
        gen = self.generation

        if not descriptor.plot:
            self.window = TimeSeriesWindow(opset_id=descriptor.id)
            self._set_loading(False)
            return False

        self._set_loading(True)
        if self.metrics:
            self.metrics.count(self.metrics.requests, 'fetch')
        self.logger.debug(
            f"Fetching window [{descriptor.offset}, {descriptor.offset + descriptor.limit}) "
            f"of opset {descriptor.id} (gen {gen})"
        )
        opset_id = descriptor.id
        self.dispatcher.submit(
            f"fetch:{dataset_id}:{gen}",
            lambda: self.client.fetch_window(opset_id),
            lambda window: self._on_success(dataset_id, gen, window),
            lambda exc: self._on_failure(dataset_id, gen, exc),
        )
        return True

    def _is_current(self, dataset_id: str, gen: int) -> bool:
        return dataset_id == self.dataset_id and gen == self.generation

    def _on_success(self, dataset_id: str, gen: int, window: TimeSeriesWindow) -> None:
        if not self._is_current(dataset_id, gen):
            self.logger.debug(f"Discarding stale window for {dataset_id} (gen {gen}, current {self.generation})")
            if self.metrics:
                self.metrics.count(self.metrics.stale, 'fetch')
            return
        self.window = window
        self.error = None
        self._set_loading(False)
        self.logger.info(f"Loaded {len(window)} points for opset {window.opset_id}")

    def _on_failure(self, dataset_id: str, gen: int, exc: Exception) -> None:
        self.logger.error(f"Window fetch failed for {dataset_id} (gen {gen}): {exc}")
        if self.metrics:
            self.metrics.count(self.metrics.failures, 'fetch')
        if self._is_current(dataset_id, gen):
            self.error = str(exc)
            self._set_loading(False)
