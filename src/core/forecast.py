#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Forecast augmentor

On request, asks the backend to forecast one series of the confirmed
descriptor and keeps the result as an overlay: center/upper/lower bands shown
as three pseudo-series appended after the data window. The overlay lives
outside the descriptor, is never persisted and is dropped on dataset switch.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from ..shared.models import ForecastResult, QueryDescriptor, TimeSeriesPoint
from ..shared.tsapi_client import TsApiClient
from .dispatch import Dispatcher
from .metrics import SessionMetrics


class ValidationGap(Exception):
    """Forecast requested without the inputs it needs"""
    pass


class ForecastAugmentor:
    def __init__(self, client: TsApiClient, dispatcher: Dispatcher, metrics: Optional[SessionMetrics] = None):
        self.client = client
        self.dispatcher = dispatcher
        self.metrics = metrics
        self.logger = logging.getLogger(self.__class__.__name__)
        self.dataset_id: Optional[str] = None
        self.result: Optional[ForecastResult] = None
        self.generation = 0
        self.error: Optional[str] = None

    def clear(self, dataset_id: Optional[str] = None) -> None:
        self.generation += 1
        self.dataset_id = dataset_id
        self.result = None
        self.error = None

    def request(self, dataset_id: str, descriptor: Optional[QueryDescriptor], series_id: str, horizon: int) -> None:
        """
        Issue a forecast for one series of the dataset's descriptor.

        Raises:
            ValidationGap: No confirmed descriptor, empty plot list, series
                outside the plot list, or horizon < 1
        """
        if descriptor is None or not descriptor.is_confirmed:
            raise ValidationGap("no confirmed query descriptor to forecast from")
        if not descriptor.plot:
            raise ValidationGap("no plottable series selected")
        if series_id not in descriptor.plot:
            raise ValidationGap(f"series {series_id!r} is not in the plot list {list(descriptor.plot)}")
        if horizon < 1:
            raise ValidationGap(f"horizon must be >= 1, got {horizon}")

        self.generation += 1
        gen = self.generation
        self.dataset_id = dataset_id
        opset_id = descriptor.id
        if self.metrics:
            self.metrics.count(self.metrics.requests, 'forecast')
        self.logger.info(f"Forecasting {series_id} of opset {opset_id}, horizon {horizon}")
        self.dispatcher.submit(
            f"forecast:{dataset_id}:{gen}",
            lambda: self.client.forecast(opset_id, series_id, horizon),
            lambda result: self._on_success(dataset_id, gen, result),
            lambda exc: self._on_failure(dataset_id, gen, exc),
        )

    def _on_success(self, dataset_id: str, gen: int, result: ForecastResult) -> None:
        if gen != self.generation or dataset_id != self.dataset_id:
            self.logger.debug(f"Discarding forecast for {dataset_id} issued before the last reset")
            if self.metrics:
                self.metrics.count(self.metrics.stale, 'forecast')
            return
        self.result = result
        self.error = None

    def _on_failure(self, dataset_id: str, gen: int, exc: Exception) -> None:
        self.logger.error(f"Forecast failed for {dataset_id}: {exc}")
        if self.metrics:
            self.metrics.count(self.metrics.failures, 'forecast')
        if gen == self.generation:
            self.error = str(exc)

    def overlay_points(self) -> List[TimeSeriesPoint]:
        return self.result.as_points() if self.result is not None else []
