#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
View session

Single-actor owner of the view state for one user:
- dataset catalog and the open dataset
- column selection, query window, series colors
- descriptor reconciliation, data window and forecast overlay

Widget events (selection, drag, text, dataset choice) are applied directly.
Network completions are applied only from pump(), on the caller's thread.

Usage:
    session = ViewSession(client, ThreadedDispatcher())
    session.load_catalog(); session.run_until_idle()
    session.open_dataset("ds1")
    session.toggle_selection(["A"])
    session.run_until_idle()
    snap = session.snapshot()
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from ..shared.models import Dataset, ForecastResult, QueryDescriptor, TimeSeriesWindow, TupleKey
from ..shared.tsapi_client import TsApiClient
from .catalog import DatasetCatalog
from .colors import SeriesColorAssigner
from .columns import ColumnGroup, column_tree
from .dispatch import Dispatcher, InlineDispatcher
from .fetcher import DataFetcher
from .forecast import ForecastAugmentor, ValidationGap
from .metrics import SessionMetrics
from .opset_sync import OpsetSynchronizer
from .selection import SelectionMachine
from .window import DEFAULT_DEBOUNCE_MS, WindowController, WindowState


@dataclass(frozen=True)
class ViewSnapshot:
    """Everything the widgets need to render the current view"""
    datasets: Tuple[Dataset, ...]
    dataset: Optional[Dataset]
    column_tree: Tuple[ColumnGroup, ...]
    checked: FrozenSet[str]
    plot: Tuple[str, ...]
    colors: Tuple[Tuple[str, str], ...]
    window: WindowState
    loading: bool
    descriptor: Optional[QueryDescriptor]
    data: TimeSeriesWindow
    forecast: Optional[ForecastResult]
    display: TimeSeriesWindow
    sync_error: Optional[str] = None
    fetch_error: Optional[str] = None
    forecast_error: Optional[str] = None


class ViewSession:
    def __init__(
        self,
        client: TsApiClient,
        dispatcher: Optional[Dispatcher] = None,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        palette: Optional[Sequence[str]] = None,
        clamp_to_max_length: bool = False,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional[SessionMetrics] = None,
    ):
        """
        Args:
            client: Backend client
            dispatcher: Request runner; InlineDispatcher when omitted
            debounce_ms: Quiet period of the offset/limit text fields
            palette: Series colors, defaults to the built-in 8-color palette
            clamp_to_max_length: Clamp committed windows into [0, max_length]
            clock: Monotonic clock in seconds used for debouncing
            metrics: Session metrics (a private registry is created when omitted)
        """
        self.client = client
        self.dispatcher = dispatcher or InlineDispatcher()
        self.clock = clock
        self.metrics = metrics or SessionMetrics()
        self.logger = logging.getLogger(self.__class__.__name__)

        self.catalog = DatasetCatalog()
        self.selection = SelectionMachine()
        self.window = WindowController(debounce_ms=debounce_ms, clamp_to_max_length=clamp_to_max_length)
        self.colors = SeriesColorAssigner(palette)
        self.fetcher = DataFetcher(client, self.dispatcher, self.metrics)
        self.forecaster = ForecastAugmentor(client, self.dispatcher, self.metrics)
        self.sync = OpsetSynchronizer(
            client, self.dispatcher, self.catalog, self._on_confirmed, self.metrics, on_failed=self._on_sync_failed
        )

        self.current_id: Optional[str] = None
        self._last_key: Optional[TupleKey] = None
        self.catalog_error: Optional[str] = None

    # ---------- Catalog ----------
    def load_catalog(self) -> None:
        self.metrics.count(self.metrics.requests, 'list')
        self.dispatcher.submit('list_datasets', self.client.list_datasets, self._on_catalog, self._on_catalog_failed)

    def _on_catalog(self, datasets: List[Dataset]) -> None:
        self.catalog.set_all(datasets)
        self.catalog_error = None
        self.metrics.datasets.set(len(self.catalog))
        self.logger.info(f"Catalog loaded: {len(self.catalog)} datasets")
        if self.current_id is not None and self.current_id not in self.catalog:
            self.logger.warning(f"Open dataset {self.current_id} is gone from the catalog; closing it")
            self.close_dataset()

    def _on_catalog_failed(self, exc: Exception) -> None:
        self.logger.error(f"Failed to load dataset catalog: {exc}")
        self.metrics.count(self.metrics.failures, 'list')
        self.catalog_error = str(exc)

    def upload_dataset(self, name: str, file_path: str, upload_type: str = "import") -> Dataset:
        """Blocking upload; raises UploadError for the caller to show."""
        self.metrics.count(self.metrics.requests, 'upload')
        try:
            ds = self.catalog.upload(self.client, name, file_path, upload_type)
        except Exception:
            self.metrics.count(self.metrics.failures, 'upload')
            raise
        self.metrics.datasets.set(len(self.catalog))
        return ds

    def delete_dataset(self, dataset_id: str) -> None:
        """Delete remotely; the local entry is dropped only once the backend acknowledges."""
        self.metrics.count(self.metrics.requests, 'delete')
        self.dispatcher.submit(
            f"delete:{dataset_id}",
            lambda: self.client.delete_dataset(dataset_id),
            lambda _ack: self._on_deleted(dataset_id),
            lambda exc: self._on_delete_failed(dataset_id, exc),
        )

    def _on_deleted(self, dataset_id: str) -> None:
        self.catalog.remove(dataset_id)
        self.sync.forget(dataset_id)
        self.metrics.datasets.set(len(self.catalog))
        self.logger.info(f"Deleted dataset {dataset_id}")
        if dataset_id == self.current_id:
            self.close_dataset()

    def _on_delete_failed(self, dataset_id: str, exc: Exception) -> None:
        self.metrics.count(self.metrics.failures, 'delete')
        self.logger.error(f"Failed to delete dataset {dataset_id}: {exc}")

    # ---------- Dataset switching ----------
    @property
    def current(self) -> Optional[Dataset]:
        return self.catalog.get(self.current_id) if self.current_id is not None else None

    def open_dataset(self, dataset_id: str) -> Dataset:
        """
        Make a dataset the open one.

        Selection and window are seeded from its descriptor (or reset to the
        full row range), the display buffer and forecast are dropped, and the
        stored descriptor's window is fetched. Seeding never writes an opset.

        Raises:
            KeyError: Dataset is not in the catalog
        """
        ds = self.catalog.get(dataset_id)
        if ds is None:
            raise KeyError(f"dataset {dataset_id} is not in the catalog")
        if dataset_id == self.current_id:
            return ds

        self.current_id = dataset_id
        self.selection.reset(ds)
        desc = ds.descriptor
        if desc is not None:
            self.selection.seed(desc.plot)
        self.window.seed(ds)
        self.fetcher.reset(dataset_id)
        self.forecaster.clear(dataset_id)
        self._last_key = self._current_key()
        self.colors.observe(self.selection.state.plot)
        self.logger.info(
            f"Opened dataset {ds.name} ({ds.id}); window={self.window.window} "
            f"descriptor={desc.id if desc else None}"
        )
        if desc is not None and desc.is_confirmed:
            self.fetcher.fetch(dataset_id, desc)
        return ds

    def close_dataset(self) -> None:
        self.current_id = None
        self.selection.reset(None)
        self.window.seed(None)
        self.fetcher.reset(None)
        self.forecaster.clear(None)
        self._last_key = None

    # ---------- Widget events ----------
    def toggle_selection(self, checked: Iterable[str]) -> FrozenSet[str]:
        """Apply the full set of checked tree ids; returns the expanded selection."""
        if self.current_id is None:
            self.logger.warning("Selection change with no dataset open; ignoring")
            return frozenset()
        state, _changed = self.selection.apply(checked)
        self.colors.observe(state.plot)
        self._reconcile()
        return state.checked

    def drag(self, lower: int, upper: int) -> WindowState:
        return self.window.drag(lower, upper)

    def drag_complete(self, lower: int, upper: int) -> WindowState:
        if self.current_id is None:
            return self.window.state
        self.window.drag_complete(lower, upper)
        self._reconcile()
        return self.window.state

    def type_offset(self, text: str, now: Optional[float] = None) -> None:
        if self.current_id is not None:
            self.window.type_offset(text, self.clock() if now is None else now)

    def type_limit(self, text: str, now: Optional[float] = None) -> None:
        if self.current_id is not None:
            self.window.type_limit(text, self.clock() if now is None else now)

    def tick(self, now: Optional[float] = None) -> None:
        """Advance debounced text input; call periodically from the event loop."""
        if self.current_id is None:
            return
        if self.window.tick(self.clock() if now is None else now):
            self._reconcile()

    def request_forecast(self, series_id: str, horizon: int) -> None:
        ds = self.current
        if ds is None:
            raise ValidationGap("no dataset is open")
        self.forecaster.request(ds.id, ds.descriptor, series_id, horizon)

    # ---------- Reconciliation ----------
    def _current_key(self) -> TupleKey:
        offset, limit = self.window.window
        return TupleKey(plot=self.selection.state.plot, offset=offset, limit=limit)

    def _reconcile(self) -> None:
        key = self._current_key()
        if key == self._last_key:
            return
        self._last_key = key
        self.sync.sync(self.current_id, key)

    def _on_confirmed(self, dataset_id: str, descriptor: QueryDescriptor) -> None:
        if dataset_id != self.current_id:
            return
        key = self._current_key()
        if (set(descriptor.plot), descriptor.offset, descriptor.limit) != (set(key.plot), key.offset, key.limit):
            # Newest write differs from the view (dataset reopened while it was in flight)
            self.logger.info(f"Restoring view of {dataset_id} from confirmed opset {descriptor.id}")
            self.selection.seed(descriptor.plot)
            self.window.adopt(descriptor.offset, descriptor.limit)
            self.colors.observe(self.selection.state.plot)
        self._last_key = self._current_key()
        self.fetcher.fetch(dataset_id, descriptor)

    def _on_sync_failed(self, dataset_id: str) -> None:
        # Unsent view: repeating the same gesture must write again
        if dataset_id == self.current_id:
            self._last_key = None

    # ---------- Event loop ----------
    def pump(self, block: bool = False, timeout: Optional[float] = None) -> int:
        return self.dispatcher.drain(block=block, timeout=timeout)

    def run_until_idle(self, timeout: float = 30.0) -> bool:
        """Deliver completions until nothing is in flight; False on timeout."""
        deadline = time.monotonic() + timeout
        while not self.dispatcher.idle:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self.logger.warning(f"Still {self.dispatcher.in_flight} requests in flight after {timeout}s")
                return False
            self.pump(block=True, timeout=min(remaining, 0.25))
        return True

    def snapshot(self) -> ViewSnapshot:
        ds = self.current
        data = self.fetcher.window
        overlay = self.forecaster.overlay_points()
        plot = self.selection.state.plot
        return ViewSnapshot(
            datasets=tuple(self.catalog.datasets),
            dataset=ds,
            column_tree=tuple(column_tree(ds)),
            checked=self.selection.state.checked,
            plot=plot,
            colors=tuple(self.colors.colors_for(plot)),
            window=self.window.state,
            loading=self.fetcher.loading,
            descriptor=ds.descriptor if ds else None,
            data=data,
            forecast=self.forecaster.result,
            display=data.extended(overlay) if overlay else data,
            sync_error=self.sync.error(ds.id) if ds else None,
            fetch_error=self.fetcher.error,
            forecast_error=self.forecaster.error,
        )
