#!/usr/bin/env python3
"""
Test doubles: an in-memory backend client and a dispatcher whose requests
complete only when a test says so (and in the order it chooses).
"""
from dataclasses import replace
from typing import Dict, List, Optional

from src.core.dispatch import Completion, Dispatcher
from src.shared.models import (
    Dataset,
    ForecastPoint,
    ForecastResult,
    QueryDescriptor,
    TimeSeriesPoint,
    TimeSeriesWindow,
)


class FakeTsApiClient:
    """Stands in for TsApiClient; records every call."""

    def __init__(self, datasets: Optional[List[Dataset]] = None):
        self.datasets = list(datasets or [])
        self.calls: List[tuple] = []
        self.opsets: Dict[str, QueryDescriptor] = {}
        self.failures: Dict[str, Exception] = {}
        self._next_id = 1

    def _maybe_fail(self, kind: str) -> None:
        exc = self.failures.pop(kind, None)
        if exc is not None:
            raise exc

    def calls_of(self, kind: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == kind]

    def list_datasets(self):
        self.calls.append(("list",))
        self._maybe_fail("list")
        return list(self.datasets)

    def upload_file(self, name, file_path, upload_type="import"):
        self.calls.append(("upload", name, file_path, upload_type))
        self._maybe_fail("upload")
        ds = Dataset(id=f"up{len(self.datasets) + 1}", name=name, series_cols=("X",), max_length=10)
        self.datasets.append(ds)
        return ds

    def delete_dataset(self, dataset_id):
        self.calls.append(("delete", dataset_id))
        self._maybe_fail("delete")
        self.datasets = [d for d in self.datasets if d.id != dataset_id]
        return {"status": "ok"}

    def create_opset(self, descriptor):
        self.calls.append(("create", descriptor))
        self._maybe_fail("create")
        created = replace(descriptor, id=str(self._next_id))
        self._next_id += 1
        self.opsets[created.id] = created
        return created

    def update_opset(self, descriptor):
        self.calls.append(("update", descriptor))
        self._maybe_fail("update")
        self.opsets[descriptor.id] = descriptor
        return descriptor

    def fetch_window(self, opset_id):
        self.calls.append(("fetch", opset_id))
        self._maybe_fail("fetch")
        desc = self.opsets.get(opset_id)
        if desc is None:
            return TimeSeriesWindow(opset_id=opset_id)
        rows = min(desc.limit, 4)
        points = tuple(
            TimeSeriesPoint(
                timestamp=f"t{desc.offset + i}",
                values={s: float(desc.offset + i) for s in desc.plot},
            )
            for i in range(rows)
        )
        return TimeSeriesWindow(points=points, opset_id=opset_id)

    def forecast(self, opset_id, series_id, horizon):
        self.calls.append(("forecast", opset_id, series_id, horizon))
        self._maybe_fail("forecast")

        def band(base):
            return tuple(ForecastPoint(timestamp=None, value=base + i) for i in range(horizon))

        return ForecastResult(
            opset_id=opset_id,
            series_id=series_id,
            horizon=horizon,
            center=band(10.0),
            upper=band(12.0),
            lower=band(8.0),
        )

    def close(self):
        pass


class ManualDispatcher(Dispatcher):
    """Queues submitted calls; complete() runs one and delivers its completion."""

    def __init__(self):
        super().__init__()
        self.pending: List[tuple] = []

    def submit(self, tag, call, on_success, on_failure) -> None:
        self._begin()
        self.pending.append((Completion(tag, on_success, on_failure), call))

    @property
    def tags(self) -> List[str]:
        return [c.tag for c, _ in self.pending]

    def complete(self, prefix: Optional[str] = None, index: Optional[int] = None) -> int:
        if index is None:
            matches = [i for i, (c, _) in enumerate(self.pending) if prefix is None or c.tag.startswith(prefix)]
            if not matches:
                raise AssertionError(f"no pending request matching {prefix!r}: {self.tags}")
            index = matches[0]
        completion, call = self.pending.pop(index)
        self._run(completion, call)
        return self.drain()

    def complete_all(self) -> None:
        while self.pending:
            self.complete(index=0)


def make_dataset(**overrides) -> Dataset:
    fields = dict(
        id="ds1",
        name="electricity",
        description="hourly load",
        timestamp_cols=("T",),
        series_cols=("A", "B"),
        other_cols=(),
        max_length=1000,
        ops=(),
    )
    fields.update(overrides)
    return Dataset(**fields)
