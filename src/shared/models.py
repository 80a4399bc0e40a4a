#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Domain Models for the tsview client
Immutable values exchanged with the time-series backend: datasets, query
descriptors (opsets), data windows and forecast overlays.

Transitions always build new instances (dataclasses.replace); nothing here is
mutated after construction.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

# Sentinel id carried by a descriptor the backend has not confirmed yet
UNSET_OPSET_ID = "0"


def _str_tuple(raw: Any, name: str) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, (str, bytes)) or not isinstance(raw, (list, tuple)):
        raise ValueError(f"{name} must be a list of column ids")
    return tuple(str(x) for x in raw)


@dataclass(frozen=True)
class QueryDescriptor:
    """
    Persisted query descriptor ("opset")

    Names which series to plot and which row window to retrieve for one dataset.
    """
    id: str
    dataset_id: str
    plot: Tuple[str, ...]
    offset: int
    limit: int

    def __post_init__(self):
        """Validate window bounds"""
        if self.offset < 0:
            raise ValueError("offset cannot be negative")
        if self.limit < 0:
            raise ValueError("limit cannot be negative")

    @property
    def is_confirmed(self) -> bool:
        return self.id != UNSET_OPSET_ID

    @property
    def tuple_key(self) -> "TupleKey":
        return TupleKey(plot=self.plot, offset=self.offset, limit=self.limit)

    def to_payload(self) -> Dict[str, Any]:
        """Request body for POST /opsets and PUT /opsets/{id}"""
        return {
            'id': self.id,
            'dataset_id': self.dataset_id,
            'plot': list(self.plot),
            'offset': self.offset,
            'limit': self.limit,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "QueryDescriptor":
        """
        Build a descriptor from a backend JSON object

        Raises:
            KeyError, ValueError, TypeError: If the object is not a valid opset
        """
        return cls(
            id=str(data['id']),
            dataset_id=str(data['dataset_id']),
            plot=_str_tuple(data.get('plot'), 'plot'),
            offset=int(data['offset']),
            limit=int(data['limit']),
        )


@dataclass(frozen=True)
class TupleKey:
    """The canonical (plot, offset, limit) view tuple"""
    plot: Tuple[str, ...]
    offset: int
    limit: int


@dataclass(frozen=True)
class Dataset:
    """
    Imported tabular time-series source

    Only the first entry of `ops` is tracked by a view session.
    """
    id: str
    name: str
    description: str = ""
    timestamp_cols: Tuple[str, ...] = ()
    series_cols: Tuple[str, ...] = ()
    other_cols: Tuple[str, ...] = ()
    max_length: int = 0
    ops: Tuple[QueryDescriptor, ...] = ()

    def __post_init__(self):
        """Validate identity and row bound"""
        if not self.id or not str(self.id).strip():
            raise ValueError("dataset id cannot be empty")
        if self.max_length < 0:
            raise ValueError("max_length cannot be negative")

    @property
    def descriptor(self) -> Optional[QueryDescriptor]:
        return self.ops[0] if self.ops else None

    def with_descriptor(self, descriptor: QueryDescriptor) -> "Dataset":
        """Return a copy whose tracked descriptor is `descriptor` (other ops kept)."""
        return replace(self, ops=(descriptor,) + tuple(self.ops[1:]))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Dataset":
        """
        Build a dataset from a backend JSON object

        Raises:
            KeyError, ValueError, TypeError, AttributeError: If the object is not a valid dataset
        """
        ops_raw = data.get('ops') or []
        if not isinstance(ops_raw, list):
            raise ValueError("ops must be a list")
        return cls(
            id=str(data['id']),
            name=str(data.get('name') or data['id']),
            description=str(data.get('description') or ""),
            timestamp_cols=_str_tuple(data.get('timestamp_cols'), 'timestamp_cols'),
            series_cols=_str_tuple(data.get('series_cols'), 'series_cols'),
            other_cols=_str_tuple(data.get('other_cols'), 'other_cols'),
            max_length=int(data.get('max_length') or 0),
            ops=tuple(QueryDescriptor.from_dict(op) for op in ops_raw),
        )


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One row of a data window: timestamp key and series id -> value"""
    timestamp: Any
    values: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TimeSeriesPoint":
        raw_values = data.get('data') or {}
        if not isinstance(raw_values, Mapping):
            raise ValueError("point 'data' must be a mapping")
        values: Dict[str, float] = {}
        for key, val in raw_values.items():
            values[str(key)] = float('nan') if val is None else float(val)
        return cls(timestamp=data.get('timestamp'), values=values)


@dataclass(frozen=True)
class TimeSeriesWindow:
    """Ordered data window retrieved for a descriptor"""
    points: Tuple[TimeSeriesPoint, ...] = ()
    opset_id: Optional[str] = None

    def __len__(self) -> int:
        return len(self.points)

    def timestamps(self) -> List[Any]:
        return [p.timestamp for p in self.points]

    def series_ids(self) -> List[str]:
        """Series ids in order of first appearance across the window"""
        seen: Dict[str, None] = {}
        for p in self.points:
            for key in p.values:
                seen.setdefault(key, None)
        return list(seen)

    def values(self, series_id: str) -> np.ndarray:
        """Values of one series as float array, NaN where a point lacks it"""
        return np.array([p.values.get(series_id, np.nan) for p in self.points], dtype=float)

    def extended(self, extra: Sequence[TimeSeriesPoint]) -> "TimeSeriesWindow":
        return TimeSeriesWindow(points=tuple(self.points) + tuple(extra), opset_id=self.opset_id)

    @classmethod
    def from_list(cls, data: Any, opset_id: Optional[str] = None) -> "TimeSeriesWindow":
        if not isinstance(data, list):
            raise ValueError("window data must be a list of points")
        return cls(points=tuple(TimeSeriesPoint.from_dict(p) for p in data), opset_id=opset_id)


@dataclass(frozen=True)
class ForecastPoint:
    timestamp: Any
    value: float

    @classmethod
    def parse(cls, raw: Any) -> "ForecastPoint":
        # Backends return either bare numbers or {"timestamp", "value"} objects
        if isinstance(raw, Mapping):
            return cls(timestamp=raw.get('timestamp'), value=float(raw['value']))
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise ValueError(f"forecast value must be numeric, got {type(raw).__name__}")
        return cls(timestamp=None, value=float(raw))


@dataclass(frozen=True)
class ForecastResult:
    """
    Forecast overlay for exactly one series

    Never persisted; the view session drops it when the open dataset changes.
    """
    opset_id: str
    series_id: str
    horizon: int
    center: Tuple[ForecastPoint, ...]
    upper: Tuple[ForecastPoint, ...]
    lower: Tuple[ForecastPoint, ...]

    def __post_init__(self):
        """Validate that the three bands are parallel"""
        if not (len(self.center) == len(self.upper) == len(self.lower)):
            raise ValueError("forecast bands must have equal length")

    @property
    def pseudo_series(self) -> Tuple[str, str, str]:
        return (f"{self.series_id}:forecast", f"{self.series_id}:upper", f"{self.series_id}:lower")

    def as_points(self) -> List[TimeSeriesPoint]:
        """One display point per forecast step carrying the three pseudo-series"""
        name_c, name_u, name_l = self.pseudo_series
        points = []
        for step, (c, u, l) in enumerate(zip(self.center, self.upper, self.lower), start=1):
            ts = c.timestamp if c.timestamp is not None else f"+{step}"
            points.append(TimeSeriesPoint(timestamp=ts, values={name_c: c.value, name_u: u.value, name_l: l.value}))
        return points
