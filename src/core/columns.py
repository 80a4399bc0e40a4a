#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Column classification for datasets.

Every column id of a dataset falls into one category (Time, Series, Other).
Category ids double as the group nodes of the column tree shown to the user.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from ..shared.models import Dataset

CAT_TIME = "ts_col_time"
CAT_SERIES = "ts_col_series"
CAT_OTHER = "ts_col_other"
CATEGORY_IDS = (CAT_TIME, CAT_SERIES, CAT_OTHER)


class Category(Enum):
    TIME = CAT_TIME
    SERIES = CAT_SERIES
    OTHER = CAT_OTHER
    UNKNOWN = "unknown"


_LABELS = {
    Category.TIME: "Time Columns",
    Category.SERIES: "Numeric Columns",
    Category.OTHER: "Other Columns",
}


@dataclass(frozen=True)
class ColumnGroup:
    category_id: str
    label: str
    members: Tuple[str, ...]


def classify(ds: Optional[Dataset], item_id: str) -> Category:
    """Category of a column id; Series wins when a column is listed twice."""
    if ds is None:
        return Category.UNKNOWN
    if item_id in ds.series_cols:
        return Category.SERIES
    if item_id in ds.timestamp_cols:
        return Category.TIME
    if item_id in ds.other_cols:
        return Category.OTHER
    return Category.UNKNOWN


def is_plottable(ds: Optional[Dataset], item_id: str) -> bool:
    return classify(ds, item_id) is Category.SERIES


def is_category_id(item_id: str) -> bool:
    return item_id in CATEGORY_IDS


def members(ds: Optional[Dataset], category_id: str) -> Tuple[str, ...]:
    """Leaf column ids grouped under a category node."""
    if ds is None:
        return ()
    if category_id == CAT_TIME:
        return tuple(ds.timestamp_cols)
    if category_id == CAT_SERIES:
        return tuple(ds.series_cols)
    if category_id == CAT_OTHER:
        return tuple(ds.other_cols)
    return ()


def column_tree(ds: Optional[Dataset]) -> List[ColumnGroup]:
    """
    Grouped view of a dataset's columns.

    Time and Series groups are always present for an open dataset; the Other
    group only when the dataset has such columns.
    """
    if ds is None:
        return []
    groups = [
        ColumnGroup(CAT_TIME, _LABELS[Category.TIME], tuple(ds.timestamp_cols)),
        ColumnGroup(CAT_SERIES, _LABELS[Category.SERIES], tuple(ds.series_cols)),
    ]
    if ds.other_cols:
        groups.append(ColumnGroup(CAT_OTHER, _LABELS[Category.OTHER], tuple(ds.other_cols)))
    return groups
