#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Selection state machine for the column tree.

The tree widget reports the full set of checked ids after each interaction.
Two pure steps turn it into view state:

1. expand: every checked category id pulls in all of its member leaves
   (monotonic and idempotent: expand(S) >= S, expand(expand(S)) == expand(S)).
2. plottable: when the Series category is checked, all series columns;
   otherwise the checked ids classified as Series. Sorted ascending.

Time/Other categories only widen the displayed selection.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional, Tuple

from ..shared.models import Dataset
from .columns import CAT_SERIES, CATEGORY_IDS, is_plottable, members

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionState:
    checked: FrozenSet[str] = frozenset()
    plot: Tuple[str, ...] = ()


def expand(ds: Optional[Dataset], checked: Iterable[str]) -> FrozenSet[str]:
    base = set(checked)
    out = set(base)
    for cat_id in CATEGORY_IDS:
        if cat_id in base:
            out.update(members(ds, cat_id))
    return frozenset(out)


def plottable(ds: Optional[Dataset], checked: Iterable[str]) -> Tuple[str, ...]:
    ids = set(checked)
    if ds is None:
        return ()
    if CAT_SERIES in ids:
        return tuple(sorted(set(ds.series_cols)))
    return tuple(sorted(i for i in ids if is_plottable(ds, i)))


def reduce_selection(ds: Optional[Dataset], checked: Iterable[str]) -> SelectionState:
    raw = frozenset(checked)
    return SelectionState(checked=expand(ds, raw), plot=plottable(ds, raw))


class SelectionMachine:
    """Holds the selection of the open dataset and reports plot-list changes."""

    def __init__(self) -> None:
        self.dataset: Optional[Dataset] = None
        self.state = SelectionState()

    def reset(self, ds: Optional[Dataset]) -> None:
        self.dataset = ds
        self.state = SelectionState()

    def seed(self, plot: Iterable[str]) -> SelectionState:
        """Restore the selection stored in a descriptor; not a user change."""
        known = [p for p in plot if is_plottable(self.dataset, p)]
        dropped = set(plot) - set(known)
        if dropped:
            log.warning(f"Stored plot references unknown series {sorted(dropped)}; ignoring them")
        self.state = reduce_selection(self.dataset, known)
        return self.state

    def apply(self, checked: Iterable[str]) -> Tuple[SelectionState, bool]:
        """
        Apply one interaction.

        Returns:
            (new state, whether the plot list changed)
        """
        new_state = reduce_selection(self.dataset, checked)
        changed = new_state.plot != self.state.plot
        self.state = new_state
        return new_state, changed
