#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Series color assignment.

A series gets a palette slot the first time it shows up in a plot list and
keeps it for the rest of the session, across deselect/reselect cycles.
Slots wrap modulo the palette size, so more series than colors alias.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from matplotlib import colors as mpl_colors

DEFAULT_PALETTE: Tuple[str, ...] = ("red", "blue", "gray", "orange", "green", "purple", "yellow", "black")


def validate_palette(palette: Sequence[str]) -> Tuple[str, ...]:
    """Return the palette as a tuple; raise ValueError on empty or unknown colors."""
    entries = tuple(str(c).strip() for c in palette)
    if not entries:
        raise ValueError("palette must contain at least one color")
    bad = [c for c in entries if not mpl_colors.is_color_like(c)]
    if bad:
        raise ValueError(f"palette contains invalid colors: {bad}")
    return entries


class SeriesColorAssigner:
    def __init__(self, palette: Optional[Sequence[str]] = None) -> None:
        self.palette = validate_palette(palette if palette is not None else DEFAULT_PALETTE)
        self._slots: Dict[str, int] = {}

    def observe(self, plot: Iterable[str]) -> None:
        for series_id in plot:
            if series_id not in self._slots:
                self._slots[series_id] = len(self._slots)

    def slot(self, series_id: str) -> Optional[int]:
        idx = self._slots.get(series_id)
        return None if idx is None else idx % len(self.palette)

    def color(self, series_id: str) -> Optional[str]:
        idx = self.slot(series_id)
        return None if idx is None else self.palette[idx]

    def colors_for(self, plot: Iterable[str]) -> List[Tuple[str, str]]:
        """(series id, color) pairs for a plot list, assigning new ids on the way."""
        ids = list(plot)
        self.observe(ids)
        return [(s, self.palette[self._slots[s] % len(self.palette)]) for s in ids]

    def as_hex(self, series_id: str) -> Optional[str]:
        name = self.color(series_id)
        return None if name is None else mpl_colors.to_hex(name)
