#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Static chart snapshot of a view

Writes a PNG of the display buffer: one line per plotted series in its
assigned color, and, when present, the forecast overlay appended after the
data window (dashed center line with a shaded upper/lower band).
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import matplotlib
matplotlib.use("Agg")  # non-interactive backend
import matplotlib.pyplot as plt
import numpy as np

from .session import ViewSnapshot


def _tick_positions(n: int, max_ticks: int = 8) -> np.ndarray:
    if n <= 0:
        return np.array([], dtype=int)
    step = max(1, int(np.ceil(n / float(max_ticks))))
    return np.arange(0, n, step)


def render_snapshot(
    snapshot: ViewSnapshot,
    out_path: str,
    *,
    dpi: int = 150,
    width: float = 12.0,
    height: float = 5.0,
    title: Optional[str] = None,
) -> str:
    """
    Save the snapshot's display buffer as a PNG.

    Args:
        snapshot: View snapshot from ViewSession.snapshot()
        out_path: Destination file (parent directories are created)
        dpi: Output resolution
        width: Figure width in inches
        height: Figure height in inches
        title: Figure title, defaults to the dataset name and window

    Returns:
        The written path as a string
    """
    data = snapshot.data
    n = len(data)
    x = np.arange(n)

    fig, ax = plt.subplots(figsize=(width, height))
    try:
        for series_id, color in snapshot.colors:
            y = data.values(series_id)
            if y.size and np.isfinite(y).any():
                ax.plot(x, y, color=color, linewidth=1.0, label=series_id)

        fc = snapshot.forecast
        if fc is not None and len(fc.center):
            fx = np.arange(n, n + len(fc.center))
            center = np.array([p.value for p in fc.center], dtype=float)
            upper = np.array([p.value for p in fc.upper], dtype=float)
            lower = np.array([p.value for p in fc.lower], dtype=float)
            color = dict(snapshot.colors).get(fc.series_id, "black")
            ax.plot(fx, center, color=color, linestyle="--", linewidth=1.2, label=f"{fc.series_id} forecast")
            ax.fill_between(fx, lower, upper, color=color, alpha=0.2, linewidth=0)

        stamps = snapshot.display.timestamps()
        ticks = _tick_positions(len(stamps))
        ax.set_xticks(ticks)
        ax.set_xticklabels([str(stamps[i]) for i in ticks], rotation=45, ha="right", fontsize=7)

        if title is None and snapshot.dataset is not None:
            w = snapshot.window
            title = f"{snapshot.dataset.name} [{w.lower}, {w.upper})"
        if title:
            ax.set_title(title, fontsize=10)
        handles, _labels = ax.get_legend_handles_labels()
        if handles:
            ax.legend(loc="upper left", fontsize=7)
        ax.grid(True, alpha=0.3)
        fig.tight_layout()

        out = Path(out_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(out, dpi=dpi)
    finally:
        plt.close(fig)
    return str(out)
