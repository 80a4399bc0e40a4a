#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
tsview command-line runner.
- Loads settings
- Lists, uploads or deletes datasets
- Opens one dataset, applies a series selection and row window, persists the
  view as an opset, fetches the window and optionally a forecast
- Writes a PNG snapshot of the resulting view

Usage examples:
  python -m src.main --list
  python -m src.main --dataset electricity --series MT_001,MT_002 --offset 0 --limit 500 --plot output/view.png
  python -m src.main --dataset electricity --series all --forecast MT_001 --horizon 24
  python -m src.main --upload data.csv --name electricity --upload-type import
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .core.catalog import UploadError
from .core.chart import render_snapshot
from .core.columns import CAT_SERIES
from .core.dispatch import ThreadedDispatcher
from .core.forecast import ValidationGap
from .core.session import ViewSession
from .core.settings import Settings, SettingsError, load_settings, settings_from_dict
from .shared.colored_logging import setup_colored_logging
from .shared.tsapi_client import TsApiClient, UPLOAD_TYPES


def _load(config_path: Optional[str]) -> Settings:
    base = Path(__file__).resolve().parents[1]
    default_cfg = base / 'config' / 'tsview_config.yaml'
    if config_path:
        return load_settings(config_path)
    if default_cfg.exists():
        return load_settings(default_cfg)
    return settings_from_dict({})


def _print_summary(session: ViewSession) -> None:
    snap = session.snapshot()
    if snap.dataset is None:
        print("No dataset open")
        return
    desc = snap.descriptor
    w = snap.window
    print(f"Dataset: {snap.dataset.name} ({snap.dataset.id}), max_length={snap.dataset.max_length}")
    print(f"Opset: {desc.id if desc else '-'} plot={list(snap.plot)} offset={w.offset} limit={w.limit} bounds=[{w.lower}, {w.upper}]")
    print("Colors: " + ", ".join(f"{s}={c}" for s, c in snap.colors))
    print(f"Points: {len(snap.data)} (display {len(snap.display)})")
    if snap.forecast is not None:
        print(f"Forecast: {snap.forecast.series_id} horizon={snap.forecast.horizon} -> {', '.join(snap.forecast.pseudo_series)}")
    for label, err in (("sync", snap.sync_error), ("fetch", snap.fetch_error), ("forecast", snap.forecast_error)):
        if err:
            print(f"{label} error: {err}")


def run(args: argparse.Namespace) -> int:
    log = logging.getLogger(__name__)
    settings = _load(args.config)
    if args.log_level is None:
        logging.getLogger().setLevel(getattr(logging, settings.logging_level, logging.INFO))

    client = TsApiClient(settings.api)
    dispatcher = ThreadedDispatcher(max_workers=settings.view.workers)
    session = ViewSession(
        client,
        dispatcher,
        debounce_ms=settings.view.debounce_ms,
        palette=settings.view.palette,
        clamp_to_max_length=settings.view.clamp_to_max_length,
    )
    try:
        if args.upload:
            try:
                ds = session.upload_dataset(args.name or Path(args.upload).stem, args.upload, args.upload_type)
            except UploadError as e:
                print(f"Upload failed: {e}")
                return 1
            print(f"Uploaded {ds.name} as {ds.id}")
            if not args.dataset:
                args.dataset = ds.id

        session.load_catalog()
        session.run_until_idle(args.timeout)
        if session.catalog_error:
            print(f"Failed to load datasets: {session.catalog_error}")
            return 2

        if args.list:
            for ds in session.catalog.datasets:
                desc = ds.descriptor
                print(f"{ds.id}\t{ds.name}\trows={ds.max_length}\tseries={len(ds.series_cols)}\topset={desc.id if desc else '-'}")
            return 0

        if args.delete:
            session.delete_dataset(args.delete)
            session.run_until_idle(args.timeout)
            if args.delete in session.catalog:
                print(f"Delete of {args.delete} failed (see log)")
                return 1
            print(f"Deleted {args.delete}")
            return 0

        if not args.dataset:
            print("Nothing to do: pass --dataset, --list, --upload or --delete")
            return 0

        ds = session.catalog.find(args.dataset)
        if ds is None:
            print(f"Unknown dataset: {args.dataset}")
            return 1
        session.open_dataset(ds.id)

        if args.series:
            if args.series.strip().lower() == 'all':
                session.toggle_selection([CAT_SERIES])
            else:
                session.toggle_selection([s.strip() for s in args.series.split(',') if s.strip()])

        if args.offset is not None or args.limit is not None:
            offset, limit = session.window.window
            offset = args.offset if args.offset is not None else offset
            limit = args.limit if args.limit is not None else limit
            session.drag_complete(offset, offset + limit)

        if not session.run_until_idle(args.timeout):
            log.warning("Timed out waiting for the backend")

        if args.forecast:
            try:
                session.request_forecast(args.forecast, args.horizon or settings.view.default_horizon)
            except ValidationGap as e:
                print(f"Cannot forecast: {e}")
                return 1
            session.run_until_idle(args.timeout)

        _print_summary(session)

        if args.plot:
            plot_path = Path(args.plot)
            # Bare file names land in the configured output directory
            if not plot_path.is_absolute() and plot_path.parent == Path('.'):
                plot_path = Path(settings.output.dir) / plot_path
            out = render_snapshot(
                session.snapshot(),
                str(plot_path),
                dpi=settings.output.dpi,
                width=settings.output.chart_width,
                height=settings.output.chart_height,
            )
            print(f"Chart written to {out}")

        if args.print_metrics:
            print(session.metrics.render())
        return 0
    finally:
        dispatcher.close()
        client.close()


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description='tsview: browse and persist time-series views')
    parser.add_argument('--config', type=str, default=None, help='Path to tsview_config.yaml')
    parser.add_argument('--list', action='store_true', help='List datasets and exit')
    parser.add_argument('--dataset', type=str, default=None, help='Dataset id or name to open')
    parser.add_argument('--series', type=str, default=None, help="Comma-separated series ids, or 'all'")
    parser.add_argument('--offset', type=int, default=None, help='Window start row')
    parser.add_argument('--limit', type=int, default=None, help='Window length in rows')
    parser.add_argument('--forecast', type=str, default=None, help='Series id to forecast')
    parser.add_argument('--horizon', type=int, default=None, help='Forecast horizon (points)')
    parser.add_argument('--plot', type=str, default=None, help='Write a PNG snapshot of the view to this path')
    parser.add_argument('--upload', type=str, default=None, help='File to upload as a new dataset')
    parser.add_argument('--name', type=str, default=None, help='Name of the uploaded dataset')
    parser.add_argument('--upload-type', type=str, default='import', choices=list(UPLOAD_TYPES), help='import (CSV) or add (parquet)')
    parser.add_argument('--delete', type=str, default=None, help='Delete a dataset by id and exit')
    parser.add_argument('--timeout', type=float, default=30.0, help='Seconds to wait for backend responses')
    parser.add_argument('--print-metrics', action='store_true', help='Print session metrics in Prometheus text format')
    parser.add_argument('--log-level', type=str, default=None, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], help='Logging level (overrides config)')
    args = parser.parse_args(argv)

    level = getattr(logging, (args.log_level or 'INFO').upper(), logging.INFO)
    setup_colored_logging(level=level)
    try:
        return run(args)
    except SettingsError as e:
        print(f"Invalid configuration: {e}")
        return 2


if __name__ == '__main__':
    sys.exit(main())
