#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
tsview settings loader

Parses the view/output/logging sections of the YAML config and reuses the
connection loader from src/shared/config.py for the `api` section.

Schema:
    api:        base_url, api_prefix, timeout, upload_timeout, user_agent
    view:       debounce_ms, palette, clamp_to_max_length, default_horizon, workers
    output:     dir, dpi, chart_width, chart_height
    logging:    level
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import logging

from ..shared.config import (
    ApiConnConfig,
    ConfigError,
    build_api_config,
    load_raw_config,
)
from .colors import DEFAULT_PALETTE, validate_palette
from .window import DEFAULT_DEBOUNCE_MS

log = logging.getLogger(__name__)

_KNOWN_SECTIONS = ("api", "view", "output", "logging")
_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ViewConfig:
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    palette: List[str] = field(default_factory=lambda: list(DEFAULT_PALETTE))
    # Clamp committed windows into [0, max_length] before they are persisted
    clamp_to_max_length: bool = False
    default_horizon: int = 5
    # Thread pool size for backend requests
    workers: int = 4


@dataclass
class OutputConfig:
    """Chart snapshot output"""
    dir: str = "output"
    dpi: int = 150
    chart_width: float = 12.0
    chart_height: float = 5.0


@dataclass
class Settings:
    api: ApiConnConfig
    view: ViewConfig
    output: OutputConfig
    logging_level: str = "INFO"
    config_path: Optional[Path] = None


class SettingsError(Exception):
    pass


def _validate_config(settings: Settings) -> None:
    """
    Validate view/output/logging fields. All problems are collected and
    reported together.

    Raises:
        SettingsError: If any field is invalid
    """
    errors = []
    v = settings.view
    if v.debounce_ms < 0:
        errors.append(f"view.debounce_ms must be >= 0, got: {v.debounce_ms}")
    try:
        validate_palette(v.palette)
    except ValueError as e:
        errors.append(f"view.palette: {e}")
    if v.default_horizon < 1:
        errors.append(f"view.default_horizon must be >= 1, got: {v.default_horizon}")
    if v.workers < 1:
        errors.append(f"view.workers must be >= 1, got: {v.workers}")

    o = settings.output
    if not o.dir or not str(o.dir).strip():
        errors.append("output.dir must be a non-empty string")
    if o.dpi <= 0:
        errors.append(f"output.dpi must be > 0, got: {o.dpi}")
    if o.chart_width <= 0 or o.chart_height <= 0:
        errors.append("output.chart_width and output.chart_height must be positive")

    if settings.logging_level not in _LEVELS:
        errors.append(f"logging.level must be one of {list(_LEVELS)}, got: {settings.logging_level}")

    if errors:
        error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
        raise SettingsError(error_msg)


def _section(raw: dict, name: str) -> dict:
    value = raw.get(name, {}) or {}
    if not isinstance(value, dict):
        raise SettingsError(f"'{name}' section must be a mapping")
    return value


def settings_from_dict(raw: dict, path: Optional[Path] = None) -> Settings:
    unknown = [k for k in raw.keys() if k not in _KNOWN_SECTIONS]
    if unknown:
        log.warning(f"Ignoring unknown config sections: {unknown}")

    try:
        api = build_api_config(_section(raw, "api"))
    except ConfigError as e:
        raise SettingsError(str(e))

    view_raw = _section(raw, "view")
    output_raw = _section(raw, "output")
    logging_raw = _section(raw, "logging")
    try:
        palette = view_raw.get("palette", list(DEFAULT_PALETTE))
        if not isinstance(palette, list):
            raise SettingsError("view.palette must be a list of color names")
        view = ViewConfig(
            debounce_ms=int(view_raw.get("debounce_ms", DEFAULT_DEBOUNCE_MS)),
            palette=[str(c) for c in palette],
            clamp_to_max_length=bool(view_raw.get("clamp_to_max_length", False)),
            default_horizon=int(view_raw.get("default_horizon", 5)),
            workers=int(view_raw.get("workers", 4)),
        )
        output = OutputConfig(
            dir=str(output_raw.get("dir", "output")),
            dpi=int(output_raw.get("dpi", 150)),
            chart_width=float(output_raw.get("chart_width", 12.0)),
            chart_height=float(output_raw.get("chart_height", 5.0)),
        )
    except (ValueError, TypeError) as e:
        raise SettingsError(f"Configuration validation failed: {e}")

    settings = Settings(
        api=api,
        view=view,
        output=output,
        logging_level=str(logging_raw.get("level", "INFO")).strip().upper(),
        config_path=path,
    )
    _validate_config(settings)
    return settings


def load_settings(config_path: str | Path) -> Settings:
    path = Path(config_path)
    try:
        raw = load_raw_config(str(path))
    except ConfigError as e:
        raise SettingsError(str(e))
    return settings_from_dict(raw, path)
