#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Session metrics on a private prometheus_client registry.

Counts backend requests, failures and responses dropped as stale, and tracks
the loading flag and catalog size. Rendered in text exposition format on
demand (no HTTP server).
"""
from __future__ import annotations

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest


class SessionMetrics:
    def __init__(self, prefix: str = "tsview_", registry: Optional[CollectorRegistry] = None) -> None:
        self.prefix = prefix
        self.registry = registry or CollectorRegistry()
        self.requests = Counter(f"{prefix}requests", "Backend requests issued", ["kind"], registry=self.registry)
        self.failures = Counter(f"{prefix}request_failures", "Backend requests that failed", ["kind"], registry=self.registry)
        self.stale = Counter(f"{prefix}stale_responses", "Responses discarded as superseded", ["kind"], registry=self.registry)
        self.loading = Gauge(f"{prefix}loading", "1 while a data window fetch is outstanding", registry=self.registry)
        self.datasets = Gauge(f"{prefix}catalog_datasets", "Datasets in the local catalog", registry=self.registry)

    def count(self, metric: Counter, kind: str) -> None:
        metric.labels(kind=kind).inc()

    def value(self, name: str, kind: Optional[str] = None) -> float:
        """Current sample value, e.g. value('requests_total', 'create')."""
        labels = {"kind": kind} if kind is not None else {}
        sample = self.registry.get_sample_value(f"{self.prefix}{name}", labels)
        return float(sample) if sample is not None else 0.0

    def render(self) -> str:
        return generate_latest(self.registry).decode("utf-8")
