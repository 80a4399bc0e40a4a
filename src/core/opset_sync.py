#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Opset synchronizer

Keeps exactly one persisted query descriptor per dataset in line with the
current (plot, offset, limit) tuple:

- no descriptor yet: POST /opsets with the sentinel id, store what the backend
  returns (with its real id) as the dataset's descriptor
- descriptor present: PUT /opsets/{id} with the same tuple, store the response

Ordering rules (responses can complete in any order):
- every write carries a per-dataset revision; an update response older than
  the newest issued revision is dropped
- creates are single-flight: tuple changes made while a create is in flight
  collapse into one pending tuple, sent as an update once the id is known
- an empty plot list on a dataset without descriptor is not persisted

Confirmed descriptors replace the dataset record in the catalog (new value)
and are handed to `on_confirmed` when they are the newest write.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..shared.models import QueryDescriptor, TupleKey, UNSET_OPSET_ID
from ..shared.tsapi_client import TsApiClient
from .catalog import DatasetCatalog
from .dispatch import Dispatcher
from .metrics import SessionMetrics


@dataclass
class DatasetSyncState:
    revision: int = 0
    creating: bool = False
    pending: Optional[TupleKey] = None
    error: Optional[str] = None


class OpsetSynchronizer:
    """
    Create-or-update reconciliation of query descriptors

    Handles:
    - create vs. update decision per dataset
    - stale response rejection by revision
    - per-dataset error flag (cleared by the next confirmed write)
    """

    def __init__(
        self,
        client: TsApiClient,
        dispatcher: Dispatcher,
        catalog: DatasetCatalog,
        on_confirmed: Callable[[str, QueryDescriptor], None],
        metrics: Optional[SessionMetrics] = None,
        on_failed: Optional[Callable[[str], None]] = None,
    ):
        """
        Args:
            client: Backend client used for opset writes
            dispatcher: Runs requests and queues their completions
            catalog: Dataset records; confirmed descriptors are written back here
            on_confirmed: Called with (dataset_id, descriptor) for the newest confirmed write
            metrics: Optional session metrics
            on_failed: Called with dataset_id when the newest write for it failed
        """
        self.client = client
        self.dispatcher = dispatcher
        self.catalog = catalog
        self.on_confirmed = on_confirmed
        self.metrics = metrics
        self.on_failed = on_failed
        self.logger = logging.getLogger(self.__class__.__name__)
        self._states: Dict[str, DatasetSyncState] = {}

    def state(self, dataset_id: str) -> DatasetSyncState:
        return self._states.setdefault(dataset_id, DatasetSyncState())

    def error(self, dataset_id: str) -> Optional[str]:
        st = self._states.get(dataset_id)
        return st.error if st else None

    def forget(self, dataset_id: str) -> None:
        self._states.pop(dataset_id, None)

    def sync(self, dataset_id: str, key: TupleKey) -> str:
        """
        Persist a changed tuple for a dataset

        Returns:
            'create', 'update', 'queued' (create in flight) or 'skipped'
        """
        ds = self.catalog.get(dataset_id)
        if ds is None:
            self.logger.warning(f"Tuple change for unknown dataset {dataset_id}; ignoring")
            return 'skipped'
        st = self.state(dataset_id)
        current = ds.descriptor

        if current is None or not current.is_confirmed:
            if st.creating:
                st.pending = key
                self.logger.debug(f"Create in flight for {dataset_id}; queued {key}")
                return 'queued'
            if not key.plot:
                self.logger.debug(f"Nothing to persist for {dataset_id} (empty plot list)")
                return 'skipped'
            st.creating = True
            self._issue('create', dataset_id, self._descriptor(UNSET_OPSET_ID, dataset_id, key))
            return 'create'

        self._issue('update', dataset_id, self._descriptor(current.id, dataset_id, key))
        return 'update'

    @staticmethod
    def _descriptor(opset_id: str, dataset_id: str, key: TupleKey) -> QueryDescriptor:
        return QueryDescriptor(
            id=opset_id,
            dataset_id=dataset_id,
            plot=tuple(sorted(key.plot)),
            offset=key.offset,
            limit=key.limit,
        )

    def _issue(self, kind: str, dataset_id: str, descriptor: QueryDescriptor) -> None:
        st = self.state(dataset_id)
        st.revision += 1
        rev = st.revision
        if self.metrics:
            self.metrics.count(self.metrics.requests, kind)
        self.logger.info(
            f"{kind} opset for {dataset_id} (rev {rev}): plot={list(descriptor.plot)} "
            f"offset={descriptor.offset} limit={descriptor.limit}"
        )
        call = self.client.create_opset if kind == 'create' else self.client.update_opset
        self.dispatcher.submit(
            f"{kind}_opset:{dataset_id}:{rev}",
            lambda: call(descriptor),
            lambda result: self._on_success(kind, dataset_id, rev, result),
            lambda exc: self._on_failure(kind, dataset_id, rev, exc),
        )

    def _on_success(self, kind: str, dataset_id: str, rev: int, descriptor: QueryDescriptor) -> None:
        st = self.state(dataset_id)
        if kind == 'create':
            st.creating = False
        elif rev < st.revision:
            self.logger.debug(f"Discarding stale update for {dataset_id} (rev {rev} < {st.revision})")
            if self.metrics:
                self.metrics.count(self.metrics.stale, kind)
            return

        st.error = None
        ds = self.catalog.get(dataset_id)
        if ds is None:
            self.logger.warning(f"Opset {descriptor.id} confirmed for dataset {dataset_id} which is no longer in the catalog")
            return
        self.catalog.replace(ds.with_descriptor(descriptor))
        self.logger.debug(f"Opset {descriptor.id} confirmed for {dataset_id} (rev {rev})")

        if kind == 'create' and st.pending is not None:
            pending, st.pending = st.pending, None
            if pending != descriptor.tuple_key:
                self._issue('update', dataset_id, self._descriptor(descriptor.id, dataset_id, pending))
                return
        self.on_confirmed(dataset_id, descriptor)

    def _on_failure(self, kind: str, dataset_id: str, rev: int, exc: Exception) -> None:
        st = self.state(dataset_id)
        self.logger.error(f"Failed to {kind} opset for {dataset_id} (rev {rev}): {exc}")
        if self.metrics:
            self.metrics.count(self.metrics.failures, kind)
        if kind == 'create':
            st.creating = False
            st.error = str(exc)
            pending, st.pending = st.pending, None
            if pending is not None:
                # A newer edit arrived while the create was in flight; it is sent as its own write
                self.sync(dataset_id, pending)
                return
        elif rev == st.revision:
            st.error = str(exc)
        else:
            return
        if self.on_failed:
            self.on_failed(dataset_id)
