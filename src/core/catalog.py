#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Local dataset catalog.

Holds the immutable Dataset records listed by the backend, in backend order.
Records are swapped, never edited: a confirmed descriptor produces a new
Dataset value that replaces the old one under the same id.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from ..shared.models import Dataset
from ..shared.tsapi_client import TsApiClient, TsApiError, UPLOAD_TYPES


class UploadError(Exception):
    """Dataset upload failed; shown to the user, nothing is added locally"""
    pass


class DatasetCatalog:
    def __init__(self, datasets: Optional[Iterable[Dataset]] = None) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)
        self._order: List[str] = []
        self._by_id: Dict[str, Dataset] = {}
        if datasets:
            self.set_all(datasets)

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, dataset_id: object) -> bool:
        return dataset_id in self._by_id

    @property
    def datasets(self) -> List[Dataset]:
        return [self._by_id[i] for i in self._order]

    def set_all(self, datasets: Iterable[Dataset]) -> None:
        order: List[str] = []
        by_id: Dict[str, Dataset] = {}
        for ds in datasets:
            if ds.id in by_id:
                self.logger.warning(f"Duplicate dataset id {ds.id} in catalog listing; keeping the last entry")
            else:
                order.append(ds.id)
            by_id[ds.id] = ds
        self._order, self._by_id = order, by_id

    def get(self, dataset_id: str) -> Optional[Dataset]:
        return self._by_id.get(dataset_id)

    def find(self, key: str) -> Optional[Dataset]:
        """Lookup by id, then by exact name (first match)."""
        ds = self._by_id.get(key)
        if ds is not None:
            return ds
        for i in self._order:
            if self._by_id[i].name == key:
                return self._by_id[i]
        return None

    def index_of(self, dataset_id: str) -> int:
        return self._order.index(dataset_id) if dataset_id in self._by_id else -1

    def add(self, ds: Dataset) -> None:
        if ds.id not in self._by_id:
            self._order.append(ds.id)
        self._by_id[ds.id] = ds

    def replace(self, ds: Dataset) -> None:
        if ds.id not in self._by_id:
            raise KeyError(f"dataset {ds.id} is not in the catalog")
        self._by_id[ds.id] = ds

    def remove(self, dataset_id: str) -> Optional[Dataset]:
        ds = self._by_id.pop(dataset_id, None)
        if ds is not None:
            self._order.remove(dataset_id)
        return ds

    def upload(self, client: TsApiClient, name: str, file_path: str, upload_type: str = "import") -> Dataset:
        """
        Upload a file and add the resulting dataset.

        Raises:
            UploadError: Bad arguments or any backend/file failure
        """
        if not name or not name.strip():
            raise UploadError("dataset name is required")
        if upload_type not in UPLOAD_TYPES:
            raise UploadError(f"upload type must be one of {UPLOAD_TYPES}, got {upload_type!r}")
        try:
            ds = client.upload_file(name.strip(), file_path, upload_type)
        except (TsApiError, OSError) as e:
            raise UploadError(f"Upload of {file_path} failed: {e}") from e
        self.add(ds)
        self.logger.info(f"Uploaded dataset {ds.name} ({ds.id}) with {len(ds.series_cols)} series columns")
        return ds
