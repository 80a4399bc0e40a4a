#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HTTP client for the time-series backend
Covers the dataset catalog, opset (query descriptor) writes, window reads and
forecasts. Transport and body-shape errors are wrapped at this boundary; no
request is ever retried.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from .config import ApiConnConfig
from .logging_setup import get_logger
from .models import Dataset, ForecastPoint, ForecastResult, QueryDescriptor, TimeSeriesWindow, UNSET_OPSET_ID

UPLOAD_TYPES = ("import", "add")


class TsApiError(Exception):
    """Base exception for backend operations"""
    pass


class NetworkFailure(TsApiError):
    """Request rejected, unreachable backend, or non-2xx status"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(TsApiError):
    """Response body does not have the expected shape"""
    pass


class TsApiClient:
    """
    Backend REST client

    Endpoints (relative to config.root_url):
    - GET /datasets, POST /files, DELETE /datasets/{id}
    - POST /opsets, PUT /opsets/{id}
    - GET /tsop/{opset_id}
    - POST /forecast
    """

    def __init__(self, config: ApiConnConfig, session: Optional[requests.Session] = None):
        """
        Args:
            config: Backend connection configuration
            session: Optional pre-built session (tests inject one)
        """
        self.config = config
        self.logger = get_logger(__name__)
        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/json',
            'User-Agent': config.user_agent,
        })
        self.logger.info(f"Initialized backend client: {config.root_url}")

    def _request(self, method: str, path: str, timeout: Optional[int] = None, **kwargs) -> Any:
        """
        Execute one request and decode its JSON body

        Returns:
            Decoded JSON, or None for an empty 2xx body

        Raises:
            NetworkFailure: Transport error or non-2xx status
            MalformedResponse: Body is not JSON
        """
        url = self.config.url(path)
        self.logger.debug(f"{method} {url}")
        try:
            response = self.session.request(method, url, timeout=timeout or self.config.timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            raise NetworkFailure(f"{method} {path}: request timeout after {timeout or self.config.timeout}s: {e}")
        except requests.exceptions.RequestException as e:
            raise NetworkFailure(f"{method} {path}: {e}")

        if not (200 <= response.status_code < 300):
            raise NetworkFailure(f"{method} {path}: HTTP {response.status_code}: {response.text[:200]}", status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(f"{method} {path}: invalid JSON response: {e}")

    # ---------- Catalog ----------
    def list_datasets(self) -> List[Dataset]:
        body = self._request('GET', '/datasets')
        if not isinstance(body, list):
            raise MalformedResponse(f"GET /datasets: expected a list, got {type(body).__name__}")
        datasets = []
        for raw in body:
            try:
                datasets.append(Dataset.from_dict(raw))
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                raise MalformedResponse(f"GET /datasets: invalid dataset entry: {e}")
        self.logger.debug(f"Fetched {len(datasets)} datasets")
        return datasets

    def upload_file(self, name: str, file_path: str, upload_type: str = "import") -> Dataset:
        """
        Upload a file as a new dataset (multipart: name, file, upload_type)

        Args:
            name: Dataset display name
            file_path: Local CSV/parquet file
            upload_type: 'import' (CSV, columns classified by backend) or 'add' (parquet)

        Returns:
            The created Dataset
        """
        if upload_type not in UPLOAD_TYPES:
            raise ValueError(f"upload_type must be one of {UPLOAD_TYPES}")
        path = Path(file_path)
        with open(path, 'rb') as fh:
            body = self._request(
                'POST', '/files',
                timeout=self.config.upload_timeout,
                data={'name': name, 'upload_type': upload_type},
                files={'file': (path.name, fh)},
            )
        try:
            return Dataset.from_dict(body)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise MalformedResponse(f"POST /files: invalid dataset: {e}")

    def delete_dataset(self, dataset_id: str) -> Any:
        return self._request('DELETE', f'/datasets/{dataset_id}')

    # ---------- Opsets ----------
    def create_opset(self, descriptor: QueryDescriptor) -> QueryDescriptor:
        payload = descriptor.to_payload()
        payload['id'] = UNSET_OPSET_ID
        body = self._request('POST', '/opsets', json=payload)
        return self._parse_opset(body, 'POST /opsets')

    def update_opset(self, descriptor: QueryDescriptor) -> QueryDescriptor:
        if not descriptor.is_confirmed:
            raise ValueError("cannot update an opset the backend has not assigned an id to")
        body = self._request('PUT', f'/opsets/{descriptor.id}', json=descriptor.to_payload())
        return self._parse_opset(body, f'PUT /opsets/{descriptor.id}')

    def _parse_opset(self, body: Any, what: str) -> QueryDescriptor:
        try:
            return QueryDescriptor.from_dict(body)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise MalformedResponse(f"{what}: invalid opset: {e}")

    # ---------- Data ----------
    def fetch_window(self, opset_id: str) -> TimeSeriesWindow:
        body = self._request('GET', f'/tsop/{opset_id}')
        if not isinstance(body, dict) or 'data' not in body:
            raise MalformedResponse(f"GET /tsop/{opset_id}: missing 'data'")
        try:
            return TimeSeriesWindow.from_list(body['data'], opset_id=opset_id)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise MalformedResponse(f"GET /tsop/{opset_id}: invalid window: {e}")

    def forecast(self, opset_id: str, series_id: str, horizon: int) -> ForecastResult:
        payload: Dict[str, Any] = {'opset_id': opset_id, 'series_id': series_id, 'horizon': horizon}
        body = self._request('POST', '/forecast', json=payload)
        bands = body.get('forecast') if isinstance(body, dict) else None
        if not isinstance(bands, list) or len(bands) != 3:
            raise MalformedResponse("POST /forecast: expected 'forecast' as [center, upper, lower]")
        try:
            center, upper, lower = (tuple(ForecastPoint.parse(v) for v in band) for band in bands)
            return ForecastResult(
                opset_id=opset_id,
                series_id=series_id,
                horizon=horizon,
                center=center,
                upper=upper,
                lower=lower,
            )
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise MalformedResponse(f"POST /forecast: invalid forecast bands: {e}")

    def close(self) -> None:
        self.session.close()
