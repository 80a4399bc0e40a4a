#!/usr/bin/env python3
"""Shared fixtures for the tsview test-suite"""
import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from tests.fakes import FakeTsApiClient, ManualDispatcher, make_dataset


@pytest.fixture
def dataset():
    return make_dataset()


@pytest.fixture
def dispatcher():
    return ManualDispatcher()


@pytest.fixture
def client(dataset):
    return FakeTsApiClient([dataset])
