"""Shared fixtures: a frozen clock and a fresh in-memory store per test."""

from collections.abc import Callable
from datetime import UTC, date, datetime

import pytest

from hfcore.services.drug_catalog import DrugClassCatalog
from hfcore.services.record_store import InMemoryRecordStore

FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def today() -> date:
    return FIXED_NOW.date()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def catalog() -> DrugClassCatalog:
    return DrugClassCatalog.default()
