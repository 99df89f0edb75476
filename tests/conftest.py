"""Shared fixtures for the sales report tests."""

import asyncio
import threading
from typing import Any, Dict, List

import pytest

from core.data import DataFrameSalesStore
from core.filters import MatchPredicate


SAMPLE_RECORDS = [
    {"product": "Prod A", "customer": "Cust 1", "amount": 60, "date": "2023-01-05", "region": "North", "salesperson": "Ann"},
    {"product": "Prod A", "customer": "Cust 1", "amount": 40, "date": "2023-01-20", "region": "North", "salesperson": "Bob"},
    {"product": "Prod B", "customer": "Cust 2", "amount": 200, "date": "2023-02-10", "region": "South", "salesperson": "Ann"},
]


class RecordingStore:
    """Wraps a store and remembers every predicate it was asked to aggregate."""

    def __init__(self, inner):
        self.inner = inner
        self.calls: List[MatchPredicate] = []

    def aggregate(self, predicate: MatchPredicate) -> List[Dict[str, Any]]:
        self.calls.append(predicate)
        return self.inner.aggregate(predicate)


class FailingStore:
    def __init__(self, exc: Exception = None):
        self.exc = exc or ConnectionError("database unavailable")
        self.calls = 0

    def aggregate(self, predicate):
        self.calls += 1
        raise self.exc


class GatedStore:
    """Blocks each aggregate call until the gate for its product filter opens."""

    def __init__(self, inner):
        self.inner = inner
        self.gates: Dict[str, threading.Event] = {}
        self.entered = threading.Event()

    def gate(self, product: str) -> threading.Event:
        return self.gates.setdefault(product, threading.Event())

    def aggregate(self, predicate: MatchPredicate):
        self.entered.set()
        if not self.gate(predicate.product or "").wait(timeout=5):
            raise TimeoutError("gate never opened")
        return self.inner.aggregate(predicate)


async def wait_until(condition, timeout: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


@pytest.fixture
def sample_records() -> List[Dict[str, Any]]:
    return [dict(r) for r in SAMPLE_RECORDS]


@pytest.fixture
def store(sample_records) -> DataFrameSalesStore:
    return DataFrameSalesStore.from_records(sample_records)


@pytest.fixture
def recording_store(store) -> RecordingStore:
    return RecordingStore(store)
