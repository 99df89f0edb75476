"""Tests for the aggregation engine and the report sorter."""

import random

import pytest

from conftest import FailingStore
from core.errors import AggregationFailed
from core.filters import MatchPredicate, normalize_filters
from core.metrics_sales import (
    AggregateRow,
    aggregate_sales,
    compute_region_sales,
    compute_regions,
    compute_sales_by_product_customer,
    sort_sales_rows,
)


class TestAggregateSales:
    def test_scenario_rows(self, store):
        rows = compute_sales_by_product_customer(store, MatchPredicate())
        assert rows == [
            AggregateRow("Prod A", "Cust 1", 100, 2),
            AggregateRow("Prod B", "Cust 2", 200, 1),
        ]

    def test_predicate_is_passed_through(self, recording_store):
        predicate = normalize_filters({"customer": "Cust 2"})
        rows = aggregate_sales(recording_store, predicate)
        assert recording_store.calls == [predicate]
        assert rows == [AggregateRow("Prod B", "Cust 2", 200, 1)]

    def test_store_failure_is_wrapped(self):
        cause = ConnectionError("database unavailable")
        with pytest.raises(AggregationFailed) as excinfo:
            aggregate_sales(FailingStore(cause), MatchPredicate())
        assert excinfo.value.cause is cause
        assert excinfo.value.__cause__ is cause

    def test_store_is_called_once_on_failure(self):
        store = FailingStore()
        with pytest.raises(AggregationFailed):
            aggregate_sales(store, MatchPredicate())
        assert store.calls == 1

    def test_shapes_loose_records(self):
        class LooseStore:
            def aggregate(self, predicate):
                return [{"product": "Prod X", "totalSales": "12.5"}, {"customer": 42, "salesCount": None}]

        rows = aggregate_sales(LooseStore(), MatchPredicate())
        assert rows == [
            AggregateRow("Prod X", None, 12.5, 0),
            AggregateRow(None, "42", 0, 0),
        ]

    def test_empty_result(self, store):
        predicate = normalize_filters({"product": "Nothing"})
        assert compute_sales_by_product_customer(store, predicate) == []

    def test_to_record_uses_wire_names(self):
        assert AggregateRow("P", "C", 1.5, 3).to_record() == {
            "product": "P",
            "customer": "C",
            "totalSales": 1.5,
            "salesCount": 3,
        }


class TestSortSalesRows:
    ROWS = [
        AggregateRow("Prod B", "Cust 1", 5, 1),
        AggregateRow("Prod A", "Cust 2", 1, 1),
        AggregateRow("Prod A", "Cust 1", 2, 1),
        AggregateRow(None, "Cust 9", 3, 1),
        AggregateRow("Prod A", None, 4, 1),
    ]

    def test_orders_by_product_then_customer(self):
        ordered = sort_sales_rows(self.ROWS)
        assert [(r.product, r.customer) for r in ordered] == [
            (None, "Cust 9"),
            ("Prod A", None),
            ("Prod A", "Cust 1"),
            ("Prod A", "Cust 2"),
            ("Prod B", "Cust 1"),
        ]

    def test_idempotent(self):
        once = sort_sales_rows(self.ROWS)
        assert sort_sales_rows(once) == once

    def test_deterministic_for_any_input_order(self):
        expected = sort_sales_rows(self.ROWS)
        rng = random.Random(7)
        for _ in range(10):
            shuffled = list(self.ROWS)
            rng.shuffle(shuffled)
            assert sort_sales_rows(shuffled) == expected

    def test_does_not_mutate_input(self):
        rows = list(self.ROWS)
        sort_sales_rows(rows)
        assert rows == self.ROWS


class TestRegionReports:
    def test_regions(self, store):
        assert compute_regions(store) == ["North", "South"]

    def test_region_sales(self, store):
        assert compute_region_sales(store, "South") == [{"salesperson": "Ann", "totalSales": 200}]

    def test_region_failure_is_wrapped(self, store):
        def boom(region):
            raise RuntimeError("boom")

        store.sales_by_region = boom
        with pytest.raises(AggregationFailed):
            compute_region_sales(store, "North")
