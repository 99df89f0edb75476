from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from core.data import DataFrameSalesStore, SalesStore, to_count, to_number
from core.errors import AggregationFailed
from core.filters import MatchPredicate


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregateRow:
    """Sales summed over one (product, customer) pair."""

    product: Optional[str]
    customer: Optional[str]
    total_sales: Any = 0
    sales_count: Any = 0

    def to_record(self) -> Dict[str, Any]:
        return {
            "product": self.product,
            "customer": self.customer,
            "totalSales": self.total_sales,
            "salesCount": self.sales_count,
        }


def _identity(value: object) -> Optional[str]:
    return None if value is None else str(value)


def aggregate_sales(store: SalesStore, predicate: MatchPredicate) -> List[AggregateRow]:
    """Group the records matching ``predicate`` by product and customer.

    Any failure inside the store surfaces as ``AggregationFailed``; the call
    is not retried here.
    """
    try:
        records = store.aggregate(predicate)
    except Exception as exc:
        raise AggregationFailed(exc) from exc

    rows = []
    for record in records or []:
        rows.append(
            AggregateRow(
                product=_identity(record.get("product")),
                customer=_identity(record.get("customer")),
                total_sales=to_number(record.get("totalSales")),
                sales_count=to_count(record.get("salesCount")),
            )
        )
    logger.debug("Aggregated %d product/customer rows for %s", len(rows), predicate)
    return rows


def _null_first(value: Optional[str]):
    return (0, "") if value is None else (1, value)


def sort_sales_rows(rows: Iterable[AggregateRow]) -> List[AggregateRow]:
    """Product ascending, then customer ascending; missing values sort first."""
    return sorted(rows, key=lambda r: (_null_first(r.product), _null_first(r.customer)))


def compute_sales_by_product_customer(store: SalesStore, predicate: MatchPredicate) -> List[AggregateRow]:
    return sort_sales_rows(aggregate_sales(store, predicate))


def compute_regions(store: DataFrameSalesStore) -> List[str]:
    try:
        return [str(r) for r in store.distinct("region")]
    except Exception as exc:
        raise AggregationFailed(exc) from exc


def compute_region_sales(store: DataFrameSalesStore, region: str) -> List[Dict[str, Any]]:
    try:
        records = store.sales_by_region(region)
    except Exception as exc:
        raise AggregationFailed(exc) from exc
    return [
        {"salesperson": _identity(r.get("salesperson")), "totalSales": to_number(r.get("totalSales"))}
        for r in records
    ]
