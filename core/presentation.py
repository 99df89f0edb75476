"""Reshape sorted aggregate rows into chart and table view models.

Numeric fields go through ``to_number``/``to_count`` from ``core.data``:
absent or non-numeric values become ``0``. Row order is preserved, so
``labels[i]``, ``values[i]`` and ``table[i]`` all describe the same row.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Union

from core.data import to_count, to_number
from core.metrics_sales import AggregateRow


TOTAL_SALES_LABEL = "Total Sales"
TABLE_HEADERS = ["Product", "Customer", "Total Sales", "Sales Count"]
TABLE_PAGE_SIZE = 10

TableRow = Dict[str, Union[str, int, float]]


@dataclass(frozen=True)
class ChartSeries:
    labels: List[str] = field(default_factory=list)
    values: List[Union[int, float]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.labels)

    def to_dict(self) -> Dict[str, Any]:
        return {"labels": list(self.labels), "values": list(self.values)}


def _text(value: object) -> str:
    return "" if value is None else str(value)


def chart_label(product: object, customer: object) -> str:
    product = _text(product).strip()
    customer = _text(customer).strip()
    if product and customer:
        return f"{product} / {customer}"
    return TOTAL_SALES_LABEL


def build_chart_series(rows: Sequence[AggregateRow]) -> ChartSeries:
    return ChartSeries(
        labels=[chart_label(r.product, r.customer) for r in rows],
        values=[to_number(r.total_sales) for r in rows],
    )


def build_table_rows(rows: Sequence[AggregateRow]) -> List[TableRow]:
    return [
        {
            "Product": _text(r.product),
            "Customer": _text(r.customer),
            "Total Sales": to_number(r.total_sales),
            "Sales Count": to_count(r.sales_count),
        }
        for r in rows
    ]
