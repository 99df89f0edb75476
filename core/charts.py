from __future__ import annotations

import json
from typing import Any, Dict

import altair as alt
import pandas as pd

from core.presentation import ChartSeries

alt.data_transformers.disable_max_rows()

CHART_TITLE = "Sales by Product/Customer"


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def sales_bar_chart(series: ChartSeries, *, title: str = CHART_TITLE) -> alt.Chart:
    """One bar per row, in series order.

    Bars are keyed on the row position so repeated labels (several
    ``"Total Sales"`` fallbacks) stay separate; the label is only axis text.
    """
    df = pd.DataFrame(
        {"row": list(range(len(series))), "label": series.labels, "totalSales": series.values}
    )
    label_expr = f"{json.dumps(list(series.labels))}[datum.value]"
    return (
        alt.Chart(df, title=title)
        .mark_bar()
        .encode(
            x=alt.X("row:O", title="Product / Customer", axis=alt.Axis(labelExpr=label_expr)),
            y=alt.Y("totalSales:Q", title="Total Sales", axis=alt.Axis(format="$,.0f")),
            tooltip=[alt.Tooltip("label:N", title="Product / Customer"), alt.Tooltip("totalSales:Q", format="$,.2f")],
        )
    )
