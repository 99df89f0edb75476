from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from core.data import SalesStore
from core.errors import AggregationFailed, InvalidFilter, SalesReportError
from core.filters import FILTER_KEYS, MatchPredicate, normalize_filters
from core.metrics_sales import compute_sales_by_product_customer
from core.presentation import ChartSeries, TableRow, build_chart_series, build_table_rows


logger = logging.getLogger(__name__)


class FetchStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class ViewState:
    """Immutable snapshot of the report view.

    The controller swaps whole snapshots, so ``rows`` and ``chart`` always
    come from the same fetch.
    """

    rows: Tuple[TableRow, ...] = ()
    chart: ChartSeries = field(default_factory=ChartSeries)
    show_chart: bool = True
    loading: bool = False
    filters: Mapping[str, str] = field(default_factory=lambda: _raw_filters(None))
    status: FetchStatus = FetchStatus.IDLE
    error: Optional[SalesReportError] = None

    @property
    def has_data(self) -> bool:
        return len(self.rows) > 0


def _raw_filters(filters: Optional[Mapping[str, object]]) -> Mapping[str, str]:
    filters = filters or {}
    return MappingProxyType({k: "" if filters.get(k) is None else str(filters.get(k)) for k in FILTER_KEYS})


class ViewStateController:
    """Runs fetch cycles against a sales store and owns the resulting ``ViewState``.

    Several fetches may overlap; each one publishes its result when it
    completes, so the last one to finish wins. ``loading`` stays set while
    any fetch is still outstanding.
    """

    def __init__(self, store: SalesStore):
        self._store = store
        self._state = ViewState()
        self._in_flight = 0

    @classmethod
    async def create(cls, store: SalesStore) -> "ViewStateController":
        """Build a controller and run the initial fetch with empty filters."""
        controller = cls(store)
        try:
            await controller.fetch({})
        except AggregationFailed:
            # already logged and reflected as FAILED
            pass
        return controller

    @property
    def state(self) -> ViewState:
        return self._state

    def toggle_view(self) -> ViewState:
        self._state = replace(self._state, show_chart=not self._state.show_chart)
        return self._state

    def _settle(self, status: FetchStatus, **changes) -> None:
        self._in_flight -= 1
        busy = self._in_flight > 0
        self._state = replace(
            self._state,
            loading=busy,
            status=FetchStatus.LOADING if busy else status,
            **changes,
        )

    def _load(self, predicate: MatchPredicate) -> Tuple[Tuple[TableRow, ...], ChartSeries]:
        rows = compute_sales_by_product_customer(self._store, predicate)
        return tuple(build_table_rows(rows)), build_chart_series(rows)

    async def fetch(self, filters: Optional[Mapping[str, object]] = None) -> ViewState:
        """Run one fetch cycle and return the snapshot it published.

        ``InvalidFilter`` is raised before the store is touched and leaves the
        current rows in place. ``AggregationFailed`` clears rows and chart,
        marks the state FAILED and is raised after logging.
        """
        raw = _raw_filters(filters)
        self._in_flight += 1
        self._state = replace(self._state, loading=True, status=FetchStatus.LOADING, filters=raw)

        try:
            predicate = normalize_filters(raw)
        except InvalidFilter as exc:
            self._settle(FetchStatus.IDLE, error=exc)
            raise

        try:
            rows, chart = await asyncio.to_thread(self._load, predicate)
        except AggregationFailed as exc:
            logger.exception("Error loading sales by product/customer")
            self._settle(FetchStatus.FAILED, rows=(), chart=ChartSeries(), error=exc)
            raise
        except BaseException:
            self._settle(FetchStatus.IDLE)
            raise

        self._settle(FetchStatus.READY, rows=rows, chart=chart, error=None)
        return self._state
