from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import List, Optional

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.schemas import AggregateRowModel, ErrorResponse, RegionSalesModel, SalesFiltersModel
from core.config import configure_logging, load_settings
from core.data import DataFrameSalesStore
from core.errors import InvalidFilter, SalesReportError
from core.filters import MatchPredicate, normalize_filters
from core.metrics_sales import compute_region_sales, compute_regions, compute_sales_by_product_customer


settings = load_settings()
configure_logging(settings.log_level)

app = FastAPI(title="Sales Report API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


@lru_cache(maxsize=1)
def get_store() -> DataFrameSalesStore:
    return DataFrameSalesStore.from_path(settings.data_path)


def _predicate_from_model(model: SalesFiltersModel) -> MatchPredicate:
    raw = model.model_dump()
    return normalize_filters(raw)


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": str(exc), "type": type(exc).__name__})


@app.exception_handler(SalesReportError)
async def sales_report_error_handler(request: Request, exc: SalesReportError) -> JSONResponse:
    # reached when the store dependency itself fails to load
    logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    return _error(500, exc)


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


@app.get("/api/reports/sales/regions", response_model=List[str], responses=ERROR_RESPONSES)
def regions(store: DataFrameSalesStore = Depends(get_store)):
    try:
        return _json(compute_regions(store))
    except Exception as exc:
        logger.exception("regions failed")
        return _error(500, exc)


@app.get("/api/reports/sales/regions/{region}", response_model=List[RegionSalesModel], responses=ERROR_RESPONSES)
def sales_by_region(region: str, store: DataFrameSalesStore = Depends(get_store)):
    try:
        return _json(compute_region_sales(store, region))
    except Exception as exc:
        logger.exception("sales_by_region failed")
        return _error(500, exc)


@app.get(
    "/api/reports/sales/sales-by-product-customer",
    response_model=List[AggregateRowModel],
    responses=ERROR_RESPONSES,
)
def sales_by_product_customer(
    startDate: Optional[str] = Query(default=None),
    endDate: Optional[str] = Query(default=None),
    product: Optional[str] = Query(default=None),
    customer: Optional[str] = Query(default=None),
    store: DataFrameSalesStore = Depends(get_store),
):
    filters = SalesFiltersModel(startDate=startDate, endDate=endDate, product=product, customer=customer)
    try:
        predicate = _predicate_from_model(filters)
    except InvalidFilter as exc:
        logger.info("Rejected sales-by-product-customer request: %s", exc)
        return _error(400, exc)
    try:
        rows = compute_sales_by_product_customer(store, predicate)
        return _json([r.to_record() for r in rows])
    except Exception as exc:
        logger.exception("sales_by_product_customer failed")
        return _error(500, exc)
