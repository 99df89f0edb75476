from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class SalesFiltersModel(BaseModel):
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    product: Optional[str] = None
    customer: Optional[str] = None


class AggregateRowModel(BaseModel):
    product: Optional[str] = None
    customer: Optional[str] = None
    totalSales: float = 0
    salesCount: int = 0


class RegionSalesModel(BaseModel):
    salesperson: Optional[str] = None
    totalSales: float = 0


class ErrorResponse(BaseModel):
    message: str
    type: str
