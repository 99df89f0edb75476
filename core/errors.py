"""Exceptions raised by the sales report pipeline.

All of them derive from ``SalesReportError`` so callers at the HTTP or UI
boundary can catch the whole family in one place.
"""

from __future__ import annotations

from typing import Optional


class SalesReportError(Exception):
    """Base class for every sales report error."""


class InvalidFilter(SalesReportError, ValueError):
    """A filter value supplied by the user could not be parsed.

    ``field`` names the offending query parameter (``startDate`` or
    ``endDate``), so the boundary can report it back verbatim.
    """

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"Invalid {field} format")


class AggregationFailed(SalesReportError):
    """The storage collaborator failed while matching or grouping records."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Sales aggregation failed: {cause}")


class DataLoadError(SalesReportError):
    """A sales data file could not be loaded into a records table."""
