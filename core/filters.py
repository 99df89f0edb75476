from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from core.errors import InvalidFilter


FILTER_KEYS = ("startDate", "endDate", "product", "customer")


@dataclass(frozen=True)
class MatchPredicate:
    """Constraints selecting which stored sales records get aggregated.

    ``None`` means the constraint was not supplied; it is left out of the
    match document entirely rather than turned into a wildcard.
    """

    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    product: Optional[str] = None
    customer: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.date_from is None and self.date_to is None and self.product is None and self.customer is None

    def to_match(self) -> Dict[str, Any]:
        """Minimal match document for the store; ``{}`` selects every record."""
        match: Dict[str, Any] = {}
        if self.date_from is not None or self.date_to is not None:
            match["date"] = {}
            if self.date_from is not None:
                match["date"]["$gte"] = self.date_from
            if self.date_to is not None:
                match["date"]["$lte"] = self.date_to
        if self.product is not None:
            match["product"] = self.product
        if self.customer is not None:
            match["customer"] = self.customer
        return match

    def to_params(self) -> Dict[str, str]:
        """Query parameters understood by ``normalize_filters`` on the server side."""
        params: Dict[str, str] = {}
        if self.date_from is not None:
            params["startDate"] = self.date_from.isoformat()
        if self.date_to is not None:
            params["endDate"] = self.date_to.isoformat()
        if self.product is not None:
            params["product"] = self.product
        if self.customer is not None:
            params["customer"] = self.customer
        return params


def _clean(value: object) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _date_text(value: object) -> Optional[str]:
    # only a missing or empty date is "not supplied"; whitespace is a bad value
    if value is None or value == "":
        return None
    return str(value)


def parse_filter_date(value: str, field: str) -> datetime:
    """Parse an ISO-8601 date or timestamp into an aware UTC datetime.

    Date-only values resolve to midnight UTC, so ``endDate=2023-01-31``
    includes records stamped exactly at midnight of that day and nothing
    later.
    """
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise InvalidFilter(field) from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_filters(raw: Optional[Mapping[str, object]]) -> MatchPredicate:
    """Turn raw, possibly absent filter inputs into a ``MatchPredicate``.

    Raises ``InvalidFilter`` naming ``startDate`` or ``endDate`` when a
    supplied date does not parse. An inverted range is not an error.
    """
    raw = raw or {}

    start = _date_text(raw.get("startDate"))
    end = _date_text(raw.get("endDate"))

    date_from = parse_filter_date(start, "startDate") if start is not None else None
    date_to = parse_filter_date(end, "endDate") if end is not None else None

    return MatchPredicate(
        date_from=date_from,
        date_to=date_to,
        product=_clean(raw.get("product")),
        customer=_clean(raw.get("customer")),
    )
