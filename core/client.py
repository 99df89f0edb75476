"""HTTP-backed sales store used by the dashboard against the report API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from core.filters import MatchPredicate


logger = logging.getLogger(__name__)

SALES_BY_PRODUCT_CUSTOMER_PATH = "/reports/sales/sales-by-product-customer"


class HttpSalesStore:
    """Asks the report API to match and group records.

    Non-2xx responses raise ``httpx.HTTPStatusError``; the aggregation
    engine turns that into ``AggregationFailed``. No retries.
    """

    def __init__(self, base_url: str, *, timeout: float = 30.0, client: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        # an injected client is shared and closed by close(); otherwise each request opens its own
        self.client = client

    def _get(self, url: str, params: Dict[str, str]) -> httpx.Response:
        if self.client is not None:
            return self.client.get(url, params=params)
        with httpx.Client(timeout=self.timeout) as client:
            return client.get(url, params=params)

    def aggregate(self, predicate: MatchPredicate) -> List[Dict[str, Any]]:
        url = f"{self.base_url}{SALES_BY_PRODUCT_CUSTOMER_PATH}"
        params = predicate.to_params()
        try:
            response = self._get(url, params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Sales report request failed: {str(e)}")
            raise
        payload = response.json()
        if not isinstance(payload, list):
            raise ValueError(f"Expected a JSON array from {url}, got {type(payload).__name__}")
        return [item for item in payload if isinstance(item, dict)]

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
