"""Aggregation pipelines handed to the storage collaborator.

These builders describe *what* the store must compute; the store decides
how. Grouping keys compare by exact, case-sensitive string equality and
are not trimmed here.
"""

from __future__ import annotations

from typing import Any, Dict, List

from core.filters import MatchPredicate

Stage = Dict[str, Any]


def build_sales_pipeline(predicate: MatchPredicate) -> List[Stage]:
    return [
        {"$match": predicate.to_match()},
        {
            "$group": {
                "_id": {"product": "$product", "customer": "$customer"},
                "totalSales": {"$sum": "$amount"},
                "salesCount": {"$sum": 1},
            }
        },
        {
            "$project": {
                "_id": 0,
                "product": "$_id.product",
                "customer": "$_id.customer",
                "totalSales": 1,
                "salesCount": 1,
            }
        },
        {"$sort": {"product": 1, "customer": 1}},
    ]


def build_region_pipeline(region: str) -> List[Stage]:
    return [
        {"$match": {"region": region}},
        {"$group": {"_id": "$salesperson", "totalSales": {"$sum": "$amount"}}},
        {"$project": {"_id": 0, "salesperson": "$_id", "totalSales": 1}},
        {"$sort": {"salesperson": 1}},
    ]
