from __future__ import annotations

import logging
import math
import numbers
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Union

import numpy as np
import pandas as pd

from core.errors import DataLoadError
from core.filters import MatchPredicate
from core.pipeline import Stage, build_region_pipeline, build_sales_pipeline


logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("product", "customer", "amount", "date")
IDENTITY_COLUMNS = ("product", "customer", "region", "salesperson")

SALES_COLUMNS = {
    "Product": "product",
    "Product Name": "product",
    "Customer": "customer",
    "Customer Name": "customer",
    "Amount": "amount",
    "Sale Amount": "amount",
    "Date": "date",
    "Sale Date": "date",
    "Region": "region",
    "Salesperson": "salesperson",
    "Sales Person": "salesperson",
}


class SalesStore(Protocol):
    """Storage collaborator: matches records and groups them by product/customer."""

    def aggregate(self, predicate: MatchPredicate) -> Sequence[Mapping[str, Any]]:
        ...


# ---------------- Conversions ----------------
def to_number(value: object) -> Union[int, float]:
    """Total numeric conversion used wherever a display number is needed.

    ``None``, booleans, NaN/inf and strings that do not parse become ``0``.
    Integers stay integers; numeric strings are parsed as floats.
    """
    if value is None or isinstance(value, (bool, np.bool_)):
        return 0
    if isinstance(value, Decimal):
        value = float(value)
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real):
        out = float(value)
        return out if math.isfinite(out) else 0
    if isinstance(value, str):
        try:
            out = float(value.strip())
        except ValueError:
            return 0
        return out if math.isfinite(out) else 0
    return 0


def to_count(value: object) -> int:
    return int(to_number(value))


def _py(value: object) -> object:
    """numpy/pandas scalars -> plain Python, missing -> None."""
    if value is None:
        return None
    if isinstance(value, (list, dict)):
        return value
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(value, np.generic):
        return value.item()
    return value


# ---------------- Loading ----------------
def coerce_identity(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    """Identity columns as object dtype with ``None`` for missing; values are not trimmed."""
    for col in cols:
        if col in df.columns:
            df[col] = df[col].astype(object).map(lambda v: None if pd.isna(v) else str(v))
    return df


def numericize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


def prepare_sales_frame(df: pd.DataFrame) -> pd.DataFrame:
    df = df.rename(columns={c: SALES_COLUMNS.get(str(c).strip(), str(c).strip()) for c in df.columns})
    df = df.loc[:, ~df.columns.duplicated()]
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise DataLoadError(f"Sales data is missing required columns: {', '.join(missing)}")
    df = df.copy()
    df = coerce_identity(df, IDENTITY_COLUMNS)
    df = numericize(df, ["amount"])
    df["date"] = pd.to_datetime(df["date"], errors="coerce", utc=True)
    return df.reset_index(drop=True)


def load_sales_records(path: Union[str, Path]) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise DataLoadError(f"Sales data file not found: {path}")
    suffix = path.suffix.lower()
    try:
        if suffix == ".csv":
            raw = pd.read_csv(path, dtype=str)
        elif suffix in {".xlsx", ".xls"}:
            raw = pd.read_excel(path)
        elif suffix == ".json":
            raw = pd.read_json(path, orient="records")
        else:
            raise DataLoadError(f"Unsupported sales data format: {path.suffix}")
    except DataLoadError:
        raise
    except Exception as exc:
        raise DataLoadError(f"Could not read sales data from {path}: {exc}") from exc
    df = prepare_sales_frame(raw)
    logger.info("Loaded %d sales records from %s", len(df), path)
    return df


# ---------------- Pipeline execution ----------------
def _field_ref(expr: object) -> Optional[str]:
    if isinstance(expr, str) and expr.startswith("$"):
        return expr[1:]
    return None


def _match_mask(df: pd.DataFrame, match: Mapping[str, Any]) -> pd.Series:
    mask = pd.Series(True, index=df.index)
    for field, cond in match.items():
        if field not in df.columns:
            # absent field never equals or falls inside a range
            return pd.Series(False, index=df.index)
        col = df[field]
        ops = cond if isinstance(cond, dict) else {"$eq": cond}
        for op, value in ops.items():
            if op == "$eq":
                hit = col == value
            elif op == "$gte":
                hit = col >= pd.Timestamp(value) if field == "date" else col >= value
            elif op == "$lte":
                hit = col <= pd.Timestamp(value) if field == "date" else col <= value
            else:
                raise ValueError(f"Unsupported match operator: {op}")
            mask &= hit.fillna(False).astype(bool)
    return mask


def _group(df: pd.DataFrame, spec: Mapping[str, Any]) -> List[Dict[str, Any]]:
    key_spec = spec["_id"]
    if isinstance(key_spec, dict):
        keys = {name: _field_ref(expr) for name, expr in key_spec.items()}
    else:
        keys = {"_id": _field_ref(key_spec)}
    accumulators = {name: acc for name, acc in spec.items() if name != "_id"}
    if df.empty:
        return []

    work = pd.DataFrame(index=df.index)
    for name, field in keys.items():
        work[name] = df[field] if field in df.columns else None
    for name, acc in accumulators.items():
        if "$sum" not in acc:
            raise ValueError(f"Unsupported accumulator for {name}: {acc}")
        source = _field_ref(acc["$sum"])
        if source is None:
            work[name] = acc["$sum"]
        elif source in df.columns:
            # non-numeric values do not contribute to a sum
            work[name] = pd.to_numeric(df[source], errors="coerce")
        else:
            work[name] = 0

    grouped = (
        work.groupby(list(keys), dropna=False, sort=False)[list(accumulators)]
        .sum(min_count=0)
        .reset_index()
    )

    docs: List[Dict[str, Any]] = []
    for record in grouped.to_dict(orient="records"):
        key_values = {name: _py(record[name]) for name in keys}
        doc: Dict[str, Any] = {"_id": key_values if isinstance(key_spec, dict) else key_values["_id"]}
        for name in accumulators:
            doc[name] = _py(record[name])
        docs.append(doc)
    return docs


def _resolve(doc: Mapping[str, Any], path: str) -> Any:
    current: Any = doc
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def _project(docs: List[Dict[str, Any]], spec: Mapping[str, Any]) -> List[Dict[str, Any]]:
    out = []
    for doc in docs:
        projected = {}
        for name, expr in spec.items():
            if expr == 0:
                continue
            ref = _field_ref(expr)
            projected[name] = _resolve(doc, ref) if ref else doc.get(name)
        out.append(projected)
    return out


def _sort_key(value: object):
    # nulls first, then numbers, then strings
    if value is None:
        return (0, 0)
    if isinstance(value, numbers.Number):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    return (3, str(value))


def _sort(docs: List[Dict[str, Any]], spec: Mapping[str, int]) -> List[Dict[str, Any]]:
    out = list(docs)
    for field, direction in reversed(list(spec.items())):
        out.sort(key=lambda d: _sort_key(d.get(field)), reverse=direction < 0)
    return out


def run_pipeline(df: pd.DataFrame, stages: Sequence[Stage]) -> List[Dict[str, Any]]:
    """Execute ``$match``/``$group``/``$project``/``$sort`` stages against a records frame."""
    frame: Optional[pd.DataFrame] = df
    docs: List[Dict[str, Any]] = []
    for stage in stages:
        (op, spec), = stage.items()
        if op == "$match":
            if frame is None:
                raise ValueError("$match after $group is not supported")
            frame = frame[_match_mask(frame, spec)]
            continue
        if frame is not None:
            if op == "$group":
                docs = _group(frame, spec)
                frame = None
                continue
            docs = [{k: _py(v) for k, v in r.items()} for r in frame.to_dict(orient="records")]
            frame = None
        if op == "$project":
            docs = _project(docs, spec)
        elif op == "$sort":
            docs = _sort(docs, spec)
        elif op == "$group":
            docs = _group(pd.DataFrame(docs), spec)
        else:
            raise ValueError(f"Unsupported pipeline stage: {op}")
    if frame is not None:
        return [{k: _py(v) for k, v in r.items()} for r in frame.to_dict(orient="records")]
    return docs


class DataFrameSalesStore:
    """In-memory sales collection backed by a pandas DataFrame."""

    def __init__(self, records: pd.DataFrame):
        self.records = records

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "DataFrameSalesStore":
        return cls(load_sales_records(path))

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "DataFrameSalesStore":
        frame = pd.DataFrame(list(records))
        if frame.empty:
            frame = pd.DataFrame(columns=list(REQUIRED_COLUMNS))
        return cls(prepare_sales_frame(frame))

    def run(self, stages: Sequence[Stage]) -> List[Dict[str, Any]]:
        return run_pipeline(self.records, stages)

    def aggregate(self, predicate: MatchPredicate) -> List[Dict[str, Any]]:
        return self.run(build_sales_pipeline(predicate))

    def distinct(self, field: str) -> List[Any]:
        if field not in self.records.columns:
            return []
        values = {_py(v) for v in self.records[field].tolist()}
        return sorted((v for v in values if v is not None), key=_sort_key)

    def sales_by_region(self, region: str) -> List[Dict[str, Any]]:
        return self.run(build_region_pipeline(region))
