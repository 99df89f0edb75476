"""Core (UI-agnostic) sales report logic.

This package contains:
- filter normalization (raw query strings -> match predicate)
- aggregation pipelines and the pandas-backed sales store
- product/customer aggregation and deterministic ordering
- presentation view models and chart helpers (Altair -> Vega-Lite spec dict)
- the view state controller driving fetch cycles
"""
