from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List


DATA_DIR = Path(__file__).resolve().parents[1] / "data"
DEFAULT_DATA_PATH = DATA_DIR / "sample_sales.csv"
DEFAULT_API_BASE_URL = "http://localhost:8000/api"
DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@dataclass(frozen=True)
class Settings:
    data_path: Path = DEFAULT_DATA_PATH
    api_base_url: str = DEFAULT_API_BASE_URL
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"
    http_timeout: float = 30.0
    use_api: bool = False


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def load_settings(environ: dict | None = None) -> Settings:
    """Build ``Settings`` from ``SALES_*`` environment variables.

    Unset or blank variables fall back to the defaults above; a timeout that
    does not parse as a number keeps the default as well.
    """
    env = os.environ if environ is None else environ

    data_path = (env.get("SALES_DATA_PATH") or "").strip()
    api_base_url = (env.get("SALES_API_BASE_URL") or "").strip()
    cors = _split_csv(env.get("SALES_CORS_ORIGINS") or "")
    log_level = (env.get("SALES_LOG_LEVEL") or "").strip().upper()

    http_timeout = 30.0
    raw_timeout = env.get("SALES_HTTP_TIMEOUT")
    if raw_timeout:
        try:
            http_timeout = float(raw_timeout)
        except ValueError:
            http_timeout = 30.0

    return Settings(
        data_path=Path(data_path) if data_path else DEFAULT_DATA_PATH,
        api_base_url=(api_base_url or DEFAULT_API_BASE_URL).rstrip("/"),
        cors_origins=cors or list(DEFAULT_CORS_ORIGINS),
        log_level=log_level or "INFO",
        http_timeout=http_timeout,
        use_api=(env.get("SALES_USE_API") or "").strip().lower() in {"1", "true", "yes"},
    )


def configure_logging(level: str = "INFO") -> None:
    """Install one stream handler on the root logger (idempotent)."""
    root = logging.getLogger()
    root.setLevel(level)
    if any(getattr(h, "_sales_report", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._sales_report = True  # type: ignore[attr-defined]
    root.addHandler(handler)
