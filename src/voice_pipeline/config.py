"""Configuration helpers and Settings container.

This module provides a small `Settings` dataclass and `get_settings` which
reads the Feishu credentials and per-dataset Bitable table coordinates from
the environment (including a check that the app credentials are present).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import os

from dotenv import load_dotenv

# Explicitly load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

# Dataset endpoints served by the upstream Bitable tables.
ENDPOINTS = (
    "records",
    "DOUYIN",
    "XHS",
    "XHSHCP",
    "XHSNONHCP",
    "XHSKOL",
    "XHSUGC",
    "XHSKOC",
    "XHSDistribution",
    "DOUYINMoleculeKOL",
)


@dataclass(frozen=True)
class BitableTable:
    """Coordinates of one Feishu Bitable table.

    Attributes:
        app_id: Bitable app token (the id after `apps/` in the API path).
        table_id: Table id inside that Bitable app.
    """
    app_id: str
    table_id: str


@dataclass(frozen=True)
class Settings:
    """Container for pipeline configuration read from the environment.

    Attributes:
        feishu_app_id: Feishu application id used to obtain access tokens.
        feishu_app_secret: Feishu application secret.
        tables: Configured Bitable tables keyed by dataset endpoint.
        mongo_uri: MongoDB connection URI for raw snapshots.
        mongo_db: Target MongoDB database name.
        request_timeout: Timeout in seconds for Feishu HTTP calls.
    """
    feishu_app_id: str
    feishu_app_secret: str
    tables: dict[str, BitableTable] = field(default_factory=dict)
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "voice"
    request_timeout: float = 30.0

    def table(self, endpoint: str) -> BitableTable:
        """Return the Bitable table configured for `endpoint`.

        Raises:
            RuntimeError: if the endpoint has no table configured.
        """
        try:
            return self.tables[endpoint]
        except KeyError:
            prefix = _env_prefix(endpoint)
            raise RuntimeError(
                f"No Bitable table configured for endpoint '{endpoint}'. "
                f"Set {prefix}BITABLE_APP_ID and {prefix}TABLE_ID in .env."
            ) from None


def _env_prefix(endpoint: str) -> str:
    """Return the environment variable prefix for an endpoint."""
    if endpoint == "records":
        return "FEISHU_"
    return f"FEISHU_{endpoint}_"


def _read_tables() -> dict[str, BitableTable]:
    tables: dict[str, BitableTable] = {}
    for endpoint in ENDPOINTS:
        prefix = _env_prefix(endpoint)
        app_id = os.getenv(f"{prefix}BITABLE_APP_ID", "").strip()
        table_id = os.getenv(f"{prefix}TABLE_ID", "").strip()
        if app_id and table_id:
            tables[endpoint] = BitableTable(app_id=app_id, table_id=table_id)
    return tables


def get_settings() -> Settings:
    """Read environment variables and return a frozen `Settings` object.

    Raises:
        RuntimeError: if `FEISHU_APP_ID` or `FEISHU_APP_SECRET` is not set.
    """
    app_id = os.getenv("FEISHU_APP_ID", "").strip()
    app_secret = os.getenv("FEISHU_APP_SECRET", "").strip()

    if not app_id or not app_secret:
        raise RuntimeError(
            "FEISHU_APP_ID and FEISHU_APP_SECRET are required. Set them in .env."
        )

    return Settings(
        feishu_app_id=app_id,
        feishu_app_secret=app_secret,
        tables=_read_tables(),
        mongo_uri=os.getenv("MONGO_URI", "mongodb://localhost:27017"),
        mongo_db=os.getenv("MONGO_DB", "voice"),
        request_timeout=float(os.getenv("FEISHU_TIMEOUT", "30")),
    )
