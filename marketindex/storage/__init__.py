"""Storage backend registry.

Both backends hold the same JSON documents, so the aggregation code never
needs to know which one it is talking to.
"""

from __future__ import annotations

from pathlib import Path

from .base import (
    PRICING_SUMMARY_KEY,
    SELLER_ANALYTICS_KEY,
    AnalyticsNotFoundError,
    AnalyticsStorage,
)
from .json_file import JsonFileStorage
from .sqlite import SqliteStorage

__all__ = [
    "AnalyticsNotFoundError",
    "AnalyticsStorage",
    "JsonFileStorage",
    "SqliteStorage",
    "PRICING_SUMMARY_KEY",
    "SELLER_ANALYTICS_KEY",
    "get_storage",
    "list_storages",
]

STORAGES: dict[str, type[AnalyticsStorage]] = {
    JsonFileStorage.name: JsonFileStorage,
    SqliteStorage.name: SqliteStorage,
}


def get_storage(name: str, path: Path | str | None = None) -> AnalyticsStorage:
    """Get a storage backend instance by name.

    ``path`` is the output directory for ``json`` and the database file for ``sqlite``.
    """
    if name not in STORAGES:
        available = ", ".join(STORAGES.keys())
        raise ValueError(f"Unknown storage '{name}'. Available: {available}")
    return STORAGES[name](Path(path) if path else None)


def list_storages() -> list[str]:
    """List all available storage backend names."""
    return list(STORAGES.keys())
