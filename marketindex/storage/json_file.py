"""Filesystem backend: one JSON file per document."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from .base import DEFAULT_OUTPUT_DIR, AnalyticsNotFoundError, AnalyticsStorage

logger = logging.getLogger(__name__)

_SAFE_KEY_RE = re.compile(r"[^a-z0-9_.-]+")


class JsonFileStorage(AnalyticsStorage):
    """Stores each document as ``<output_dir>/<key>.json``."""

    name = "json"

    def __init__(self, output_dir: Path | None = None):
        self.output_dir = Path(output_dir) if output_dir else DEFAULT_OUTPUT_DIR

    def path_for(self, key: str) -> Path:
        safe = _SAFE_KEY_RE.sub("_", key.strip().lower()) or "document"
        return self.output_dir / f"{safe}.json"

    def read_document(self, key: str) -> dict:
        path = self.path_for(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise AnalyticsNotFoundError(f"No document '{key}' at {path}") from e
        return json.loads(text)

    def write_document(self, key: str, data: dict) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        # Write beside the target then swap so readers never see a partial file.
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(path)
        logger.info(f"Saved '{key}' to {path}")
