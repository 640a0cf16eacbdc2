"""Analytics crawl cycle: fold scraped review batches into the stored aggregate."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, UTC
from pathlib import Path
from time import perf_counter
from typing import Any

from .analytics import compute_seller_analytics, load_existing_analytics, update_analytics_aggregate
from .models import SellerAnalyticsAggregate, SellerAnalyticsRecord, SellerMeta
from .storage import AnalyticsStorage

logger = logging.getLogger(__name__)


@dataclass
class SellerBatch:
    """Reviews scraped for one seller in this crawl, with the seller's current metadata."""

    seller_id: str
    reviews: list[dict] = field(default_factory=list)
    seller_name: str | None = None
    seller_url: str | None = None
    image_url: str | None = None

    @property
    def meta(self) -> SellerMeta:
        return SellerMeta(
            seller_id=self.seller_id,
            seller_name=self.seller_name,
            seller_url=self.seller_url,
            image_url=self.image_url,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SellerBatch:
        reviews = data.get("reviews")
        return cls(
            seller_id=str(data["sellerId"]),
            reviews=reviews if isinstance(reviews, list) else [],
            seller_name=data.get("sellerName"),
            seller_url=data.get("sellerUrl"),
            image_url=data.get("imageUrl"),
        )


def load_batches(path: Path) -> list[SellerBatch]:
    """
    Read a crawler hand-off file.

    The file is a JSON list of ``{sellerId, reviews, sellerName, sellerUrl, imageUrl}``.
    Entries without a seller id are skipped.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON list of seller batches in {path}")

    batches = []
    for entry in data:
        if not isinstance(entry, dict) or entry.get("sellerId") in (None, ""):
            logger.warning(f"Skipping batch entry without sellerId: {entry!r:.80}")
            continue
        batches.append(SellerBatch.from_dict(entry))
    return batches


def run_analytics_cycle(
    storage: AnalyticsStorage,
    batches: list[SellerBatch],
    now: datetime | None = None,
) -> SellerAnalyticsAggregate:
    """
    Run one aggregation pass over this crawl's seller batches.

    Loads the aggregate once, merges every seller sequentially, then rewrites
    the whole document. Callers must not run two cycles against the same
    storage at once, or one run's updates will be lost.

    Args:
        storage: Where the aggregate is read from and written back to
        batches: One batch per seller scraped in this cycle
        now: Clock override for the run

    Returns:
        The aggregate that was persisted
    """
    now = now or datetime.now(UTC)
    start = perf_counter()

    aggregate = load_existing_analytics(storage)
    existing_by_id = {s.seller_id: s for s in aggregate.sellers}

    records: dict[str, SellerAnalyticsRecord] = {}
    failed = 0
    for batch in batches:
        try:
            records[batch.seller_id] = compute_seller_analytics(
                seller_id=batch.seller_id,
                reviews=batch.reviews,
                seller_meta=batch.meta,
                existing=records.get(batch.seller_id) or existing_by_id.get(batch.seller_id),
                now=now,
            )
        except Exception as e:
            failed += 1
            logger.error(f"Seller {batch.seller_id} analytics failed: {e}")

    updated = update_analytics_aggregate(aggregate, records, now)
    storage.write_seller_analytics(updated.to_dict())

    duration = perf_counter() - start
    logger.info(
        f"Analytics cycle: {len(records)} sellers updated, {failed} failed, "
        f"{updated.total_sellers} total in {duration:.2f}s"
    )
    return updated
