"""Seller analytics: per-batch review statistics merged into durable aggregates."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, UTC
from typing import Any

from .models import (
    ANALYTICS_DATA_VERSION,
    LifetimeStats,
    RecentStats,
    ReviewStats,
    SellerAnalyticsAggregate,
    SellerAnalyticsRecord,
    SellerMeta,
)
from .storage.base import AnalyticsNotFoundError, AnalyticsStorage

logger = logging.getLogger(__name__)

# Average month length used for tenure.
DAYS_PER_MONTH = 30.44
RECENT_WINDOW_DAYS = 30

# Rating scale is 0-10. Negative: <= 5, positive: >= 9, 6-8 neutral.
# These thresholds are shared with the storefront badges; do not change.
NEGATIVE_MAX_RATING = 5
POSITIVE_MIN_RATING = 9
PERFECT_RATING = 10

_REVIEW_DATE_FIELDS = ("reviewDate", "date", "created")


def _now(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(UTC)
    return now if now.tzinfo else now.replace(tzinfo=UTC)


def to_iso(value: datetime) -> str:
    """Format a timestamp as UTC ISO-8601 with millisecond precision."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO string or a Unix-seconds number into an aware UTC datetime."""
    if isinstance(value, bool) or value is None or value == "":
        return None

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value, UTC)
        except (OverflowError, OSError, ValueError):
            return None

    if not isinstance(value, str):
        return None

    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _raw_review_date(review: Mapping[str, Any]) -> Any:
    return next((review[k] for k in _REVIEW_DATE_FIELDS if review.get(k) is not None), None)


def parse_review_timestamp(review: Mapping[str, Any]) -> datetime | None:
    """Resolve a review's date from reviewDate, date or created, in that order.

    A falsy value (0, empty string) counts as no date.
    """
    if not (raw := _raw_review_date(review)):
        return None
    return parse_timestamp(raw)


def _round1(value: float) -> float:
    # Half-up, matching the figures already published for existing sellers.
    return math.floor(value * 10 + 0.5) / 10


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return value


def _valid_reviews(reviews: Any) -> list[Mapping[str, Any]]:
    if not isinstance(reviews, (list, tuple)):
        return []
    return [r for r in reviews if isinstance(r, Mapping)]


class _Tally:
    """Running rating and shipping counters shared by the lifetime and 30-day stats."""

    def __init__(self):
        self.positive = 0
        self.negative = 0
        self.perfect = 0
        self.sum_ratings = 0
        self.sum_days_to_arrive = 0
        self.with_shipping = 0

    def add(self, review: Mapping[str, Any]) -> None:
        if (rating := _number(review.get("rating"))) is not None:
            self.sum_ratings += rating
            if rating <= NEGATIVE_MAX_RATING:
                self.negative += 1
            elif rating >= POSITIVE_MIN_RATING:
                self.positive += 1
            if rating == PERFECT_RATING:
                self.perfect += 1

        days = _number(review.get("daysToArrive"))
        if days is not None and days >= 0:
            self.sum_days_to_arrive += days
            self.with_shipping += 1


def compute_review_stats(reviews: Any, newest_seen_before: str | None = None) -> ReviewStats:
    """
    Compute stats for a batch of raw reviews.

    The date range always spans the whole batch. Only reviews dated strictly
    after ``newest_seen_before`` are counted, so reviews folded into an earlier
    run are not counted twice. Undated reviews are counted.

    Args:
        reviews: Raw review dicts (rating, daysToArrive, reviewDate/date/created)
        newest_seen_before: ISO date of the newest review already counted

    Returns:
        ReviewStats for the batch (zeroed for empty or non-list input)
    """
    valid = _valid_reviews(reviews)
    if not valid:
        return ReviewStats()

    dated = [(review, _raw_review_date(review), parse_review_timestamp(review)) for review in valid]

    to_count = valid
    if cutoff := parse_timestamp(newest_seen_before):
        # Undated reviews are kept; a date that does not parse is dropped.
        to_count = [
            review
            for review, raw, when in dated
            if not raw or (when is not None and when > cutoff)
        ]

    timestamps = [when for _, _, when in dated if when is not None]

    tally = _Tally()
    for review in to_count:
        tally.add(review)

    return ReviewStats(
        review_count=len(to_count),
        positive_count=tally.positive,
        negative_count=tally.negative,
        perfect_score_count=tally.perfect,
        sum_ratings=tally.sum_ratings,
        sum_days_to_arrive=tally.sum_days_to_arrive,
        reviews_with_shipping_data=tally.with_shipping,
        oldest_review_date=to_iso(min(timestamps)) if timestamps else None,
        newest_review_date=to_iso(max(timestamps)) if timestamps else None,
    )


def compute_recent_30_days(reviews: Any, now: datetime | None = None) -> RecentStats:
    """Stats over reviews dated within the last 30 days, ignoring any dedup cursor."""
    since = _now(now) - timedelta(days=RECENT_WINDOW_DAYS)

    recent = []
    for review in _valid_reviews(reviews):
        when = parse_review_timestamp(review)
        if when is not None and when >= since:
            recent.append(review)

    if not recent:
        return RecentStats()

    tally = _Tally()
    for review in recent:
        tally.add(review)

    return RecentStats(
        review_count=len(recent),
        positive_count=tally.positive,
        negative_count=tally.negative,
        avg_rating=_round1(tally.sum_ratings / len(recent)),
        avg_days_to_arrive=(
            _round1(tally.sum_days_to_arrive / tally.with_shipping) if tally.with_shipping else None
        ),
    )


def calculate_tenure_months(oldest_review_date: str | None, now: datetime | None = None) -> int:
    """Whole months between the oldest review and now, never negative."""
    if not (oldest := parse_timestamp(oldest_review_date)):
        return 0
    months = (_now(now) - oldest).total_seconds() / (60 * 60 * 24 * DAYS_PER_MONTH)
    return max(0, math.floor(months + 0.5))


def _earliest(current: str | None, candidate: str | None) -> str | None:
    if not candidate:
        return current
    if not current:
        return candidate
    current_at, candidate_at = parse_timestamp(current), parse_timestamp(candidate)
    if current_at and candidate_at and candidate_at < current_at:
        return candidate
    return current


def _latest(current: str | None, candidate: str | None) -> str | None:
    if not candidate:
        return current
    if not current:
        return candidate
    current_at, candidate_at = parse_timestamp(current), parse_timestamp(candidate)
    if current_at and candidate_at and candidate_at > current_at:
        return candidate
    return current


def merge_analytics(
    existing: SellerAnalyticsRecord | None,
    new_stats: ReviewStats,
    seller_meta: SellerMeta,
    now: datetime | None = None,
) -> SellerAnalyticsRecord:
    """
    Fold a batch's stats into a seller's stored record.

    Counts are added. Averages are recomputed from running sums: the stored
    ``sumRatings``/``sumDaysToArrive`` when the record has them, otherwise
    reconstructed as average x denominator for records written before the sums
    were persisted. The review date range only ever widens.

    Args:
        existing: Previously stored record, or None for a new seller
        new_stats: Stats from compute_review_stats for this crawl
        seller_meta: Fresh seller metadata and 30-day window from the crawler

    Returns:
        A new SellerAnalyticsRecord; ``existing`` is not modified
    """
    now = _now(now)
    recent = seller_meta.recent_30_days

    if existing is None or existing.lifetime is None:
        return SellerAnalyticsRecord(
            seller_id=str(seller_meta.seller_id),
            seller_name=seller_meta.seller_name or "",
            seller_url=seller_meta.seller_url or "",
            image_url=seller_meta.image_url or "",
            last_seen_at=to_iso(now),
            lifetime=LifetimeStats(
                total_reviews=new_stats.review_count,
                positive_count=new_stats.positive_count,
                negative_count=new_stats.negative_count,
                perfect_score_count=new_stats.perfect_score_count,
                avg_rating=(
                    _round1(new_stats.sum_ratings / new_stats.review_count)
                    if new_stats.review_count > 0
                    else None
                ),
                oldest_review_seen=new_stats.oldest_review_date,
                newest_review_seen=new_stats.newest_review_date,
                tenure_months=calculate_tenure_months(new_stats.oldest_review_date, now),
                avg_days_to_arrive=(
                    _round1(new_stats.sum_days_to_arrive / new_stats.reviews_with_shipping_data)
                    if new_stats.reviews_with_shipping_data > 0
                    else None
                ),
                reviews_with_shipping_data=new_stats.reviews_with_shipping_data,
                sum_ratings=new_stats.sum_ratings,
                sum_days_to_arrive=new_stats.sum_days_to_arrive,
            ),
            recent_30_days=recent or RecentStats(),
        )

    old = existing.lifetime
    total_reviews = old.total_reviews + new_stats.review_count
    with_shipping = old.reviews_with_shipping_data + new_stats.reviews_with_shipping_data

    existing_sum_ratings = old.sum_ratings
    if existing_sum_ratings is None:
        existing_sum_ratings = old.avg_rating * old.total_reviews if old.avg_rating is not None else 0
    existing_sum_days = old.sum_days_to_arrive
    if existing_sum_days is None:
        existing_sum_days = (
            old.avg_days_to_arrive * old.reviews_with_shipping_data
            if old.avg_days_to_arrive is not None
            else 0
        )
    sum_ratings = existing_sum_ratings + new_stats.sum_ratings
    sum_days = existing_sum_days + new_stats.sum_days_to_arrive

    oldest = _earliest(old.oldest_review_seen, new_stats.oldest_review_date)
    newest = _latest(old.newest_review_seen, new_stats.newest_review_date)

    return SellerAnalyticsRecord(
        seller_id=str(seller_meta.seller_id),
        seller_name=seller_meta.seller_name or existing.seller_name or "",
        seller_url=seller_meta.seller_url or existing.seller_url or "",
        image_url=seller_meta.image_url or existing.image_url or "",
        last_seen_at=to_iso(now),
        lifetime=LifetimeStats(
            total_reviews=total_reviews,
            positive_count=old.positive_count + new_stats.positive_count,
            negative_count=old.negative_count + new_stats.negative_count,
            perfect_score_count=old.perfect_score_count + new_stats.perfect_score_count,
            avg_rating=_round1(sum_ratings / total_reviews) if total_reviews > 0 else None,
            oldest_review_seen=oldest,
            newest_review_seen=newest,
            tenure_months=calculate_tenure_months(oldest, now),
            avg_days_to_arrive=_round1(sum_days / with_shipping) if with_shipping > 0 else None,
            reviews_with_shipping_data=with_shipping,
            sum_ratings=sum_ratings,
            sum_days_to_arrive=sum_days,
        ),
        recent_30_days=recent or existing.recent_30_days or RecentStats(),
    )


def compute_seller_analytics(
    seller_id: str,
    reviews: Any,
    seller_meta: SellerMeta | None = None,
    existing: SellerAnalyticsRecord | None = None,
    now: datetime | None = None,
) -> SellerAnalyticsRecord:
    """Update one seller's record from a freshly scraped review batch."""
    now = _now(now)
    newest_seen_before = existing.lifetime.newest_review_seen if existing and existing.lifetime else None

    new_stats = compute_review_stats(reviews, newest_seen_before)
    recent = compute_recent_30_days(reviews, now)

    meta = replace(
        seller_meta or SellerMeta(seller_id=str(seller_id)),
        seller_id=str(seller_id),
        recent_30_days=recent,
    )
    return merge_analytics(existing, new_stats, meta, now)


def empty_aggregate(now: datetime | None = None) -> SellerAnalyticsAggregate:
    return SellerAnalyticsAggregate(
        generated_at=to_iso(_now(now)),
        sellers=[],
        total_sellers=0,
        data_version=ANALYTICS_DATA_VERSION,
    )


def load_existing_analytics(storage: AnalyticsStorage) -> SellerAnalyticsAggregate:
    """
    Load the stored aggregate, or an empty one when nothing usable is stored.

    Missing data is the normal first-run case. Any other storage failure
    propagates to the caller.
    """
    try:
        data = storage.read_seller_analytics()
    except AnalyticsNotFoundError:
        logger.info("No stored seller analytics found, starting fresh")
        return empty_aggregate()

    if not isinstance(data, dict) or not isinstance(data.get("sellers"), list):
        logger.warning("Stored seller analytics has no sellers list, starting fresh")
        return empty_aggregate()

    return SellerAnalyticsAggregate.from_dict(data)


def update_analytics_aggregate(
    existing_aggregate: SellerAnalyticsAggregate | None,
    seller_records: Mapping[str, SellerAnalyticsRecord] | Iterable[tuple[str, SellerAnalyticsRecord]],
    now: datetime | None = None,
) -> SellerAnalyticsAggregate:
    """
    Upsert this run's seller records into the aggregate.

    Sellers not in this run are kept as they are. The result is sorted by
    lifetime total reviews, highest first.
    """
    by_id: dict[str, SellerAnalyticsRecord] = {}
    if existing_aggregate is not None:
        for seller in existing_aggregate.sellers:
            by_id[str(seller.seller_id)] = seller

    items = seller_records.items() if isinstance(seller_records, Mapping) else seller_records
    for seller_id, record in items:
        by_id[str(seller_id)] = record

    sellers = sorted(
        by_id.values(),
        key=lambda s: s.lifetime.total_reviews if s.lifetime else 0,
        reverse=True,
    )
    return SellerAnalyticsAggregate(
        generated_at=to_iso(_now(now)),
        sellers=sellers,
        total_sellers=len(sellers),
        data_version=ANALYTICS_DATA_VERSION,
    )
