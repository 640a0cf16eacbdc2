"""Data models for quantity parsing and seller analytics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

ANALYTICS_DATA_VERSION = 1


def _int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


def _float_or_none(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


@dataclass(frozen=True)
class ParsedQuantity:
    """A quantity extracted from a free-text variant description."""

    qty: float
    unit: str

    def to_dict(self) -> dict:
        return {"qty": self.qty, "unit": self.unit}


@dataclass
class ReviewStats:
    """Incremental statistics for one batch of scraped reviews."""

    review_count: int = 0
    positive_count: int = 0
    negative_count: int = 0
    perfect_score_count: int = 0
    sum_ratings: float = 0
    sum_days_to_arrive: float = 0
    reviews_with_shipping_data: int = 0
    oldest_review_date: str | None = None
    newest_review_date: str | None = None

    def to_dict(self) -> dict:
        return {
            "reviewCount": self.review_count,
            "positiveCount": self.positive_count,
            "negativeCount": self.negative_count,
            "perfectScoreCount": self.perfect_score_count,
            "sumRatings": self.sum_ratings,
            "sumDaysToArrive": self.sum_days_to_arrive,
            "reviewsWithShippingData": self.reviews_with_shipping_data,
            "oldestReviewDate": self.oldest_review_date,
            "newestReviewDate": self.newest_review_date,
        }


@dataclass
class RecentStats:
    """Rolling 30-day window, recomputed from the full batch on every crawl."""

    review_count: int = 0
    positive_count: int = 0
    negative_count: int = 0
    avg_rating: float | None = None
    avg_days_to_arrive: float | None = None

    def to_dict(self) -> dict:
        return {
            "reviewCount": self.review_count,
            "positiveCount": self.positive_count,
            "negativeCount": self.negative_count,
            "avgRating": self.avg_rating,
            "avgDaysToArrive": self.avg_days_to_arrive,
        }

    @classmethod
    def from_dict(cls, data: Any) -> RecentStats | None:
        if not isinstance(data, dict):
            return None
        return cls(
            review_count=_int(data.get("reviewCount")),
            positive_count=_int(data.get("positiveCount")),
            negative_count=_int(data.get("negativeCount")),
            avg_rating=_float_or_none(data.get("avgRating")),
            avg_days_to_arrive=_float_or_none(data.get("avgDaysToArrive")),
        )


@dataclass
class LifetimeStats:
    """Cumulative per-seller totals, only ever grown by merges."""

    total_reviews: int = 0
    positive_count: int = 0
    negative_count: int = 0
    perfect_score_count: int = 0
    avg_rating: float | None = None
    oldest_review_seen: str | None = None
    newest_review_seen: str | None = None
    tenure_months: int = 0
    avg_days_to_arrive: float | None = None
    reviews_with_shipping_data: int = 0
    # Raw running sums; None on records written before they were persisted.
    sum_ratings: float | None = None
    sum_days_to_arrive: float | None = None

    def to_dict(self) -> dict:
        data = {
            "totalReviews": self.total_reviews,
            "positiveCount": self.positive_count,
            "negativeCount": self.negative_count,
            "perfectScoreCount": self.perfect_score_count,
            "avgRating": self.avg_rating,
            "oldestReviewSeen": self.oldest_review_seen,
            "newestReviewSeen": self.newest_review_seen,
            "tenureMonths": self.tenure_months,
            "avgDaysToArrive": self.avg_days_to_arrive,
            "reviewsWithShippingData": self.reviews_with_shipping_data,
        }
        if self.sum_ratings is not None:
            data["sumRatings"] = self.sum_ratings
        if self.sum_days_to_arrive is not None:
            data["sumDaysToArrive"] = self.sum_days_to_arrive
        return data

    @classmethod
    def from_dict(cls, data: Any) -> LifetimeStats | None:
        if not isinstance(data, dict):
            return None
        return cls(
            total_reviews=_int(data.get("totalReviews")),
            positive_count=_int(data.get("positiveCount")),
            negative_count=_int(data.get("negativeCount")),
            perfect_score_count=_int(data.get("perfectScoreCount")),
            avg_rating=_float_or_none(data.get("avgRating")),
            oldest_review_seen=_str_or_none(data.get("oldestReviewSeen")),
            newest_review_seen=_str_or_none(data.get("newestReviewSeen")),
            tenure_months=_int(data.get("tenureMonths")),
            avg_days_to_arrive=_float_or_none(data.get("avgDaysToArrive")),
            reviews_with_shipping_data=_int(data.get("reviewsWithShippingData")),
            sum_ratings=_float_or_none(data.get("sumRatings")),
            sum_days_to_arrive=_float_or_none(data.get("sumDaysToArrive")),
        )


@dataclass
class SellerMeta:
    """Seller metadata supplied by the crawler alongside a review batch."""

    seller_id: str
    seller_name: str | None = None
    seller_url: str | None = None
    image_url: str | None = None
    recent_30_days: RecentStats | None = None


@dataclass
class SellerAnalyticsRecord:
    """Durable analytics for one seller."""

    seller_id: str
    seller_name: str = ""
    seller_url: str = ""
    image_url: str = ""
    last_seen_at: str | None = None
    lifetime: LifetimeStats | None = None
    recent_30_days: RecentStats = field(default_factory=RecentStats)

    def to_dict(self) -> dict:
        return {
            "sellerId": self.seller_id,
            "sellerName": self.seller_name,
            "sellerUrl": self.seller_url,
            "imageUrl": self.image_url,
            "lastSeenAt": self.last_seen_at,
            "lifetime": self.lifetime.to_dict() if self.lifetime else None,
            "recent30Days": self.recent_30_days.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> SellerAnalyticsRecord | None:
        """Build a record from a stored document; None when it has no seller id."""
        if not isinstance(data, dict):
            return None
        seller_id = data.get("sellerId")
        if seller_id is None or seller_id == "":
            return None
        return cls(
            seller_id=str(seller_id),
            seller_name=data.get("sellerName") or "",
            seller_url=data.get("sellerUrl") or "",
            image_url=data.get("imageUrl") or "",
            last_seen_at=_str_or_none(data.get("lastSeenAt")),
            lifetime=LifetimeStats.from_dict(data.get("lifetime")),
            recent_30_days=RecentStats.from_dict(data.get("recent30Days")) or RecentStats(),
        )


@dataclass
class SellerAnalyticsAggregate:
    """The single persisted analytics document covering every indexed seller."""

    generated_at: str
    sellers: list[SellerAnalyticsRecord] = field(default_factory=list)
    total_sellers: int = 0
    data_version: int = ANALYTICS_DATA_VERSION

    def get_seller(self, seller_id: str) -> SellerAnalyticsRecord | None:
        for seller in self.sellers:
            if seller.seller_id == str(seller_id):
                return seller
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "generatedAt": self.generated_at,
            "totalSellers": self.total_sellers,
            "dataVersion": self.data_version,
            "sellers": [s.to_dict() for s in self.sellers],
        }

    @classmethod
    def from_dict(cls, data: dict) -> SellerAnalyticsAggregate:
        records = [SellerAnalyticsRecord.from_dict(s) for s in data.get("sellers") or []]
        sellers = [r for r in records if r is not None]
        return cls(
            generated_at=data.get("generatedAt") or "",
            sellers=sellers,
            total_sellers=_int(data.get("totalSellers")),
            data_version=_int(data.get("dataVersion")) or ANALYTICS_DATA_VERSION,
        )


@dataclass
class WeightPricingItem:
    """One priced variant snapped to a standard weight."""

    id: str
    usd: float
    ppg: float
    cat: str
    d: str

    def to_dict(self) -> dict:
        return {"id": self.id, "usd": self.usd, "ppg": self.ppg, "cat": self.cat, "d": self.d}


@dataclass
class WeightPricingFile:
    """All variants sold at one weight breakpoint, cheapest per gram first."""

    weight: float
    tolerance: float
    updated_at: str
    items: list[WeightPricingItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "weight": self.weight,
            "tolerance": self.tolerance,
            "updatedAt": self.updated_at,
            "itemCount": len(self.items),
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class PricingSummaryItem:
    ppg_min: float | None
    ppg_max: float | None
    weights: list[float]
    unit: str
    cat: str

    def to_dict(self) -> dict:
        return {
            "ppgMin": self.ppg_min,
            "ppgMax": self.ppg_max,
            "weights": self.weights,
            "unit": self.unit,
            "cat": self.cat,
        }


@dataclass
class PricingSummary:
    """Price-per-gram overview for one market index."""

    updated_at: str
    items: dict[str, PricingSummaryItem] = field(default_factory=dict)
    sorted_by_ppg_asc: list[str] = field(default_factory=list)
    sorted_by_ppg_desc: list[str] = field(default_factory=list)
    weight_files: dict[float, WeightPricingFile] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Summary document; weight files are stored separately."""
        return {
            "updatedAt": self.updated_at,
            "itemCount": len(self.items),
            "items": {ref: item.to_dict() for ref, item in self.items.items()},
            "sortedByPpgAsc": self.sorted_by_ppg_asc,
            "sortedByPpgDesc": self.sorted_by_ppg_desc,
        }
