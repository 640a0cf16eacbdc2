"""Price-per-gram summaries and per-unit price labels built on quantity parsing."""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable
from datetime import datetime, UTC
from typing import Any

from .analytics import to_iso
from .models import PricingSummary, PricingSummaryItem, WeightPricingFile, WeightPricingItem
from .quantity import WEIGHT_BREAKPOINTS, is_gram_based_category, match_weight_breakpoint, parse_quantity
from .storage import PRICING_SUMMARY_KEY, AnalyticsStorage

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {
    "GBP": "£",
    "USD": "$",
    "EUR": "€",
}

FLOWER_WEIGHTS = (1, 3.5, 7, 14, 28)
CONCENTRATES_WEIGHTS = (1, 3.5, 7, 14, 28)
# Hash is also sold in bulk.
HASH_WEIGHTS = (1, 3.5, 7, 14, 28, 50, 100)

_TRAILING_ZEROS_RE = re.compile(r"\.0+$")


def get_weights_for_category(category: str | None) -> tuple[float, ...]:
    """Weight breakpoints shown for a category."""
    if category == "Hash":
        return HASH_WEIGHTS
    if category == "Concentrates":
        return CONCENTRATES_WEIGHTS
    return FLOWER_WEIGHTS


def format_money(amount: float | None, currency: str = "GBP", decimals: int = 2) -> str:
    """Format an amount with its currency symbol, dropping a trailing '.00'."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or not math.isfinite(amount):
        return ""
    symbol = CURRENCY_SYMBOLS.get(currency, CURRENCY_SYMBOLS["GBP"])
    text = f"{amount:.{decimals}f}"
    if decimals > 0:
        text = _TRAILING_ZEROS_RE.sub("", text)
    return f"{symbol}{text}"


def per_unit_suffix(
    description: str | None,
    price: float | None,
    currency: str = "GBP",
    unit_labels: dict[str, str] | None = None,
) -> str | None:
    """
    Build a per-unit price suffix like " (£10/g)".

    Args:
        description: Variant description to parse for a quantity
        price: Variant price in ``currency``
        currency: Display currency code (GBP, USD, EUR)
        unit_labels: Optional canonical unit -> display label overrides

    Returns:
        The suffix, or None when there is nothing useful to show
    """
    if isinstance(price, bool) or not isinstance(price, (int, float)) or not math.isfinite(price):
        return None

    parsed = parse_quantity(description)
    if not parsed:
        return None
    # A single item's per-unit price is just its price.
    if parsed.unit == "item" and parsed.qty == 1:
        return None

    per = price / parsed.qty
    if not math.isfinite(per):
        return None

    unit = (unit_labels or {}).get(parsed.unit, parsed.unit)
    return f" ({format_money(per, currency)}/{unit})"


def _price(variant: dict) -> float:
    value = variant.get("usd")
    if value is None:
        value = variant.get("price")
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return 0
    return value


def build_pricing_summary(items: Iterable[Any], now: datetime | None = None) -> PricingSummary:
    """
    Compute price-per-gram ranges for every item in a market index.

    Items outside gram-based categories are listed with unit 'item' and no
    ppg. Each gram-priced variant close to a standard weight is also added to
    that weight's bucket.
    """
    updated_at = to_iso(now or datetime.now(UTC))
    summary = PricingSummary(updated_at=updated_at)
    buckets: dict[float, list[WeightPricingItem]] = {bp.grams: [] for bp in WEIGHT_BREAKPOINTS}

    for item in items:
        if not isinstance(item, dict):
            continue
        ref_num = str(item.get("refNum") or item.get("id") or "")
        if not ref_num:
            continue

        category = item.get("c") or item.get("category") or "Unknown"
        variants = item.get("v") or item.get("variants") or []

        if not is_gram_based_category(category):
            summary.items[ref_num] = PricingSummaryItem(None, None, [], "item", category)
            continue

        ppgs: list[float] = []
        weights: set[float] = set()
        for variant in variants:
            if not isinstance(variant, dict):
                continue
            desc = variant.get("dEn") or variant.get("d") or ""
            usd = _price(variant)
            if not desc or usd <= 0:
                continue

            parsed = parse_quantity(desc)
            if not parsed or parsed.unit != "g" or parsed.qty <= 0:
                continue

            ppg = usd / parsed.qty
            ppgs.append(ppg)
            if (weight := match_weight_breakpoint(parsed.qty)) is not None:
                weights.add(weight)
                buckets[weight].append(WeightPricingItem(id=ref_num, usd=usd, ppg=ppg, cat=category, d=desc))

        if not ppgs:
            summary.items[ref_num] = PricingSummaryItem(None, None, [], "g", category)
            continue

        summary.items[ref_num] = PricingSummaryItem(
            ppg_min=min(ppgs),
            ppg_max=max(ppgs),
            weights=sorted(weights),
            unit="g",
            cat=category,
        )

    priced = [(ref, it.ppg_min) for ref, it in summary.items.items() if it.ppg_min is not None]
    summary.sorted_by_ppg_asc = [ref for ref, _ in sorted(priced, key=lambda x: x[1])]
    summary.sorted_by_ppg_desc = list(reversed(summary.sorted_by_ppg_asc))

    for bp in WEIGHT_BREAKPOINTS:
        summary.weight_files[bp.grams] = WeightPricingFile(
            weight=bp.grams,
            tolerance=bp.tolerance,
            updated_at=updated_at,
            items=sorted(buckets[bp.grams], key=lambda x: x.ppg),
        )

    return summary


def weight_document_key(weight: float) -> str:
    """Storage key for one weight bucket, e.g. ``pricing_weight_3.5g``."""
    return f"pricing_weight_{weight:g}g"


def save_pricing_summary(storage: AnalyticsStorage, summary: PricingSummary) -> None:
    """Persist the summary and every weight bucket."""
    storage.write_document(PRICING_SUMMARY_KEY, summary.to_dict())
    for weight, weight_file in summary.weight_files.items():
        storage.write_document(weight_document_key(weight), weight_file.to_dict())

    logger.info(
        f"Saved pricing summary: {len(summary.items)} items, "
        f"{len(summary.sorted_by_ppg_asc)} with price per gram"
    )
