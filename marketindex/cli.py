#!/usr/bin/env python3
"""CLI entry point for quantity parsing, seller analytics and pricing summaries."""

import argparse
import json
import logging
import sys
from pathlib import Path

from .analytics import load_existing_analytics
from .pipeline import load_batches, run_analytics_cycle
from .pricing import build_pricing_summary, save_pricing_summary
from .quantity import match_weight_breakpoint, parse_quantity
from .storage import AnalyticsStorage, get_storage, list_storages


def print_parse(text: str) -> int:
    """Print the parsed quantity for one description."""
    if not (parsed := parse_quantity(text)):
        print(f"No quantity found in {text!r}")
        return 1
    print(f"{text!r} -> {parsed.qty:g} {parsed.unit}")
    if parsed.unit == "g" and (weight := match_weight_breakpoint(parsed.qty)) is not None:
        print(f"  weight bucket: {weight:g}g")
    return 0


def print_top_sellers(storage: AnalyticsStorage, limit: int) -> int:
    """Print the top sellers of the stored aggregate."""
    aggregate = load_existing_analytics(storage)
    if not aggregate.sellers:
        print("No seller analytics stored yet")
        return 0

    print(f"{aggregate.total_sellers} sellers (generated {aggregate.generated_at}):")
    for i, record in enumerate(aggregate.sellers[:limit], 1):
        lifetime = record.lifetime
        if lifetime is None:
            print(f"  {i}. {record.seller_name or record.seller_id} - no reviews")
            continue
        rating = f"{lifetime.avg_rating:.1f}" if lifetime.avg_rating is not None else "-"
        print(
            f"  {i}. {record.seller_name or record.seller_id} - "
            f"{lifetime.total_reviews} reviews, avg {rating}, "
            f"{lifetime.perfect_score_count} perfect"
        )
    if len(aggregate.sellers) > limit:
        print(f"  ... and {len(aggregate.sellers) - limit} more")
    return 0


def run_aggregate(storage: AnalyticsStorage, path: Path) -> int:
    batches = load_batches(path)
    print(f"Aggregating {len(batches)} seller batch(es) into {storage.name} storage...")
    aggregate = run_analytics_cycle(storage, batches)
    print(f"Done: {aggregate.total_sellers} sellers in aggregate")
    return 0


def run_pricing(storage: AnalyticsStorage, path: Path) -> int:
    data = json.loads(path.read_text(encoding="utf-8"))
    items = data.get("items", []) if isinstance(data, dict) else data
    if not isinstance(items, list):
        print(f"Error: expected a list of items in {path}", file=sys.stderr)
        return 1

    summary = build_pricing_summary(items)
    save_pricing_summary(storage, summary)
    print(f"Priced {len(summary.sorted_by_ppg_asc)} of {len(summary.items)} items per gram")
    for weight, weight_file in summary.weight_files.items():
        if weight_file.items:
            cheapest = weight_file.items[0]
            print(f"  {weight:g}g: {len(weight_file.items)} items, cheapest {cheapest.id} at {cheapest.ppg:.2f}/g")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Market index quantity parsing and seller analytics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m marketindex.cli --parse "3 oz gorilla cookies"
  python -m marketindex.cli --aggregate crawl.json
  python -m marketindex.cli --pricing items.json --storage sqlite
  python -m marketindex.cli --show
  python -m marketindex.cli --serve
        """,
    )

    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--parse", "-p", metavar="TEXT", help="Parse a variant description")
    group.add_argument("--aggregate", "-a", metavar="FILE", type=Path, help="Run an analytics cycle over a batch file")
    group.add_argument("--pricing", metavar="FILE", type=Path, help="Build the pricing summary for an item index")
    group.add_argument("--show", action="store_true", help="Show top sellers from stored analytics")
    group.add_argument("--serve", action="store_true", help="Run the analytics API")

    parser.add_argument("--storage", choices=list_storages(), default="json", help="Storage backend")
    parser.add_argument("--path", type=Path, help="Output directory (json) or database file (sqlite)")
    parser.add_argument("--limit", type=int, default=10, help="Sellers to show with --show")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to with --serve")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to with --serve")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.parse is not None:
        return print_parse(args.parse)

    if args.serve:
        import uvicorn
        from .webapp.app import create_app

        uvicorn.run(create_app(get_storage(args.storage, args.path)), host=args.host, port=args.port)
        return 0

    storage = get_storage(args.storage, args.path)

    if args.show:
        return print_top_sellers(storage, args.limit)

    path = args.aggregate or args.pricing
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return 1

    try:
        if args.aggregate:
            return run_aggregate(storage, path)
        return run_pricing(storage, path)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
