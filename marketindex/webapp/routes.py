"""FastAPI routes for the read-only analytics API."""

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from ..analytics import load_existing_analytics
from ..pricing import get_weights_for_category, per_unit_suffix
from ..quantity import WEIGHT_BREAKPOINTS, is_gram_based_category, match_weight_breakpoint, parse_quantity

router = APIRouter()


def get_storage(request: Request):
    """Get storage instance from app state."""
    return request.app.state.storage


@router.get("/api/sellers/analytics")
async def api_seller_analytics(request: Request, limit: int | None = Query(default=None, ge=1)):
    """Aggregate snapshot, sellers ordered by lifetime review count."""
    aggregate = load_existing_analytics(get_storage(request))
    data = aggregate.to_dict()
    if limit is not None:
        data["sellers"] = data["sellers"][:limit]
    return JSONResponse(data)


@router.get("/api/sellers/{seller_id}/analytics")
async def api_seller_record(request: Request, seller_id: str):
    aggregate = load_existing_analytics(get_storage(request))
    if not (record := aggregate.get_seller(seller_id)):
        raise HTTPException(status_code=404, detail=f"No analytics for seller {seller_id}")
    return JSONResponse(record.to_dict())


@router.get("/api/quantity")
async def api_quantity(d: str = Query(default="")):
    """Parse a variant description; weight is the snapped breakpoint for gram results."""
    parsed = parse_quantity(d)
    weight = match_weight_breakpoint(parsed.qty) if parsed and parsed.unit == "g" else None
    return JSONResponse({
        "parsed": parsed.to_dict() if parsed else None,
        "weight": weight,
    })


@router.get("/api/pricing/per-unit")
async def api_per_unit(
    d: str = Query(default=""),
    price: float = Query(...),
    currency: str = Query(default="GBP", pattern="^(GBP|USD|EUR)$"),
):
    return JSONResponse({"suffix": per_unit_suffix(d, price, currency)})


@router.get("/api/pricing/weights")
async def api_weights(category: str | None = Query(default=None)):
    """Weight breakpoints shown for a category, with the bucket size used to match them."""
    tolerances = {bp.grams: bp.tolerance for bp in WEIGHT_BREAKPOINTS}
    return JSONResponse({
        "category": category,
        "gramBased": is_gram_based_category(category),
        "weights": [
            {"weight": weight, "tolerance": tolerances.get(weight)}
            for weight in get_weights_for_category(category)
        ],
    })
