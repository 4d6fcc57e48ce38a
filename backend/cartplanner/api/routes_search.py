import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from cartplanner.api.deps import offer_fetcher, validated_search_request
from cartplanner.core.search import OfferFetcher, run_search
from cartplanner.schemas.search import SearchRequest, SearchResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["search"])


@router.post("/search-products", response_model=SearchResponse)
async def search_products(
    req: SearchRequest = Depends(validated_search_request),
    fetch: OfferFetcher = Depends(offer_fetcher),
):
    """
    Searches every checklist item, splits each item's offers into price
    tiers, and ranks single-retailer bundles (most items first, then cheapest).
    Items whose search failed come back with `error` set; the request itself
    still succeeds.
    """
    logger.info("Request: search_products items=%s, notes=%r", len(req.items), req.notes)

    try:
        results, bundles = await run_search(req.items, req.notes, fetch)
    except Exception as e:
        logger.exception("Product search error")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to search for products", "details": str(e)},
        )

    return SearchResponse(
        success=True,
        results=results,
        bundles=bundles,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
