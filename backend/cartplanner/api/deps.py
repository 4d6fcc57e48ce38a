# cartplanner/api/deps.py
from typing import AsyncIterator

import httpx
from fastapi import HTTPException

from cartplanner.core.config import settings
from cartplanner.core.search import OfferFetcher, serpapi_offer_fetcher
from cartplanner.core.serpapi import get_serpapi_key
from cartplanner.schemas.search import SearchRequest


def validated_search_request(req: SearchRequest) -> SearchRequest:
    # Rejected before any provider call is made
    if not req.items:
        raise HTTPException(status_code=400, detail="Items array is required")
    return req


async def offer_fetcher() -> AsyncIterator[OfferFetcher]:
    """
    SerpAPI-backed offer fetcher sharing one HTTP client for the whole request.
    Tests swap this out through app.dependency_overrides.
    """
    if not get_serpapi_key():
        raise HTTPException(status_code=500, detail="SerpAPI key not configured")

    async with httpx.AsyncClient(timeout=settings.SEARCH_TIMEOUT_SECONDS) as client:
        yield serpapi_offer_fetcher(client)
