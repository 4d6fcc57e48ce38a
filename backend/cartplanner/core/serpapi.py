import os
from typing import Any, Dict, List, Optional

import httpx

from cartplanner.core.config import settings
from cartplanner.core.offers import raw_offer_from_serpapi
from cartplanner.schemas.offers import RawOffer

SERPAPI_BASE = "https://serpapi.com/search.json"


class OfferSearchError(Exception):
    """SerpAPI answered with a non-2xx status or an error payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def get_serpapi_key() -> str:
    # Prefer pydantic settings, fallback to env
    key = (getattr(settings, "SERPAPI_API_KEY", "") or "").strip()
    if not key:
        key = (os.environ.get("SERPAPI_API_KEY", "") or "").strip()
    return key


def _require_serpapi_key() -> str:
    key = get_serpapi_key()
    if not key:
        raise ValueError("SERPAPI_API_KEY is not set")
    return key


async def shopping_search(
    q: str,
    gl: str = "us",
    hl: str = "en",
    num: int = 9,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 60,
) -> Dict[str, Any]:
    """
    Calls SerpAPI Google Shopping and returns the raw JSON response.
    Pass `client` to reuse one connection pool across several items.
    """
    api_key = _require_serpapi_key()

    params: Dict[str, Any] = {
        "engine": "google_shopping",
        "q": q,
        "api_key": api_key,
        "gl": gl,
        "hl": hl,
    }

    # SerpAPI uses "num" for some engines; if ignored, it won't break.
    try:
        params["num"] = max(1, min(int(num), 100))
    except (TypeError, ValueError):
        params["num"] = 9

    if client is None:
        async with httpx.AsyncClient(timeout=timeout) as own_client:
            r = await own_client.get(SERPAPI_BASE, params=params)
    else:
        r = await client.get(SERPAPI_BASE, params=params, timeout=timeout)

    if r.is_error:
        raise OfferSearchError(
            f"SerpAPI request failed: {r.status_code}\nBODY:\n{r.text[:500]}",
            status_code=r.status_code,
        )

    data = r.json()

    # Normalize: if the engine returns an error payload, surface it clearly
    if isinstance(data, dict) and data.get("error"):
        raise OfferSearchError(f"SerpAPI error: {data.get('error')}", status_code=r.status_code)

    return data


async def fetch_offers(
    q: str,
    num: int = 9,
    client: Optional[httpx.AsyncClient] = None,
) -> List[RawOffer]:
    """
    Offer retrieval for one query: SerpAPI shopping results mapped onto
    RawOffers, in provider order, at most `num` of them.
    """
    data = await shopping_search(
        q=q,
        gl=settings.SEARCH_GL,
        hl=settings.SEARCH_HL,
        num=num,
        client=client,
        timeout=settings.SEARCH_TIMEOUT_SECONDS,
    )
    results = data.get("shopping_results", []) or []
    return [raw_offer_from_serpapi(r) for r in results[:num] if isinstance(r, dict)]
