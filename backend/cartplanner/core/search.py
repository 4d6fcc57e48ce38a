import asyncio
import logging
import time
from typing import Awaitable, Callable, Iterable, List, Optional, Sequence, Tuple

import httpx

from cartplanner.core.bundles import calculate_retailer_bundles
from cartplanner.core.config import settings
from cartplanner.core.offers import normalize_offers
from cartplanner.core.serpapi import fetch_offers
from cartplanner.core.tiers import classify_tiers
from cartplanner.schemas.checklist import ChecklistItem
from cartplanner.schemas.offers import ItemSearchResult, RawOffer, RetailerBundle

logger = logging.getLogger(__name__)

# (query, num) -> raw offers
OfferFetcher = Callable[[str, int], Awaitable[Iterable[RawOffer]]]


def build_query(item: ChecklistItem, notes: Optional[str] = None, suffix: Optional[str] = None) -> str:
    if suffix is None:
        suffix = settings.SEARCH_QUERY_SUFFIX
    parts = [item.name, notes or "", suffix or ""]
    return " ".join(" ".join(parts).split())


def serpapi_offer_fetcher(client: Optional[httpx.AsyncClient] = None) -> OfferFetcher:
    async def _fetch(query: str, num: int) -> List[RawOffer]:
        return await fetch_offers(query, num=num, client=client)

    return _fetch


async def search_item(
    item: ChecklistItem,
    notes: Optional[str],
    fetch: OfferFetcher,
    *,
    num: Optional[int] = None,
    timeout: Optional[float] = None,
) -> ItemSearchResult:
    """
    Retrieve, normalize and tier the offers for one checklist item.

    Never raises for provider problems: a failed or timed-out fetch comes back
    as a result with empty tiers and `error` set, so sibling items carry on.
    """
    if num is None:
        num = settings.SEARCH_RESULTS_PER_ITEM
    if timeout is None:
        timeout = settings.SEARCH_TIMEOUT_SECONDS
    query = build_query(item, notes)

    try:
        # the provider may hand back any iterable, including a one-shot generator
        raw = list(await asyncio.wait_for(fetch(query, num), timeout=timeout) or [])
    except asyncio.TimeoutError:
        logger.warning("search: %r timed out after %.1fs", item.name, timeout)
        return ItemSearchResult(
            item_name=item.name,
            item_details=item,
            error=f"Search timed out after {timeout:g}s",
        )
    except Exception as e:
        logger.warning("search: %r failed: %s", item.name, e)
        return ItemSearchResult(
            item_name=item.name,
            item_details=item,
            error=str(e) or e.__class__.__name__,
        )

    offers = normalize_offers(raw)
    tiers, all_offers = classify_tiers(offers)
    logger.debug(
        "search: %r -> %s raw, %s usable offers", item.name, len(raw), len(offers)
    )
    return ItemSearchResult(
        item_name=item.name,
        item_details=item,
        tiers=tiers,
        all_offers=all_offers,
    )


async def search_items(
    items: Sequence[ChecklistItem],
    notes: Optional[str],
    fetch: OfferFetcher,
    *,
    concurrency: Optional[int] = None,
    num: Optional[int] = None,
    timeout: Optional[float] = None,
) -> List[ItemSearchResult]:
    """
    Search every item concurrently (at most `concurrency` in flight) and wait
    for all of them. Results come back in checklist order, whatever order the
    searches finish in.
    """
    if not items:
        raise ValueError("Items array is required")

    if concurrency is None:
        concurrency = settings.SEARCH_CONCURRENCY
    semaphore = asyncio.Semaphore(max(1, concurrency))
    results: List[Optional[ItemSearchResult]] = [None] * len(items)

    async def _run(idx: int, item: ChecklistItem) -> None:
        async with semaphore:
            results[idx] = await search_item(item, notes, fetch, num=num, timeout=timeout)

    await asyncio.gather(*(_run(i, item) for i, item in enumerate(items)))
    return [r for r in results if r is not None]


async def run_search(
    items: Sequence[ChecklistItem],
    notes: Optional[str],
    fetch: OfferFetcher,
    *,
    concurrency: Optional[int] = None,
    num: Optional[int] = None,
    timeout: Optional[float] = None,
    max_bundles: Optional[int] = None,
) -> Tuple[List[ItemSearchResult], List[RetailerBundle]]:
    """Item searches followed by bundle aggregation over the joined results."""
    start = time.perf_counter()
    results = await search_items(
        items, notes, fetch, concurrency=concurrency, num=num, timeout=timeout
    )
    if max_bundles is None:
        max_bundles = settings.MAX_BUNDLES
    bundles = calculate_retailer_bundles(results, max_bundles=max_bundles)

    failed = sum(1 for r in results if r.error)
    logger.info(
        "search: %s items (%s failed), %s bundles in %.3fs",
        len(results), failed, len(bundles), time.perf_counter() - start,
    )
    return results, bundles
