"""
Retailer bundle aggregation.

Answers "what if I bought everything from one store?": for each retailer that
appears in the search results, take its cheapest offer for every item it
carries, total them up, and rank the retailers. Coverage beats price: a store
that has 4 of 5 items ranks above a cheaper store that has 3.
"""
import logging
import math
from collections import OrderedDict
from typing import Dict, List, Sequence

from cartplanner.schemas.offers import (
    BundleItem,
    ItemSearchResult,
    NormalizedOffer,
    RetailerBundle,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_BUNDLES = 5


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _has_offers(result: ItemSearchResult) -> bool:
    return not result.error and bool(result.all_offers)


def cheapest_by_retailer(offers: Sequence[NormalizedOffer]) -> Dict[str, NormalizedOffer]:
    """
    Best offer per retailer for a single item, keyed in first-seen order.
    A later offer only replaces the current one when strictly cheaper.
    """
    best: Dict[str, NormalizedOffer] = OrderedDict()
    for offer in offers:
        current = best.get(offer.source)
        if current is None or offer.price < current.price:
            best[offer.source] = offer
    return best


def calculate_retailer_bundles(
    results: Sequence[ItemSearchResult],
    max_bundles: int = DEFAULT_MAX_BUNDLES,
) -> List[RetailerBundle]:
    """
    Build the ranked single-retailer bundles for one search.

    `results` must be in checklist order; retailer insertion order (first
    item they appear for) is the last tie-break after item count and price.
    Results with an error or without offers are skipped and do not count
    toward completeness.
    """
    total_items = sum(1 for r in results if _has_offers(r))

    # retailer -> [items, running total]
    running: "OrderedDict[str, list]" = OrderedDict()

    for result in results:
        if not _has_offers(result):
            logger.debug("bundles: skipping %r (no offers)", result.item_name)
            continue

        for source, offer in cheapest_by_retailer(result.all_offers).items():
            entry = running.get(source)
            if entry is None:
                entry = running[source] = [[], 0.0]
            entry[0].append(BundleItem(item_name=result.item_name, offer=offer))
            entry[1] += offer.price
            logger.debug(
                "bundles: %s += %r $%.2f (total now $%.2f)",
                source, result.item_name, offer.price, entry[1],
            )

    bundles: List[RetailerBundle] = []
    for retailer, (items, total) in running.items():
        item_count = len(items)
        total_price = round(total, 2)
        if item_count == 0 or total_price <= 0:
            logger.warning(
                "bundles: dropping %s (items=%s, total=%s)", retailer, item_count, total_price
            )
            continue
        bundles.append(
            RetailerBundle(
                retailer=retailer,
                items=items,
                item_count=item_count,
                total_price=total_price,
                completeness=_round_half_up(item_count / total_items * 100),
                missing_items=total_items - item_count,
            )
        )

    # sorted() is stable, so equal keys keep retailer insertion order
    bundles = sorted(bundles, key=lambda b: (-b.item_count, b.total_price))[:max_bundles]

    logger.info(
        "bundles: %s retailers across %s/%s items, returning %s",
        len(running), total_items, len(results), len(bundles),
    )
    return bundles
