import math
from typing import List, Sequence, Tuple

from cartplanner.schemas.offers import NormalizedOffer, PriceTiers

TIER_CAP = 3
ALL_OFFERS_CAP = 9


def classify_tiers(offers: Sequence[NormalizedOffer]) -> Tuple[PriceTiers, List[NormalizedOffer]]:
    """
    Split one item's offers into low/mid/high price tiers.

    Offers are sorted cheapest first (stable, so equal prices keep retrieval
    order) and cut into consecutive chunks of ceil(n / 3). Each tier keeps at
    most 3 offers. With fewer than 3 offers the upper tiers can be empty.

    Returns (tiers, all_offers) where all_offers is the first 9 sorted offers.
    """
    ordered = sorted(offers, key=lambda o: o.price)
    if not ordered:
        return PriceTiers(), []

    size = math.ceil(len(ordered) / 3)
    tiers = PriceTiers(
        low=ordered[:size][:TIER_CAP],
        mid=ordered[size:size * 2][:TIER_CAP],
        high=ordered[size * 2:][:TIER_CAP],
    )
    return tiers, ordered[:ALL_OFFERS_CAP]
