import asyncio
from typing import Dict, List, Union

import pytest

from cartplanner.schemas.checklist import ChecklistItem
from cartplanner.schemas.offers import ItemSearchResult, NormalizedOffer, RawOffer
from cartplanner.core.tiers import classify_tiers


def offer(source: str, price: float, title: str = None) -> NormalizedOffer:
    return NormalizedOffer(title=title or f"{source} thing ${price}", price=price, source=source)


def result(name: str, *offers: NormalizedOffer, error: str = None) -> ItemSearchResult:
    tiers, all_offers = classify_tiers(list(offers))
    return ItemSearchResult(
        item_name=name,
        item_details=ChecklistItem(name=name),
        tiers=tiers,
        all_offers=all_offers,
        error=error,
    )


class FakeFetcher:
    """
    Offer fetcher keyed by item name: the first key contained in the query
    wins. Values are raw offer dicts, or an exception to raise. `delays`
    lets tests make some items finish later than others.
    """

    def __init__(
        self,
        offers: Dict[str, Union[List[dict], Exception]],
        delays: Dict[str, float] = None,
    ):
        self.offers = offers
        self.delays = delays or {}
        self.queries: List[str] = []
        self.nums: List[int] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, query: str, num: int) -> List[RawOffer]:
        self.queries.append(query)
        self.nums.append(num)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            for name, value in self.offers.items():
                if name in query:
                    await asyncio.sleep(self.delays.get(name, 0))
                    if isinstance(value, Exception):
                        raise value
                    return [RawOffer(**v) for v in value][:num]
            return []
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_fetcher():
    return FakeFetcher
