from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Optional, List

from cartplanner.schemas.checklist import ChecklistItem


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RawOffer(_CamelModel):
    """
    Untrusted offer record as returned by the shopping search provider.
    Nothing here is guaranteed; see core.offers.normalize_offer.
    """
    title: Optional[str] = None
    price: Optional[Any] = None              # e.g. "$599.99", "From $499.99", 12.5
    extracted_price: Optional[Any] = None    # numeric price when the provider parsed one
    source: Optional[str] = None             # retailer name
    image_url: Optional[str] = None
    link: Optional[str] = None
    rating: Optional[Any] = None
    rating_count: Optional[Any] = None


class NormalizedOffer(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    title: str
    price: float                        # finite, > 0
    price_text: Optional[str] = None    # provider display string
    source: str
    image_url: Optional[str] = None
    link: Optional[str] = None
    rating: Optional[float] = None
    rating_count: Optional[int] = None


class PriceTiers(_CamelModel):
    low: List[NormalizedOffer] = Field(default_factory=list)
    mid: List[NormalizedOffer] = Field(default_factory=list)
    high: List[NormalizedOffer] = Field(default_factory=list)


class ItemSearchResult(_CamelModel):
    item_name: str
    item_details: ChecklistItem
    tiers: PriceTiers = Field(default_factory=PriceTiers)
    all_offers: List[NormalizedOffer] = Field(default_factory=list)
    error: Optional[str] = None


class BundleItem(_CamelModel):
    item_name: str
    offer: NormalizedOffer


class RetailerBundle(_CamelModel):
    retailer: str
    items: List[BundleItem] = Field(default_factory=list)
    item_count: int = 0
    total_price: float = 0.0
    completeness: int = 0     # percent of requested items this retailer covers
    missing_items: int = 0
