from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List

from cartplanner.schemas.checklist import ChecklistItem
from cartplanner.schemas.offers import ItemSearchResult, RetailerBundle


class SearchRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # left optional so an empty/missing list reaches the route's own 400
    items: Optional[List[ChecklistItem]] = None
    notes: Optional[str] = None


class SearchResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    results: List[ItemSearchResult] = Field(default_factory=list)
    bundles: List[RetailerBundle] = Field(default_factory=list)
    timestamp: str
