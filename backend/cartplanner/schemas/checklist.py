from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Literal


class ChecklistItem(BaseModel):
    """
    One material/tool the user needs for their project.
    `name` is the search key; everything else is display data.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str
    category: Optional[str] = None
    priority: Literal["essential", "optional"] = "essential"
    quantity: Optional[str] = None   # e.g. "4-6", "1 set"
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("priority", mode="before")
    @classmethod
    def _lower_priority(cls, v):
        if isinstance(v, str):
            return v.strip().lower() or "essential"
        return v

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity_as_text(cls, v):
        # models sometimes answer with a bare number
        if isinstance(v, (int, float)):
            return str(v)
        return v


class ChecklistRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    project_query: Optional[str] = None


class ChecklistResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    checklist: List[ChecklistItem]
    project_query: str
