import enum
from typing import Any, Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class FilterMethod(str, enum.Enum):
    START = "Start"
    END = "End"
    CONTAINS = "Contains"
    EQUALS = "Equals"
    NOT_EQUALS = "NotEquals"
    NOT_CONTAINS = "NotContains"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FilterAction(CamelModel):
    property: str = Field(min_length=1)
    filter_value: str
    method: FilterMethod

    @field_validator("filter_value", mode="before")
    @classmethod
    def stringify_value(cls, value: Any) -> Any:
        # Filters match on the string form, so numeric literals are accepted as text.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class SortAction(CamelModel):
    property: str = Field(min_length=1)
    is_ascending: bool = True


class Modifiers(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    filter_actions: List[FilterAction] = Field(default_factory=list)
    sort_actions: List[SortAction] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def unwrap_nested_shape(cls, data: Any) -> Any:
        """Accept ``{"filter": {"filterActions": []}, "sorting": {"sortingActions": []}}`` too."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        nested_filter = data.pop("filter", None)
        if isinstance(nested_filter, dict) and "filterActions" not in data and "filter_actions" not in data:
            data["filterActions"] = nested_filter.get("filterActions") or []
        nested_sorting = data.pop("sorting", None)
        if isinstance(nested_sorting, dict) and "sortActions" not in data and "sort_actions" not in data:
            data["sortActions"] = nested_sorting.get("sortingActions") or nested_sorting.get("sortActions") or []
        return data


class PaginatedListOut(CamelModel, Generic[T]):
    items: List[T]
    total_count: int
    page_number: int
    page_size: int
    total_pages: int
    has_previous_page: bool
    has_next_page: bool
