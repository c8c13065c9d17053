from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Sequence, TypeVar

from app.core.errors import InvalidFilterProperty, InvalidPageRequest, InvalidSortProperty
from app.schemas.modifiers import FilterAction, FilterMethod, Modifiers, SortAction
from app.services.entity_properties import USER_PROPERTIES, EntityProperty, PropertyMap

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MATCHERS: dict[FilterMethod, Callable[[str, str], bool]] = {
    FilterMethod.START: lambda text, needle: text.startswith(needle),
    FilterMethod.END: lambda text, needle: text.endswith(needle),
    FilterMethod.CONTAINS: lambda text, needle: needle in text,
    FilterMethod.EQUALS: lambda text, needle: text == needle,
    FilterMethod.NOT_EQUALS: lambda text, needle: text != needle,
    FilterMethod.NOT_CONTAINS: lambda text, needle: needle not in text,
}


@dataclass(frozen=True)
class PaginatedList(Generic[T]):
    items: list[T]
    total_count: int
    page_number: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return -(-self.total_count // self.page_size)

    @property
    def has_previous_page(self) -> bool:
        return self.page_number > 1

    @property
    def has_next_page(self) -> bool:
        return self.page_number < self.total_pages


def _same(text: str) -> str:
    return text


def apply_filters(
    collection: Iterable[T],
    filter_actions: Sequence[FilterAction],
    *,
    properties: PropertyMap = USER_PROPERTIES,
    case_sensitive: bool = True,
) -> list[T]:
    fold = _same if case_sensitive else str.casefold
    predicates: list[tuple[EntityProperty, Callable[[str, str], bool], str]] = []
    for action in filter_actions:
        prop = properties.resolve(action.property)
        if prop is None:
            raise InvalidFilterProperty(action.property, properties.names)
        predicates.append((prop, _MATCHERS[FilterMethod(action.method)], fold(action.filter_value)))

    if not predicates:
        return list(collection)
    return [
        entity
        for entity in collection
        if all(match(fold(prop.text(entity)), needle) for prop, match, needle in predicates)
    ]


def apply_sorting(
    collection: Iterable[T],
    sort_actions: Sequence[SortAction],
    *,
    properties: PropertyMap = USER_PROPERTIES,
) -> list[T]:
    keys: list[tuple[EntityProperty, bool]] = []
    for action in sort_actions:
        prop = properties.resolve(action.property)
        if prop is None:
            raise InvalidSortProperty(action.property, properties.names)
        keys.append((prop, bool(action.is_ascending)))

    rows = list(collection)
    # list.sort is stable (also with reverse=True), so sorting by the last key
    # first leaves the first key as the primary order.
    for prop, ascending in reversed(keys):
        rows.sort(key=prop.value, reverse=not ascending)
    return rows


def validate_page_request(page_number: int, page_size: int, max_page_size: int | None = None) -> None:
    if page_number <= 0:
        raise InvalidPageRequest(f"pageNumber must be a positive integer, got {page_number}")
    if page_size <= 0:
        raise InvalidPageRequest(f"pageSize must be a positive integer, got {page_size}")
    if max_page_size is not None and page_size > max_page_size:
        raise InvalidPageRequest(f"pageSize must not exceed {max_page_size}, got {page_size}")


def paginate(collection: Sequence[T], page_number: int, page_size: int) -> PaginatedList[T]:
    validate_page_request(page_number, page_size)
    start = (page_number - 1) * page_size
    return PaginatedList(
        items=list(collection[start : start + page_size]),
        total_count=len(collection),
        page_number=page_number,
        page_size=page_size,
    )


def get_page(
    source: Iterable[T],
    modifiers: Modifiers | None,
    page_number: int,
    page_size: int,
    *,
    properties: PropertyMap = USER_PROPERTIES,
    case_sensitive: bool = True,
    max_page_size: int | None = None,
) -> PaginatedList[T]:
    validate_page_request(page_number, page_size, max_page_size)
    modifiers = modifiers or Modifiers()
    rows = apply_filters(source, modifiers.filter_actions, properties=properties, case_sensitive=case_sensitive)
    rows = apply_sorting(rows, modifiers.sort_actions, properties=properties)
    page = paginate(rows, page_number, page_size)
    logger.debug(
        "query page filters=%s sorts=%s page=%s size=%s total=%s returned=%s",
        len(modifiers.filter_actions),
        len(modifiers.sort_actions),
        page_number,
        page_size,
        page.total_count,
        len(page.items),
    )
    return page


def page_payload(page: PaginatedList[Any], serialize: Callable[[Any], Any]) -> dict[str, Any]:
    return {
        "items": [serialize(item) for item in page.items],
        "total_count": page.total_count,
        "page_number": page.page_number,
        "page_size": page.page_size,
        "total_pages": page.total_pages,
        "has_previous_page": page.has_previous_page,
        "has_next_page": page.has_next_page,
    }
