from __future__ import annotations

from dataclasses import dataclass
from operator import attrgetter
from typing import Any, Callable

from app.models.user import normalize_roles


@dataclass(frozen=True)
class EntityProperty:
    name: str
    value: Callable[[Any], Any]
    text: Callable[[Any], str]


def scalar_property(name: str) -> EntityProperty:
    getter = attrgetter(name)
    return EntityProperty(name=name, value=getter, text=lambda entity: str(getter(entity)))


class PropertyMap:
    """Case-insensitive lookup of the properties a query may filter or sort by."""

    def __init__(self, *properties: EntityProperty) -> None:
        self._by_key = {prop.name.lower(): prop for prop in properties}

    def resolve(self, name: str | None) -> EntityProperty | None:
        return self._by_key.get(str(name or "").strip().lower())

    @property
    def names(self) -> list[str]:
        return [prop.name for prop in self._by_key.values()]


def _roles_value(user) -> tuple[str, ...]:
    return tuple(normalize_roles(user.roles))


USER_PROPERTIES = PropertyMap(
    scalar_property("id"),
    scalar_property("name"),
    scalar_property("age"),
    scalar_property("email"),
    EntityProperty(name="roles", value=_roles_value, text=lambda user: ",".join(_roles_value(user))),
)
