from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


def read_field(entity: Any, field: str) -> Any:
    """Read *field* from a model or a mapping; missing fields read as ``None``."""
    if isinstance(entity, Mapping):
        return entity.get(field)
    return getattr(entity, field, None)


def _sort_key(value: Any) -> tuple[bool, Any]:
    # Missing values sort as the minimum
    return (value is not None, value)


def sort_entities(
    entities: Iterable[T],
    field: str,
    direction: SortDirection = SortDirection.ASC,
    key: Callable[[Any], Any] | None = None,
) -> list[T]:
    """Stable sort by *field*.

    Strings compare case-sensitively, numbers and dates by value. ``desc`` is
    the inverse ordering of ``asc``: for distinct keys it is exactly the
    reversed ascending list, and equal keys keep their input order either way.
    *key* maps the raw field value before comparison (e.g. role id to label).
    """
    def _key(entity: T) -> tuple[bool, Any]:
        value = read_field(entity, field)
        if key is not None:
            value = key(value)
        return _sort_key(value)

    return sorted(entities, key=_key, reverse=direction is SortDirection.DESC)


class SortState(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    direction: SortDirection = SortDirection.ASC

    def toggle(self, field: str) -> SortState:
        """Same column flips asc -> desc; anything else starts ascending."""
        if field == self.field and self.direction is SortDirection.ASC:
            return SortState(field=field, direction=SortDirection.DESC)
        return SortState(field=field, direction=SortDirection.ASC)

    def apply(self, entities: Iterable[T]) -> list[T]:
        return sort_entities(entities, self.field, self.direction)
