from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from ..config import DEFAULT_LISTING_CONFIG

T = TypeVar("T")


def page_count(total_items: int, page_size: int) -> int:
    """Number of pages for *total_items*; an empty list still has page 1."""
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    return max(1, math.ceil(total_items / page_size))


def clamp_page(page_index: int, total_items: int, page_size: int) -> int:
    return max(1, min(page_index, page_count(total_items, page_size)))


def paginate(entities: Sequence[T], page_size: int, page_index: int) -> list[T]:
    """Return the 1-indexed page, clamping the index into range first."""
    page_index = clamp_page(page_index, len(entities), page_size)
    start = (page_index - 1) * page_size
    return list(entities[start:start + page_size])


def page_window(current: int, total_pages: int, width: int = 5) -> list[int]:
    """Page numbers a pager shows: *width* pages centred on *current* where possible."""
    if total_pages <= width:
        return list(range(1, total_pages + 1))
    half = width // 2
    start = min(max(1, current - half), total_pages - width + 1)
    return list(range(start, start + width))


class Page(BaseModel, Generic[T]):
    items: list[T]
    page_index: int
    page_size: int
    total_items: int
    total_pages: int
    window: list[int] = Field(default_factory=list)

    @property
    def first_item_number(self) -> int:
        if not self.items:
            return 0
        return (self.page_index - 1) * self.page_size + 1

    @property
    def last_item_number(self) -> int:
        return min(self.page_index * self.page_size, self.total_items)


class PageState(BaseModel):
    model_config = ConfigDict(frozen=True)

    page_size: int = Field(default=DEFAULT_LISTING_CONFIG.default_page_size, ge=1)
    page_index: int = Field(default=1, ge=1)

    def with_page_size(self, page_size: int) -> PageState:
        return PageState(page_size=page_size, page_index=1)

    def go_to(self, page_index: int, total_items: int) -> PageState:
        """Move to *page_index*; requests outside the current range are ignored."""
        if 1 <= page_index <= page_count(total_items, self.page_size):
            return PageState(page_size=self.page_size, page_index=page_index)
        return self

    def clamped(self, total_items: int) -> PageState:
        index = clamp_page(self.page_index, total_items, self.page_size)
        if index == self.page_index:
            return self
        return PageState(page_size=self.page_size, page_index=index)

    def apply(self, entities: Sequence[T]) -> Page[T]:
        state = self.clamped(len(entities))
        total_pages = page_count(len(entities), state.page_size)
        return Page(
            items=paginate(entities, state.page_size, state.page_index),
            page_index=state.page_index,
            page_size=state.page_size,
            total_items=len(entities),
            total_pages=total_pages,
            window=page_window(state.page_index, total_pages),
        )
