"""
Local Predicate Evaluator.

Pure, synchronous filtering of an in-memory snapshot. It runs on every
filter change to give an immediate answer before any canonical query
returns, so it must never block on I/O. Results keep the input order.
"""
from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import Any, TypeVar

from ..corpus.models import Restaurant
from ..listing.sorting import read_field
from .filter_model import CuisineCombinator, FilterModel, PriceBucket

T = TypeVar("T")


def matches_name(restaurant: Restaurant, name_query: str) -> bool:
    term = name_query.strip().lower()
    if not term:
        return True
    return term in restaurant.name.lower()


def matches_cuisines(
    restaurant: Restaurant,
    cuisines: frozenset[str],
    combinator: CuisineCombinator,
) -> bool:
    if not cuisines:
        return True
    wanted = {c.lower() for c in cuisines}
    offered = {c.lower() for c in restaurant.cuisines}
    if combinator is CuisineCombinator.AND:
        return wanted <= offered
    return bool(wanted & offered)


def matches_rating(restaurant: Restaurant, min_rating: float) -> bool:
    return (restaurant.rating or 0.0) >= min_rating


def matches_filters(restaurant: Restaurant, filters: FilterModel) -> bool:
    if not matches_name(restaurant, filters.name_query):
        return False
    if not matches_cuisines(restaurant, filters.cuisines, filters.effective_combinator):
        return False
    if not matches_rating(restaurant, filters.min_rating):
        return False
    if filters.price_bucket is not None:
        # Buckets are disjoint, so at most one can hold the whole range
        return PriceBucket.for_range(restaurant.price_min, restaurant.price_max) is filters.price_bucket
    return True


def evaluate(entities: Iterable[Restaurant], filters: FilterModel) -> list[Restaurant]:
    """Apply every facet as a conjunction, preserving the snapshot order."""
    if filters.is_default:
        return list(entities)
    return [r for r in entities if matches_filters(r, filters)]


# ── List-view helpers ────────────────────────────────────────────────────


def text_search(entities: Iterable[T], term: str, fields: Sequence[str]) -> list[T]:
    """Keep entities where any of *fields* contains *term* (case-insensitive)."""
    needle = term.strip().lower()
    if not needle:
        return list(entities)

    def _hit(entity: Any) -> bool:
        for field in fields:
            value = read_field(entity, field)
            if value is not None and needle in str(value).lower():
                return True
        return False

    return [e for e in entities if _hit(e)]


def filter_by_star(entities: Iterable[T], star: int | None, field: str = "rating") -> list[T]:
    """Keep entities whose rating floors to *star*; ``None`` keeps everything."""
    if star is None:
        return list(entities)
    kept: list[T] = []
    for entity in entities:
        rating = read_field(entity, field)
        if rating is not None and math.floor(rating) == star:
            kept.append(entity)
    return kept
