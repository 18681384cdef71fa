"""
Filter Model: the immutable description of every active search facet.

A Filter Model round-trips through a flat ``dict[str, str]`` (the shape of a
URL query string) so a filter selection can be shared and restored. Parsing never
fails: anything missing or malformed falls back to the field default.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

RATING_STEP = 0.5
MAX_RATING = 5.0


class CuisineCombinator(str, Enum):
    AND = "AND"
    OR = "OR"


class PriceBucket(str, Enum):
    BUDGET = "฿"
    MODERATE = "฿฿"
    UPSCALE = "฿฿฿"
    PREMIUM = "฿฿฿฿"
    LUXURY = "฿฿฿฿฿"

    @property
    def bounds(self) -> tuple[float, float]:
        return _BUCKET_BOUNDS[self]

    @property
    def description(self) -> str:
        low, high = self.bounds
        if math.isinf(high):
            return f"more than {int(low) - 1}"
        return f"{int(low)} - {int(high)}"

    def contains(self, price_min: float | None, price_max: float | None) -> bool:
        """Both bounds must sit inside the bucket; overlapping is not enough."""
        if price_min is None or price_max is None:
            return False
        low, high = self.bounds
        return low <= price_min <= high and low <= price_max <= high

    @classmethod
    def for_range(cls, price_min: float | None, price_max: float | None) -> PriceBucket | None:
        """Return the bucket that fully contains the range, if any."""
        for bucket in cls:
            if bucket.contains(price_min, price_max):
                return bucket
        return None


_BUCKET_BOUNDS: dict[PriceBucket, tuple[float, float]] = {
    PriceBucket.BUDGET: (0, 100),
    PriceBucket.MODERATE: (101, 250),
    PriceBucket.UPSCALE: (251, 500),
    PriceBucket.PREMIUM: (501, 1000),
    PriceBucket.LUXURY: (1001, math.inf),
}


def _snap_rating(value: float) -> float:
    clamped = max(0.0, min(MAX_RATING, value))
    return math.floor(clamped / RATING_STEP) * RATING_STEP


def _format_number(value: float) -> str:
    return f"{value:g}"


class FilterModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    name_query: str = ""
    cuisines: frozenset[str] = frozenset()
    cuisine_combinator: CuisineCombinator = CuisineCombinator.OR
    min_rating: float = Field(default=0.0, ge=0.0, le=MAX_RATING)
    price_bucket: PriceBucket | None = None

    @field_validator("cuisines", mode="before")
    @classmethod
    def _clean_cuisines(cls, value: Any) -> Any:
        # Every element splits on commas, as the persisted form does
        if isinstance(value, str):
            value = [value]
        if isinstance(value, Iterable):
            tags = (tag.strip() for c in value for tag in str(c).split(","))
            return frozenset(tag for tag in tags if tag)
        return value

    @field_validator("min_rating")
    @classmethod
    def _snap_min_rating(cls, value: float) -> float:
        return _snap_rating(value)

    # ── Derived state ────────────────────────────────────────────────────

    @property
    def is_default(self) -> bool:
        return self == DEFAULT_FILTERS

    @property
    def effective_combinator(self) -> CuisineCombinator:
        """The combinator only matters once more than one cuisine is selected."""
        if len(self.cuisines) > 1:
            return self.cuisine_combinator
        return CuisineCombinator.OR

    # ── Builders ─────────────────────────────────────────────────────────

    def _replace(self, **changes: Any) -> FilterModel:
        return FilterModel(**{**self.model_dump(), **changes})

    def with_name(self, name_query: str) -> FilterModel:
        return self._replace(name_query=name_query)

    def toggle_cuisine(self, cuisine: str) -> FilterModel:
        if cuisine in self.cuisines:
            return self._replace(cuisines=self.cuisines - {cuisine})
        return self._replace(cuisines=self.cuisines | {cuisine})

    def with_combinator(self, combinator: CuisineCombinator) -> FilterModel:
        return self._replace(cuisine_combinator=combinator)

    def with_min_rating(self, min_rating: float) -> FilterModel:
        return self._replace(min_rating=min_rating)

    def with_price_bucket(self, bucket: PriceBucket | None) -> FilterModel:
        return self._replace(price_bucket=bucket)

    def cleared(self) -> FilterModel:
        return DEFAULT_FILTERS

    # ── Persisted Filter Store form ──────────────────────────────────────

    def to_query_params(self) -> dict[str, str]:
        """Flatten into query parameters, omitting default or empty fields."""
        params: dict[str, str] = {}
        if self.name_query:
            params["name"] = self.name_query
        if self.cuisines:
            params["cuisines"] = ",".join(sorted(self.cuisines))
        if self.cuisine_combinator is not CuisineCombinator.OR:
            params["logic"] = self.cuisine_combinator.value
        if self.min_rating > 0:
            params["rating"] = _format_number(self.min_rating)
        if self.price_bucket is not None:
            params["price"] = self.price_bucket.value
        return params

    @classmethod
    def from_query_params(cls, params: Mapping[str, Any]) -> FilterModel:
        """Rebuild a Filter Model; unknown keys are ignored, bad values defaulted."""
        fields: dict[str, Any] = {}

        name = params.get("name")
        if isinstance(name, str):
            fields["name_query"] = name

        cuisines = params.get("cuisines")
        if not isinstance(cuisines, str):
            # Older links carry a single ``cuisine`` value
            cuisines = params.get("cuisine")
        if isinstance(cuisines, str):
            fields["cuisines"] = cuisines

        logic = params.get("logic")
        if isinstance(logic, str):
            try:
                fields["cuisine_combinator"] = CuisineCombinator(logic.strip().upper())
            except ValueError:
                logger.debug("Ignoring unknown cuisine logic %r", logic)

        rating = params.get("rating")
        if isinstance(rating, str):
            try:
                value = float(rating)
            except ValueError:
                value = math.nan
            if math.isfinite(value):
                fields["min_rating"] = _snap_rating(value)
            else:
                logger.debug("Ignoring malformed rating %r", rating)

        price = params.get("price")
        if isinstance(price, str):
            try:
                fields["price_bucket"] = PriceBucket(price.strip())
            except ValueError:
                logger.debug("Ignoring unknown price bucket %r", price)

        return cls(**fields)

    # ── Corpus Provider form ─────────────────────────────────────────────

    def to_criteria(self) -> dict[str, str]:
        """Criteria for a canonical query, in the search endpoint's vocabulary."""
        criteria: dict[str, str] = {}
        name = self.name_query.strip()
        if name:
            criteria["name"] = name
        if self.cuisines:
            criteria["cuisines"] = ",".join(sorted(self.cuisines))
            if len(self.cuisines) > 1:
                criteria["cuisineLogic"] = self.cuisine_combinator.value
        if self.min_rating > 0:
            criteria["minRating"] = _format_number(self.min_rating)
        if self.price_bucket is not None:
            low, high = self.price_bucket.bounds
            criteria["minPrice"] = _format_number(low)
            if math.isfinite(high):
                criteria["maxPrice"] = _format_number(high)
        return criteria


DEFAULT_FILTERS = FilterModel()
