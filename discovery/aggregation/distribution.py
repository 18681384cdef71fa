from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Iterable, Sequence
from typing import Any

from pydantic import BaseModel

from ..listing.sorting import read_field

logger = logging.getLogger(__name__)

STAR_SCALE: tuple[int, ...] = (1, 2, 3, 4, 5)


class RatingDistribution(BaseModel):
    counts: dict[int, int]
    percentages: dict[int, float]
    total: int


def distribution(
    entities: Iterable[Any],
    scale: Sequence[int] = STAR_SCALE,
    field: str = "rating",
) -> RatingDistribution:
    """Star histogram of *entities*.

    A rating is floored into its integer star bucket (4.7 counts as 4), so a
    half-star never weights two buckets. Ratings that floor outside *scale*,
    and missing ratings, are left out of both the counts and the total.
    """
    buckets = set(scale)
    counter: Counter[int] = Counter()
    skipped = 0
    for entity in entities:
        rating = read_field(entity, field)
        star = math.floor(rating) if rating is not None else None
        if star in buckets:
            counter[star] += 1
        else:
            skipped += 1
    if skipped:
        logger.debug("Left %d entities outside the %s star scale", skipped, list(scale))

    total = sum(counter.values())
    counts = {b: counter[b] for b in scale}
    percentages = {
        b: (counts[b] / total * 100) if total else 0.0
        for b in scale
    }
    return RatingDistribution(counts=counts, percentages=percentages, total=total)


def average_rating(entities: Iterable[Any], field: str = "rating") -> float:
    """Mean of the present ratings to one decimal; 0.0 when there are none."""
    ratings = [r for r in (read_field(e, field) for e in entities) if r is not None]
    return round(sum(ratings) / len(ratings), 1) if ratings else 0.0
