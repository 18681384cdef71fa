from __future__ import annotations

from pydantic import BaseModel

from .aggregation.distribution import RatingDistribution
from .corpus.models import Review
from .listing.pagination import Page


class ReviewListResponse(BaseModel):
    page: Page[Review]
    distribution: RatingDistribution
    average_rating: float
