from __future__ import annotations

from fastapi import FastAPI, HTTPException, Query

from .aggregation.distribution import average_rating, distribution
from .config import DEFAULT_LISTING_CONFIG
from .corpus.data_store import (
    get_restaurant,
    get_reviews,
    get_users,
    known_cuisines,
)
from .corpus.models import Restaurant, Review, User
from .listing.pagination import Page, PageState
from .listing.sorting import SortDirection, sort_entities
from .models import ReviewListResponse
from .search.canonical import search_restaurants
from .search.filter_model import PriceBucket
from .search.predicates import filter_by_star, text_search

app = FastAPI(title="Restaurant Discovery API", version="1.0.0")

_MAX_PAGE_SIZE = max(DEFAULT_LISTING_CONFIG.page_size_options)

# Review list orderings offered on a restaurant page
REVIEW_SORTS: dict[str, str] = {
    "popular": "likes",
    "newest": "created_at",
}

USER_SEARCH_FIELDS = ("username", "email", "first_name", "last_name")
REVIEW_SEARCH_FIELDS = ("author", "comment", "restaurant_id")

# Role column sorts by its displayed label; unknown roles show as "User"
ROLE_LABELS: dict[str, str] = {"admin": "Admin"}


def role_label(role: str | None) -> str:
    return ROLE_LABELS.get(role or "", "User")


def _page(entities: list, page: int, page_size: int) -> Page:
    # Out-of-range pages clamp to the last page
    return PageState(page_size=page_size, page_index=page).apply(entities)


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metadata")
def metadata() -> dict:
    return {
        "cuisines": known_cuisines(),
        "price_buckets": [
            {"symbol": b.value, "description": b.description}
            for b in PriceBucket
        ],
        "page_size_options": list(DEFAULT_LISTING_CONFIG.page_size_options),
    }


@app.get("/restaurants", response_model=list[Restaurant])
def restaurants(
    name: str | None = None,
    cuisine: str | None = None,
    cuisines: str | None = None,
    cuisine_logic: str | None = Query(default=None, alias="cuisineLogic"),
    min_price: str | None = Query(default=None, alias="minPrice"),
    max_price: str | None = Query(default=None, alias="maxPrice"),
    min_rating: str | None = Query(default=None, alias="minRating"),
) -> list[Restaurant]:
    criteria = {
        key: value
        for key, value in {
            "name": name,
            "cuisine": cuisine,
            "cuisines": cuisines,
            "cuisineLogic": cuisine_logic,
            "minPrice": min_price,
            "maxPrice": max_price,
            "minRating": min_rating,
        }.items()
        if value is not None
    }
    return search_restaurants(criteria)


@app.get("/restaurants/{restaurant_id}", response_model=Restaurant)
def restaurant_detail(restaurant_id: str) -> Restaurant:
    restaurant = get_restaurant(restaurant_id)
    if restaurant is None:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return restaurant


@app.get("/restaurants/{restaurant_id}/reviews", response_model=ReviewListResponse)
def restaurant_reviews(
    restaurant_id: str,
    star: int | None = Query(default=None, ge=1, le=5),
    sort: str = Query(default="popular", pattern="^(popular|newest)$"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_LISTING_CONFIG.review_page_size, ge=1, le=_MAX_PAGE_SIZE),
) -> ReviewListResponse:
    if get_restaurant(restaurant_id) is None:
        raise HTTPException(status_code=404, detail="Restaurant not found")

    reviews = get_reviews(restaurant_id)
    shown = filter_by_star(reviews, star)
    ordered = sort_entities(shown, REVIEW_SORTS[sort], SortDirection.DESC)

    return ReviewListResponse(
        page=_page(ordered, page, page_size).model_dump(),
        distribution=distribution(reviews),
        average_rating=average_rating(reviews),
    )


# ── Admin list views ─────────────────────────────────────────────────────


@app.get("/admin/users", response_model=Page[User])
def admin_users(
    q: str = "",
    sort: str = Query(default="username", pattern="^(username|email|first_name|last_name|role|created_at)$"),
    direction: SortDirection = SortDirection.ASC,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_LISTING_CONFIG.default_page_size, ge=1, le=_MAX_PAGE_SIZE),
) -> Page:
    users = text_search(get_users(), q, USER_SEARCH_FIELDS)
    key = role_label if sort == "role" else None
    return _page(sort_entities(users, sort, direction, key=key), page, page_size)


@app.get("/admin/reviews", response_model=Page[Review])
def admin_reviews(
    q: str = "",
    sort: str = Query(default="created_at", pattern="^(author|rating|likes|created_at|restaurant_id)$"),
    direction: SortDirection = SortDirection.DESC,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_LISTING_CONFIG.default_page_size, ge=1, le=_MAX_PAGE_SIZE),
) -> Page:
    reviews = text_search(get_reviews(), q, REVIEW_SEARCH_FIELDS)
    return _page(sort_entities(reviews, sort, direction), page, page_size)
