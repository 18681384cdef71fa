from __future__ import annotations

from typing import Any

import pandas as pd

from ..config import DEFAULT_DATA_CONFIG, DataConfig
from .models import Restaurant, Review, User

_restaurants_df: pd.DataFrame | None = None
_reviews_df: pd.DataFrame | None = None
_users_df: pd.DataFrame | None = None


def _split_cuisines(value: Any) -> tuple[str, ...]:
    if not isinstance(value, str):
        return ()
    return tuple(c.strip() for c in value.split(",") if c.strip())


def _load_restaurants(config: DataConfig) -> pd.DataFrame:
    df = pd.read_csv(config.restaurants_path, dtype={"id": str})

    # Pre-parse cuisines; keep display case and a lowercased set for matching
    df["cuisines_list"] = df["cuisines"].apply(_split_cuisines)
    df["cuisines_lower"] = df["cuisines_list"].apply(lambda cl: frozenset(c.lower() for c in cl))
    df["name_lower"] = df["name"].fillna("").str.lower()
    df["review_count"] = df["review_count"].fillna(0).astype(int)

    return df


def _load_reviews(config: DataConfig) -> pd.DataFrame:
    df = pd.read_csv(config.reviews_path, dtype={"id": str, "restaurant_id": str})
    df["likes"] = df["likes"].fillna(0).astype(int)
    return df


def _load_users(config: DataConfig) -> pd.DataFrame:
    return pd.read_csv(config.users_path, dtype={"id": str})


def get_restaurant_frame(config: DataConfig = DEFAULT_DATA_CONFIG) -> pd.DataFrame:
    """Return the in-memory restaurant DataFrame, loading it on first call."""
    global _restaurants_df
    if _restaurants_df is None:
        _restaurants_df = _load_restaurants(config)
    return _restaurants_df


def get_review_frame(config: DataConfig = DEFAULT_DATA_CONFIG) -> pd.DataFrame:
    """Return the in-memory review DataFrame, loading it on first call."""
    global _reviews_df
    if _reviews_df is None:
        _reviews_df = _load_reviews(config)
    return _reviews_df


def get_user_frame(config: DataConfig = DEFAULT_DATA_CONFIG) -> pd.DataFrame:
    """Return the in-memory user DataFrame, loading it on first call."""
    global _users_df
    if _users_df is None:
        _users_df = _load_users(config)
    return _users_df


def clear_data_cache() -> None:
    global _restaurants_df, _reviews_df, _users_df
    _restaurants_df = None
    _reviews_df = None
    _users_df = None


def _records(df: pd.DataFrame, columns: list[str]) -> list[dict[str, Any]]:
    # NaN -> None so optional model fields validate
    subset = df[columns].astype(object)
    subset = subset.where(pd.notna(subset), None)
    return subset.to_dict(orient="records")


def restaurants_from_frame(df: pd.DataFrame) -> list[Restaurant]:
    """Convert restaurant rows into entities, preserving row order."""
    columns = [
        "id", "name", "rating", "price_min", "price_max",
        "address", "description", "review_count",
    ]
    restaurants: list[Restaurant] = []
    for record, cuisines in zip(_records(df, columns), df["cuisines_list"]):
        record["address"] = record["address"] or ""
        record["description"] = record["description"] or ""
        restaurants.append(Restaurant(cuisines=cuisines, **record))
    return restaurants


def get_restaurants(config: DataConfig = DEFAULT_DATA_CONFIG) -> list[Restaurant]:
    return restaurants_from_frame(get_restaurant_frame(config))


def get_restaurant(restaurant_id: str, config: DataConfig = DEFAULT_DATA_CONFIG) -> Restaurant | None:
    df = get_restaurant_frame(config)
    matches = df.loc[df["id"] == restaurant_id]
    if matches.empty:
        return None
    return restaurants_from_frame(matches)[0]


def get_reviews(
    restaurant_id: str | None = None,
    config: DataConfig = DEFAULT_DATA_CONFIG,
) -> list[Review]:
    df = get_review_frame(config)
    if restaurant_id is not None:
        df = df.loc[df["restaurant_id"] == restaurant_id]
    columns = ["id", "restaurant_id", "author", "rating", "likes", "created_at", "comment"]
    records = _records(df, columns)
    for record in records:
        record["author"] = record["author"] or ""
        record["comment"] = record["comment"] or ""
    return [Review(**record) for record in records]


def get_users(config: DataConfig = DEFAULT_DATA_CONFIG) -> list[User]:
    df = get_user_frame(config)
    columns = ["id", "username", "email", "first_name", "last_name", "role", "created_at"]
    records = _records(df, columns)
    for record in records:
        for key in ("email", "first_name", "last_name"):
            record[key] = record[key] or ""
    return [User(**record) for record in records]


def known_cuisines(config: DataConfig = DEFAULT_DATA_CONFIG) -> list[str]:
    """Return every cuisine tag in the corpus, sorted."""
    df = get_restaurant_frame(config)
    tags: set[str] = set()
    for cuisines in df["cuisines_list"]:
        tags.update(cuisines)
    return sorted(tags)
