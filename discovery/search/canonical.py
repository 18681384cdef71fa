"""
Canonical (server-side) restaurant search.

Evaluates serialized criteria over the restaurant DataFrame with vectorised
boolean masks. This is the authoritative answer the Reconciliation
Controller merges over the local preview. Criteria values that do not parse
are ignored rather than rejected, so a hand-edited link never fails a search.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Mapping

import pandas as pd

from ..corpus.data_store import get_restaurant_frame, restaurants_from_frame
from ..corpus.models import Restaurant

logger = logging.getLogger(__name__)


def _parse_number(raw: str | None) -> float | None:
    if raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if not math.isnan(value) else None


def _split(raw: str) -> set[str]:
    return {c.strip().lower() for c in raw.split(",") if c.strip()}


def filter_frame(df: pd.DataFrame, criteria: Mapping[str, str]) -> pd.DataFrame:
    """Apply search criteria to *df*, keeping row order."""
    mask = pd.Series(True, index=df.index)

    name = (criteria.get("name") or "").strip().lower()
    if name:
        mask &= df["name_lower"].str.contains(name, regex=False, na=False)

    cuisine = (criteria.get("cuisine") or "").strip().lower()
    if cuisine:
        mask &= df["cuisines_lower"].apply(lambda cl: cuisine in cl)

    wanted = _split(criteria.get("cuisines") or "")
    if wanted:
        if (criteria.get("cuisineLogic") or "").upper() == "AND":
            mask &= df["cuisines_lower"].apply(lambda cl: wanted <= cl)
        else:
            mask &= df["cuisines_lower"].apply(lambda cl: bool(wanted & cl))

    min_price = _parse_number(criteria.get("minPrice"))
    if min_price is not None:
        mask &= df["price_min"].notna() & (df["price_min"] >= min_price)
        # The lower bound alone still demands a known upper bound
        mask &= df["price_max"].notna() & (df["price_max"] >= min_price)

    max_price = _parse_number(criteria.get("maxPrice"))
    if max_price is not None:
        mask &= df["price_max"].notna() & (df["price_max"] <= max_price)
        mask &= df["price_min"].notna() & (df["price_min"] <= max_price)

    min_rating = _parse_number(criteria.get("minRating"))
    if min_rating is not None:
        mask &= df["rating"].fillna(0.0) >= min_rating

    return df.loc[mask]


def search_restaurants(criteria: Mapping[str, str]) -> list[Restaurant]:
    df = get_restaurant_frame()
    logger.debug("Search criteria: %s", dict(criteria))
    matches = filter_frame(df, criteria)
    logger.info("Found %d restaurants matching search criteria", len(matches))
    return restaurants_from_frame(matches)
