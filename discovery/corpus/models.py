from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Restaurant(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    id: str
    name: str
    cuisines: tuple[str, ...] = ()
    rating: float | None = Field(default=None, ge=0.0, le=5.0)
    price_min: float | None = None
    price_max: float | None = None
    address: str = ""
    description: str = ""
    review_count: int = 0


class Review(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    id: str
    restaurant_id: str
    author: str = ""
    rating: float = Field(..., ge=0.0, le=5.0)
    likes: int = 0
    created_at: datetime | None = None
    comment: str = ""


class User(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    id: str
    username: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    role: str = "user"
    created_at: datetime | None = None
