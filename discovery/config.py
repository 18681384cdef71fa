from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

_DEFAULT_DATA_DIR = Path(__file__).resolve().parent / "data"


@dataclass(frozen=True)
class SearchConfig:
    debounce_seconds: float = int(os.getenv("DISCOVERY_DEBOUNCE_MS", "500")) / 1000
    request_timeout: float = float(os.getenv("DISCOVERY_REQUEST_TIMEOUT", "10.0"))
    loading_indicator_delay: float = int(os.getenv("DISCOVERY_LOADING_DELAY_MS", "300")) / 1000


@dataclass(frozen=True)
class ApiConfig:
    base_url: str = os.getenv("DISCOVERY_API_URL", "http://localhost:8000")
    timeout: float = float(os.getenv("DISCOVERY_REQUEST_TIMEOUT", "10.0"))


@dataclass(frozen=True)
class DataConfig:
    data_dir: Path = Path(os.getenv("DISCOVERY_DATA_DIR", str(_DEFAULT_DATA_DIR)))
    restaurants_filename: str = "restaurants.csv"
    reviews_filename: str = "reviews.csv"
    users_filename: str = "users.csv"

    @property
    def restaurants_path(self) -> Path:
        return self.data_dir / self.restaurants_filename

    @property
    def reviews_path(self) -> Path:
        return self.data_dir / self.reviews_filename

    @property
    def users_path(self) -> Path:
        return self.data_dir / self.users_filename


@dataclass(frozen=True)
class ListingConfig:
    default_page_size: int = 10
    page_size_options: tuple[int, ...] = (5, 10, 25, 50, 100)
    review_page_size: int = 3


DEFAULT_SEARCH_CONFIG = SearchConfig()
DEFAULT_API_CONFIG = ApiConfig()
DEFAULT_DATA_CONFIG = DataConfig()
DEFAULT_LISTING_CONFIG = ListingConfig()
