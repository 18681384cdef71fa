from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Protocol

import httpx
from pydantic import TypeAdapter, ValidationError

from ..config import DEFAULT_API_CONFIG, ApiConfig
from ..search.canonical import search_restaurants
from .models import Restaurant

logger = logging.getLogger(__name__)

_RESTAURANT_LIST = TypeAdapter(list[Restaurant])


class CorpusProviderError(Exception):
    """A canonical query could not be answered (transport or server failure)."""


class CorpusProvider(Protocol):
    """Authoritative source of entities matching a set of criteria.

    ``query`` must be idempotent and free of side effects; failures are
    raised, never returned as an empty list.
    """

    async def query(self, criteria: Mapping[str, str]) -> list[Restaurant]: ...


class InProcessCorpusProvider:
    """Answers queries with a local search function (the API's own search)."""

    def __init__(self, search: Callable[[Mapping[str, str]], list[Restaurant]] | None = None) -> None:
        self._search = search or search_restaurants

    async def query(self, criteria: Mapping[str, str]) -> list[Restaurant]:
        return self._search(criteria)


class HttpCorpusProvider:
    """Queries the ``/restaurants`` search endpoint of the discovery API."""

    def __init__(
        self,
        config: ApiConfig = DEFAULT_API_CONFIG,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._client = client or httpx.AsyncClient(base_url=config.base_url, timeout=config.timeout)
        self._owns_client = client is None

    async def query(self, criteria: Mapping[str, str]) -> list[Restaurant]:
        logger.debug("GET %s/restaurants %s", self._config.base_url, dict(criteria))
        try:
            response = await self._client.get("/restaurants", params=dict(criteria))
            response.raise_for_status()
            return _RESTAURANT_LIST.validate_python(response.json())
        except httpx.HTTPStatusError as exc:
            raise CorpusProviderError(
                f"Search failed with status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise CorpusProviderError(f"Search request failed: {exc}") from exc
        except (ValueError, ValidationError) as exc:
            raise CorpusProviderError("Search returned an unreadable response") from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
