from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Protocol
from urllib.parse import parse_qsl, urlencode

logger = logging.getLogger(__name__)


class PersistedFilterStore(Protocol):
    """Shareable key/value home of the current filter selection.

    An absent key means "default" for that field, never an error.
    """

    def read(self) -> Mapping[str, str]: ...

    def write(self, params: Mapping[str, str]) -> None: ...


class InMemoryFilterStore:
    def __init__(self, params: Mapping[str, str] | None = None) -> None:
        self._params: dict[str, str] = dict(params or {})
        self.writes = 0

    def read(self) -> Mapping[str, str]:
        return dict(self._params)

    def write(self, params: Mapping[str, str]) -> None:
        self._params = dict(params)
        self.writes += 1


class QueryStringFilterStore:
    """Filter selection kept in a URL query string (``name=thai&rating=4``).

    Writes replace the whole query string, like a history ``replace`` on the
    page URL, so stale keys from an earlier selection never linger.
    """

    def __init__(self, query_string: str = "") -> None:
        self._query = query_string.lstrip("?")

    @property
    def query_string(self) -> str:
        return self._query

    def read(self) -> Mapping[str, str]:
        params: dict[str, str] = {}
        # Last occurrence wins for repeated keys
        for key, value in parse_qsl(self._query, keep_blank_values=False):
            params[key] = value
        return params

    def write(self, params: Mapping[str, str]) -> None:
        self._query = urlencode(sorted(params.items()))
        logger.debug("Filter query string updated: %s", self._query)
