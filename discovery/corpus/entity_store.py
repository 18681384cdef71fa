from __future__ import annotations

import logging
from collections.abc import Iterable

from .models import Restaurant

logger = logging.getLogger(__name__)


class EntityStore:
    """Last known full, unfiltered corpus.

    The snapshot is replaced wholesale on refresh and never patched entity by
    entity, so a reader holding a snapshot always sees one consistent corpus.
    """

    def __init__(self, entities: Iterable[Restaurant] = ()) -> None:
        self._entities: tuple[Restaurant, ...] = tuple(entities)
        self._version = 0
        self._loaded = bool(self._entities)

    def replace(self, entities: Iterable[Restaurant]) -> None:
        self._entities = tuple(entities)
        self._version += 1
        self._loaded = True
        logger.debug("Entity store replaced (version=%d, size=%d)", self._version, len(self._entities))

    def snapshot(self) -> tuple[Restaurant, ...]:
        return self._entities

    @property
    def loaded(self) -> bool:
        """True once the store holds a fetched corpus, even an empty one."""
        return self._loaded

    @property
    def version(self) -> int:
        return self._version

    def __len__(self) -> int:
        return len(self._entities)
