"""
Reconciliation Controller
=========================

Owns the result set shown for a restaurant search and keeps it consistent
while filters change faster than the network answers.

Two result stages
-----------------
* ``local_preview`` is recomputed synchronously on every filter change by
  the Local Predicate Evaluator over the Entity Store snapshot. It becomes
  the displayed result set immediately.
* ``canonical_result`` is the Corpus Provider's answer. It replaces the
  displayed result set only when it answers the filters currently shown.

States
------
``IDLE`` -> ``DEBOUNCING`` on any real filter change. Further changes restart
the timer, so only the last change of a burst is queried. When the timer
elapses a request token is minted and the query goes ``IN_FLIGHT``. If a
query is already in flight the new one waits as the single pending
successor; a later burst replaces it instead of queueing behind it.

A response is applied only if its token is the latest minted one and its
filter snapshot equals the current filters. Anything else is stale and is
dropped. Provider failures and timeouts keep the displayed result set and
surface a non-fatal ``error`` until the next change or ``retry()``.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum

from pydantic import BaseModel

from ..aggregation.distribution import RatingDistribution, distribution
from ..config import DEFAULT_SEARCH_CONFIG, SearchConfig
from ..corpus.entity_store import EntityStore
from ..corpus.models import Restaurant
from ..corpus.providers import CorpusProvider
from ..listing.pagination import Page, PageState
from ..listing.sorting import SortState
from ..search.filter_model import DEFAULT_FILTERS, FilterModel
from ..search.filter_store import PersistedFilterStore
from ..search.predicates import evaluate
from .tokens import RequestTokens

logger = logging.getLogger(__name__)

FETCH_ERROR_MESSAGE = "Failed to fetch restaurants"


class SearchState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    IN_FLIGHT = "in_flight"


class SearchView(BaseModel):
    """Everything the presentation layer needs to render a search page."""

    filters: FilterModel
    results: list[Restaurant]
    page: Page
    sort: SortState | None
    state: SearchState
    loading: bool
    loading_visible: bool
    error: str | None
    distribution: RatingDistribution


class ReconciliationController:
    def __init__(
        self,
        provider: CorpusProvider,
        filter_store: PersistedFilterStore,
        entity_store: EntityStore | None = None,
        config: SearchConfig = DEFAULT_SEARCH_CONFIG,
    ) -> None:
        self._provider = provider
        self._filter_store = filter_store
        self._entity_store = entity_store if entity_store is not None else EntityStore()
        self._config = config
        self._tokens = RequestTokens()

        self._filters = FilterModel.from_query_params(filter_store.read())
        self._local_preview: list[Restaurant] = evaluate(self._entity_store.snapshot(), self._filters)
        self._canonical_result: list[Restaurant] | None = None
        self._result_set: list[Restaurant] = []
        self._sort: SortState | None = None
        self._page = PageState()
        self._set_result_set(self._local_preview)

        self._debounce: asyncio.TimerHandle | None = None
        self._in_flight: asyncio.Task[None] | None = None
        self._pending: tuple[int, FilterModel] | None = None
        self._loading_timer: asyncio.TimerHandle | None = None
        self._loading_visible = False
        self._error: str | None = None
        self._idle = asyncio.Event()
        self._idle.set()

    # ── Read side ────────────────────────────────────────────────────────

    @property
    def filters(self) -> FilterModel:
        return self._filters

    @property
    def local_preview(self) -> list[Restaurant]:
        return list(self._local_preview)

    @property
    def canonical_result(self) -> list[Restaurant] | None:
        return None if self._canonical_result is None else list(self._canonical_result)

    @property
    def result_set(self) -> list[Restaurant]:
        return list(self._result_set)

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def loading(self) -> bool:
        return self._in_flight is not None or self._pending is not None

    @property
    def loading_visible(self) -> bool:
        return self._loading_visible

    @property
    def latest_token(self) -> int:
        return self._tokens.latest

    @property
    def state(self) -> SearchState:
        if self._debounce is not None:
            return SearchState.DEBOUNCING
        if self.loading:
            return SearchState.IN_FLIGHT
        return SearchState.IDLE

    @property
    def page_state(self) -> PageState:
        return self._page

    def view(self) -> SearchView:
        ordered = self._sort.apply(self._result_set) if self._sort else self._result_set
        return SearchView(
            filters=self._filters,
            results=list(ordered),
            page=self._page.apply(ordered),
            sort=self._sort,
            state=self.state,
            loading=self.loading,
            loading_visible=self._loading_visible,
            error=self._error,
            distribution=distribution(self._result_set),
        )

    # ── Filter changes ───────────────────────────────────────────────────

    def update(self, filters: FilterModel) -> None:
        """React to a new filter selection; must be called on the event loop."""
        if filters == self._filters:
            return
        self._filters = filters
        self._error = None
        self._local_preview = evaluate(self._entity_store.snapshot(), filters)
        self._set_result_set(self._local_preview)
        self._cancel_debounce()
        if self._pending is not None and self._pending[1] != filters:
            logger.debug("Dropping superseded pending search %d", self._pending[0])
            self._pending = None

        if filters.is_default and self._entity_store.loaded:
            self._settle_locally()
            return
        self._schedule()

    def clear_filters(self) -> None:
        self.update(DEFAULT_FILTERS)

    def retry(self) -> None:
        """Re-issue the canonical query for the current filters right away."""
        self._error = None
        self._cancel_debounce()
        if self._filters.is_default and self._entity_store.loaded:
            self._settle_locally()
            return
        self._idle.clear()
        self._issue()

    async def refresh(self) -> None:
        """Replace the Entity Store with the full corpus from the provider."""
        try:
            corpus = await asyncio.wait_for(
                self._provider.query(DEFAULT_FILTERS.to_criteria()),
                timeout=self._config.request_timeout,
            )
        except Exception as exc:
            logger.warning("Corpus refresh failed, keeping the previous corpus", exc_info=True)
            self._error = str(exc) or FETCH_ERROR_MESSAGE
            return

        self._entity_store.replace(corpus)
        self._error = None
        self._local_preview = evaluate(self._entity_store.snapshot(), self._filters)
        self._set_result_set(self._local_preview)
        if self._filters.is_default:
            self._settle_locally()
        else:
            self._schedule()

    async def wait_idle(self) -> None:
        """Wait until no debounce timer, request or successor is outstanding."""
        await self._idle.wait()

    # ── Sort & page state ────────────────────────────────────────────────

    def sort_by(self, field: str) -> None:
        self._sort = self._sort.toggle(field) if self._sort else SortState(field=field)

    def go_to_page(self, page_index: int) -> None:
        self._page = self._page.go_to(page_index, len(self._result_set))

    def set_page_size(self, page_size: int) -> None:
        self._page = self._page.with_page_size(page_size)

    # ── Internals ────────────────────────────────────────────────────────

    def _set_result_set(self, results: list[Restaurant]) -> None:
        # Sole writer of the displayed result set
        self._result_set = list(results)
        self._page = self._page.clamped(len(self._result_set))

    def _schedule(self) -> None:
        loop = asyncio.get_running_loop()
        self._cancel_debounce()
        self._idle.clear()
        self._debounce = loop.call_later(self._config.debounce_seconds, self._on_debounce_elapsed)

    def _cancel_debounce(self) -> None:
        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None

    def _on_debounce_elapsed(self) -> None:
        self._debounce = None
        self._issue()

    def _issue(self) -> None:
        filters = self._filters
        self._filter_store.write(filters.to_query_params())
        token = self._tokens.mint()
        if self._in_flight is not None:
            if self._pending is not None:
                logger.debug("Replacing pending search %d with %d", self._pending[0], token)
            self._pending = (token, filters)
            return
        self._dispatch(token, filters)

    def _dispatch(self, token: int, filters: FilterModel) -> None:
        logger.debug("Dispatching search %d: %s", token, filters.to_criteria())
        self._in_flight = asyncio.get_running_loop().create_task(self._run(token, filters))
        if self._loading_timer is None and not self._loading_visible:
            self._loading_timer = asyncio.get_running_loop().call_later(
                self._config.loading_indicator_delay, self._show_loading,
            )

    async def _run(self, token: int, filters: FilterModel) -> None:
        try:
            results = await asyncio.wait_for(
                self._provider.query(filters.to_criteria()),
                timeout=self._config.request_timeout,
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._on_failure(token, filters, exc)
        else:
            self._on_response(token, filters, results)
        finally:
            self._in_flight = None
            if self._pending is not None:
                next_token, next_filters = self._pending
                self._pending = None
                self._dispatch(next_token, next_filters)
            else:
                self._maybe_idle()

    def _is_current(self, token: int, filters: FilterModel) -> bool:
        return self._tokens.is_latest(token) and filters == self._filters

    def _on_response(self, token: int, filters: FilterModel, results: list[Restaurant]) -> None:
        if not self._is_current(token, filters):
            logger.debug("Discarding stale search response %d (latest=%d)", token, self._tokens.latest)
            return
        self._canonical_result = list(results)
        self._set_result_set(self._canonical_result)
        self._error = None

    def _on_failure(self, token: int, filters: FilterModel, exc: Exception) -> None:
        if not self._is_current(token, filters):
            logger.debug("Ignoring failure of stale search %d", token)
            return
        logger.warning("Canonical search failed, keeping the displayed results", exc_info=exc)
        self._error = str(exc) or FETCH_ERROR_MESSAGE

    def _settle_locally(self) -> None:
        # Default filters: the full local corpus is the exact answer
        self._filter_store.write({})
        self._tokens.invalidate()
        self._pending = None
        self._canonical_result = list(self._local_preview)
        self._set_result_set(self._canonical_result)
        self._maybe_idle()

    def _show_loading(self) -> None:
        self._loading_timer = None
        if self.loading:
            self._loading_visible = True

    def _maybe_idle(self) -> None:
        if self._in_flight is not None or self._pending is not None:
            return
        # Nothing outstanding on the network, even if a new debounce is running
        if self._loading_timer is not None:
            self._loading_timer.cancel()
            self._loading_timer = None
        self._loading_visible = False
        if self._debounce is None:
            self._idle.set()

    def close(self) -> None:
        self._cancel_debounce()
        if self._loading_timer is not None:
            self._loading_timer.cancel()
            self._loading_timer = None
        if self._in_flight is not None:
            self._in_flight.cancel()
            self._in_flight = None
        self._pending = None
        self._idle.set()
