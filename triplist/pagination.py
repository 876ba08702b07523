# triplist/pagination.py
"""Paginated list cache.

A ``ListState`` holds the rows accumulated so far for one list on screen along
with the cursor (or start index) needed to ask the data source for the next
page. ``PageLoader`` drives an injected fetch function and merges its pages
into the state; ``MutationApplier`` applies optimistic local changes. The
``Paginator`` facade bundles the two around a single state object.

Fetch functions follow one contract::

    async def fetch(*caller_args, options: PageRequest) -> PageResult | dict

Loader operations never raise for fetch failures. The message is stored in
``ListState.error`` and callers poll ``has_error``.
"""
from __future__ import annotations

import dataclasses
import inspect
import logging
import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Literal, Optional, Union

from pydantic import BaseModel

from triplist.config import ACTIVITY_PAGE_SIZE, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, clamp_page_size
from triplist.schemas import PageResult

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRIP_LIST_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

PaginationMode = Literal["cursor", "index"]
ListStatus = Literal["idle", "loading", "loaded", "errored"]
FetchResult = Union[PageResult, Mapping[str, Any]]
FetchFn = Callable[..., Union[FetchResult, Awaitable[FetchResult]]]


@dataclass
class PageRequest:
    """Options handed to a fetch function as its last positional argument."""
    page_size: int
    cursor: Any = None
    start_index: int = 0


@dataclass
class ListState:
    page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: int = MAX_PAGE_SIZE
    mode: PaginationMode = "cursor"
    items: List[Any] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None
    has_more: bool = True
    cursor: Any = None
    start_index: int = 0
    total_loaded: int = 0
    total_available: Optional[int] = None
    status: ListStatus = "idle"
    # bumped by every reset so late results from a superseded load are dropped
    generation: int = 0

    def __post_init__(self) -> None:
        self.max_page_size = max(1, int(self.max_page_size))
        self.page_size = clamp_page_size(self.page_size, self.max_page_size)

    @property
    def is_empty(self) -> bool:
        return not self.items and not self.loading

    @property
    def can_load_more(self) -> bool:
        return self.has_more and not self.loading

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @property
    def is_first_page(self) -> bool:
        return self.total_loaded == 0

    @property
    def current_page(self) -> int:
        if self.mode == "cursor":
            return math.ceil(self.total_loaded / self.page_size)
        return self.start_index // self.page_size + 1

    @property
    def load_more_threshold(self) -> int:
        return min(5, self.page_size // 2)

    def should_load_more(self, last_visible_index: int) -> bool:
        """True when an infinite-scroll list showing rows up to
        ``last_visible_index`` is close enough to the end to fetch again."""
        if not self.can_load_more or not self.items:
            return False
        return last_visible_index >= len(self.items) - 1 - self.load_more_threshold


def _item_id(item: Any, id_field: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(id_field)
    return getattr(item, id_field, None)


def _merge(item: Any, patch: Mapping[str, Any]) -> Any:
    """Shallow-merge ``patch`` into ``item`` without mutating the original."""
    if isinstance(item, Mapping):
        return {**item, **patch}
    if isinstance(item, BaseModel):
        return item.model_copy(update=dict(patch))
    if dataclasses.is_dataclass(item) and not isinstance(item, type):
        return dataclasses.replace(item, **patch)
    for key, value in patch.items():
        setattr(item, key, value)
    return item


def _error_message(exc: BaseException, fallback: str) -> str:
    message = str(exc)
    return message if message else fallback


class PageLoader:
    """Calls fetch functions on behalf of one ``ListState``."""

    def __init__(self, state: ListState):
        self.state = state

    def _request(self, first: bool) -> PageRequest:
        s = self.state
        if first:
            return PageRequest(page_size=s.page_size, cursor=None, start_index=0)
        if s.mode == "cursor":
            return PageRequest(page_size=s.page_size, cursor=s.cursor)
        return PageRequest(page_size=s.page_size, start_index=s.start_index)

    @staticmethod
    async def _call(fetch_fn: FetchFn, args: tuple, request: PageRequest) -> PageResult:
        result = fetch_fn(*args, request)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, PageResult):
            return result
        return PageResult.model_validate(result)

    def _apply_position(self, page: PageResult) -> None:
        s = self.state
        if s.mode == "cursor":
            s.cursor = page.cursor
        else:
            if page.next_start_index is not None:
                s.start_index = page.next_start_index
            else:
                s.start_index += len(page.items)
            s.total_available = page.total_available
        s.has_more = page.has_more

    async def load_first_page(self, fetch_fn: FetchFn, *args: Any) -> ListState:
        s = self.state
        s.generation += 1
        generation = s.generation
        s.items = []
        s.cursor = None
        s.start_index = 0
        s.total_loaded = 0
        s.error = None
        s.loading = True
        s.status = "loading"

        try:
            page = await self._call(fetch_fn, args, self._request(first=True))
        except Exception as exc:
            if generation == s.generation:
                logger.warning("Error loading first page", exc_info=True)
                s.error = _error_message(exc, "Failed to load data")
                s.items = []
                s.has_more = False
                s.status = "errored"
            else:
                logger.info("Discarding failure from a superseded first-page load")
        else:
            if generation == s.generation:
                s.items = list(page.items)
                s.total_loaded = len(s.items)
                self._apply_position(page)
                s.status = "loaded"
                logger.info(
                    "Loaded first page: %d items (has_more=%s)", len(s.items), s.has_more
                )
            else:
                logger.info("Discarding result from a superseded first-page load")
        finally:
            if generation == s.generation:
                s.loading = False
        return s

    async def load_next_page(self, fetch_fn: FetchFn, *args: Any) -> ListState:
        s = self.state
        if not s.has_more or s.loading:
            return s

        generation = s.generation
        s.error = None
        s.loading = True
        s.status = "loading"

        try:
            page = await self._call(fetch_fn, args, self._request(first=False))
        except Exception as exc:
            if generation == s.generation:
                logger.warning("Error loading next page", exc_info=True)
                s.error = _error_message(exc, "Failed to load more data")
                s.status = "errored"
        else:
            if generation == s.generation:
                s.items.extend(page.items)
                s.total_loaded += len(page.items)
                self._apply_position(page)
                s.status = "loaded"
                logger.info(
                    "Appended page: %d items, %d loaded (has_more=%s)",
                    len(page.items),
                    s.total_loaded,
                    s.has_more,
                )
        finally:
            if generation == s.generation:
                s.loading = False
        return s

    async def refresh(self, fetch_fn: FetchFn, *args: Any) -> ListState:
        return await self.load_first_page(fetch_fn, *args)

    async def update_page_size(
        self, new_size: int, fetch_fn: Optional[FetchFn] = None, *args: Any
    ) -> ListState:
        self.state.page_size = clamp_page_size(new_size, self.state.max_page_size)
        if fetch_fn is not None:
            await self.load_first_page(fetch_fn, *args)
        return self.state


class MutationApplier:
    """Optimistic edits applied straight to the cached rows."""

    def __init__(self, state: ListState):
        self.state = state

    def prepend_item(self, item: Any) -> None:
        s = self.state
        s.items.insert(0, item)
        s.total_loaded += 1
        if s.total_available is not None:
            s.total_available += 1

    def update_item(self, item_id: Any, patch: Mapping[str, Any], id_field: str = "id") -> bool:
        s = self.state
        for idx, item in enumerate(s.items):
            if _item_id(item, id_field) == item_id:
                s.items[idx] = _merge(item, patch)
                return True
        return False

    def remove_item(self, item_id: Any, id_field: str = "id") -> bool:
        s = self.state
        for idx, item in enumerate(s.items):
            if _item_id(item, id_field) == item_id:
                del s.items[idx]
                s.total_loaded = max(0, s.total_loaded - 1)
                if s.total_available is not None:
                    s.total_available = max(0, s.total_available - 1)
                return True
        return False

    def clear(self) -> None:
        s = self.state
        s.generation += 1
        s.items = []
        s.cursor = None
        s.start_index = 0
        s.total_loaded = 0
        s.total_available = None
        s.has_more = True
        s.error = None
        s.loading = False
        s.status = "idle"


class Paginator:
    """One paginated list: a ``ListState`` plus the operations that act on it."""

    def __init__(
        self,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
        mode: PaginationMode = "cursor",
        state: Optional[ListState] = None,
    ):
        self.state = state or ListState(page_size=page_size, max_page_size=max_page_size, mode=mode)
        self.loader = PageLoader(self.state)
        self.mutations = MutationApplier(self.state)

    # ---- reads ----
    @property
    def items(self) -> List[Any]:
        return self.state.items

    def __len__(self) -> int:
        return len(self.state.items)

    def __getattr__(self, name: str) -> Any:
        # flags and counters live on the state object
        if name == "state":
            raise AttributeError(name)
        return getattr(self.state, name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in ("state", "loader", "mutations"):
            object.__setattr__(self, name, value)
            return
        if name == "page_size":
            value = clamp_page_size(value, self.state.max_page_size)
        setattr(self.state, name, value)

    # ---- loading ----
    async def load_first_page(self, fetch_fn: FetchFn, *args: Any) -> ListState:
        return await self.loader.load_first_page(fetch_fn, *args)

    async def load_next_page(self, fetch_fn: FetchFn, *args: Any) -> ListState:
        return await self.loader.load_next_page(fetch_fn, *args)

    async def refresh(self, fetch_fn: FetchFn, *args: Any) -> ListState:
        return await self.loader.refresh(fetch_fn, *args)

    async def update_page_size(
        self, new_size: int, fetch_fn: Optional[FetchFn] = None, *args: Any
    ) -> ListState:
        return await self.loader.update_page_size(new_size, fetch_fn, *args)

    # ---- optimistic mutations ----
    def prepend_item(self, item: Any) -> None:
        self.mutations.prepend_item(item)

    def update_item(self, item_id: Any, patch: Mapping[str, Any], id_field: str = "id") -> bool:
        return self.mutations.update_item(item_id, patch, id_field)

    def remove_item(self, item_id: Any, id_field: str = "id") -> bool:
        return self.mutations.remove_item(item_id, id_field)

    def clear(self) -> None:
        self.mutations.clear()


def trip_paginator(page_size: Optional[int] = None, **kwargs: Any) -> Paginator:
    """Cursor-mode paginator for trip lists."""
    return Paginator(page_size=page_size or DEFAULT_PAGE_SIZE, mode="cursor", **kwargs)


def activity_paginator(page_size: Optional[int] = None, **kwargs: Any) -> Paginator:
    """Index-mode paginator for itinerary activities."""
    return Paginator(page_size=page_size or ACTIVITY_PAGE_SIZE, mode="index", **kwargs)
