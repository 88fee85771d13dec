"""Pagination state machine for the product listing."""

import asyncio
import contextlib
import functools
import logging
from collections.abc import Iterable
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .errors import ErrorKind, FetchError, FetchResult, FetchSuccess, classify
from .models import Page, Product
from .observable import StateFlow
from .repository import ProductFetcher

logger = logging.getLogger(__name__)


class LoadPhase(str, Enum):
    """Where the listing is in its load lifecycle."""

    IDLE = "idle"
    INITIAL_LOADING = "initial_loading"
    LOADED = "loaded"
    INITIAL_ERROR = "initial_error"
    LOADING_MORE = "loading_more"
    TAIL_ERROR = "tail_error"


class OperationInFlight(str, Enum):
    """Which fetch, if any, is currently running."""

    NONE = "none"
    INITIAL = "initial"
    MORE = "more"


class PaginationState(BaseModel):
    """Immutable snapshot of the listing.

    Loading flags are derived from ``phase`` so the two can never be set
    together. ``error_message`` is only set in the error phases.
    """

    model_config = ConfigDict(frozen=True)

    phase: LoadPhase = Field(default=LoadPhase.IDLE)
    items: tuple[Product, ...] = Field(default=())
    error_message: str | None = Field(default=None)
    error_kind: ErrorKind | None = Field(default=None)
    has_more_pages: bool = Field(default=True)
    current_page: int = Field(default=0, description="Last successfully fetched page")

    @property
    def is_loading(self) -> bool:
        return self.phase is LoadPhase.INITIAL_LOADING

    @property
    def is_loading_more(self) -> bool:
        return self.phase is LoadPhase.LOADING_MORE

    @property
    def should_load_more(self) -> bool:
        """Whether the sentinel may trigger an automatic prefetch."""
        return self.has_more_pages and not self.is_loading_more and self.error_message is None


def merge_unique(existing: Iterable[Product], incoming: Iterable[Product]) -> tuple[Product, ...]:
    """Concatenate products, keeping the first occurrence of each id."""
    seen: set[int] = set()
    merged: list[Product] = []
    for product in (*existing, *incoming):
        if product.id in seen:
            continue
        seen.add(product.id)
        merged.append(product)
    return tuple(merged)


class PaginationEngine:
    """Drives page fetches and owns the listing state.

    ``start``, ``load_more`` and ``retry`` must be called from a running
    event loop. Each returns the scheduled fetch task, or ``None`` when the
    call was ignored. At most one fetch runs at a time; calls made while one
    is running are ignored rather than queued.
    """

    def __init__(self, fetcher: ProductFetcher, autostart: bool = False):
        """Initialize engine.

        Args:
            fetcher: Source of product pages
            autostart: Issue the initial load right away when built inside a
                running loop, otherwise on entering ``async with``
        """
        self._fetcher = fetcher
        self._state = StateFlow(PaginationState())
        self._operation = OperationInFlight.NONE
        self._task: asyncio.Task | None = None
        self._request_id = 0
        self._closed = False
        self._autostart_pending = False

        if autostart:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                self._autostart_pending = True
            else:
                self.start()

    async def __aenter__(self) -> "PaginationEngine":
        if self._autostart_pending:
            self._autostart_pending = False
            self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    @property
    def state(self) -> PaginationState:
        return self._state.value

    @property
    def operation(self) -> OperationInFlight:
        return self._operation

    def observe(self) -> StateFlow[PaginationState]:
        return self._state

    # =========================================================================
    # Commands
    # =========================================================================

    def start(self) -> asyncio.Task | None:
        """Load the first page, replacing any items already shown."""
        if self._operation is not OperationInFlight.NONE:
            logger.debug(f"start() ignored: {self._operation.value} load in flight")
            return None
        return self._launch(OperationInFlight.INITIAL, page=1)

    def load_more(self) -> asyncio.Task | None:
        """Load the page after the last successful one."""
        state = self.state
        if state.is_loading_more or not state.has_more_pages or self._operation is not OperationInFlight.NONE:
            logger.debug(
                f"load_more() ignored: phase={state.phase.value} "
                f"has_more_pages={state.has_more_pages} operation={self._operation.value}"
            )
            return None
        return self._launch(OperationInFlight.MORE, page=state.current_page + 1)

    def retry(self) -> asyncio.Task | None:
        """Clear the error now, then repeat the load that failed."""
        state = self.state
        if state.error_message is not None:
            cleared = LoadPhase.LOADED if state.items else LoadPhase.IDLE
            self._state.emit(
                state.model_copy(update={"phase": cleared, "error_message": None, "error_kind": None})
            )

        if not self.state.items:
            return self.start()
        return self.load_more()

    async def join(self) -> None:
        """Wait for the in-flight fetch, if any, to finish.

        Cancelling the wait (for example through ``asyncio.wait_for``) leaves
        the fetch running.
        """
        task = self._task
        if task is not None:
            await asyncio.shield(task)

    async def aclose(self) -> None:
        """End the session: cancel any in-flight fetch without applying it."""
        self._closed = True
        self._request_id += 1
        self._operation = OperationInFlight.NONE
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # =========================================================================
    # Internals
    # =========================================================================

    def _launch(self, operation: OperationInFlight, page: int) -> asyncio.Task:
        if self._closed:
            raise RuntimeError("Pagination engine is closed")
        loop = asyncio.get_running_loop()

        self._request_id += 1
        self._operation = operation
        settled = self.state
        phase = LoadPhase.INITIAL_LOADING if operation is OperationInFlight.INITIAL else LoadPhase.LOADING_MORE
        self._state.emit(
            settled.model_copy(update={"phase": phase, "error_message": None, "error_kind": None})
        )

        self._task = loop.create_task(self._run(operation, page, self._request_id))
        self._task.add_done_callback(functools.partial(self._on_cancelled, self._request_id, settled))
        return self._task

    def _on_cancelled(self, request_id: int, settled: PaginationState, task: asyncio.Task) -> None:
        # aclose() bumps the request id first, so only outside cancels get here
        if not task.cancelled() or request_id != self._request_id:
            return
        logger.info(f"Load cancelled, back to {settled.phase.value}")
        self._operation = OperationInFlight.NONE
        self._task = None
        self._state.emit(self.state.model_copy(update={
            "phase": settled.phase,
            "error_message": settled.error_message,
            "error_kind": settled.error_kind,
        }))

    async def _run(self, operation: OperationInFlight, page: int, request_id: int) -> None:
        logger.debug(f"Fetching page {page} ({operation.value}, request {request_id})")
        try:
            result = await self._fetcher.fetch(page)
        except Exception as e:
            logger.error(f"Fetcher raised while loading page {page}: {e!r}")
            result = classify(e)

        if not isinstance(result, (FetchSuccess, FetchError)):
            logger.error(f"Fetcher returned {type(result).__name__} for page {page}")
            result = FetchError(f"Unexpected fetch result: {result!r}", ErrorKind.UNKNOWN)

        if request_id != self._request_id:
            logger.debug(f"Discarding stale result for page {page} (request {request_id})")
            return

        self._operation = OperationInFlight.NONE
        self._task = None
        self._apply(operation, result)

    def _apply(self, operation: OperationInFlight, result: FetchResult[Page]) -> None:
        state = self.state

        if isinstance(result, FetchSuccess):
            page: Page = result.data
            existing = () if operation is OperationInFlight.INITIAL else state.items
            items = merge_unique(existing, page.items)
            logger.info(
                f"Loaded page {page.current_page}/{page.total_pages}: "
                f"{len(items) - len(existing)} new products, {len(items)} total"
            )
            self._state.emit(PaginationState(
                phase=LoadPhase.LOADED,
                items=items,
                has_more_pages=page.has_more_pages,
                current_page=page.current_page,
            ))
            return

        error: FetchError = result
        phase = LoadPhase.INITIAL_ERROR if operation is OperationInFlight.INITIAL else LoadPhase.TAIL_ERROR
        logger.warning(f"Load failed ({phase.value}, {error.kind.value}): {error.message}")
        self._state.emit(
            state.model_copy(update={"phase": phase, "error_message": error.message, "error_kind": error.kind})
        )
