"""Loader for a single product's detail view."""

import asyncio
import contextlib
import logging
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from .errors import ErrorKind, FetchError, FetchResult, FetchSuccess, classify
from .models import ProductDetail
from .observable import StateFlow

logger = logging.getLogger(__name__)


class ProductDetailFetcher(Protocol):
    async def fetch_detail(self, product_id: int) -> FetchResult[ProductDetail]:
        ...


class ProductDetailState(BaseModel):
    """Snapshot of the detail view."""

    model_config = ConfigDict(frozen=True)

    product_detail: ProductDetail | None = Field(default=None)
    is_loading: bool = Field(default=False)
    error_message: str | None = Field(default=None)
    error_kind: ErrorKind | None = Field(default=None)


class ProductDetailLoader:
    """Loads one product and exposes the result as observable state."""

    def __init__(self, fetcher: ProductDetailFetcher, product_id: int):
        self._fetcher = fetcher
        self.product_id = product_id
        self._state = StateFlow(ProductDetailState())
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> ProductDetailState:
        return self._state.value

    def observe(self) -> StateFlow[ProductDetailState]:
        return self._state

    def load(self) -> asyncio.Task | None:
        """Start loading; ignored while a load is already running."""
        if self._task is not None:
            logger.debug(f"load() ignored: product {self.product_id} already loading")
            return None
        loop = asyncio.get_running_loop()
        self._state.emit(self.state.model_copy(
            update={"is_loading": True, "error_message": None, "error_kind": None}
        ))
        self._task = loop.create_task(self._run())
        self._task.add_done_callback(self._on_cancelled)
        return self._task

    def retry(self) -> asyncio.Task | None:
        return self.load()

    async def join(self) -> None:
        task = self._task
        if task is not None:
            await asyncio.shield(task)

    async def aclose(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def _on_cancelled(self, task: asyncio.Task) -> None:
        # aclose() drops the task first and keeps the loading state
        if not task.cancelled() or task is not self._task:
            return
        logger.info(f"Load of product {self.product_id} cancelled")
        self._task = None
        self._state.emit(self.state.model_copy(update={"is_loading": False}))

    async def _run(self) -> None:
        try:
            result = await self._fetcher.fetch_detail(self.product_id)
        except Exception as e:
            logger.error(f"Fetcher raised while loading product {self.product_id}: {e!r}")
            result = classify(e)

        if not isinstance(result, (FetchSuccess, FetchError)):
            logger.error(f"Fetcher returned {type(result).__name__} for product {self.product_id}")
            result = FetchError(f"Unexpected fetch result: {result!r}", ErrorKind.UNKNOWN)

        self._task = None

        if isinstance(result, FetchSuccess):
            logger.info(f"Loaded product {self.product_id}")
            self._state.emit(ProductDetailState(product_detail=result.data))
        else:
            error: FetchError = result
            logger.warning(f"Product {self.product_id} failed ({error.kind.value}): {error.message}")
            self._state.emit(self.state.model_copy(update={
                "is_loading": False,
                "error_message": error.message,
                "error_kind": error.kind,
            }))
