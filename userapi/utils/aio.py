"""Asyncio helpers: timeouts, retries with backoff, racing, settled gathering,
pagination and step pipelines.

The HTTP layer wraps store calls with ``with_timeout``; the rest are
general-purpose building blocks for callers of the API.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    Generic,
    Hashable,
    Iterable,
    Optional,
    Sequence,
    TypeVar,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


class OperationTimeout(TimeoutError):
    def __init__(self, message: str = "Operation timed out"):
        super().__init__(message)
        self.message = message


async def with_timeout(awaitable: Awaitable[T], timeout: float) -> T:
    """Await ``awaitable``; cancel it and raise ``OperationTimeout`` after ``timeout`` seconds."""
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError:
        raise OperationTimeout() from None


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 0.1,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> T:
    """
    Call ``operation`` until it succeeds, retrying up to ``max_retries`` times.

    Waits ``base_delay * 2 ** attempt`` between attempts.  Errors outside
    ``retry_on`` propagate immediately; the last error is re-raised once
    retries are exhausted.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except retry_on as exc:
            if attempt >= max_retries:
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(f"Operation failed: {exc}. Retry {attempt + 1}/{max_retries} after {delay}s...")
            await asyncio.sleep(delay)
            attempt += 1


async def first_completed(*awaitables: Awaitable[T]) -> T:
    """Return (or raise) the outcome of whichever awaitable settles first; cancel the rest."""
    if not awaitables:
        raise ValueError("first_completed() needs at least one awaitable")
    tasks = [asyncio.ensure_future(a) for a in awaitables]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        # Several may finish in the same loop iteration; keep argument order.
        winner = next(t for t in tasks if t in done)
        return winner.result()
    finally:
        for t in tasks:
            if not t.done():
                t.cancel()


@dataclass
class SettledResults(Generic[K, T]):
    successful: list[T] = field(default_factory=list)
    errors: list[tuple[K, BaseException]] = field(default_factory=list)


async def gather_settled(keys: Sequence[K], awaitables: Iterable[Awaitable[T]]) -> SettledResults[K, T]:
    """Run all awaitables concurrently and split outcomes into successes and keyed errors."""
    outcomes = await asyncio.gather(*awaitables, return_exceptions=True)
    if len(outcomes) != len(keys):
        raise ValueError("keys and awaitables must have the same length")
    settled: SettledResults[K, T] = SettledResults()
    for key, outcome in zip(keys, outcomes):
        if isinstance(outcome, BaseException):
            settled.errors.append((key, outcome))
        else:
            settled.successful.append(outcome)
    return settled


async def paginate(
    fetch_page: Callable[[int, int], Awaitable[list[T]]],
    page_size: int,
    max_pages: Optional[int] = None,
) -> AsyncIterator[list[T]]:
    """
    Yield pages from ``fetch_page(offset, limit)``.

    Stops after an empty page, a short page, or ``max_pages`` pages.
    """
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    offset = 0
    pages = 0
    while max_pages is None or pages < max_pages:
        page = await fetch_page(offset, page_size)
        if not page:
            return
        yield page
        pages += 1
        if len(page) < page_size:
            return
        offset += page_size


async def collect(batches: AsyncIterable[list[T]]) -> list[T]:
    items: list[T] = []
    async for batch in batches:
        items.extend(batch)
    return items


def pipeline(*steps: Callable[[Any], Any]) -> Callable[[Any], Awaitable[Any]]:
    """Compose steps left to right; each may be sync or async."""
    if not steps:
        raise ValueError("pipeline() needs at least one step")

    async def run(value: Any) -> Any:
        for step in steps:
            value = step(value)
            if inspect.isawaitable(value):
                value = await value
        return value

    return run
