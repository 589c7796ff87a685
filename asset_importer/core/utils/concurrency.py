"""
Bounded-concurrency helpers for fanning out async work.

``map_with_concurrency`` runs one coroutine per item with at most ``limit``
in flight and returns a settled result per item, aligned with the input
order. A failing item is captured as a ``Rejected`` entry instead of
propagating, so one bad item never aborts its siblings.

Example:
    results = await map_with_concurrency(pairs, 8, caption_pair)
    for result in results:
        if result.ok:
            use(result.value)
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar, Union

logger = logging.getLogger("asset_importer.concurrency")

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Fulfilled(Generic[R]):
    """Settled result of a task that returned a value."""
    value: R
    status: str = "fulfilled"

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Rejected:
    """Settled result of a task that raised."""
    reason: BaseException
    status: str = "rejected"

    @property
    def ok(self) -> bool:
        return False


SettledResult = Union[Fulfilled[Any], Rejected]


async def map_with_concurrency(
    items: Sequence[T],
    limit: int,
    fn: Callable[[T, int], Awaitable[R]],
) -> List[SettledResult]:
    """
    Run ``fn(item, index)`` for every item with at most ``limit`` in flight.

    Args:
        items: Items to process
        limit: Maximum number of concurrent ``fn`` invocations (must be > 0)
        fn: Coroutine function receiving the item and its index

    Returns:
        One settled result per item; ``results[i]`` always belongs to
        ``items[i]`` whatever order the tasks finished in.

    Raises:
        ValueError: If ``limit`` is not positive
    """
    if limit <= 0:
        raise ValueError(f"Concurrency limit must be positive, got {limit}")

    items = list(items)
    if not items:
        return []

    results: List[Optional[SettledResult]] = [None] * len(items)
    semaphore = asyncio.Semaphore(limit)

    async def _run(index: int, item: T) -> None:
        async with semaphore:
            try:
                value = await fn(item, index)
            except Exception as e:
                logger.debug(f"Task {index} rejected: {e}")
                results[index] = Rejected(reason=e)
            else:
                results[index] = Fulfilled(value=value)

    await asyncio.gather(*(_run(i, item) for i, item in enumerate(items)))
    return results
