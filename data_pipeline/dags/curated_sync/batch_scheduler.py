"""
dags/curated_sync/batch_scheduler.py

Open-loop rate limiting for outbound Nexus calls.

The fetch set is cut into fixed-size batches. Every member of a batch is
started at once and the scheduler waits for all of them to settle before
sleeping and moving on, so at most batch_size mods are in flight. There
is no quota feedback: batch size and delay are picked conservatively and
a 429 is expected to be rare. No sleep follows the final batch.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

# ── Logging ──────────────────────────────────────────────────────────────────
logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def make_batches(items: Sequence[T], size: int) -> list[list[T]]:
    """Split items into consecutive groups of at most `size`."""
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


async def run_batches(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[Optional[R]]],
    batch_size: int,
    delay_seconds: float,
    on_result: Optional[Callable[[R], None]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> list[R]:
    """
    Run worker over items batch by batch. None results are dropped.

    Results reach on_result only once their whole batch has settled without
    error. If any member raises, the rest of that batch still settles, none
    of its results are delivered, and the first exception is re-raised. No
    later batch is started.
    """
    results: list[R] = []
    batches = make_batches(items, batch_size)

    for batch_num, batch in enumerate(batches, start=1):
        logger.info(
            "Processing batch %d/%d (%d mods)...",
            batch_num, len(batches), len(batch),
        )
        settled = await asyncio.gather(
            *(worker(item) for item in batch),
            return_exceptions=True,
        )

        first_error: Optional[BaseException] = None
        batch_results: list[R] = []
        for item, outcome in zip(batch, settled):
            if isinstance(outcome, BaseException):
                logger.error("Batch %d: %r failed: %s", batch_num, item, outcome)
                if first_error is None:
                    first_error = outcome
                continue
            if outcome is not None:
                batch_results.append(outcome)

        if first_error is not None:
            raise first_error

        results.extend(batch_results)
        if on_result is not None:
            for outcome in batch_results:
                on_result(outcome)

        # Sleep between batches — skip sleep after the last batch.
        if batch_num < len(batches):
            logger.debug(
                "Batch %d complete. Sleeping %.2fs before next batch...",
                batch_num, delay_seconds,
            )
            await sleep(delay_seconds)

    return results
