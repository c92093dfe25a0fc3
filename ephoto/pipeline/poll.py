"""Poll loop - re-queries a pending generation until it settles or the attempts run out."""

import asyncio
from collections.abc import Awaitable, Callable

from ..core.utils import log
from .types import ExtractionResult

StatusQuery = Callable[[], Awaitable[ExtractionResult]]


async def _wait(interval: float, cancel: asyncio.Event | None) -> bool:
    """Sleep for interval seconds. Returns True if cancel was set meanwhile."""
    if cancel is None:
        await asyncio.sleep(interval)
        return False
    if cancel.is_set():
        return True
    try:
        await asyncio.wait_for(cancel.wait(), timeout=interval)
    except asyncio.TimeoutError:
        return False
    return True


async def poll_until_ready(
    status_query: StatusQuery,
    max_attempts: int,
    interval: float,
    cancel: asyncio.Event | None = None,
) -> ExtractionResult:
    """Repeat {wait interval, query status} until Found or NotFound.

    One attempt at a time; nothing runs concurrently. Running out of attempts while
    still Pending gives Timeout, as does setting `cancel`.
    """
    for attempt in range(1, max_attempts + 1):
        if await _wait(interval, cancel):
            log(f"Polling cancelled after {attempt - 1} attempt(s)", "✕")
            return ExtractionResult.timeout()

        result = await status_query()
        if not result.is_pending:
            log(f"Poll settled on attempt {attempt}/{max_attempts}: {result.state.value}", "✓")
            return result
        log(f"Still generating (attempt {attempt}/{max_attempts})", "⟳")

    log(f"Gave up after {max_attempts} attempts", "⚠")
    return ExtractionResult.timeout()
