"""Poll loop bounds and cancellation."""

import asyncio

import pytest

from ephoto.pipeline.poll import poll_until_ready
from ephoto.pipeline.types import ExtractionResult, ExtractionState


class StatusSequence:
    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.results.pop(0) if len(self.results) > 1 else self.results[0]


@pytest.mark.asyncio
async def test_pending_until_exhausted_is_timeout_not_not_found():
    query = StatusSequence(ExtractionResult.pending())

    result = await poll_until_ready(query, max_attempts=3, interval=0)

    assert result.state is ExtractionState.TIMEOUT
    assert query.calls == 3


@pytest.mark.asyncio
async def test_stops_at_first_found():
    found = ExtractionResult.found("https://e1.yotools.net/images/user_image/2024/01/a.jpg")
    query = StatusSequence(ExtractionResult.pending(), found, ExtractionResult.pending())

    result = await poll_until_ready(query, max_attempts=5, interval=0)

    assert result == found
    assert query.calls == 2


@pytest.mark.asyncio
async def test_not_found_is_terminal():
    query = StatusSequence(ExtractionResult.not_found())

    result = await poll_until_ready(query, max_attempts=5, interval=0)

    assert result.state is ExtractionState.NOT_FOUND
    assert query.calls == 1


@pytest.mark.asyncio
async def test_preset_cancel_skips_every_attempt():
    query = StatusSequence(ExtractionResult.pending())
    cancel = asyncio.Event()
    cancel.set()

    result = await poll_until_ready(query, max_attempts=10, interval=5, cancel=cancel)

    assert result.state is ExtractionState.TIMEOUT
    assert query.calls == 0


@pytest.mark.asyncio
async def test_cancel_during_wait_aborts_remaining_attempts():
    cancel = asyncio.Event()
    query = StatusSequence(ExtractionResult.pending())
    asyncio.get_running_loop().call_later(0.05, cancel.set)

    result = await asyncio.wait_for(poll_until_ready(query, max_attempts=10, interval=30, cancel=cancel), timeout=5)

    assert result.state is ExtractionState.TIMEOUT
    assert query.calls == 0
