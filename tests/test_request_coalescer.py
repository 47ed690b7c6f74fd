import asyncio

import pytest

from app.services.request_coalescer import RequestCoalescer


async def test_concurrent_callers_share_one_producer_run():
    coalescer = RequestCoalescer()
    release = asyncio.Event()
    runs = 0

    async def producer():
        nonlocal runs
        runs += 1
        await release.wait()
        return ["evt_1"]

    callers = [asyncio.create_task(coalescer.get_or_create("nba", producer)) for _ in range(10)]
    await asyncio.sleep(0)
    assert coalescer.is_pending("nba")

    release.set()
    results = await asyncio.gather(*callers)

    assert runs == 1
    assert all(result == ["evt_1"] for result in results)
    assert not coalescer.is_pending("nba")


async def test_failure_reaches_every_waiter_and_releases_key():
    coalescer = RequestCoalescer()
    release = asyncio.Event()

    async def failing():
        await release.wait()
        raise RuntimeError("upstream down")

    callers = [asyncio.create_task(coalescer.get_or_create("nba", failing)) for _ in range(3)]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*callers, return_exceptions=True)

    assert all(isinstance(r, RuntimeError) for r in results)
    assert coalescer.pending_keys() == []

    async def succeeding():
        return "ok"

    assert await coalescer.get_or_create("nba", succeeding) == "ok"


async def test_keys_are_independent():
    coalescer = RequestCoalescer()
    seen = []

    async def producer_for(key):
        seen.append(key)
        await asyncio.sleep(0)
        return key

    results = await asyncio.gather(
        coalescer.get_or_create("nba", lambda: producer_for("nba")),
        coalescer.get_or_create("mlb", lambda: producer_for("mlb")),
    )

    assert results == ["nba", "mlb"]
    assert sorted(seen) == ["mlb", "nba"]


async def test_cancelled_caller_does_not_cancel_shared_fetch():
    coalescer = RequestCoalescer()
    release = asyncio.Event()

    async def producer():
        await release.wait()
        return "done"

    first = asyncio.create_task(coalescer.get_or_create("nba", producer))
    second = asyncio.create_task(coalescer.get_or_create("nba", producer))
    await asyncio.sleep(0)

    first.cancel()
    with pytest.raises(asyncio.CancelledError):
        await first

    release.set()
    assert await second == "done"
