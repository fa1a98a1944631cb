"""Tests for in-flight call de-duplication."""
import asyncio

import pytest

from sessionauth.application.identity.singleflight import SingleFlight


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_call(self):
        flight: SingleFlight[int] = SingleFlight()
        calls = 0

        async def work():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return 42

        results = await asyncio.gather(*(flight.do("k", work) for _ in range(5)))

        assert results == [42] * 5
        assert calls == 1

    @pytest.mark.asyncio
    async def test_key_is_forgotten_after_settling(self):
        flight: SingleFlight[int] = SingleFlight()
        calls = 0

        async def work():
            nonlocal calls
            calls += 1
            return calls

        assert await flight.do("k", work) == 1
        await asyncio.sleep(0)
        assert len(flight) == 0
        assert await flight.do("k", work) == 2

    @pytest.mark.asyncio
    async def test_waiter_timeout_does_not_cancel_shared_work(self):
        flight: SingleFlight[str] = SingleFlight()
        finished = asyncio.Event()

        async def work():
            await asyncio.sleep(0.05)
            finished.set()
            return "done"

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(flight.do("k", work), 0.01)

        assert await flight.do("k", work) == "done"
        assert finished.is_set()

    @pytest.mark.asyncio
    async def test_exception_reaches_every_waiter(self):
        flight: SingleFlight[None] = SingleFlight()

        async def work():
            await asyncio.sleep(0.01)
            raise RuntimeError("boom")

        results = await asyncio.gather(
            flight.do("k", work), flight.do("k", work), return_exceptions=True,
        )

        assert all(isinstance(r, RuntimeError) for r in results)
