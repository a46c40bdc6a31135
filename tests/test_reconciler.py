# tests/test_reconciler.py
import asyncio

import pytest

from app.core.errors import BackendHTTPError
from app.services.reconciler import RequestReconciler


def test_single_request_is_delivered():
    async def scenario():
        reconciler = RequestReconciler("plan")

        async def call():
            return "route"

        delivery = await reconciler.submit(call)
        assert delivery is not None
        assert delivery.ok
        assert delivery.unwrap() == "route"
        assert delivery.token == 1
        assert not reconciler.in_flight

    asyncio.run(scenario())


def test_stale_response_is_never_committed():
    """
    A is issued, B is issued before A resolves, B resolves first and A
    resolves last: only B is delivered.
    """
    async def scenario():
        reconciler = RequestReconciler("plan")
        release_a = asyncio.Event()
        release_b = asyncio.Event()
        started = []

        async def slow(event, value):
            started.append(value)
            # a transport that ignores the cancel request and answers anyway
            while True:
                try:
                    await event.wait()
                    return value
                except asyncio.CancelledError:
                    continue

        task_a = asyncio.ensure_future(reconciler.submit(lambda: slow(release_a, "A")))
        while started != ["A"]:
            await asyncio.sleep(0)
        task_b = asyncio.ensure_future(reconciler.submit(lambda: slow(release_b, "B")))
        await asyncio.sleep(0)

        release_b.set()
        delivered_b = await task_b
        release_a.set()
        delivered_a = await task_a

        assert delivered_a is None
        assert delivered_b is not None
        assert delivered_b.value == "B"
        assert reconciler.is_current(delivered_b.token)

    asyncio.run(scenario())


def test_submit_cancels_the_previous_call():
    async def scenario():
        reconciler = RequestReconciler("plan")
        cancelled = []
        never = asyncio.Event()
        started = asyncio.Event()

        async def hang():
            started.set()
            try:
                await never.wait()
            except asyncio.CancelledError:
                cancelled.append(True)
                raise

        async def fast():
            return "fresh"

        first = asyncio.ensure_future(reconciler.submit(hang))
        await started.wait()
        second = await reconciler.submit(fast)

        assert await first is None
        assert second.value == "fresh"
        assert cancelled == [True]

    asyncio.run(scenario())


def test_errors_of_the_latest_request_are_delivered():
    async def scenario():
        reconciler = RequestReconciler("plan")

        async def broken():
            raise BackendHTTPError(500, "internal error")

        delivery = await reconciler.submit(broken)
        assert not delivery.ok
        assert isinstance(delivery.error, BackendHTTPError)
        with pytest.raises(BackendHTTPError):
            delivery.unwrap()

    asyncio.run(scenario())


def test_errors_of_superseded_requests_are_dropped():
    async def scenario():
        reconciler = RequestReconciler("plan")
        fail_now = asyncio.Event()
        started = asyncio.Event()

        async def broken():
            started.set()
            while not fail_now.is_set():
                try:
                    await fail_now.wait()
                except asyncio.CancelledError:
                    continue
            raise BackendHTTPError(500, "stale failure")

        async def ok():
            return "ok"

        stale = asyncio.ensure_future(reconciler.submit(broken))
        await started.wait()
        fresh = await reconciler.submit(ok)
        fail_now.set()

        assert await stale is None
        assert fresh.value == "ok"

    asyncio.run(scenario())


def test_cancel_supersedes_without_issuing():
    async def scenario():
        reconciler = RequestReconciler("plan")
        never = asyncio.Event()

        async def hang():
            await never.wait()

        pending = asyncio.ensure_future(reconciler.submit(hang))
        await asyncio.sleep(0)
        assert reconciler.in_flight

        reconciler.cancel()

        assert await pending is None
        assert not reconciler.in_flight
        assert reconciler.latest_token == 2

    asyncio.run(scenario())
