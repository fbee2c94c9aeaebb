"""Unit tests for deadline propagation around store calls."""
import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from espm.kernel.errors import TimeoutError as AppTimeoutError
from espm.resilience.deadline import (
    DeadlineContext,
    DeadlineExceededError,
    deadline_aware,
)
from espm.resilience.timeouts import Deadline


class TestDeadline:
    def test_after_is_in_the_future(self):
        dl = Deadline.after(seconds=30)
        assert not dl.is_expired
        assert 0 < dl.remaining_seconds <= 30

    def test_expired(self):
        dl = Deadline(expires_at=datetime.now(UTC) - timedelta(seconds=1))
        assert dl.is_expired
        assert dl.remaining_seconds == 0.0
        with pytest.raises(AppTimeoutError):
            dl.raise_if_expired()


class TestDeadlineContext:
    def test_set_and_get(self):
        dl = Deadline.after(seconds=5)
        token = DeadlineContext.set(dl)
        assert DeadlineContext.get() is dl
        DeadlineContext.reset(token)

    def test_scoped_restores_previous(self):
        async def run():
            before = DeadlineContext.get()
            dl = Deadline.after(seconds=10)
            async with DeadlineContext.scoped(dl) as d:
                assert DeadlineContext.get() is dl
                assert d is dl
            assert DeadlineContext.get() is before
        asyncio.run(run())

    def test_raise_if_exceeded_expired(self):
        token = DeadlineContext.set(Deadline.after(seconds=-1))
        try:
            with pytest.raises(DeadlineExceededError):
                DeadlineContext.raise_if_exceeded()
        finally:
            DeadlineContext.reset(token)

    def test_raise_if_exceeded_not_expired(self):
        token = DeadlineContext.set(Deadline.after(seconds=60))
        try:
            DeadlineContext.raise_if_exceeded()
        finally:
            DeadlineContext.reset(token)

    def test_deadline_exceeded_is_a_timeout(self):
        assert issubclass(DeadlineExceededError, AppTimeoutError)
        assert DeadlineExceededError("x").code == "deadline_exceeded"


class TestDeadlineAware:
    def test_no_deadline_runs_unbounded(self):
        async def run():
            async def work():
                await asyncio.sleep(0)
                return "ok"
            return await deadline_aware(work())

        assert asyncio.run(run()) == "ok"

    def test_completes_within_deadline(self):
        async def fast():
            return "ok"

        assert asyncio.run(deadline_aware(fast(), Deadline.after(seconds=5))) == "ok"

    def test_raises_when_already_expired(self):
        async def run():
            with pytest.raises(DeadlineExceededError):
                await deadline_aware(asyncio.sleep(0), Deadline.after(seconds=-1))

        asyncio.run(run())

    def test_raises_on_timeout(self):
        async def slow():
            await asyncio.sleep(10)
            return "too_late"

        with pytest.raises(DeadlineExceededError):
            asyncio.run(deadline_aware(slow(), Deadline.after(seconds=0.01)))

    def test_uses_context_deadline(self):
        async def run():
            async def slow():
                await asyncio.sleep(10)

            async with DeadlineContext.scoped(Deadline.after(seconds=0.01)):
                with pytest.raises(DeadlineExceededError):
                    await deadline_aware(slow())

        asyncio.run(run())

    def test_cancellation_propagates(self):
        async def run():
            started = asyncio.Event()

            async def work():
                started.set()
                await asyncio.sleep(10)

            task = asyncio.create_task(deadline_aware(work(), Deadline.after(seconds=30)))
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())
