"""Tests for the async retry executor and cancellation scopes."""

from __future__ import annotations

import asyncio

import pytest

from cloudretry import (
    CancellationToken,
    CancelScope,
    CloudError,
    ErrorKind,
    RetryError,
    RetryExecutor,
    RetryPolicy,
    StopReason,
    execute_async,
    retrying,
)
from cloudretry.tests.helpers import AsyncScripted, FakeClientError, FakeClock, Scripted

POLICY = RetryPolicy(max_attempts=3, base_delay=0.1, multiplier=2.0, max_delay=1.0)
SLOW = RetryPolicy(max_attempts=3, base_delay=30.0, max_delay=30.0)


class TestAsyncScenarios:
    @pytest.mark.asyncio
    async def test_always_throttled(self, clock: FakeClock, throttled: FakeClientError) -> None:
        op = AsyncScripted(throttled)
        result = await execute_async(op, POLICY, sleep=clock.asleep, clock=clock)

        assert op.calls == 3
        assert clock.sleeps == pytest.approx([0.1, 0.2])
        assert result.unwrap_err().reason is StopReason.EXHAUSTED
        assert result.unwrap_err().error is throttled

    @pytest.mark.asyncio
    async def test_success_on_second_attempt(self, clock: FakeClock, throttled: FakeClientError) -> None:
        op = AsyncScripted(throttled, "ACTIVE")
        result = await execute_async(op, POLICY, sleep=clock.asleep, clock=clock)

        assert result.unwrap() == "ACTIVE"
        assert op.calls == 2
        assert clock.sleeps == pytest.approx([0.1])

    @pytest.mark.asyncio
    async def test_terminal_is_immediate(self, clock: FakeClock, denied: FakeClientError) -> None:
        op = AsyncScripted(denied)
        result = await execute_async(op, POLICY, sleep=clock.asleep, clock=clock)

        assert op.calls == 1
        assert clock.sleeps == []
        assert result.unwrap_err().kind is ErrorKind.ACCESS_DENIED

    @pytest.mark.asyncio
    async def test_sync_body_is_accepted(self, clock: FakeClock) -> None:
        op = Scripted(CloudError("503", ErrorKind.UNAVAILABLE), 7)
        result = await execute_async(op, POLICY, sleep=clock.asleep, clock=clock)

        assert result.unwrap() == 7


class TestAsyncCancellation:
    @pytest.mark.asyncio
    async def test_cancel_scope_times_out_wait(self, throttled: FakeClientError) -> None:
        op = AsyncScripted(throttled)
        async with CancelScope(timeout=0.05) as scope:
            await execute_async(op, SLOW)

        assert scope.cancel_called
        assert op.calls == 1

    @pytest.mark.asyncio
    async def test_task_cancellation_propagates(self, throttled: FakeClientError) -> None:
        task = asyncio.create_task(execute_async(AsyncScripted(throttled), SLOW))
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_token_ends_run_with_result(self, clock: FakeClock, throttled: FakeClientError) -> None:
        token = CancellationToken()
        op = AsyncScripted(throttled)
        result = await execute_async(op, POLICY, sleep=clock.asleep, clock=clock, cancel=token,
                                     on_retry=lambda _: token.cancel())

        assert op.calls == 1
        assert result.unwrap_err().reason is StopReason.CANCELLED

    @pytest.mark.asyncio
    async def test_scope_without_timeout_is_transparent(self) -> None:
        async with CancelScope() as scope:
            result = await execute_async(AsyncScripted("ok"), POLICY)

        assert not scope.cancel_called
        assert result.unwrap() == "ok"


class TestAsyncConvenience:
    @pytest.mark.asyncio
    async def test_concurrent_tasks_are_independent(self) -> None:
        policy = RetryPolicy(max_attempts=3, base_delay=0.0, max_delay=0.0)
        ops = [AsyncScripted(TimeoutError("slow"), i) for i in range(10)]

        results = await asyncio.gather(*(execute_async(op, policy) for op in ops))

        assert [r.unwrap() for r in results] == list(range(10))
        assert all(r.attempts == 2 for r in results)

    @pytest.mark.asyncio
    async def test_executor_arun_and_wrap(self, clock: FakeClock, throttled: FakeClientError) -> None:
        executor = RetryExecutor(POLICY, async_sleep=clock.asleep, clock=clock)
        calls: list[str] = []

        async def fetch(url: str) -> int:
            calls.append(url)
            if len(calls) == 1:
                raise throttled
            return 200

        assert (await executor.wrap(fetch)("https://example.invalid/health")).unwrap() == 200
        assert (await executor.arun(AsyncScripted("pong"))).unwrap() == "pong"
        assert clock.sleeps == pytest.approx([0.1])

    @pytest.mark.asyncio
    async def test_retrying_async_function(self, denied: FakeClientError) -> None:
        @retrying(RetryPolicy(max_attempts=4, base_delay=0.0, max_delay=0.0))
        async def rotate_secret() -> str:
            raise denied

        with pytest.raises(RetryError) as info:
            await rotate_secret()
        assert info.value.failure.attempts == 1
        assert info.value.__cause__ is denied
