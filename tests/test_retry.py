"""
Tests for RetryPolicy polling and RunToken cancel/pause.
"""

import asyncio

import pytest

from automarket.core.errors import RunCancelled, SurfaceNotReady
from automarket.core.retry import RetryPolicy, RunToken


class TestPollUntilReady:

    @pytest.mark.asyncio
    async def test_returns_true_on_first_success_without_sleeping(self, retry, sleeper):
        assert await retry.poll_until_ready(lambda: True, 10, 100) is True
        assert sleeper.calls == []

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, retry, sleeper):
        calls = []

        def predicate():
            calls.append(1)
            return False

        assert await retry.poll_until_ready(predicate, 5, 60) is False
        assert len(calls) == 5
        # No sleep after the last attempt
        assert sleeper.calls == [0.06] * 4

    @pytest.mark.asyncio
    async def test_awaits_async_predicates(self, retry):
        attempts = []

        async def predicate():
            attempts.append(1)
            return len(attempts) == 3

        assert await retry.poll_until_ready(predicate, 10, 50) is True
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_raising_predicate_counts_as_failed_attempt(self, retry):
        attempts = []

        def predicate():
            attempts.append(1)
            if len(attempts) < 2:
                raise RuntimeError("surface handle went stale")
            return True

        assert await retry.poll_until_ready(predicate, 3, 10) is True
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_cancelled_token_stops_polling(self, retry):
        token = RunToken()
        token.cancel()
        with pytest.raises(RunCancelled):
            await retry.poll_until_ready(lambda: False, 10, 10, token)

    @pytest.mark.asyncio
    async def test_require_raises_surface_not_ready(self, retry):
        with pytest.raises(SurfaceNotReady) as exc_info:
            await retry.require(lambda: False, 3, 10, "RetainerSell")
        assert exc_info.value.surface == "RetainerSell"
        assert exc_info.value.attempts == 3

    @pytest.mark.asyncio
    async def test_delay_uses_milliseconds(self, retry, sleeper):
        await retry.delay(300)
        await retry.delay(0)
        assert sleeper.calls == [0.3]


class TestRunToken:

    def test_cancel_is_one_way(self):
        token = RunToken()
        token.cancel()
        token.resume()
        assert token.cancelled
        with pytest.raises(RunCancelled):
            token.raise_if_cancelled()

    def test_pause_after_cancel_is_ignored(self):
        token = RunToken()
        token.cancel()
        token.pause()
        assert not token.paused

    @pytest.mark.asyncio
    async def test_checkpoint_blocks_while_paused(self):
        token = RunToken()
        token.pause()

        waiter = asyncio.create_task(token.checkpoint())
        await asyncio.sleep(0)
        assert not waiter.done()

        token.resume()
        await asyncio.wait_for(waiter, timeout=1)
        assert not token.paused

    @pytest.mark.asyncio
    async def test_cancel_releases_paused_checkpoint(self):
        token = RunToken()
        token.pause()

        waiter = asyncio.create_task(token.checkpoint())
        await asyncio.sleep(0)
        token.cancel()

        with pytest.raises(RunCancelled):
            await asyncio.wait_for(waiter, timeout=1)

    @pytest.mark.asyncio
    async def test_default_policy_uses_asyncio_sleep(self):
        policy = RetryPolicy()
        assert await policy.poll_until_ready(lambda: True, 1, 1000) is True
