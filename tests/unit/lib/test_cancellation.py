"""Tests for cooperative cancellation tokens."""

import asyncio

import pytest

from toolscope.lib.cancellation import NONE_TOKEN, CancellationToken, run_cancellable
from toolscope.lib.errors import CancellationError


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_initial_state(self) -> None:
        """Test a new token is not cancelled."""
        token = CancellationToken()

        assert token.is_cancellation_requested is False
        assert token.can_be_cancelled is True
        token.raise_if_cancelled()

    def test_cancel(self) -> None:
        """Test cancel sets the flag and raise_if_cancelled raises."""
        token = CancellationToken()
        token.cancel()

        assert token.is_cancellation_requested is True
        with pytest.raises(CancellationError):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_wait_returns_after_cancel(self) -> None:
        """Test waiters are released when the token is cancelled."""
        token = CancellationToken()
        waiter = asyncio.create_task(token.wait())
        await asyncio.sleep(0)
        assert not waiter.done()

        token.cancel()
        await asyncio.wait_for(waiter, timeout=1)

    def test_none_token(self) -> None:
        """Test NONE_TOKEN can never be cancelled."""
        assert NONE_TOKEN.can_be_cancelled is False
        assert NONE_TOKEN.is_cancellation_requested is False
        with pytest.raises(RuntimeError):
            NONE_TOKEN.cancel()


class TestRunCancellable:
    """Tests for run_cancellable."""

    @pytest.mark.asyncio
    async def test_returns_result(self) -> None:
        """Test the awaitable's result is returned."""

        async def work() -> int:
            return 42

        assert await run_cancellable(work(), CancellationToken()) == 42

    @pytest.mark.asyncio
    async def test_none_token_awaits_directly(self) -> None:
        """Test NONE_TOKEN runs the awaitable without racing it."""

        async def work() -> str:
            return "done"

        assert await run_cancellable(work(), NONE_TOKEN) == "done"

    @pytest.mark.asyncio
    async def test_already_cancelled(self) -> None:
        """Test an already-cancelled token raises before starting work."""
        started = False

        async def work() -> None:
            nonlocal started
            started = True

        token = CancellationToken()
        token.cancel()

        with pytest.raises(CancellationError):
            await run_cancellable(work(), token)
        assert started is False

    @pytest.mark.asyncio
    async def test_cancel_during_work(self) -> None:
        """Test cancelling the token aborts in-flight work."""
        started = asyncio.Event()
        finished = False

        async def work() -> None:
            nonlocal finished
            started.set()
            await asyncio.sleep(10)
            finished = True

        token = CancellationToken()
        task = asyncio.create_task(run_cancellable(work(), token))
        await started.wait()
        token.cancel()

        with pytest.raises(CancellationError):
            await task
        assert finished is False

    @pytest.mark.asyncio
    async def test_exception_propagates(self) -> None:
        """Test errors from the awaitable reach the caller."""

        async def work() -> None:
            raise ValueError("bad input")

        with pytest.raises(ValueError, match="bad input"):
            await run_cancellable(work(), CancellationToken())
