"""Tests for the first-completed race primitive."""

import asyncio

import pytest

from login_api.waits import first_completed


async def finish_after(delay, value):
    await asyncio.sleep(delay)
    return value


class TestFirstCompleted:
    @pytest.mark.asyncio
    async def test_fastest_wins(self):
        result = await first_completed(finish_after(0.2, "slow"), finish_after(0.01, "fast"), timeout=1)
        assert result == (1, "fast")

    @pytest.mark.asyncio
    async def test_timeout_returns_none_and_cancels_losers(self):
        loser = asyncio.ensure_future(finish_after(10, "never"))
        result = await first_completed(loser, finish_after(10, "never"), timeout=0.05)

        assert result is None
        assert loser.cancelled()

    @pytest.mark.asyncio
    async def test_winner_exception_propagates(self):
        async def fail():
            raise RuntimeError("page crashed")

        with pytest.raises(RuntimeError, match="page crashed"):
            await first_completed(fail(), finish_after(10, "never"), timeout=1)

    @pytest.mark.asyncio
    async def test_losers_cancelled_after_win(self):
        loser = asyncio.ensure_future(finish_after(10, "never"))
        await first_completed(finish_after(0.01, "ok"), loser, timeout=1)
        assert loser.cancelled()
