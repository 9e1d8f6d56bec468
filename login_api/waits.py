# login_api/waits.py
import asyncio
from typing import Any, Awaitable, Optional


async def first_completed(*waits: Awaitable[Any], timeout: float | None = None) -> Optional[tuple[int, Any]]:
    """Run ``waits`` concurrently and return ``(index, result)`` of the first to finish.

    Returns None when ``timeout`` (seconds) elapses first. The losing waits are
    cancelled; they are expected to be side-effect free DOM/navigation waits.
    An exception raised by the winning wait propagates to the caller.
    """
    tasks = [asyncio.ensure_future(w) for w in waits]
    try:
        done, _ = await asyncio.wait(tasks, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        if not done:
            return None
        # several may finish in the same loop turn; the lowest index wins
        winner = min(done, key=tasks.index)
        return tasks.index(winner), winner.result()
    finally:
        pending = [t for t in tasks if not t.done()]
        for t in pending:
            t.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        for t in tasks:
            # retrieve exceptions of losers so asyncio does not log them as unhandled
            if t.done() and not t.cancelled():
                t.exception()


async def sleep_ms(ms: int) -> None:
    await asyncio.sleep(max(ms, 0) / 1000)
