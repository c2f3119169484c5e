"""
Helpers for racing several browser waits against each other.
"""
import asyncio
from typing import Any, Awaitable, Optional, Tuple, Type


async def first_success(
    *awaitables: Awaitable[Any],
    timeout: Optional[float] = None,
    tolerate: Tuple[Type[BaseException], ...] = (Exception,),
) -> Tuple[Optional[int], Any]:
    """
    Run awaitables concurrently and return ``(index, result)`` of the first to succeed.

    A wait failing with one of ``tolerate`` simply loses the race; any other
    exception propagates. Returns ``(None, None)`` when every wait failed or
    ``timeout`` elapsed. Losing waits are cancelled and awaited before returning.
    """
    tasks = [asyncio.ensure_future(a) for a in awaitables]
    loop = asyncio.get_running_loop()
    deadline = None if timeout is None else loop.time() + timeout
    try:
        pending = set(tasks)
        while pending:
            remaining = None if deadline is None else max(0.0, deadline - loop.time())
            done, pending = await asyncio.wait(pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED)
            if not done:
                break
            for index, task in enumerate(tasks):
                if task not in done or task.cancelled():
                    continue
                error = task.exception()
                if error is None:
                    return index, task.result()
                if not isinstance(error, tolerate):
                    raise error
        return None, None
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
