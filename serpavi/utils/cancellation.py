"""
Cancellation token threaded through every suspendable pipeline step.

A token holds an absolute monotonic deadline and an explicit cancelled flag.
Steps call ``checkpoint()`` before each browser interaction and clamp their
Playwright timeouts with ``step_timeout_ms()`` so no single wait can outlive
the request.
"""
import asyncio
import time
from typing import Optional

from serpavi.utils.exceptions import PipelineCancelled

# Playwright treats 0 as "no timeout"; never hand it out.
MIN_STEP_TIMEOUT_MS = 1


class CancellationToken:
    """Deadline-bearing cancellation token with optional parent."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        parent: Optional["CancellationToken"] = None,
        clock=time.monotonic,
    ):
        self._clock = clock
        self._parent = parent
        self._cancelled = False
        self._reason = ""
        self.deadline = clock() + timeout if timeout is not None else None

    def child(self, timeout: float) -> "CancellationToken":
        """Derive a token that expires after ``timeout`` or with this one, whichever is first."""
        return CancellationToken(timeout=timeout, parent=self, clock=self._clock)

    def cancel(self, reason: str = "cancelled") -> None:
        self._cancelled = True
        self._reason = reason

    @property
    def cancelled(self) -> bool:
        if self._cancelled:
            return True
        return self._parent is not None and self._parent.cancelled

    @property
    def expired(self) -> bool:
        if self.deadline is not None and self._clock() >= self.deadline:
            return True
        return self._parent is not None and self._parent.expired

    def remaining(self) -> Optional[float]:
        """Seconds left before the nearest deadline in the chain, or None if unbounded."""
        own = None if self.deadline is None else max(0.0, self.deadline - self._clock())
        inherited = self._parent.remaining() if self._parent is not None else None
        if own is None:
            return inherited
        if inherited is None:
            return own
        return min(own, inherited)

    def step_timeout_ms(self, seconds: float) -> float:
        """Clamp a per-step timeout (seconds) to the time left, in milliseconds."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        return max(MIN_STEP_TIMEOUT_MS, seconds * 1000)

    def checkpoint(self) -> None:
        """Raise PipelineCancelled if the token was cancelled or has expired."""
        if self.cancelled:
            raise PipelineCancelled(self._reason or "pipeline cancelled")
        if self.expired:
            raise PipelineCancelled("deadline expired", expired=True)

    async def sleep(self, seconds: float) -> None:
        """Sleep for up to ``seconds``, never past the deadline, then checkpoint."""
        self.checkpoint()
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        await asyncio.sleep(seconds)
        self.checkpoint()
