"""Hierarchical cancellation tokens.

A root token is the shared context of a monitor run. Deadlines are child
tokens created with ``token.child(timeout)``: they fire when their parent
fires or when their own timeout elapses, whichever comes first.
"""

import asyncio
import logging
from collections.abc import Awaitable
from typing import Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Cancelled(Exception):
    """Raised by ``CancelToken.guard`` when the token fires first."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class CancelToken:
    def __init__(self, name: str = "", parent: Optional["CancelToken"] = None) -> None:
        self.name = name
        self.parent = parent
        self.reason: str | None = None
        self._event = asyncio.Event()
        self._children: set[CancelToken] = set()
        self._timer: asyncio.TimerHandle | None = None
        self._deadline: float | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "context cancelled") -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        logger.debug(f"Token '{self.name}' cancelled: {reason}")
        for child in list(self._children):
            child.cancel(reason)

    def child(self, timeout: float | None = None, name: str = "") -> "CancelToken":
        """Derive a token that fires with this one, or after ``timeout`` seconds."""
        token = CancelToken(name=name or f"{self.name}/child", parent=self)
        if self.cancelled:
            token.cancel(self.reason or "context cancelled")
            return token
        self._children.add(token)
        if timeout is not None:
            loop = asyncio.get_running_loop()
            token._deadline = loop.time() + timeout
            token._timer = loop.call_later(timeout, token.cancel, "deadline exceeded")
        return token

    def remaining(self) -> float | None:
        """Seconds left before the deadline, ``None`` for tokens without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - asyncio.get_running_loop().time())

    def release(self) -> None:
        """Detach from the parent and stop the timer. Does not cancel."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self.parent is not None:
            self.parent._children.discard(self)

    def __enter__(self) -> "CancelToken":
        return self

    def __exit__(self, *exc) -> None:
        self.release()

    async def wait(self) -> None:
        await self._event.wait()

    async def guard(self, aw: Awaitable[T]) -> T:
        """Await ``aw`` unless this token fires first.

        When the token wins, ``aw`` is cancelled and ``Cancelled`` is raised.
        """
        task = asyncio.ensure_future(aw)
        if self.cancelled:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise Cancelled(self.reason or "context cancelled")

        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            raise
        finally:
            if not waiter.done():
                waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        try:
            # A task that completed before the cancel took effect still counts
            return await task
        except asyncio.CancelledError:
            raise Cancelled(self.reason or "context cancelled") from None
