"""Cancellation token with asyncio wake-up support.

Exposes the ``CancellationToken`` class used by the dispatcher, the token
bucket and the streaming decoder. Besides cooperative polling
(``raise_if_cancelled``) a token can be awaited, so suspended waits (admission
tokens, transport reads) are interrupted promptly instead of at the next poll.
"""

from __future__ import annotations

import asyncio
from threading import Lock
from typing import Any, Awaitable, Callable, List, Optional, Tuple, TypeVar

from .state import CancellationState

T = TypeVar("T")


class CancellationToken:
    """A cancellation token with optional cascading semantics.

    ``cancel`` is thread-safe; awaiting coroutines are woken on their own
    event loop. Child tokens inherit cancellation when the parent is cancelled.
    """

    def __init__(self, *, parent: "CancellationToken | None" = None) -> None:
        self._state = CancellationState()
        self._lock = Lock()
        self._children: List[CancellationToken] = []
        self._waiters: List[Tuple[asyncio.AbstractEventLoop, asyncio.Future]] = []
        if parent is not None:
            parent.link_child(self)

    @property
    def cancelled(self) -> bool:  # noqa: D401 - short form
        """Whether cancellation has been requested."""
        return self._state.cancelled

    @property
    def reason(self) -> str | None:  # noqa: D401 - short form
        """Reason string supplied at cancel time (if any)."""
        return self._state.reason

    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation, wake waiters and cascade to children."""
        with self._lock:
            if not self._state.mark(reason):
                return
            children = list(self._children)
            waiters = list(self._waiters)
            self._waiters.clear()
        for loop, fut in waiters:
            if not loop.is_closed():
                loop.call_soon_threadsafe(_resolve, fut)
        for child in children:
            child.cancel(reason)

    def link_child(self, token: "CancellationToken") -> "CancellationToken":
        """Link a child token so parent cancellation cascades (returns child)."""
        with self._lock:
            self._children.append(token)
            should_cancel = self._state.cancelled
            reason = self._state.reason
        if should_cancel:
            token.cancel(reason)
        return token

    def raise_if_cancelled(self) -> None:
        """Raise ``CancelledError`` if token is cancelled."""
        if self._state.cancelled:
            raise self._state.error()

    def child(self) -> "CancellationToken":
        """Create and link a child token (shortcut)."""
        return CancellationToken(parent=self)

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        loop = asyncio.get_running_loop()
        fut: asyncio.Future = loop.create_future()
        with self._lock:
            if self._state.cancelled:
                return
            self._waiters.append((loop, fut))
        try:
            await fut
        finally:
            with self._lock:
                if (loop, fut) in self._waiters:
                    self._waiters.remove((loop, fut))

    async def guard(
        self,
        awaitable: Awaitable[T],
        *,
        on_abandon: Optional[Callable[[T], None]] = None,
    ) -> T:
        """Await ``awaitable`` unless the token fires first.

        On cancellation the inner awaitable is cancelled and
        ``CancelledError`` is raised. If the inner awaitable completed anyway
        (it raced the token), ``on_abandon`` receives its result so acquired
        resources can be handed back.
        """
        if self._state.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise self._state.error()
        inner = asyncio.ensure_future(awaitable)
        watcher = asyncio.ensure_future(self.wait())
        try:
            done, _ = await asyncio.wait({inner, watcher}, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            watcher.cancel()
            _abandon(inner, on_abandon)
            raise
        if inner in done:
            watcher.cancel()
            return inner.result()
        inner.cancel()
        await asyncio.gather(inner, return_exceptions=True)
        _abandon(inner, on_abandon)
        raise self._state.error()

    def __repr__(self) -> str:  # pragma: no cover - introspection aid
        return (
            f"CancellationToken(cancelled={self._state.cancelled}, "
            f"reason={self._state.reason!r}, children={len(self._children)})"
        )


def _resolve(fut: asyncio.Future) -> None:
    if not fut.done():
        fut.set_result(None)


def _abandon(task: asyncio.Future, on_abandon: Optional[Callable[[Any], None]]) -> None:
    if not task.done():
        task.cancel()
        return
    if on_abandon is not None and not task.cancelled() and task.exception() is None:
        on_abandon(task.result())


__all__ = ["CancellationToken"]
