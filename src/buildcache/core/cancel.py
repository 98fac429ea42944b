"""Cancellation handle shared by the resolver and the archive streamer."""

import asyncio
import logging

from ..exceptions import OperationCancelledError, StreamCancelledError

logger = logging.getLogger(__name__)


class CancelToken:
    """Cooperative cancellation signal, optionally with a deadline.

    A token is cancelled at most once; the first reason wins.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._timer: asyncio.TimerHandle | None = None

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancelToken":
        """Create a token that cancels itself after ``seconds``.

        Must be called with a running event loop.
        """
        token = cls()
        loop = asyncio.get_running_loop()
        token._timer = loop.call_later(
            seconds, token.cancel, f"deadline of {seconds}s exceeded"
        )
        return token

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "operation cancelled") -> None:
        """Signal cancellation. Later calls are ignored."""
        if self._event.is_set():
            return
        logger.warning(f"Cancelling: {reason}")
        self._reason = reason
        self._event.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._event.wait()

    def error(self) -> StreamCancelledError:
        """The error a cancelled stream terminates with."""
        return StreamCancelledError(self._reason or "operation cancelled")

    def raise_if_cancelled(self) -> None:
        """Raise OperationCancelledError if the token was cancelled."""
        if self._event.is_set():
            raise OperationCancelledError(self._reason or "operation cancelled")
