"""Bounded in-memory byte pipe between an archive producer and its reader."""

import asyncio
from collections import deque

from ..exceptions import PipeClosedError

DEFAULT_MAX_CHUNKS = 4


class AsyncPipe:
    """Single-producer, single-consumer chunk pipe with backpressure.

    At most ``max_chunks`` chunks are buffered; ``write`` waits for the
    reader to make room. Closing with an error discards buffered chunks
    and makes the next ``read`` raise that error. The first close wins.
    """

    def __init__(self, max_chunks: int = DEFAULT_MAX_CHUNKS) -> None:
        if max_chunks < 1:
            raise ValueError("max_chunks must be at least 1")
        self._chunks: deque[bytes] = deque()
        self._max_chunks = max_chunks
        self._cond = asyncio.Condition()
        self._closed = False
        self._error: BaseException | None = None
        self._error_seen = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def error(self) -> BaseException | None:
        return self._error

    async def write(self, data: bytes) -> None:
        """Append a chunk, waiting while the pipe is full.

        Raises:
            PipeClosedError: If the pipe is or becomes closed
        """
        async with self._cond:
            await self._cond.wait_for(
                lambda: self._closed or len(self._chunks) < self._max_chunks
            )
            if self._closed:
                raise PipeClosedError("write on closed pipe")
            if data:
                self._chunks.append(bytes(data))
                self._cond.notify_all()

    async def read(self) -> bytes:
        """Return the next chunk, or b"" once the pipe is closed and drained.

        Raises:
            BaseException: The error the pipe was closed with, on the first read
            PipeClosedError: On later reads, chained to that error
        """
        async with self._cond:
            await self._cond.wait_for(lambda: self._chunks or self._closed)
            if self._error is not None:
                if self._error_seen:
                    raise PipeClosedError("read on closed pipe") from self._error
                self._error_seen = True
                raise self._error
            if not self._chunks:
                return b""
            chunk = self._chunks.popleft()
            self._cond.notify_all()
            return chunk

    async def close(self, error: BaseException | None = None) -> bool:
        """Close the pipe, optionally with a terminal error.

        Returns:
            True if this call closed the pipe, False if it was already closed
        """
        async with self._cond:
            if self._closed:
                return False
            self._closed = True
            self._error = error
            if error is not None:
                self._chunks.clear()
            self._cond.notify_all()
            return True
