"""Streaming writer for build cache archives."""

import asyncio
import gzip
import io
import json
import logging
import tarfile
from typing import Any, Sequence

from ..core.cancel import CancelToken
from ..exceptions import PipeClosedError, StreamError
from ..store.models import Image, ManifestEntry
from ..store.validator import validate_chain
from .pipe import DEFAULT_MAX_CHUNKS, AsyncPipe

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 32 * 1024
MANIFEST_NAME = "manifest.json"
ENTRY_MODE = 0o444


class _ChunkBuffer:
    """Sync file object that collects encoder output until it is flushed."""

    def __init__(self) -> None:
        self._data = bytearray()

    def write(self, data) -> int:
        self._data += data
        return len(data)

    def flush(self) -> None:
        pass

    def take(self) -> bytes:
        data = bytes(self._data)
        self._data.clear()
        return data


def _add_entry(tar: tarfile.TarFile, name: str, data: bytes) -> None:
    info = tarfile.TarInfo(name)
    info.size = len(data)
    info.mode = ENTRY_MODE
    tar.addfile(info, io.BytesIO(data))


def encode_manifest(chain: Sequence[Image]) -> bytes:
    """Encode the manifest.json content for a chain."""
    entries = [ManifestEntry.from_image(image).to_dict() for image in chain]
    return json.dumps(entries, separators=(",", ":")).encode("utf-8")


class CacheStream:
    """Readable side of a build cache archive being produced.

    Yields gzip-compressed tar bytes in chunks. A read raises the error the
    producer or the cancellation watcher terminated the stream with; bytes
    already received are then not a usable archive.
    """

    def __init__(
        self,
        pipe: AsyncPipe,
        producer: asyncio.Task,
        watcher: asyncio.Task | None = None,
    ) -> None:
        self._pipe = pipe
        self._producer = producer
        self._watcher = watcher

    def __aiter__(self) -> "CacheStream":
        return self

    async def __anext__(self) -> bytes:
        chunk = await self.read()
        if not chunk:
            raise StopAsyncIteration
        return chunk

    async def __aenter__(self) -> "CacheStream":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def read(self) -> bytes:
        """Return the next chunk, or b"" at the end of the archive.

        Raises:
            StreamError: If production failed or was cancelled
        """
        return await self._pipe.read()

    async def copy_to(self, fileobj: Any) -> int:
        """Drain the stream into an async file object (e.g. from aiofiles).

        Returns:
            Number of bytes written
        """
        written = 0
        async for chunk in self:
            await fileobj.write(chunk)
            written += len(chunk)
        return written

    async def aclose(self) -> None:
        """Stop production and release both tasks."""
        await self._pipe.close(PipeClosedError("read side closed"))
        tasks = [task for task in (self._producer, self._watcher) if task]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


async def _flush(buffer: _ChunkBuffer, pipe: AsyncPipe, chunk_size: int) -> None:
    data = buffer.take()
    for offset in range(0, len(data), chunk_size):
        await pipe.write(data[offset : offset + chunk_size])


async def _produce(
    chain: Sequence[Image],
    pipe: AsyncPipe,
    cancel: CancelToken | None,
    chunk_size: int,
) -> None:
    buffer = _ChunkBuffer()
    try:
        gz = gzip.GzipFile(fileobj=buffer, mode="wb", mtime=0)
        tar = tarfile.open(fileobj=gz, mode="w|")

        for image in chain:
            if cancel is not None and cancel.cancelled:
                await pipe.close(cancel.error())
                return
            _add_entry(tar, image.config_name, image.raw)
            logger.debug(f"Archived {image.config_name}")
            await _flush(buffer, pipe, chunk_size)

        _add_entry(tar, MANIFEST_NAME, encode_manifest(chain))
        tar.close()
        gz.close()
        await _flush(buffer, pipe, chunk_size)
    except PipeClosedError:
        # The pipe already carries the terminal error
        return
    except Exception as e:
        logger.error(f"Failed to write cache archive: {e}")
        error = StreamError(f"Failed to write cache archive: {e}")
        error.__cause__ = e
        await pipe.close(error)
        return

    await pipe.close()
    logger.info(f"Wrote cache archive with {len(chain)} image configs")


async def _watch(cancel: CancelToken, pipe: AsyncPipe) -> None:
    await cancel.wait()
    await pipe.close(cancel.error())


def stream_chain(
    chain: Sequence[Image],
    cancel: CancelToken | None = None,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_chunks: int = DEFAULT_MAX_CHUNKS,
) -> CacheStream:
    """Start streaming a chain as a tar+gzip build cache archive.

    The chain is validated before anything is started, so an invalid chain
    never produces archive bytes. Production runs in a background task and
    this function returns immediately; it must be called with a running
    event loop.

    Args:
        chain: Images ordered root first, as returned by resolve_chain
        cancel: Optional token that terminates the stream when cancelled
        chunk_size: Maximum size of each chunk handed to the reader
        max_chunks: Number of chunks buffered before the producer waits

    Returns:
        CacheStream yielding the archive bytes

    Raises:
        ValueError: If the chain is empty
        LayerMismatchError: If the chain fails validation
    """
    if not chain:
        raise ValueError("Cannot stream an empty chain")
    validate_chain(chain)

    loop = asyncio.get_running_loop()
    pipe = AsyncPipe(max_chunks)
    producer = loop.create_task(_produce(list(chain), pipe, cancel, chunk_size))
    watcher = None
    if cancel is not None:
        watcher = loop.create_task(_watch(cancel, pipe))
        producer.add_done_callback(lambda _: watcher.cancel())

    return CacheStream(pipe, producer, watcher)
