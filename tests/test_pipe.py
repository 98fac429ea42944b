"""Tests for the bounded async pipe."""

import asyncio

import pytest

from buildcache.archive.pipe import AsyncPipe
from buildcache.exceptions import PipeClosedError, StreamError


class TestAsyncPipe:
    """Test pipe reads, writes and closing."""

    @pytest.mark.asyncio
    async def test_write_then_read(self):
        pipe = AsyncPipe()
        await pipe.write(b"abc")
        await pipe.write(b"def")
        await pipe.close()

        assert await pipe.read() == b"abc"
        assert await pipe.read() == b"def"
        assert await pipe.read() == b""
        assert await pipe.read() == b""

    @pytest.mark.asyncio
    async def test_backpressure(self):
        """Test a full pipe blocks the writer until the reader makes room."""
        pipe = AsyncPipe(max_chunks=1)
        await pipe.write(b"first")

        pending = asyncio.ensure_future(pipe.write(b"second"))
        await asyncio.sleep(0.01)
        assert not pending.done()

        assert await pipe.read() == b"first"
        await asyncio.wait_for(pending, 1)
        assert await pipe.read() == b"second"

    @pytest.mark.asyncio
    async def test_reader_waits_for_data(self):
        pipe = AsyncPipe()
        pending = asyncio.ensure_future(pipe.read())
        await asyncio.sleep(0.01)
        assert not pending.done()

        await pipe.write(b"data")
        assert await asyncio.wait_for(pending, 1) == b"data"

    @pytest.mark.asyncio
    async def test_close_with_error(self):
        """Test an error close discards buffered data and fails reads."""
        pipe = AsyncPipe()
        await pipe.write(b"buffered")
        await pipe.close(StreamError("boom"))

        with pytest.raises(StreamError, match="boom"):
            await pipe.read()

    @pytest.mark.asyncio
    async def test_close_wakes_blocked_writer(self):
        pipe = AsyncPipe(max_chunks=1)
        await pipe.write(b"first")
        pending = asyncio.ensure_future(pipe.write(b"second"))
        await asyncio.sleep(0.01)

        await pipe.close(StreamError("boom"))

        with pytest.raises(PipeClosedError):
            await asyncio.wait_for(pending, 1)

    @pytest.mark.asyncio
    async def test_close_wakes_blocked_reader(self):
        pipe = AsyncPipe()
        pending = asyncio.ensure_future(pipe.read())
        await asyncio.sleep(0.01)

        await pipe.close(StreamError("boom"))

        with pytest.raises(StreamError, match="boom"):
            await asyncio.wait_for(pending, 1)

    @pytest.mark.asyncio
    async def test_write_after_close(self):
        pipe = AsyncPipe()
        await pipe.close()

        with pytest.raises(PipeClosedError):
            await pipe.write(b"late")

    @pytest.mark.asyncio
    async def test_later_reads_raise_fresh_error(self):
        """Test reads after the terminal error get a new error chained to it."""
        pipe = AsyncPipe()
        error = StreamError("boom")
        await pipe.close(error)

        with pytest.raises(StreamError) as first:
            await pipe.read()
        assert first.value is error

        for _ in range(2):
            with pytest.raises(PipeClosedError) as later:
                await pipe.read()
            assert later.value is not error
            assert later.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_first_close_wins(self):
        pipe = AsyncPipe()
        assert await pipe.close(StreamError("first")) is True
        assert await pipe.close(StreamError("second")) is False
        assert await pipe.close() is False

        with pytest.raises(StreamError, match="first"):
            await pipe.read()

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            AsyncPipe(max_chunks=0)
