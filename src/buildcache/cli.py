"""Command-line interface for saving build cache archives."""

import argparse
import asyncio
import contextlib
import logging
import os
import signal
import stat
import sys
from concurrent.futures import ThreadPoolExecutor

from . import __version__
from .archive.stream import CacheStream
from .cache import get_build_cache, save_build_cache
from .core.cancel import CancelToken
from .core.types import EngineConfig
from .exceptions import BuildCacheError, OperationCancelledError, StreamError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buildcache",
        description="Save the build cache of a Docker image as a tar.gz archive",
    )
    parser.add_argument("--version", action="version", version=__version__)
    subparsers = parser.add_subparsers(dest="command", required=True)

    save = subparsers.add_parser("save", help="Save build cache for an image")
    save.add_argument("image", help="Image reference or ID")
    save.add_argument(
        "-g",
        "--graph",
        help="Docker storage root directory (default: the engine's DockerRootDir)",
    )
    save.add_argument(
        "-o", "--output", help="Output file (default: write to stdout)"
    )
    save.add_argument(
        "-H", "--host", help="Docker Engine URL (default: $DOCKER_HOST or the local socket)"
    )
    save.add_argument(
        "--timeout", type=int, default=30, help="Engine request timeout in seconds"
    )
    save.add_argument(
        "--deadline", type=float, help="Cancel the whole save after this many seconds"
    )
    save.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def _engine_config(args: argparse.Namespace) -> EngineConfig:
    if args.host:
        return EngineConfig(url=args.host, timeout=args.timeout)
    return EngineConfig(timeout=args.timeout)


def _stdout_fileno() -> int | None:
    try:
        return sys.stdout.fileno()
    except (AttributeError, OSError, ValueError):
        return None


async def _until_cancelled(aw, cancel: CancelToken):
    """Await ``aw`` unless ``cancel`` fires first.

    Raises:
        StreamCancelledError: If the token is cancelled before ``aw`` completes
    """
    task = asyncio.ensure_future(aw)
    stop = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({task, stop}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stop.cancel()
    if not task.done():
        task.cancel()
        raise cancel.error()
    return task.result()


async def _write_to_pipe(stream: CacheStream, fd: int, cancel: CancelToken) -> None:
    """Write through a non-blocking pipe transport; no thread can get stuck."""
    loop = asyncio.get_running_loop()
    pipe = os.fdopen(os.dup(fd), "wb", buffering=0)
    transport, protocol = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin, pipe
    )
    # drain() then waits until everything reached the pipe
    transport.set_write_buffer_limits(0)
    writer = asyncio.StreamWriter(transport, protocol, None, loop)
    try:
        async for chunk in stream:
            writer.write(chunk)
            await _until_cancelled(writer.drain(), cancel)
        writer.close()
    except BaseException:
        transport.abort()
        raise
    finally:
        os.set_blocking(fd, True)


async def _write_in_thread(stream: CacheStream, cancel: CancelToken) -> None:
    """Write regular files and fd-less streams from a worker thread."""
    loop = asyncio.get_running_loop()
    out = sys.stdout.buffer
    # Not joined on cancellation, a stalled write must not delay the exit
    executor = ThreadPoolExecutor(max_workers=1)
    try:
        async for chunk in stream:
            await _until_cancelled(
                loop.run_in_executor(executor, out.write, chunk), cancel
            )
        await _until_cancelled(loop.run_in_executor(executor, out.flush), cancel)
    finally:
        executor.shutdown(wait=False)


async def _write_stdout(stream: CacheStream, cancel: CancelToken) -> None:
    fd = _stdout_fileno()
    try:
        if fd is not None and not stat.S_ISREG(os.fstat(fd).st_mode):
            await _write_to_pipe(stream, fd, cancel)
        else:
            await _write_in_thread(stream, cancel)
    except OSError as e:
        raise StreamError(f"Cannot write archive to stdout: {e}") from e


async def _save(args: argparse.Namespace) -> None:
    cancel = (
        CancelToken.with_timeout(args.deadline) if args.deadline else CancelToken()
    )
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signum, cancel.cancel, "interrupted")

    config = _engine_config(args)
    if args.output:
        await save_build_cache(
            args.image, args.output, args.graph, config=config, cancel=cancel
        )
        return

    stream = await get_build_cache(args.image, args.graph, config=config, cancel=cancel)
    async with stream:
        await _write_stdout(stream, cancel)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not args.output and sys.stdout.isatty():
        logger.error("Refusing to write the archive to a terminal, use --output")
        return 1

    try:
        asyncio.run(_save(args))
    except OperationCancelledError as e:
        logger.warning(f"Cancelled: {e}")
        return 130
    except BuildCacheError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
