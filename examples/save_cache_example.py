"""Example usage of the async build cache API."""

import asyncio
import logging
import sys

from buildcache import (
    BuildCacheError,
    CancelToken,
    EngineClient,
    OperationCancelledError,
    get_build_cache,
    save_build_cache,
)

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main(image: str):
    """Save build cache for an image and show its size."""
    try:
        logger.info(f"Saving build cache for {image}...")
        size = await save_build_cache(image, "cache.tgz")
        logger.info(f"✓ Saved {size:,} bytes to cache.tgz")

    except BuildCacheError as e:
        logger.error(f"Build cache error: {e}")


async def with_deadline(image: str):
    """Example of streaming with a deadline."""
    cancel = CancelToken.with_timeout(10)

    try:
        async with EngineClient() as engine:
            info = await engine.info()
            logger.info(f"Docker root: {info.root_dir} (driver: {info.driver})")

            stream = await get_build_cache(image, engine=engine, cancel=cancel)
            total = 0
            async with stream:
                async for chunk in stream:
                    total += len(chunk)
            logger.info(f"Streamed {total:,} bytes")

    except OperationCancelledError as e:
        logger.warning(f"Cancelled: {e}")
    except BuildCacheError as e:
        logger.error(f"Build cache error: {e}")


if __name__ == "__main__":
    image = sys.argv[1] if len(sys.argv) > 1 else "busybox:latest"
    asyncio.run(main(image))
    asyncio.run(with_deadline(image))
