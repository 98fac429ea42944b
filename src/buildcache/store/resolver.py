"""Ancestor chain resolution over the on-disk image store."""

import logging

import aiofiles

from ..core.cancel import CancelToken
from ..exceptions import (
    CorruptionError,
    CycleSuspectedError,
    DigestResolutionError,
    ParentResolutionError,
    StoreAccessError,
)
from ..utils.digest import parse_digest, validate_digest, verify_digest
from .layout import StoreLayout
from .models import Image, parse_image

logger = logging.getLogger(__name__)

# Well above the engine's own layer limit; deeper walks mean a broken store
DEFAULT_MAX_DEPTH = 512


async def _read_file(path) -> bytes:
    async with aiofiles.open(path, "rb") as f:
        return await f.read()


async def load_image(layout: StoreLayout, digest: str) -> Image:
    """Load and verify one image config from the store.

    Args:
        layout: Store layout to read from
        digest: Expected digest of the config

    Returns:
        Image whose id equals ``digest``

    Raises:
        StoreAccessError: If the config file cannot be read
        CorruptionError: If the config is malformed or hashes to another digest
    """
    path = layout.content_path(digest)
    try:
        raw = await _read_file(path)
    except OSError as e:
        raise StoreAccessError(
            f"Cannot read image config {path}: {e}. "
            "A different storage directory may be needed (--graph)."
        ) from e

    algorithm, _ = parse_digest(digest)
    try:
        image = parse_image(raw, algorithm)
    except CorruptionError as e:
        raise CorruptionError(f"Invalid configuration for {digest}: {e}") from e

    if not verify_digest(raw, digest):
        raise CorruptionError(f"Invalid configuration for {digest}, got id {image.id}")

    return image


async def read_parent(layout: StoreLayout, digest: str) -> str | None:
    """Read the parent pointer of an image.

    Returns:
        Parent digest, or None if the image has no parent

    Raises:
        StoreAccessError: If the pointer exists but cannot be read
        ParentResolutionError: If the pointer is not a valid digest
    """
    path = layout.parent_path(digest)
    try:
        data = await _read_file(path)
    except FileNotFoundError:
        return None
    except OSError as e:
        raise StoreAccessError(f"Cannot read parent pointer {path}: {e}") from e

    try:
        parent = data.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        raise ParentResolutionError(f"Cannot decode parent of {digest}: {e}") from e

    if not validate_digest(parent):
        raise ParentResolutionError(f"Invalid parent of {digest}: {parent!r}")

    return parent


async def resolve_chain(
    layout: StoreLayout,
    digest: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    cancel: CancelToken | None = None,
) -> list[Image]:
    """Resolve an image and all of its ancestors.

    Follows stored parent pointers from ``digest`` up to the image without
    a parent.

    Args:
        layout: Store layout to read from
        digest: Digest of the requested image
        max_depth: Maximum number of images in the chain
        cancel: Optional token checked between reads

    Returns:
        Images ordered root first; the last one is the requested image

    Raises:
        DigestResolutionError: If ``digest`` is not a valid digest
        StoreAccessError: If a store file cannot be read
        CorruptionError: If a config does not match its digest
        ParentResolutionError: If a parent pointer is invalid
        CycleSuspectedError: If a digest repeats or the chain exceeds max_depth
        OperationCancelledError: If ``cancel`` fires during the walk
    """
    if not validate_digest(digest):
        raise DigestResolutionError(f"Invalid image digest: {digest!r}")

    chain: list[Image] = []
    seen: set[str] = set()
    current: str | None = digest

    while current is not None:
        if current in seen:
            raise CycleSuspectedError(
                f"Parent chain of {digest} visits {current} twice"
            )
        if len(chain) >= max_depth:
            raise CycleSuspectedError(
                f"Parent chain of {digest} is deeper than {max_depth} images"
            )
        seen.add(current)

        image = await load_image(layout, current)
        if cancel:
            cancel.raise_if_cancelled()

        parent = await read_parent(layout, current)
        if cancel:
            cancel.raise_if_cancelled()

        logger.debug(f"Loaded {current} (parent: {parent or 'none'})")
        chain.append(image.with_parent(parent) if parent else image)
        current = parent

    chain.reverse()
    return chain
