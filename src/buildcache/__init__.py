"""buildcache - Extract portable Docker build cache archives from an image store."""

__version__ = "0.1.0"

from .archive.stream import CacheStream, stream_chain
from .cache import get_build_cache, save_build_cache
from .core.cancel import CancelToken
from .core.engine_client import EngineClient
from .core.types import EngineConfig, SystemInfo
from .exceptions import (
    BuildCacheError,
    CorruptionError,
    CycleSuspectedError,
    DigestResolutionError,
    EngineConnectionError,
    LayerMismatchError,
    OperationCancelledError,
    ParentResolutionError,
    PipeClosedError,
    StoreAccessError,
    StreamCancelledError,
    StreamError,
)
from .store.layout import StoreLayout
from .store.models import Image, ManifestEntry
from .store.resolver import resolve_chain
from .store.validator import validate_chain

__all__ = [
    "BuildCacheError",
    "CacheStream",
    "CancelToken",
    "CorruptionError",
    "CycleSuspectedError",
    "DigestResolutionError",
    "EngineClient",
    "EngineConfig",
    "EngineConnectionError",
    "Image",
    "LayerMismatchError",
    "ManifestEntry",
    "OperationCancelledError",
    "ParentResolutionError",
    "PipeClosedError",
    "StoreAccessError",
    "StoreLayout",
    "StreamCancelledError",
    "StreamError",
    "SystemInfo",
    "get_build_cache",
    "resolve_chain",
    "save_build_cache",
    "stream_chain",
    "validate_chain",
]
