"""Build cache archive streaming."""

from .pipe import AsyncPipe
from .stream import MANIFEST_NAME, CacheStream, encode_manifest, stream_chain

__all__ = ["AsyncPipe", "CacheStream", "MANIFEST_NAME", "encode_manifest", "stream_chain"]
