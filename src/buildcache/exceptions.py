"""Custom exceptions for the build cache extractor."""


class BuildCacheError(Exception):
    """Base exception for all build cache errors."""

    pass


class StoreAccessError(BuildCacheError):
    """Raised when the image store directory or its files cannot be read."""

    pass


class DigestResolutionError(BuildCacheError):
    """Raised when an image reference cannot be resolved to a digest."""

    pass


class EngineConnectionError(BuildCacheError):
    """Raised when unable to talk to the Docker Engine API."""

    pass


class CorruptionError(BuildCacheError):
    """Raised when a stored image config does not match its digest."""

    pass


class ParentResolutionError(BuildCacheError):
    """Raised when a stored parent pointer is not a valid digest."""

    pass


class CycleSuspectedError(BuildCacheError):
    """Raised when the ancestor walk repeats a digest or gets too deep."""

    pass


class LayerMismatchError(BuildCacheError):
    """Raised when a child's layers do not extend its parent's layers."""

    def __init__(self, parent_id: str, child_id: str) -> None:
        super().__init__(
            f"invalid layers in parent chain: {child_id} does not extend {parent_id}"
        )
        self.parent_id = parent_id
        self.child_id = child_id


class OperationCancelledError(BuildCacheError):
    """Raised when the caller cancelled the operation."""

    pass


class StreamError(BuildCacheError):
    """Raised when writing the cache archive fails."""

    pass


class PipeClosedError(StreamError):
    """Raised on a read or write of a closed pipe."""

    pass


class StreamCancelledError(StreamError, OperationCancelledError):
    """Raised when the archive stream was terminated by cancellation."""

    pass
