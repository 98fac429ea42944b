"""Engine client, configuration and cancellation."""

from .cancel import CancelToken
from .engine_client import EngineClient
from .types import EngineConfig, SystemInfo

__all__ = ["CancelToken", "EngineClient", "EngineConfig", "SystemInfo"]
