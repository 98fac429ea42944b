"""Configuration and collaborator result types."""

import os
from dataclasses import dataclass, field
from typing import Any

DEFAULT_DOCKER_HOST = "unix:///var/run/docker.sock"


def _default_docker_host() -> str:
    return os.environ.get("DOCKER_HOST") or DEFAULT_DOCKER_HOST


@dataclass(frozen=True)
class EngineConfig:
    """Docker Engine API connection settings."""

    url: str = field(default_factory=_default_docker_host)
    timeout: int = 30
    api_version: str | None = None  # e.g. "v1.41"; None lets the daemon pick


@dataclass(frozen=True)
class SystemInfo:
    """The parts of the engine's system info the image store needs."""

    root_dir: str
    driver: str

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "SystemInfo":
        """Build from a decoded ``/info`` response.

        Raises:
            KeyError: If DockerRootDir or Driver is missing
        """
        return cls(root_dir=data["DockerRootDir"], driver=data["Driver"])
