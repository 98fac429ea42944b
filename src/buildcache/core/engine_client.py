"""Docker Engine API async client for the image inspect and info calls."""

import json
import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from ..exceptions import DigestResolutionError, EngineConnectionError
from ..utils.digest import validate_digest
from .types import EngineConfig, SystemInfo

logger = logging.getLogger(__name__)


def _split_host(url: str) -> tuple[str, str | None]:
    """Map a DOCKER_HOST style URL to an HTTP base URL and a unix socket path.

    Args:
        url: Engine URL (e.g., unix:///var/run/docker.sock, tcp://host:2375)

    Returns:
        (base_url, socket_path) tuple; socket_path is None for TCP hosts

    Raises:
        EngineConnectionError: If the URL scheme is not supported
    """
    if url.startswith("unix://"):
        return "http://localhost", url[len("unix://") :]
    if url.startswith("tcp://"):
        return f"http://{url[len('tcp://'):]}".rstrip("/"), None
    if url.startswith(("http://", "https://")):
        return url.rstrip("/"), None
    raise EngineConnectionError(f"Unsupported engine URL: {url}")


class EngineClient:
    """Docker Engine API async client.

    Only the two calls the build cache needs are implemented: resolving an
    image reference to its content digest and reading the engine's storage
    location.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        """Initialize the engine client.

        Args:
            config: Engine connection settings (defaults read DOCKER_HOST)

        Raises:
            EngineConnectionError: If the engine URL scheme is not supported
        """
        self.config = config or EngineConfig()
        self.base_url, self.socket_path = _split_host(self.config.url)
        if self.config.api_version:
            self.base_url = f"{self.base_url}/{self.config.api_version}"
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "EngineClient":
        """Enter async context manager."""
        if not self.session:
            connector = (
                aiohttp.UnixConnector(path=self.socket_path)
                if self.socket_path
                else None
            )
            self.session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        await self.close()

    async def close(self) -> None:
        """Close the client session."""
        if self.session and not self.session.closed:
            await self.session.close()
        self.session = None

    async def _get_json(self, path: str) -> tuple[int, Any]:
        """GET a path and decode the JSON body.

        Returns:
            (status, decoded body) tuple; body is None for non-200 responses

        Raises:
            EngineConnectionError: If the request fails or the body is not JSON
        """
        if self.session is None:
            raise EngineConnectionError("Engine client is not open")

        url = f"{self.base_url}{path}"
        try:
            async with self.session.get(url) as resp:
                if resp.status != 200:
                    return resp.status, None
                body = await resp.read()
        except aiohttp.ClientError as e:
            raise EngineConnectionError(
                f"Failed to reach Docker Engine at {self.config.url}: {e}"
            ) from e

        try:
            return 200, json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise EngineConnectionError(f"Invalid JSON from {path}: {e}") from e

    async def inspect_image(self, reference: str) -> str:
        """Resolve an image reference to its content digest.

        Args:
            reference: Image reference (e.g., "nginx:alpine", an image ID)

        Returns:
            Image ID digest (e.g., "sha256:abc...")

        Raises:
            DigestResolutionError: If the image is unknown or has an invalid ID
            EngineConnectionError: If the engine cannot be reached
        """
        path = f"/images/{quote(reference, safe='/:@')}/json"
        status, data = await self._get_json(path)
        if status == 404:
            raise DigestResolutionError(f"No such image: {reference}")
        if status != 200:
            raise EngineConnectionError(
                f"Image inspect for {reference} failed with HTTP {status}"
            )

        image_id = data.get("Id") if isinstance(data, dict) else None
        if not validate_digest(image_id):
            raise DigestResolutionError(
                f"Engine returned invalid image ID for {reference}: {image_id!r}"
            )

        logger.debug(f"Resolved {reference} to {image_id}")
        return image_id

    async def info(self) -> SystemInfo:
        """Read the engine's storage root directory and driver.

        Raises:
            EngineConnectionError: If the request fails or the response is incomplete
        """
        status, data = await self._get_json("/info")
        if status != 200:
            raise EngineConnectionError(f"System info failed with HTTP {status}")

        try:
            return SystemInfo.from_response(data)
        except (KeyError, TypeError) as e:
            raise EngineConnectionError(f"Incomplete system info: {e}") from e
