"""Test helpers for building synthetic image stores and reading archives."""

import io
import json
import os
import tarfile
from pathlib import Path

from aiohttp import web

from buildcache.store.layout import StoreLayout
from buildcache.store.models import Image, parse_image
from buildcache.utils.digest import calculate_digest


def layer_digest(name: str) -> str:
    """Digest standing in for a layer diff ID."""
    return calculate_digest(name.encode("utf-8"))


def make_config(layers: list[str], **extra) -> bytes:
    """Serialize an image config the way the engine stores it."""
    config = {
        "architecture": "amd64",
        "os": "linux",
        "rootfs": {"type": "layers", "diff_ids": list(layers)},
    }
    config.update(extra)
    return json.dumps(config).encode("utf-8")


def make_chain(depth: int, padding: int = 0) -> list[Image]:
    """Build a valid root-first chain without touching disk.

    Each generation appends one layer. ``padding`` adds that many random
    bytes (hex encoded) to each config so the archive does not compress away.
    """
    chain: list[Image] = []
    layers: list[str] = []
    for i in range(depth):
        layers = layers + [layer_digest(f"layer-{i}")]
        extra = {"comment": os.urandom(padding).hex()} if padding else {}
        image = parse_image(make_config(layers, **extra))
        if chain:
            image = image.with_parent(chain[-1].id)
        chain.append(image)
    return chain


def read_archive(data: bytes) -> list[tuple[str, int, bytes]]:
    """Read a tar.gz archive into (name, mode, content) tuples in order."""
    entries = []
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
        for member in tar.getmembers():
            content = tar.extractfile(member).read()
            entries.append((member.name, member.mode, content))
    return entries


class FakeStore:
    """Synthetic image metadata store under a temporary directory."""

    def __init__(self, root: Path, driver: str = "overlay2"):
        self.root = root
        self.driver = driver
        self.layout = StoreLayout.for_driver(root, driver)

    def write_config(self, digest: str, raw: bytes) -> None:
        path = self.layout.content_path(digest)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(raw)

    def set_parent(self, digest: str, parent: str) -> None:
        path = self.layout.parent_path(digest)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(parent)

    def add_image(self, layers: list[str], parent: str | None = None, **extra) -> str:
        """Store a config (and parent pointer) and return its digest."""
        raw = make_config(layers, **extra)
        digest = calculate_digest(raw)
        self.write_config(digest, raw)
        if parent:
            self.set_parent(digest, parent)
        return digest

    def add_chain(self, depth: int) -> list[str]:
        """Store a valid chain, returning digests root first."""
        digests: list[str] = []
        layers: list[str] = []
        for i in range(depth):
            layers = layers + [layer_digest(f"layer-{i}")]
            parent = digests[-1] if digests else None
            digests.append(self.add_image(layers, parent=parent))
        return digests


def make_engine_app(
    images: dict[str, str], root_dir: str, driver: str = "overlay2"
) -> web.Application:
    """Minimal Docker Engine API serving image inspect and system info."""

    async def inspect(request: web.Request) -> web.Response:
        name = request.match_info["name"]
        if name not in images:
            return web.json_response(
                {"message": f"No such image: {name}"}, status=404
            )
        return web.json_response({"Id": images[name]})

    async def info(request: web.Request) -> web.Response:
        return web.json_response({"DockerRootDir": root_dir, "Driver": driver})

    app = web.Application()
    app.router.add_get("/images/{name:.+}/json", inspect)
    app.router.add_get("/info", info)
    return app
