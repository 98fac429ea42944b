"""Data models for image store records."""

import json
from dataclasses import dataclass, replace
from typing import Any

from ..exceptions import CorruptionError
from ..utils.digest import calculate_digest, digest_hex


@dataclass(frozen=True)
class Image:
    """One image configuration record as stored on disk."""

    id: str
    raw: bytes  # exact stored bytes, the id is computed over these
    layers: tuple[str, ...]
    parent: str | None = None

    @property
    def hex(self) -> str:
        return digest_hex(self.id)

    @property
    def config_name(self) -> str:
        """Archive entry name of this config."""
        return f"{self.hex}.json"

    def with_parent(self, parent: str) -> "Image":
        return replace(self, parent=parent)


@dataclass(frozen=True)
class ManifestEntry:
    """Describes one archived config and its parent/layer relationships."""

    config: str
    layers: tuple[str, ...]
    parent: str | None = None  # hex digest, None for the chain root

    @classmethod
    def from_image(cls, image: Image) -> "ManifestEntry":
        parent = digest_hex(image.parent) if image.parent else None
        return cls(config=image.config_name, layers=image.layers, parent=parent)

    def to_dict(self) -> dict[str, Any]:
        entry: dict[str, Any] = {"Config": self.config}
        if self.parent:
            entry["Parent"] = self.parent
        entry["Layers"] = list(self.layers)
        return entry


def parse_image(raw: bytes, algorithm: str = "sha256") -> Image:
    """Parse a stored image config into an Image.

    Args:
        raw: Config JSON bytes exactly as stored
        algorithm: Digest algorithm the store uses for this record

    Returns:
        Image with id computed over ``raw`` and layers from rootfs.diff_ids

    Raises:
        CorruptionError: If raw is not a JSON object or diff_ids is malformed
    """
    try:
        config = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CorruptionError(f"Invalid image configuration JSON: {e}") from e

    if not isinstance(config, dict):
        raise CorruptionError("Image configuration must be a JSON object")

    rootfs = config.get("rootfs") or {}
    if not isinstance(rootfs, dict):
        raise CorruptionError("rootfs must be a JSON object")

    diff_ids = rootfs.get("diff_ids") or []
    if not isinstance(diff_ids, list) or not all(
        isinstance(layer, str) for layer in diff_ids
    ):
        raise CorruptionError("rootfs.diff_ids must be a list of digests")

    return Image(
        id=calculate_digest(raw, algorithm),
        raw=bytes(raw),
        layers=tuple(diff_ids),
    )
