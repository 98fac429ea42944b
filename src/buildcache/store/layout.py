"""Paths of the on-disk image metadata store."""

from dataclasses import dataclass
from pathlib import Path

from ..utils.digest import parse_digest


@dataclass(frozen=True)
class StoreLayout:
    """Locates config records and parent pointers under an image directory.

    ``image_dir`` is ``<root>/image/<driver>``; records live in
    ``imagedb/content/<algorithm>/<hex>`` and parent pointers in
    ``imagedb/metadata/<algorithm>/<hex>/parent`` below it.
    """

    image_dir: Path

    @classmethod
    def for_driver(cls, root_dir: str | Path, driver: str) -> "StoreLayout":
        return cls(Path(root_dir) / "image" / driver)

    def content_path(self, digest: str) -> Path:
        algorithm, hex_part = parse_digest(digest)
        return self.image_dir / "imagedb" / "content" / algorithm / hex_part

    def parent_path(self, digest: str) -> Path:
        algorithm, hex_part = parse_digest(digest)
        return self.image_dir / "imagedb" / "metadata" / algorithm / hex_part / "parent"
