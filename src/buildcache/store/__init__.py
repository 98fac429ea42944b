"""Image metadata store access."""

from .layout import StoreLayout
from .models import Image, ManifestEntry, parse_image
from .resolver import DEFAULT_MAX_DEPTH, resolve_chain
from .validator import validate_chain

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "Image",
    "ManifestEntry",
    "StoreLayout",
    "parse_image",
    "resolve_chain",
    "validate_chain",
]
