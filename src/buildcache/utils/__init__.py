"""Utility functions for the build cache extractor."""

from .digest import calculate_digest, digest_hex, parse_digest, validate_digest, verify_digest

__all__ = [
    "calculate_digest",
    "digest_hex",
    "parse_digest",
    "validate_digest",
    "verify_digest",
]
