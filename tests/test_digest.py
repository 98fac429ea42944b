"""Tests for digest utilities."""

import hashlib

import pytest

from buildcache.utils.digest import (
    calculate_digest,
    digest_hex,
    parse_digest,
    validate_digest,
    verify_digest,
)

SHA256_EMPTY = "sha256:" + hashlib.sha256(b"").hexdigest()


class TestCalculateDigest:
    """Test digest calculation."""

    def test_sha256(self):
        """Test default sha256 digest."""
        assert calculate_digest(b"") == SHA256_EMPTY

    def test_sha512(self):
        """Test sha512 digest prefix and length."""
        digest = calculate_digest(b"data", "sha512")
        assert digest.startswith("sha512:")
        assert len(digest_hex(digest)) == 128

    def test_rejects_str(self):
        """Test that non-bytes data is rejected."""
        with pytest.raises(ValueError):
            calculate_digest("text")

    def test_rejects_unknown_algorithm(self):
        """Test that unsupported algorithms are rejected."""
        with pytest.raises(ValueError):
            calculate_digest(b"data", "md5")


class TestValidateDigest:
    """Test digest format validation."""

    def test_valid(self):
        assert validate_digest(SHA256_EMPTY) is True

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "sha256:",
            "sha256:abc",
            "sha256:" + "A" * 64,
            "md5:" + "a" * 32,
            "a" * 64,
            None,
        ],
    )
    def test_invalid(self, value):
        assert validate_digest(value) is False


class TestParseDigest:
    """Test digest parsing."""

    def test_parse(self):
        algorithm, hex_part = parse_digest(SHA256_EMPTY)
        assert algorithm == "sha256"
        assert hex_part == hashlib.sha256(b"").hexdigest()

    def test_parse_invalid(self):
        with pytest.raises(ValueError, match="Invalid digest format"):
            parse_digest("sha256:xyz")

    def test_verify(self):
        assert verify_digest(b"", SHA256_EMPTY) is True
        assert verify_digest(b"x", SHA256_EMPTY) is False
