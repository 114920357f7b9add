"""Tests for checksum utilities."""

import hashlib

import pytest
from archive_keeper.common.checksums import ChecksumType, compute_checksum, find_digest


class TestComputeChecksum:
    """Tests for compute_checksum function."""

    def test_sha256_matches_hashlib(self, tmp_path):
        """Test that SHA-256 digest matches hashlib."""
        test_file = tmp_path / "archive.zip"
        test_file.write_bytes(b"archive bytes")

        assert compute_checksum(test_file, ChecksumType.SHA256) == hashlib.sha256(b"archive bytes").hexdigest()

    def test_sha2_is_sha256(self, tmp_path):
        """Test that sha2 digests with SHA-256."""
        test_file = tmp_path / "archive.zip"
        test_file.write_bytes(b"archive bytes")

        assert compute_checksum(test_file, ChecksumType.SHA2) == compute_checksum(test_file, ChecksumType.SHA256)

    @pytest.mark.parametrize("checksum_type,length", [
        (ChecksumType.MD5, 32),
        (ChecksumType.SHA1, 40),
        (ChecksumType.SHA384, 96),
        (ChecksumType.SHA512, 128),
    ])
    def test_digest_lengths(self, tmp_path, checksum_type, length):
        """Test digest width for each algorithm."""
        test_file = tmp_path / "archive.zip"
        test_file.write_bytes(b"content")

        digest = compute_checksum(test_file, checksum_type)

        assert len(digest) == length
        assert digest == digest.lower()

    def test_large_file(self, tmp_path):
        """Test digest of a file larger than one chunk."""
        large_file = tmp_path / "large.bin"
        # Create a file larger than chunk size (64KB)
        data = b'X' * (128 * 1024 + 7)
        large_file.write_bytes(data)

        assert compute_checksum(large_file, ChecksumType.MD5) == hashlib.md5(data).hexdigest()

    def test_none_type_rejected(self, tmp_path):
        """Test that the none sentinel cannot be digested."""
        test_file = tmp_path / "archive.zip"
        test_file.write_bytes(b"content")

        with pytest.raises(ValueError):
            compute_checksum(test_file, ChecksumType.NONE)

    def test_nonexistent_file(self, tmp_path):
        """Test that a missing file raises OSError."""
        with pytest.raises(OSError):
            compute_checksum(tmp_path / "does_not_exist.zip", ChecksumType.SHA1)


class TestFindDigest:
    """Tests for find_digest function."""

    def test_coreutils_layout(self):
        """Test '<digest>  <name>' checksum files."""
        digest = "d41d8cd98f00b204e9800998ecf8427e"
        assert find_digest(f"{digest}  app.zip\n") == digest

    def test_bsd_layout_uppercase(self):
        """Test 'SHA1 (name) = <DIGEST>' files are lowercased."""
        text = "SHA1 (app.zip) = DA39A3EE5E6B4B0D3255BFEF95601890AFD80709"
        assert find_digest(text) == "da39a3ee5e6b4b0d3255bfef95601890afd80709"

    def test_first_digest_wins(self):
        """Test that the first digest in the text is returned."""
        first = "a" * 64
        second = "b" * 64
        assert find_digest(f"{first} one.zip\n{second} two.zip\n") == first

    def test_short_hex_ignored(self):
        """Test that runs shorter than 32 characters are not digests."""
        assert find_digest("version abc123 build deadbeef") is None

    def test_overlong_hex_ignored(self):
        """Test that runs longer than 128 characters are not digests."""
        assert find_digest("f" * 130) is None
