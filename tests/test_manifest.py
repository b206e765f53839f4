"""
Tests for part manifest types.
"""
from __future__ import annotations

import pytest

from offsetwrite.manifest import OPEN_ENDED, CopyPart, DirectPart, PartManifest
from offsetwrite.storage.errors import InvalidManifest


class TestCopyPart:
    """Copy range rules."""

    def test_range_string(self):
        assert CopyPart(0, "k", 0, 30).range_string == "0-30"
        assert CopyPart(0, "k", 50).range_string == "50--1"

    def test_open_ended_is_valid(self):
        CopyPart(0, "k", 10, OPEN_ENDED).validate()

    def test_empty_range_rejected(self):
        """end equal to start is not a valid range."""
        with pytest.raises(InvalidManifest, match="10-10"):
            CopyPart(0, "k", 10, 10).validate()

    def test_reversed_range_rejected(self):
        with pytest.raises(InvalidManifest):
            CopyPart(0, "k", 10, 5).validate()

    def test_negative_start_rejected(self):
        with pytest.raises(InvalidManifest):
            CopyPart(0, "k", -3, 5).validate()

    def test_invalid_manifest_is_value_error(self):
        with pytest.raises(ValueError):
            CopyPart(0, "k", 10, 10).validate()

    def test_resolved_length(self):
        assert CopyPart(0, "k", 0, 30).resolved_length(100) == 30
        assert CopyPart(0, "k", 50).resolved_length(100) == 50
        assert CopyPart(0, "k", 50, 200).resolved_length(100) == 50
        assert CopyPart(0, "k", 150).resolved_length(100) == 0


class TestDirectPart:
    """Direct part construction checks."""

    def test_defaults(self):
        part = DirectPart(0, 10)
        assert part.crc32 is None
        assert part.check_crc is False
        assert part.zero_fill is False

    def test_negative_length_rejected(self):
        with pytest.raises(ValueError):
            DirectPart(0, -1)

    def test_crc_out_of_range_rejected(self):
        with pytest.raises(ValueError, match="crc32"):
            DirectPart(0, 1, crc32=1 << 32)


class TestPartManifest:
    """Manifest ordering and validation."""

    def test_index_must_match_position(self):
        with pytest.raises(ValueError, match="position 0"):
            PartManifest(parts=(DirectPart(1, 10),))

    def test_empty_manifest_rejected(self):
        with pytest.raises(InvalidManifest):
            PartManifest(parts=()).validate()

    def test_validate_reports_first_bad_copy(self):
        manifest = PartManifest(parts=(
            CopyPart(0, "k", 0, 30),
            DirectPart(1, 5),
            CopyPart(2, "k", 40, 40),
        ))
        with pytest.raises(InvalidManifest, match="Part 2"):
            manifest.validate()

    def test_direct_and_copy_views_keep_order(self):
        manifest = PartManifest(parts=(
            CopyPart(0, "k", 0, 30),
            DirectPart(1, 5),
            CopyPart(2, "k", 35),
        ))
        assert [p.index for p in manifest.direct_parts()] == [1]
        assert [p.index for p in manifest.copy_parts()] == [0, 2]
        assert manifest.requires_compose

    def test_resolved_size(self):
        manifest = PartManifest(parts=(
            CopyPart(0, "k", 0, OPEN_ENDED),
            DirectPart(1, 50, zero_fill=True),
            DirectPart(2, 5),
        ))
        assert manifest.resolved_size(100) == 155
