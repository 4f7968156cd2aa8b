"""
Unit tests for the format catalog.

Covers catalog contents, aspect ratio consistency, labels, lookups of
unknown identifiers and human-readable file sizes.
"""

import pytest

from enqor.media.errors import UnknownFormatError
from enqor.media.formats import (
    MEDIA_SPECS,
    FormatSpec,
    MediaFormat,
    get_format_spec,
    human_file_size,
    label_for,
    list_formats,
    parse_ratio_label,
)

MIB = 1024 * 1024


class TestCatalog:
    """Test the static format catalog."""

    def test_catalog_has_every_format(self):
        """Every identifier resolves to a spec carrying that identifier."""
        assert set(MEDIA_SPECS) == set(MediaFormat)
        for format_id, spec in MEDIA_SPECS.items():
            assert spec.id == format_id

    def test_catalog_dimensions(self):
        """Target dimensions match the published platform sizes."""
        expected = {
            "instagram-post": (1080, 1080),
            "instagram-story": (1080, 1920),
            "instagram-reel": (1080, 1920),
            "twitter-post": (1200, 675),
            "facebook-post": (1200, 630),
            "linkedin-post": (1200, 627),
            "tiktok-video": (1080, 1920),
        }
        for format_id, size in expected.items():
            assert get_format_spec(format_id).size == size

    def test_max_bytes(self):
        assert get_format_spec("instagram-post").max_bytes == 8 * MIB
        assert get_format_spec("twitter-post").max_bytes == 5 * MIB
        assert get_format_spec("tiktok-video").max_bytes == 287 * MIB

    def test_ratio_labels_match_dimensions(self):
        """Each label agrees with width/height within 1%."""
        for spec in list_formats():
            labelled = parse_ratio_label(spec.aspect_ratio_label)
            assert abs(labelled - spec.aspect_ratio) / spec.aspect_ratio < 0.01

    def test_list_formats_keeps_catalog_order(self):
        ids = [spec.id.value for spec in list_formats()]
        assert ids[0] == "instagram-post"
        assert ids == [format_id.value for format_id in MEDIA_SPECS]

    def test_specs_are_immutable(self):
        spec = get_format_spec(MediaFormat.TWITTER_POST)
        with pytest.raises(AttributeError):
            spec.target_width = 10


class TestFormatSpecValidation:
    """Test FormatSpec construction checks."""

    def test_rejects_non_positive_dimensions(self):
        with pytest.raises(ValueError):
            FormatSpec(MediaFormat.INSTAGRAM_POST, "Broken", 0, 1080, "1:1")

    def test_rejects_mismatched_ratio_label(self):
        with pytest.raises(ValueError):
            FormatSpec(MediaFormat.INSTAGRAM_POST, "Broken", 1080, 1920, "1:1")

    def test_rejects_non_positive_max_bytes(self):
        with pytest.raises(ValueError):
            FormatSpec(MediaFormat.INSTAGRAM_POST, "Broken", 1080, 1080, "1:1", 0)

    def test_parse_ratio_label(self):
        assert parse_ratio_label("16:9") == pytest.approx(16 / 9)
        assert parse_ratio_label("1.91:1") == pytest.approx(1.91)
        with pytest.raises(ValueError):
            parse_ratio_label("wide")


class TestLookups:
    """Test identifier resolution and labels."""

    def test_lookup_accepts_enum_and_string(self):
        assert get_format_spec("instagram-story") is get_format_spec(MediaFormat.INSTAGRAM_STORY)

    def test_unknown_format(self):
        """Unknown identifiers raise UnknownFormatError, which is also a KeyError."""
        with pytest.raises(UnknownFormatError) as exc_info:
            get_format_spec("myspace-post")

        assert exc_info.value.format_id == "myspace-post"
        assert "myspace-post" in str(exc_info.value)
        assert isinstance(exc_info.value, KeyError)

    def test_label_for(self):
        assert label_for("instagram-story") == "Instagram Story (9:16)"
        assert label_for(MediaFormat.FACEBOOK_POST) == "Facebook Post (1.91:1)"

    def test_every_format_has_a_label(self):
        for format_id in MediaFormat:
            assert label_for(format_id)


class TestHumanFileSize:
    """Test byte count formatting."""

    @pytest.mark.parametrize("num_bytes,expected", [
        (0, "0 Bytes"),
        (1, "1 Bytes"),
        (1023, "1023 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (10485760, "10 MB"),
        (5 * MIB + 1024 * 300, "5.29 MB"),
        (1024 ** 3, "1 GB"),
        (2 * 1024 ** 4, "2048 GB"),
    ])
    def test_formatting(self, num_bytes, expected):
        assert human_file_size(num_bytes) == expected

    def test_negative_values_keep_sign(self):
        """Differences that grew the file are shown with a minus sign."""
        assert human_file_size(-1536) == "-1.5 KB"

    def test_rounds_to_two_decimals(self):
        assert human_file_size(1234567) == "1.18 MB"
