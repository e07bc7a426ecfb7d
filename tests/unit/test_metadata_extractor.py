"""Tests for EXIF metadata extraction."""

from datetime import datetime, timezone

import pytest


class TestMetadataExtractor:
    def test_full_exif(self, photo_factory):
        from questproof.core.metadata_extractor import MetadataExtractor

        content = photo_factory(
            lat=40.7128,
            lon=-74.0060,
            taken=datetime(2024, 5, 1, 12, 30, 0),
            make="Canon",
            model="EOS 80D",
        )
        meta = MetadataExtractor().extract(content)

        assert meta.has_metadata
        assert meta.has_gps
        assert meta.latitude == pytest.approx(40.7128, abs=1e-4)
        assert meta.longitude == pytest.approx(-74.0060, abs=1e-4)
        assert meta.captured_at == datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
        assert meta.camera == "Canon EOS 80D"
        assert meta.width == 64
        assert meta.height == 48

    def test_southern_hemisphere_is_negative(self, photo_factory):
        from questproof.core.metadata_extractor import MetadataExtractor

        meta = MetadataExtractor().extract(photo_factory(lat=-33.8688, lon=151.2093))
        assert meta.latitude == pytest.approx(-33.8688, abs=1e-4)
        assert meta.longitude == pytest.approx(151.2093, abs=1e-4)

    def test_offset_normalizes_to_utc(self, photo_factory):
        from questproof.core.metadata_extractor import MetadataExtractor

        meta = MetadataExtractor().extract(
            photo_factory(taken="2024:05:01 14:30:00", offset="+02:00", make="Apple", model="iPhone 15")
        )
        assert meta.captured_at == datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)

    def test_no_exif(self, photo_factory):
        from questproof.core.metadata_extractor import MetadataExtractor

        meta = MetadataExtractor().extract(photo_factory())
        assert not meta.has_metadata
        assert not meta.has_gps
        assert meta.camera is None

    def test_invalid_timestamp_kept_raw(self, photo_factory):
        from questproof.core.metadata_extractor import MetadataExtractor

        meta = MetadataExtractor().extract(photo_factory(taken="not a date", make="Nikon"))
        assert meta.has_metadata
        assert meta.timestamp_raw == "not a date"
        assert meta.captured_at is None
        assert meta.timestamp_invalid

    def test_make_repeated_in_model(self, photo_factory):
        from questproof.core.metadata_extractor import MetadataExtractor

        meta = MetadataExtractor().extract(photo_factory(make="NIKON", model="NIKON D750"))
        assert meta.camera == "NIKON D750"

    @pytest.mark.parametrize("content", [b"", b"\x00" * 64, b"\xff\xd8\xff" + b"garbage" * 10, None])
    def test_never_raises(self, content):
        from questproof.core.metadata_extractor import MetadataExtractor

        meta = MetadataExtractor().extract(content)
        assert meta.has_metadata is False


class TestTimestampParsing:
    def test_naive_is_utc(self):
        from questproof.core.metadata_extractor import parse_exif_timestamp

        assert parse_exif_timestamp("2023:12:31 23:59:59") == datetime(2023, 12, 31, 23, 59, 59, tzinfo=timezone.utc)

    def test_negative_offset(self):
        from questproof.core.metadata_extractor import parse_exif_timestamp

        parsed = parse_exif_timestamp("2024:01:01 20:00:00", "-05:00")
        assert parsed == datetime(2024, 1, 2, 1, 0, tzinfo=timezone.utc)

    def test_garbage(self):
        from questproof.core.metadata_extractor import parse_exif_timestamp

        assert parse_exif_timestamp("0000:00:00 00:00:00") is None
