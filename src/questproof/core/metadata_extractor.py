"""QuestProof metadata extractor.

Reads EXIF (IFD0, Exif sub-IFD, GPS IFD) from raw image bytes with Pillow and
normalizes it into PhotoMetadata. Extraction never raises: any parse failure
yields has_metadata=False.
"""

from __future__ import annotations

import io
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any

from PIL import Image, ExifTags

from questproof.models.schemas import ExposureInfo, PhotoMetadata

logger = logging.getLogger(__name__)

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"


class MetadataExtractor:
    def extract(self, content: bytes | None) -> PhotoMetadata:
        if not content:
            return PhotoMetadata()
        try:
            return self._extract(content)
        except Exception as exc:
            logger.warning("Metadata extraction failed: %s", exc)
            return PhotoMetadata()

    def _extract(self, content: bytes) -> PhotoMetadata:
        with Image.open(io.BytesIO(content)) as img:
            width, height = img.size
            exif = img.getexif()
            base = dict(exif.items()) if exif else {}
            exif_ifd = dict(exif.get_ifd(ExifTags.IFD.Exif)) if exif else {}
            gps_ifd = dict(exif.get_ifd(ExifTags.IFD.GPSInfo)) if exif else {}

        latitude, longitude = self._gps_decimal(gps_ifd)
        timestamp_raw = _clean_str(exif_ifd.get(ExifTags.Base.DateTimeOriginal)) or _clean_str(
            base.get(ExifTags.Base.DateTime)
        )
        offset = _clean_str(exif_ifd.get(ExifTags.Base.OffsetTimeOriginal))
        captured_at = parse_exif_timestamp(timestamp_raw, offset) if timestamp_raw else None
        camera = self._camera(base)
        software = _clean_str(base.get(ExifTags.Base.Software))
        exposure = ExposureInfo(
            exposure_time=_to_float(exif_ifd.get(ExifTags.Base.ExposureTime)),
            f_number=_to_float(exif_ifd.get(ExifTags.Base.FNumber)),
            iso=_to_int(exif_ifd.get(ExifTags.Base.ISOSpeedRatings)),
            focal_length=_to_float(exif_ifd.get(ExifTags.Base.FocalLength)),
        )

        has_metadata = any(
            [
                latitude is not None,
                timestamp_raw is not None,
                camera is not None,
                software is not None,
                not exposure.is_empty,
            ]
        )
        return PhotoMetadata(
            has_metadata=has_metadata,
            latitude=latitude,
            longitude=longitude,
            captured_at=captured_at,
            timestamp_raw=timestamp_raw,
            camera=camera,
            software=software,
            exposure=exposure,
            width=width,
            height=height,
        )

    @staticmethod
    def _camera(base: dict[int, Any]) -> str | None:
        make = _clean_str(base.get(ExifTags.Base.Make))
        model = _clean_str(base.get(ExifTags.Base.Model))
        if make and model:
            # Many vendors repeat the make inside the model string
            return model if model.lower().startswith(make.lower()) else f"{make} {model}"
        return make or model

    @staticmethod
    def _gps_decimal(gps: dict[int, Any]) -> tuple[float | None, float | None]:
        if not gps:
            return None, None
        lat = _dms_to_decimal(gps.get(ExifTags.GPS.GPSLatitude), gps.get(ExifTags.GPS.GPSLatitudeRef))
        lon = _dms_to_decimal(gps.get(ExifTags.GPS.GPSLongitude), gps.get(ExifTags.GPS.GPSLongitudeRef))
        if lat is None or lon is None:
            return None, None
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            logger.warning("Discarding out-of-range GPS %.6f, %.6f", lat, lon)
            return None, None
        return lat, lon


def parse_exif_timestamp(raw: str, offset: str | None = None) -> datetime | None:
    """Normalize an EXIF timestamp to an aware UTC datetime.

    Naive EXIF times are taken as UTC unless OffsetTimeOriginal is present.
    Returns None when the string cannot be parsed.
    """
    try:
        parsed = datetime.strptime(raw.strip(), EXIF_DATETIME_FORMAT)
    except ValueError:
        try:
            parsed = datetime.fromisoformat(raw.strip())
        except ValueError:
            return None

    if parsed.tzinfo is None:
        tz = _parse_offset(offset) if offset else None
        parsed = parsed.replace(tzinfo=tz or timezone.utc)
    return parsed.astimezone(timezone.utc)


def _parse_offset(offset: str) -> timezone | None:
    text = offset.strip()
    if len(text) != 6 or text[0] not in "+-" or text[3] != ":":
        return None
    try:
        hours, minutes = int(text[1:3]), int(text[4:6])
    except ValueError:
        return None
    delta = timedelta(hours=hours, minutes=minutes)
    return timezone(-delta if text[0] == "-" else delta)


def _dms_to_decimal(dms: Any, ref: Any) -> float | None:
    if dms is None:
        return None
    try:
        parts = [float(v) for v in dms]
    except (TypeError, ValueError):
        return None
    if len(parts) != 3 or not all(math.isfinite(p) for p in parts):
        return None
    degrees, minutes, seconds = parts
    value = degrees + minutes / 60.0 + seconds / 3600.0
    ref_s = _clean_str(ref)
    if ref_s and ref_s.upper() in ("S", "W"):
        value = -value
    return value


def _clean_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    text = str(value).replace("\x00", "").strip()
    return text or None


def _to_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        f = float(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    return f if math.isfinite(f) else None


def _to_int(value: Any) -> int | None:
    if isinstance(value, (tuple, list)):
        value = value[0] if value else None
    f = _to_float(value)
    return int(f) if f is not None else None
