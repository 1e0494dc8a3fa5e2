"""JSON sidecar lookup, schema validation, and validated value extraction."""

from __future__ import annotations

import json
import logging
import math
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from takeout_organizer.config import (
    MAX_TIMESTAMP_AHEAD,
    MIN_TIMESTAMP,
    SIDECAR_SUFFIXES,
)
from takeout_organizer.models import GeoData, SidecarMetadata, TimeInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float
    altitude: float = 0.0


def sidecar_candidates(media_path: Path) -> list[Path]:
    """Sidecar locations for a media file, highest priority first."""
    return [
        media_path.with_name(media_path.name + ".json"),
        media_path.with_name(media_path.name + ".supplemental-metadata.json"),
        media_path.with_name(media_path.name + ".supplemental-me.json"),
        media_path.with_name(media_path.stem + ".supplemental-metadata.json"),
    ]


def find_sidecar(media_path: Path) -> Optional[Path]:
    for candidate in sidecar_candidates(media_path):
        if candidate.is_file():
            logger.debug(f"Found sidecar: media={media_path.name} sidecar={candidate.name}")
            return candidate
    return None


def is_sidecar_file(filename: str) -> bool:
    return filename.endswith(SIDECAR_SUFFIXES)


def parse_sidecar(path: Path) -> Optional[SidecarMetadata]:
    """Load and validate a sidecar. Any failure is logged and yields None."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error(f"Failed to parse sidecar {path}: {e}")
        return None

    try:
        return SidecarMetadata.model_validate(data)
    except ValidationError as e:
        issues = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        logger.warning(f"Sidecar validation failed for {path}: {issues}")
        return None


def is_valid_timestamp(timestamp: float, now: Optional[float] = None) -> bool:
    """Accept instants between 1990-01-01 and one year from now."""
    now = time.time() if now is None else now
    return MIN_TIMESTAMP <= timestamp <= now + MAX_TIMESTAMP_AHEAD


def _timestamp(info: Optional[TimeInfo]) -> Optional[int]:
    if info is None or not info.timestamp:
        return None
    try:
        value = int(info.timestamp.strip())
    except ValueError:
        return None
    return value if is_valid_timestamp(value) else None


def capture_timestamp(metadata: SidecarMetadata) -> Optional[int]:
    """Validated photoTakenTime in epoch seconds."""
    return _timestamp(metadata.photo_taken_time)


def creation_timestamp(metadata: SidecarMetadata) -> Optional[int]:
    """Validated creationTime in epoch seconds."""
    return _timestamp(metadata.creation_time)


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    if math.isnan(latitude) or math.isnan(longitude):
        return False
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def _is_zero(geo: GeoData) -> bool:
    return geo.latitude == 0 and geo.longitude == 0


def geo_data(metadata: SidecarMetadata) -> Optional[Coordinate]:
    """Best coordinate for a file.

    The EXIF-sourced block wins unless it is missing or (0, 0); a (0, 0) or
    out-of-range result is treated as no location.
    """
    geo = metadata.geo_data_exif
    if geo is None or _is_zero(geo):
        geo = metadata.geo_data
    if geo is None or _is_zero(geo):
        return None
    if not is_valid_coordinate(geo.latitude, geo.longitude):
        return None
    altitude = geo.altitude if not math.isnan(geo.altitude) else 0.0
    return Coordinate(geo.latitude, geo.longitude, altitude)
