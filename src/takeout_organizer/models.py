"""Core data types used throughout the takeout-organizer pipeline."""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from takeout_organizer.config import PHOTO_EXTENSIONS, OrganizerConfig


class ProcessingStatus(enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"  # terminal
    FAILED = "failed"  # terminal, excluded from later stages


class TimeInfo(BaseModel):
    """A sidecar time block: epoch seconds plus a display string."""

    model_config = ConfigDict(frozen=True)

    timestamp: str
    formatted: str = ""

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: object) -> object:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(int(value))
        return value


class GeoData(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    latitude: float
    longitude: float
    altitude: float = 0.0
    latitude_span: Optional[float] = Field(default=None, alias="latitudeSpan")
    longitude_span: Optional[float] = Field(default=None, alias="longitudeSpan")


class SidecarMetadata(BaseModel):
    """Validated contents of a JSON sidecar. Immutable once parsed."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    title: str = Field(min_length=1)
    description: str = ""
    photo_taken_time: Optional[TimeInfo] = Field(default=None, alias="photoTakenTime")
    creation_time: Optional[TimeInfo] = Field(default=None, alias="creationTime")
    geo_data: Optional[GeoData] = Field(default=None, alias="geoData")
    geo_data_exif: Optional[GeoData] = Field(default=None, alias="geoDataExif")


@dataclass
class MediaItem:
    """One discovered media file and everything the pipeline learns about it."""

    id: str  # md5 of the original absolute path
    original_path: Path
    filename: str  # display name, extension possibly corrected
    extension: str  # includes dot, original case style
    metadata: Optional[SidecarMetadata] = None
    source_folder: str = ""  # "" = no album
    duplicate_group: Optional[str] = None  # base filename for numbered variants
    duplicate_index: int = 0
    year_path: Optional[Path] = None
    album_path: Optional[Path] = None
    status: ProcessingStatus = ProcessingStatus.PENDING
    error: Optional[str] = None

    @property
    def is_photo(self) -> bool:
        return self.extension.lower() in PHOTO_EXTENSIONS

    def record_error(self, message: str) -> None:
        """Attach an error unless an earlier stage already recorded one."""
        if self.error is None:
            self.error = message


@dataclass
class DuplicateGroup:
    """Filename variants sharing one base name, canonical (index 0) first."""

    base_filename: str
    items: list[MediaItem] = field(default_factory=list)

    @property
    def filenames(self) -> list[str]:
        return [item.filename for item in self.items]


@dataclass
class ProcessingStats:
    """Run counters. Worker threads update them only through increment()."""

    total_files: int = 0
    processed_files: int = 0
    failed_files: int = 0
    total_size: int = 0  # bytes
    duplicate_groups: int = 0
    album_count: int = 0
    year_min: int = 0
    year_max: int = 0
    exif_failures: int = 0
    timestamp_failures: int = 0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False,
    )

    def increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            setattr(self, name, getattr(self, name) + amount)

    def as_dict(self) -> dict[str, int]:
        return {
            "total_files": self.total_files,
            "processed_files": self.processed_files,
            "failed_files": self.failed_files,
            "total_size": self.total_size,
            "duplicate_groups": self.duplicate_groups,
            "album_count": self.album_count,
            "year_min": self.year_min,
            "year_max": self.year_max,
            "exif_failures": self.exif_failures,
            "timestamp_failures": self.timestamp_failures,
        }


@dataclass
class ProcessingContext:
    """Run-scoped state shared by every pipeline stage."""

    config: OrganizerConfig
    input_dir: Path
    staging_dir: Path
    output_dir: Path
    by_year_dir: Path
    by_album_dir: Path
    files: dict[str, MediaItem] = field(default_factory=dict)
    stats: ProcessingStats = field(default_factory=ProcessingStats)
    log_dir: Optional[Path] = None

    @property
    def media_root(self) -> Path:
        return self.staging_dir / self.config.input.media_root

    @classmethod
    def from_config(
        cls, config: OrganizerConfig, cwd: Optional[Path] = None,
    ) -> ProcessingContext:
        """Resolve every configured directory against ``cwd``."""
        cwd = cwd or Path.cwd()
        output_dir = (cwd / config.output.output_dir).resolve()
        by_year_dir = (
            output_dir / config.output.year_subdir
            if config.output.year_subdir else output_dir
        )
        by_album_dir = (
            output_dir / config.output.album_subdir
            if config.output.album_subdir else output_dir
        )
        return cls(
            config=config,
            input_dir=(cwd / config.input.archive_dir).resolve(),
            staging_dir=(cwd / config.output.staging_dir).resolve(),
            output_dir=output_dir,
            by_year_dir=by_year_dir,
            by_album_dir=by_album_dir,
            log_dir=(cwd / config.logging.log_dir).resolve(),
        )
