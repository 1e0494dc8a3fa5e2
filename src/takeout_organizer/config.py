"""Configuration constants, runtime config dataclasses, and config file loading."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, FrozenSet, Optional

from takeout_organizer.errors import ConfigError

logger = logging.getLogger(__name__)

PHOTO_EXTENSIONS: FrozenSet[str] = frozenset({
    ".jpg", ".jpeg", ".png", ".gif", ".heic", ".heif",
    ".dng", ".webp", ".bmp", ".tiff", ".tif", ".raw",
    ".cr2", ".nef", ".arw",
})

VIDEO_EXTENSIONS: FrozenSet[str] = frozenset({
    ".mp4", ".mov", ".avi", ".mkv", ".webm", ".3gp", ".m4v",
})

MEDIA_EXTENSIONS: FrozenSet[str] = PHOTO_EXTENSIONS | VIDEO_EXTENSIONS

# TIFF-structured RAW containers keep their declared extension.
RAW_EXTENSIONS: FrozenSet[str] = frozenset({
    ".dng", ".cr2", ".nef", ".arw", ".raw",
})

SIDECAR_SUFFIXES: tuple[str, ...] = (
    ".json",
    ".supplemental-metadata.json",
    ".supplemental-me.json",
)

YEAR_FOLDER_PATTERN = re.compile(r"^Photos from (\d{4})$")
DUPLICATE_PATTERN = re.compile(r"^(.+)\((\d+)\)(\.[^.]+)$")
# YYYYMMDD, YYYY-MM-DD or YYYY_MM_DD, at the start or after a non-digit
DATE_PATTERN = re.compile(r"(?:^|[^0-9])(20[0-2]\d)[-_]?([01]\d)[-_]?([0-3]\d)")

YEAR_FOLDER_PREFIX = "Photos from "

MIN_VALID_YEAR: int = 1990
MIN_TIMESTAMP: int = 631152000  # 1990-01-01T00:00:00Z
MAX_TIMESTAMP_AHEAD: int = 31536000  # one year, seconds

MAX_ARCHIVE_ENTRIES: int = 2_000_000
MAX_UNCOMPRESSED_BYTES: int = 500 * 1024 ** 3
MAX_COMPRESSION_RATIO: float = 100.0
MIN_RETRY_DELAY_MS: int = 100

MAX_UNIQUE_FILENAME_ATTEMPTS: int = 10000
EXIF_CONCURRENCY: int = 3
PROGRESS_EVERY: int = 100
EXIFTOOL_TIMEOUT: int = 60  # seconds to wait for exiftool to exit

CONFIG_FILENAMES: tuple[str, ...] = (
    "takeout-config.json",
    "config/default.json",
)


@dataclass(frozen=True)
class InputConfig:
    archive_dir: str = "."
    archive_pattern: str = "takeout-*.zip"
    media_root: str = "Takeout/Google Photos"


@dataclass(frozen=True)
class OutputConfig:
    staging_dir: str = ".takeout-staging"
    output_dir: str = "Google Photos"
    year_subdir: str = ""  # empty = directly under output_dir
    album_subdir: str = ""
    unknown_year_folder: str = "unknown"


@dataclass(frozen=True)
class ProcessingConfig:
    concurrency: int = 5
    retry_attempts: int = 2
    retry_delay_ms: int = 1000
    use_hard_links: bool = True
    fallback_to_copy: bool = True


@dataclass(frozen=True)
class ExifConfig:
    write_gps: bool = True
    write_description: bool = True
    write_keywords: bool = True
    write_date_time_original: bool = True
    preserve_original_file: bool = False

    @property
    def any_enabled(self) -> bool:
        return (
            self.write_gps
            or self.write_description
            or self.write_keywords
            or self.write_date_time_original
        )


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "info"
    console: bool = True
    file: bool = True
    log_dir: str = "logs"


@dataclass(frozen=True)
class OrganizerConfig:
    """Immutable runtime configuration assembled from defaults, file, and CLI."""

    input: InputConfig = field(default_factory=InputConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    exif: ExifConfig = field(default_factory=ExifConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


_GROUPS: dict[str, type] = {
    "input": InputConfig,
    "output": OutputConfig,
    "processing": ProcessingConfig,
    "exif": ExifConfig,
    "logging": LoggingConfig,
}

# camelCase key names accepted from older config files.
_LEGACY_KEYS: dict[str, str] = {
    "zipDirectory": "archive_dir",
    "zipPattern": "archive_pattern",
    "stagingDir": "staging_dir",
    "outputDir": "output_dir",
    "byYearSubdir": "year_subdir",
    "byAlbumSubdir": "album_subdir",
    "unknownYearFolder": "unknown_year_folder",
    "retryAttempts": "retry_attempts",
    "retryDelay": "retry_delay_ms",
    "useHardLinks": "use_hard_links",
    "fallbackToCopy": "fallback_to_copy",
    "writeGPS": "write_gps",
    "writeDescription": "write_description",
    "writeKeywords": "write_keywords",
    "writeDateTimeOriginal": "write_date_time_original",
    "preserveOriginalFile": "preserve_original_file",
    "logDir": "log_dir",
}


def _merge_group(name: str, current: Any, overrides: Any) -> Any:
    if not isinstance(overrides, dict):
        raise ConfigError(f"Config group '{name}' must be an object")
    known = {f.name for f in fields(current)}
    updates: dict[str, Any] = {}
    for key, value in overrides.items():
        key = _LEGACY_KEYS.get(key, key)
        if key not in known:
            raise ConfigError(f"Unknown config key '{name}.{key}'")
        updates[key] = value
    return replace(current, **updates)


def merge_config(base: OrganizerConfig, data: dict[str, Any]) -> OrganizerConfig:
    """Overlay a parsed config document onto ``base``, group by group."""
    groups: dict[str, Any] = {}
    for name, value in data.items():
        if name not in _GROUPS:
            raise ConfigError(f"Unknown config group '{name}'")
        groups[name] = _merge_group(name, getattr(base, name), value)
    config = replace(base, **groups)
    _validate(config)
    return config


def _validate(config: OrganizerConfig) -> None:
    p = config.processing
    if not isinstance(p.concurrency, int) or p.concurrency < 1:
        raise ConfigError(f"processing.concurrency must be >= 1 (got {p.concurrency!r})")
    if not isinstance(p.retry_attempts, int) or p.retry_attempts < 0:
        raise ConfigError(f"processing.retry_attempts must be >= 0 (got {p.retry_attempts!r})")
    if not isinstance(p.retry_delay_ms, (int, float)) or p.retry_delay_ms < 0:
        raise ConfigError(f"processing.retry_delay_ms must be >= 0 (got {p.retry_delay_ms!r})")
    if not config.output.unknown_year_folder:
        raise ConfigError("output.unknown_year_folder must not be empty")


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data


def load_config(
    config_path: Optional[Path] = None,
    cwd: Optional[Path] = None,
    input_dir: Optional[str] = None,
    output_dir: Optional[str] = None,
) -> OrganizerConfig:
    """Build the run configuration.

    Defaults are overlaid with the first config file found (an explicit
    ``config_path``, else ``takeout-config.json`` or ``config/default.json``
    under ``cwd``), then with the CLI input/output directory overrides.
    """
    config = OrganizerConfig()
    cwd = cwd or Path.cwd()

    if config_path is not None:
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
        candidates = [config_path]
    else:
        candidates = [cwd / name for name in CONFIG_FILENAMES]

    for candidate in candidates:
        if candidate.is_file():
            config = merge_config(config, _read_json(candidate))
            logger.debug(f"Loaded config from {candidate}")
            break

    if input_dir:
        config = replace(config, input=replace(config.input, archive_dir=input_dir))
    if output_dir:
        config = replace(config, output=replace(config.output, output_dir=output_dir))

    return config
