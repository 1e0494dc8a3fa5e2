"""Exception hierarchy for takeout-organizer."""


class TakeoutError(Exception):
    """Base class for all takeout-organizer errors."""


class ConfigError(TakeoutError):
    """Configuration file missing, unreadable, or invalid."""


class EnvironmentValidationError(TakeoutError):
    """Pre-flight checks failed (no archives, unwritable directories)."""


class ArchiveError(TakeoutError):
    """An archive could not be validated or extracted. Aborts the run."""


class ArchiveNotFoundError(ArchiveError):
    """No archive matched the configured pattern."""


class ArchiveValidationError(ArchiveError):
    """Archive exceeded a size, count, or compression-ratio limit."""


class DiscoveryError(TakeoutError):
    """The media root is missing from the staging tree."""


class PathTraversalError(TakeoutError):
    """A source folder name would escape the media root."""


class UniquePathError(TakeoutError):
    """No free destination name was found for a file."""


class MetadataWriteError(TakeoutError):
    """exiftool refused or failed to write tags into a file."""
