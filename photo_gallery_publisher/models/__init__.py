"""Models for Photo Gallery Publisher."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List


class AlbumState(str, Enum):
    """Album lifecycle state."""
    RAW = "raw"
    PUBLISHED = "published"


@dataclass(frozen=True)
class Photo:
    """Represents one published photo of an album."""
    base_name: str
    web_name: str
    original_extension: str

    @property
    def full_name(self) -> str:
        """Filename of the archival copy under full/."""
        return f"{self.base_name}.{self.original_extension}"

    @classmethod
    def for_index(cls, folder_name: str, index: int, extension: str) -> "Photo":
        """Build the photo record for the 1-based index of an album."""
        base_name = f"{folder_name}_{index}"
        return cls(
            base_name=base_name,
            web_name=f"{base_name}.webp",
            original_extension=extension.lower(),
        )


@dataclass
class Album:
    """Represents a published album."""
    folder_name: str
    display_name: str
    photographer: str
    created_at: datetime
    cover_photo: str
    photos: List[Photo] = field(default_factory=list)


class GalleryError(Exception):
    """Base exception for gallery operations."""


class NotFoundError(GalleryError):
    """Raised when a manifest or album is absent."""


class ManifestNotFoundError(NotFoundError):
    """Raised when the global manifest does not exist."""


class AlbumNotFoundError(NotFoundError):
    """Raised when an album directory or its metadata does not exist."""


class SchemaError(GalleryError):
    """Raised when a manifest is malformed."""


class EmptyAlbumError(GalleryError):
    """Raised when an album has no processable source photos."""


class AlreadyPublishedError(GalleryError):
    """Raised when publishing an album that already has metadata."""


class NotPublishedError(GalleryError):
    """Raised when resetting an album that has no metadata."""


class MissingFullAssetsError(GalleryError):
    """Raised when a published album lacks its full/ directory."""


class CorruptAlbumError(GalleryError):
    """Raised when metadata and derived directories disagree."""


class FolderConflictError(GalleryError):
    """Raised when the normalized album folder already exists."""


class InvalidAlbumNameError(GalleryError, ValueError):
    """Raised when a display name normalizes to an empty folder name."""


class ToolInvocationError(GalleryError):
    """Raised when the thumbnail generator fails."""


class MissingDependencyError(GalleryError):
    """Raised when a required external tool is not installed."""


class SyncError(GalleryError):
    """Raised when pushing assets to the photo origin fails."""


class AlbumLoadError(GalleryError):
    """Raised when an album view cannot be rendered."""
