"""Manifest operations for Photo Gallery Publisher."""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from photo_gallery_publisher.models import (
    Album,
    AlbumNotFoundError,
    AlbumState,
    ManifestNotFoundError,
    Photo,
    SchemaError,
)
from photo_gallery_publisher.utils.file_utils import write_json_atomic

logger = logging.getLogger(__name__)

METADATA_FILENAME = "data.json"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_date(value: datetime) -> str:
    """Format a timestamp as ISO-8601 UTC with a Z suffix."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(DATE_FORMAT)


def parse_date(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Raises:
        SchemaError: If the value is not a valid timestamp
    """
    if not isinstance(value, str):
        raise SchemaError(f"'date' must be a string, got {type(value).__name__}")
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        # offsets near datetime.min or datetime.max overflow on conversion
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError) as e:
        raise SchemaError(f"Invalid 'date': {value!r}") from e


def decode_photo(entry: Union[str, Dict[str, Any]]) -> Photo:
    """Decode a photo entry in either the legacy or the structured form.

    A legacy entry is a bare filename used for both low/ and full/; a
    structured entry is ``{"webp": ..., "ext": ...}``.
    """
    if isinstance(entry, str):
        base_name, ext = os.path.splitext(entry)
        if not base_name or not ext:
            raise SchemaError(f"Invalid legacy photo entry: {entry!r}")
        return Photo(base_name=base_name, web_name=entry, original_extension=ext[1:].lower())

    if isinstance(entry, dict):
        web_name = entry.get("webp")
        ext = entry.get("ext")
        if not isinstance(web_name, str) or not web_name:
            raise SchemaError(f"Photo entry missing 'webp': {entry!r}")
        if not isinstance(ext, str) or not ext:
            raise SchemaError(f"Photo entry missing 'ext': {entry!r}")
        base_name = os.path.splitext(web_name)[0]
        return Photo(base_name=base_name, web_name=web_name, original_extension=ext.lower())

    raise SchemaError(f"Unsupported photo entry: {entry!r}")


def encode_photo(photo: Photo) -> Dict[str, str]:
    """Encode a photo in the structured form."""
    return {"webp": photo.web_name, "ext": photo.original_extension}


def decode_album(folder_name: str, data: Any) -> Album:
    """Validate album metadata and build the Album.

    Args:
        folder_name: Album folder name, not stored in the metadata itself
        data: Parsed JSON content of data.json

    Raises:
        SchemaError: If a field is missing or malformed
    """
    if not isinstance(data, dict):
        raise SchemaError(f"Metadata for {folder_name} is not an object")

    for key in ("name", "photographer", "coverPhoto"):
        if not isinstance(data.get(key), str):
            raise SchemaError(f"Metadata for {folder_name} missing '{key}'")

    entries = data.get("photos")
    if not isinstance(entries, list) or not entries:
        raise SchemaError(f"Metadata for {folder_name} has no photos")

    photos = [decode_photo(entry) for entry in entries]
    if data["coverPhoto"] not in {photo.web_name for photo in photos}:
        raise SchemaError(
            f"Cover photo {data['coverPhoto']!r} of {folder_name} is not one of its photos"
        )

    return Album(
        folder_name=folder_name,
        display_name=data["name"],
        photographer=data["photographer"],
        created_at=parse_date(data.get("date")),
        cover_photo=data["coverPhoto"],
        photos=photos,
    )


def encode_album(album: Album) -> Dict[str, Any]:
    """Encode an Album as data.json content."""
    return {
        "name": album.display_name,
        "photographer": album.photographer,
        "date": format_date(album.created_at),
        "coverPhoto": album.cover_photo,
        "photos": [encode_photo(photo) for photo in album.photos],
    }


def decode_global_manifest(data: Any) -> List[str]:
    """Validate albums.json content and return its folder names."""
    if not isinstance(data, dict) or not isinstance(data.get("albums"), list):
        raise SchemaError("Global manifest must be an object with an 'albums' list")
    names = data["albums"]
    if not all(isinstance(name, str) for name in names):
        raise SchemaError("Global manifest entries must be strings")
    return names


class ManifestStore:
    """Reads and writes albums.json and per-album data.json files."""

    def __init__(self, albums_dir: str, manifest_path: str):
        """Initialize the store.

        Args:
            albums_dir: Directory holding one subdirectory per album
            manifest_path: Path of the global albums.json
        """
        self.albums_dir = albums_dir
        self.manifest_path = manifest_path

    def album_path(self, folder_name: str) -> str:
        """Path of an album directory."""
        return os.path.join(self.albums_dir, folder_name)

    def metadata_path(self, folder_name: str) -> str:
        """Path of an album's data.json."""
        return os.path.join(self.albums_dir, folder_name, METADATA_FILENAME)

    def has_metadata(self, folder_name: str) -> bool:
        """Check whether an album has a metadata file."""
        return os.path.isfile(self.metadata_path(folder_name))

    def album_state(self, folder_name: str) -> AlbumState:
        """Return the lifecycle state of an existing album directory."""
        if not os.path.isdir(self.album_path(folder_name)):
            raise AlbumNotFoundError(f"Album not found: {folder_name}")
        return AlbumState.PUBLISHED if self.has_metadata(folder_name) else AlbumState.RAW

    def list_album_dirs(self) -> List[str]:
        """List album directory names, hidden entries excluded."""
        if not os.path.isdir(self.albums_dir):
            return []
        return sorted(
            name
            for name in os.listdir(self.albums_dir)
            if not name.startswith(".") and os.path.isdir(self.album_path(name))
        )

    def load_global_manifest(self) -> Set[str]:
        """Load the set of published folder names.

        Raises:
            ManifestNotFoundError: If albums.json does not exist
            SchemaError: If albums.json is malformed
        """
        try:
            with open(self.manifest_path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ManifestNotFoundError(f"Global manifest not found: {self.manifest_path}") from e
        except json.JSONDecodeError as e:
            raise SchemaError(f"Invalid JSON in {self.manifest_path}: {e}") from e
        return set(decode_global_manifest(data))

    def write_global_manifest(self, folder_names: Iterable[str]) -> List[str]:
        """Overwrite albums.json with the given folder names.

        Only call this with the result of a fresh filesystem scan.

        Returns:
            The sorted folder names that were written
        """
        names = sorted(set(folder_names))
        manifest_dir = os.path.dirname(os.path.abspath(self.manifest_path))
        os.makedirs(manifest_dir, exist_ok=True)
        write_json_atomic(self.manifest_path, {"albums": names})
        logger.info("Wrote global manifest with %d album(s)", len(names))
        return names

    def load_album_metadata(self, folder_name: str) -> Album:
        """Load and validate an album's data.json.

        Raises:
            AlbumNotFoundError: If the album is raw or missing
            SchemaError: If the metadata is malformed
        """
        path = self.metadata_path(folder_name)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise AlbumNotFoundError(f"No metadata for album: {folder_name}") from e
        except json.JSONDecodeError as e:
            raise SchemaError(f"Invalid JSON in {path}: {e}") from e
        return decode_album(folder_name, data)

    def write_album_metadata(self, album: Album, album_dir: Optional[str] = None) -> None:
        """Atomically write an album's data.json.

        Args:
            album: Album to write
            album_dir: Directory to write into when it is not yet named after
                album.folder_name (publishing renames the directory last)
        """
        album_dir = album_dir or self.album_path(album.folder_name)
        if not os.path.isdir(album_dir):
            raise AlbumNotFoundError(f"Album not found: {album_dir}")
        write_json_atomic(os.path.join(album_dir, METADATA_FILENAME), encode_album(album))
