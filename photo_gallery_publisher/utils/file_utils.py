"""File utilities for Photo Gallery Publisher."""

import json
import logging
import os
import re
import tempfile
from typing import Any, List

logger = logging.getLogger(__name__)

SOURCE_PHOTO_EXTENSIONS = {".jpg", ".jpeg", ".png"}


def is_source_photo(filename: str) -> bool:
    """Check if a file is a raw photo the publisher can process.

    Args:
        filename: Name of the file to check

    Returns:
        True if the extension is jpg, jpeg or png in any case
    """
    return os.path.splitext(filename)[1].lower() in SOURCE_PHOTO_EXTENSIONS


def to_folder_name(display_name: str) -> str:
    """Normalize an album display name into a folder name.

    Lowercases, turns whitespace runs into a single underscore and strips
    everything that is not alphanumeric or underscore.

    Args:
        display_name: Free text album name

    Returns:
        Filesystem safe folder name
    """
    name = display_name.strip().lower()
    name = re.sub(r"\s+", "_", name)
    return re.sub(r"[^a-z0-9_]", "", name)


def list_source_photos(album_dir: str) -> List[str]:
    """List raw photos directly inside an album directory.

    Args:
        album_dir: Album directory path

    Returns:
        Full paths in filesystem enumeration order, dot-prefixed names included
    """
    photos = []
    with os.scandir(album_dir) as entries:
        for entry in entries:
            if entry.is_file() and is_source_photo(entry.name):
                photos.append(entry.path)
    return photos


def _current_umask() -> int:
    # os.umask can only be read by setting it
    mask = os.umask(0)
    os.umask(mask)
    return mask


def write_json_atomic(path: str, data: Any) -> None:
    """Write JSON so readers see either the old file or the complete new one.

    The file gets the usual 0666 & ~umask mode so a web server running as
    another user can still read it.

    Args:
        path: Destination path
        data: JSON serializable object
    """
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".json", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp_file:
            json.dump(data, tmp_file, indent=2, ensure_ascii=False)
            tmp_file.write("\n")
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        os.chmod(tmp_path, 0o666 & ~_current_umask())
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    logger.debug("Wrote %s", path)
