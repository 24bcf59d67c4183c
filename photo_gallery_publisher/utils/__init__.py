"""Utility functions for Photo Gallery Publisher."""

from .file_utils import is_source_photo, list_source_photos, to_folder_name, write_json_atomic
from .origin_sync import OriginSync

__all__ = [
    "OriginSync",
    "is_source_photo",
    "list_source_photos",
    "to_folder_name",
    "write_json_atomic",
]
