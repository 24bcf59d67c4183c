"""Configuration for Photo Gallery Publisher."""

import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

ENV_PREFIX = "GALLERY_"


@dataclass(frozen=True)
class GalleryConfig:
    """Paths and endpoints used by the publisher."""
    albums_dir: str = os.path.join("public", "albums")
    manifest_path: str = os.path.join("public", "albums.json")
    site_url: str = ""
    origin_url: str = ""
    sync_target: str = ""
    thumbnailer: str = "ffmpeg"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GalleryConfig":
        """Build a config from GALLERY_* environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            Config with defaults for unset variables
        """
        environ = os.environ if environ is None else environ
        values = {}
        for field in fields(cls):
            value = environ.get(f"{ENV_PREFIX}{field.name.upper()}")
            if value:
                values[field.name] = value
        return cls(**values)

    def with_overrides(self, **overrides: Optional[str]) -> "GalleryConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{key: value for key, value in overrides.items() if value is not None})
