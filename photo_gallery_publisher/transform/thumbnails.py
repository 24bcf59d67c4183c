"""Thumbnail generators for published albums.

Both generators scale the source to 50% in each axis and encode webp at
quality 85.
"""

import logging
import shutil
import subprocess
from typing import List, Protocol

from PIL import Image, features

from photo_gallery_publisher.models import MissingDependencyError, ToolInvocationError

logger = logging.getLogger(__name__)

SCALE = 0.5
QUALITY = 85


class Thumbnailer(Protocol):
    """What AlbumTransformer needs from a thumbnail generator."""

    name: str

    def check_available(self) -> None:
        ...

    def generate(self, source: str, destination: str) -> None:
        ...


class FfmpegThumbnailer:
    """Generates thumbnails by invoking ffmpeg."""

    name = "ffmpeg"

    def __init__(self, binary: str = "ffmpeg"):
        self.binary = binary

    def check_available(self) -> None:
        """Fail if the ffmpeg binary cannot be found."""
        if shutil.which(self.binary) is None:
            raise MissingDependencyError(
                "ffmpeg is not installed (macOS: brew install ffmpeg, "
                "Linux: sudo apt-get install ffmpeg)"
            )

    def build_command(self, source: str, destination: str) -> List[str]:
        """Argument vector for one ffmpeg run."""
        return [
            self.binary,
            "-i",
            source,
            "-vf",
            f"scale=iw*{SCALE}:ih*{SCALE}",
            "-quality",
            str(QUALITY),
            destination,
            "-y",
        ]

    def generate(self, source: str, destination: str) -> None:
        """Write a webp thumbnail of source to destination.

        Raises:
            ToolInvocationError: If ffmpeg fails or cannot be started
        """
        command = self.build_command(source, destination)
        logger.debug("Running %s", " ".join(command))
        try:
            subprocess.run(
                command,
                check=True,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or b"").decode("utf-8", "replace").strip()
            raise ToolInvocationError(
                f"ffmpeg failed for {source} (exit {e.returncode}): {stderr[-500:]}"
            ) from e
        except OSError as e:
            raise ToolInvocationError(f"Could not run ffmpeg for {source}: {e}") from e


class PillowThumbnailer:
    """Generates thumbnails in-process with Pillow."""

    name = "pillow"

    def check_available(self) -> None:
        """Fail if this Pillow build cannot encode webp."""
        if not features.check("webp"):
            raise MissingDependencyError("Pillow was built without webp support")

    def generate(self, source: str, destination: str) -> None:
        """Write a webp thumbnail of source to destination.

        Raises:
            ToolInvocationError: If the source cannot be decoded or encoded
        """
        try:
            with Image.open(source) as img:
                width, height = img.size
                size = (max(1, int(width * SCALE)), max(1, int(height * SCALE)))
                thumbnail = img.resize(size)
                if thumbnail.mode not in ("RGB", "RGBA"):
                    thumbnail = thumbnail.convert("RGBA" if "A" in thumbnail.getbands() else "RGB")
                thumbnail.save(destination, "WEBP", quality=QUALITY)
        except (IOError, OSError, ValueError) as e:
            raise ToolInvocationError(f"Pillow failed for {source}: {e}") from e


THUMBNAILERS = {
    FfmpegThumbnailer.name: FfmpegThumbnailer,
    PillowThumbnailer.name: PillowThumbnailer,
}


def get_thumbnailer(name: str) -> Thumbnailer:
    """Create a thumbnailer by name."""
    try:
        return THUMBNAILERS[name]()
    except KeyError as e:
        raise ValueError(f"Unknown thumbnailer: {name}") from e
