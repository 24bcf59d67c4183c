"""Push published album assets to the photo origin server."""

import logging
import os
import shutil
import subprocess
from typing import List

from photo_gallery_publisher.models import MissingDependencyError, SyncError

logger = logging.getLogger(__name__)

ASSET_SUBDIRS = ("low", "full")


class OriginSync:
    """Mirrors low/ and full/ of every published album to the origin with rsync."""

    def __init__(self, albums_dir: str, target: str, dry_run: bool = False):
        """Initialize the sync.

        Args:
            albums_dir: Local albums directory
            target: rsync destination, e.g. ``user@host:/var/www/photos``
            dry_run: If True, pass --dry-run to rsync
        """
        self.albums_dir = albums_dir
        self.target = target.rstrip("/")
        self.dry_run = dry_run

    def check_rsync(self) -> None:
        """Fail if rsync is not installed."""
        if shutil.which("rsync") is None:
            raise MissingDependencyError(
                "rsync is not installed (macOS: brew install rsync, "
                "Linux: sudo apt-get install rsync)"
            )

    def albums_to_upload(self) -> List[str]:
        """Albums that have both low/ and full/ directories."""
        if not os.path.isdir(self.albums_dir):
            return []
        albums = []
        for name in sorted(os.listdir(self.albums_dir)):
            album_path = os.path.join(self.albums_dir, name)
            if all(os.path.isdir(os.path.join(album_path, sub)) for sub in ASSET_SUBDIRS):
                albums.append(name)
        return albums

    def build_commands(self, album: str) -> List[List[str]]:
        """Build the rsync invocations for one album."""
        commands = []
        for sub in ASSET_SUBDIRS:
            command = ["rsync", "-avz", "--delete"]
            if self.dry_run:
                command.append("--dry-run")
            command.append(os.path.join(self.albums_dir, album, sub) + "/")
            command.append(f"{self.target}/{album}/{sub}/")
            commands.append(command)
        return commands

    def sync_album(self, album: str) -> None:
        """Upload one album's low/ and full/ directories."""
        for command in self.build_commands(album):
            logger.debug("Running %s", " ".join(command))
            try:
                subprocess.run(command, check=True)
            except (OSError, subprocess.CalledProcessError) as e:
                raise SyncError(f"Failed to upload {album}: {e}") from e

    def sync_all(self) -> List[str]:
        """Upload every published album.

        Returns:
            Names of the uploaded albums
        """
        self.check_rsync()
        albums = self.albums_to_upload()
        for album in albums:
            print(f"Uploading album: {album}")
            self.sync_album(album)
        logger.info("Uploaded %d album(s) to %s", len(albums), self.target)
        return albums
