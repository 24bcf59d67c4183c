"""Album publish/reset transitions for Photo Gallery Publisher."""

import logging
import os
import random
import shutil
from datetime import datetime, timezone
from typing import Callable, List, Optional

from photo_gallery_publisher.manifest.manifest_store import METADATA_FILENAME, ManifestStore
from photo_gallery_publisher.models import (
    Album,
    AlbumNotFoundError,
    AlbumState,
    AlreadyPublishedError,
    CorruptAlbumError,
    EmptyAlbumError,
    FolderConflictError,
    InvalidAlbumNameError,
    MissingFullAssetsError,
    NotPublishedError,
    Photo,
    ToolInvocationError,
)
from photo_gallery_publisher.transform.thumbnails import FfmpegThumbnailer, Thumbnailer
from photo_gallery_publisher.utils.file_utils import (
    SOURCE_PHOTO_EXTENSIONS,
    list_source_photos,
    to_folder_name,
)

logger = logging.getLogger(__name__)

LOW_DIR = "low"
FULL_DIR = "full"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


class AlbumTransformer:
    """Moves albums between the raw and published states.

    Runs are meant for a single operator, one at a time. There is no
    rollback: a failure partway through publish or reset stops the run and
    leaves whatever was already moved in place. Publishing an album that was
    interrupted picks up after the last photo whose low/ and full/ outputs
    both exist.
    """

    def __init__(
        self,
        store: ManifestStore,
        thumbnailer: Optional[Thumbnailer] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """Initialize the transformer.

        Args:
            store: Manifest store for the albums directory
            thumbnailer: Object with generate(source, destination); ffmpeg by default
            rng: Random source for the cover photo pick
            clock: Returns the publish timestamp
        """
        self.store = store
        self.thumbnailer = thumbnailer or FfmpegThumbnailer()
        self.rng = rng or random.Random()
        self.clock = clock

    def find_pending_albums(self) -> List[str]:
        """Names of album directories without metadata."""
        return [
            name
            for name in self.store.list_album_dirs()
            if self.store.album_state(name) == AlbumState.RAW
        ]

    def check_consistency(self, folder_name: str) -> AlbumState:
        """Return the album state, failing if metadata and directories disagree.

        Raises:
            CorruptAlbumError: If metadata exists without low/ and full/,
                or derived directories exist without metadata
        """
        state = self.store.album_state(folder_name)
        album_dir = self.store.album_path(folder_name)
        derived = [
            os.path.isdir(os.path.join(album_dir, sub)) for sub in (LOW_DIR, FULL_DIR)
        ]
        if state == AlbumState.PUBLISHED and not all(derived):
            raise CorruptAlbumError(
                f"Album {folder_name} has {METADATA_FILENAME} but is missing low/ or full/"
            )
        if state == AlbumState.RAW and any(derived):
            raise CorruptAlbumError(
                f"Album {folder_name} has derived directories but no {METADATA_FILENAME}; "
                "publish it again to resume"
            )
        return state

    def publish(self, album_dir: str, display_name: str, photographer: str) -> Album:
        """Publish a raw album directory.

        Args:
            album_dir: Path of the raw album directory
            display_name: Human readable album name
            photographer: Photographer credit

        Returns:
            The published album

        Raises:
            AlbumNotFoundError: If album_dir does not exist
            AlreadyPublishedError: If album_dir already has metadata
            InvalidAlbumNameError: If display_name has no usable characters
            EmptyAlbumError: If there is nothing to publish
            FolderConflictError: If another directory already has the target name
            ToolInvocationError: If thumbnail generation fails
        """
        album_dir = os.path.normpath(album_dir)
        if not os.path.isdir(album_dir):
            raise AlbumNotFoundError(f"Album not found: {album_dir}")
        if os.path.isfile(os.path.join(album_dir, METADATA_FILENAME)):
            raise AlreadyPublishedError(f"Album is already published: {album_dir}")

        folder_name = to_folder_name(display_name)
        if not folder_name:
            raise InvalidAlbumNameError(f"Album name {display_name!r} has no usable characters")

        sources = list_source_photos(album_dir)
        photos = self._recover_completed(album_dir, folder_name)
        if not sources and not photos:
            raise EmptyAlbumError(f"No photos found in {album_dir}")

        target_dir = os.path.join(os.path.dirname(album_dir), folder_name)
        if os.path.exists(target_dir) and not os.path.samefile(target_dir, album_dir):
            raise FolderConflictError(
                f"Cannot rename {os.path.basename(album_dir)} to {folder_name}: "
                "directory already exists"
            )

        if photos:
            logger.info("Resuming %s after %d finished photo(s)", folder_name, len(photos))

        low_dir = os.path.join(album_dir, LOW_DIR)
        full_dir = os.path.join(album_dir, FULL_DIR)
        os.makedirs(low_dir, exist_ok=True)
        os.makedirs(full_dir, exist_ok=True)

        total = len(photos) + len(sources)
        for index, source in enumerate(sources, start=len(photos) + 1):
            print(f"Processing photo {index}/{total}: {os.path.basename(source)}")
            photos.append(self._process_photo(source, low_dir, full_dir, folder_name, index))

        album = Album(
            folder_name=folder_name,
            display_name=display_name,
            photographer=photographer,
            created_at=self.clock(),
            cover_photo=self.rng.choice(photos).web_name,
            photos=photos,
        )
        self.store.write_album_metadata(album, album_dir=album_dir)
        logger.info("Selected cover photo %s for %s", album.cover_photo, folder_name)

        if os.path.basename(album_dir) != folder_name:
            os.rename(album_dir, target_dir)
            logger.info("Renamed %s to %s", album_dir, target_dir)

        self.regenerate_global_manifest()
        return album

    def reset(self, folder_name: str) -> int:
        """Return a published album to the raw state.

        Archival copies move back to the album root under their generated
        names; the original filenames were discarded at publish time.

        Returns:
            Number of restored photos

        Raises:
            AlbumNotFoundError: If the album directory does not exist
            NotPublishedError: If the album has no metadata
            MissingFullAssetsError: If full/ is missing
            CorruptAlbumError: If a restored file would overwrite a root file
        """
        album_dir = self.store.album_path(folder_name)
        if self.store.album_state(folder_name) == AlbumState.RAW:
            raise NotPublishedError(f"Album {folder_name} is already in its original state")

        full_dir = os.path.join(album_dir, FULL_DIR)
        if not os.path.isdir(full_dir):
            raise MissingFullAssetsError(
                f"No full/ directory in {folder_name}; the album may be corrupted"
            )

        names = sorted(os.listdir(full_dir))
        clashes = [name for name in names if os.path.exists(os.path.join(album_dir, name))]
        if clashes:
            raise CorruptAlbumError(
                f"Cannot restore {folder_name}: {', '.join(clashes)} already in album root"
            )

        for name in names:
            shutil.move(os.path.join(full_dir, name), os.path.join(album_dir, name))
        logger.info("Moved %d photo(s) from full/ to %s", len(names), album_dir)

        low_dir = os.path.join(album_dir, LOW_DIR)
        if os.path.isdir(low_dir):
            shutil.rmtree(low_dir)
        shutil.rmtree(full_dir)
        os.remove(self.store.metadata_path(folder_name))

        self.regenerate_global_manifest()
        return len(names)

    def regenerate_global_manifest(self) -> List[str]:
        """Rebuild albums.json from the albums that have metadata."""
        published = [
            name for name in self.store.list_album_dirs() if self.store.has_metadata(name)
        ]
        return self.store.write_global_manifest(published)

    def _recover_completed(self, album_dir: str, folder_name: str) -> List[Photo]:
        """Photos finished by an interrupted run, contiguous from index 1."""
        photos: List[Photo] = []
        index = 1
        while True:
            ext = self._finished_extension(album_dir, f"{folder_name}_{index}")
            if ext is None:
                return photos
            photos.append(Photo.for_index(folder_name, index, ext))
            index += 1

    @staticmethod
    def _finished_extension(album_dir: str, base_name: str) -> Optional[str]:
        if not os.path.isfile(os.path.join(album_dir, LOW_DIR, f"{base_name}.webp")):
            return None
        for ext in sorted(SOURCE_PHOTO_EXTENSIONS):
            if os.path.isfile(os.path.join(album_dir, FULL_DIR, f"{base_name}{ext}")):
                return ext[1:]
        return None

    def _process_photo(
        self, source: str, low_dir: str, full_dir: str, folder_name: str, index: int
    ) -> Photo:
        """Copy, thumbnail and remove one source photo.

        The source is removed only after both outputs exist.
        """
        extension = os.path.splitext(source)[1][1:]
        photo = Photo.for_index(folder_name, index, extension)
        full_path = os.path.join(full_dir, photo.full_name)
        low_path = os.path.join(low_dir, photo.web_name)
        self._discard_outputs(photo, low_dir, full_dir)

        shutil.copyfile(source, full_path)
        try:
            self.thumbnailer.generate(source, low_path)
        except ToolInvocationError:
            self._discard_outputs(photo, low_dir, full_dir)
            raise
        if not os.path.isfile(low_path):
            self._discard_outputs(photo, low_dir, full_dir)
            raise ToolInvocationError(f"Thumbnailer produced no output for {source}")

        os.remove(source)
        logger.debug("Published %s as %s", source, photo.base_name)
        return photo

    @staticmethod
    def _discard_outputs(photo: Photo, low_dir: str, full_dir: str) -> None:
        """Remove leftovers of an earlier failed attempt at this index."""
        stale = [os.path.join(low_dir, photo.web_name)]
        stale.extend(
            os.path.join(full_dir, f"{photo.base_name}{ext}") for ext in SOURCE_PHOTO_EXTENSIONS
        )
        for path in stale:
            if os.path.isfile(path):
                os.remove(path)
