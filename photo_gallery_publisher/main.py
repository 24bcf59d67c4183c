"""Main module for Photo Gallery Publisher."""

import argparse
import asyncio
import logging
import os
import sys
from typing import Callable, List, Optional

import httpx
from tabulate import tabulate

from photo_gallery_publisher.client.gallery_client import GalleryClient
from photo_gallery_publisher.config import GalleryConfig
from photo_gallery_publisher.manifest.manifest_store import ManifestStore, format_date
from photo_gallery_publisher.models import (
    Album,
    AlbumNotFoundError,
    AlbumState,
    CorruptAlbumError,
    EmptyAlbumError,
    GalleryError,
    MissingFullAssetsError,
    SchemaError,
)
from photo_gallery_publisher.transform.album_transformer import FULL_DIR, AlbumTransformer
from photo_gallery_publisher.transform.thumbnails import THUMBNAILERS, get_thumbnailer
from photo_gallery_publisher.utils.file_utils import to_folder_name
from photo_gallery_publisher.utils.origin_sync import OriginSync

logger = logging.getLogger(__name__)

ALBUM_TABLE_HEADERS = ["Folder", "Name", "Photographer", "Date", "Photos", "State"]


class GalleryPublisher:
    """Operator-facing workflows around the album transformer."""

    def __init__(
        self,
        config: GalleryConfig,
        dry_run: bool = False,
        prompt: Callable[[str], str] = input,
    ):
        """Initialize the publisher.

        Args:
            config: Paths and endpoints
            dry_run: If True, origin uploads only report what they would do
            prompt: Reads one line of operator input
        """
        self.config = config
        self.dry_run = dry_run
        self.prompt = prompt
        self.store = ManifestStore(config.albums_dir, config.manifest_path)
        self.transformer = AlbumTransformer(
            self.store, thumbnailer=get_thumbnailer(config.thumbnailer)
        )

    def confirm(self, question: str) -> bool:
        """Ask a y/n question."""
        return self.prompt(f"{question} (y/n): ").strip().lower() == "y"

    def ask_album_details(self):
        """Prompt for a display name that yields a folder name, and a photographer."""
        while True:
            display_name = self.prompt("Enter album name (e.g., 'Spring Formal 2024'): ").strip()
            if to_folder_name(display_name):
                break
            print("Album name must contain at least one letter or digit")
        photographer = self.prompt("Enter photographer name: ").strip()
        return display_name, photographer

    def publish_album(self, name: str) -> Optional[Album]:
        """Publish one pending album after asking for its details."""
        print(f"\nProcessing album: {name}")
        display_name, photographer = self.ask_album_details()
        print(f"Album will be renamed to: {to_folder_name(display_name)}")

        try:
            album = self.transformer.publish(
                self.store.album_path(name), display_name, photographer
            )
        except EmptyAlbumError as e:
            logger.warning("%s. Skipping.", e)
            return None

        print(f"Album '{album.display_name}' processed successfully!")
        print(f"  - {len(album.photos)} photos processed")
        print(f"  - Cover photo: {album.cover_photo}")
        return album

    def publish_pending(self, skip_sync: bool = False) -> List[Album]:
        """Publish every album without metadata, then rebuild the manifest.

        Returns:
            The albums published in this run
        """
        self.transformer.thumbnailer.check_available()
        if not os.path.isdir(self.config.albums_dir):
            os.makedirs(self.config.albums_dir)
            logger.warning("Created missing albums directory %s", self.config.albums_dir)

        published: List[Album] = []
        pending = self.transformer.find_pending_albums()
        if not pending:
            print("No uninitialized albums found. All albums are ready!")
        else:
            print(f"Found {len(pending)} uninitialized album(s)")
            for name in pending:
                album = self.publish_album(name)
                if album is not None:
                    published.append(album)
            print(f"\nProcessed {len(published)} of {len(pending)} album(s)")

        self.regenerate()
        if not skip_sync:
            self.sync_to_origin()
        return published

    def regenerate(self) -> List[str]:
        """Rebuild albums.json from the filesystem."""
        names = self.transformer.regenerate_global_manifest()
        print(f"Created albums.json with {len(names)} album(s)")
        return names

    def select_album(self) -> str:
        """Let the operator pick an album by number or name."""
        albums = self.store.list_album_dirs()
        if not albums:
            raise AlbumNotFoundError(f"No albums found in {self.config.albums_dir}")

        print("\nAvailable albums:\n")
        for i, name in enumerate(albums, 1):
            print(f"  {i:2d}) {name}")
        selection = self.prompt("\nEnter album number or name: ").strip()

        if selection.isdigit():
            index = int(selection) - 1
            if not 0 <= index < len(albums):
                raise AlbumNotFoundError(f"Invalid selection: {selection}")
            return albums[index]
        return selection

    def reset_album(self, name: Optional[str] = None, assume_yes: bool = False) -> int:
        """Reset a published album after confirmation.

        Returns:
            Number of restored photos, 0 if nothing was done
        """
        if not os.path.isdir(self.config.albums_dir):
            raise AlbumNotFoundError(f"Albums directory not found: {self.config.albums_dir}")
        if name is None:
            name = self.select_album()

        print(f"Resetting album: {name}")
        if self.store.album_state(name) == AlbumState.RAW:
            print("Album is already in original state (no data.json found)")
            return 0

        full_dir = os.path.join(self.store.album_path(name), FULL_DIR)
        if not os.path.isdir(full_dir):
            raise MissingFullAssetsError(f"No full/ directory in {name}; album may be corrupted")
        print(f"Found {len(os.listdir(full_dir))} photo(s) to restore")

        print("This will:")
        print("  - Move all photos from full/ back to album root")
        print("  - Delete the low/ directory and all thumbnails")
        print("  - Delete the full/ directory")
        print("  - Delete the data.json file")
        if not assume_yes and not self.confirm("Are you sure you want to reset this album?"):
            print("Reset cancelled")
            return 0

        restored = self.transformer.reset(name)
        print(f"Album '{name}' has been reset; it now contains {restored} photo(s)")
        return restored

    def sync_to_origin(self) -> List[str]:
        """Upload published albums to the photo origin after confirmation."""
        if not self.config.sync_target:
            logger.warning("No sync target configured, skipping origin upload")
            return []

        sync = OriginSync(self.config.albums_dir, self.config.sync_target, dry_run=self.dry_run)
        albums = sync.albums_to_upload()
        if not albums:
            print("No albums with photos found to upload")
            return []

        print(f"Found {len(albums)} album(s) to upload:")
        for album in albums:
            print(f"  - {album}")
        if not self.confirm(f"Do you want to upload photos to {self.config.sync_target}?"):
            print("Origin upload skipped")
            return []
        return sync.sync_all()

    def local_album_rows(self) -> List[list]:
        """Table rows describing every album directory."""
        rows = []
        for name in self.store.list_album_dirs():
            try:
                state = self.transformer.check_consistency(name)
            except CorruptAlbumError as e:
                logger.debug("%s", e)
                rows.append([name, "", "", "", "", "corrupt"])
                continue

            if state == AlbumState.RAW:
                rows.append([name, "", "", "", "", state.value])
                continue

            try:
                album = self.store.load_album_metadata(name)
            except SchemaError as e:
                logger.warning("Invalid metadata for %s: %s", name, e)
                rows.append([name, "", "", "", "", "invalid"])
                continue
            rows.append(
                [
                    name,
                    album.display_name,
                    album.photographer,
                    format_date(album.created_at),
                    len(album.photos),
                    state.value,
                ]
            )
        return rows

    def remote_album_rows(self) -> List[list]:
        """Table rows for the albums the live gallery lists."""
        if not self.config.site_url:
            raise GalleryError("A site URL is required to list remote albums")
        client = GalleryClient(self.config.site_url, self.config.origin_url or None)
        summaries = asyncio.run(client.list_albums())
        return [
            [
                summary.folder_name,
                summary.name,
                summary.photographer,
                format_date(summary.created_at),
                summary.photo_count,
                AlbumState.PUBLISHED.value,
            ]
            for summary in summaries
        ]

    def print_albums(self, remote: bool = False) -> None:
        rows = self.remote_album_rows() if remote else self.local_album_rows()
        if rows:
            print(tabulate(rows, headers=ALBUM_TABLE_HEADERS, tablefmt="psql"))
            print(f"\nTotal albums: {len(rows)}")
        else:
            print("No albums found")


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Photo Gallery Publisher")

    # Global arguments
    parser.add_argument("--albums-dir", type=str, help="Directory holding album folders")
    parser.add_argument("--manifest-path", type=str, help="Path of the global albums.json")
    parser.add_argument("--site-url", type=str, help="Base URL of the deployed gallery")
    parser.add_argument("--origin-url", type=str, help="Base URL of the photo origin")
    parser.add_argument("--sync-target", type=str, help="rsync destination for the photo origin")
    parser.add_argument(
        "--thumbnailer", choices=sorted(THUMBNAILERS), help="Thumbnail generator to use"
    )
    parser.add_argument("--dry-run", action="store_true", help="Run uploads without changes")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands", required=True)

    publish_parser = subparsers.add_parser("publish", help="Publish all pending albums")
    publish_parser.add_argument(
        "--skip-sync", action="store_true", help="Do not offer to upload to the photo origin"
    )

    reset_parser = subparsers.add_parser("reset", help="Reset a published album")
    reset_parser.add_argument("album", nargs="?", help="Album folder name")
    reset_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")

    subparsers.add_parser("regenerate", help="Rebuild albums.json from the filesystem")

    albums_parser = subparsers.add_parser("albums", help="List albums")
    albums_parser.add_argument(
        "--remote", action="store_true", help="List albums from the deployed gallery"
    )

    subparsers.add_parser("sync", help="Upload published albums to the photo origin")

    return parser.parse_args(argv)


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the Photo Gallery Publisher CLI."""
    args = parse_arguments(argv)
    setup_logging(args.verbose)

    config = GalleryConfig.from_env().with_overrides(
        albums_dir=args.albums_dir,
        manifest_path=args.manifest_path,
        site_url=args.site_url,
        origin_url=args.origin_url,
        sync_target=args.sync_target,
        thumbnailer=args.thumbnailer,
    )

    try:
        publisher = GalleryPublisher(config, dry_run=args.dry_run)

        if args.command == "publish":
            publisher.publish_pending(skip_sync=args.skip_sync)

        elif args.command == "reset":
            publisher.reset_album(args.album, assume_yes=args.yes)

        elif args.command == "regenerate":
            publisher.regenerate()

        elif args.command == "albums":
            publisher.print_albums(remote=args.remote)

        elif args.command == "sync":
            publisher.sync_to_origin()

    except (GalleryError, httpx.HTTPError, ValueError) as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
