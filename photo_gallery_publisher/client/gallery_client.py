"""Read-only client for a published gallery.

Mirrors what the gallery pages do in the browser: fetch albums.json, fetch
each album's data.json concurrently, and derive photo URLs on the origin.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

import httpx

from photo_gallery_publisher.manifest.manifest_store import (
    METADATA_FILENAME,
    decode_album,
    decode_global_manifest,
)
from photo_gallery_publisher.models import Album, AlbumLoadError, GalleryError, Photo, SchemaError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


@dataclass
class AlbumSummary:
    """An album card in the listing."""
    folder_name: str
    name: str
    photographer: str
    created_at: datetime
    cover_url: str
    photo_count: int


@dataclass
class PhotoUrls:
    """URLs used to display and download one photo."""
    thumbnail: str
    lightbox: str
    original: str


@dataclass
class AlbumView:
    """An album with the URLs of its photos."""
    album: Album
    photos: List[PhotoUrls]


def thumbnail_url(asset_base_url: str, folder_name: str, photo: Photo) -> str:
    """URL of the low/ webp used for grid and lightbox."""
    return f"{asset_base_url.rstrip('/')}/{folder_name}/low/{photo.web_name}"


def download_url(asset_base_url: str, folder_name: str, photo: Photo) -> str:
    """URL of the full/ archival copy."""
    return f"{asset_base_url.rstrip('/')}/{folder_name}/full/{photo.full_name}"


def photo_urls(asset_base_url: str, folder_name: str, photo: Photo) -> PhotoUrls:
    low = thumbnail_url(asset_base_url, folder_name, photo)
    return PhotoUrls(
        thumbnail=low,
        lightbox=low,
        original=download_url(asset_base_url, folder_name, photo),
    )


class GalleryClient:
    """Fetches published manifests and derives asset URLs."""

    def __init__(
        self,
        site_url: str,
        asset_base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """Initialize the client.

        Args:
            site_url: Base URL serving albums.json and albums/<folder>/data.json
            asset_base_url: Photo origin; defaults to ``{site_url}/albums``
            transport: Optional httpx transport, used by tests to inject responses
            timeout: Per request timeout in seconds
        """
        self.site_url = site_url.rstrip("/")
        self.asset_base_url = (asset_base_url or f"{self.site_url}/albums").rstrip("/")
        self.transport = transport
        self.timeout = timeout

    def manifest_url(self) -> str:
        return f"{self.site_url}/albums.json"

    def metadata_url(self, folder_name: str) -> str:
        return f"{self.site_url}/albums/{folder_name}/{METADATA_FILENAME}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=self.timeout)

    async def _get_json(self, client: httpx.AsyncClient, url: str) -> Any:
        response = await client.get(url)
        response.raise_for_status()
        return response.json()

    async def _fetch_album(self, client: httpx.AsyncClient, folder_name: str) -> Album:
        try:
            data = await self._get_json(client, self.metadata_url(folder_name))
        except ValueError as e:
            raise SchemaError(f"Invalid JSON for album {folder_name}: {e}") from e
        return decode_album(folder_name, data)

    async def _fetch_summary(
        self, client: httpx.AsyncClient, folder_name: str
    ) -> Optional[AlbumSummary]:
        try:
            album = await self._fetch_album(client, folder_name)
        except (httpx.HTTPError, GalleryError) as e:
            logger.warning("Error loading album %s: %s", folder_name, e)
            return None
        cover = next(photo for photo in album.photos if photo.web_name == album.cover_photo)
        return AlbumSummary(
            folder_name=folder_name,
            name=album.display_name,
            photographer=album.photographer,
            created_at=album.created_at,
            cover_url=thumbnail_url(self.asset_base_url, folder_name, cover),
            photo_count=len(album.photos),
        )

    async def list_albums(self) -> List[AlbumSummary]:
        """List published albums, newest first.

        Albums whose metadata cannot be fetched or decoded are logged and
        left out. A missing albums.json means there are no albums.

        Raises:
            SchemaError: If albums.json is malformed
            httpx.HTTPError: If albums.json cannot be fetched for another reason
        """
        async with self._client() as client:
            try:
                manifest = await self._get_json(client, self.manifest_url())
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 404:
                    logger.info("No albums.json at %s", self.manifest_url())
                    return []
                raise
            except ValueError as e:
                raise SchemaError(f"Invalid JSON in albums.json: {e}") from e

            folder_names = decode_global_manifest(manifest)
            results = await asyncio.gather(
                *(self._fetch_summary(client, name) for name in folder_names)
            )

        albums = [album for album in results if album is not None]
        albums.sort(key=lambda album: album.created_at, reverse=True)
        return albums

    async def load_album(self, folder_name: str) -> AlbumView:
        """Load one album for the album page.

        Raises:
            AlbumLoadError: If the metadata is unreachable, malformed or empty
        """
        async with self._client() as client:
            try:
                album = await self._fetch_album(client, folder_name)
            except (httpx.HTTPError, GalleryError) as e:
                logger.error("Error loading album data for %s: %s", folder_name, e)
                raise AlbumLoadError(f"Could not load album data: {e}") from e

        if not album.photos:
            raise AlbumLoadError(f"Album {folder_name} has no photos")
        return AlbumView(
            album=album,
            photos=[photo_urls(self.asset_base_url, folder_name, photo) for photo in album.photos],
        )
