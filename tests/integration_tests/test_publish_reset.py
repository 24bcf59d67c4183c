"""Integration tests for the publish/reset round trip with real images."""

import random

import pytest
from PIL import Image, features

from photo_gallery_publisher.models import AlbumState
from photo_gallery_publisher.transform.album_transformer import AlbumTransformer
from photo_gallery_publisher.transform.thumbnails import PillowThumbnailer

pytestmark = pytest.mark.skipif(not features.check("webp"), reason="Pillow lacks webp")


@pytest.fixture
def raw_album(albums_dir):
    """Create a raw album with three real images of different formats."""
    album = albums_dir / "Homecoming Upload"
    album.mkdir()
    Image.new("RGB", (120, 80), color="red").save(album / "IMG_0001.JPG", "JPEG")
    Image.new("RGB", (64, 64), color="green").save(album / "IMG_0002.jpeg", "JPEG")
    Image.new("RGBA", (40, 100), color=(0, 0, 255, 128)).save(album / "scan.png")
    return album


def test_publish_and_reset_round_trip(store, albums_dir, raw_album, file_contents):
    """Reset restores byte-identical originals under generated names."""
    originals = sorted(file_contents(raw_album).values())
    transformer = AlbumTransformer(store, thumbnailer=PillowThumbnailer(), rng=random.Random(1))

    album = transformer.publish(str(raw_album), "Homecoming 2024", "Alex")

    published = albums_dir / "homecoming_2024"
    assert store.album_state("homecoming_2024") == AlbumState.PUBLISHED
    assert transformer.check_consistency("homecoming_2024") == AlbumState.PUBLISHED
    assert store.load_global_manifest() == {"homecoming_2024"}
    for photo in album.photos:
        with Image.open(published / "full" / photo.full_name) as full, Image.open(
            published / "low" / photo.web_name
        ) as low:
            assert low.format == "WEBP"
            assert low.size == (full.size[0] // 2, full.size[1] // 2)

    restored = transformer.reset("homecoming_2024")

    assert restored == 3
    assert store.album_state("homecoming_2024") == AlbumState.RAW
    assert sorted(file_contents(published).values()) == originals
    assert sorted(file_contents(published)) == sorted(p.full_name for p in album.photos)
    assert store.load_global_manifest() == set()
