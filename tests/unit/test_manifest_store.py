"""Test module for manifest store functionality."""

import json
from datetime import datetime, timezone

import pytest

from photo_gallery_publisher.manifest.manifest_store import decode_photo, parse_date
from photo_gallery_publisher.models import (
    Album,
    AlbumNotFoundError,
    AlbumState,
    ManifestNotFoundError,
    NotFoundError,
    Photo,
    SchemaError,
)
from photo_gallery_publisher.utils import file_utils


def make_album(folder_name="spring_formal_2024", count=2):
    photos = [Photo.for_index(folder_name, i, "jpg") for i in range(1, count + 1)]
    return Album(
        folder_name=folder_name,
        display_name="Spring Formal 2024",
        photographer="Jane Doe",
        created_at=datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc),
        cover_photo=photos[-1].web_name,
        photos=photos,
    )


def write_metadata(albums_dir, folder_name, data):
    album = albums_dir / folder_name
    album.mkdir(exist_ok=True)
    path = album / "data.json"
    path.write_text(data if isinstance(data, str) else json.dumps(data))
    return path


VALID_METADATA = {
    "name": "Rush Week",
    "photographer": "Sam",
    "date": "2024-09-01T18:30:00Z",
    "coverPhoto": "rush_week_2.webp",
    "photos": [
        {"webp": "rush_week_1.webp", "ext": "jpg"},
        {"webp": "rush_week_2.webp", "ext": "png"},
    ],
}


def test_write_and_load_album_metadata(store, albums_dir):
    """Test an album survives a write and load."""
    album = make_album()
    (albums_dir / album.folder_name).mkdir()

    store.write_album_metadata(album)

    assert store.load_album_metadata(album.folder_name) == album


def test_written_metadata_uses_structured_photos(store, albums_dir):
    """Test the on-disk format of data.json."""
    album = make_album(count=1)
    (albums_dir / album.folder_name).mkdir()

    store.write_album_metadata(album)

    data = json.loads((albums_dir / album.folder_name / "data.json").read_text())
    assert data == {
        "name": "Spring Formal 2024",
        "photographer": "Jane Doe",
        "date": "2024-03-01T12:00:00Z",
        "coverPhoto": "spring_formal_2024_1.webp",
        "photos": [{"webp": "spring_formal_2024_1.webp", "ext": "jpg"}],
    }


def test_write_album_metadata_into_other_directory(store, albums_dir):
    """Metadata can be written before the directory gets its final name."""
    album = make_album()
    (albums_dir / "Raw Upload").mkdir()

    store.write_album_metadata(album, album_dir=str(albums_dir / "Raw Upload"))

    assert (albums_dir / "Raw Upload" / "data.json").is_file()


def test_write_album_metadata_missing_directory(store):
    with pytest.raises(AlbumNotFoundError):
        store.write_album_metadata(make_album())


def test_write_album_metadata_failure_keeps_previous(store, albums_dir, monkeypatch):
    """A failed write leaves the previous metadata readable."""
    path = write_metadata(albums_dir, "rush_week", VALID_METADATA)
    before = path.read_text()

    def broken_dump(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(file_utils.json, "dump", broken_dump)
    with pytest.raises(OSError):
        store.write_album_metadata(make_album(folder_name="rush_week"))

    assert path.read_text() == before
    assert sorted(p.name for p in (albums_dir / "rush_week").iterdir()) == ["data.json"]


def test_load_album_metadata(store, albums_dir):
    write_metadata(albums_dir, "rush_week", VALID_METADATA)

    album = store.load_album_metadata("rush_week")

    assert album.folder_name == "rush_week"
    assert album.display_name == "Rush Week"
    assert album.photographer == "Sam"
    assert album.created_at == datetime(2024, 9, 1, 18, 30, tzinfo=timezone.utc)
    assert album.cover_photo == "rush_week_2.webp"
    assert [p.full_name for p in album.photos] == ["rush_week_1.jpg", "rush_week_2.png"]


def test_load_album_metadata_raw_album(store, albums_dir):
    """A raw album has no metadata."""
    (albums_dir / "raw").mkdir()

    with pytest.raises(AlbumNotFoundError) as exc_info:
        store.load_album_metadata("raw")
    assert isinstance(exc_info.value, NotFoundError)


@pytest.mark.parametrize(
    "change",
    [
        {"photos": []},
        {"photos": None},
        {"coverPhoto": "missing.webp"},
        {"date": "yesterday"},
        {"date": "0001-01-01T00:00:00+01:00"},
        {"date": "9999-12-31T23:59:59-01:00"},
        {"date": None},
        {"name": None},
        {"photographer": 7},
        {"photos": [42]},
        {"photos": [{"webp": "rush_week_2.webp"}]},
        {"photos": [{"ext": "jpg"}]},
    ],
)
def test_load_album_metadata_schema_errors(store, albums_dir, change):
    """Missing or malformed fields are schema errors."""
    data = dict(VALID_METADATA)
    data.update(change)
    write_metadata(albums_dir, "rush_week", data)

    with pytest.raises(SchemaError):
        store.load_album_metadata("rush_week")


def test_load_album_metadata_invalid_json(store, albums_dir):
    write_metadata(albums_dir, "broken", "{not json")

    with pytest.raises(SchemaError):
        store.load_album_metadata("broken")


def test_legacy_and_structured_photos_decode_equally():
    """Both photo record shapes decode to the same Photo."""
    legacy = decode_photo("spring_1.jpg")
    structured = decode_photo({"webp": "spring_1.jpg", "ext": "jpg"})

    assert legacy == structured == Photo("spring_1", "spring_1.jpg", "jpg")
    assert legacy.full_name == "spring_1.jpg"


def test_load_album_metadata_legacy_photos(store, albums_dir):
    data = dict(VALID_METADATA)
    data["photos"] = ["rush_week_1.JPG", "rush_week_2.webp"]
    write_metadata(albums_dir, "rush_week", data)

    album = store.load_album_metadata("rush_week")

    assert album.photos == [
        Photo("rush_week_1", "rush_week_1.JPG", "jpg"),
        Photo("rush_week_2", "rush_week_2.webp", "webp"),
    ]


def test_parse_date_offsets_are_normalized_to_utc():
    assert parse_date("2024-01-01T02:00:00+02:00") == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert parse_date("2024-01-01T00:00:00").tzinfo == timezone.utc


def test_load_global_manifest_missing(store):
    with pytest.raises(ManifestNotFoundError):
        store.load_global_manifest()


def test_write_and_load_global_manifest(store, site_dir):
    """The manifest is a sorted, de-duplicated full overwrite."""
    (site_dir / "albums.json").write_text('{"albums": ["stale"]}')

    written = store.write_global_manifest(["b_album", "a_album", "b_album"])

    assert written == ["a_album", "b_album"]
    assert json.loads((site_dir / "albums.json").read_text()) == {"albums": ["a_album", "b_album"]}
    assert store.load_global_manifest() == {"a_album", "b_album"}


@pytest.mark.parametrize("content", ["[]", '{"albums": "x"}', '{"albums": [1]}', "nope"])
def test_load_global_manifest_malformed(store, site_dir, content):
    (site_dir / "albums.json").write_text(content)

    with pytest.raises(SchemaError):
        store.load_global_manifest()


def test_album_state(store, albums_dir):
    (albums_dir / "raw").mkdir()
    write_metadata(albums_dir, "rush_week", VALID_METADATA)

    assert store.album_state("raw") == AlbumState.RAW
    assert store.album_state("rush_week") == AlbumState.PUBLISHED
    with pytest.raises(AlbumNotFoundError):
        store.album_state("nope")


def test_list_album_dirs(store, albums_dir):
    """Hidden entries and plain files are not albums."""
    (albums_dir / "b").mkdir()
    (albums_dir / "a").mkdir()
    (albums_dir / ".git").mkdir()
    (albums_dir / "stray.jpg").write_bytes(b"x")

    assert store.list_album_dirs() == ["a", "b"]
