"""Test configuration for pytest."""

import os
import sys
from pathlib import Path
from typing import Callable, Dict, Iterable

import pytest

# Add the project root directory to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from photo_gallery_publisher.manifest.manifest_store import ManifestStore  # noqa: E402
from photo_gallery_publisher.models import ToolInvocationError  # noqa: E402


class FakeThumbnailer:
    """Thumbnailer stand-in that writes a small marker file."""

    name = "fake"

    def __init__(self, fail_on: Iterable[str] = ()):
        self.fail_on = set(fail_on)
        self.calls = []

    def check_available(self) -> None:
        pass

    def generate(self, source: str, destination: str) -> None:
        self.calls.append((source, destination))
        if os.path.basename(source) in self.fail_on:
            raise ToolInvocationError(f"failed to scale {source}")
        with open(source, "rb") as src, open(destination, "wb") as dst:
            dst.write(b"WEBP" + src.read())


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """A site root with an empty albums directory."""
    (tmp_path / "public" / "albums").mkdir(parents=True)
    return tmp_path / "public"


@pytest.fixture
def albums_dir(site_dir: Path) -> Path:
    return site_dir / "albums"


@pytest.fixture
def store(site_dir: Path) -> ManifestStore:
    return ManifestStore(str(site_dir / "albums"), str(site_dir / "albums.json"))


@pytest.fixture
def fake_thumbnailer() -> FakeThumbnailer:
    return FakeThumbnailer()


@pytest.fixture
def thumbnailer_factory() -> Callable[..., FakeThumbnailer]:
    return FakeThumbnailer


@pytest.fixture
def make_raw_album(albums_dir: Path) -> Callable[[str, Iterable[str]], Path]:
    """Create a raw album whose files contain their own names."""

    def _make(name: str, filenames: Iterable[str]) -> Path:
        album = albums_dir / name
        album.mkdir()
        for filename in filenames:
            (album / filename).write_bytes(f"pixels of {filename}".encode())
        return album

    return _make


@pytest.fixture
def file_contents() -> Callable[[Path], Dict[str, bytes]]:
    """Map filename to bytes for the files directly inside a directory."""

    def _contents(directory: Path) -> Dict[str, bytes]:
        return {p.name: p.read_bytes() for p in directory.iterdir() if p.is_file()}

    return _contents
