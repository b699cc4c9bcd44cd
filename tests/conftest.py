import stat
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure the repo root is on sys.path for absolute imports.
REPO_ROOT = Path(__file__).resolve().parents[1]
repo_root_str = str(REPO_ROOT)
if repo_root_str not in sys.path:
    sys.path.insert(0, repo_root_str)

from typebrowse.app import create_app  # noqa: E402
from typebrowse.config import Settings  # noqa: E402


def write_script(path: Path, body: str) -> Path:
    path.write_text("#!/bin/sh\n" + body + "\n", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "bin"
    directory.mkdir()
    return directory


@pytest.fixture
def echo_convert(bin_dir: Path) -> Path:
    """Stand-in for ImageMagick that prints its own arguments."""
    return write_script(bin_dir / "convert", 'printf "convert %s\\n" "$*"')


@pytest.fixture
def echo_ffmpeg(bin_dir: Path) -> Path:
    return write_script(bin_dir / "ffmpeg", 'printf "ffmpeg %s\\n" "$*"')


@pytest.fixture
def failing_convert(bin_dir: Path) -> Path:
    return write_script(bin_dir / "failing-convert", 'echo "convert: no decode delegate" >&2\nexit 3')


@pytest.fixture
def media_root(tmp_path: Path) -> Path:
    root = tmp_path / "root"
    album = root / "album"
    album.mkdir(parents=True)
    (album / "photo.JPG").write_bytes(b"not really a jpeg")
    (album / "other.jpg").write_bytes(b"also not a jpeg")
    (album / "clip.mp4").write_bytes(b"not a video")
    (album / "notes.txt").write_text("hello", encoding="utf-8")
    (album / "README").write_text("readme", encoding="utf-8")
    (album / "nested").mkdir()
    (root / "top.txt").write_text("top level", encoding="utf-8")
    return root


@pytest.fixture
def make_client(media_root: Path, echo_convert: Path, echo_ffmpeg: Path):
    def _make(**overrides) -> TestClient:
        settings = Settings(
            root=overrides.pop("root", media_root),
            convert_binary=str(overrides.pop("convert_binary", echo_convert)),
            ffmpeg_binary=str(overrides.pop("ffmpeg_binary", echo_ffmpeg)),
            conversion_timeout=10.0,
            **overrides,
        )
        return TestClient(create_app(settings))

    return _make


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()
