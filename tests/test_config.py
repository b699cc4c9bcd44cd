from pathlib import Path

from typebrowse.__main__ import main, parse_args
from typebrowse.classify import CategoryKey, MediaType
from typebrowse.config import Settings


def test_defaults():
    settings = Settings.from_env({})

    assert settings.root == Path(".")
    assert settings.host == "0.0.0.0"
    assert settings.port == 8000
    assert settings.convert_binary == "convert"
    assert settings.ffmpeg_binary == "ffmpeg"
    assert settings.verify_thumbnails is False
    assert settings.media_table.media_type(CategoryKey.for_extension("mp4")) is MediaType.VIDEO


def test_from_env():
    settings = Settings.from_env({
        "TYPEBROWSE_ROOT": "/srv/media",
        "TYPEBROWSE_PORT": "9000",
        "TYPEBROWSE_CONVERT": "magick",
        "TYPEBROWSE_CONVERSION_TIMEOUT": "2.5",
        "TYPEBROWSE_VERIFY_THUMBNAILS": "yes",
        "TYPEBROWSE_VIDEO_EXTENSIONS": "ogv, .MP4",
    })

    assert settings.root == Path("/srv/media")
    assert settings.port == 9000
    assert settings.convert_binary == "magick"
    assert settings.conversion_timeout == 2.5
    assert settings.verify_thumbnails is True
    table = settings.media_table
    assert table.media_type(CategoryKey.for_extension("ogv")) is MediaType.VIDEO
    assert table.media_type(CategoryKey.for_extension("mp4")) is MediaType.VIDEO
    assert table.media_type(CategoryKey.for_extension("mkv")) is MediaType.OTHER
    assert table.media_type(CategoryKey.for_extension("png")) is MediaType.IMAGE


def test_empty_video_list_disables_video():
    settings = Settings.from_env({"TYPEBROWSE_VIDEO_EXTENSIONS": ""})

    assert settings.media_table.media_type(CategoryKey.for_extension("mp4")) is MediaType.OTHER


def test_parse_args_overrides_settings():
    args = parse_args(["/tmp/x", "--port", "8123", "--host", "127.0.0.1"], Settings.from_env({}))

    assert args.path == Path("/tmp/x")
    assert args.port == 8123
    assert args.host == "127.0.0.1"
    assert args.verbose is False


def test_main_fails_for_missing_path(tmp_path: Path):
    assert main([str(tmp_path / "missing")]) == 1
