"""
Server configuration, read from TYPEBROWSE_* environment variables.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .classify import DEFAULT_IMAGE_EXTENSIONS, DEFAULT_VIDEO_EXTENSIONS, MediaTable
from .convert import DEFAULT_TIMEOUT

ENV_PREFIX = 'TYPEBROWSE_'

TRUE_VALUES = ('1', 'true', 'yes', 'on')


def _split(value: str):
    return [part for part in value.split(',') if part.strip()]


@dataclass
class Settings:
    root: Path = field(default_factory=lambda: Path('.'))
    host: str = '0.0.0.0'
    port: int = 8000
    convert_binary: str = 'convert'
    ffmpeg_binary: str = 'ffmpeg'
    conversion_timeout: float = DEFAULT_TIMEOUT
    # Buffer thumbnails and check the converter's exit status before responding
    verify_thumbnails: bool = False
    media_table: MediaTable = field(default_factory=MediaTable)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        env = os.environ if environ is None else environ

        def get(name, default=None):
            return env.get(ENV_PREFIX + name, default)

        image = get('IMAGE_EXTENSIONS')
        video = get('VIDEO_EXTENSIONS')

        return cls(
            root=Path(get('ROOT', '.')),
            host=get('HOST', '0.0.0.0'),
            port=int(get('PORT', '8000')),
            convert_binary=get('CONVERT', 'convert'),
            ffmpeg_binary=get('FFMPEG', 'ffmpeg'),
            conversion_timeout=float(get('CONVERSION_TIMEOUT', str(DEFAULT_TIMEOUT))),
            verify_thumbnails=get('VERIFY_THUMBNAILS', '').lower() in TRUE_VALUES,
            media_table=MediaTable.from_lists(
                _split(image) if image is not None else DEFAULT_IMAGE_EXTENSIONS,
                _split(video) if video is not None else DEFAULT_VIDEO_EXTENSIONS,
            ),
        )
