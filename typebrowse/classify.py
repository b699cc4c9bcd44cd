"""
Classification of filesystem entries into categories and media types.
"""

import enum
import os
from dataclasses import dataclass, field
from typing import ClassVar, FrozenSet, Iterable


DEFAULT_IMAGE_EXTENSIONS = frozenset({'png', 'jpg', 'jpeg', 'tif', 'tiff', 'gif', 'webp', 'bmp'})
# Deliberate table, not inferred from MIME data: only these extensions get
# video thumbnails. Replace it with TYPEBROWSE_VIDEO_EXTENSIONS.
DEFAULT_VIDEO_EXTENSIONS = frozenset({'mp4', 'm4v', 'mov', 'webm', 'mkv', 'avi'})


class Kind(enum.IntEnum):
    # Member values define the section order.
    DIRECTORY = 0
    EXTENSION = 1
    MISSING = 2


class MediaType(str, enum.Enum):
    IMAGE = 'image'
    VIDEO = 'video'
    OTHER = 'other'


@dataclass(frozen=True, order=True)
class CategoryKey:
    """Category used to group directory entries.

    Orders directories first, then extensions alphabetically, then
    extensionless files.
    """

    kind: Kind
    extension: str = ''

    DIRECTORY: ClassVar['CategoryKey']
    MISSING: ClassVar['CategoryKey']

    @classmethod
    def for_extension(cls, extension: str) -> 'CategoryKey':
        return cls(Kind.EXTENSION, extension.lower())

    @property
    def heading(self) -> str:
        """Section heading shown above the group."""
        if self.kind is Kind.DIRECTORY:
            return 'Directories'
        if self.kind is Kind.MISSING:
            return 'Extensionless'
        return f'.{self.extension} files'

    def __str__(self):
        if self.kind is Kind.EXTENSION:
            return f'.{self.extension}'
        return self.kind.name.lower()


CategoryKey.DIRECTORY = CategoryKey(Kind.DIRECTORY)
CategoryKey.MISSING = CategoryKey(Kind.MISSING)


def split_extension(name: str) -> str:
    """Return the extension of a file name, or '' if it has none.

    A leading dot (hidden files) or a trailing dot does not start an extension.
    """
    stem, dot, extension = name.rpartition('.')
    if not dot or not stem or not extension:
        return ''
    return extension


def category_of(name: str, is_dir: bool) -> CategoryKey:
    """Classify an entry by its name and directory flag."""
    if is_dir:
        return CategoryKey.DIRECTORY
    extension = split_extension(name)
    if extension:
        return CategoryKey.for_extension(extension)
    return CategoryKey.MISSING


def classify_path(path) -> CategoryKey:
    """Classify a path on disk."""
    path = os.fspath(path)
    return category_of(os.path.basename(path.rstrip(os.sep)), os.path.isdir(path))


def _normalize(extensions: Iterable[str]) -> FrozenSet[str]:
    return frozenset(ext.strip().lstrip('.').lower() for ext in extensions if ext.strip())


@dataclass(frozen=True)
class MediaTable:
    """Allow-lists deciding which extensions are images and which are videos."""

    image: FrozenSet[str] = field(default=DEFAULT_IMAGE_EXTENSIONS)
    video: FrozenSet[str] = field(default=DEFAULT_VIDEO_EXTENSIONS)

    @classmethod
    def from_lists(cls, image: Iterable[str], video: Iterable[str]) -> 'MediaTable':
        return cls(image=_normalize(image), video=_normalize(video))

    def media_type(self, key: CategoryKey) -> MediaType:
        if key.kind is not Kind.EXTENSION:
            return MediaType.OTHER
        if key.extension in self.image:
            return MediaType.IMAGE
        if key.extension in self.video:
            return MediaType.VIDEO
        return MediaType.OTHER

    def has_thumbnail(self, key: CategoryKey) -> bool:
        return self.media_type(key) in (MediaType.IMAGE, MediaType.VIDEO)


DEFAULT_MEDIA_TABLE = MediaTable()
