"""
Directory reading and grouping by category.
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Tuple

from .classify import CategoryKey, category_of

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectoryEntry:
    path: str
    name: str
    is_dir: bool


@dataclass(frozen=True)
class Group:
    key: CategoryKey
    entries: Tuple[DirectoryEntry, ...]


def scan_directory(path) -> List[DirectoryEntry]:
    """Read the immediate children of a directory.

    Entries that cannot be stat'ed (broken symlinks, permission errors,
    files removed during the scan) are skipped. Failing to open the
    directory itself raises OSError.
    """
    entries = []
    with os.scandir(path) as it:
        for entry in it:
            try:
                entry.stat()
                is_dir = entry.is_dir()
            except OSError as e:
                logger.debug(f"Skipping unreadable entry {entry.path}: {e}")
                continue
            entries.append(DirectoryEntry(path=entry.path, name=entry.name, is_dir=is_dir))
    return entries


def sort_entries(entries) -> List[DirectoryEntry]:
    """Sort case-insensitively by name, keeping scan order for ties."""
    return sorted(entries, key=lambda entry: entry.name.casefold())


def list_directory(path) -> List[DirectoryEntry]:
    """Flat listing ordered by name."""
    return sort_entries(scan_directory(path))


def group_entries(entries) -> List[Group]:
    buckets: Dict[CategoryKey, List[DirectoryEntry]] = {}
    for entry in entries:
        key = category_of(entry.name, entry.is_dir)
        buckets.setdefault(key, []).append(entry)

    return [Group(key=key, entries=tuple(sort_entries(buckets[key]))) for key in sorted(buckets)]


def group_directory(path) -> List[Group]:
    """Read a directory and partition its entries into ordered groups."""
    return group_entries(scan_directory(path))
