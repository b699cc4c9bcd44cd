"""
HTML rendering of directory listings.
"""

import os
from dataclasses import dataclass
from typing import List, Optional, Tuple
from urllib.parse import quote

from fastapi.templating import Jinja2Templates

from .classify import DEFAULT_MEDIA_TABLE, MediaTable

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates')
templates = Jinja2Templates(directory=TEMPLATES_DIR)


@dataclass(frozen=True)
class Link:
    href: str
    label: str
    thumb: Optional[str] = None


@dataclass(frozen=True)
class Section:
    heading: str
    thumbnails: bool
    links: Tuple[Link, ...]


def display_text(text) -> str:
    """Lossy rendering of a name that may not be valid UTF-8."""
    return os.fsencode(text).decode('utf-8', 'replace')


def relative_url(root, entry) -> str:
    """URL path of an entry below the served root, '/'-terminated for directories."""
    relative = os.path.relpath(entry.path, root).replace(os.sep, '/')
    if entry.is_dir:
        relative += '/'
    # Quote the raw bytes so undecodable names still link to the file.
    return quote(os.fsencode(relative))


def entry_label(entry) -> str:
    name = display_text(entry.name)
    return name + '/' if entry.is_dir else name


def build_section(root, group, table: MediaTable = DEFAULT_MEDIA_TABLE) -> Section:
    thumbnails = table.has_thumbnail(group.key)
    links = []
    for entry in group.entries:
        relative = relative_url(root, entry)
        links.append(Link(
            href=f'/by-type/{relative}',
            label=entry_label(entry),
            thumb=f'/thumbnail/{relative}' if thumbnails else None,
        ))
    return Section(heading=display_text(group.key.heading), thumbnails=thumbnails, links=tuple(links))


def build_sections(root, groups, table: MediaTable = DEFAULT_MEDIA_TABLE) -> List[Section]:
    return [build_section(root, group, table) for group in groups]


def render_by_type(root, directory, groups, table: MediaTable = DEFAULT_MEDIA_TABLE) -> str:
    """Render the grouped listing page for ``directory``."""
    return templates.get_template('by_type.html').render(
        directory=display_text(directory),
        sections=build_sections(root, groups, table),
    )


def render_flat(root, directory, entries) -> str:
    """Render the name-ordered listing page for ``directory``."""
    links = [Link(href=f'/get/{relative_url(root, entry)}', label=entry_label(entry)) for entry in entries]
    return templates.get_template('get.html').render(directory=display_text(directory), links=links)
