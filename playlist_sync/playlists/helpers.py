"""
Playlist naming and seed helpers
"""

import re
import time
from typing import Iterable, Sequence

from ..core.constants import (
    DEFAULT_INITIAL_VIDEO_ID,
    DEFAULT_INITIAL_VIDEO_TITLE,
    DEFAULT_PLAYLIST_IDS,
    MAX_PLAYLIST_COUNT,
)
from ..models import Playlist, PlaylistItem


PLAYLIST_NAME_PATTERN = re.compile(r"^Playlist (\d+)$", re.IGNORECASE)

# Numbered copy suffixes tried before falling back to a timestamp
MAX_COPY_SUFFIX = 100


def build_default_playlist_name(position: int) -> str:
    return f"Playlist {position}"


def is_sequential_default_name(name: str, position: int) -> bool:
    """True when name is exactly 'Playlist {position}' (1-based, case-sensitive)"""
    return name == build_default_playlist_name(position)


def create_default_playlists() -> tuple[Playlist, ...]:
    """Three seed playlists; only the first holds the sample item"""
    sample = PlaylistItem(id=DEFAULT_INITIAL_VIDEO_ID, title=DEFAULT_INITIAL_VIDEO_TITLE)
    return tuple(
        Playlist(
            id=playlist_id,
            name=build_default_playlist_name(position),
            items=(sample,) if position == 1 else (),
        )
        for position, playlist_id in enumerate(DEFAULT_PLAYLIST_IDS, start=1)
    )


def next_playlist_name(playlists: Sequence[Playlist]) -> str:
    """
    Name for a newly created playlist

    Returns the lowest unused 'Playlist N' for N in 1..MAX_PLAYLIST_COUNT,
    otherwise one past the highest number in use.
    """
    used_numbers: set[int] = set()
    highest = 0

    for playlist in playlists:
        match = PLAYLIST_NAME_PATTERN.match(playlist.name)
        if match:
            value = int(match.group(1))
            used_numbers.add(value)
            highest = max(highest, value)

    for index in range(1, MAX_PLAYLIST_COUNT + 1):
        if index not in used_numbers:
            return build_default_playlist_name(index)

    return build_default_playlist_name(highest + 1)


def duplicate_playlist_name(base_name: str, playlists: Sequence[Playlist]) -> str:
    """
    Name for a copy of a playlist

    Tries '{base} Copy', then '{base} Copy 2' .. '{base} Copy 99', then a
    millisecond timestamp suffix.
    """
    base_copy_name = f"{base_name} Copy"
    existing_names = {playlist.name for playlist in playlists}
    if base_copy_name not in existing_names:
        return base_copy_name

    for suffix in range(2, MAX_COPY_SUFFIX):
        candidate = f"{base_copy_name} {suffix}"
        if candidate not in existing_names:
            return candidate

    return f"{base_copy_name} {int(time.time() * 1000)}"


def clone_items(items: Iterable[PlaylistItem]) -> tuple[PlaylistItem, ...]:
    return tuple(PlaylistItem(id=item.id, title=item.title) for item in items)


def move_element(sequence: Sequence, from_index: int, to_index: int) -> list:
    """Return a list with sequence[from_index] moved to to_index"""
    result = list(sequence)
    element = result.pop(from_index)
    result.insert(to_index, element)
    return result
