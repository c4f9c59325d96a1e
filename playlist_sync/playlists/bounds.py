"""
Playlist count bound and active-pointer repair
"""

from dataclasses import dataclass
from typing import Sequence

from ..core.constants import FAVORITES_PLAYLIST_ID, MAX_PLAYLIST_COUNT
from ..core.logger import get_logger
from ..models import Playlist


logger = get_logger(__name__)


@dataclass(frozen=True)
class BoundsResult:
    playlists: tuple[Playlist, ...]
    active_playlist_id: str
    can_create: bool


def can_create_playlist(playlists: Sequence[Playlist]) -> bool:
    return len(playlists) < MAX_PLAYLIST_COUNT


def enforce_bounds(playlists: Sequence[Playlist], active_playlist_id: str) -> BoundsResult:
    """
    Clamp playlists to MAX_PLAYLIST_COUNT and keep the active pointer valid

    Earliest playlists survive; the tail is dropped. The Favorites sentinel
    is virtual and passes through untouched.
    """
    trimmed = tuple(playlists[:MAX_PLAYLIST_COUNT])
    if len(trimmed) < len(playlists):
        dropped = [playlist.id for playlist in playlists[MAX_PLAYLIST_COUNT:]]
        logger.warning(
            f"Playlist limit of {MAX_PLAYLIST_COUNT} exceeded, dropped {len(dropped)} playlist(s): {dropped}"
        )

    next_active = active_playlist_id
    if next_active != FAVORITES_PLAYLIST_ID:
        if not trimmed:
            next_active = ""
        elif not any(playlist.id == next_active for playlist in trimmed):
            next_active = trimmed[0].id

    return BoundsResult(
        playlists=trimmed,
        active_playlist_id=next_active,
        can_create=can_create_playlist(trimmed),
    )
