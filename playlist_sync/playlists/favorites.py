"""
Favorites virtual playlist

Favorites is never stored. It is derived on read from the pinned order and
the items of all real playlists, then shown in front of them. Operations
that would persist, rename or delete it are rejected with guard_not_favorites().
"""

from typing import Sequence

from ..core.constants import FAVORITES_PLAYLIST_ID, FAVORITES_PLAYLIST_NAME
from ..core.exceptions import FavoritesGuardError
from ..models import Playlist, PlaylistItem


def is_favorites(playlist_id: str | None) -> bool:
    return playlist_id == FAVORITES_PLAYLIST_ID


def guard_not_favorites(playlist_id: str, operation: str) -> None:
    """
    Reject a mutating operation aimed at the Favorites playlist

    Raises:
        FavoritesGuardError: If playlist_id is the Favorites sentinel
    """
    if is_favorites(playlist_id):
        raise FavoritesGuardError(
            f"Cannot {operation} the {FAVORITES_PLAYLIST_NAME} playlist",
            details={"playlist_id": playlist_id, "operation": operation}
        )


def derive_favorites_playlist(
    pinned_order: Sequence[str],
    playlists: Sequence[Playlist],
) -> Playlist:
    """
    Build the Favorites playlist from pinned order

    Each pinned id resolves to its first occurrence across playlists (in
    playlist order); pinned ids no longer present in any playlist are skipped.
    """
    video_map: dict[str, PlaylistItem] = {}
    for playlist in playlists:
        for item in playlist.items:
            video_map.setdefault(item.id, item)

    items = tuple(video_map[video_id] for video_id in pinned_order if video_id in video_map)
    return Playlist(id=FAVORITES_PLAYLIST_ID, name=FAVORITES_PLAYLIST_NAME, items=items)


def inject_favorites_playlist(
    playlists: Sequence[Playlist],
    favorites: Playlist,
) -> tuple[Playlist, ...]:
    return (favorites, *playlists)


def strip_favorites(playlists: Sequence[Playlist]) -> tuple[Playlist, ...]:
    """Remove any Favorites entry that leaked into a playlist sequence"""
    return tuple(playlist for playlist in playlists if not is_favorites(playlist.id))
