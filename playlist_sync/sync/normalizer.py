"""
Snapshot normalization for comparison and hashing

normalize() canonicalizes a snapshot so that two snapshots differing only
in playlist/item order or in a missing-vs-empty title compare equal:

- playlists sorted ascending by id
- items of each playlist sorted ascending by id
- every title a string (None becomes "")

The result is used for comparison only. Persisted and displayed data keep
insertion order.
"""

from typing import Any, Mapping

from ..core.constants import DEFAULT_LOOP_MODE
from ..core.exceptions import InvalidShape
from ..models import Playlist, PlaylistItem, UserPlaylistData


# Same shape as UserPlaylistData; sorted by id with no None titles
NormalizedUserPlaylistData = UserPlaylistData


def _normalize_item(item: Any, path: str) -> PlaylistItem:
    if isinstance(item, PlaylistItem):
        return PlaylistItem(id=item.id, title=item.title or "")
    if not isinstance(item, Mapping) or not isinstance(item.get("id"), str):
        raise InvalidShape(f"Invalid playlist item at {path}: expected an object with a string id",
                           details={"path": path})
    title = item.get("title")
    return PlaylistItem(id=item["id"], title=title if isinstance(title, str) else "")


def _normalize_playlist(playlist: Any, path: str) -> Playlist:
    if isinstance(playlist, Playlist):
        raw_items = playlist.items
        playlist_id, name = playlist.id, playlist.name
    else:
        if not isinstance(playlist, Mapping):
            raise InvalidShape(f"Invalid playlist at {path}: expected an object", details={"path": path})
        playlist_id, name = playlist.get("id"), playlist.get("name")
        if not isinstance(playlist_id, str) or not isinstance(name, str):
            raise InvalidShape(f"Invalid playlist at {path}: id and name must be strings",
                               details={"path": path})
        raw_items = playlist.get("items")
        if not isinstance(raw_items, (list, tuple)):
            raise InvalidShape(f"Invalid playlist at {path}: items must be a list",
                               details={"path": f"{path}.items"})

    items = [_normalize_item(item, f"{path}.items[{index}]") for index, item in enumerate(raw_items)]
    items.sort(key=lambda item: item.id)
    return Playlist(id=playlist_id, name=name, items=tuple(items))


def normalize(snapshot: UserPlaylistData | Mapping[str, Any]) -> NormalizedUserPlaylistData:
    """
    Canonicalize a snapshot for comparison

    Args:
        snapshot: UserPlaylistData or its wire dictionary

    Returns:
        Snapshot with playlists and items sorted by id and titles coerced to ""

    Raises:
        InvalidShape: If the snapshot, a playlist or an item is malformed.
                      Settings fields are not validated here; missing ones
                      take their defaults.
    """
    if isinstance(snapshot, UserPlaylistData):
        raw_playlists: Any = snapshot.playlists
        active_playlist_id = snapshot.active_playlist_id
        loop_mode = snapshot.loop_mode
        is_shuffle = snapshot.is_shuffle
    elif isinstance(snapshot, Mapping):
        raw_playlists = snapshot.get("playlists")
        active_playlist_id = snapshot.get("activePlaylistId") or ""
        loop_mode = snapshot.get("loopMode") or DEFAULT_LOOP_MODE
        is_shuffle = bool(snapshot.get("isShuffle"))
    else:
        raise InvalidShape("Invalid data: expected a playlist snapshot", details={"path": "$"})

    if not isinstance(raw_playlists, (list, tuple)):
        raise InvalidShape("Invalid data: playlists must be a list", details={"path": "playlists"})

    playlists = [
        _normalize_playlist(playlist, f"playlists[{index}]")
        for index, playlist in enumerate(raw_playlists)
    ]
    playlists.sort(key=lambda playlist: playlist.id)

    return UserPlaylistData(
        playlists=tuple(playlists),
        active_playlist_id=active_playlist_id,
        loop_mode=loop_mode,
        is_shuffle=is_shuffle,
    )
