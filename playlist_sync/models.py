"""
Data models for playlist-sync

This module defines the immutable value types exchanged between the local
player state, the sync engine and the remote store:

- PlaylistItem: one external media reference (video id + optional title)
- Playlist: a named, ordered collection of items
- UserPlaylistData: the snapshot, the unit of comparison, diffing and sync
- PinnedSongs: pinned video ids and their display order (feeds Favorites)

All models are frozen dataclasses. Edits produce new instances
(dataclasses.replace) instead of mutating in place, so a snapshot handed
to the sync engine can never change underneath it.

Wire format:
    Models serialize to the camelCase JSON used by the HTTP API and the
    local state file:

        {
            "playlists": [{"id": "...", "name": "...", "items": [{"id": "...", "title": "..."}]}],
            "activePlaylistId": "...",
            "loopMode": "all" | "one",
            "isShuffle": false
        }

    from_dict() validates the structure and raises InvalidShape on any
    mismatch; untrusted payloads never become model instances unchecked.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping

from .core.constants import (
    DEFAULT_ACTIVE_PLAYLIST_ID,
    DEFAULT_LOOP_MODE,
    LOOP_MODES,
)
from .core.exceptions import InvalidShape


@dataclass(frozen=True)
class PlaylistItem:
    """
    Single media reference inside a playlist

    Attributes:
        id: Opaque external media identifier, unique within its playlist
        title: Display title; None when the source did not provide one.
               Comparison treats None and "" as equal.
    """
    id: str
    title: str | None = None

    @classmethod
    def from_dict(cls, data: Any, path: str = "item") -> 'PlaylistItem':
        if not isinstance(data, Mapping):
            raise InvalidShape(f"{path} must be an object", details={"path": path})
        item_id = data.get("id")
        if not isinstance(item_id, str):
            raise InvalidShape(f"{path}.id must be a string", details={"path": f"{path}.id"})
        title = data.get("title")
        if title is not None and not isinstance(title, str):
            raise InvalidShape(f"{path}.title must be a string", details={"path": f"{path}.title"})
        return cls(id=item_id, title=title)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id}
        if self.title is not None:
            data["title"] = self.title
        return data


@dataclass(frozen=True)
class Playlist:
    """
    Named ordered collection of PlaylistItem

    Attributes:
        id: Globally unique id, namespaced per owner (see playlists.ids)
        name: User-visible name; not required to be unique
        items: Items in insertion/display order
    """
    id: str
    name: str
    items: tuple[PlaylistItem, ...] = ()

    @classmethod
    def from_dict(cls, data: Any, path: str = "playlist") -> 'Playlist':
        if not isinstance(data, Mapping):
            raise InvalidShape(f"{path} must be an object", details={"path": path})
        playlist_id = data.get("id")
        name = data.get("name")
        items = data.get("items")
        if not isinstance(playlist_id, str):
            raise InvalidShape(f"{path}.id must be a string", details={"path": f"{path}.id"})
        if not isinstance(name, str):
            raise InvalidShape(f"{path}.name must be a string", details={"path": f"{path}.name"})
        if not isinstance(items, (list, tuple)):
            raise InvalidShape(f"{path}.items must be a list", details={"path": f"{path}.items"})
        return cls(
            id=playlist_id,
            name=name,
            items=tuple(
                PlaylistItem.from_dict(item, f"{path}.items[{index}]")
                for index, item in enumerate(items)
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "items": [item.to_dict() for item in self.items],
        }

    def with_items(self, items: Iterable[PlaylistItem]) -> 'Playlist':
        return replace(self, items=tuple(items))

    def has_item(self, item_id: str) -> bool:
        return any(item.id == item_id for item in self.items)


@dataclass(frozen=True)
class UserPlaylistData:
    """
    Complete playlist state of one user (the snapshot)

    Attributes:
        playlists: Real playlists in display order (never contains Favorites)
        active_playlist_id: Favorites sentinel, "" (no playlists) or the id of
                            a playlist in `playlists`
        loop_mode: "all" wraps at the end of a playlist, "one" stops
        is_shuffle: Shuffle playback enabled
    """
    playlists: tuple[Playlist, ...] = ()
    active_playlist_id: str = ""
    loop_mode: str = DEFAULT_LOOP_MODE
    is_shuffle: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> 'UserPlaylistData':
        """
        Build a snapshot from its wire dictionary

        Raises:
            InvalidShape: If any field is missing or has the wrong type
        """
        if not isinstance(data, Mapping):
            raise InvalidShape("Snapshot must be an object", details={"path": "$"})

        playlists = data.get("playlists")
        if not isinstance(playlists, (list, tuple)):
            raise InvalidShape("playlists must be a list", details={"path": "playlists"})

        active_playlist_id = data.get("activePlaylistId")
        if not isinstance(active_playlist_id, str):
            raise InvalidShape("activePlaylistId must be a string", details={"path": "activePlaylistId"})

        loop_mode = data.get("loopMode")
        if loop_mode not in LOOP_MODES:
            raise InvalidShape(
                f"loopMode must be one of {', '.join(LOOP_MODES)}",
                details={"path": "loopMode", "value": loop_mode}
            )

        is_shuffle = data.get("isShuffle")
        if not isinstance(is_shuffle, bool):
            raise InvalidShape("isShuffle must be a boolean", details={"path": "isShuffle"})

        return cls(
            playlists=tuple(
                Playlist.from_dict(playlist, f"playlists[{index}]")
                for index, playlist in enumerate(playlists)
            ),
            active_playlist_id=active_playlist_id,
            loop_mode=loop_mode,
            is_shuffle=is_shuffle,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "playlists": [playlist.to_dict() for playlist in self.playlists],
            "activePlaylistId": self.active_playlist_id,
            "loopMode": self.loop_mode,
            "isShuffle": self.is_shuffle,
        }

    @classmethod
    def default(cls) -> 'UserPlaylistData':
        """Seed state for a fresh local install: three playlists, one sample item"""
        from .playlists.helpers import create_default_playlists

        return cls(
            playlists=create_default_playlists(),
            active_playlist_id=DEFAULT_ACTIVE_PLAYLIST_ID,
            loop_mode=DEFAULT_LOOP_MODE,
            is_shuffle=False,
        )

    @property
    def total_items(self) -> int:
        return sum(len(playlist.items) for playlist in self.playlists)

    def find_playlist(self, playlist_id: str) -> Playlist | None:
        for playlist in self.playlists:
            if playlist.id == playlist_id:
                return playlist
        return None


@dataclass(frozen=True)
class PinnedSongs:
    """
    Pinned video ids and their order

    pinned_order holds no duplicates and contains exactly the ids in
    pinned_video_ids; from_dict() repairs payloads where the two disagree.
    """
    pinned_video_ids: frozenset[str] = field(default_factory=frozenset)
    pinned_order: tuple[str, ...] = ()

    @classmethod
    def from_order(cls, order: Iterable[str]) -> 'PinnedSongs':
        unique = tuple(dict.fromkeys(order))
        return cls(pinned_video_ids=frozenset(unique), pinned_order=unique)

    @classmethod
    def from_dict(cls, data: Any) -> 'PinnedSongs':
        if not isinstance(data, Mapping):
            raise InvalidShape("Pinned songs payload must be an object", details={"path": "$"})
        ids = data.get("pinnedVideoIds")
        order = data.get("pinnedOrder")
        for key, value in (("pinnedVideoIds", ids), ("pinnedOrder", order)):
            if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
                raise InvalidShape(f"{key} must be a list of strings", details={"path": key})
        id_set = set(ids)
        ordered = [video_id for video_id in dict.fromkeys(order) if video_id in id_set]
        # Ids missing from the order keep their payload position at the end
        ordered.extend(video_id for video_id in dict.fromkeys(ids) if video_id not in ordered)
        return cls.from_order(ordered)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pinnedVideoIds": list(self.pinned_order),
            "pinnedOrder": list(self.pinned_order),
        }


def is_valid_user_playlist_data(data: Any) -> bool:
    """
    Check whether an untrusted value has the snapshot wire shape

    Accepts the wire dictionary or a UserPlaylistData instance.
    """
    if isinstance(data, UserPlaylistData):
        return True
    try:
        UserPlaylistData.from_dict(data)
    except InvalidShape:
        return False
    return True


def coerce_snapshot(value: Any) -> UserPlaylistData:
    """Return value as a UserPlaylistData, parsing wire dictionaries"""
    if isinstance(value, UserPlaylistData):
        return value
    return UserPlaylistData.from_dict(value)
