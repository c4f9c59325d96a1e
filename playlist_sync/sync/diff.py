"""
Human-readable differences between a local and a remote snapshot

The diff only feeds the conflict prompt: it tells the user what they would
gain or lose by picking one side. It is never applied back to a snapshot.

Playlists are matched by id:
    - only in local   -> REMOVED (the remote copy does not have it)
    - only in remote  -> ADDED
    - in both         -> MODIFIED when the name differs or any item differs

Items inside a shared playlist are matched by id the same way, and an item
present on both sides at a different index is REORDERED.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

from ..core.constants import UNTITLED_LABEL
from ..core.logger import log_performance
from ..models import Playlist, PlaylistItem, UserPlaylistData, coerce_snapshot


class ChangeType(Enum):
    """Kind of change, seen from local towards remote"""
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    REORDERED = "reordered"


@dataclass(frozen=True)
class ItemDiff:
    item_id: str
    title: str
    change_type: ChangeType
    local_index: int | None = None
    remote_index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "itemId": self.item_id,
            "title": self.title,
            "changeType": self.change_type.value,
        }
        if self.local_index is not None:
            data["localIndex"] = self.local_index
        if self.remote_index is not None:
            data["cloudIndex"] = self.remote_index
        return data


@dataclass(frozen=True)
class PlaylistDiff:
    playlist_id: str
    playlist_name: str
    change_type: ChangeType
    local_name: str | None = None
    remote_name: str | None = None
    item_diffs: tuple[ItemDiff, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "playlistId": self.playlist_id,
            "playlistName": self.playlist_name,
            "changeType": self.change_type.value,
        }
        if self.local_name is not None:
            data["localName"] = self.local_name
        if self.remote_name is not None:
            data["cloudName"] = self.remote_name
        if self.change_type is ChangeType.MODIFIED:
            data["itemDiffs"] = [item_diff.to_dict() for item_diff in self.item_diffs]
        return data


@dataclass(frozen=True)
class DiffSummary:
    playlists_added: int = 0
    playlists_removed: int = 0
    playlists_modified: int = 0
    songs_added: int = 0
    songs_removed: int = 0
    songs_reordered: int = 0

    @property
    def has_changes(self) -> bool:
        return any((
            self.playlists_added, self.playlists_removed, self.playlists_modified,
            self.songs_added, self.songs_removed, self.songs_reordered,
        ))

    def to_dict(self) -> dict[str, int]:
        return {
            "playlistsAdded": self.playlists_added,
            "playlistsRemoved": self.playlists_removed,
            "playlistsModified": self.playlists_modified,
            "songsAdded": self.songs_added,
            "songsRemoved": self.songs_removed,
            "songsReordered": self.songs_reordered,
        }


@dataclass(frozen=True)
class DataDiff:
    summary: DiffSummary = field(default_factory=DiffSummary)
    playlist_diffs: tuple[PlaylistDiff, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "playlistDiffs": [playlist_diff.to_dict() for playlist_diff in self.playlist_diffs],
        }


def _display_title(item: PlaylistItem) -> str:
    return item.title or UNTITLED_LABEL


def calculate_item_diffs(
    local_items: Sequence[PlaylistItem],
    remote_items: Sequence[PlaylistItem],
) -> list[ItemDiff]:
    local_map = {item.id: (item, index) for index, item in enumerate(local_items)}
    remote_map = {item.id: (item, index) for index, item in enumerate(remote_items)}
    diffs: list[ItemDiff] = []

    for item_id, (local_item, local_index) in local_map.items():
        remote_entry = remote_map.get(item_id)
        if remote_entry is None:
            diffs.append(ItemDiff(
                item_id=item_id,
                title=_display_title(local_item),
                change_type=ChangeType.REMOVED,
                local_index=local_index,
            ))
        elif remote_entry[1] != local_index:
            diffs.append(ItemDiff(
                item_id=item_id,
                title=_display_title(local_item),
                change_type=ChangeType.REORDERED,
                local_index=local_index,
                remote_index=remote_entry[1],
            ))

    for item_id, (remote_item, remote_index) in remote_map.items():
        if item_id not in local_map:
            diffs.append(ItemDiff(
                item_id=item_id,
                title=_display_title(remote_item),
                change_type=ChangeType.ADDED,
                remote_index=remote_index,
            ))

    return diffs


def calculate_playlist_diffs(
    local_playlists: Sequence[Playlist],
    remote_playlists: Sequence[Playlist],
) -> list[PlaylistDiff]:
    remote_map = {playlist.id: playlist for playlist in remote_playlists}
    local_ids = {playlist.id for playlist in local_playlists}
    diffs: list[PlaylistDiff] = []

    for local_playlist in local_playlists:
        remote_playlist = remote_map.get(local_playlist.id)
        if remote_playlist is None:
            diffs.append(PlaylistDiff(
                playlist_id=local_playlist.id,
                playlist_name=local_playlist.name,
                change_type=ChangeType.REMOVED,
                local_name=local_playlist.name,
            ))
            continue

        item_diffs = calculate_item_diffs(local_playlist.items, remote_playlist.items)
        name_changed = local_playlist.name != remote_playlist.name
        if item_diffs or name_changed:
            diffs.append(PlaylistDiff(
                playlist_id=local_playlist.id,
                playlist_name=remote_playlist.name if name_changed else local_playlist.name,
                change_type=ChangeType.MODIFIED,
                local_name=local_playlist.name,
                remote_name=remote_playlist.name,
                item_diffs=tuple(item_diffs),
            ))

    for remote_playlist in remote_playlists:
        if remote_playlist.id not in local_ids:
            diffs.append(PlaylistDiff(
                playlist_id=remote_playlist.id,
                playlist_name=remote_playlist.name,
                change_type=ChangeType.ADDED,
                remote_name=remote_playlist.name,
            ))

    return diffs


def summarize(playlist_diffs: Sequence[PlaylistDiff]) -> DiffSummary:
    playlist_counts = {change_type: 0 for change_type in ChangeType}
    item_counts = {change_type: 0 for change_type in ChangeType}

    for playlist_diff in playlist_diffs:
        playlist_counts[playlist_diff.change_type] += 1
        for item_diff in playlist_diff.item_diffs:
            item_counts[item_diff.change_type] += 1

    return DiffSummary(
        playlists_added=playlist_counts[ChangeType.ADDED],
        playlists_removed=playlist_counts[ChangeType.REMOVED],
        playlists_modified=playlist_counts[ChangeType.MODIFIED],
        songs_added=item_counts[ChangeType.ADDED],
        songs_removed=item_counts[ChangeType.REMOVED],
        songs_reordered=item_counts[ChangeType.REORDERED],
    )


@log_performance
def calculate_diff(
    local: UserPlaylistData | dict | None,
    remote: UserPlaylistData | dict | None,
) -> DataDiff:
    """
    Diff two snapshots for display

    Args:
        local: Local snapshot (model or wire dict); None counts as no playlists
        remote: Remote snapshot; None counts as no playlists

    Raises:
        InvalidShape: If a provided snapshot is malformed
    """
    local_playlists = coerce_snapshot(local).playlists if local is not None else ()
    remote_playlists = coerce_snapshot(remote).playlists if remote is not None else ()

    playlist_diffs = calculate_playlist_diffs(local_playlists, remote_playlists)
    return DataDiff(summary=summarize(playlist_diffs), playlist_diffs=tuple(playlist_diffs))
