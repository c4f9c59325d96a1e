"""
First-sync merge of device data into server data

Used once per device, when a user who edited playlists anonymously signs
in. Nothing on the server is lost: local playlists are folded into the
server copy by name, and the rest are stored under the user's own ids.
"""

from dataclasses import replace

from ..core.constants import MAX_PLAYLIST_COUNT
from ..core.logger import get_logger
from ..models import Playlist, UserPlaylistData
from ..playlists.ids import generate_playlist_id


logger = get_logger(__name__)


def merge_snapshots(
    existing_remote: UserPlaylistData | None,
    incoming_local: UserPlaylistData,
    owner_id: str,
) -> UserPlaylistData:
    """
    Merge local playlists into the server snapshot

    Args:
        existing_remote: What the server holds, or None
        incoming_local: What the device holds
        owner_id: User the merged snapshot belongs to

    Returns:
        The merged snapshot. A missing or empty server copy goes through the
        same rules, so every stored playlist carries an owner id:
            - playlists with the same name are merged, server items first,
              then local items whose id the server copy lacks
            - other local playlists are appended under a fresh id while
              fewer than MAX_PLAYLIST_COUNT playlists exist
            - loop mode and shuffle come from the server, or from the device
              when the server has no playlists
    """
    has_remote = existing_remote is not None and bool(existing_remote.playlists)
    settings_source = existing_remote if has_remote else incoming_local
    merged: list[Playlist] = list(existing_remote.playlists) if has_remote else []
    # Local id -> id it ended up under in the merged snapshot
    id_map: dict[str, str] = {}
    dropped: list[str] = []

    for local_playlist in incoming_local.playlists:
        match_index = next(
            (index for index, playlist in enumerate(merged) if playlist.name == local_playlist.name),
            None,
        )

        if match_index is not None:
            target = merged[match_index]
            present = {item.id for item in target.items}
            new_items = tuple(item for item in local_playlist.items if item.id not in present)
            if new_items:
                merged[match_index] = target.with_items((*target.items, *new_items))
            logger.info(
                f"Merged local playlist '{local_playlist.name}' into server playlist {target.id} "
                f"({len(new_items)} new items)"
            )
            id_map[local_playlist.id] = target.id
            continue

        if len(merged) >= MAX_PLAYLIST_COUNT:
            dropped.append(local_playlist.name)
            continue

        taken = {playlist.id for playlist in merged}
        new_id = generate_playlist_id(owner_id)
        while new_id in taken:
            new_id = generate_playlist_id(owner_id)
        merged.append(replace(local_playlist, id=new_id))
        id_map[local_playlist.id] = new_id

    if dropped:
        logger.warning(
            f"Playlist limit of {MAX_PLAYLIST_COUNT} reached during merge, "
            f"skipped {len(dropped)} local playlist(s): {dropped}"
        )

    if len(merged) > MAX_PLAYLIST_COUNT:
        removed = [playlist.id for playlist in merged[MAX_PLAYLIST_COUNT:]]
        merged = merged[:MAX_PLAYLIST_COUNT]
        logger.warning(f"Merged snapshot exceeded the playlist limit, removed {removed}")

    surviving = {playlist.id for playlist in merged}
    candidates = (
        existing_remote.active_playlist_id if has_remote else "",
        id_map.get(incoming_local.active_playlist_id, ""),
    )
    active_playlist_id = next(
        (candidate for candidate in candidates if candidate and candidate in surviving),
        merged[0].id if merged else "",
    )

    return UserPlaylistData(
        playlists=tuple(merged),
        active_playlist_id=active_playlist_id,
        loop_mode=settings_source.loop_mode,
        is_shuffle=settings_source.is_shuffle,
    )
