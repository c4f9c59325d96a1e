"""
Per-playlist shuffle queues

A shuffle queue holds the ids still to be drawn for one playlist. Queues
are kept per playlist id in a plain dict and replaced, never mutated.
"""

import random
from typing import Any, Mapping, Sequence

from ..models import Playlist


ShuffleQueueMap = dict[str, tuple[str, ...]]


def _item_ids(playlist: Playlist | None) -> tuple[str, ...]:
    return tuple(item.id for item in playlist.items) if playlist else ()


def build_shuffle_queue(playlist: Playlist | None, exclude_id: str | None = None) -> tuple[str, ...]:
    """
    Fresh queue with every item of the playlist except exclude_id

    A single-item playlist keeps its only item even when it is excluded.
    """
    ids = _item_ids(playlist)
    if len(ids) <= 1:
        return ids
    filtered = tuple(video_id for video_id in ids if video_id != exclude_id)
    return filtered or ids


def sanitize_shuffle_queue(
    queue: Sequence[str] | None,
    playlist: Playlist | None,
    exclude_id: str | None,
) -> tuple[str, ...]:
    """Drop ids no longer in the playlist (and exclude_id); rebuild if nothing is left"""
    ids = _item_ids(playlist)
    if not ids:
        return ()
    allowed = set(ids)
    filtered = tuple(video_id for video_id in (queue or ()) if video_id in allowed and video_id != exclude_id)
    if filtered:
        return filtered
    return build_shuffle_queue(playlist, exclude_id)


def draw_from_shuffle_queue(
    queue: Sequence[str] | None,
    playlist: Playlist | None,
    exclude_id: str | None,
    rng: random.Random | None = None,
) -> tuple[str | None, tuple[str, ...]]:
    """
    Draw a random id from the queue

    Returns:
        (next_id, remaining_queue). next_id is None for an empty playlist.
        An exhausted queue is rebuilt excluding the id just drawn.
    """
    candidates = sanitize_shuffle_queue(queue, playlist, exclude_id)
    if not candidates:
        return None, ()
    chooser = rng or random
    index = chooser.randrange(len(candidates))
    next_id = candidates[index]
    remaining = candidates[:index] + candidates[index + 1:]
    if not remaining:
        remaining = build_shuffle_queue(playlist, next_id)
    return next_id, remaining


def parse_persisted_shuffle_queue(value: Any) -> ShuffleQueueMap:
    """Read a queue map from the local state file, dropping malformed entries"""
    if not isinstance(value, Mapping):
        return {}
    result: ShuffleQueueMap = {}
    for playlist_id, ids in value.items():
        if isinstance(ids, (list, tuple)):
            result[playlist_id] = tuple(video_id for video_id in ids if isinstance(video_id, str))
    return result


def rebuild_shuffle_queues(
    queue_map: Mapping[str, Sequence[str]],
    playlists: Sequence[Playlist],
    active_playlist_id: str,
    current_video_id: str | None,
) -> ShuffleQueueMap:
    """Sanitize the queue of every playlist; the current video is excluded only for the active one"""
    rebuilt: ShuffleQueueMap = {}
    for playlist in playlists:
        exclude_id = current_video_id if playlist.id == active_playlist_id else None
        rebuilt[playlist.id] = sanitize_shuffle_queue(queue_map.get(playlist.id), playlist, exclude_id)
    return rebuilt


def with_queue_for_playlist(
    queue_map: Mapping[str, Sequence[str]],
    playlist_id: str,
    queue: Sequence[str],
) -> ShuffleQueueMap:
    updated = {key: tuple(value) for key, value in queue_map.items()}
    updated[playlist_id] = tuple(queue)
    return updated


def reset_queue_for_playlist(queue_map: Mapping[str, Sequence[str]], playlist_id: str) -> ShuffleQueueMap:
    return with_queue_for_playlist(queue_map, playlist_id, ())


def remove_queue_for_playlist(queue_map: Mapping[str, Sequence[str]], playlist_id: str) -> ShuffleQueueMap:
    if playlist_id not in queue_map:
        return dict(queue_map)
    return {key: tuple(value) for key, value in queue_map.items() if key != playlist_id}
