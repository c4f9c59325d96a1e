"""
Content hash used as a cheap change-detection oracle

The hash is the base64 encoding of the normalized snapshot serialized as
compact JSON with a fixed key order. It is stable across playlist/item
reordering and None-vs-"" titles, and is not meant for security.
"""

import base64
import json
from typing import Any

from ..models import UserPlaylistData
from .normalizer import normalize


def _hash_payload(snapshot: UserPlaylistData | dict) -> dict[str, Any]:
    normalized = normalize(snapshot)
    return {
        "playlists": [
            {
                "id": playlist.id,
                "name": playlist.name,
                "items": [{"id": item.id, "title": item.title} for item in playlist.items],
            }
            for playlist in normalized.playlists
        ],
        "activePlaylistId": normalized.active_playlist_id,
        "loopMode": normalized.loop_mode,
        "isShuffle": normalized.is_shuffle,
    }


def content_hash(snapshot: UserPlaylistData | dict) -> str:
    """
    Compute the content hash of a snapshot

    Raises:
        InvalidShape: If the snapshot is malformed
    """
    encoded = json.dumps(_hash_payload(snapshot), separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(encoded.encode("utf-8")).decode("ascii")
