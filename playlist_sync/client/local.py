"""
Local persistence of the player state

The state file is a small JSON document written atomically (temp file +
os.replace) so a crash never leaves a half-written file behind:

    {
      "version": 1,
      "state": {
        "playlists": [...], "activePlaylistId": "...",
        "loopMode": "all", "isShuffle": false,
        "shuffleQueue": {"<playlist id>": ["<video id>", ...]},
        "pinnedVideoIds": [...], "pinnedOrder": [...]
      }
    }

Session data (user id, sync flags) and playback position are not persisted.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable

from ..core.exceptions import InvalidShape
from ..core.logger import get_logger
from ..models import PinnedSongs, UserPlaylistData
from ..player.store import PlayerState, PlayerStore
from ..playlists.shuffle import parse_persisted_shuffle_queue


logger = get_logger(__name__)


STATE_FILE_VERSION = 1

PERSISTED_FIELDS = (
    "playlists",
    "active_playlist_id",
    "loop_mode",
    "is_shuffle",
    "shuffle_queue",
    "pinned_video_ids",
    "pinned_order",
)


def serialize_state(state: PlayerState) -> dict[str, Any]:
    snapshot = UserPlaylistData(
        playlists=state.playlists,
        active_playlist_id=state.active_playlist_id,
        loop_mode=state.loop_mode,
        is_shuffle=state.is_shuffle,
    ).to_dict()
    pinned = PinnedSongs(pinned_video_ids=state.pinned_video_ids, pinned_order=state.pinned_order)
    return {
        "version": STATE_FILE_VERSION,
        "state": {
            **snapshot,
            "shuffleQueue": {key: list(value) for key, value in state.shuffle_queue.items()},
            **pinned.to_dict(),
        },
    }


class LocalStateStore:
    """JSON file backing a PlayerStore across restarts"""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.hydrated = asyncio.Event()
        self._unsubscribe: Callable[[], None] | None = None

    def load(self) -> dict[str, Any] | None:
        """
        Read the raw state document

        Returns:
            The "state" object, or None if the file is missing or unreadable
        """
        if not self.path.exists():
            return None
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return None

        if not isinstance(document, dict) or not isinstance(document.get("state"), dict):
            logger.warning(f"Ignoring state file with unexpected layout: {self.path}")
            return None
        if document.get("version") != STATE_FILE_VERSION:
            logger.warning(f"State file version {document.get('version')!r} not supported, starting fresh")
            return None
        return document["state"]

    def hydrate(self, store: PlayerStore) -> bool:
        """
        Restore persisted state into the store and signal `hydrated`

        Returns:
            True if state was restored; False when starting from defaults
        """
        try:
            raw = self.load()
            if raw is None:
                return False
            try:
                snapshot = UserPlaylistData.from_dict(raw)
                pinned = PinnedSongs.from_dict(raw) if "pinnedOrder" in raw else None
            except InvalidShape as e:
                logger.warning(f"State file is malformed ({e.message}), starting from defaults")
                return False

            store.restore(snapshot, pinned, parse_persisted_shuffle_queue(raw.get("shuffleQueue")))
            logger.debug(f"Restored {len(snapshot.playlists)} playlists from {self.path}")
            return True
        finally:
            self.hydrated.set()

    def save(self, state: PlayerState) -> None:
        """
        Write the state file atomically

        Raises:
            OSError: If the directory cannot be created or the write fails
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".state_", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(serialize_state(state), f, indent=2, ensure_ascii=False)
            os.replace(temp_path, self.path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def persist(self, state: PlayerState, previous: PlayerState) -> None:
        """Store observer: rewrite the file when a persisted field changed"""
        if all(getattr(state, name) == getattr(previous, name) for name in PERSISTED_FIELDS):
            return
        self.save(state)

    def attach(self, store: PlayerStore) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = store.subscribe(self.persist)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
