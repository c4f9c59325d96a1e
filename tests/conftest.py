"""Test configuration and fixtures"""

import tempfile
from pathlib import Path

import pytest

from playlist_sync.core.exceptions import TransportError
from playlist_sync.models import PinnedSongs, Playlist, PlaylistItem, UserPlaylistData
from playlist_sync.sync.hashing import content_hash


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def make_snapshot():
    """Factory building a snapshot from {playlist_id: (name, [item ids])}"""
    def factory(playlists=None, active_playlist_id=None, loop_mode="all", is_shuffle=False):
        playlists = playlists or {}
        built = tuple(
            Playlist(
                id=playlist_id,
                name=name,
                items=tuple(PlaylistItem(id=item_id, title=f"Song {item_id}") for item_id in item_ids),
            )
            for playlist_id, (name, item_ids) in playlists.items()
        )
        if active_playlist_id is None:
            active_playlist_id = built[0].id if built else ""
        return UserPlaylistData(
            playlists=built,
            active_playlist_id=active_playlist_id,
            loop_mode=loop_mode,
            is_shuffle=is_shuffle,
        )
    return factory


@pytest.fixture
def sample_wire_data():
    """Sample snapshot in wire format"""
    return {
        "playlists": [
            {
                "id": "playlist-user-1-a",
                "name": "Road Trip",
                "items": [
                    {"id": "vid-1", "title": "First Song"},
                    {"id": "vid-2"},
                ],
            },
            {
                "id": "playlist-user-1-b",
                "name": "Focus",
                "items": [],
            },
        ],
        "activePlaylistId": "playlist-user-1-a",
        "loopMode": "all",
        "isShuffle": False,
    }


class FakeEngine:
    """Playback engine recording calls"""

    def __init__(self):
        self.calls = []

    def load_by_id(self, video_id):
        self.calls.append(("load", video_id))

    def play(self):
        self.calls.append(("play",))

    def pause(self):
        self.calls.append(("pause",))


class FakeRemote:
    """In-memory remote store with the RemotePlaylistStore interface"""

    def __init__(self, snapshot=None, pinned=None):
        self.snapshot = snapshot
        self.pinned = pinned or PinnedSongs()
        self.fail = False
        self.pushed = []
        self.pinned_pushes = []

    async def fetch_playlists(self):
        if self.fail:
            raise TransportError("offline")
        if self.snapshot is None or not self.snapshot.playlists:
            return None, None
        return self.snapshot, content_hash(self.snapshot)

    async def push_playlists(self, data):
        if self.fail:
            raise TransportError("offline", status_code=503)
        self.pushed.append(data)
        self.snapshot = data
        return data

    async def fetch_pinned_songs(self):
        if self.fail:
            raise TransportError("offline")
        return self.pinned

    async def push_pinned_songs(self, pinned):
        if self.fail:
            raise TransportError("offline")
        self.pinned_pushes.append(pinned)
        self.pinned = pinned
        return pinned


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def fake_remote():
    return FakeRemote()
