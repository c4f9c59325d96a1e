"""Test the player state container"""

import random

import pytest

from playlist_sync.core.constants import (
    DEFAULT_INITIAL_VIDEO_ID,
    FAVORITES_PLAYLIST_ID,
    MAX_PLAYLIST_COUNT,
)
from playlist_sync.core.exceptions import FavoritesGuardError
from playlist_sync.models import PinnedSongs, Playlist, PlaylistItem, UserPlaylistData
from playlist_sync.player import PlaybackEngine, PlayerState, PlayerStore


@pytest.fixture
def store(make_snapshot, fake_engine):
    """Store holding two playlists: A (x, y, z) active, B (w)"""
    snapshot = make_snapshot({"playlist-a": ("A", ["x", "y", "z"]), "playlist-b": ("B", ["w"])})
    state = PlayerState(playlists=snapshot.playlists, active_playlist_id="playlist-a")
    return PlayerStore(engine=fake_engine, state=state, rng=random.Random(3))


def item_ids(store, playlist_id):
    return [item.id for item in store.snapshot().find_playlist(playlist_id).items]


class TestPlayerState:
    """Test the initial state and observers"""

    def test_defaults(self):
        """Test a fresh store starts from the seed playlists"""
        store = PlayerStore()
        state = store.state

        assert len(state.playlists) == 3
        assert state.active_playlist_id == "playlist-default-1"
        assert state.playlists[0].items[0].id == DEFAULT_INITIAL_VIDEO_ID
        assert state.loop_mode == "all"
        assert not store.is_authenticated

    def test_fake_engine_matches_protocol(self, fake_engine):
        """Test the engine protocol is structural"""
        assert isinstance(fake_engine, PlaybackEngine)

    def test_observers(self, store):
        """Test observers see new and old state and can unsubscribe"""
        seen = []
        unsubscribe = store.subscribe(lambda new, old: seen.append((new.loop_mode, old.loop_mode)))

        store.toggle_loop()
        unsubscribe()
        store.toggle_loop()

        assert seen == [("one", "all")]

    def test_no_notification_without_change(self, store):
        """Test no-op operations do not notify"""
        seen = []
        store.subscribe(lambda new, old: seen.append(new))
        store.reorder_playlists(0, 5)
        store.rename_playlist("playlist-a", "A")
        assert seen == []

    def test_failing_observer_does_not_block_others(self, store):
        """Test an observer error is logged and the rest still run"""
        seen = []

        def broken(new, old):
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.subscribe(lambda new, old: seen.append(new.is_shuffle))
        store.toggle_shuffle()

        assert seen == [True]


class TestPlaylistOperations:
    """Test playlist editing"""

    def test_add_to_playlist(self, store):
        """Test appending and duplicate rejection"""
        assert store.add_to_playlist(PlaylistItem(id="new", title="New"))
        assert item_ids(store, "playlist-a") == ["x", "y", "z", "new"]
        assert store.state.current_index == 0

        assert not store.add_to_playlist(PlaylistItem(id="x"))
        assert not store.add_to_playlist(PlaylistItem(id="q"), "missing")
        assert store.add_to_playlist(PlaylistItem(id="x"), "playlist-b")

    def test_add_to_favorites_is_rejected(self, store):
        """Test Favorites cannot receive items directly"""
        with pytest.raises(FavoritesGuardError):
            store.add_to_playlist(PlaylistItem(id="q"), FAVORITES_PLAYLIST_ID)

    def test_remove_from_playlist(self, store):
        """Test removal by index, ignoring out of range"""
        store.remove_from_playlist(1)
        assert item_ids(store, "playlist-a") == ["x", "z"]
        store.remove_from_playlist(9)
        assert item_ids(store, "playlist-a") == ["x", "z"]

    def test_reorder_keeps_current_item(self, store):
        """Test current_index follows the playing item"""
        store.play("y")
        assert store.state.current_index == 1

        store.reorder_playlist(0, 2)
        assert item_ids(store, "playlist-a") == ["y", "z", "x"]
        assert store.state.current_index == 0

        store.reorder_playlist(0, 2)
        assert store.state.current_index == 2

    def test_reorder_playlists(self, store):
        """Test playlist order changes"""
        store.reorder_playlists(1, 0)
        assert [p.id for p in store.state.playlists] == ["playlist-b", "playlist-a"]

    def test_move_item_between_playlists(self, store):
        """Test moving an item to another playlist"""
        assert store.move_item_between_playlists(0, "playlist-a", "playlist-b")
        assert item_ids(store, "playlist-a") == ["y", "z"]
        assert item_ids(store, "playlist-b") == ["w", "x"]

        store.add_to_playlist(PlaylistItem(id="w"), "playlist-a")
        assert not store.move_item_between_playlists(2, "playlist-a", "playlist-b")
        assert not store.move_item_between_playlists(0, "playlist-a", FAVORITES_PLAYLIST_ID)

    def test_clear_playlist(self, store):
        """Test clearing the active playlist resets the position"""
        store.play("x")
        store.clear_playlist()

        assert item_ids(store, "playlist-a") == []
        assert store.state.current_index is None
        assert store.state.current_video_id is None
        with pytest.raises(FavoritesGuardError):
            store.clear_playlist(FAVORITES_PLAYLIST_ID)

    def test_create_playlist(self, store):
        """Test new playlists get the next default name and become active"""
        playlist_id = store.create_playlist()

        assert store.state.active_playlist_id == playlist_id
        assert store.state.playlists[-1].name == "Playlist 1"
        assert store.state.current_index is None

    def test_create_playlist_at_limit(self, store):
        """Test creation stops at the playlist bound"""
        while len(store.state.playlists) < MAX_PLAYLIST_COUNT:
            assert store.create_playlist() is not None

        assert store.state.can_create_playlist is False
        assert store.create_playlist() is None
        assert len(store.state.playlists) == MAX_PLAYLIST_COUNT

    def test_duplicate_playlist(self, store):
        """Test copies get a copy name and the same items"""
        duplicate_id = store.duplicate_playlist("playlist-a")

        duplicate = store.snapshot().find_playlist(duplicate_id)
        assert duplicate.name == "A Copy"
        assert [item.id for item in duplicate.items] == ["x", "y", "z"]
        assert store.state.active_playlist_id == duplicate_id
        assert store.duplicate_playlist("missing") is None

    def test_duplicate_favorites(self, store):
        """Test Favorites can be duplicated into a real playlist"""
        store.toggle_pinned("z")
        duplicate_id = store.duplicate_playlist(FAVORITES_PLAYLIST_ID)

        duplicate = store.snapshot().find_playlist(duplicate_id)
        assert duplicate.name == "Favorites Copy"
        assert [item.id for item in duplicate.items] == ["z"]

    def test_remove_active_playlist(self, store):
        """Test the next playlist becomes active"""
        assert store.remove_playlist("playlist-a")
        assert store.state.active_playlist_id == "playlist-b"
        assert store.state.is_playing is False

        assert store.remove_playlist("playlist-b")
        assert store.state.active_playlist_id == ""
        assert not store.remove_playlist("playlist-b")

    def test_remove_last_active_playlist(self, store):
        """Test removing the last playlist activates the new last one"""
        store.set_active_playlist("playlist-b")
        store.remove_playlist("playlist-b")
        assert store.state.active_playlist_id == "playlist-a"

    def test_remove_inactive_keeps_position(self, store):
        """Test playback is untouched when another playlist is removed"""
        store.play("y")
        store.remove_playlist("playlist-b")
        assert store.state.current_video_id == "y"
        assert store.state.is_playing is True

    def test_rename_and_guards(self, store):
        """Test renaming and the Favorites guards"""
        store.rename_playlist("playlist-a", "Renamed")
        assert store.state.playlists[0].name == "Renamed"

        with pytest.raises(FavoritesGuardError):
            store.rename_playlist(FAVORITES_PLAYLIST_ID, "Nope")
        with pytest.raises(FavoritesGuardError):
            store.remove_playlist(FAVORITES_PLAYLIST_ID)

    def test_set_active_playlist_plays_first_item(self, store, fake_engine):
        """Test switching playlists starts playback"""
        store.set_active_playlist("playlist-b")

        assert store.state.active_playlist_id == "playlist-b"
        assert store.state.current_video_id == "w"
        assert store.state.is_playing is True
        assert fake_engine.calls == [("load", "w"), ("play",)]

    def test_sync_bounds(self, make_snapshot):
        """Test the bound is re-applied to oversized state"""
        playlists = {f"p-{index}": (f"L{index}", []) for index in range(MAX_PLAYLIST_COUNT + 3)}
        snapshot = make_snapshot(playlists, active_playlist_id="p-12")
        store = PlayerStore(state=PlayerState(playlists=snapshot.playlists, active_playlist_id="p-12"))

        store.sync_bounds()

        assert len(store.state.playlists) == MAX_PLAYLIST_COUNT
        assert store.state.active_playlist_id == "p-0"
        assert store.state.can_create_playlist is False


class TestPlayback:
    """Test playback navigation"""

    def test_play_pause_resume(self, store, fake_engine):
        """Test engine calls and playing flag"""
        store.play("z")
        assert store.state.current_index == 2
        store.pause()
        assert store.state.is_playing is False
        store.resume()
        assert store.state.is_playing is True
        store.mark_stopped()
        assert store.state.is_playing is False
        assert fake_engine.calls == [("load", "z"), ("play",), ("pause",), ("play",)]

    def test_play_next_wraps_in_loop_all(self, store):
        """Test sequential playback wraps to the start"""
        store.play("z")
        store.play_next()
        assert store.state.current_video_id == "x"
        assert store.state.current_index == 0

    def test_play_next_stops_in_loop_one(self, store):
        """Test sequential playback stops at the end"""
        store.toggle_loop()
        store.play("z")
        store.play_next()
        assert store.state.is_playing is False
        assert store.state.current_video_id == "z"

    def test_play_previous(self, store):
        """Test stepping back and wrapping"""
        store.play("y")
        store.play_previous()
        assert store.state.current_video_id == "x"
        store.play_previous()
        assert store.state.current_video_id == "z"

    def test_play_next_empty_playlist(self, store):
        """Test an empty active playlist stops playback"""
        store.clear_playlist()
        store.play_next()
        assert store.state.is_playing is False

    def test_shuffle_visits_every_item(self, store):
        """Test shuffled playback does not repeat before the queue runs out"""
        store.play("x")
        store.toggle_shuffle()
        assert set(store.state.shuffle_queue["playlist-a"]) == {"y", "z"}

        played = set()
        for _ in range(2):
            store.play_next()
            played.add(store.state.current_video_id)

        assert played == {"y", "z"}

    def test_toggle_shuffle_off_clears_queue(self, store):
        """Test disabling shuffle drops the queues"""
        store.toggle_shuffle()
        store.toggle_shuffle()
        assert store.state.is_shuffle is False
        assert store.state.shuffle_queue == {}


class TestPinnedSongs:
    """Test pinning and the Favorites playlist"""

    def test_toggle_pinned(self, store):
        """Test pin and unpin"""
        store.toggle_pinned("y")
        store.toggle_pinned("w")
        assert store.is_pinned("y")
        assert store.state.pinned_order == ("y", "w")

        store.toggle_pinned("y")
        assert not store.is_pinned("y")
        assert store.pinned_songs() == PinnedSongs.from_order(["w"])

    def test_favorites_playlist(self, store):
        """Test Favorites is derived and listed first"""
        store.toggle_pinned("w")
        store.toggle_pinned("x")

        playlists = store.playlists_with_favorites()
        assert playlists[0].id == FAVORITES_PLAYLIST_ID
        assert [item.id for item in playlists[0].items] == ["w", "x"]
        assert all(p.id != FAVORITES_PLAYLIST_ID for p in store.snapshot().playlists)

    def test_play_favorites(self, store):
        """Test Favorites can be the active playlist"""
        store.toggle_pinned("z")
        store.set_active_playlist(FAVORITES_PLAYLIST_ID)

        assert store.active_playlist().id == FAVORITES_PLAYLIST_ID
        assert store.state.current_video_id == "z"

    def test_favorites_edits_pinned_order(self, store):
        """Test removing and reordering Favorites items edit the pinned order"""
        for video_id in ("x", "y", "hidden", "w"):
            store.toggle_pinned(video_id)

        store.reorder_playlist(0, 2, FAVORITES_PLAYLIST_ID)
        assert store.state.pinned_order == ("y", "w", "x", "hidden")

        store.remove_from_playlist(0, FAVORITES_PLAYLIST_ID)
        assert not store.is_pinned("y")

    def test_reorder_pinned(self, store):
        """Test reordering and ignoring out of range"""
        store.set_pinned(PinnedSongs.from_order(["a", "b", "c"]))
        store.reorder_pinned(2, 0)
        assert store.state.pinned_order == ("c", "a", "b")
        store.reorder_pinned(0, 7)
        assert store.state.pinned_order == ("c", "a", "b")


class TestSession:
    """Test login, sync application and restore"""

    def test_set_user_reconciles_ids(self):
        """Test login moves seed playlist ids into the user namespace"""
        store = PlayerStore()
        store.set_user("user-1")

        assert store.is_authenticated
        assert all(p.id.startswith("playlist-user-1-") for p in store.state.playlists)
        assert store.state.active_playlist_id == store.state.playlists[0].id
        assert store.state.is_data_synced is False

    def test_logout_clears_session(self, store):
        """Test logout keeps playlists and clears flags"""
        store.set_user("user-1")
        store.mark_synced()
        store.set_user(None)

        assert store.user_id is None
        assert store.state.is_data_synced is False
        assert len(store.state.playlists) == 2

    def test_load_user_data(self, store, make_snapshot):
        """Test remote data replaces playlists and positions playback"""
        store.set_user("u")
        data = make_snapshot(
            {"playlist-u-r": ("Remote", ["m", "n"])}, loop_mode="one", is_shuffle=True
        )
        store.load_user_data(data)

        state = store.state
        assert [p.id for p in state.playlists] == ["playlist-u-r"]
        assert state.current_video_id == "m"
        assert state.current_index == 0
        assert state.loop_mode == "one"
        assert state.shuffle_queue == {"playlist-u-r": ("n",)}
        assert state.is_data_synced is True

    def test_load_user_data_strips_favorites(self, store):
        """Test a leaked Favorites entry is dropped"""
        store.set_user("u")
        data = UserPlaylistData(
            playlists=(Playlist(id=FAVORITES_PLAYLIST_ID, name="Favorites"), Playlist(id="playlist-u-r", name="R")),
            active_playlist_id="playlist-u-r",
        )
        store.load_user_data(data)
        assert [p.id for p in store.state.playlists] == ["playlist-u-r"]

    def test_prepare_push_reconciles(self, make_snapshot):
        """Test ids are reconciled before a push"""
        snapshot = make_snapshot({"playlist-1": ("Legacy", ["x"]), "playlist-u-b": ("B", [])})
        store = PlayerStore(state=PlayerState(
            playlists=snapshot.playlists,
            active_playlist_id="playlist-1",
            user_id="u",
        ))
        pushed = store.prepare_push()

        assert all(p.id.startswith("playlist-u-") for p in pushed.playlists)
        assert pushed == store.snapshot()

    def test_apply_server_data(self, store, make_snapshot):
        """Test the echoed snapshot is adopted"""
        data = make_snapshot({"playlist-s": ("Server", ["k"])})
        store.apply_server_data(data)

        assert store.snapshot() == data
        assert store.state.is_data_synced is True

    def test_restore(self, make_snapshot):
        """Test hydration keeps session flags"""
        store = PlayerStore()
        data = make_snapshot({"p-1": ("One", ["a", "b"])}, is_shuffle=True)
        store.restore(data, pinned=PinnedSongs.from_order(["b"]), shuffle_queue={"p-1": ("b", "gone")})

        assert store.snapshot() == data
        assert store.state.pinned_order == ("b",)
        assert store.state.shuffle_queue == {"p-1": ("b",)}
        assert store.state.is_data_synced is False
