"""Test playlist rules: ids, bounds, naming, Favorites and shuffle queues"""

import random

import pytest

from playlist_sync.core.constants import FAVORITES_PLAYLIST_ID, MAX_PLAYLIST_COUNT
from playlist_sync.core.exceptions import FavoritesGuardError
from playlist_sync.models import Playlist, PlaylistItem
from playlist_sync.playlists import (
    can_create_playlist,
    clone_items,
    create_default_playlists,
    derive_favorites_playlist,
    duplicate_playlist_name,
    enforce_bounds,
    generate_playlist_id,
    guard_not_favorites,
    inject_favorites_playlist,
    is_sequential_default_name,
    next_playlist_name,
    reconcile,
)
from playlist_sync.playlists.shuffle import (
    build_shuffle_queue,
    draw_from_shuffle_queue,
    parse_persisted_shuffle_queue,
    rebuild_shuffle_queues,
    remove_queue_for_playlist,
    sanitize_shuffle_queue,
)


def playlist(playlist_id, name="List", item_ids=()):
    return Playlist(
        id=playlist_id,
        name=name,
        items=tuple(PlaylistItem(id=item_id, title=item_id.upper()) for item_id in item_ids),
    )


class TestPlaylistIds:
    """Test playlist id generation and reconciliation"""

    def test_generate_playlist_id(self):
        """Test owner namespacing"""
        assert generate_playlist_id("user-1").startswith("playlist-user-1-")
        anonymous = generate_playlist_id()
        assert anonymous.startswith("playlist-")
        assert generate_playlist_id() != anonymous

    def test_reconcile_keeps_valid_ids(self):
        """Test nothing changes when every id is already owned"""
        playlists = [playlist("playlist-u-a"), playlist("playlist-u-b")]
        result = reconcile(playlists, "playlist-u-b", "u")

        assert result.changed is False
        assert [p.id for p in result.playlists] == ["playlist-u-a", "playlist-u-b"]
        assert result.active_playlist_id == "playlist-u-b"

    def test_reconcile_rewrites_legacy_and_foreign_ids(self):
        """Test legacy and foreign ids move into the owner namespace"""
        playlists = [playlist("playlist-1"), playlist("playlist-other-x"), playlist("playlist-u-ok")]
        result = reconcile(playlists, "playlist-1", "u")

        assert result.changed is True
        assert all(p.id.startswith("playlist-u-") for p in result.playlists)
        assert result.playlists[2].id == "playlist-u-ok"
        assert result.active_playlist_id == result.playlists[0].id

    def test_reconcile_duplicate_ids(self):
        """Test the active pointer follows the first playlist carrying a duplicate id"""
        playlists = [playlist("playlist-u-a", "First"), playlist("playlist-u-a", "Second")]
        result = reconcile(playlists, "playlist-u-a", "u")

        assert result.playlists[0].id == "playlist-u-a"
        assert result.playlists[1].id != "playlist-u-a"
        assert result.active_playlist_id == "playlist-u-a"
        assert len({p.id for p in result.playlists}) == 2

    def test_reconcile_colliding_foreign_ids(self):
        """Test two playlists sharing an id both move into the owner namespace"""
        playlists = [playlist("duplicate", "First"), playlist("duplicate", "Second")]
        result = reconcile(playlists, "duplicate", "user-123")

        assert result.changed is True
        assert all(p.id.startswith("playlist-user-123-") for p in result.playlists)
        assert result.playlists[0].id != result.playlists[1].id
        assert result.active_playlist_id == result.playlists[0].id

    def test_reconcile_twice_is_a_no_op(self):
        """Test reconciled playlists need no further rewriting"""
        playlists = [playlist("playlist-1"), playlist("duplicate"), playlist("duplicate")]
        first = reconcile(playlists, "duplicate", "u")
        second = reconcile(first.playlists, first.active_playlist_id, "u")

        assert second.changed is False
        assert second.playlists == first.playlists
        assert second.active_playlist_id == first.active_playlist_id

    def test_reconcile_empty_id_and_missing_active(self):
        """Test empty ids are replaced and a dangling active id falls back to the first playlist"""
        result = reconcile([playlist(""), playlist("playlist-abc")], "playlist-gone")

        assert result.playlists[0].id
        assert result.playlists[1].id == "playlist-abc"
        assert result.active_playlist_id == result.playlists[0].id

    def test_reconcile_preserves_favorites_active(self):
        """Test Favorites stays active through reconciliation"""
        result = reconcile([playlist("playlist-1")], FAVORITES_PLAYLIST_ID, "u")
        assert result.active_playlist_id == FAVORITES_PLAYLIST_ID

    def test_reconcile_no_playlists(self):
        """Test an empty list yields an empty active id"""
        result = reconcile([], "", "u")
        assert result.playlists == ()
        assert result.active_playlist_id == ""


class TestBounds:
    """Test playlist count bounds"""

    def test_enforce_bounds_truncates(self):
        """Test the earliest playlists survive"""
        playlists = [playlist(f"playlist-u-{index}") for index in range(MAX_PLAYLIST_COUNT + 2)]
        result = enforce_bounds(playlists, playlists[-1].id)

        assert len(result.playlists) == MAX_PLAYLIST_COUNT
        assert result.playlists[-1].id == f"playlist-u-{MAX_PLAYLIST_COUNT - 1}"
        assert result.active_playlist_id == "playlist-u-0"
        assert result.can_create is False

    def test_enforce_bounds_empty(self):
        """Test no playlists clears the active id"""
        result = enforce_bounds([], "playlist-u-0")
        assert result.active_playlist_id == ""
        assert result.can_create is True

    def test_enforce_bounds_keeps_favorites(self):
        """Test Favorites passes through untouched"""
        result = enforce_bounds([], FAVORITES_PLAYLIST_ID)
        assert result.active_playlist_id == FAVORITES_PLAYLIST_ID

    def test_can_create_playlist(self):
        """Test the create flag"""
        assert can_create_playlist([playlist("a")] * (MAX_PLAYLIST_COUNT - 1))
        assert not can_create_playlist([playlist("a")] * MAX_PLAYLIST_COUNT)


class TestNaming:
    """Test playlist naming helpers"""

    def test_next_playlist_name_fills_gaps(self):
        """Test the lowest unused number is chosen"""
        playlists = [playlist("a", "Playlist 1"), playlist("b", "playlist 3")]
        assert next_playlist_name(playlists) == "Playlist 2"

    def test_next_playlist_name_past_limit(self):
        """Test one past the highest number once 1..MAX are taken"""
        playlists = [playlist(str(n), f"Playlist {n}") for n in range(1, MAX_PLAYLIST_COUNT + 1)]
        playlists.append(playlist("x", "Playlist 42"))
        assert next_playlist_name(playlists) == "Playlist 43"

    def test_duplicate_playlist_name(self):
        """Test numbered copy suffixes"""
        assert duplicate_playlist_name("Mix", []) == "Mix Copy"
        existing = [playlist("a", "Mix Copy"), playlist("b", "Mix Copy 2")]
        assert duplicate_playlist_name("Mix", existing) == "Mix Copy 3"

    def test_is_sequential_default_name(self):
        """Test exact 'Playlist N' matching"""
        assert is_sequential_default_name("Playlist 2", 2)
        assert not is_sequential_default_name("playlist 2", 2)
        assert not is_sequential_default_name("Playlist 2", 3)

    def test_default_playlists(self):
        """Test the seed playlists"""
        playlists = create_default_playlists()
        assert len(playlists) == 3
        assert len(playlists[0].items) == 1
        assert playlists[1].items == ()

    def test_clone_items(self):
        """Test cloned items are equal but distinct"""
        items = playlist("a", item_ids=["x", "y"]).items
        cloned = clone_items(items)
        assert cloned == items
        assert cloned[0] is not items[0]


class TestFavorites:
    """Test the Favorites virtual playlist"""

    def test_derive_uses_pinned_order(self):
        """Test items follow pinned order and unresolved ids are skipped"""
        playlists = [playlist("a", item_ids=["x", "y"]), playlist("b", item_ids=["z", "x"])]
        favorites = derive_favorites_playlist(["z", "missing", "x"], playlists)

        assert favorites.id == FAVORITES_PLAYLIST_ID
        assert [item.id for item in favorites.items] == ["z", "x"]

    def test_inject_puts_favorites_first(self):
        """Test Favorites leads the list"""
        favorites = derive_favorites_playlist([], [])
        injected = inject_favorites_playlist([playlist("a")], favorites)
        assert injected[0] is favorites
        assert injected[1].id == "a"

    def test_guard_not_favorites(self):
        """Test mutating Favorites is rejected"""
        guard_not_favorites("playlist-a", "rename")
        with pytest.raises(FavoritesGuardError):
            guard_not_favorites(FAVORITES_PLAYLIST_ID, "rename")


class TestShuffleQueue:
    """Test per-playlist shuffle queues"""

    def test_build_excludes_current(self):
        """Test the current item is left out"""
        source = playlist("a", item_ids=["x", "y", "z"])
        assert build_shuffle_queue(source, "y") == ("x", "z")

    def test_build_single_item(self):
        """Test a single-item playlist keeps its item"""
        assert build_shuffle_queue(playlist("a", item_ids=["x"]), "x") == ("x",)
        assert build_shuffle_queue(None) == ()

    def test_sanitize_drops_stale_ids(self):
        """Test ids no longer in the playlist are removed"""
        source = playlist("a", item_ids=["x", "y", "z"])
        assert sanitize_shuffle_queue(["gone", "z", "x"], source, "x") == ("z",)
        assert sanitize_shuffle_queue(["gone"], source, "x") == ("y", "z")

    def test_draw_visits_every_item(self):
        """Test a full cycle draws each item once"""
        source = playlist("a", item_ids=["v", "w", "x", "y"])
        rng = random.Random(7)
        queue = build_shuffle_queue(source, "v")
        current = "v"
        drawn = []
        for _ in range(3):
            current, queue = draw_from_shuffle_queue(queue, source, current, rng)
            drawn.append(current)

        assert sorted(drawn) == ["w", "x", "y"]
        # Exhausted queue is rebuilt without the last draw
        assert current not in queue
        assert len(queue) == 3

    def test_draw_empty_playlist(self):
        """Test drawing from an empty playlist"""
        assert draw_from_shuffle_queue(["x"], playlist("a"), None) == (None, ())

    def test_parse_persisted(self):
        """Test malformed persisted entries are dropped"""
        assert parse_persisted_shuffle_queue("nope") == {}
        assert parse_persisted_shuffle_queue({"a": ["x", 1], "b": "bad"}) == {"a": ("x",)}

    def test_rebuild_and_remove(self):
        """Test rebuild only excludes the current video from the active playlist"""
        first = playlist("a", item_ids=["x", "y"])
        second = playlist("b", item_ids=["x", "z"])
        rebuilt = rebuild_shuffle_queues({}, [first, second], "a", "x")

        assert rebuilt == {"a": ("y",), "b": ("x", "z")}
        assert remove_queue_for_playlist(rebuilt, "a") == {"b": ("x", "z")}
