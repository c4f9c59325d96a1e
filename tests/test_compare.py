"""Test normalization, comparison, content hashing and diffs"""

import pytest

from playlist_sync.core.exceptions import InvalidShape
from playlist_sync.sync import (
    ChangeType,
    DataComparator,
    calculate_diff,
    content_hash,
    deep_equal,
    normalize,
    playlists_equal,
)


class TestNormalize:
    """Test snapshot normalization"""

    def test_sorts_and_fills_titles(self, sample_wire_data):
        """Test playlists and items are sorted by id and titles become strings"""
        sample_wire_data["playlists"].reverse()
        sample_wire_data["playlists"][1]["items"].reverse()

        normalized = normalize(sample_wire_data)

        assert [p.id for p in normalized.playlists] == ["playlist-user-1-a", "playlist-user-1-b"]
        assert [item.id for item in normalized.playlists[0].items] == ["vid-1", "vid-2"]
        assert normalized.playlists[0].items[1].title == ""

    def test_model_and_dict_agree(self, make_snapshot):
        """Test models and wire dictionaries normalize identically"""
        snapshot = make_snapshot({"p-b": ("B", ["y", "x"]), "p-a": ("A", [])})
        assert normalize(snapshot) == normalize(snapshot.to_dict())

    def test_idempotent(self, sample_wire_data):
        """Test normalizing twice changes nothing"""
        sample_wire_data["playlists"].reverse()
        once = normalize(sample_wire_data)
        assert normalize(once) == once
        assert content_hash(once) == content_hash(sample_wire_data)

    def test_missing_settings_take_defaults(self):
        """Test settings fields are optional"""
        normalized = normalize({"playlists": []})
        assert normalized.active_playlist_id == ""
        assert normalized.loop_mode == "all"
        assert normalized.is_shuffle is False

    @pytest.mark.parametrize("data", [
        None,
        {"playlists": "nope"},
        {"playlists": [{"id": 1, "name": "x", "items": []}]},
        {"playlists": [{"id": "a", "name": "x", "items": [{"title": "no id"}]}]},
    ])
    def test_rejects_malformed(self, data):
        """Test malformed snapshots raise InvalidShape"""
        with pytest.raises(InvalidShape):
            normalize(data)


class TestComparator:
    """Test deep_equal and playlists_equal"""

    def test_order_and_missing_title_are_ignored(self, sample_wire_data):
        """Test reordering and None-vs-empty titles compare equal"""
        other = {
            **sample_wire_data,
            "playlists": [
                sample_wire_data["playlists"][1],
                {
                    **sample_wire_data["playlists"][0],
                    "items": [{"id": "vid-2", "title": ""}, {"id": "vid-1", "title": "First Song"}],
                },
            ],
        }
        assert deep_equal(sample_wire_data, other)

    def test_settings_only_matter_for_deep_equal(self, make_snapshot):
        """Test playlists_equal ignores playback settings"""
        local = make_snapshot({"p-a": ("A", ["x"]), "p-b": ("B", [])})
        remote = make_snapshot({"p-a": ("A", ["x"]), "p-b": ("B", [])}, active_playlist_id="p-b",
                               loop_mode="one", is_shuffle=True)

        assert not deep_equal(local, remote)
        assert playlists_equal(local, remote)

    def test_content_difference(self, make_snapshot):
        """Test names and items are compared"""
        local = make_snapshot({"p-a": ("A", ["x"])})
        assert not playlists_equal(local, make_snapshot({"p-a": ("Renamed", ["x"])}))
        assert not playlists_equal(local, make_snapshot({"p-a": ("A", ["x", "y"])}))

    def test_none_and_invalid(self, make_snapshot):
        """Test absent and malformed inputs fail closed"""
        snapshot = make_snapshot({"p-a": ("A", [])})
        assert deep_equal(None, None)
        assert not deep_equal(snapshot, None)
        assert not deep_equal({"playlists": 3}, snapshot)

    def test_slow_comparison_is_logged(self, make_snapshot, caplog):
        """Test comparisons over the threshold log a warning"""
        comparator = DataComparator(slow_threshold_ms=-1)
        snapshot = make_snapshot({"p-a": ("A", ["x"])})

        assert comparator.deep_equal(snapshot, snapshot)
        assert any("exceeding" in record.getMessage() for record in caplog.records)


class TestContentHash:
    """Test the content hash"""

    def test_stable_under_reordering(self, sample_wire_data):
        """Test reordering does not change the hash"""
        reordered = {**sample_wire_data, "playlists": list(reversed(sample_wire_data["playlists"]))}
        assert content_hash(sample_wire_data) == content_hash(reordered)

    def test_model_matches_wire(self, make_snapshot):
        """Test models and wire dictionaries hash identically"""
        snapshot = make_snapshot({"p-a": ("A", ["x"])})
        assert content_hash(snapshot) == content_hash(snapshot.to_dict())

    def test_settings_change_hash(self, make_snapshot):
        """Test playback settings are part of the hash"""
        playlists = {"p-a": ("A", ["x"])}
        assert content_hash(make_snapshot(playlists)) != content_hash(make_snapshot(playlists, loop_mode="one"))


class TestCalculateDiff:
    """Test the display diff"""

    def test_playlist_changes(self, make_snapshot):
        """Test added, removed and modified playlists"""
        local = make_snapshot({"p-a": ("A", ["x", "y"]), "p-b": ("Only Local", [])})
        remote = make_snapshot({"p-a": ("A2", ["y", "x", "z"]), "p-c": ("Only Remote", [])})

        diff = calculate_diff(local, remote)
        by_id = {playlist_diff.playlist_id: playlist_diff for playlist_diff in diff.playlist_diffs}

        assert by_id["p-b"].change_type is ChangeType.REMOVED
        assert by_id["p-c"].change_type is ChangeType.ADDED
        modified = by_id["p-a"]
        assert modified.change_type is ChangeType.MODIFIED
        assert modified.playlist_name == "A2"
        changes = {item_diff.item_id: item_diff.change_type for item_diff in modified.item_diffs}
        assert changes == {"x": ChangeType.REORDERED, "y": ChangeType.REORDERED, "z": ChangeType.ADDED}

        assert diff.summary.to_dict() == {
            "playlistsAdded": 1,
            "playlistsRemoved": 1,
            "playlistsModified": 1,
            "songsAdded": 1,
            "songsRemoved": 0,
            "songsReordered": 2,
        }

    def test_identical_has_no_changes(self, make_snapshot):
        """Test identical snapshots produce an empty diff"""
        snapshot = make_snapshot({"p-a": ("A", ["x"])})
        diff = calculate_diff(snapshot, snapshot)
        assert diff.playlist_diffs == ()
        assert not diff.summary.has_changes

    def test_none_sides(self, make_snapshot):
        """Test a missing side counts as no playlists"""
        diff = calculate_diff(None, make_snapshot({"p-a": ("A", [])}))
        assert diff.summary.playlists_added == 1

    def test_to_dict(self, sample_wire_data):
        """Test the wire shape of item diffs"""
        remote = {**sample_wire_data, "playlists": [
            {**sample_wire_data["playlists"][0], "items": [{"id": "vid-1", "title": "First Song"}]},
            sample_wire_data["playlists"][1],
        ]}
        data = calculate_diff(sample_wire_data, remote).to_dict()

        playlist_diff = data["playlistDiffs"][0]
        assert playlist_diff["changeType"] == "modified"
        assert playlist_diff["localName"] == "Road Trip"
        assert playlist_diff["cloudName"] == "Road Trip"
        assert playlist_diff["itemDiffs"] == [
            {"itemId": "vid-2", "title": "Untitled", "changeType": "removed", "localIndex": 1}
        ]
