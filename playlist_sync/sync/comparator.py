"""
Deep equality between playlist snapshots

Two modes:
    deep_equal       - playlists, items and the playback settings
                       (activePlaylistId, loopMode, isShuffle)
    playlists_equal  - playlists and items only; per-device playback
                       settings are ignored

Both accept UserPlaylistData or wire dictionaries, never raise, and fail
closed to False on malformed input. Comparisons are expected to take a few
milliseconds; anything above SLOW_COMPARISON_MS is logged as a warning.
"""

import time
from typing import Any

from ..core.constants import SLOW_COMPARISON_MS
from ..core.exceptions import InvalidShape
from ..core.logger import get_logger
from ..models import is_valid_user_playlist_data
from .normalizer import NormalizedUserPlaylistData, normalize


logger = get_logger(__name__)


class DataComparator:
    """Normalizing comparator with a soft duration target"""

    def __init__(self, slow_threshold_ms: float = SLOW_COMPARISON_MS) -> None:
        self.slow_threshold_ms = slow_threshold_ms

    def deep_equal(self, local: Any, remote: Any) -> bool:
        return self._compare(local, remote, include_settings=True)

    def playlists_equal(self, local: Any, remote: Any) -> bool:
        return self._compare(local, remote, include_settings=False)

    def _compare(self, local: Any, remote: Any, include_settings: bool) -> bool:
        start = time.perf_counter()

        if local is None and remote is None:
            return True
        if local is None or remote is None:
            return False

        if not is_valid_user_playlist_data(local) or not is_valid_user_playlist_data(remote):
            logger.warning("Invalid data structure detected during comparison")
            return False

        try:
            result = self._compare_normalized(normalize(local), normalize(remote), include_settings)
        except InvalidShape as e:
            logger.warning(f"Data comparison failed: {e}")
            return False

        duration_ms = (time.perf_counter() - start) * 1000
        if duration_ms > self.slow_threshold_ms:
            logger.warning(
                f"Data comparison took {duration_ms:.2f}ms, exceeding {self.slow_threshold_ms}ms target"
            )
        return result

    @staticmethod
    def _compare_normalized(
        local: NormalizedUserPlaylistData,
        remote: NormalizedUserPlaylistData,
        include_settings: bool,
    ) -> bool:
        if include_settings and (
            local.active_playlist_id != remote.active_playlist_id
            or local.loop_mode != remote.loop_mode
            or local.is_shuffle != remote.is_shuffle
        ):
            return False

        # Normalized playlists/items are frozen dataclasses sorted by id,
        # so tuple equality compares index by index
        return local.playlists == remote.playlists


# Module-level instance for one-off comparisons
data_comparator = DataComparator()


def deep_equal(local: Any, remote: Any) -> bool:
    """Full equality including playback settings"""
    return data_comparator.deep_equal(local, remote)


def playlists_equal(local: Any, remote: Any) -> bool:
    """Playlist content equality, ignoring activePlaylistId/loopMode/isShuffle"""
    return data_comparator.playlists_equal(local, remote)
