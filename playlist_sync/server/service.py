"""
Playlist and pinned-songs service used by the HTTP handlers
"""

from ..core.logger import get_logger
from ..models import PinnedSongs, UserPlaylistData
from .database import Database
from .merge import merge_snapshots


logger = get_logger(__name__)


class PlaylistService:
    """Per-user persistence operations on top of Database"""

    def __init__(self, database: Database) -> None:
        self.database = database

    def get_user_playlists(self, user_id: str) -> UserPlaylistData | None:
        return self.database.load_user_playlists(user_id)

    def save_user_playlists(self, user_id: str, data: UserPlaylistData) -> UserPlaylistData:
        """
        Persist a snapshot and return it as stored

        The returned snapshot is read back from the database, so callers
        see exactly what the next load will return.

        Raises:
            DatabaseError: If the save or the reload fails
        """
        self.database.save_user_playlists(user_id, data)
        saved = self.database.load_user_playlists(user_id)
        return saved if saved is not None else UserPlaylistData()

    def sync_local_data_to_database(self, user_id: str, local_data: UserPlaylistData) -> UserPlaylistData:
        """Fold a device's anonymous playlists into the stored snapshot and save the result"""
        existing = self.database.load_user_playlists(user_id)
        merged = merge_snapshots(existing, local_data, user_id)
        if existing is None or not existing.playlists:
            logger.info(f"No stored playlists for user {user_id}, adopting device playlists under owner ids")
        return self.save_user_playlists(user_id, merged)

    def get_pinned_songs(self, user_id: str) -> PinnedSongs:
        return PinnedSongs.from_order(self.database.load_pinned_songs(user_id))

    def save_pinned_songs(self, user_id: str, pinned: PinnedSongs) -> PinnedSongs:
        self.database.save_pinned_songs(user_id, pinned.pinned_order)
        return pinned
