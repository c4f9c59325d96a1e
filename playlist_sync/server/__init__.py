"""
Remote store server: SQLite persistence, first-sync merge and the aiohttp API.
"""

from .app import TokenAuthResolver, create_app
from .database import PLAYLIST_ITEM_CHUNK_SIZE, Database
from .merge import merge_snapshots
from .service import PlaylistService

__all__ = [
    'Database',
    'PLAYLIST_ITEM_CHUNK_SIZE',
    'PlaylistService',
    'TokenAuthResolver',
    'create_app',
    'merge_snapshots',
]
