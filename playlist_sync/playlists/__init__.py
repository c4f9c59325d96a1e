"""
Playlist rules: identifiers, bounds, naming, Favorites and shuffle queues

These are pure functions over the immutable models; the player store and
the sync engine compose them.
"""

from .bounds import BoundsResult, can_create_playlist, enforce_bounds
from .favorites import (
    derive_favorites_playlist,
    guard_not_favorites,
    inject_favorites_playlist,
    is_favorites,
)
from .helpers import (
    clone_items,
    create_default_playlists,
    duplicate_playlist_name,
    is_sequential_default_name,
    next_playlist_name,
)
from .ids import (
    LEGACY_PLAYLIST_ID_PATTERN,
    ReconcileResult,
    generate_playlist_id,
    reconcile,
)

__all__ = [
    # Bounds
    'BoundsResult',
    'can_create_playlist',
    'enforce_bounds',
    # Favorites
    'derive_favorites_playlist',
    'guard_not_favorites',
    'inject_favorites_playlist',
    'is_favorites',
    # Helpers
    'clone_items',
    'create_default_playlists',
    'duplicate_playlist_name',
    'is_sequential_default_name',
    'next_playlist_name',
    # Identifiers
    'LEGACY_PLAYLIST_ID_PATTERN',
    'ReconcileResult',
    'generate_playlist_id',
    'reconcile',
]
