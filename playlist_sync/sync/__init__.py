"""
Sync engine: normalization, comparison, diffing, conflict resolution and
the asyncio orchestrators that keep a PlayerStore converged with the server.
"""

from .comparator import DataComparator, data_comparator, deep_equal, playlists_equal
from .diff import ChangeType, DataDiff, DiffSummary, ItemDiff, PlaylistDiff, calculate_diff
from .hashing import content_hash
from .normalizer import NormalizedUserPlaylistData, normalize
from .orchestrator import PlaylistSyncOrchestrator
from .pinned import PinnedSongsSyncOrchestrator, merge_pinned_songs
from .resolver import (
    ConflictAnalysis,
    ConflictMetadata,
    ConflictResolver,
    SyncDecision,
    analyze_conflict,
    conflict_resolver,
    is_empty_or_default,
)

__all__ = [
    # Normalization and comparison
    'NormalizedUserPlaylistData',
    'normalize',
    'DataComparator',
    'data_comparator',
    'deep_equal',
    'playlists_equal',
    'content_hash',
    # Diff
    'ChangeType',
    'ItemDiff',
    'PlaylistDiff',
    'DiffSummary',
    'DataDiff',
    'calculate_diff',
    # Resolver
    'SyncDecision',
    'ConflictMetadata',
    'ConflictAnalysis',
    'ConflictResolver',
    'conflict_resolver',
    'analyze_conflict',
    'is_empty_or_default',
    # Orchestrators
    'PlaylistSyncOrchestrator',
    'PinnedSongsSyncOrchestrator',
    'merge_pinned_songs',
]
