"""
Conflict resolution between local and remote playlist data

The resolver decides, for the first pull after login, whether the two
copies can be reconciled silently or the user has to pick one:

    NO_ACTION   nothing to reconcile; the caller pushes local data later
    AUTO_SYNC   adopt `data` on both sides without asking
    SHOW_MODAL  present local, remote and a diff to the user

Decision rules (first match wins):
    1. Both absent                            -> NO_ACTION
    2. Only remote: invalid                   -> SHOW_MODAL (local = empty)
                    valid                     -> AUTO_SYNC(remote)
    3. Only local                             -> NO_ACTION
    4. Either side malformed                  -> SHOW_MODAL
    5. Empty-or-default:  both                -> AUTO_SYNC(local)
                          local only          -> AUTO_SYNC(remote)
                          remote only         -> NO_ACTION
    6. Same playlist content                  -> AUTO_SYNC(remote playlists +
                                                 local playback settings)
       Different content                      -> SHOW_MODAL with diff
    7. Unexpected error anywhere above        -> SHOW_MODAL

A side is empty-or-default when it has no playlists, no items at all, or
is exactly the seeded 'Playlist 1..N' set with at most one item in the
first playlist and nothing in the others.

The resolver never mutates state. validate_auto_sync() is the integrity
gate callers run before applying an AUTO_SYNC result.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from ..core.constants import FAVORITES_PLAYLIST_ID, MAX_PLAYLIST_COUNT
from ..core.exceptions import IntegrityError, InvalidShape
from ..core.logger import get_logger
from ..models import UserPlaylistData, coerce_snapshot, is_valid_user_playlist_data
from ..playlists.helpers import is_sequential_default_name
from .comparator import DataComparator
from .diff import DataDiff, calculate_diff


logger = get_logger(__name__)


class SyncDecision(Enum):
    NO_ACTION = "no-action"
    AUTO_SYNC = "auto-sync"
    SHOW_MODAL = "show-modal"


@dataclass(frozen=True)
class ConflictMetadata:
    local_item_count: int = 0
    remote_item_count: int = 0
    local_playlist_count: int = 0
    remote_playlist_count: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "localItemCount": self.local_item_count,
            "cloudItemCount": self.remote_item_count,
            "localPlaylistCount": self.local_playlist_count,
            "cloudPlaylistCount": self.remote_playlist_count,
        }


@dataclass(frozen=True)
class ConflictAnalysis:
    """
    Result of ConflictResolver.analyze()

    Attributes:
        decision: What the caller should do
        data: Snapshot to adopt (AUTO_SYNC only)
        local: Local side as given (SHOW_MODAL; may be a raw dict if malformed)
        remote: Remote side as given (SHOW_MODAL)
        diff: Display diff (SHOW_MODAL with two valid sides), else None
        metadata: Item/playlist counts per side, zeroed when uncountable
        reason: Short label of the rule that fired, for logs
    """
    decision: SyncDecision
    data: UserPlaylistData | None = None
    local: Any = None
    remote: Any = None
    diff: DataDiff | None = None
    metadata: ConflictMetadata = field(default_factory=ConflictMetadata)
    reason: str = ""

    @property
    def has_conflict(self) -> bool:
        return self.decision is SyncDecision.SHOW_MODAL


def _empty_user_data() -> UserPlaylistData:
    return UserPlaylistData()


def count_total_items(data: UserPlaylistData | None) -> int:
    return data.total_items if data is not None else 0


def is_empty_or_default(data: UserPlaylistData | None) -> bool:
    """
    True for placeholder data that is safe to overwrite

    Placeholder means: no playlists, no items anywhere, or the sequential
    default set 'Playlist 1'..'Playlist N' (N <= MAX_PLAYLIST_COUNT) with at
    most one item in the first playlist and the rest empty.
    """
    if data is None or not data.playlists:
        return True

    if count_total_items(data) == 0:
        return True

    playlists = data.playlists
    if len(playlists) > MAX_PLAYLIST_COUNT:
        return False

    names_are_default = all(
        is_sequential_default_name(playlist.name, position)
        for position, playlist in enumerate(playlists, start=1)
    )
    return (
        names_are_default
        and len(playlists[0].items) <= 1
        and all(not playlist.items for playlist in playlists[1:])
    )


class ConflictResolver:
    """Decision engine for the pull-on-login reconciliation"""

    def __init__(self, comparator: DataComparator | None = None) -> None:
        self.comparator = comparator or DataComparator()

    def analyze(self, local: Any, remote: Any) -> ConflictAnalysis:
        """
        Classify a local/remote pair

        Args:
            local: Local snapshot (model or wire dict), or None
            remote: Remote snapshot (model or wire dict), or None

        Returns:
            ConflictAnalysis; never raises
        """
        try:
            return self._analyze(local, remote)
        except Exception as e:
            logger.error(f"Conflict analysis failed, falling back to conflict prompt: {e}", exc_info=True)
            return ConflictAnalysis(
                decision=SyncDecision.SHOW_MODAL,
                local=local if local is not None else _empty_user_data(),
                remote=remote if remote is not None else _empty_user_data(),
                reason="analysis-error",
            )

    def _analyze(self, local: Any, remote: Any) -> ConflictAnalysis:
        if local is None and remote is None:
            return ConflictAnalysis(decision=SyncDecision.NO_ACTION, reason="both-absent")

        if local is None:
            if not is_valid_user_playlist_data(remote):
                logger.warning("Invalid remote data structure detected, falling back to conflict prompt")
                return ConflictAnalysis(
                    decision=SyncDecision.SHOW_MODAL,
                    local=_empty_user_data(),
                    remote=remote,
                    reason="invalid-remote",
                )
            remote_data = coerce_snapshot(remote)
            return ConflictAnalysis(
                decision=SyncDecision.AUTO_SYNC,
                data=remote_data,
                remote=remote_data,
                metadata=self.compute_metadata(None, remote_data),
                reason="remote-only",
            )

        if remote is None:
            return ConflictAnalysis(decision=SyncDecision.NO_ACTION, local=local, reason="local-only")

        if not is_valid_user_playlist_data(local) or not is_valid_user_playlist_data(remote):
            logger.warning("Invalid data structure detected during conflict analysis")
            return ConflictAnalysis(
                decision=SyncDecision.SHOW_MODAL,
                local=local,
                remote=remote,
                reason="invalid-shape",
            )

        local_data = coerce_snapshot(local)
        remote_data = coerce_snapshot(remote)
        metadata = self.compute_metadata(local_data, remote_data)

        local_empty = is_empty_or_default(local_data)
        remote_empty = is_empty_or_default(remote_data)

        if local_empty and remote_empty:
            return ConflictAnalysis(
                decision=SyncDecision.AUTO_SYNC, data=local_data,
                local=local_data, remote=remote_data, metadata=metadata, reason="both-empty",
            )
        if local_empty:
            return ConflictAnalysis(
                decision=SyncDecision.AUTO_SYNC, data=remote_data,
                local=local_data, remote=remote_data, metadata=metadata, reason="empty-local",
            )
        if remote_empty:
            return ConflictAnalysis(
                decision=SyncDecision.NO_ACTION,
                local=local_data, remote=remote_data, metadata=metadata, reason="empty-remote",
            )

        if self.comparator.playlists_equal(local_data, remote_data):
            # Each device keeps its own playback preferences
            merged = replace(
                remote_data,
                active_playlist_id=local_data.active_playlist_id,
                loop_mode=local_data.loop_mode,
                is_shuffle=local_data.is_shuffle,
            )
            return ConflictAnalysis(
                decision=SyncDecision.AUTO_SYNC, data=merged,
                local=local_data, remote=remote_data, metadata=metadata, reason="identical",
            )

        return ConflictAnalysis(
            decision=SyncDecision.SHOW_MODAL,
            local=local_data,
            remote=remote_data,
            diff=calculate_diff(local_data, remote_data),
            metadata=metadata,
            reason="different",
        )

    @staticmethod
    def compute_metadata(local: UserPlaylistData | None, remote: UserPlaylistData | None) -> ConflictMetadata:
        try:
            return ConflictMetadata(
                local_item_count=count_total_items(local),
                remote_item_count=count_total_items(remote),
                local_playlist_count=len(local.playlists) if local is not None else 0,
                remote_playlist_count=len(remote.playlists) if remote is not None else 0,
            )
        except (AttributeError, TypeError) as e:
            logger.warning(f"Failed to calculate conflict metadata: {e}")
            return ConflictMetadata()

    @staticmethod
    def validate_auto_sync(data: Any) -> UserPlaylistData:
        """
        Integrity gate for an AUTO_SYNC snapshot

        Returns:
            The snapshot as a UserPlaylistData

        Raises:
            IntegrityError: On malformed shape, duplicate playlist ids,
                            duplicate item ids within a playlist, or an
                            active id that names no playlist ("" is
                            accepted only for an empty snapshot)
        """
        try:
            snapshot = coerce_snapshot(data)
        except InvalidShape as e:
            raise IntegrityError(
                f"Auto-sync rejected: {e.message}",
                details={"reason": "invalid-shape", **e.details}
            ) from e

        playlist_ids = [playlist.id for playlist in snapshot.playlists]
        if len(playlist_ids) != len(set(playlist_ids)):
            raise IntegrityError(
                "Auto-sync rejected: duplicate playlist ids",
                details={"reason": "duplicate-playlist-ids", "playlist_ids": playlist_ids}
            )

        for playlist in snapshot.playlists:
            item_ids = [item.id for item in playlist.items]
            if len(item_ids) != len(set(item_ids)):
                raise IntegrityError(
                    f"Auto-sync rejected: duplicate item ids in playlist '{playlist.name}'",
                    details={"reason": "duplicate-item-ids", "playlist_id": playlist.id}
                )

        active_id = snapshot.active_playlist_id
        # "" is only a valid pointer when there is nothing to point at
        dangling = active_id not in playlist_ids if active_id else bool(playlist_ids)
        if active_id != FAVORITES_PLAYLIST_ID and dangling:
            raise IntegrityError(
                "Auto-sync rejected: active playlist does not exist",
                details={"reason": "dangling-active-id", "active_playlist_id": active_id}
            )

        logger.debug(f"Auto-sync snapshot passed integrity checks ({len(playlist_ids)} playlists)")
        return snapshot


# Module-level resolver for one-off analyses
conflict_resolver = ConflictResolver()


def analyze_conflict(local: Any, remote: Any) -> ConflictAnalysis:
    return conflict_resolver.analyze(local, remote)
