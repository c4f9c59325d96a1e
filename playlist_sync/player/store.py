"""
Player state container

PlayerStore owns the complete local player state: playlists, playback
position, shuffle queues, pinned songs and session flags. Every operation
builds a new PlayerState and swaps it in atomically, then notifies
observers once. Nothing outside the store mutates state.

Observers:
    unsubscribe = store.subscribe(callback)
    callback(new_state, old_state) runs after every effective change.
    The sync orchestrators and the local state file writer are observers.

Favorites:
    The Favorites playlist is derived from pinned_order on read. It can be
    made active and played, and removing/reordering its items edits the
    pinned order. Renaming, deleting, clearing or adding to it raises
    FavoritesGuardError.
"""

import random
from dataclasses import dataclass, field, replace
from typing import Callable, Sequence

from ..core.constants import (
    DEFAULT_ACTIVE_PLAYLIST_ID,
    DEFAULT_LOOP_MODE,
    FAVORITES_PLAYLIST_ID,
)
from ..core.logger import get_logger
from ..models import PinnedSongs, Playlist, PlaylistItem, UserPlaylistData
from ..playlists.bounds import can_create_playlist, enforce_bounds
from ..playlists.favorites import (
    derive_favorites_playlist,
    guard_not_favorites,
    inject_favorites_playlist,
    is_favorites,
    strip_favorites,
)
from ..playlists.helpers import (
    clone_items,
    create_default_playlists,
    duplicate_playlist_name,
    move_element,
    next_playlist_name,
)
from ..playlists.ids import generate_playlist_id, reconcile
from ..playlists.shuffle import (
    ShuffleQueueMap,
    draw_from_shuffle_queue,
    rebuild_shuffle_queues,
    remove_queue_for_playlist,
    reset_queue_for_playlist,
    sanitize_shuffle_queue,
    with_queue_for_playlist,
)
from .engine import PlaybackEngine


logger = get_logger(__name__)


@dataclass(frozen=True)
class PlayerState:
    """
    Immutable snapshot of everything the player store holds

    Playlist data:
        playlists, active_playlist_id, can_create_playlist
    Playback:
        loop_mode, is_shuffle, shuffle_queue, is_playing,
        current_video_id, current_index
    Pinned songs:
        pinned_video_ids, pinned_order
    Session:
        user_id (None when anonymous), is_data_synced, is_pinned_synced
    """
    playlists: tuple[Playlist, ...] = field(default_factory=create_default_playlists)
    active_playlist_id: str = DEFAULT_ACTIVE_PLAYLIST_ID
    can_create_playlist: bool = True
    loop_mode: str = DEFAULT_LOOP_MODE
    is_shuffle: bool = False
    shuffle_queue: ShuffleQueueMap = field(default_factory=dict)
    is_playing: bool = False
    current_video_id: str | None = None
    current_index: int | None = None
    pinned_video_ids: frozenset[str] = field(default_factory=frozenset)
    pinned_order: tuple[str, ...] = ()
    user_id: str | None = None
    is_data_synced: bool = False
    is_pinned_synced: bool = False


StateObserver = Callable[[PlayerState, PlayerState], None]


class PlayerStore:
    """Single coordinator for local player state"""

    def __init__(
        self,
        engine: PlaybackEngine | None = None,
        state: PlayerState | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._engine = engine
        self._state = state or PlayerState()
        self._observers: list[StateObserver] = []
        self._rng = rng

    # =========================================================================
    # State access and observers
    # =========================================================================

    @property
    def state(self) -> PlayerState:
        return self._state

    @property
    def user_id(self) -> str | None:
        return self._state.user_id

    @property
    def is_authenticated(self) -> bool:
        return bool(self._state.user_id)

    def set_engine(self, engine: PlaybackEngine | None) -> None:
        self._engine = engine

    def subscribe(self, callback: StateObserver) -> Callable[[], None]:
        """Register an observer; returns a function that removes it"""
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _set(self, **changes) -> None:
        previous = self._state
        updated = replace(previous, **changes)
        if updated == previous:
            return
        self._state = updated
        for observer in list(self._observers):
            try:
                observer(updated, previous)
            except Exception as e:
                logger.error(f"State observer {observer!r} failed: {e}", exc_info=True)

    def snapshot(self) -> UserPlaylistData:
        """Current playlist data as a sync snapshot"""
        state = self._state
        return UserPlaylistData(
            playlists=state.playlists,
            active_playlist_id=state.active_playlist_id,
            loop_mode=state.loop_mode,
            is_shuffle=state.is_shuffle,
        )

    def pinned_songs(self) -> PinnedSongs:
        return PinnedSongs(
            pinned_video_ids=self._state.pinned_video_ids,
            pinned_order=self._state.pinned_order,
        )

    # =========================================================================
    # Playlist queries
    # =========================================================================

    def _find_playlist(self, playlist_id: str) -> Playlist | None:
        for playlist in self._state.playlists:
            if playlist.id == playlist_id:
                return playlist
        return None

    def favorites_playlist(self) -> Playlist:
        return derive_favorites_playlist(self._state.pinned_order, self._state.playlists)

    def playlists_with_favorites(self) -> tuple[Playlist, ...]:
        return inject_favorites_playlist(self._state.playlists, self.favorites_playlist())

    def active_playlist(self) -> Playlist | None:
        active_id = self._state.active_playlist_id
        if is_favorites(active_id):
            return self.favorites_playlist()
        return self._find_playlist(active_id)

    def next_playlist_name(self) -> str:
        return next_playlist_name(self._state.playlists)

    def _reset_queue_if_active(self, queue: ShuffleQueueMap, playlist_id: str) -> ShuffleQueueMap:
        state = self._state
        if state.is_shuffle and playlist_id == state.active_playlist_id:
            return reset_queue_for_playlist(queue, playlist_id)
        return queue

    def _replace_playlist(self, playlist_id: str, transform: Callable[[Playlist], Playlist]) -> tuple[Playlist, ...]:
        return tuple(
            transform(playlist) if playlist.id == playlist_id else playlist
            for playlist in self._state.playlists
        )

    # =========================================================================
    # Playlist operations
    # =========================================================================

    def add_to_playlist(self, item: PlaylistItem, playlist_id: str | None = None) -> bool:
        """
        Append an item to a playlist (default: the active one)

        Returns:
            False when the playlist already holds an item with the same id
            or does not exist.

        Raises:
            FavoritesGuardError: When targeting Favorites (pin instead)
        """
        target_id = playlist_id or self._state.active_playlist_id
        guard_not_favorites(target_id, "add items to")

        target = self._find_playlist(target_id)
        if target is None or target.has_item(item.id):
            return False

        state = self._state
        self._set(
            playlists=self._replace_playlist(target_id, lambda p: p.with_items((*p.items, item))),
            current_index=0 if state.current_index is None else state.current_index,
            shuffle_queue=self._reset_queue_if_active(state.shuffle_queue, target_id),
        )
        return True

    def remove_from_playlist(self, index: int, playlist_id: str | None = None) -> None:
        """Remove the item at index; on Favorites this unpins the item"""
        target_id = playlist_id or self._state.active_playlist_id

        if is_favorites(target_id):
            favorites = self.favorites_playlist()
            if 0 <= index < len(favorites.items):
                self.remove_pinned(favorites.items[index].id)
            return

        target = self._find_playlist(target_id)
        if target is None or not 0 <= index < len(target.items):
            return

        items = list(target.items)
        del items[index]
        self._set(
            playlists=self._replace_playlist(target_id, lambda p: p.with_items(items)),
            shuffle_queue=self._reset_queue_if_active(self._state.shuffle_queue, target_id),
        )

    def reorder_playlist(self, from_index: int, to_index: int, playlist_id: str | None = None) -> None:
        """
        Move an item inside a playlist, keeping current_index on the same item

        On Favorites the pinned order is reordered instead.
        """
        state = self._state
        target_id = playlist_id or state.active_playlist_id

        if is_favorites(target_id):
            favorites_ids = [item.id for item in self.favorites_playlist().items]
            if not (0 <= from_index < len(favorites_ids) and 0 <= to_index < len(favorites_ids)):
                return
            moved = move_element(favorites_ids, from_index, to_index)
            visible = set(favorites_ids)
            hidden = [video_id for video_id in state.pinned_order if video_id not in visible]
            changes = {"pinned_order": tuple(moved + hidden)}
        else:
            target = self._find_playlist(target_id)
            if target is None or not (0 <= from_index < len(target.items) and 0 <= to_index < len(target.items)):
                return
            items = move_element(target.items, from_index, to_index)
            changes = {"playlists": self._replace_playlist(target_id, lambda p: p.with_items(items))}

        current_index = state.current_index
        if target_id == state.active_playlist_id and current_index is not None:
            if current_index == from_index:
                current_index = to_index
            elif from_index < current_index <= to_index:
                current_index -= 1
            elif to_index <= current_index < from_index:
                current_index += 1

        self._set(
            current_index=current_index,
            shuffle_queue=self._reset_queue_if_active(state.shuffle_queue, target_id),
            **changes,
        )

    def reorder_playlists(self, from_index: int, to_index: int) -> None:
        playlists = self._state.playlists
        if not (0 <= from_index < len(playlists) and 0 <= to_index < len(playlists)):
            return
        self._set(playlists=tuple(move_element(playlists, from_index, to_index)))

    def move_item_between_playlists(self, item_index: int, from_playlist_id: str, to_playlist_id: str) -> bool:
        """
        Move one item to the end of another playlist

        Returns:
            False if either playlist is missing (Favorites included), the
            index is out of range, or the destination already has the item.
        """
        source = self._find_playlist(from_playlist_id)
        destination = self._find_playlist(to_playlist_id)
        if source is None or destination is None or not 0 <= item_index < len(source.items):
            return False

        item = source.items[item_index]
        if destination.has_item(item.id):
            return False

        remaining = source.items[:item_index] + source.items[item_index + 1:]
        playlists = tuple(
            playlist.with_items(remaining) if playlist.id == from_playlist_id
            else playlist.with_items((*playlist.items, item)) if playlist.id == to_playlist_id
            else playlist
            for playlist in self._state.playlists
        )

        queue = self._reset_queue_if_active(self._state.shuffle_queue, from_playlist_id)
        queue = self._reset_queue_if_active(queue, to_playlist_id)
        self._set(playlists=playlists, shuffle_queue=queue)
        return True

    def clear_playlist(self, playlist_id: str | None = None) -> None:
        state = self._state
        target_id = playlist_id or state.active_playlist_id
        guard_not_favorites(target_id, "clear")

        changes = {}
        if target_id == state.active_playlist_id:
            changes = {"current_index": None, "current_video_id": None}

        self._set(
            playlists=self._replace_playlist(target_id, lambda p: p.with_items(())),
            shuffle_queue=self._reset_queue_if_active(state.shuffle_queue, target_id),
            **changes,
        )

    def _append_and_activate(self, playlist: Playlist) -> None:
        state = self._state
        bounded = enforce_bounds((*state.playlists, playlist), playlist.id)
        queue = state.shuffle_queue
        if state.is_shuffle:
            queue = reset_queue_for_playlist(queue, playlist.id)
        self._set(
            playlists=bounded.playlists,
            can_create_playlist=bounded.can_create,
            active_playlist_id=playlist.id,
            current_video_id=None,
            current_index=None,
            is_playing=False,
            shuffle_queue=queue,
        )

    def create_playlist(self) -> str | None:
        """Create an empty playlist and make it active; None at the bound"""
        if not can_create_playlist(self._state.playlists):
            return None

        playlist = Playlist(
            id=generate_playlist_id(self._state.user_id),
            name=self.next_playlist_name(),
        )
        self._append_and_activate(playlist)
        logger.debug(f"Created playlist {playlist.id} ({playlist.name})")
        return playlist.id

    def duplicate_playlist(self, playlist_id: str) -> str | None:
        """Copy a playlist (Favorites included) into a new active playlist; None at the bound"""
        if not can_create_playlist(self._state.playlists):
            return None

        source = self.favorites_playlist() if is_favorites(playlist_id) else self._find_playlist(playlist_id)
        if source is None:
            return None

        duplicate = Playlist(
            id=generate_playlist_id(self._state.user_id),
            name=duplicate_playlist_name(source.name, self._state.playlists),
            items=clone_items(source.items),
        )
        self._append_and_activate(duplicate)
        return duplicate.id

    def remove_playlist(self, playlist_id: str) -> bool:
        """
        Delete a playlist

        When the active playlist is removed, the playlist that took its
        position (or the new last one) becomes active.

        Raises:
            FavoritesGuardError: When targeting Favorites
        """
        guard_not_favorites(playlist_id, "delete")

        state = self._state
        index = next((i for i, p in enumerate(state.playlists) if p.id == playlist_id), -1)
        if index == -1:
            return False

        remaining = tuple(p for p in state.playlists if p.id != playlist_id)
        removed_active = state.active_playlist_id == playlist_id

        next_active = state.active_playlist_id
        if removed_active:
            if not remaining:
                next_active = ""
            elif index < len(remaining):
                next_active = remaining[index].id
            else:
                next_active = remaining[-1].id

        bounded = enforce_bounds(remaining, next_active)
        changed_active = removed_active or bounded.active_playlist_id != state.active_playlist_id

        queue = remove_queue_for_playlist(state.shuffle_queue, playlist_id)
        if state.is_shuffle and changed_active and bounded.active_playlist_id:
            queue = reset_queue_for_playlist(queue, bounded.active_playlist_id)

        self._set(
            playlists=bounded.playlists,
            active_playlist_id=bounded.active_playlist_id,
            can_create_playlist=bounded.can_create,
            current_video_id=None if changed_active else state.current_video_id,
            current_index=None if changed_active else state.current_index,
            is_playing=False if changed_active else state.is_playing,
            shuffle_queue=queue,
        )
        return True

    def rename_playlist(self, playlist_id: str, new_name: str) -> None:
        guard_not_favorites(playlist_id, "rename")
        self._set(playlists=self._replace_playlist(playlist_id, lambda p: replace(p, name=new_name)))

    def sync_bounds(self) -> None:
        """Re-apply the playlist bound and repair the active pointer"""
        state = self._state
        bounded = enforce_bounds(state.playlists, state.active_playlist_id)
        changed_active = bounded.active_playlist_id != state.active_playlist_id

        queue = state.shuffle_queue
        if state.is_shuffle:
            queue = rebuild_shuffle_queues(
                queue,
                bounded.playlists,
                bounded.active_playlist_id,
                None if changed_active else state.current_video_id,
            )

        self._set(
            playlists=bounded.playlists,
            active_playlist_id=bounded.active_playlist_id,
            can_create_playlist=bounded.can_create,
            current_video_id=None if changed_active else state.current_video_id,
            current_index=None if changed_active else state.current_index,
            is_playing=False if changed_active else state.is_playing,
            shuffle_queue=queue,
        )

    def set_active_playlist(self, playlist_id: str) -> None:
        """Switch playlists and start playing the first item, if any"""
        target = self.favorites_playlist() if is_favorites(playlist_id) else self._find_playlist(playlist_id)
        if target is None:
            return

        state = self._state
        has_items = bool(target.items)
        queue = state.shuffle_queue
        if state.is_shuffle:
            queue = reset_queue_for_playlist(queue, playlist_id)

        self._set(
            active_playlist_id=playlist_id,
            current_index=0 if has_items else None,
            current_video_id=target.items[0].id if has_items else None,
            is_playing=has_items,
            shuffle_queue=queue,
        )

        if has_items:
            self.play(target.items[0].id)

    # =========================================================================
    # Playback
    # =========================================================================

    def _start(self, video_id: str) -> None:
        if self._engine is not None:
            self._engine.load_by_id(video_id)
            self._engine.play()

    @staticmethod
    def _index_of(playlist: Playlist, video_id: str) -> int | None:
        for index, item in enumerate(playlist.items):
            if item.id == video_id:
                return index
        return None

    def play(self, video_id: str) -> None:
        self._start(video_id)
        state = self._state
        active = self.active_playlist()
        current_index = self._index_of(active, video_id) if active else None

        queue = state.shuffle_queue
        if state.is_shuffle and active is not None:
            queue = with_queue_for_playlist(
                queue, active.id, sanitize_shuffle_queue(queue.get(active.id), active, video_id)
            )

        self._set(
            is_playing=True,
            current_video_id=video_id,
            current_index=current_index,
            shuffle_queue=queue,
        )

    def pause(self) -> None:
        if self._engine is not None:
            self._engine.pause()
        self._set(is_playing=False)

    def resume(self) -> None:
        if self._engine is not None:
            self._engine.play()
        self._set(is_playing=True)

    def mark_stopped(self) -> None:
        """Record that the engine stopped on its own"""
        self._set(is_playing=False)

    def toggle_loop(self) -> None:
        self._set(loop_mode="one" if self._state.loop_mode == "all" else "all")

    def toggle_shuffle(self) -> None:
        state = self._state
        enabled = not state.is_shuffle
        active = self.active_playlist()
        if not enabled or active is None:
            self._set(is_shuffle=enabled, shuffle_queue={})
            return

        queue = sanitize_shuffle_queue(state.shuffle_queue.get(active.id), active, state.current_video_id)
        self._set(is_shuffle=enabled, shuffle_queue=with_queue_for_playlist(state.shuffle_queue, active.id, queue))

    def _play_shuffled(self, active: Playlist) -> None:
        state = self._state
        next_id, queue = draw_from_shuffle_queue(
            state.shuffle_queue.get(active.id), active, state.current_video_id, self._rng
        )
        video_id = next_id or (active.items[0].id if active.items else None)
        if video_id is None:
            self._set(is_playing=False)
            return

        self._start(video_id)
        self._set(
            current_index=self._index_of(active, video_id),
            current_video_id=video_id,
            is_playing=True,
            shuffle_queue=with_queue_for_playlist(state.shuffle_queue, active.id, queue),
        )

    def _play_at(self, active: Playlist, index: int) -> None:
        video_id = active.items[index].id
        self._start(video_id)
        self._set(current_index=index, current_video_id=video_id, is_playing=True)

    def play_next(self) -> None:
        """Advance; wraps to the first item in loop mode 'all', stops otherwise"""
        active = self.active_playlist()
        if active is None or not active.items:
            self._set(is_playing=False)
            return

        if self._state.is_shuffle:
            self._play_shuffled(active)
            return

        current = self._state.current_index
        next_index = (current if current is not None else -1) + 1
        if next_index < len(active.items):
            self._play_at(active, next_index)
        elif self._state.loop_mode == "all":
            self._play_at(active, 0)
        else:
            self._set(is_playing=False)

    def play_previous(self) -> None:
        """Step back; wraps to the last item in loop mode 'all', stops otherwise"""
        active = self.active_playlist()
        if active is None or not active.items:
            return

        if self._state.is_shuffle:
            self._play_shuffled(active)
            return

        current = self._state.current_index
        previous_index = (current if current is not None else 0) - 1
        if previous_index >= 0:
            self._play_at(active, previous_index)
        elif self._state.loop_mode == "all":
            self._play_at(active, len(active.items) - 1)
        else:
            self._set(is_playing=False)

    # =========================================================================
    # Pinned songs
    # =========================================================================

    def is_pinned(self, video_id: str) -> bool:
        return video_id in self._state.pinned_video_ids

    def toggle_pinned(self, video_id: str) -> None:
        if self.is_pinned(video_id):
            self.remove_pinned(video_id)
            return
        state = self._state
        self._set(
            pinned_video_ids=state.pinned_video_ids | {video_id},
            pinned_order=(*state.pinned_order, video_id),
        )

    def remove_pinned(self, video_id: str) -> None:
        state = self._state
        self._set(
            pinned_video_ids=state.pinned_video_ids - {video_id},
            pinned_order=tuple(v for v in state.pinned_order if v != video_id),
        )

    def reorder_pinned(self, from_index: int, to_index: int) -> None:
        order = self._state.pinned_order
        if not (0 <= from_index < len(order) and 0 <= to_index < len(order)):
            return
        self._set(pinned_order=tuple(move_element(order, from_index, to_index)))

    def set_pinned(self, pinned: PinnedSongs) -> None:
        self._set(pinned_video_ids=pinned.pinned_video_ids, pinned_order=pinned.pinned_order)

    def mark_pinned_synced(self) -> None:
        self._set(is_pinned_synced=True)

    # =========================================================================
    # Session and sync
    # =========================================================================

    def _rebuilt_queue(self, playlists: Sequence[Playlist], active_id: str, current_video_id: str | None) -> ShuffleQueueMap:
        state = self._state
        if not state.is_shuffle:
            return state.shuffle_queue
        return rebuild_shuffle_queues(state.shuffle_queue, playlists, active_id, current_video_id)

    def set_user(self, user_id: str | None) -> None:
        """
        Bind the store to an authenticated user, or clear the session

        On login, playlist ids are reconciled into the user's namespace and
        the bound is re-applied; on logout only the session flags reset.
        """
        if not user_id:
            self._set(user_id=None, is_data_synced=False, is_pinned_synced=False)
            return

        state = self._state
        reconciled = reconcile(state.playlists, state.active_playlist_id, user_id)
        bounded = enforce_bounds(reconciled.playlists, reconciled.active_playlist_id)

        changes = {"user_id": user_id, "is_data_synced": False, "is_pinned_synced": False}
        changed = (
            reconciled.changed
            or len(bounded.playlists) != len(state.playlists)
            or bounded.active_playlist_id != state.active_playlist_id
            or bounded.can_create != state.can_create_playlist
        )
        if changed:
            changes.update(
                playlists=bounded.playlists,
                active_playlist_id=bounded.active_playlist_id,
                can_create_playlist=bounded.can_create,
                shuffle_queue=self._rebuilt_queue(
                    bounded.playlists, bounded.active_playlist_id, state.current_video_id
                ),
            )
        self._set(**changes)

    def load_user_data(self, data: UserPlaylistData) -> None:
        """
        Replace playlist state wholesale with data chosen during sync

        Ids are reconciled for the current user and the bound applied;
        playback is positioned on the first item of the active playlist.
        """
        reconciled = reconcile(strip_favorites(data.playlists), data.active_playlist_id, self._state.user_id)
        bounded = enforce_bounds(reconciled.playlists, reconciled.active_playlist_id)

        if is_favorites(bounded.active_playlist_id):
            active = derive_favorites_playlist(self._state.pinned_order, bounded.playlists)
        else:
            active = next(
                (p for p in bounded.playlists if p.id == bounded.active_playlist_id),
                bounded.playlists[0] if bounded.playlists else None,
            )
        first_video = active.items[0].id if active is not None and active.items else None

        queue: ShuffleQueueMap = {}
        if data.is_shuffle:
            queue = rebuild_shuffle_queues({}, bounded.playlists, bounded.active_playlist_id, first_video)

        self._set(
            playlists=bounded.playlists,
            active_playlist_id=bounded.active_playlist_id,
            can_create_playlist=bounded.can_create,
            loop_mode=data.loop_mode,
            is_shuffle=data.is_shuffle,
            current_video_id=first_video,
            current_index=0 if first_video else None,
            is_data_synced=True,
            shuffle_queue=queue,
        )

    def prepare_push(self) -> UserPlaylistData:
        """
        Reconcile ids and bounds ahead of a push and return the snapshot to send

        Corrections are applied to local state first, so what is sent is
        exactly what the store holds.
        """
        state = self._state
        reconciled = reconcile(state.playlists, state.active_playlist_id, state.user_id)
        bounded = enforce_bounds(reconciled.playlists, reconciled.active_playlist_id)

        if (
            reconciled.changed
            or len(bounded.playlists) != len(state.playlists)
            or bounded.active_playlist_id != state.active_playlist_id
            or bounded.can_create != state.can_create_playlist
        ):
            changed_active = bounded.active_playlist_id != state.active_playlist_id
            self._set(
                playlists=bounded.playlists,
                active_playlist_id=bounded.active_playlist_id,
                can_create_playlist=bounded.can_create,
                current_video_id=None if changed_active else state.current_video_id,
                current_index=None if changed_active else state.current_index,
                is_playing=False if changed_active else state.is_playing,
            )
        return self.snapshot()

    def apply_server_data(self, data: UserPlaylistData) -> None:
        """Adopt the snapshot the server echoed back after a successful push"""
        state = self._state
        queue: ShuffleQueueMap = {}
        if data.is_shuffle:
            queue = rebuild_shuffle_queues(
                state.shuffle_queue, data.playlists, data.active_playlist_id, state.current_video_id
            )
        self._set(
            playlists=data.playlists,
            active_playlist_id=data.active_playlist_id,
            can_create_playlist=can_create_playlist(data.playlists),
            loop_mode=data.loop_mode,
            is_shuffle=data.is_shuffle,
            shuffle_queue=queue,
            is_data_synced=True,
        )

    def mark_synced(self) -> None:
        self._set(is_data_synced=True)

    def restore(
        self,
        data: UserPlaylistData,
        pinned: PinnedSongs | None = None,
        shuffle_queue: ShuffleQueueMap | None = None,
    ) -> None:
        """Hydrate from persisted local state without touching session flags"""
        bounded = enforce_bounds(strip_favorites(data.playlists), data.active_playlist_id)
        changes = {
            "playlists": bounded.playlists,
            "active_playlist_id": bounded.active_playlist_id,
            "can_create_playlist": bounded.can_create,
            "loop_mode": data.loop_mode,
            "is_shuffle": data.is_shuffle,
            "shuffle_queue": rebuild_shuffle_queues(
                shuffle_queue or {}, bounded.playlists, bounded.active_playlist_id, None
            ) if data.is_shuffle else {},
        }
        if pinned is not None:
            changes.update(pinned_video_ids=pinned.pinned_video_ids, pinned_order=pinned.pinned_order)
        self._set(**changes)
