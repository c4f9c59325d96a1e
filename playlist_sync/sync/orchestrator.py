"""
Playlist sync orchestration

PlaylistSyncOrchestrator drives one authenticated session against the
remote store:

    1. pull_on_login()   fetch, compare hashes, resolve, apply or prompt
    2. request_push()    debounced push of local changes (store observer)
    3. on_logout()       drop timers and guards

Pushes are gated twice: nothing is sent before the first pull finished
(has_loaded_from_server), and nothing is sent when the content hash equals
the last hash the server confirmed.
"""

import asyncio
import inspect
from typing import Awaitable, Callable, Protocol

from ..core.constants import DEFAULT_DEBOUNCE_SECONDS
from ..core.exceptions import IntegrityError, TransportError
from ..core.logger import get_logger
from ..models import UserPlaylistData
from ..player.store import PlayerState, PlayerStore
from .diff import calculate_diff
from .hashing import content_hash
from .resolver import ConflictAnalysis, ConflictResolver, SyncDecision


logger = get_logger(__name__)


# Fields whose change makes the playlist snapshot dirty
SNAPSHOT_FIELDS = ("playlists", "active_playlist_id", "loop_mode", "is_shuffle")


class PlaylistRemote(Protocol):
    async def fetch_playlists(self) -> tuple[UserPlaylistData | None, str | None]:
        ...

    async def push_playlists(self, data: UserPlaylistData) -> UserPlaylistData:
        ...


class HydrationSource(Protocol):
    hydrated: asyncio.Event


ConflictCallback = Callable[[ConflictAnalysis], Awaitable[None] | None]


def snapshot_changed(state: PlayerState, previous: PlayerState) -> bool:
    return any(getattr(state, name) != getattr(previous, name) for name in SNAPSHOT_FIELDS)


class PlaylistSyncOrchestrator:
    """Keeps a PlayerStore and the remote playlist store converged"""

    def __init__(
        self,
        store: PlayerStore,
        remote: PlaylistRemote,
        local_store: HydrationSource | None = None,
        on_conflict: ConflictCallback | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        resolver: ConflictResolver | None = None,
    ) -> None:
        self.store = store
        self.remote = remote
        self.local_store = local_store
        self.on_conflict = on_conflict
        self.debounce_seconds = debounce_seconds
        self.resolver = resolver or ConflictResolver()

        self.has_loaded_from_server = False
        self.pending_conflict: ConflictAnalysis | None = None
        self.last_confirmed_hash: str | None = None

        self._pending_push: asyncio.Task | None = None
        # One push at a time; a later push sends whatever the store holds then
        self._push_lock = asyncio.Lock()
        # Bumped on logout so results of older pushes are discarded
        self._session = 0
        self._unsubscribe: Callable[[], None] | None = None

    # =========================================================================
    # Store subscription
    # =========================================================================

    def attach(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_state_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._cancel_pending_push()

    def _on_state_change(self, state: PlayerState, previous: PlayerState) -> None:
        if snapshot_changed(state, previous):
            self.request_push()

    # =========================================================================
    # Pull
    # =========================================================================

    async def pull_on_login(self) -> SyncDecision | None:
        """
        First reconciliation after login

        Returns:
            The decision taken, or None when skipped (not authenticated)
            or when the remote store could not be reached.
        """
        if not self.store.is_authenticated:
            logger.debug("Skipping playlist pull: no authenticated user")
            return None

        if self.local_store is not None:
            await self.local_store.hydrated.wait()

        try:
            remote_data, remote_hash = await self.remote.fetch_playlists()
        except TransportError as e:
            logger.error(f"Failed to load playlists from server: {e}")
            self.has_loaded_from_server = True
            await self.push_now()
            return None

        local_data = self.store.snapshot()
        local_hash = content_hash(local_data)

        if remote_data is not None and (remote_hash or content_hash(remote_data)) == local_hash:
            logger.info("Local and server playlists already match")
            self.last_confirmed_hash = local_hash
            self.store.mark_synced()
            self.has_loaded_from_server = True
            return SyncDecision.NO_ACTION

        analysis = self.resolver.analyze(local_data, remote_data)
        logger.info(f"Conflict analysis: {analysis.decision.value} ({analysis.reason})")

        if analysis.decision is SyncDecision.AUTO_SYNC:
            try:
                validated = self.resolver.validate_auto_sync(analysis.data)
            except IntegrityError as e:
                logger.warning(f"{e.message}, asking the user instead")
                await self._raise_conflict(ConflictAnalysis(
                    decision=SyncDecision.SHOW_MODAL,
                    local=local_data,
                    remote=remote_data,
                    diff=calculate_diff(local_data, remote_data) if remote_data is not None else None,
                    metadata=analysis.metadata,
                    reason="integrity-check-failed",
                ))
                return SyncDecision.SHOW_MODAL

            self.store.load_user_data(validated)
            self.has_loaded_from_server = True
            await self.push_now()
            return SyncDecision.AUTO_SYNC

        if analysis.decision is SyncDecision.SHOW_MODAL:
            await self._raise_conflict(analysis)
            return SyncDecision.SHOW_MODAL

        self.has_loaded_from_server = True
        await self.push_now()
        return SyncDecision.NO_ACTION

    async def _raise_conflict(self, analysis: ConflictAnalysis) -> None:
        self.pending_conflict = analysis
        if self.on_conflict is None:
            logger.warning("Playlist conflict detected but no handler is registered")
            return
        result = self.on_conflict(analysis)
        if inspect.isawaitable(result):
            await result

    async def resolve_conflict(self, choice: str) -> None:
        """
        Settle a pending conflict

        Args:
            choice: "local" keeps this device's data, "remote" adopts the server's

        Raises:
            ValueError: For any other choice
        """
        if choice not in ("local", "remote"):
            raise ValueError(f"Unknown conflict choice: {choice!r}")

        pending = self.pending_conflict
        if pending is None:
            logger.warning("resolve_conflict() called without a pending conflict")
            return

        if choice == "remote" and isinstance(pending.remote, UserPlaylistData):
            self.store.load_user_data(pending.remote)
        elif choice == "remote":
            logger.warning("Server data is malformed, keeping local playlists")

        self.pending_conflict = None
        self.has_loaded_from_server = True
        logger.info(f"Conflict resolved with {choice} data")
        await self.push_now()

    # =========================================================================
    # Push
    # =========================================================================

    def request_push(self) -> None:
        """Schedule a debounced push if local data diverged from the last confirmed copy"""
        if not self.store.is_authenticated or not self.has_loaded_from_server:
            return

        if content_hash(self.store.snapshot()) == self.last_confirmed_hash:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, push not scheduled")
            return

        self._cancel_pending_push()
        self._pending_push = loop.create_task(self._debounced_push())

    async def _debounced_push(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._pending_push = None
        if content_hash(self.store.snapshot()) == self.last_confirmed_hash:
            return
        await self.push_now()

    def _cancel_pending_push(self) -> None:
        if self._pending_push is not None and not self._pending_push.done():
            self._pending_push.cancel()
        self._pending_push = None

    async def push_now(self) -> bool:
        """
        Send the current snapshot immediately

        Returns:
            True if the server accepted it
        """
        if not self.store.is_authenticated:
            return False

        async with self._push_lock:
            return await self._push_locked()

    async def _push_locked(self) -> bool:
        if not self.store.is_authenticated:
            return False

        session = self._session
        snapshot = self.store.prepare_push()
        sent_hash = content_hash(snapshot)
        try:
            saved = await self.remote.push_playlists(snapshot)
        except TransportError as e:
            logger.error(f"Failed to sync playlists to server: {e}")
            return False

        if session != self._session or not self.store.is_authenticated:
            logger.debug("Discarding playlist push result from an ended session")
            return False

        self.last_confirmed_hash = content_hash(saved)
        if content_hash(self.store.snapshot()) != sent_hash:
            # Edited while the push was in flight: keep local state and send it next
            logger.debug("Playlists changed during push, scheduling another")
            self.request_push()
            return True

        self.store.apply_server_data(saved)
        logger.debug(f"Playlists synced ({len(saved.playlists)} playlists)")
        return True

    async def flush(self) -> None:
        """Wait for scheduled pushes, including ones queued by a push, to finish"""
        while True:
            pending = self._pending_push
            if pending is None or pending.done():
                return
            try:
                await pending
            except asyncio.CancelledError:
                pass

    # =========================================================================
    # Session end
    # =========================================================================

    def on_logout(self) -> None:
        self._cancel_pending_push()
        self._session += 1
        self.has_loaded_from_server = False
        self.pending_conflict = None
        self.last_confirmed_hash = None

