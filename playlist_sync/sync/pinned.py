"""
Pinned songs sync

Pinned songs follow a simpler flow than playlists: the first pull after
login merges both sides by set union, and every later change is pushed
after a debounce. A push is skipped when the pinned order matches what
the server last confirmed.
"""

import asyncio
import json
from typing import Callable, Protocol, Sequence

from ..core.constants import DEFAULT_DEBOUNCE_SECONDS
from ..core.exceptions import TransportError
from ..core.logger import get_logger
from ..models import PinnedSongs
from ..player.store import PlayerState, PlayerStore
from .orchestrator import HydrationSource


logger = get_logger(__name__)


class PinnedSongsRemote(Protocol):
    async def fetch_pinned_songs(self) -> PinnedSongs:
        ...

    async def push_pinned_songs(self, pinned: PinnedSongs) -> PinnedSongs:
        ...


def merge_pinned_songs(local: Sequence[str], cloud: Sequence[str]) -> PinnedSongs:
    """
    Union of two pinned orders

    Cloud order comes first, then ids pinned only on this device in their
    local order. Duplicates keep their first position.
    """
    merged: list[str] = []
    seen: set[str] = set()
    for video_id in (*cloud, *local):
        if video_id not in seen:
            seen.add(video_id)
            merged.append(video_id)
    return PinnedSongs.from_order(merged)


def pinned_signature(pinned: PinnedSongs) -> str:
    return json.dumps(list(pinned.pinned_order), separators=(",", ":"))


class PinnedSongsSyncOrchestrator:
    """Pull-then-debounced-push loop for pinned songs"""

    def __init__(
        self,
        store: PlayerStore,
        remote: PinnedSongsRemote,
        local_store: HydrationSource | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        self.store = store
        self.remote = remote
        self.local_store = local_store
        self.debounce_seconds = debounce_seconds

        self.last_synced_signature: str | None = None
        self._pending_push: asyncio.Task | None = None
        self._unsubscribe: Callable[[], None] | None = None

    def attach(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_state_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._cancel_pending_push()

    def _on_state_change(self, state: PlayerState, previous: PlayerState) -> None:
        if state.pinned_order != previous.pinned_order:
            self.request_push()

    async def pull_on_login(self) -> None:
        """Merge server pins into the store; on failure keep local pins and allow pushes"""
        if not self.store.is_authenticated or self.store.state.is_pinned_synced:
            return

        if self.local_store is not None:
            await self.local_store.hydrated.wait()

        try:
            cloud = await self.remote.fetch_pinned_songs()
        except TransportError as e:
            logger.error(f"Failed to load pinned songs: {e}")
            self.store.mark_pinned_synced()
            return

        local_order = self.store.state.pinned_order
        merged = merge_pinned_songs(local_order, cloud.pinned_order)
        self.last_synced_signature = pinned_signature(cloud)
        self.store.set_pinned(merged)
        self.store.mark_pinned_synced()

        added = len(merged.pinned_order) - len(cloud.pinned_order)
        logger.info(f"Loaded {len(cloud.pinned_order)} pinned songs from server ({added} local-only)")
        if added:
            self.request_push()

    def request_push(self) -> None:
        state = self.store.state
        if not self.store.is_authenticated or not state.is_pinned_synced:
            return

        if pinned_signature(self.store.pinned_songs()) == self.last_synced_signature:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, pinned push not scheduled")
            return

        self._cancel_pending_push()
        self._pending_push = loop.create_task(self._debounced_push())

    async def _debounced_push(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._pending_push = None
        await self.push_now()

    def _cancel_pending_push(self) -> None:
        if self._pending_push is not None and not self._pending_push.done():
            self._pending_push.cancel()
        self._pending_push = None

    async def push_now(self) -> bool:
        if not self.store.is_authenticated:
            return False

        pinned = self.store.pinned_songs()
        signature = pinned_signature(pinned)
        try:
            await self.remote.push_pinned_songs(pinned)
        except TransportError as e:
            logger.error(f"Failed to sync pinned songs: {e}")
            return False

        self.last_synced_signature = signature
        logger.debug(f"Pinned songs synced ({len(pinned.pinned_order)} songs)")
        return True

    async def flush(self) -> None:
        pending = self._pending_push
        if pending is not None:
            try:
                await pending
            except asyncio.CancelledError:
                pass

    def on_logout(self) -> None:
        self._cancel_pending_push()
        self.last_synced_signature = None
