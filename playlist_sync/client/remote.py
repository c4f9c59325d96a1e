"""
HTTP client for the remote store

RemotePlaylistStore wraps an aiohttp ClientSession and speaks the JSON
wire format of the server. Network failures, non-2xx answers and
malformed response bodies all surface as TransportError.

Usage:
    async with RemotePlaylistStore("http://127.0.0.1:8080", token) as remote:
        snapshot, remote_hash = await remote.fetch_playlists()
"""

import asyncio
from typing import Any

import aiohttp

from ..core.exceptions import InvalidShape, TransportError
from ..core.logger import get_logger
from ..models import PinnedSongs, UserPlaylistData


logger = get_logger(__name__)


DEFAULT_TIMEOUT_SECONDS = 10.0


class RemotePlaylistStore:
    """Client for the /api/playlists and /api/pinned-songs routes"""

    def __init__(
        self,
        base_url: str,
        token: str | None,
        session: aiohttp.ClientSession | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> 'RemotePlaylistStore':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with self._get_session().request(
                method, url, json=payload, headers=self._headers()
            ) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise TransportError(
                        f"{method} {path} failed with HTTP {response.status}",
                        details={"url": url, "body": body[:200]},
                        status_code=response.status,
                    )
                return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise TransportError(
                f"{method} {path} failed: {str(e) or type(e).__name__}",
                details={"url": url, "original_error": repr(e)},
            ) from e

    @staticmethod
    def _parse_snapshot(payload: Any, path: str) -> UserPlaylistData:
        try:
            return UserPlaylistData.from_dict(payload)
        except InvalidShape as e:
            raise TransportError(
                f"Malformed snapshot from {path}: {e.message}",
                details=e.details,
            ) from e

    # =========================================================================
    # Playlists
    # =========================================================================

    async def fetch_playlists(self) -> tuple[UserPlaylistData | None, str | None]:
        """
        Load the stored snapshot

        Returns:
            (snapshot, content_hash). snapshot is None when the server holds
            no playlists for this user.
        """
        payload = await self._request("GET", "/api/playlists/load")
        snapshot = self._parse_snapshot(payload, "/api/playlists/load")
        remote_hash = payload.get("contentHash") if isinstance(payload, dict) else None
        if not snapshot.playlists:
            return None, remote_hash
        logger.debug(f"Fetched {len(snapshot.playlists)} playlists from server")
        return snapshot, remote_hash

    async def push_playlists(self, data: UserPlaylistData) -> UserPlaylistData:
        """Replace the stored snapshot; returns what the server saved"""
        payload = await self._request("POST", "/api/playlists/sync", data.to_dict())
        if not isinstance(payload, dict) or not payload.get("success"):
            raise TransportError("Server did not confirm the playlist sync", details={"response": payload})
        return self._parse_snapshot(payload.get("data"), "/api/playlists/sync")

    async def merge_playlists(self, data: UserPlaylistData) -> UserPlaylistData:
        """Fold device data into the stored snapshot; returns the merged result"""
        payload = await self._request("POST", "/api/playlists/merge", data.to_dict())
        if not isinstance(payload, dict) or not payload.get("success"):
            raise TransportError("Server did not confirm the playlist merge", details={"response": payload})
        return self._parse_snapshot(payload.get("data"), "/api/playlists/merge")

    # =========================================================================
    # Pinned songs
    # =========================================================================

    async def fetch_pinned_songs(self) -> PinnedSongs:
        payload = await self._request("GET", "/api/pinned-songs/load")
        try:
            return PinnedSongs.from_dict(payload)
        except InvalidShape as e:
            raise TransportError(f"Malformed pinned songs response: {e.message}", details=e.details) from e

    async def push_pinned_songs(self, pinned: PinnedSongs) -> PinnedSongs:
        payload = await self._request("POST", "/api/pinned-songs/sync", pinned.to_dict())
        try:
            return PinnedSongs.from_dict(payload)
        except InvalidShape as e:
            raise TransportError(f"Malformed pinned songs response: {e.message}", details=e.details) from e
