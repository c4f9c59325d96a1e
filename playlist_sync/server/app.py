"""
HTTP API of the remote store (aiohttp.web)

Routes:
    GET  /api/playlists/load        stored snapshot (or an empty one) + contentHash
    POST /api/playlists/sync        replace the stored snapshot, echo it back
    POST /api/playlists/merge       fold device data into the stored snapshot
    GET  /api/pinned-songs/load     {pinnedVideoIds, pinnedOrder}
    POST /api/pinned-songs/sync     replace pinned songs, echo them back

Every route requires "Authorization: Bearer <token>"; tokens are mapped to
user ids by TokenAuthResolver. Unauthenticated requests get 401, wrong
methods 405, malformed bodies 400 and unexpected failures 500.
"""

import functools
import json
from typing import Any, Awaitable, Callable, Mapping

from aiohttp import web

from ..core.config import ServerConfig
from ..core.exceptions import AuthenticationError, InvalidShape
from ..core.logger import get_logger
from ..models import PinnedSongs, UserPlaylistData
from ..sync.hashing import content_hash
from .database import Database
from .service import PlaylistService


logger = get_logger(__name__)


Handler = Callable[[web.Request, str], Awaitable[web.StreamResponse]]


class TokenAuthResolver:
    """Maps bearer tokens to user ids"""

    def __init__(self, tokens: Mapping[str, str]) -> None:
        self._tokens = dict(tokens)

    def resolve(self, request: web.Request) -> str:
        """
        Return the user id of an authenticated request

        Raises:
            AuthenticationError: Missing, malformed or unknown token
        """
        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise AuthenticationError("Missing bearer token")
        user_id = self._tokens.get(token.strip())
        if not user_id:
            raise AuthenticationError("Unknown token")
        return user_id


SERVICE_KEY = web.AppKey("service", PlaylistService)
AUTH_KEY = web.AppKey("auth", TokenAuthResolver)
DATABASE_KEY = web.AppKey("database", Database)


def json_error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


def authenticated(operation: str) -> Callable[[Handler], Callable[[web.Request], Awaitable[web.StreamResponse]]]:
    """
    Decorator resolving the caller's user id and mapping failures to responses

    The wrapped handler receives (request, user_id). Any unexpected
    exception is logged and answered with a 500.
    """
    def decorator(handler: Handler) -> Callable[[web.Request], Awaitable[web.StreamResponse]]:
        @functools.wraps(handler)
        async def wrapper(request: web.Request) -> web.StreamResponse:
            try:
                user_id = request.app[AUTH_KEY].resolve(request)
            except AuthenticationError as e:
                logger.debug(f"{operation}: rejected request ({e.message})")
                return web.Response(text="Unauthorized", status=401)

            try:
                return await handler(request, user_id)
            except web.HTTPException:
                raise
            except Exception as e:
                logger.error(f"{operation} error: {e}", exc_info=True)
                return json_error("Internal server error", 500)

        return wrapper
    return decorator


async def read_json(request: web.Request) -> Any:
    """Request body as JSON; InvalidShape if it is not JSON at all"""
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidShape("Request body is not valid JSON", details={"path": "$"}) from e


def snapshot_response(data: UserPlaylistData) -> dict[str, Any]:
    payload = data.to_dict()
    payload["contentHash"] = content_hash(data)
    return payload


# =============================================================================
# Playlists
# =============================================================================

@authenticated("Load")
async def load_playlists(request: web.Request, user_id: str) -> web.Response:
    data = request.app[SERVICE_KEY].get_user_playlists(user_id)
    if data is None:
        data = UserPlaylistData()
    return web.json_response(snapshot_response(data))


@authenticated("Sync")
async def sync_playlists(request: web.Request, user_id: str) -> web.Response:
    try:
        data = UserPlaylistData.from_dict(await read_json(request))
    except InvalidShape as e:
        logger.warning(f"Rejected playlist sync for user {user_id}: {e.message} {e.details}")
        return json_error("Invalid data format", 400)

    saved = request.app[SERVICE_KEY].save_user_playlists(user_id, data)
    return web.json_response({"success": True, "data": snapshot_response(saved)})


@authenticated("Merge")
async def merge_playlists(request: web.Request, user_id: str) -> web.Response:
    try:
        data = UserPlaylistData.from_dict(await read_json(request))
    except InvalidShape as e:
        logger.warning(f"Rejected playlist merge for user {user_id}: {e.message} {e.details}")
        return json_error("Invalid data format", 400)

    merged = request.app[SERVICE_KEY].sync_local_data_to_database(user_id, data)
    return web.json_response({"success": True, "data": snapshot_response(merged)})


# =============================================================================
# Pinned songs
# =============================================================================

@authenticated("Load pinned songs")
async def load_pinned_songs(request: web.Request, user_id: str) -> web.Response:
    pinned = request.app[SERVICE_KEY].get_pinned_songs(user_id)
    return web.json_response(pinned.to_dict())


@authenticated("Sync pinned songs")
async def sync_pinned_songs(request: web.Request, user_id: str) -> web.Response:
    try:
        pinned = PinnedSongs.from_dict(await read_json(request))
    except InvalidShape as e:
        logger.warning(f"Rejected pinned songs sync for user {user_id}: {e.message}")
        return json_error("Invalid data format", 400)

    saved = request.app[SERVICE_KEY].save_pinned_songs(user_id, pinned)
    return web.json_response(saved.to_dict())


async def _close_database(app: web.Application) -> None:
    app[DATABASE_KEY].close()


def create_app(config: ServerConfig, database: Database) -> web.Application:
    """
    Build the aiohttp application

    Args:
        config: Server settings (tokens are read from here)
        database: Open Database; closed on application cleanup
    """
    app = web.Application()
    app[DATABASE_KEY] = database
    app[SERVICE_KEY] = PlaylistService(database)
    app[AUTH_KEY] = TokenAuthResolver(config.tokens)

    app.router.add_get("/api/playlists/load", load_playlists)
    app.router.add_post("/api/playlists/sync", sync_playlists)
    app.router.add_post("/api/playlists/merge", merge_playlists)
    app.router.add_get("/api/pinned-songs/load", load_pinned_songs)
    app.router.add_post("/api/pinned-songs/sync", sync_pinned_songs)

    app.on_cleanup.append(_close_database)

    if not config.tokens:
        logger.warning("No API tokens configured, every request will be rejected")
    return app
