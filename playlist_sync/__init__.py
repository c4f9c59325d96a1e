"""
playlist-sync: keep a music player's playlists consistent across devices.

A user edits playlists on a device, anonymously or signed in. Once signed
in, local state and the server copy are reconciled and every later change
is pushed after a short debounce.

Architecture:
    The sync flow for one session:

    1. Hydrate (client/local.py): restore the player state file
    2. Login (player/store.py): reconcile playlist ids into the user's
       namespace and clamp the playlist count
    3. Pull (sync/orchestrator.py): fetch the server snapshot, compare
       content hashes, then let the resolver decide
         - AUTO_SYNC: apply silently after an integrity check
         - SHOW_MODAL: ask the user which side wins
         - NO_ACTION: push local data
    4. Push: debounced, skipped when the content hash is unchanged

Modules:
    core/       - Configuration, logging, exceptions, constants
    models.py   - Snapshot types and wire-format parsing
    playlists/  - Id reconciliation, bounds, naming, Favorites, shuffle queues
    sync/       - Normalizer, comparator, diff, resolver, orchestrators
    player/     - PlayerStore state container and engine interface
    server/     - SQLite storage, first-sync merge, aiohttp API
    client/     - HTTP client and local state file
    cli.py      - Command-line interface

Usage:
    Command Line:
        playlist-sync serve
        playlist-sync sync --prefer remote
        playlist-sync diff local.json remote.json

    Python API:
        from playlist_sync.player import PlayerStore
        from playlist_sync.client import RemotePlaylistStore
        from playlist_sync.sync import PlaylistSyncOrchestrator

        store = PlayerStore()
        store.set_user("user-123")
        async with RemotePlaylistStore(base_url, token) as remote:
            orchestrator = PlaylistSyncOrchestrator(store, remote)
            await orchestrator.pull_on_login()
"""

__version__ = "1.0.0"
