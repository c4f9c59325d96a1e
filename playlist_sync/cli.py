"""
Command line interface for playlist-sync

Commands:
    serve                    Run the remote store HTTP server
    sync                     Pull, resolve and push the local player state once
    diff LOCAL REMOTE        Show what differs between two snapshot files
    resolve LOCAL REMOTE     Show what the conflict resolver would decide
    hash FILE                Print the content hash of a snapshot file
    config show              Print the effective configuration

Snapshot files contain the JSON wire format (playlists, activePlaylistId,
loopMode, isShuffle); a file containing `null` stands for an absent side.
"""

import asyncio
import functools
import json
import sys
from pathlib import Path
from typing import Any

import click
from aiohttp import web

from . import __version__
from .client.local import LocalStateStore
from .client.remote import RemotePlaylistStore
from .core.config import Config, load_config
from .core.exceptions import PlaylistSyncError
from .core.logger import get_logger, setup_logging, shutdown_logging
from .player.store import PlayerState, PlayerStore
from .server.app import create_app
from .server.database import Database
from .sync.diff import ChangeType, DataDiff, calculate_diff
from .sync.hashing import content_hash
from .sync.orchestrator import PlaylistSyncOrchestrator
from .sync.pinned import PinnedSongsSyncOrchestrator
from .sync.resolver import ConflictAnalysis, SyncDecision, analyze_conflict


logger = get_logger(__name__)


CHANGE_COLORS = {
    ChangeType.ADDED: 'green',
    ChangeType.REMOVED: 'red',
    ChangeType.MODIFIED: 'yellow',
    ChangeType.REORDERED: 'cyan',
}


def print_banner():
    """Print the application banner"""
    banner = """
╔═══════════════════════════════════════════════════════════════╗
║                         playlist-sync                         ║
║                                                               ║
║     Keep player playlists in sync between devices and cloud   ║
║                                                               ║
╚═══════════════════════════════════════════════════════════════╝
    """
    click.echo(click.style(banner, fg='green', bold=True))


def handle_error(func):
    """
    Decorator to handle common CLI errors gracefully

    Known errors are reported with their message (details go to the debug
    log); anything else is logged and reported as a generic failure.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except click.ClickException:
            raise
        except KeyboardInterrupt:
            click.echo(click.style("\n\nOperation cancelled by user", fg='yellow'))
            sys.exit(130)
        except PlaylistSyncError as e:
            logger.error(f"Command failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
            click.echo(click.style(f"Error: {e.message}", fg='red'), err=True)
            sys.exit(1)
        except Exception as e:
            logger.error(f"Command failed: {e}", exc_info=True)
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


def read_snapshot_file(path: Path) -> Any:
    """Raw JSON content of a snapshot file (None for a `null` document)"""
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def echo_diff(diff: DataDiff) -> None:
    summary = diff.summary
    click.echo(click.style("\n📊 Summary:", fg='cyan', bold=True))
    click.echo(f"   Playlists added: {summary.playlists_added}")
    click.echo(f"   Playlists removed: {summary.playlists_removed}")
    click.echo(f"   Playlists modified: {summary.playlists_modified}")
    click.echo(f"   Songs added: {summary.songs_added}")
    click.echo(f"   Songs removed: {summary.songs_removed}")
    click.echo(f"   Songs reordered: {summary.songs_reordered}")

    if not diff.playlist_diffs:
        click.echo(click.style("\n✅ No differences", fg='green'))
        return

    click.echo(click.style("\n📋 Playlists:", fg='cyan', bold=True))
    for playlist_diff in diff.playlist_diffs:
        label = click.style(playlist_diff.change_type.value, fg=CHANGE_COLORS[playlist_diff.change_type])
        name = playlist_diff.playlist_name
        if playlist_diff.local_name and playlist_diff.remote_name and playlist_diff.local_name != playlist_diff.remote_name:
            name = f"{playlist_diff.local_name} → {playlist_diff.remote_name}"
        click.echo(f"   [{label}] {name} ({playlist_diff.playlist_id})")
        for item_diff in playlist_diff.item_diffs:
            item_label = click.style(item_diff.change_type.value, fg=CHANGE_COLORS[item_diff.change_type])
            click.echo(f"      - [{item_label}] {item_diff.title} ({item_diff.item_id})")


def echo_analysis(analysis: ConflictAnalysis) -> None:
    metadata = analysis.metadata
    click.echo(f"Decision: {click.style(analysis.decision.value, bold=True)} ({analysis.reason})")
    click.echo(f"   Local: {metadata.local_playlist_count} playlists, {metadata.local_item_count} songs")
    click.echo(f"   Remote: {metadata.remote_playlist_count} playlists, {metadata.remote_item_count} songs")


# Main CLI group - root command that all subcommands attach to
@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False, path_type=Path),
              help='Path to config file')
@click.pass_context
@handle_error
def cli(ctx, version, verbose, config_path):
    """
    playlist-sync - Playlist synchronization between devices and a server

    Keeps a player's playlists, playback settings and pinned songs
    consistent between a local state file and a remote store.
    """
    ctx.ensure_object(dict)

    if version:
        click.echo(f"playlist-sync v{__version__}")
        return

    config = load_config(config_path)
    ctx.obj['config'] = config

    level = "DEBUG" if verbose else config.logging.level
    setup_logging(level, config.logging.log_directory, config.logging.colored)
    ctx.call_on_close(shutdown_logging)

    if verbose:
        logger.info("Verbose mode enabled")

    if ctx.invoked_subcommand is None:
        print_banner()
        click.echo(ctx.get_help())


@cli.command()
@click.option('--host', help='Bind address (overrides server.host)')
@click.option('--port', type=click.IntRange(1, 65535), help='Port (overrides server.port)')
@click.pass_context
@handle_error
def serve(ctx, host, port):
    """Run the remote store HTTP server"""
    config: Config = ctx.obj['config']
    database_path = config.server.database_path
    database_path.parent.mkdir(parents=True, exist_ok=True)

    database = Database(database_path)
    app = create_app(config.server, database)

    bind_host = host or config.server.host
    bind_port = port or config.server.port
    click.echo(click.style(f"🚀 Serving on http://{bind_host}:{bind_port}", fg='green'))
    click.echo(f"   Database: {database_path}")
    click.echo(f"   Tokens configured: {len(config.server.tokens)}")
    web.run_app(app, host=bind_host, port=bind_port, print=None)


@cli.command()
@click.argument('local', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('remote', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--json', 'as_json', is_flag=True, help='Print the diff as JSON')
@handle_error
def diff(local, remote, as_json):
    """Show differences between two snapshot files"""
    result = calculate_diff(read_snapshot_file(local), read_snapshot_file(remote))
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return
    echo_diff(result)


@cli.command()
@click.argument('local', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('remote', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@handle_error
def resolve(local, remote):
    """Show what the conflict resolver decides for two snapshot files"""
    analysis = analyze_conflict(read_snapshot_file(local), read_snapshot_file(remote))
    echo_analysis(analysis)

    if analysis.decision is SyncDecision.AUTO_SYNC and analysis.data is not None:
        click.echo(click.style("\nSnapshot to adopt:", fg='cyan', bold=True))
        click.echo(json.dumps(analysis.data.to_dict(), indent=2, ensure_ascii=False))
    elif analysis.diff is not None:
        echo_diff(analysis.diff)


@cli.command(name='hash')
@click.argument('snapshot_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@handle_error
def hash_command(snapshot_file):
    """Print the content hash of a snapshot file"""
    click.echo(content_hash(read_snapshot_file(snapshot_file)))


async def run_sync(config: Config, user_id: str, prefer: str | None) -> tuple[PlayerState, SyncDecision | None]:
    """
    One full sync round: hydrate, pull, resolve, push, persist

    Raises:
        click.ClickException: On an unresolved conflict without --prefer
    """
    store = PlayerStore()
    local_store = LocalStateStore(config.client.state_file)
    local_store.hydrate(store)
    local_store.attach(store)
    store.set_user(user_id)

    try:
        async with RemotePlaylistStore(config.client.base_url, config.client.token) as remote:
            playlists = PlaylistSyncOrchestrator(
                store, remote,
                local_store=local_store,
                on_conflict=echo_analysis,
                debounce_seconds=config.client.debounce_seconds,
            )
            pinned = PinnedSongsSyncOrchestrator(
                store, remote,
                local_store=local_store,
                debounce_seconds=config.client.debounce_seconds,
            )

            decision = await playlists.pull_on_login()
            if decision is SyncDecision.SHOW_MODAL:
                pending = playlists.pending_conflict
                if pending is not None and pending.diff is not None:
                    echo_diff(pending.diff)
                if prefer is None:
                    raise click.ClickException(
                        "Local and server playlists differ; rerun with --prefer local or --prefer remote"
                    )
                await playlists.resolve_conflict(prefer)

            await pinned.pull_on_login()
            await pinned.flush()
    finally:
        local_store.detach()

    return store.state, decision


@cli.command()
@click.option('--prefer', type=click.Choice(['local', 'remote']),
              help='Which side wins if local and server playlists conflict')
@click.option('--user-id', help='Account id for the configured token (overrides client.user_id)')
@click.pass_context
@handle_error
def sync(ctx, prefer, user_id):
    """Synchronize the local state file with the server once"""
    config: Config = ctx.obj['config']
    if not config.client.token:
        raise click.ClickException("No client token configured (client.token or PLAYLIST_SYNC_TOKEN)")

    user_id = user_id or config.client.user_id
    if not user_id:
        raise click.ClickException("No user id configured (client.user_id, PLAYLIST_SYNC_USER_ID or --user-id)")

    click.echo(f"🔄 Syncing {config.client.state_file} with {config.client.base_url}")
    state, decision = asyncio.run(run_sync(config, user_id, prefer))

    total_items = sum(len(playlist.items) for playlist in state.playlists)
    click.echo(click.style("\n✅ Sync completed", fg='green', bold=True))
    click.echo(f"   Decision: {decision.value if decision else 'server unreachable, local data kept'}")
    click.echo(f"   Playlists: {len(state.playlists)}")
    click.echo(f"   Songs: {total_items}")
    click.echo(f"   Pinned songs: {len(state.pinned_order)}")


@cli.group()
def config():
    """Configuration management"""
    pass


@config.command()
@click.pass_context
@handle_error
def show(ctx):
    """Show the effective configuration"""
    current: Config = ctx.obj['config']

    click.echo(click.style("\n⚙️  Server:", fg='cyan', bold=True))
    click.echo(f"   Host: {current.server.host}")
    click.echo(f"   Port: {current.server.port}")
    click.echo(f"   Database: {current.server.database_path}")
    click.echo(f"   Tokens: {len(current.server.tokens)} configured")

    click.echo(click.style("\n📱 Client:", fg='cyan', bold=True))
    click.echo(f"   Server URL: {current.client.base_url}")
    click.echo(f"   Token: {'set' if current.client.token else 'not set'}")
    click.echo(f"   User id: {current.client.user_id or 'not set'}")
    click.echo(f"   State file: {current.client.state_file}")
    click.echo(f"   Debounce: {current.client.debounce_seconds}s")

    click.echo(click.style("\n📝 Logging:", fg='cyan', bold=True))
    click.echo(f"   Level: {current.logging.level}")
    click.echo(f"   Directory: {current.logging.log_directory or 'console only'}")
    click.echo(f"   Colored: {current.logging.colored}")


def main():
    cli(obj={})


if __name__ == '__main__':
    main()
