"""
Playlist identifier generation and reconciliation

Playlist ids are namespaced per owner once a user is known:

    playlist-<owner_id>-<unique segment>    (authenticated)
    playlist-<unique segment>                (anonymous)

reconcile() rewrites ids that are empty, legacy (playlist-<digits>),
duplicated, or outside the current owner's namespace, and keeps the active
playlist pointer consistent. It runs on login and before every push.
"""

import random
import re
import string
import time
import uuid
from dataclasses import dataclass, replace
from typing import Sequence

from ..core.constants import FAVORITES_PLAYLIST_ID
from ..core.logger import get_logger
from ..models import Playlist


logger = get_logger(__name__)

LEGACY_PLAYLIST_ID_PATTERN = re.compile(r"^playlist-\d+$")

_BASE36_ALPHABET = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of reconcile(); changed is False when nothing was rewritten"""
    playlists: tuple[Playlist, ...]
    active_playlist_id: str
    changed: bool


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def fallback_unique_segment() -> str:
    """Base36 millisecond timestamp plus an 8-character random base36 suffix"""
    time_part = _to_base36(int(time.time() * 1000))
    random_part = "".join(random.choice(_BASE36_ALPHABET) for _ in range(8))
    return f"{time_part}-{random_part}"


def create_unique_segment() -> str:
    try:
        return str(uuid.uuid4())
    except (OSError, NotImplementedError):
        # uuid4 needs os.urandom
        return fallback_unique_segment()


def generate_playlist_id(owner_id: str | None = None) -> str:
    """
    Generate a fresh playlist id

    Args:
        owner_id: Authenticated user id; None/"" for anonymous state

    Returns:
        'playlist-{owner_id}-{segment}' or 'playlist-{segment}'
    """
    segment = create_unique_segment()
    if owner_id:
        return f"playlist-{owner_id}-{segment}"
    return f"playlist-{segment}"


def owner_prefix(owner_id: str) -> str:
    return f"playlist-{owner_id}-"


def _needs_new_id(playlist_id: str, seen: set[str], owner_id: str | None) -> bool:
    if not playlist_id:
        return True
    if LEGACY_PLAYLIST_ID_PATTERN.match(playlist_id):
        return True
    if playlist_id in seen:
        return True
    if owner_id and not playlist_id.startswith(owner_prefix(owner_id)):
        return True
    return False


def reconcile(
    playlists: Sequence[Playlist],
    active_playlist_id: str,
    owner_id: str | None = None,
) -> ReconcileResult:
    """
    Rewrite malformed, colliding or foreign playlist ids

    Args:
        playlists: Playlists in display order
        active_playlist_id: Current active pointer
        owner_id: Authenticated user id, or None before login

    Returns:
        ReconcileResult with the rewritten playlists, the remapped active id
        and whether anything changed.

    Only the first occurrence of an original id is recorded in the
    old->new mapping, so the active pointer follows the first playlist
    that carried it, never a later duplicate.
    """
    seen: set[str] = set()
    id_map: dict[str, str] = {}
    changed = False
    updated: list[Playlist] = []

    for playlist in playlists:
        original_id = playlist.id
        next_id = original_id

        if _needs_new_id(next_id, seen, owner_id):
            generated = generate_playlist_id(owner_id)
            while generated in seen:
                generated = generate_playlist_id(owner_id)
            if original_id and original_id not in id_map:
                id_map[original_id] = generated
            next_id = generated
            changed = True
        elif original_id and original_id not in id_map:
            id_map[original_id] = next_id

        seen.add(next_id)
        updated.append(playlist if next_id == original_id else replace(playlist, id=next_id))

    next_active = active_playlist_id
    if active_playlist_id == FAVORITES_PLAYLIST_ID:
        pass
    elif active_playlist_id in id_map:
        next_active = id_map[active_playlist_id]
        if next_active != active_playlist_id:
            changed = True
    elif active_playlist_id and active_playlist_id not in seen:
        next_active = updated[0].id if updated else ""
        changed = True

    if not next_active and updated:
        next_active = updated[0].id
        changed = changed or next_active != active_playlist_id

    if changed:
        logger.debug(
            f"Reconciled playlist ids for owner {owner_id or '<anonymous>'}: "
            f"{len(id_map)} mapped, active {active_playlist_id!r} -> {next_active!r}"
        )

    return ReconcileResult(
        playlists=tuple(updated),
        active_playlist_id=next_active,
        changed=changed,
    )
