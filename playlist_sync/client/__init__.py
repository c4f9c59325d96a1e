"""
Client side of the sync: HTTP access to the remote store and the local state file.
"""

from .local import LocalStateStore
from .remote import RemotePlaylistStore

__all__ = [
    'LocalStateStore',
    'RemotePlaylistStore',
]
