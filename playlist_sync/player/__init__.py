"""
Player state: the PlayerStore container and the engine interface it drives
"""

from .engine import PlaybackEngine
from .store import PlayerState, PlayerStore, StateObserver

__all__ = [
    'PlaybackEngine',
    'PlayerState',
    'PlayerStore',
    'StateObserver',
]
