"""
Playback engine interface

The player store drives an external media player through three calls and
never inspects it otherwise. Any object with these methods works.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class PlaybackEngine(Protocol):
    def load_by_id(self, video_id: str) -> None:
        """Load a media item by its external id"""
        ...

    def play(self) -> None:
        ...

    def pause(self) -> None:
        ...
