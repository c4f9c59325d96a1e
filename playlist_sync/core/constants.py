"""
Shared constants for playlist-sync.

Playlist limits, the Favorites sentinel and the seed data every new local
state starts from.
"""

# Maximum number of real (non-virtual) playlists a user may hold
MAX_PLAYLIST_COUNT = 10

# The Favorites playlist is derived from pinned order, never stored
FAVORITES_PLAYLIST_ID = "favorites"
FAVORITES_PLAYLIST_NAME = "Favorites"

LOOP_MODES = ("all", "one")
DEFAULT_LOOP_MODE = "all"

DEFAULT_INITIAL_VIDEO_ID = "V4UL6BYgUXw"
DEFAULT_INITIAL_VIDEO_TITLE = "Aerith's Theme | Pure | Final Fantasy VII Rebirth Soundtrack"

DEFAULT_PLAYLIST_IDS = (
    "playlist-default-1",
    "playlist-default-2",
    "playlist-default-3",
)

DEFAULT_ACTIVE_PLAYLIST_ID = DEFAULT_PLAYLIST_IDS[0]

# Label used by the diff for items without a title
UNTITLED_LABEL = "Untitled"

# Comparisons slower than this are logged as warnings
SLOW_COMPARISON_MS = 100

# Trailing debounce before a push is transmitted
DEFAULT_DEBOUNCE_SECONDS = 1.0
