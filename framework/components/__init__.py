"""
Playback components - session state containers.
"""

from framework.components.dialog import PlaybackContext, PlaybackState

__all__ = [
    "PlaybackContext",
    "PlaybackState",
]
