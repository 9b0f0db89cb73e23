"""
Dialog module - interactive playback of dialogue graphs.

Provides:
- Entry node selection and answer navigation
- Callback dispatch to host actions
- History for backward navigation
- Availability polling
- Player command parsing
"""

from framework.dialog.system import (
    PlaybackEngine,
    PlaybackConfig,
    Presentation,
    PresentedAnswer,
    always_available,
)
from framework.dialog.callbacks import CallbackRegistry
from framework.dialog.commands import PlaybackCommands

__all__ = [
    "PlaybackEngine",
    "PlaybackConfig",
    "Presentation",
    "PresentedAnswer",
    "always_available",
    "CallbackRegistry",
    "PlaybackCommands",
]
