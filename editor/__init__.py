"""
Dialogue editor.

Builds a dialogue graph through incremental edit commands and keeps
it persisted with a cycle-debounced autosave.
"""

from editor.events import EditorEvent
from editor.graph_editor import GraphEditor, EditorConfig, EditorContext
from editor.commands import EditorCommands, HELP_LINES, clear_sentinel

__all__ = [
    "EditorEvent",
    "GraphEditor",
    "EditorConfig",
    "EditorContext",
    "EditorCommands",
    "HELP_LINES",
    "clear_sentinel",
]
