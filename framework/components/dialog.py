"""
Dialog components - playback session state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from engine.core.model import Graph, Node


class PlaybackState(Enum):
    """State of a playback session."""
    INACTIVE = auto()
    PRESENTING = auto()


@dataclass
class PlaybackContext:
    """
    Runtime state of one playback session.

    Attributes:
        graph: The loaded graph (read-only for playback)
        state: Current session state
        current_node_id: Node being presented
        history: Stack of node ids visited before the current one
        transcript: Every node presented since the last start, kept
            after the dialogue ends
    """
    graph: Graph = field(default_factory=dict)
    state: PlaybackState = PlaybackState.INACTIVE
    current_node_id: Optional[str] = None
    history: list[str] = field(default_factory=list)
    transcript: list[str] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.state == PlaybackState.PRESENTING

    @property
    def current_node(self) -> Optional[Node]:
        if self.current_node_id is None:
            return None
        return self.graph.get(self.current_node_id)

    @property
    def visited(self) -> list[str]:
        """History plus the current node, oldest first."""
        if self.current_node_id is None:
            return list(self.history)
        return [*self.history, self.current_node_id]

    def start_dialogue(self, entry_id: str) -> None:
        """Begin a new session at the entry node."""
        self.history.clear()
        self.transcript = [entry_id]
        self.current_node_id = entry_id
        self.state = PlaybackState.PRESENTING

    def advance(self, node_id: str) -> None:
        """Move forward, remembering where we came from."""
        if self.current_node_id is not None:
            self.history.append(self.current_node_id)
        self.current_node_id = node_id
        self.transcript.append(node_id)

    def back(self) -> Optional[str]:
        """Return to the previous node, if there is one."""
        if not self.history:
            return None
        self.current_node_id = self.history.pop()
        self.transcript.append(self.current_node_id)
        return self.current_node_id

    def end_dialogue(self) -> None:
        self.state = PlaybackState.INACTIVE
        self.current_node_id = None
        self.history.clear()
