"""
Editor-specific events.

Published on the EventBus after every successful graph edit so that
tools other than the display (loggers, test probes) can follow along.
Event data always carries operation, node_id and, where a node still
exists, a detached node snapshot.
"""

from __future__ import annotations

from enum import Enum, auto


class EditorEvent(Enum):
    """Editor-specific events."""

    # Node editing events
    NODE_CREATED = auto()
    NODE_DELETED = auto()
    NODE_MODIFIED = auto()
    NODE_SELECTED = auto()

    # Graph events
    GRAPH_LOADED = auto()
    GRAPH_SAVED = auto()
    GRAPH_MODIFIED = auto()
