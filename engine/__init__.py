"""
Dialogue Graph Engine

Branching dialogue graphs: data model, validation, persistence and
the shared event plumbing used by the editor and the player.

Quick Start:
    from engine.core import EventBus
    from engine.resources import FileBlobStore, PersistenceGateway

    gateway = PersistenceGateway(FileBlobStore("dialogue.json"), event_bus=EventBus())
    result = gateway.load()
    graph = result.graph if result.graph is not None else {}
"""

__version__ = "0.1.0"
__author__ = "Developer"

from engine.core import (
    Answer,
    Config,
    Graph,
    Meta,
    Node,
    EventBus,
    Event,
    ErrorCode,
    Diagnostic,
    Result,
    normalize,
    validate,
)
from engine.resources import (
    BlobStore,
    FileBlobStore,
    MemoryBlobStore,
    PersistenceGateway,
)

__all__ = [
    # Model
    "Answer",
    "Config",
    "Graph",
    "Meta",
    "Node",
    # Events
    "EventBus",
    "Event",
    # Errors
    "ErrorCode",
    "Diagnostic",
    "Result",
    # Validation
    "normalize",
    "validate",
    # Persistence
    "BlobStore",
    "FileBlobStore",
    "MemoryBlobStore",
    "PersistenceGateway",
]
