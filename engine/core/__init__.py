"""
Core engine module.

Exports:
- Answer, Node, Meta, Config, Graph: Data model
- normalize, validate: Node validation and repair
- ErrorCode, Diagnostic, Result, CommandResult: Error taxonomy
- EventBus, Event, SaveEvent, DiagnosticEvent, PlaybackEvent: Event system
- Envelope, InteractionEnvelope, MessageChannel: Display messages
- TickDriver: Named periodic timers
"""

from engine.core.model import (
    Answer,
    Node,
    Meta,
    Config,
    Graph,
    MAX_ANSWERS,
    MIN_ANSWERS,
    ENTRY_NODE_ID,
    default_answer,
    new_node,
    find_entry_node,
    graph_summary,
)
from engine.core.validation import (
    normalize,
    validate,
    find_dangling_references,
    dangling_diagnostics,
)
from engine.core.errors import (
    ErrorCode,
    Severity,
    Diagnostic,
    Result,
    CommandResult,
    DialogueError,
    StoreError,
    CorruptBlobError,
)
from engine.core.events import (
    EventBus,
    Event,
    SaveEvent,
    DiagnosticEvent,
    PlaybackEvent,
)
from engine.core.messages import (
    Envelope,
    EnvelopeType,
    InteractionEnvelope,
    InteractionType,
    MessageChannel,
)
from engine.core.timers import TickDriver

__all__ = [
    # Model
    "Answer",
    "Node",
    "Meta",
    "Config",
    "Graph",
    "MAX_ANSWERS",
    "MIN_ANSWERS",
    "ENTRY_NODE_ID",
    "default_answer",
    "new_node",
    "find_entry_node",
    "graph_summary",
    # Validation
    "normalize",
    "validate",
    "find_dangling_references",
    "dangling_diagnostics",
    # Errors
    "ErrorCode",
    "Severity",
    "Diagnostic",
    "Result",
    "CommandResult",
    "DialogueError",
    "StoreError",
    "CorruptBlobError",
    # Events
    "EventBus",
    "Event",
    "SaveEvent",
    "DiagnosticEvent",
    "PlaybackEvent",
    # Messages
    "Envelope",
    "EnvelopeType",
    "InteractionEnvelope",
    "InteractionType",
    "MessageChannel",
    # Timers
    "TickDriver",
]
