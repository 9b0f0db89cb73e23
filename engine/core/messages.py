"""
Envelopes exchanged with the display collaborator.

The editor never talks to a display directly. It sends flat
Envelopes into a MessageChannel; whatever renders the graph drains
the queue or subscribes to it. Interaction from the display comes
back as InteractionEnvelopes.

Envelope types:
    updateNode  {node: {...}}               full node snapshot
    listNodes   {nodes: [{id, title, answerCount}]}
    error       {message: "..."}

Interaction types:
    clickAnswer {idx: 1..5}
    selectNode  {id: "..."}
    action      {op: "...", id?: "..."}
"""

from __future__ import annotations

import logging
from collections import deque
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from engine.core.model import Node

logger = logging.getLogger(__name__)


class EnvelopeType(str, Enum):
    UPDATE_NODE = "updateNode"
    LIST_NODES = "listNodes"
    ERROR = "error"


class InteractionType(str, Enum):
    CLICK_ANSWER = "clickAnswer"
    SELECT_NODE = "selectNode"
    ACTION = "action"


class Envelope(BaseModel):
    """Editor -> display notification."""

    model_config = ConfigDict(use_enum_values=True)

    type: EnvelopeType
    id: str = ""
    payload: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def update_node(cls, node: Node) -> Envelope:
        return cls(type=EnvelopeType.UPDATE_NODE, id=node.id, payload={"node": node.to_dict()})

    @classmethod
    def list_nodes(cls, summaries: list[dict[str, Any]], current_id: str = "") -> Envelope:
        return cls(type=EnvelopeType.LIST_NODES, id=current_id, payload={"nodes": summaries})

    @classmethod
    def error(cls, message: str, current_id: str = "") -> Envelope:
        return cls(type=EnvelopeType.ERROR, id=current_id, payload={"message": message})


class InteractionEnvelope(BaseModel):
    """Display -> editor/player interaction."""

    model_config = ConfigDict(use_enum_values=True, extra='ignore')

    type: InteractionType
    payload: dict[str, Any] = Field(default_factory=dict)


EnvelopeListener = Callable[[Envelope], None]


class MessageChannel:
    """
    Queue of outgoing envelopes with optional push subscribers.

    Envelopes are kept until drained so a display that attaches late
    still sees the latest state. maxlen bounds memory for displays
    that never drain.
    """

    def __init__(self, maxlen: Optional[int] = 256):
        self._queue: deque[Envelope] = deque(maxlen=maxlen)
        self._listeners: list[EnvelopeListener] = []

    def send(self, envelope: Envelope) -> None:
        self._queue.append(envelope)
        for listener in list(self._listeners):
            try:
                listener(envelope)
            except Exception:
                logger.exception(f"Envelope listener failed for {envelope.type}")

    def subscribe(self, listener: EnvelopeListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: EnvelopeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def drain(self) -> list[Envelope]:
        """Take every pending envelope, oldest first."""
        envelopes = list(self._queue)
        self._queue.clear()
        return envelopes

    def peek(self) -> Optional[Envelope]:
        """The most recent envelope, if any."""
        return self._queue[-1] if self._queue else None

    def __len__(self) -> int:
        return len(self._queue)
