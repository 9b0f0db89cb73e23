"""
Playback engine - walks a dialogue graph interactively.

States:
    INACTIVE   -> start()            -> PRESENTING(entry)
    PRESENTING -> select_answer(i)   -> PRESENTING(next) | INACTIVE
    PRESENTING -> stop()             -> INACTIVE
    PRESENTING -> availability lost  -> INACTIVE

Selecting an answer dispatches its callback first, then navigates:
- next_id resolves      -> push current onto history, present next
- next_id dangles       -> INACTIVE, DanglingReference error
- no next_id            -> INACTIVE, normal end of dialogue

The graph is loaded read-only through the persistence gateway; the
engine never writes it back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional

from engine.core.errors import Diagnostic, ErrorCode, Result, Severity
from engine.core.events import EventBus, PlaybackEvent
from engine.core.model import ENTRY_NODE_ID, Graph, Node, find_entry_node
from engine.resources.gateway import LoadResult, PersistenceGateway
from framework.components.dialog import PlaybackContext, PlaybackState
from framework.dialog.callbacks import CallbackRegistry

if TYPE_CHECKING:
    from engine.core.timers import TickDriver

logger = logging.getLogger(__name__)

AvailabilityPredicate = Callable[[], bool]


def always_available() -> bool:
    """Default audience check: the player never walks away."""
    return True


@dataclass
class PlaybackConfig:
    """Player runtime configuration."""
    entry_node_id: str = ENTRY_NODE_ID
    strict_entry: bool = False  # Require entry_node_id instead of falling back
    availability_timer: str = "availability"
    availability_interval: float = 1.0


@dataclass
class PresentedAnswer:
    index: int
    text: str
    next_id: Optional[str] = None
    callback_name: Optional[str] = None

    def describe(self) -> str:
        marker = f"→{self.next_id}" if self.next_id else "[END]"
        fn_marker = f" ƒ{self.callback_name}" if self.callback_name else ""
        return f"{self.index}. {self.text} {marker}{fn_marker}"


@dataclass
class Presentation:
    """What a display needs to show the current node."""
    node_id: str
    title: str
    answers: list[PresentedAnswer] = field(default_factory=list)

    @classmethod
    def from_node(cls, node: Node) -> Presentation:
        return cls(
            node_id=node.id,
            title=node.title,
            answers=[
                PresentedAnswer(i, answer.text, answer.next_id, answer.callback_name)
                for i, answer in enumerate(node.answers, start=1)
            ],
        )

    def lines(self) -> list[str]:
        return [f"=== {self.title} ===", *(a.describe() for a in self.answers)]


class PlaybackEngine:
    """
    Drives one playback session over a loaded graph.

    Handles:
    - Entry node selection
    - Answer validation and callback dispatch
    - Forward navigation with history, and backward navigation
    - Availability polling
    - Publishing playback events
    """

    def __init__(
        self,
        gateway: Optional[PersistenceGateway] = None,
        callbacks: Optional[CallbackRegistry] = None,
        event_bus: Optional[EventBus] = None,
        availability: AvailabilityPredicate = always_available,
        config: Optional[PlaybackConfig] = None,
        graph: Optional[Graph] = None,
    ):
        self.gateway = gateway
        self.callbacks = callbacks if callbacks is not None else CallbackRegistry(event_bus=event_bus)
        self.event_bus = event_bus
        self.availability = availability
        self.config = config or PlaybackConfig()
        self.context = PlaybackContext(graph=dict(graph or {}))

        self.last_error: Optional[Diagnostic] = None
        self._on_dialogue_end: Optional[Callable[[], None]] = None

    # Properties

    @property
    def state(self) -> PlaybackState:
        return self.context.state

    @property
    def is_active(self) -> bool:
        return self.context.is_active

    @property
    def current_node_id(self) -> Optional[str]:
        return self.context.current_node_id

    @property
    def current_node(self) -> Optional[Node]:
        return self.context.current_node

    @property
    def history(self) -> list[str]:
        return list(self.context.history)

    @property
    def visited(self) -> list[str]:
        return self.context.visited

    @property
    def transcript(self) -> list[str]:
        return list(self.context.transcript)

    @property
    def graph(self) -> Graph:
        return self.context.graph

    # Loading

    def load(self) -> LoadResult:
        """
        (Re)load the graph from the gateway. Ends any running session.

        Without a gateway nothing can be loaded: the result is absent with
        a LOAD_ERROR diagnostic and the current graph is kept.
        """
        if self.gateway is None:
            message = "No persistence gateway to load from"
            logger.error(message)
            diagnostic = Diagnostic(ErrorCode.LOAD_ERROR, message, severity=Severity.ERROR)
            if self.event_bus:
                self.event_bus.report(diagnostic)
            return LoadResult(graph=None, diagnostics=[diagnostic])

        if self.is_active:
            self.stop()

        result = self.gateway.load()
        self.context = PlaybackContext(graph=result.graph or {})
        if result.absent:
            logger.error("No dialogue data loaded")
        else:
            logger.info(f"Loaded {len(self.graph)} dialogue nodes")
        return result

    def set_graph(self, graph: Graph) -> None:
        """Use an in-memory graph instead of loading one."""
        if self.is_active:
            self.stop()
        self.context = PlaybackContext(graph=dict(graph))

    # Transitions

    def start(self) -> Result:
        """Begin a dialogue at the entry node."""
        if self.is_active:
            self.stop()

        if not self.graph:
            return self._error(ErrorCode.EMPTY_GRAPH, "No dialogue nodes loaded")

        entry_id = self._resolve_entry()
        if entry_id is None:
            return self._error(ErrorCode.NO_ENTRY_NODE, "No entry node found")

        self.last_error = None
        self.context.start_dialogue(entry_id)
        self._publish(PlaybackEvent.DIALOGUE_STARTED, node_id=entry_id)
        self.present()
        return Result.ok()

    def select_answer(self, index: int) -> Result:
        """
        Choose an answer of the current node (1-based).

        Invalid indexes are rejected without changing state.
        """
        node = self.current_node
        if not self.is_active or node is None:
            logger.info("No active dialogue")
            return Result.fail(ErrorCode.NOT_ACTIVE, "No active dialogue")

        if isinstance(index, bool) or not isinstance(index, int) or not 1 <= index <= node.answer_count:
            message = f"Invalid answer: {index}"
            logger.info(message)
            return Result.fail(ErrorCode.INVALID_ANSWER_INDEX, message)

        answer = node.answers[index - 1]
        self._publish(PlaybackEvent.ANSWER_SELECTED, node_id=node.id, index=index)

        warnings = []
        if answer.callback_name:
            self.callbacks.dispatch(answer.callback_name)
            if self.callbacks.last_diagnostic:
                warnings.append(self.callbacks.last_diagnostic)

        if answer.next_id is None:
            self._end(reason="completed")
            return Result.ok(warnings)

        if answer.next_id not in self.graph:
            message = f"Next node not found: {answer.next_id}"
            self._end(reason="dangling_reference")
            result = self._error(ErrorCode.DANGLING_REFERENCE, message, node.id)
            result.warnings = warnings
            return result

        self.context.advance(answer.next_id)
        self.present()
        return Result.ok(warnings)

    def stop(self) -> Result:
        """End the dialogue immediately."""
        self._end(reason="stopped")
        return Result.ok()

    def restart(self) -> Result:
        self.stop()
        return self.start()

    def go_back(self) -> Result:
        """Return to the previously presented node."""
        if not self.is_active:
            return Result.fail(ErrorCode.NOT_ACTIVE, "No active dialogue")
        if self.context.back() is None:
            return Result.fail(ErrorCode.HISTORY_EMPTY, "Nothing to go back to")
        self.present()
        return Result.ok()

    # Presentation

    def present(self) -> Optional[Presentation]:
        """Describe the current node and publish it."""
        node = self.current_node
        if node is None:
            return None

        presentation = Presentation.from_node(node)
        for line in presentation.lines():
            logger.info(line)
        self._publish(PlaybackEvent.NODE_PRESENTED, node_id=node.id, presentation=presentation)
        return presentation

    # Timers

    def attach(self, driver: TickDriver) -> None:
        """Register the availability poll on a tick driver."""
        driver.set_timer(
            self.config.availability_timer,
            self.config.availability_interval,
            self.tick,
        )

    def tick(self, timer_id: str) -> None:
        """Availability poll: stop the dialogue once the audience is gone."""
        if timer_id != self.config.availability_timer or not self.is_active:
            return

        try:
            available = bool(self.availability())
        except Exception:
            logger.exception("Availability check failed")
            available = False

        if not available:
            logger.info("Player too far, stopping dialogue")
            self.stop()

    def on_dialogue_end(self, callback: Callable[[], None]) -> None:
        """Set callback for when a dialogue ends."""
        self._on_dialogue_end = callback

    # Helpers

    def _resolve_entry(self) -> Optional[str]:
        preferred = self.config.entry_node_id
        if self.config.strict_entry:
            return preferred if preferred in self.graph else None
        return find_entry_node(self.graph, preferred)

    def _end(self, reason: str) -> None:
        was_active = self.is_active
        last_node = self.current_node_id
        self.context.end_dialogue()
        if not was_active:
            return

        logger.info("Dialogue ended")
        self._publish(PlaybackEvent.DIALOGUE_ENDED, node_id=last_node, reason=reason)
        if self._on_dialogue_end:
            self._on_dialogue_end()

    def _error(self, code: ErrorCode, message: str, node_id: Optional[str] = None) -> Result:
        logger.error(message)
        self.last_error = Diagnostic(code, message, node_id, Severity.ERROR)
        if self.event_bus:
            self.event_bus.report(self.last_error)
        return Result.fail(code, message)

    def _publish(self, event_type: PlaybackEvent, **data: Any) -> None:
        if self.event_bus:
            self.event_bus.publish(event_type, **data)
