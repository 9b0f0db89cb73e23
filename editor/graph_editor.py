"""
Graph editor - CRUD over an in-memory dialogue graph.

Every operation returns a Result instead of raising. On success the
graph is marked dirty, an envelope goes to the display channel and an
EditorEvent is published. On failure an error envelope is sent and
the graph is left exactly as it was.

Autosave is debounced by counting timer cycles: each "autosave" tick
while dirty bumps a counter, and the save fires once the counter
reaches debounce_cycles. Any new edit restarts the count.

Usage:
    editor = GraphEditor(PersistenceGateway(store), channel=channel)
    editor.open()
    editor.create_node("intro")
    editor.set_answer_text("intro", 1, "Tell me more")
    editor.set_answer_next("intro", 1, "details")

    driver.set_timer("autosave", editor.context.config.autosave_debounce_interval, editor.tick)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional

from engine.core.errors import Diagnostic, ErrorCode, Result
from engine.core.events import EventBus, SaveEvent
from engine.core.messages import Envelope, MessageChannel
from engine.core.model import (
    Answer,
    Config,
    Graph,
    MAX_ANSWERS,
    MIN_ANSWERS,
    Meta,
    Node,
    find_entry_node,
    graph_summary,
    new_node,
)
from engine.core.validation import dangling_diagnostics
from engine.resources.gateway import LoadResult, PersistenceGateway, SaveResult
from editor.events import EditorEvent

if TYPE_CHECKING:
    from engine.core.timers import TickDriver

logger = logging.getLogger(__name__)


STARTER_NODE_ID = "start"
STARTER_TITLE = "Welcome"
STARTER_ANSWER = "Hello!"


@dataclass
class EditorConfig:
    """Editor runtime configuration."""
    debounce_cycles: int = 1
    autosave_timer: str = "autosave"
    seed_starter_node: bool = True


class EditorContext:
    """
    Everything the editor mutates.

    Owned by one GraphEditor; nothing else writes to it.
    """

    def __init__(
        self,
        graph: Optional[Graph] = None,
        meta: Optional[Meta] = None,
        config: Optional[Config] = None,
    ):
        self.graph: Graph = graph if graph is not None else {}
        self.meta = meta or Meta()
        self.config = config or Config()
        self.current_node_id: Optional[str] = None

        # Dirty tracking
        self.needs_save: bool = False
        self.save_cycles: int = 0

    @property
    def current_node(self) -> Optional[Node]:
        if self.current_node_id is None:
            return None
        return self.graph.get(self.current_node_id)

    def mark_dirty(self) -> None:
        """Mark graph as having unsaved changes."""
        self.needs_save = True
        self.save_cycles = 0

    def mark_clean(self) -> None:
        """Mark graph as saved."""
        self.needs_save = False
        self.save_cycles = 0


class GraphEditor:
    """
    Edits a dialogue graph and keeps it persisted.

    Handles:
    - Node CRUD with invariant checks
    - Dangling reference warnings (never repairs)
    - Change notifications to the display channel
    - Cycle-debounced autosave through the persistence gateway
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        channel: Optional[MessageChannel] = None,
        event_bus: Optional[EventBus] = None,
        config: Optional[EditorConfig] = None,
        context: Optional[EditorContext] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.gateway = gateway
        self.channel = channel if channel is not None else MessageChannel()
        self.event_bus = event_bus
        self.config = config or EditorConfig()
        self.context = context or EditorContext()
        self._clock = clock

    @property
    def graph(self) -> Graph:
        return self.context.graph

    @property
    def current_node_id(self) -> Optional[str]:
        return self.context.current_node_id

    def get_node(self, node_id: str) -> Optional[Node]:
        """Detached copy of a node, or None."""
        node = self.graph.get(node_id)
        return node.snapshot() if node else None

    # Session lifecycle

    def open(self) -> LoadResult:
        """
        Load the persisted graph and announce it to the display.

        When nothing usable is stored a starter node is seeded so the
        author has something to edit.
        """
        result = self.gateway.load()
        self.context = EditorContext(
            graph=result.graph if result.graph is not None else {},
            meta=result.meta,
            config=result.config,
        )

        if result.absent:
            self.context.meta.created = self._clock()
            if self.config.seed_starter_node:
                self.create_node(STARTER_NODE_ID)
                self.set_title(STARTER_NODE_ID, STARTER_TITLE)
                self.set_answer_text(STARTER_NODE_ID, 1, STARTER_ANSWER)

        self._send(Envelope.list_nodes(graph_summary(self.graph), self.current_node_id or ""))

        current = self.context.current_node
        if current is None and self.graph:
            self.context.current_node_id = find_entry_node(self.graph)
            current = self.context.current_node
        if current is not None:
            self._send(Envelope.update_node(current.snapshot()))

        self._publish(EditorEvent.GRAPH_LOADED, operation="open", node_count=len(self.graph))
        logger.info("Dialogue editor started")
        return result

    def close(self) -> Optional[SaveResult]:
        """Flush unsaved changes."""
        result = None
        if self.context.needs_save:
            result = self.save()
        logger.info("Dialogue editor stopped")
        return result

    def attach(self, driver: TickDriver) -> None:
        """Register the autosave timer on a tick driver."""
        driver.set_timer(
            self.config.autosave_timer,
            self.context.config.autosave_debounce_interval,
            self.tick,
        )

    # Node operations

    def create_node(self, node_id: str) -> Result:
        """Create a node with one default terminal answer and select it."""
        if not node_id:
            return self._fail(ErrorCode.MISSING_ID, "Node ID required")
        if node_id in self.graph:
            return self._fail(ErrorCode.DUPLICATE_ID, f"Node {node_id} already exists")

        node = new_node(node_id, self.context.config)
        self.graph[node_id] = node
        self.context.current_node_id = node_id

        logger.info(f"Created node: {node_id}")
        return self._modified(EditorEvent.NODE_CREATED, "createNode", node)

    def delete_node(self, node_id: str) -> Result:
        """
        Remove a node.

        References to it from other nodes are left in place; each one
        produces a dangling reference warning.
        """
        if node_id not in self.graph:
            return self._fail(ErrorCode.NOT_FOUND, f"Node {node_id} not found")

        del self.graph[node_id]
        if self.context.current_node_id == node_id:
            self.context.current_node_id = None
        self.context.mark_dirty()

        warnings = dangling_diagnostics(self.graph, target_id=node_id)
        for warning in warnings:
            self._warn(warning)

        self._send(Envelope.list_nodes(graph_summary(self.graph), self.current_node_id or ""))
        self._publish(EditorEvent.NODE_DELETED, operation="deleteNode", node_id=node_id, node=None)
        logger.info(f"Deleted node: {node_id}")
        return Result.ok(warnings)

    def set_title(self, node_id: str, title: str) -> Result:
        node = self.graph.get(node_id)
        if node is None:
            return self._fail(ErrorCode.NOT_FOUND, f"Node {node_id} not found")
        if not title:
            return self._fail(ErrorCode.EMPTY_TITLE, "Title required")

        node.title = title
        logger.info(f"Set title for node {node_id}")
        return self._modified(EditorEvent.NODE_MODIFIED, "setTitle", node)

    def set_answer_text(self, node_id: str, slot: int | str, text: str) -> Result:
        """
        Set the text of an answer slot.

        Slots past the current answer count are filled with empty
        placeholder answers. Empty text is accepted here; empty
        answers are stripped the next time the graph is loaded.
        """
        node = self.graph.get(node_id)
        if node is None:
            return self._fail(ErrorCode.NOT_FOUND, f"Node {node_id} not found")

        slot_num = self._parse_slot(slot)
        if slot_num is None:
            return self._fail(ErrorCode.SLOT_OUT_OF_RANGE, f"Slot must be {MIN_ANSWERS}-{MAX_ANSWERS}")

        warnings = []
        if slot_num > node.answer_count + 1:
            warning = Diagnostic(
                ErrorCode.EMPTY_ANSWERS_CREATED,
                f"Skipping slots (current: {node.answer_count}, setting: {slot_num}). "
                f"Empty answers will be created.",
                node_id,
            )
            self._warn(warning)
            warnings.append(warning)

        answers = list(node.answers)
        while len(answers) < slot_num:
            answers.append(Answer())
        answers[slot_num - 1].text = text
        node.answers = answers

        logger.info(f"Set answer {slot_num} for node {node_id}")
        return self._modified(EditorEvent.NODE_MODIFIED, "setAnswerText", node, warnings)

    def set_answer_next(self, node_id: str, slot: int | str, next_id: Optional[str]) -> Result:
        """Point an answer at another node, or make it terminal with None."""
        answer, failure = self._existing_answer(node_id, slot)
        if failure:
            return failure

        answer.next_id = next_id or None

        warnings = []
        if answer.next_id is not None and answer.next_id not in self.graph:
            warning = Diagnostic(
                ErrorCode.DANGLING_REFERENCE,
                f"Node {node_id} answer {slot} points to missing node {answer.next_id}",
                node_id,
            )
            self._warn(warning)
            warnings.append(warning)

        logger.info(f"Set next for answer {slot} of node {node_id}")
        return self._modified(EditorEvent.NODE_MODIFIED, "setAnswerNext", self.graph[node_id], warnings)

    def set_answer_fn(self, node_id: str, slot: int | str, callback_name: Optional[str]) -> Result:
        """Attach a callback name to an answer, or clear it with None."""
        answer, failure = self._existing_answer(node_id, slot)
        if failure:
            return failure

        answer.callback_name = callback_name or None

        logger.info(f"Set fn for answer {slot} of node {node_id}")
        return self._modified(EditorEvent.NODE_MODIFIED, "setAnswerFn", self.graph[node_id])

    def select_node(self, node_id: str) -> Result:
        """Make a node current. Not an edit: the graph stays clean."""
        node = self.graph.get(node_id)
        if node is None:
            return self._fail(ErrorCode.NOT_FOUND, f"Node not found: {node_id}")

        self.context.current_node_id = node_id
        self._send(Envelope.update_node(node.snapshot()))
        self._publish(EditorEvent.NODE_SELECTED, operation="selectNode", node_id=node_id, node=node.snapshot())
        logger.info(f"Selected node: {node_id}")
        return Result.ok()

    def list_nodes(self) -> list[dict[str, Any]]:
        """Summaries of every node, also sent to the display."""
        summaries = graph_summary(self.graph)
        self._send(Envelope.list_nodes(summaries, self.current_node_id or ""))
        return summaries

    def dangling_references(self) -> list[Diagnostic]:
        """Scan the whole graph for unresolved next ids."""
        return dangling_diagnostics(self.graph)

    # Persistence

    def save(self) -> SaveResult:
        """Save now, regardless of the debounce state."""
        ctx = self.context
        result = self.gateway.save(ctx.graph, ctx.meta, ctx.config)
        if result.success:
            ctx.mark_clean()
            self._publish(EditorEvent.GRAPH_SAVED, operation="save", node_count=len(ctx.graph))
        else:
            ctx.save_cycles = 0
            self._send(Envelope.error(result.message, self.current_node_id or ""))
        return result

    def tick(self, timer_id: str) -> Optional[SaveResult]:
        """
        Autosave timer callback.

        Returns:
            The save result if this tick saved, else None
        """
        if timer_id != self.config.autosave_timer:
            return None

        ctx = self.context
        if not ctx.needs_save:
            ctx.save_cycles = 0
            return None

        ctx.save_cycles += 1
        if ctx.save_cycles < self.config.debounce_cycles:
            return None

        if self.event_bus:
            self.event_bus.publish(SaveEvent.AUTO_SAVE_TRIGGERED, node_count=len(ctx.graph))
        return self.save()

    # Helpers

    def _parse_slot(self, slot: int | str) -> Optional[int]:
        try:
            slot_num = int(slot)
        except (TypeError, ValueError):
            return None
        if slot_num < MIN_ANSWERS or slot_num > MAX_ANSWERS:
            return None
        return slot_num

    def _existing_answer(self, node_id: str, slot: int | str) -> tuple[Optional[Answer], Optional[Result]]:
        node = self.graph.get(node_id)
        if node is None:
            return None, self._fail(ErrorCode.NOT_FOUND, f"Node {node_id} not found")

        slot_num = self._parse_slot(slot)
        if slot_num is None:
            return None, self._fail(ErrorCode.SLOT_OUT_OF_RANGE, f"Slot must be {MIN_ANSWERS}-{MAX_ANSWERS}")

        answer = node.get_answer(slot_num)
        if answer is None:
            return None, self._fail(
                ErrorCode.SLOT_DOES_NOT_EXIST,
                f"Answer slot {slot_num} doesn't exist yet",
            )
        return answer, None

    def _modified(
        self,
        event_type: EditorEvent,
        operation: str,
        node: Node,
        warnings: Optional[list[Diagnostic]] = None,
    ) -> Result:
        self.context.mark_dirty()
        snapshot = node.snapshot()
        self._send(Envelope.update_node(snapshot))
        self._publish(event_type, operation=operation, node_id=node.id, node=snapshot)
        return Result.ok(warnings)

    def _fail(self, code: ErrorCode, message: str) -> Result:
        logger.error(message)
        self._send(Envelope.error(message, self.current_node_id or ""))
        return Result.fail(code, message)

    def _warn(self, diagnostic: Diagnostic) -> None:
        logger.warning(diagnostic.message)
        if self.event_bus:
            self.event_bus.report(diagnostic)

    def _send(self, envelope: Envelope) -> None:
        self.channel.send(envelope)

    def _publish(self, event_type: EditorEvent, **data: Any) -> None:
        if self.event_bus:
            self.event_bus.publish(event_type, **data)
            if event_type not in (EditorEvent.NODE_SELECTED, EditorEvent.GRAPH_LOADED, EditorEvent.GRAPH_SAVED):
                self.event_bus.publish(EditorEvent.GRAPH_MODIFIED, **data)
