"""
Editor command surface - turns typed commands into editor calls.

Supports a simple chat-style command format:

```
new <id>                      create node
title <id> <text>             set title
ans <id> <slot> <text>        set answer text
next <id> <slot> <id|none>    set next node
fn <id> <slot> <name|none>    set callback
del <id>                      delete node
select <id>                   select node for editing
list                          list all nodes
save                          force save
help                          show commands
```

"none" clears a next node or callback; it never reaches the editor,
which only sees None.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from pydantic import ValidationError

from engine.core.errors import CommandResult, ErrorCode, Result
from engine.core.messages import Envelope, InteractionEnvelope, InteractionType
from editor.graph_editor import GraphEditor

logger = logging.getLogger(__name__)


CLEAR_SENTINELS = frozenset({"none", ""})

HELP_LINES = [
    "Commands:",
    "  new <id> - Create node",
    "  title <id> <text> - Set title",
    "  ans <id> <slot> <text> - Set answer text",
    "  next <id> <slot> <nextId|none> - Set next node",
    "  fn <id> <slot> <fnName|none> - Set callback",
    "  del <id> - Delete node",
    "  select <id> - Select node for editing",
    "  list - List all nodes",
    "  save - Force save",
]


def clear_sentinel(value: str) -> Optional[str]:
    """Map the textual 'unset' markers to None."""
    return None if value.strip().lower() in CLEAR_SENTINELS else value


class EditorCommands:
    """
    Parses editor commands and dispatches them to a GraphEditor.
    """

    # Argument patterns (text arguments keep their inner whitespace)
    TITLE_PATTERN = re.compile(r'^\S+\s+(\S+)\s+(.+)$')
    ANSWER_PATTERN = re.compile(r'^\S+\s+(\S+)\s+(\S+)\s+(.+)$')

    def __init__(self, editor: GraphEditor):
        self.editor = editor

    def execute(self, text: str) -> CommandResult:
        """Run one command line."""
        if not text or not text.strip():
            return CommandResult(False, "Empty command", error=ErrorCode.USAGE)

        text = text.strip()
        parts = text.split()
        cmd = parts[0].lower()
        args = parts[1:]

        if cmd == "new" and len(args) >= 1:
            return self._run(self.editor.create_node(args[0]), f"Created node: {args[0]}")

        if cmd == "title" and len(args) >= 1:
            match = self.TITLE_PATTERN.match(text)
            if not match:
                return self._usage("Usage: title <id> <text>")
            node_id, title = match.groups()
            return self._run(self.editor.set_title(node_id, title), f"Set title for node {node_id}")

        if cmd == "ans" and len(args) >= 2:
            match = self.ANSWER_PATTERN.match(text)
            if not match:
                return self._usage("Usage: ans <id> <slot> <text>")
            node_id, slot, answer_text = match.groups()
            return self._run(
                self.editor.set_answer_text(node_id, slot, answer_text),
                f"Set answer {slot} for node {node_id}",
            )

        if cmd == "next" and len(args) >= 3:
            node_id, slot, target = args[:3]
            return self._run(
                self.editor.set_answer_next(node_id, slot, clear_sentinel(target)),
                f"Set next for answer {slot} of node {node_id}",
            )

        if cmd == "fn" and len(args) >= 3:
            node_id, slot, name = args[:3]
            return self._run(
                self.editor.set_answer_fn(node_id, slot, clear_sentinel(name)),
                f"Set fn for answer {slot} of node {node_id}",
            )

        if cmd == "del" and len(args) >= 1:
            return self._run(self.editor.delete_node(args[0]), f"Deleted node: {args[0]}")

        if cmd == "select" and len(args) >= 1:
            return self._run(self.editor.select_node(args[0]), f"Selected node: {args[0]}")

        if cmd == "list":
            return self._list()

        if cmd == "save":
            result = self.editor.save()
            if result.success:
                return CommandResult(True, f"Saved {len(self.editor.graph)} nodes")
            return CommandResult(False, result.message, error=result.error)

        if cmd == "help":
            return CommandResult(True, "Commands", list(HELP_LINES))

        return self._usage("Unknown command. Type 'help' for commands.", ErrorCode.UNKNOWN_COMMAND)

    def handle_interaction(self, envelope: InteractionEnvelope | dict[str, Any]) -> CommandResult:
        """
        Handle an interaction coming back from the display.

        selectNode {id}      select a node
        clickAnswer {idx}    open the node an answer of the current node leads to
        action {op, id?}     run the command named by op
        """
        try:
            if not isinstance(envelope, InteractionEnvelope):
                envelope = InteractionEnvelope.model_validate(envelope)
        except ValidationError as e:
            return self._usage(f"Invalid interaction: {e.error_count()} error(s)")

        payload = envelope.payload

        if envelope.type == InteractionType.SELECT_NODE:
            node_id = str(payload.get('id', ''))
            return self._run(self.editor.select_node(node_id), f"Selected node: {node_id}")

        if envelope.type == InteractionType.CLICK_ANSWER:
            return self._follow_answer(payload.get('idx'))

        op = str(payload.get('op', '')).strip()
        node_id = payload.get('id')
        if not op:
            return self._usage("Interaction action requires op")
        return self.execute(f"{op} {node_id}" if node_id else op)

    def _follow_answer(self, idx: Any) -> CommandResult:
        node = self.editor.context.current_node
        if node is None:
            return self._usage("No node selected")

        try:
            answer = node.get_answer(int(idx))
        except (TypeError, ValueError):
            answer = None
        if answer is None:
            return self._usage(f"Answer slot {idx} doesn't exist yet", ErrorCode.SLOT_DOES_NOT_EXIST)
        if answer.next_id is None:
            return CommandResult(True, f"Answer {idx} ends the dialogue")

        return self._run(self.editor.select_node(answer.next_id), f"Selected node: {answer.next_id}")

    def _list(self) -> CommandResult:
        summaries = self.editor.list_nodes()
        lines = [f"Nodes: {len(summaries)}"]
        lines.extend(
            f"  {item['id']}: {item['title']} ({item['answerCount']} answers)"
            for item in summaries
        )
        return CommandResult(True, lines[0], lines)

    def _run(self, result: Result, message: str) -> CommandResult:
        return CommandResult.from_result(result, message)

    def _usage(self, message: str, code: ErrorCode = ErrorCode.USAGE) -> CommandResult:
        logger.error(message)
        self.editor.channel.send(Envelope.error(message, self.editor.current_node_id or ""))
        return CommandResult(False, message, error=code)
