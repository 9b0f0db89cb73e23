"""
Playback command surface.

    start          begin the dialogue
    stop | exit    end it
    restart        stop, then start again
    back           return to the previous node
    <number>       choose an answer of the current node
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from engine.core.errors import CommandResult, ErrorCode
from engine.core.messages import InteractionEnvelope, InteractionType
from framework.dialog.system import PlaybackEngine, Presentation

logger = logging.getLogger(__name__)


class PlaybackCommands:
    """Parses player input and drives a PlaybackEngine."""

    def __init__(self, engine: PlaybackEngine):
        self.engine = engine

    def execute(self, text: str) -> CommandResult:
        if not text or not text.strip():
            return CommandResult(False, "Empty command", error=ErrorCode.USAGE)

        cmd = text.strip().lower()

        if cmd == "start":
            result = self.engine.start()
        elif cmd in ("stop", "exit"):
            result = self.engine.stop()
        elif cmd == "restart":
            result = self.engine.restart()
        elif cmd == "back":
            result = self.engine.go_back()
        else:
            try:
                index = int(cmd)
            except ValueError:
                message = "Unknown command. Use 'start', 'stop', or answer number"
                logger.info(message)
                return CommandResult(False, message, error=ErrorCode.UNKNOWN_COMMAND)
            result = self.engine.select_answer(index)

        lines = [str(w) for w in result.warnings]
        node = self.engine.current_node
        if result.success and node is not None:
            lines.extend(Presentation.from_node(node).lines())

        if result.success:
            return CommandResult(True, self._status(), lines)
        return CommandResult(False, result.message, lines, result.error)

    def handle_interaction(self, envelope: InteractionEnvelope | dict[str, Any]) -> CommandResult:
        """
        clickAnswer {idx}   choose an answer
        action {op}         start / stop / restart / back
        """
        try:
            if not isinstance(envelope, InteractionEnvelope):
                envelope = InteractionEnvelope.model_validate(envelope)
        except ValidationError as e:
            return CommandResult(False, f"Invalid interaction: {e.error_count()} error(s)", error=ErrorCode.USAGE)

        if envelope.type == InteractionType.CLICK_ANSWER:
            return self.execute(str(envelope.payload.get('idx', '')))
        if envelope.type == InteractionType.ACTION:
            return self.execute(str(envelope.payload.get('op', '')))

        return CommandResult(False, "Node selection is not available during playback", error=ErrorCode.USAGE)

    def _status(self) -> str:
        if self.engine.is_active:
            return f"Presenting {self.engine.current_node_id}"
        return "Dialogue ended"
