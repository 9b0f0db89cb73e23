"""
Callback registry - named host actions triggered by answers.

An answer may carry a callback name ("giveQuest", "openDoor", ...).
The host application registers a zero-argument action for each name
it supports; the playback engine dispatches through this table.

Usage:
    callbacks = CallbackRegistry()
    callbacks.register("giveQuest", quest_log.give_intro_quest)

    @callbacks.action("openDoor")
    def open_door():
        door.open()
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from engine.core.errors import Diagnostic, ErrorCode, Severity
from engine.core.events import EventBus, PlaybackEvent

logger = logging.getLogger(__name__)

HostAction = Callable[[], None]


class CallbackRegistry:
    """
    Lookup table from callback name to host action.

    Dispatch semantics:
    - Unknown name: UnknownCallback warning, nothing runs
    - Known name: the action runs exactly once, synchronously
    - An action that raises is logged and reported; the error does
      not propagate into the dialogue flow
    """

    def __init__(
        self,
        actions: Optional[dict[str, HostAction]] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self._actions: dict[str, HostAction] = {}
        self.event_bus = event_bus
        self.last_diagnostic: Optional[Diagnostic] = None
        for name, action in (actions or {}).items():
            self.register(name, action)

    def register(self, name: str, action: HostAction) -> None:
        """Register (or replace) the action for a name."""
        if not name:
            raise ValueError("Callback name required")
        if not callable(action):
            raise TypeError(f"Callback {name} is not callable")
        self._actions[name] = action

    def action(self, name: str) -> Callable[[HostAction], HostAction]:
        """Decorator form of register()."""
        def decorator(func: HostAction) -> HostAction:
            self.register(name, func)
            return func
        return decorator

    def unregister(self, name: str) -> None:
        self._actions.pop(name, None)

    def get(self, name: str) -> Optional[HostAction]:
        return self._actions.get(name)

    def names(self) -> list[str]:
        return sorted(self._actions)

    def __contains__(self, name: object) -> bool:
        return name in self._actions

    def __len__(self) -> int:
        return len(self._actions)

    def dispatch(self, name: str) -> bool:
        """
        Run the action registered for name.

        Returns:
            True if an action ran to completion
        """
        self.last_diagnostic = None

        action = self._actions.get(name)
        if action is None:
            self._diagnose(ErrorCode.UNKNOWN_CALLBACK, f"Callback not found: {name}", Severity.WARNING)
            return False

        try:
            action()
        except Exception as e:
            logger.exception(f"Callback {name} failed")
            self._diagnose(ErrorCode.CALLBACK_FAILED, f"Callback {name} failed: {e}", Severity.ERROR, log=False)
            return False

        logger.debug(f"Callback invoked: {name}")
        if self.event_bus:
            self.event_bus.publish(PlaybackEvent.CALLBACK_INVOKED, name=name)
        return True

    def _diagnose(self, code: ErrorCode, message: str, severity: Severity, log: bool = True) -> None:
        if log:
            logger.warning(message)
        self.last_diagnostic = Diagnostic(code, message, severity=severity)
        if self.event_bus:
            self.event_bus.report(self.last_diagnostic)
