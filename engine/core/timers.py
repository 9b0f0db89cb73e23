"""
Named periodic timers driven from a single loop.

The host loop calls update(dt) once per frame. Each timer accumulates
elapsed time and fires its handler with its own id once per full
interval, on the caller's thread, so timer ticks are ordered with
every other event the loop delivers.

Usage:
    driver = TickDriver()
    driver.set_timer("autosave", 1.5, editor.tick)
    driver.set_timer("availability", 1.0, player.tick)

    while running:
        driver.update(clock.tick() / 1000.0)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

TickHandler = Callable[[str], None]


@dataclass
class Timer:
    """A single periodic timer."""
    timer_id: str
    interval: float
    handler: TickHandler
    accumulator: float = 0.0
    ticks: int = 0


class TickDriver:
    """
    Delivers named timer ticks from a fixed update loop.

    A long frame fires a timer several times, up to max_catch_up, and
    then drops the remainder rather than spiralling.
    """

    def __init__(self, max_catch_up: int = 5):
        self.max_catch_up = max_catch_up
        self._timers: dict[str, Timer] = {}

    def set_timer(self, timer_id: str, interval: float, handler: TickHandler) -> None:
        """Start (or replace) a timer."""
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive: {timer_id}={interval}")
        self._timers[timer_id] = Timer(timer_id, interval, handler)

    def stop_timer(self, timer_id: str) -> None:
        self._timers.pop(timer_id, None)

    def has_timer(self, timer_id: str) -> bool:
        return timer_id in self._timers

    def ticks(self, timer_id: str) -> int:
        """How many times a timer has fired."""
        timer = self._timers.get(timer_id)
        return timer.ticks if timer else 0

    def update(self, dt: float) -> None:
        """Advance every timer by dt seconds."""
        for timer in list(self._timers.values()):
            timer.accumulator += dt
            fired = 0
            while timer.accumulator >= timer.interval:
                timer.accumulator -= timer.interval
                timer.ticks += 1
                fired += 1
                try:
                    timer.handler(timer.timer_id)
                except Exception:
                    logger.exception(f"Timer handler failed: {timer.timer_id}")

                if fired >= self.max_catch_up:
                    timer.accumulator = 0.0
                    break

                # The handler may have stopped its own timer
                if self._timers.get(timer.timer_id) is not timer:
                    break
