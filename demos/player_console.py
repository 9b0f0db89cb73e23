"""
Player Console Demo: play a dialogue graph from the terminal

Demonstrates:
- Read-only loading through the persistence gateway
- Entry node selection, answer choice, history
- Host callbacks bound by name
- Availability polling driven by a TickDriver

Run: python -m demos.player_console [dialogue.json] [--patience SECONDS]
Type 'start', an answer number, 'back', 'stop' or 'quit'.
If no input arrives for --patience seconds the player is considered
gone and the dialogue stops.
"""

import sys
import time
import logging
import argparse
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from engine.core.events import EventBus, PlaybackEvent
from engine.core.timers import TickDriver
from engine.resources.gateway import PersistenceGateway
from engine.resources.store import FileBlobStore
from framework.dialog import CallbackRegistry, PlaybackCommands, PlaybackEngine


def main():
    logging.basicConfig(level=logging.WARNING, format="%(name)s: %(message)s")

    parser = argparse.ArgumentParser(description="Play a dialogue graph")
    parser.add_argument("path", nargs="?", default="dialogue.json")
    parser.add_argument("--patience", type=float, default=60.0)
    args = parser.parse_args()

    event_bus = EventBus()
    callbacks = CallbackRegistry(event_bus=event_bus)

    @callbacks.action("giveQuest")
    def give_quest():
        print("  * Quest received!")

    @callbacks.action("giveItem")
    def give_item():
        print("  * Item received!")

    last_input = time.perf_counter()

    def player_nearby() -> bool:
        return time.perf_counter() - last_input < args.patience

    engine = PlaybackEngine(
        gateway=PersistenceGateway(FileBlobStore(args.path)),
        callbacks=callbacks,
        event_bus=event_bus,
        availability=player_nearby,
    )
    engine.on_dialogue_end(lambda: print("  (dialogue ended)"))

    def on_ended(event):
        if event["reason"] == "stopped" and not player_nearby():
            print("  (you wandered off)")

    event_bus.subscribe(PlaybackEvent.DIALOGUE_ENDED, on_ended, weak=False)

    result = engine.load()
    print(f"Loaded {len(engine.graph)} nodes from {args.path}")
    for diagnostic in result.diagnostics:
        print(f"  {diagnostic}")

    commands = PlaybackCommands(engine)
    driver = TickDriver()
    engine.attach(driver)

    last = time.perf_counter()
    try:
        for line in sys.stdin:
            now = time.perf_counter()
            driver.update(now - last)
            last = last_input = now

            if line.strip().lower() in ("quit", "q"):
                break

            result = commands.execute(line)
            if not result.success:
                print(result.message)
            for text in result.lines:
                print(f"  {text}")
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
