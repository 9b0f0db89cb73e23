"""
Editor Console Demo: author a dialogue graph from the terminal

Demonstrates:
- Loading (or seeding) a graph from a blob file
- Chat-style editing commands
- Envelopes sent to the display
- Debounced autosave driven by a TickDriver

Run: python -m demos.editor_console [dialogue.json]
Type 'help' for commands, 'quit' to save and exit.
"""

import sys
import time
import logging
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from engine.core.events import EventBus, SaveEvent
from engine.core.messages import Envelope, EnvelopeType, MessageChannel
from engine.core.timers import TickDriver
from engine.resources.gateway import PersistenceGateway
from engine.resources.store import FileBlobStore
from editor import EditorCommands, GraphEditor


def show_envelope(envelope: Envelope) -> None:
    """Stand-in display: print what a real one would render."""
    if envelope.type == EnvelopeType.UPDATE_NODE:
        node = envelope.payload["node"]
        print(f"  [{node['id']}] {node['title']}")
        for i, answer in enumerate(node.get("answers", []), start=1):
            marker = f"->{answer['nextId']}" if answer.get("nextId") else "[END]"
            fn = f" fn:{answer['fn']}" if answer.get("fn") else ""
            print(f"    {i}. {answer['text']} {marker}{fn}")
    elif envelope.type == EnvelopeType.ERROR:
        print(f"  ! {envelope.payload['message']}")


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    path = Path(sys.argv[1] if len(sys.argv) > 1 else "dialogue.json")

    event_bus = EventBus()
    channel = MessageChannel()
    channel.subscribe(show_envelope)

    editor = GraphEditor(PersistenceGateway(FileBlobStore(path), event_bus=event_bus),
                         channel=channel, event_bus=event_bus)
    commands = EditorCommands(editor)

    def on_autosave(event):
        print(f"  (autosaved {event['node_count']} nodes)")

    event_bus.subscribe(SaveEvent.AUTO_SAVE_TRIGGERED, on_autosave, weak=False)

    driver = TickDriver()
    editor.open()
    editor.attach(driver)

    last = time.perf_counter()
    try:
        for line in sys.stdin:
            # Time spent waiting for input counts towards the autosave timer
            now = time.perf_counter()
            driver.update(now - last)
            last = now

            if line.strip().lower() in ("quit", "q"):
                break

            result = commands.execute(line)
            print(result.message)
            for text in result.lines:
                print(f"  {text}")
    except KeyboardInterrupt:
        pass
    finally:
        editor.close()


if __name__ == "__main__":
    main()
