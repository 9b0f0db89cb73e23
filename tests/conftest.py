import os
import sys
import pytest

# Ensure engine modules can be imported
sys.path.append(os.getcwd())


@pytest.fixture
def event_bus():
    """Fresh EventBus for each test."""
    from engine.core.events import EventBus
    return EventBus()


@pytest.fixture
def memory_store():
    """Empty in-memory blob store."""
    from engine.resources.store import MemoryBlobStore
    return MemoryBlobStore()


@pytest.fixture
def clock():
    """Deterministic clock: each call returns the next second."""
    ticks = iter(range(1000, 100000))
    return lambda: float(next(ticks))


@pytest.fixture
def gateway(memory_store, event_bus, clock):
    from engine.resources.gateway import PersistenceGateway
    return PersistenceGateway(memory_store, event_bus=event_bus, clock=clock)


@pytest.fixture
def channel():
    from engine.core.messages import MessageChannel
    return MessageChannel()


@pytest.fixture
def editor(gateway, channel, event_bus, clock):
    """Editor over an empty store, without the starter node."""
    from editor.graph_editor import GraphEditor, EditorConfig
    editor = GraphEditor(
        gateway,
        channel=channel,
        event_bus=event_bus,
        config=EditorConfig(seed_starter_node=False),
        clock=clock,
    )
    editor.open()
    channel.drain()
    return editor


@pytest.fixture
def sample_graph():
    """start -> middle -> end, plus a dangling branch from start."""
    from engine.core.model import Answer, Node
    return {
        "start": Node(id="start", title="Welcome", answers=[
            Answer(text="Tell me more", next_id="middle"),
            Answer(text="Where is b?", next_id="b"),
            Answer(text="Bye"),
        ]),
        "middle": Node(id="middle", title="The middle", answers=[
            Answer(text="Go on", next_id="end", callback_name="giveQuest"),
        ]),
        "end": Node(id="end", title="The end", answers=[
            Answer(text="Farewell"),
        ]),
    }


@pytest.fixture
def collect():
    """Subscribe a recording handler: collect(bus, event_type) -> list of events."""
    def _collect(bus, event_type):
        received = []
        handler = received.append
        bus.subscribe(event_type, handler, weak=False)
        return received
    return _collect
