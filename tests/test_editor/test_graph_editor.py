"""
Tests for GraphEditor CRUD, change notifications and autosave.
"""

import pytest
from unittest.mock import MagicMock
from engine.core.errors import ErrorCode, StoreError
from engine.core.events import DiagnosticEvent, SaveEvent
from engine.core.messages import EnvelopeType, MessageChannel
from engine.core.model import Config, DEFAULT_TITLE, Meta
from editor.events import EditorEvent
from editor.graph_editor import EditorConfig, GraphEditor


def types(envelopes):
    return [e.type for e in envelopes]


class TestCollaborators:
    def test_keeps_the_channel_it_was_given(self, gateway):
        channel = MessageChannel()

        editor = GraphEditor(gateway, channel=channel)

        assert editor.channel is channel

    def test_empty_channel_receives_envelopes(self, gateway):
        channel = MessageChannel()
        received = []
        channel.subscribe(received.append)
        editor = GraphEditor(gateway, channel=channel, config=EditorConfig(seed_starter_node=False))

        editor.create_node("x")

        assert len(channel) == 1
        assert [e.type for e in received] == [EnvelopeType.UPDATE_NODE]
        assert received[0].id == "x"


class TestOpen:
    def test_absent_store_seeds_starter_node(self, gateway, channel, clock):
        editor = GraphEditor(gateway, channel=channel, clock=clock)

        result = editor.open()

        assert result.absent
        node = editor.graph["start"]
        assert node.title == "Welcome"
        assert [a.text for a in node.answers] == ["Hello!"]
        assert editor.context.needs_save
        assert editor.context.meta.created > 0

        last = channel.peek()
        assert last.type == EnvelopeType.UPDATE_NODE
        assert last.id == "start"

    def test_corrupt_store_also_seeds(self, gateway, memory_store, channel):
        memory_store.text = "{not json"
        editor = GraphEditor(gateway, channel=channel)

        editor.open()

        assert list(editor.graph) == ["start"]

    def test_existing_graph_is_loaded_and_announced(self, gateway, channel, sample_graph):
        gateway.save(sample_graph, Meta(), Config())
        editor = GraphEditor(gateway, channel=channel)

        editor.open()

        assert editor.graph == sample_graph
        assert editor.current_node_id == "start"
        assert not editor.context.needs_save

        envelopes = channel.drain()
        assert types(envelopes) == [EnvelopeType.LIST_NODES, EnvelopeType.UPDATE_NODE]
        assert [n["id"] for n in envelopes[0].payload["nodes"]] == ["end", "middle", "start"]
        assert envelopes[1].payload["node"]["title"] == "Welcome"

    def test_open_publishes_graph_loaded(self, gateway, event_bus, collect):
        loaded = collect(event_bus, EditorEvent.GRAPH_LOADED)
        editor = GraphEditor(gateway, event_bus=event_bus, config=EditorConfig(seed_starter_node=False))

        editor.open()

        assert editor.graph == {}
        assert loaded[0]["node_count"] == 0


class TestNodes:
    def test_create_node(self, editor, channel, event_bus, collect):
        created = collect(event_bus, EditorEvent.NODE_CREATED)
        modified = collect(event_bus, EditorEvent.GRAPH_MODIFIED)

        result = editor.create_node("intro")

        assert result
        node = editor.graph["intro"]
        assert node.title == DEFAULT_TITLE
        assert [(a.text, a.next_id) for a in node.answers] == [("Exit", None)]
        assert editor.current_node_id == "intro"
        assert editor.context.needs_save

        envelope = channel.peek()
        assert envelope.type == EnvelopeType.UPDATE_NODE
        assert envelope.payload["node"] == {"id": "intro", "title": DEFAULT_TITLE, "answers": [{"text": "Exit"}]}
        assert created[0]["node_id"] == "intro"
        assert len(modified) == 1

    def test_default_answer_uses_configured_exit_label(self, editor):
        editor.context.config = Config(exit_label="Goodbye")

        editor.create_node("intro")

        assert editor.graph["intro"].answers[0].text == "Goodbye"

    def test_duplicate_create_changes_nothing(self, editor, channel):
        editor.create_node("a")
        editor.set_title("a", "Mine")
        editor.context.mark_clean()
        channel.drain()

        result = editor.create_node("a")

        assert result.error == ErrorCode.DUPLICATE_ID
        assert editor.graph["a"].title == "Mine"
        assert not editor.context.needs_save
        assert types(channel.drain()) == [EnvelopeType.ERROR]

    def test_create_requires_id(self, editor):
        assert editor.create_node("").error == ErrorCode.MISSING_ID
        assert editor.graph == {}

    def test_delete_leaves_references_dangling(self, editor, event_bus, collect, channel):
        warnings = collect(event_bus, DiagnosticEvent.WARNING)
        editor.create_node("a")
        editor.create_node("b")
        editor.set_answer_next("a", 1, "b")
        channel.drain()

        result = editor.delete_node("b")

        assert result
        assert "b" not in editor.graph
        assert editor.graph["a"].answers[0].next_id == "b"
        assert result.warning_codes() == [ErrorCode.DANGLING_REFERENCE]
        assert len(warnings) == 1
        assert editor.current_node_id is None
        assert types(channel.drain()) == [EnvelopeType.LIST_NODES]

    def test_delete_missing_node(self, editor):
        assert editor.delete_node("ghost").error == ErrorCode.NOT_FOUND

    def test_set_title(self, editor):
        editor.create_node("a")

        assert editor.set_title("a", "Hello there")
        assert editor.graph["a"].title == "Hello there"

        assert editor.set_title("a", "").error == ErrorCode.EMPTY_TITLE
        assert editor.set_title("ghost", "Hi").error == ErrorCode.NOT_FOUND
        assert editor.graph["a"].title == "Hello there"

    def test_select_node_is_not_an_edit(self, editor, channel):
        editor.create_node("a")
        editor.create_node("b")
        editor.context.mark_clean()
        channel.drain()

        assert editor.select_node("a")
        assert editor.current_node_id == "a"
        assert not editor.context.needs_save
        assert channel.peek().id == "a"

        assert editor.select_node("ghost").error == ErrorCode.NOT_FOUND
        assert editor.current_node_id == "a"

    def test_get_node_returns_detached_copy(self, editor):
        editor.create_node("a")

        copy = editor.get_node("a")
        copy.title = "Changed"

        assert editor.graph["a"].title == DEFAULT_TITLE
        assert editor.get_node("ghost") is None

    def test_list_nodes(self, editor, channel):
        editor.create_node("b")
        editor.create_node("a")
        channel.drain()

        summaries = editor.list_nodes()

        assert summaries == [
            {"id": "a", "title": DEFAULT_TITLE, "answerCount": 1},
            {"id": "b", "title": DEFAULT_TITLE, "answerCount": 1},
        ]
        envelope = channel.peek()
        assert envelope.type == EnvelopeType.LIST_NODES
        assert envelope.id == "a"


class TestAnswers:
    @pytest.fixture(autouse=True)
    def node(self, editor):
        editor.create_node("a")

    @pytest.mark.parametrize("slot", [0, 6, -1, "abc", None])
    def test_slot_out_of_range(self, editor, slot):
        result = editor.set_answer_text("a", slot, "Text")

        assert result.error == ErrorCode.SLOT_OUT_OF_RANGE
        assert editor.graph["a"].answer_count == 1

    def test_slot_as_string(self, editor):
        assert editor.set_answer_text("a", "1", "Sure")
        assert editor.graph["a"].answers[0].text == "Sure"

    def test_next_slot_extends_without_warning(self, editor):
        result = editor.set_answer_text("a", 2, "Second")

        assert result
        assert result.warnings == []
        assert [a.text for a in editor.graph["a"].answers] == ["Exit", "Second"]

    def test_skipping_slots_fills_gaps(self, editor, event_bus, collect):
        warnings = collect(event_bus, DiagnosticEvent.WARNING)

        result = editor.set_answer_text("a", 4, "Fourth")

        assert result
        assert result.warning_codes() == [ErrorCode.EMPTY_ANSWERS_CREATED]
        assert len(warnings) == 1
        assert [a.text for a in editor.graph["a"].answers] == ["Exit", "", "", "Fourth"]

    def test_empty_text_accepted_then_stripped_on_load(self, editor, gateway):
        editor.set_answer_text("a", 2, "Second")

        assert editor.set_answer_text("a", 1, "")
        editor.save()

        assert [a.text for a in gateway.load().graph["a"].answers] == ["Second"]

    def test_set_answer_next(self, editor):
        editor.create_node("b")

        result = editor.set_answer_next("a", 1, "b")

        assert result
        assert result.warnings == []
        assert editor.graph["a"].answers[0].next_id == "b"

    def test_set_answer_next_to_missing_node_warns(self, editor):
        result = editor.set_answer_next("a", 1, "nowhere")

        assert result
        assert result.warning_codes() == [ErrorCode.DANGLING_REFERENCE]
        assert editor.graph["a"].answers[0].next_id == "nowhere"

    def test_clear_next_and_fn(self, editor):
        editor.set_answer_next("a", 1, "a")
        editor.set_answer_fn("a", 1, "giveQuest")

        editor.set_answer_next("a", 1, None)
        editor.set_answer_fn("a", 1, None)

        answer = editor.graph["a"].answers[0]
        assert answer.next_id is None
        assert answer.callback_name is None

    def test_reference_to_unfilled_slot(self, editor):
        assert editor.set_answer_next("a", 3, "b").error == ErrorCode.SLOT_DOES_NOT_EXIST
        assert editor.set_answer_fn("a", 2, "x").error == ErrorCode.SLOT_DOES_NOT_EXIST
        assert editor.set_answer_fn("a", 9, "x").error == ErrorCode.SLOT_OUT_OF_RANGE
        assert editor.set_answer_fn("ghost", 1, "x").error == ErrorCode.NOT_FOUND


class TestAutosave:
    def test_first_tick_after_edit_saves(self, editor, memory_store, event_bus, collect):
        triggered = collect(event_bus, SaveEvent.AUTO_SAVE_TRIGGERED)
        editor.create_node("a")

        result = editor.tick("autosave")

        assert result
        assert memory_store.writes == 1
        assert not editor.context.needs_save
        assert len(triggered) == 1

    def test_clean_graph_never_saves(self, editor, memory_store):
        for _ in range(3):
            assert editor.tick("autosave") is None
        assert memory_store.writes == 0

    def test_other_timers_are_ignored(self, editor, memory_store):
        editor.create_node("a")

        assert editor.tick("availability") is None
        assert memory_store.writes == 0
        assert editor.context.needs_save

    def test_edits_restart_the_debounce(self, gateway, memory_store):
        editor = GraphEditor(gateway, config=EditorConfig(debounce_cycles=3, seed_starter_node=False))
        editor.open()
        editor.create_node("a")

        editor.tick("autosave")
        editor.tick("autosave")
        editor.set_title("a", "Still typing")
        editor.tick("autosave")
        editor.tick("autosave")
        assert memory_store.writes == 0

        editor.tick("autosave")
        assert memory_store.writes == 1

    def test_failed_save_stays_dirty(self, editor, memory_store, channel):
        memory_store.write = MagicMock(side_effect=StoreError("disk full"))
        editor.create_node("a")
        channel.drain()

        result = editor.tick("autosave")

        assert not result
        assert result.error == ErrorCode.SAVE_ERROR
        assert editor.context.needs_save
        assert editor.context.save_cycles == 0
        assert channel.peek().type == EnvelopeType.ERROR

    def test_save_keeps_created_and_bumps_updated(self, editor):
        created = editor.context.meta.created
        editor.create_node("a")

        editor.save()
        first = editor.context.meta.updated
        editor.set_title("a", "Again")
        editor.save()

        assert editor.context.meta.created == created
        assert editor.context.meta.updated > first > created

    def test_close_flushes_dirty_graph(self, editor, memory_store):
        assert editor.close() is None

        editor.create_node("a")
        assert editor.close()
        assert memory_store.writes == 1

    def test_attach_registers_timer(self, editor):
        driver = MagicMock()

        editor.attach(driver)

        driver.set_timer.assert_called_once_with("autosave", 1.5, editor.tick)
