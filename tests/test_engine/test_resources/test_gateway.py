import json
import logging
import pytest
from unittest.mock import MagicMock
from engine.core.errors import ErrorCode, Severity, StoreError
from engine.core.events import DiagnosticEvent, SaveEvent
from engine.core.model import Answer, Config, Meta
from engine.resources.gateway import PersistenceGateway


def write_blob(store, nodes, **extra):
    data = {"meta": {"version": "1.0", "created": 1, "updated": 2}, "cfg": {"exitLabel": "Exit"}, "nodes": nodes}
    data.update(extra)
    store.text = json.dumps(data)


def test_load_missing_blob_is_absent_not_error(gateway, event_bus, collect):
    errors = collect(event_bus, DiagnosticEvent.ERROR)

    result = gateway.load()

    assert result.absent
    assert not result.corrupt
    assert result.diagnostics == []
    assert errors == []


def test_load_empty_blob_is_absent(gateway, memory_store):
    memory_store.text = "   "

    assert gateway.load().absent


@pytest.mark.parametrize("text", [
    "{not json",
    "[1, 2, 3]",
    '{"nodes": "oops"}',
    '{"meta": [], "nodes": {}}',
])
def test_load_corrupt_blob(gateway, memory_store, event_bus, collect, text):
    failures = collect(event_bus, SaveEvent.LOAD_FAILED)
    memory_store.text = text

    result = gateway.load()

    assert result.absent
    assert result.corrupt
    assert result.diagnostics[0].severity == Severity.ERROR
    assert len(failures) == 1


def test_load_store_error_falls_back_to_absent(event_bus):
    store = MagicMock()
    store.read.side_effect = StoreError("unreadable")
    gateway = PersistenceGateway(store, event_bus=event_bus)

    result = gateway.load()

    assert result.absent
    assert result.diagnostics[0].code == ErrorCode.LOAD_ERROR


def test_round_trip(gateway, sample_graph):
    meta, config = Meta(), Config(exit_label="Leave")

    assert gateway.save(sample_graph, meta, config)
    result = gateway.load()

    assert result.graph == sample_graph
    assert result.config == config
    assert result.meta.updated == meta.updated
    assert result.diagnostics == []


def test_save_refreshes_updated_and_stamps_version(gateway, sample_graph):
    meta = Meta(version="0.9", created=5.0, updated=6.0)

    gateway.save(sample_graph, meta, Config())
    first = meta.updated
    gateway.save(sample_graph, meta, Config())

    assert meta.created == 5.0
    assert meta.version == PersistenceGateway.VERSION
    assert first > 6.0
    assert meta.updated > first
    assert meta.checksum


def test_save_writes_expected_layout(gateway, memory_store, sample_graph):
    gateway.save(sample_graph, Meta(), Config())

    data = json.loads(memory_store.text)

    assert set(data) == {"meta", "cfg", "nodes"}
    assert set(data["meta"]) == {"version", "created", "updated", "checksum"}
    assert data["cfg"] == {"exitLabel": "Exit", "autosaveDebounceInterval": 1.5}
    assert data["nodes"]["middle"]["answers"] == [{"text": "Go on", "nextId": "end", "fn": "giveQuest"}]
    assert memory_store.writes == 1


def test_failed_save_changes_nothing(sample_graph, event_bus, collect):
    store = MagicMock()
    store.write.side_effect = StoreError("disk full")
    gateway = PersistenceGateway(store, event_bus=event_bus)
    failures = collect(event_bus, SaveEvent.SAVE_FAILED)
    meta = Meta(updated=1.0)

    result = gateway.save(sample_graph, meta, Config())

    assert not result
    assert result.error == ErrorCode.SAVE_ERROR
    assert meta.updated == 1.0
    assert meta.checksum is None
    assert len(failures) == 1


def test_checksum_mismatch_is_corrupt(gateway, memory_store, sample_graph):
    gateway.save(sample_graph, Meta(), Config())
    data = json.loads(memory_store.text)
    data["nodes"]["start"]["title"] = "Tampered"
    memory_store.text = json.dumps(data)

    result = gateway.load()

    assert result.absent
    assert result.corrupt
    assert not gateway.verify()


def test_blob_without_checksum_loads(gateway, memory_store):
    write_blob(memory_store, {"a": {"id": "a", "title": "A", "answers": [{"text": "Ok"}]}})

    result = gateway.load()

    assert list(result.graph) == ["a"]
    assert gateway.verify()


def test_invalid_nodes_are_skipped(gateway, memory_store, event_bus, collect):
    warnings = collect(event_bus, DiagnosticEvent.WARNING)
    write_blob(memory_store, {
        "good": {"id": "good", "title": "Good", "answers": [{"text": "Ok"}]},
        "untitled": {"id": "untitled", "title": "", "answers": [{"text": "Ok"}]},
        "noid": {"title": "No id", "answers": [{"text": "Ok"}]},
        "garbage": "not a node",
        "typed": {"id": "typed", "title": "T", "answers": [{"text": ["not", "text"]}]},
    })

    result = gateway.load()

    assert list(result.graph) == ["good"]
    codes = sorted(d.code.name for d in result.warnings())
    assert codes == sorted([
        ErrorCode.MISSING_TITLE.name,
        ErrorCode.MISSING_ID.name,
        ErrorCode.VALIDATION_ERROR.name,
        ErrorCode.VALIDATION_ERROR.name,
    ])
    assert len(warnings) == 4


def test_six_answers_capped_with_one_warning(gateway, memory_store):
    write_blob(memory_store, {
        "busy": {"id": "busy", "title": "Busy", "answers": [{"text": str(i)} for i in range(1, 7)]},
    })

    result = gateway.load()

    assert [a.text for a in result.graph["busy"].answers] == ["1", "2", "3", "4", "5"]
    assert len(result.warnings(ErrorCode.TOO_MANY_ANSWERS)) == 1
    assert len(result.warnings()) == 1


def test_empty_answers_stripped_on_load(gateway, memory_store):
    write_blob(memory_store, {
        "gappy": {"id": "gappy", "title": "G", "answers": [{"text": "A"}, {"text": ""}, {"text": "B"}]},
        "hollow": {"id": "hollow", "title": "H", "answers": [{"text": ""}]},
        "bare": {"id": "bare", "title": "B"},
    })

    graph = gateway.load().graph

    assert [a.text for a in graph["gappy"].answers] == ["A", "B"]
    assert [a.text for a in graph["hollow"].answers] == ["Exit"]
    assert [a.text for a in graph["bare"].answers] == ["Exit"]


def test_dangling_references_are_tolerated(gateway, memory_store):
    write_blob(memory_store, {
        "a": {"id": "a", "title": "A", "answers": [{"text": "Go", "nextId": "nowhere"}]},
    })

    result = gateway.load()

    assert result.graph["a"].answers[0].next_id == "nowhere"
    assert result.diagnostics == []


def test_unknown_fields_and_defaults(gateway, memory_store):
    memory_store.text = json.dumps({
        "future": {"anything": True},
        "nodes": {"a": {"id": "a", "title": "A", "mood": "happy", "answers": [{"text": "Ok", "weight": 3}]}},
    })

    result = gateway.load()

    assert result.graph["a"].answers == [Answer(text="Ok")]
    assert result.meta == Meta()
    assert result.config == Config()


def test_nodes_as_array(gateway, memory_store):
    memory_store.text = json.dumps({"nodes": [
        {"id": "a", "title": "A", "answers": [{"text": "Ok"}]},
    ]})
    assert list(gateway.load().graph) == ["a"]

    memory_store.text = json.dumps({"nodes": []})
    result = gateway.load()
    assert result.graph == {}
    assert not result.absent


def test_duplicate_ids_keep_first(gateway, memory_store):
    write_blob(memory_store, {
        "a": {"id": "a", "title": "First", "answers": [{"text": "Ok"}]},
        "copy": {"id": "a", "title": "Second", "answers": [{"text": "Ok"}]},
    })

    result = gateway.load()

    assert result.graph["a"].title == "First"
    assert result.warnings(ErrorCode.DUPLICATE_ID)


def test_partial_sections_fill_defaults(gateway, memory_store):
    memory_store.text = json.dumps({"cfg": {"exitLabel": "Leave"}, "meta": {"version": 0.5}, "nodes": {}})

    result = gateway.load()

    assert result.config.exit_label == "Leave"
    assert result.config.autosave_debounce_interval == 1.5
    assert result.meta.version == "0.5"


def test_legacy_field_names(gateway, memory_store):
    memory_store.text = json.dumps({
        "cfg": {"debounceDelay": 3},
        "nodes": {"a": {"id": "a", "title": "A", "answers": [{"text": "Go", "nextId": "b", "callbackName": "wave"}]}},
    })

    result = gateway.load()

    assert result.config.autosave_debounce_interval == 3.0
    answer = result.graph["a"].answers[0]
    assert answer.next_id == "b"
    assert answer.callback_name == "wave"


def test_sparse_answer_map(gateway, memory_store):
    write_blob(memory_store, {
        "a": {"id": "a", "title": "A", "answers": {"2": {"text": "Second"}, "1": {"text": "First"}}},
    })

    assert [a.text for a in gateway.load().graph["a"].answers] == ["First", "Second"]


def test_lifecycle_events(gateway, event_bus, collect, sample_graph):
    started = collect(event_bus, SaveEvent.SAVE_STARTED)
    completed = collect(event_bus, SaveEvent.SAVE_COMPLETED)
    loaded = collect(event_bus, SaveEvent.LOAD_COMPLETED)

    gateway.save(sample_graph, Meta(), Config())
    gateway.load()

    assert len(started) == 1
    assert completed[0]["node_count"] == 3
    assert loaded[0]["node_count"] == 3


def test_corrupt_blob_is_logged(gateway, memory_store, caplog):
    memory_store.text = "{broken"

    with caplog.at_level(logging.ERROR, logger="engine.resources.gateway"):
        gateway.load()

    assert "starting fresh" in caplog.text
