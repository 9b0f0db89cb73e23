import pytest
from engine.core.errors import ErrorCode
from framework.dialog.commands import PlaybackCommands
from framework.dialog.system import PlaybackEngine


@pytest.fixture
def commands(sample_graph):
    return PlaybackCommands(PlaybackEngine(graph=sample_graph))


def test_start_shows_node(commands):
    result = commands.execute("start")

    assert result
    assert result.message == "Presenting start"
    assert result.lines == [
        "=== Welcome ===",
        "1. Tell me more →middle",
        "2. Where is b? →b",
        "3. Bye [END]",
    ]


def test_numbers_select_answers(commands):
    commands.execute("start")

    result = commands.execute("1")

    assert result.lines[0] == "=== The middle ==="
    assert result.lines[1] == "1. Go on →end ƒgiveQuest"


def test_terminal_answer_ends(commands):
    commands.execute("start")

    result = commands.execute("3")

    assert result
    assert result.message == "Dialogue ended"
    assert result.lines == []


def test_errors_pass_through(commands):
    assert commands.execute("1").error == ErrorCode.NOT_ACTIVE
    commands.execute("start")
    assert commands.execute("9").error == ErrorCode.INVALID_ANSWER_INDEX
    assert commands.execute("2").error == ErrorCode.DANGLING_REFERENCE


@pytest.mark.parametrize("text", ["stop", "exit", "EXIT"])
def test_stop_aliases(commands, text):
    commands.execute("start")

    assert commands.execute(text)
    assert not commands.engine.is_active


def test_back_and_restart(commands):
    commands.execute("start")
    commands.execute("1")

    assert commands.execute("back").message == "Presenting start"
    commands.execute("1")
    assert commands.execute("restart").message == "Presenting start"


def test_unknown_and_empty(commands):
    assert commands.execute("dance").error == ErrorCode.UNKNOWN_COMMAND
    assert commands.execute("  ").error == ErrorCode.USAGE


def test_interactions(commands):
    assert commands.handle_interaction({"type": "action", "payload": {"op": "start"}})
    assert commands.handle_interaction({"type": "clickAnswer", "payload": {"idx": 1}})
    assert commands.engine.current_node_id == "middle"

    rejected = commands.handle_interaction({"type": "selectNode", "payload": {"id": "start"}})
    assert rejected.error == ErrorCode.USAGE
