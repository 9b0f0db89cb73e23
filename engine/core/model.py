"""
Dialogue graph data model.

Models are pure data containers with NO editing logic. All mutation
goes through the GraphEditor, all checks through engine.core.validation.
Pydantic gives us:
- Validation of field types on load and assignment
- JSON serialization with the persisted wire names
- Default values for fields missing from older blobs

Usage:
    node = Node(id="start", title="Welcome", answers=[
        Answer(text="Who are you?", next_id="intro"),
        Answer(text="Bye"),
    ])
    node.answers[0].is_terminal   # False
    node.model_dump(by_alias=True, exclude_none=True)
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


MAX_ANSWERS = 5
MIN_ANSWERS = 1
ENTRY_NODE_ID = "start"
DEFAULT_TITLE = "New Dialogue"


def _optional_reference(value: Any) -> Any:
    """Empty strings on the wire mean 'unset'."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class GraphModel(BaseModel):
    """
    Base class for all persisted dialogue data.

    Unknown fields are ignored so newer blobs still load.
    """

    model_config = ConfigDict(
        extra='ignore',
        populate_by_name=True,
        validate_assignment=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the persisted field names."""
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)


class Answer(GraphModel):
    """A single selectable choice within a node."""
    text: str = ""
    next_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("nextId", "next_id"),
        serialization_alias="nextId",
    )
    callback_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("fn", "callbackName", "callback_name"),
        serialization_alias="fn",
    )

    @field_validator("text", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("next_id", "callback_name", mode="before")
    @classmethod
    def _clear_empty(cls, value: Any) -> Any:
        return _optional_reference(value)

    @property
    def is_terminal(self) -> bool:
        """True if choosing this answer ends the dialogue."""
        return self.next_id is None


class Node(GraphModel):
    """One unit of dialogue content: a title plus its answers."""
    id: str = ""
    title: str = ""
    answers: list[Answer] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if value is None:
            return ""
        return value

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("answers", mode="before")
    @classmethod
    def _coerce_answers(cls, value: Any) -> Any:
        if value is None:
            return []
        # Sparse arrays arrive as {"1": {...}, "2": {...}}
        if isinstance(value, dict):
            try:
                return [value[key] for key in sorted(value, key=int)]
            except (TypeError, ValueError):
                return list(value.values())
        return value

    @property
    def answer_count(self) -> int:
        return len(self.answers)

    def get_answer(self, slot: int) -> Optional[Answer]:
        """Get an answer by its 1-based slot."""
        if 1 <= slot <= len(self.answers):
            return self.answers[slot - 1]
        return None

    def snapshot(self) -> Node:
        """Detached deep copy, safe to hand to other components."""
        return self.model_copy(deep=True)

    def summary(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "answerCount": self.answer_count}


class Meta(GraphModel):
    """Version and timestamps stamped on every persisted blob."""
    version: str = "1.0"
    created: float = 0.0
    updated: float = 0.0
    checksum: Optional[str] = None

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class Config(GraphModel):
    """Authoring settings that travel with the graph."""
    exit_label: str = Field(
        default="Exit",
        validation_alias=AliasChoices("exitLabel", "exit_label"),
        serialization_alias="exitLabel",
    )
    autosave_debounce_interval: float = Field(
        default=1.5,
        validation_alias=AliasChoices(
            "autosaveDebounceInterval",
            "debounceDelay",
            "autosave_debounce_interval",
        ),
        serialization_alias="autosaveDebounceInterval",
    )


# Node id -> Node
Graph = dict[str, Node]


def default_answer(config: Optional[Config] = None) -> Answer:
    """The terminal answer every new node starts with."""
    config = config or Config()
    return Answer(text=config.exit_label)


def new_node(node_id: str, config: Optional[Config] = None) -> Node:
    """Create a node with one default terminal answer."""
    return Node(id=node_id, title=DEFAULT_TITLE, answers=[default_answer(config)])


def find_entry_node(graph: Graph, preferred: str = ENTRY_NODE_ID) -> Optional[str]:
    """
    Pick the node playback starts at.

    The preferred id wins when present, otherwise the lexicographically
    smallest id so the choice is stable across runs.
    """
    if preferred in graph:
        return preferred
    if not graph:
        return None
    return min(graph)


def graph_summary(graph: Graph) -> list[dict[str, Any]]:
    """Summaries of every node, ordered by id."""
    return [graph[node_id].summary() for node_id in sorted(graph)]
