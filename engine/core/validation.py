"""
Node validation and normalization.

Pure functions over Node/Graph values. Used when a blob is loaded
and by the editor to report dangling references.

Rules:
- A node needs an id, a title and 1 to 5 answers
- Answers with empty text are stripped during normalization
- More than 5 answers are capped to the first 5 (with a warning)
- A node left with no answers gets one default terminal answer
- next_id references may dangle; they are flagged, never fatal
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import NamedTuple, Optional

from engine.core.errors import Diagnostic, ErrorCode, Severity
from engine.core.model import (
    Config,
    Graph,
    MAX_ANSWERS,
    MIN_ANSWERS,
    Node,
    default_answer,
)

logger = logging.getLogger(__name__)


@dataclass
class NormalizeResult:
    """A normalized copy of a node plus whatever was fixed on the way."""
    node: Node
    warnings: list[Diagnostic] = field(default_factory=list)


class ValidationOutcome(NamedTuple):
    ok: bool
    reason: Optional[ErrorCode] = None
    message: str = ""


class DanglingReference(NamedTuple):
    node_id: str
    slot: int
    next_id: str


def normalize(node: Node, config: Optional[Config] = None) -> NormalizeResult:
    """
    Repair a node's answers.

    Returns a new node; the input is left untouched. Normalizing an
    already normalized node changes nothing and warns about nothing.
    """
    fixed = node.snapshot()
    warnings: list[Diagnostic] = []

    answers = [answer for answer in fixed.answers if answer.text]

    if len(answers) > MAX_ANSWERS:
        message = (
            f"Node {node.id} has {len(answers)} answers, "
            f"keeping the first {MAX_ANSWERS}"
        )
        logger.warning(message)
        warnings.append(Diagnostic(ErrorCode.TOO_MANY_ANSWERS, message, node.id))
        answers = answers[:MAX_ANSWERS]

    if not answers:
        answers = [default_answer(config)]

    fixed.answers = answers
    return NormalizeResult(node=fixed, warnings=warnings)


def validate(node: Node) -> ValidationOutcome:
    """Check a node against the graph invariants."""
    if not node.id:
        return ValidationOutcome(False, ErrorCode.MISSING_ID, "Node ID required")
    if not node.title:
        return ValidationOutcome(False, ErrorCode.MISSING_TITLE, "Title required")

    count = len(node.answers)
    if count < MIN_ANSWERS or count > MAX_ANSWERS:
        return ValidationOutcome(
            False,
            ErrorCode.ANSWER_COUNT_OUT_OF_RANGE,
            f"Answers must be {MIN_ANSWERS}-{MAX_ANSWERS} (got {count})",
        )

    for slot, answer in enumerate(node.answers, start=1):
        if not answer.text:
            return ValidationOutcome(
                False,
                ErrorCode.EMPTY_ANSWER_TEXT,
                f"Answer {slot} text required",
            )

    return ValidationOutcome(True)


def find_dangling_references(
    graph: Graph,
    target_id: Optional[str] = None,
) -> list[DanglingReference]:
    """
    Find answers whose next_id points outside the graph.

    Args:
        graph: The graph to scan
        target_id: Only report references to this id

    Returns:
        References ordered by node id, then slot
    """
    found = []
    for node_id in sorted(graph):
        for slot, answer in enumerate(graph[node_id].answers, start=1):
            if answer.next_id is None or answer.next_id in graph:
                continue
            if target_id is not None and answer.next_id != target_id:
                continue
            found.append(DanglingReference(node_id, slot, answer.next_id))
    return found


def dangling_diagnostics(
    graph: Graph,
    target_id: Optional[str] = None,
) -> list[Diagnostic]:
    """One warning per dangling reference."""
    return [
        Diagnostic(
            ErrorCode.DANGLING_REFERENCE,
            f"Node {ref.node_id} answer {ref.slot} has dangling reference "
            f"to node {ref.next_id}",
            ref.node_id,
            Severity.WARNING,
        )
        for ref in find_dangling_references(graph, target_id)
    ]
