"""
Error taxonomy for the dialogue graph engine.

Operations never raise on bad input. They return a result carrying an
ErrorCode, and attach Diagnostics for non-fatal problems. Exceptions are
only used inside the persistence layer and are caught at its boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional


class ErrorCode(Enum):
    """Every reason an operation can fail or warn."""
    # Validation
    MISSING_ID = auto()
    MISSING_TITLE = auto()
    ANSWER_COUNT_OUT_OF_RANGE = auto()
    EMPTY_ANSWER_TEXT = auto()
    TOO_MANY_ANSWERS = auto()
    VALIDATION_ERROR = auto()

    # Editing
    DUPLICATE_ID = auto()
    NOT_FOUND = auto()
    EMPTY_TITLE = auto()
    SLOT_OUT_OF_RANGE = auto()
    SLOT_DOES_NOT_EXIST = auto()
    EMPTY_ANSWERS_CREATED = auto()

    # Persistence
    CORRUPT_BLOB = auto()
    LOAD_ERROR = auto()
    SAVE_ERROR = auto()

    # References and playback
    DANGLING_REFERENCE = auto()
    UNKNOWN_CALLBACK = auto()
    CALLBACK_FAILED = auto()
    EMPTY_GRAPH = auto()
    NO_ENTRY_NODE = auto()
    NOT_ACTIVE = auto()
    INVALID_ANSWER_INDEX = auto()
    HISTORY_EMPTY = auto()

    # Command surface
    UNKNOWN_COMMAND = auto()
    USAGE = auto()


class Severity(Enum):
    """How loud a diagnostic is."""
    INFO = auto()
    WARNING = auto()
    ERROR = auto()


@dataclass
class Diagnostic:
    """A non-fatal problem reported to the caller."""
    code: ErrorCode
    message: str
    node_id: Optional[str] = None
    severity: Severity = Severity.WARNING

    def __str__(self) -> str:
        return f"{self.code.name}: {self.message}"


@dataclass
class Result:
    """
    Outcome of an operation.

    Attributes:
        success: Whether the operation took effect
        error: Why it failed (None on success)
        message: Human readable reason
        warnings: Non-fatal diagnostics raised along the way
    """
    success: bool
    error: Optional[ErrorCode] = None
    message: str = ""
    warnings: list[Diagnostic] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, warnings: Optional[list[Diagnostic]] = None) -> Result:
        return cls(success=True, warnings=list(warnings or []))

    @classmethod
    def fail(cls, error: ErrorCode, message: str) -> Result:
        return cls(success=False, error=error, message=message)

    def warning_codes(self) -> list[ErrorCode]:
        """Codes of all attached warnings, in order."""
        return [w.code for w in self.warnings]


class DialogueError(Exception):
    """Base class for internal persistence errors."""

    code: ErrorCode = ErrorCode.LOAD_ERROR


class StoreError(DialogueError):
    """The blob store could not be read or written."""

    code = ErrorCode.SAVE_ERROR


class CorruptBlobError(DialogueError):
    """The blob exists but cannot be decoded into a graph."""

    code = ErrorCode.CORRUPT_BLOB


@dataclass
class CommandResult:
    """Outcome of one typed command or display interaction."""
    success: bool
    message: str = ""
    lines: list[str] = field(default_factory=list)
    error: Optional[ErrorCode] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def from_result(cls, result: Result, message: str = "") -> CommandResult:
        lines = [str(w) for w in result.warnings]
        if result.success:
            return cls(True, message, lines)
        return cls(False, result.message, lines, result.error)
