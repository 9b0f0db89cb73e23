"""
Persistence gateway - load/save a dialogue graph as a single blob.

Provides:
- One-write saves of graph + meta + config
- Integrity checksum (SHA-256) stamped into meta
- Corruption recovery: an unreadable blob loads as "absent"
- Per-node validation: bad nodes are skipped, the rest load
- Version stamping on every save

Blob layout:
    {
        "meta":  {"version", "created", "updated", "checksum"},
        "cfg":   {"exitLabel", "autosaveDebounceInterval"},
        "nodes": {"<id>": {"id", "title", "answers": [{"text", "nextId", "fn"}]}}
    }

Usage:
    gateway = PersistenceGateway(FileBlobStore("dialogue.json"), event_bus=bus)
    result = gateway.load()
    graph = result.graph if result.graph is not None else {}
    gateway.save(graph, result.meta, result.config)
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional

import jsonschema
from pydantic import ValidationError

from engine.core.errors import (
    CorruptBlobError,
    Diagnostic,
    ErrorCode,
    Severity,
    StoreError,
)
from engine.core.events import EventBus, SaveEvent
from engine.core.model import Config, Graph, Meta, Node
from engine.core.validation import normalize, validate
from engine.resources.schemas import BLOB_SCHEMA
from engine.resources.store import BlobStore

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    """
    Outcome of a load.

    graph is None when there was nothing usable in the store (missing,
    empty or corrupt blob); callers start from an empty graph then.
    """
    graph: Optional[Graph]
    meta: Meta = field(default_factory=Meta)
    config: Config = field(default_factory=Config)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def absent(self) -> bool:
        return self.graph is None

    @property
    def corrupt(self) -> bool:
        return any(d.code == ErrorCode.CORRUPT_BLOB for d in self.diagnostics)

    def warnings(self, code: Optional[ErrorCode] = None) -> list[Diagnostic]:
        """Warnings, optionally of one kind only."""
        return [
            d for d in self.diagnostics
            if d.severity == Severity.WARNING and (code is None or d.code == code)
        ]


@dataclass
class SaveResult:
    success: bool
    error: Optional[ErrorCode] = None
    message: str = ""

    def __bool__(self) -> bool:
        return self.success


class PersistenceGateway:
    """
    Loads and saves the whole graph through a BlobStore.

    Features:
    - Atomic saves (a failed save leaves store and meta untouched)
    - Checksum validation for blob integrity
    - Event publishing for save/load operations
    - Lenient loading: unknown fields ignored, defaults for missing ones
    """

    VERSION = "1.0"

    def __init__(
        self,
        store: BlobStore,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.event_bus = event_bus
        self._clock = clock

    # Loading

    def load(self) -> LoadResult:
        """
        Load the graph from the store.

        Never raises: every failure is reported through the result's
        diagnostics and the event bus.
        """
        self._publish(SaveEvent.LOAD_STARTED)

        try:
            text = self.store.read()
        except StoreError as e:
            return self._load_failed(ErrorCode.LOAD_ERROR, str(e))

        if text is None or not text.strip():
            logger.info("No data in store, starting fresh")
            self._publish(SaveEvent.LOAD_COMPLETED, node_count=0, absent=True)
            return LoadResult(graph=None)

        try:
            data = self.decode(text)
        except CorruptBlobError as e:
            return self._load_failed(ErrorCode.CORRUPT_BLOB, str(e))

        diagnostics: list[Diagnostic] = []
        meta = self._parse_section(Meta, data.get('meta'), 'meta', diagnostics)
        config = self._parse_section(Config, data.get('cfg'), 'cfg', diagnostics)

        if meta.version != self.VERSION:
            logger.info(
                f"Blob version {meta.version} differs from {self.VERSION}, "
                f"it will be restamped on the next save"
            )

        graph: Graph = {}
        for key, record in self._iter_records(data.get('nodes')):
            node = self._parse_node(key, record, config, diagnostics)
            if node is None:
                continue
            if node.id in graph:
                self._skip(key, ErrorCode.DUPLICATE_ID, f"Duplicate node id {node.id}", diagnostics)
                continue
            graph[node.id] = node

        for diagnostic in diagnostics:
            self._report(diagnostic)

        logger.info(f"Loaded {len(graph)} nodes")
        self._publish(SaveEvent.LOAD_COMPLETED, node_count=len(graph), absent=False)
        return LoadResult(graph=graph, meta=meta, config=config, diagnostics=diagnostics)

    def decode(self, text: str) -> dict[str, Any]:
        """
        Parse blob text into a dictionary.

        Raises:
            CorruptBlobError: If the text is not a well-formed blob or
                its checksum does not match
        """
        try:
            data = json.loads(text)
        except ValueError as e:
            raise CorruptBlobError(f"Failed to parse blob: {e}") from e

        try:
            jsonschema.validate(instance=data, schema=BLOB_SCHEMA)
        except jsonschema.ValidationError as e:
            raise CorruptBlobError(f"Blob has invalid layout: {e.message}") from e

        checksum = (data.get('meta') or {}).get('checksum')
        if checksum and not self.verify_checksum(data, checksum):
            raise CorruptBlobError("Checksum mismatch")

        return data

    def _iter_records(self, nodes: Any) -> Iterator[tuple[str, Any]]:
        if not nodes:
            return
        if isinstance(nodes, dict):
            yield from nodes.items()
        else:
            for index, record in enumerate(nodes):
                key = record.get('id') if isinstance(record, dict) else None
                yield str(key if key is not None else f"#{index + 1}"), record

    def _parse_node(
        self,
        key: str,
        record: Any,
        config: Config,
        diagnostics: list[Diagnostic],
    ) -> Optional[Node]:
        if not isinstance(record, dict):
            self._skip(key, ErrorCode.VALIDATION_ERROR, "Node record is not an object", diagnostics)
            return None

        try:
            node = Node.model_validate(record)
        except ValidationError as e:
            self._skip(key, ErrorCode.VALIDATION_ERROR, f"{e.error_count()} invalid field(s)", diagnostics)
            return None

        normalized = normalize(node, config)
        diagnostics.extend(normalized.warnings)

        outcome = validate(normalized.node)
        if not outcome.ok:
            self._skip(key, outcome.reason, outcome.message, diagnostics)
            return None

        if normalized.node.id != key:
            logger.warning(f"Node stored under key {key} has id {normalized.node.id}")

        return normalized.node

    def _parse_section(self, model, data: Any, name: str, diagnostics: list[Diagnostic]):
        try:
            return model.model_validate(data or {})
        except ValidationError as e:
            message = f"Invalid {name} section, using defaults ({e.error_count()} error(s))"
            logger.warning(message)
            diagnostics.append(Diagnostic(ErrorCode.VALIDATION_ERROR, message))
            return model()

    def _skip(
        self,
        key: str,
        code: ErrorCode,
        reason: str,
        diagnostics: list[Diagnostic],
    ) -> None:
        message = f"Skipping invalid node {key}: {reason}"
        logger.warning(message)
        diagnostics.append(Diagnostic(code, message, key))

    def _load_failed(self, code: ErrorCode, message: str) -> LoadResult:
        logger.error(f"{message}, starting fresh")
        diagnostic = Diagnostic(code, message, severity=Severity.ERROR)
        self._report(diagnostic)
        self._publish(SaveEvent.LOAD_FAILED, error=message)
        return LoadResult(graph=None, diagnostics=[diagnostic])

    # Saving

    def save(self, graph: Graph, meta: Meta, config: Config) -> SaveResult:
        """
        Save the whole graph in one write.

        On success meta.updated (and version/checksum) are refreshed in
        place. On failure nothing changes.
        """
        self._publish(SaveEvent.SAVE_STARTED, node_count=len(graph))

        now = self._clock()
        stamped = Meta(
            version=self.VERSION,
            created=meta.created or now,
            updated=now,
        )

        try:
            text = self.encode(graph, stamped, config)
            self.store.write(text)
        except (StoreError, TypeError, ValueError) as e:
            message = f"Save failed: {e}"
            logger.error(message)
            self._report(Diagnostic(ErrorCode.SAVE_ERROR, message, severity=Severity.ERROR))
            self._publish(SaveEvent.SAVE_FAILED, error=str(e))
            return SaveResult(False, ErrorCode.SAVE_ERROR, message)

        meta.version = stamped.version
        meta.created = stamped.created
        meta.updated = stamped.updated
        meta.checksum = stamped.checksum

        logger.info(f"Saved {len(graph)} nodes")
        self._publish(SaveEvent.SAVE_COMPLETED, node_count=len(graph))
        return SaveResult(True)

    def encode(self, graph: Graph, meta: Meta, config: Config) -> str:
        """Serialize to blob text, stamping meta.checksum."""
        meta_data = meta.to_dict()
        meta_data.pop('checksum', None)
        data = {
            'meta': meta_data,
            'cfg': config.to_dict(),
            'nodes': {node_id: graph[node_id].to_dict() for node_id in sorted(graph)},
        }
        meta.checksum = self.calculate_checksum(data)
        data['meta']['checksum'] = meta.checksum
        return json.dumps(data, indent=2, ensure_ascii=False)

    def verify(self) -> bool:
        """
        Check the stored blob's integrity without loading it.

        Returns:
            True if the blob decodes (or there is none), False if corrupt
        """
        try:
            text = self.store.read()
        except StoreError:
            return False
        if text is None or not text.strip():
            return True
        try:
            self.decode(text)
        except CorruptBlobError:
            return False
        return True

    # Checksum validation

    def calculate_checksum(self, data: dict) -> str:
        """Checksum over the canonical JSON form of a blob."""
        json_str = json.dumps(data, sort_keys=True, separators=(',', ':'), ensure_ascii=False)
        hash_bytes = hashlib.sha256(json_str.encode('utf-8')).digest()
        return base64.b64encode(hash_bytes).decode('ascii')

    def verify_checksum(self, data: dict, expected_checksum: str) -> bool:
        data_copy = dict(data)
        meta_copy = dict(data_copy.get('meta') or {})
        meta_copy.pop('checksum', None)
        data_copy['meta'] = meta_copy
        return self.calculate_checksum(data_copy) == expected_checksum

    # Events

    def _publish(self, event_type: SaveEvent, **data: Any) -> None:
        if self.event_bus:
            self.event_bus.publish(event_type, **data)

    def _report(self, diagnostic: Diagnostic) -> None:
        if self.event_bus:
            self.event_bus.report(diagnostic)
