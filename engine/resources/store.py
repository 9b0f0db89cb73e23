"""
Opaque blob stores.

A store holds exactly one text blob. The gateway decides what goes
in it; a store only promises that write() replaces the whole blob or
nothing at all.
"""

from __future__ import annotations

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from engine.core.errors import StoreError

logger = logging.getLogger(__name__)


class BlobStore(ABC):
    """Durable single-blob storage."""

    @abstractmethod
    def read(self) -> Optional[str]:
        """Return the stored blob, or None if nothing was ever written."""

    @abstractmethod
    def write(self, text: str) -> None:
        """Replace the stored blob. Raises StoreError on failure."""

    def clear(self) -> None:
        self.write("")


class MemoryBlobStore(BlobStore):
    """Blob kept in memory. Shared between an editor and a player in tests."""

    def __init__(self, text: Optional[str] = None):
        self.text = text
        self.writes = 0

    def read(self) -> Optional[str]:
        return self.text

    def write(self, text: str) -> None:
        self.text = text
        self.writes += 1


class FileBlobStore(BlobStore):
    """
    Blob stored in a single file.

    Writes go to a temporary file in the same directory which is then
    renamed over the target, so readers see the old blob or the new
    one, never half of each.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def read(self) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            return self.path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise StoreError(f"Failed to read {self.path}: {e}") from e

    def write(self, text: str) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                dir=self.path.parent,
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreError(f"Failed to write {self.path}: {e}") from e
        logger.debug(f"Wrote {len(text)} bytes to {self.path}")
