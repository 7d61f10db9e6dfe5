"""Durable backends for the image record store.

A backend stores one whole document, ``{"images": [...], "nextId": n}``, and
exposes exactly two operations: read everything and write everything.  The
record store owns all merging and id bookkeeping; backends never interpret the
document beyond (de)serialising it.

Two implementations are provided:

- :class:`JsonFileBackend` keeps the document in a single JSON file.  Writes
  go to a sibling temp file that is then atomically moved over the target, so
  a crash mid-write leaves the previous document intact.
- :class:`MemoryBackend` keeps the document in process memory and is used by
  tests and by callers embedding the store without a disk.
"""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, Protocol

from curator.core.errors import StorageFailure


class DurableBackend(Protocol):
    """Whole-document storage used by :class:`~curator.core.image_store.ImageStore`."""

    def read_all(self) -> dict[str, Any] | None:
        """Return the stored document, or ``None`` when nothing was stored yet.

        Raises:
            StorageFailure: If a document exists but cannot be read or parsed.
        """
        ...

    def write_all(self, document: dict[str, Any]) -> None:
        """Replace the stored document.

        Raises:
            StorageFailure: If the document could not be written.
        """
        ...


class JsonFileBackend:
    """Store the document as indented JSON in a single file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read_all(self) -> dict[str, Any] | None:
        if not self.path.exists():
            return None

        try:
            with open(self.path, encoding="utf-8") as handle:
                document = json.load(handle)
        except (OSError, ValueError) as e:
            raise StorageFailure(f"Cannot read {self.path}: {e}") from e

        if not isinstance(document, dict):
            raise StorageFailure(f"Unexpected document type in {self.path}")
        return document

    def write_all(self, document: dict[str, Any]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path.exists():
                tmp_path.unlink()
            raise StorageFailure(f"Cannot write {self.path}: {e}") from e


class MemoryBackend:
    """Keep the document in memory; each read returns an independent copy."""

    def __init__(self, document: dict[str, Any] | None = None):
        self._document = copy.deepcopy(document)
        self.writes = 0

    def read_all(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._document)

    def write_all(self, document: dict[str, Any]) -> None:
        self._document = copy.deepcopy(document)
        self.writes += 1
