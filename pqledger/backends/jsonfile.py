"""JSON file backend for pqledger."""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Dict, Any, Union
import logging

from .base import StorageBackend
from ..core.exceptions import SerializationError, StorageError

logger = logging.getLogger(__name__)


class JSONFileBackend(StorageBackend):
    """Stores the chain as a single JSON document on disk.

    Writes go to a temporary file in the same directory that then replaces
    the target, so a crash never leaves a half-written chain behind.
    """

    def __init__(self, path: Union[str, Path] = "pqledger.json", indent: Optional[int] = 2, **kwargs):
        super().__init__(**kwargs)
        self.path = Path(path)
        self.indent = indent

    def save(self, document: Dict[str, Any]) -> None:
        try:
            payload = json.dumps(document, indent=self.indent, sort_keys=True)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Document is not JSON serializable: {e}", "save", self.name) from e

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_path, self.path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {self.path}: {e}", "save", self.name) from e

        logger.debug(f"Wrote {len(payload)} bytes to {self.path}")

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None

        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {self.path}: {e}", "load", self.name) from e

        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise SerializationError(f"Invalid JSON in {self.path}: {e}", field="document") from e

        if not isinstance(document, dict):
            raise SerializationError(f"{self.path} does not contain a chain document", field="document")
        return document

    def exists(self) -> bool:
        return self.path.exists()
