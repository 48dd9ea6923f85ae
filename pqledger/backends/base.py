"""Base storage backend interface for pqledger."""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Any
import copy
import threading

from ..core.exceptions import StorageError


class StorageBackend(ABC):
    """Abstract base class for whole-chain storage backends.

    A backend stores one chain document (see ``Chain.to_dict``) and hands it
    back on load. The chain holds its own lock while calling ``save``.
    """

    def __init__(self, **kwargs):
        self.name = self.__class__.__name__
        self._config = kwargs

    @abstractmethod
    def save(self, document: Dict[str, Any]) -> None:
        """Replace the stored chain document.

        Args:
            document: Chain document to store

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def load(self) -> Optional[Dict[str, Any]]:
        """Read the stored chain document.

        Returns:
            The document, or None if nothing has been saved yet

        Raises:
            StorageError: If the read fails
            SerializationError: If the stored data cannot be decoded
        """
        pass

    @abstractmethod
    def exists(self) -> bool:
        """Whether a chain document has been saved."""
        pass

    def close(self) -> None:
        """Close storage connection."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class InMemoryBackend(StorageBackend):
    """In-memory storage backend for testing and development."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._document: Optional[Dict[str, Any]] = None
        self._lock = threading.Lock()

    def save(self, document: Dict[str, Any]) -> None:
        """Store a deep copy of the document."""
        if not isinstance(document, dict):
            raise StorageError("Document must be a mapping", "save", self.name)
        with self._lock:
            self._document = copy.deepcopy(document)

    def load(self) -> Optional[Dict[str, Any]]:
        """Return a deep copy of the stored document."""
        with self._lock:
            return copy.deepcopy(self._document)

    def exists(self) -> bool:
        with self._lock:
            return self._document is not None

    def clear(self) -> None:
        """Forget the stored document (for testing)."""
        with self._lock:
            self._document = None
