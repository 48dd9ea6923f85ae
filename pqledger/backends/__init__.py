"""Storage backend implementations for pqledger."""

from .base import StorageBackend, InMemoryBackend
from .jsonfile import JSONFileBackend
from .sqlite import SQLiteBackend

__all__ = [
    'StorageBackend',
    'InMemoryBackend',
    'JSONFileBackend',
    'SQLiteBackend',
]
