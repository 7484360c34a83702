"""
Persistence module: in-memory repositories and the JSON snapshot store.
"""

from .repositories import BaseRepository, StudentRepository, ClassRepository
from .snapshot_store import JsonSnapshotStore

__all__ = [
    "BaseRepository",
    "StudentRepository",
    "ClassRepository",
    "JsonSnapshotStore",
]
