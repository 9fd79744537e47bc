"""Storage layer for aggregate records with per-subject locking."""

from .base import TotalsStore
from .locks import FileSubjectLocks, SubjectLocks
from .memory import InMemoryTotalsStore
from .sqlite import SQLiteTotalsStore, create_store

__all__ = [
    "FileSubjectLocks",
    "InMemoryTotalsStore",
    "SQLiteTotalsStore",
    "SubjectLocks",
    "TotalsStore",
    "create_store",
]
