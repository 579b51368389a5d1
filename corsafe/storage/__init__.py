"""
COR-SAFE Storage
Keyed document storage with optimistic concurrency (SQLite or in-process).
"""
from .base import DocumentStore, StoredDocument
from .sqlite_store import SQLiteDocumentStore
from .memory import MemoryDocumentStore

__all__ = [
    "DocumentStore",
    "StoredDocument",
    "SQLiteDocumentStore",
    "MemoryDocumentStore",
]
