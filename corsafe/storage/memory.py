# ============================================================================
# COR-SAFE Storage — In-Process Document Store
# ============================================================================
# Same compare-and-set contract as the SQLite store, kept in a dict.
# Documents are deep-copied in and out so callers never share state with it.
# ============================================================================

import copy
import threading
from typing import Any, Dict, List, Optional, Tuple

from ..errors import ConcurrentModification
from .base import DocumentStore, StoredDocument, Predicate


class MemoryDocumentStore(DocumentStore):
    """Dict-backed store for embedding and tests."""

    def __init__(self):
        self._docs: Dict[str, Dict[str, Tuple[int, Dict[str, Any]]]] = {}
        self._lock = threading.Lock()

    def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        with self._lock:
            entry = self._docs.get(collection, {}).get(doc_id)
            if entry is None:
                return None
            version, data = entry
            return StoredDocument(id=doc_id, version=version, data=copy.deepcopy(data))

    def put(
        self,
        collection: str,
        doc_id: str,
        doc: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> int:
        with self._lock:
            bucket = self._docs.setdefault(collection, {})
            current = bucket.get(doc_id)
            current_version = current[0] if current else None
            if current_version != expected_version:
                raise ConcurrentModification(
                    f"{collection}/{doc_id} was modified concurrently",
                    entity_type=collection, entity_id=doc_id,
                    expected_version=expected_version, actual_version=current_version,
                )
            new_version = (current_version or 0) + 1
            bucket[doc_id] = (new_version, copy.deepcopy(doc))
            return new_version

    def query(self, collection: str, predicate: Optional[Predicate] = None) -> List[StoredDocument]:
        with self._lock:
            items = list(self._docs.get(collection, {}).items())
        docs = [StoredDocument(id=k, version=v, data=copy.deepcopy(d)) for k, (v, d) in items]
        if predicate is None:
            return docs
        return [d for d in docs if predicate(d.data)]
