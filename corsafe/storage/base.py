# ============================================================================
# COR-SAFE Storage — Base Document Store
# ============================================================================

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

Predicate = Callable[[Dict[str, Any]], bool]


@dataclass
class StoredDocument:
    """A document body plus the version it was read at."""
    id: str
    version: int
    data: Dict[str, Any] = field(default_factory=dict)


class DocumentStore(ABC):
    """
    Opaque keyed document storage with optimistic concurrency.

    put() is compare-and-set: expected_version=None means "create, the id must
    not exist yet"; an int means "the stored version must still equal this".
    Any mismatch raises ConcurrentModification and nothing is written.
    """

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        """Return the document or None if the id does not exist."""
        pass

    @abstractmethod
    def put(
        self,
        collection: str,
        doc_id: str,
        doc: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> int:
        """Write the document and return its new version."""
        pass

    @abstractmethod
    def query(self, collection: str, predicate: Optional[Predicate] = None) -> List[StoredDocument]:
        """Return all documents in a collection matching predicate (all if None)."""
        pass
