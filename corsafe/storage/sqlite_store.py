"""
COR-SAFE Storage — SQLite Document Store

Documents live in one `documents` table keyed by (collection, id) with the
JSON body and a version counter. Writes are compare-and-set on the version
column, so a stale writer never overwrites a newer document.
"""
import sqlite3
import json
import datetime
import logging
from typing import Any, Dict, List, Optional

from ..errors import ConcurrentModification
from .base import DocumentStore, StoredDocument, Predicate

logger = logging.getLogger(__name__)

DB_PATH = "corsafe.db"


def _ts() -> str:
    return datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")


class SQLiteDocumentStore(DocumentStore):
    """Document store backed by a single SQLite file."""

    def __init__(self, db_path: str = DB_PATH):
        self.db_path = str(db_path)
        self.init_schema()

    def _get_conn(self):
        conn = sqlite3.connect(self.db_path, timeout=30, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def init_schema(self):
        """Create the documents table if it doesn't exist."""
        conn = self._get_conn()
        c = conn.cursor()
        c.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                id TEXT NOT NULL,
                version INTEGER NOT NULL DEFAULT 1,
                body TEXT NOT NULL,
                created_at TEXT,
                updated_at TEXT,
                PRIMARY KEY (collection, id)
            )
        """)
        c.execute("CREATE INDEX IF NOT EXISTS idx_doc_collection ON documents (collection)")
        conn.commit()
        conn.close()

    def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT id, version, body FROM documents WHERE collection = ? AND id = ?",
            (collection, doc_id),
        ).fetchone()
        conn.close()
        if not row:
            return None
        return StoredDocument(id=row["id"], version=row["version"], data=json.loads(row["body"]))

    def put(
        self,
        collection: str,
        doc_id: str,
        doc: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> int:
        body = json.dumps(doc)
        ts = _ts()
        conn = self._get_conn()
        try:
            if expected_version is None:
                try:
                    conn.execute("""
                        INSERT INTO documents (collection, id, version, body, created_at, updated_at)
                        VALUES (?, ?, 1, ?, ?, ?)
                    """, (collection, doc_id, body, ts, ts))
                except sqlite3.IntegrityError:
                    raise ConcurrentModification(
                        f"{collection}/{doc_id} already exists",
                        entity_type=collection, entity_id=doc_id, expected_version=None,
                    )
                conn.commit()
                return 1

            cur = conn.execute("""
                UPDATE documents SET body = ?, version = version + 1, updated_at = ?
                WHERE collection = ? AND id = ? AND version = ?
            """, (body, ts, collection, doc_id, expected_version))
            if cur.rowcount != 1:
                row = conn.execute(
                    "SELECT version FROM documents WHERE collection = ? AND id = ?",
                    (collection, doc_id),
                ).fetchone()
                logger.warning(f"[Storage] stale write rejected: {collection}/{doc_id} "
                               f"expected v{expected_version}, found {row['version'] if row else 'none'}")
                raise ConcurrentModification(
                    f"{collection}/{doc_id} was modified concurrently",
                    entity_type=collection, entity_id=doc_id,
                    expected_version=expected_version,
                    actual_version=row["version"] if row else None,
                )
            conn.commit()
            return expected_version + 1
        finally:
            conn.close()

    def query(self, collection: str, predicate: Optional[Predicate] = None) -> List[StoredDocument]:
        conn = self._get_conn()
        rows = conn.execute(
            "SELECT id, version, body FROM documents WHERE collection = ? ORDER BY created_at, id",
            (collection,),
        ).fetchall()
        conn.close()
        docs = [StoredDocument(id=r["id"], version=r["version"], data=json.loads(r["body"])) for r in rows]
        if predicate is None:
            return docs
        return [d for d in docs if predicate(d.data)]
