import json
import sqlite3
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

DEFAULT_DB_PATH = Path("data") / "plotpilot.sqlite3"
DEFAULT_BUSY_TIMEOUT = 5.0

Doc = Dict[str, Any]


class WriteAborted(Exception):
    """The caller gave up before COMMIT; the transaction was rolled back."""


def _connect(db_path: Path, timeout: float = DEFAULT_BUSY_TIMEOUT) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=timeout)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def _write_txn(
    db_path: Path,
    *,
    timeout: float = DEFAULT_BUSY_TIMEOUT,
    abort: Optional[threading.Event] = None,
) -> Iterator[sqlite3.Connection]:
    """
    Reason:
    - BEGIN IMMEDIATE takes the write lock before the first read, so a
      read-modify-write inside the block cannot interleave with another writer.
    Benefit:
    - A write either commits whole or leaves nothing behind: if `abort` is
      set by the time the block ends, the transaction is rolled back.

    `timeout` bounds how long sqlite waits for another writer's lock.
    """
    conn = _connect(db_path, timeout)
    conn.isolation_level = None
    try:
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
            if abort is not None and abort.is_set():
                raise WriteAborted("write abandoned before commit")
            conn.execute("COMMIT")
        except BaseException:
            conn.execute("ROLLBACK")
            raise
    finally:
        conn.close()


def init_db(db_path: Path = DEFAULT_DB_PATH) -> None:
    """
    Reason:
    - Ensure schema exists before reading or writing documents.
    Benefit:
    - Zero-manual setup; works on any machine.
    """
    with _connect(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS properties (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                updated_ts REAL NOT NULL,
                doc_json TEXT NOT NULL
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_properties_name ON properties(name)")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS tasks (
                id TEXT PRIMARY KEY,
                created_ts REAL NOT NULL,
                doc_json TEXT NOT NULL
            )
            """
        )
        conn.commit()


def save_property_doc(
    db_path: Path,
    doc: Doc,
    *,
    timeout: float = DEFAULT_BUSY_TIMEOUT,
    abort: Optional[threading.Event] = None,
) -> Doc:
    with _write_txn(db_path, timeout=timeout, abort=abort) as conn:
        conn.execute(
            """
            INSERT INTO properties (id, name, updated_ts, doc_json)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                updated_ts = excluded.updated_ts,
                doc_json = excluded.doc_json
            """,
            (doc["id"], doc["name"], time.time(), json.dumps(doc, ensure_ascii=False)),
        )
    return doc


def update_property_doc(
    db_path: Path,
    property_id: str,
    merge: Callable[[Doc], Doc],
    *,
    timeout: float = DEFAULT_BUSY_TIMEOUT,
    abort: Optional[threading.Event] = None,
) -> Optional[Doc]:
    """
    Read, merge and write one property inside a single write transaction.

    Returns the merged document, or None when the id is unknown.
    """
    with _write_txn(db_path, timeout=timeout, abort=abort) as conn:
        row = conn.execute("SELECT doc_json FROM properties WHERE id = ?", (property_id,)).fetchone()
        if row is None:
            return None
        doc = merge(json.loads(row["doc_json"]))
        conn.execute(
            "UPDATE properties SET name = ?, updated_ts = ?, doc_json = ? WHERE id = ?",
            (doc["name"], time.time(), json.dumps(doc, ensure_ascii=False), property_id),
        )
    return doc


def load_property_doc(db_path: Path, property_id: str) -> Optional[Doc]:
    with _connect(db_path) as conn:
        row = conn.execute("SELECT doc_json FROM properties WHERE id = ?", (property_id,)).fetchone()
    return json.loads(row["doc_json"]) if row else None


def find_property_doc_by_name(db_path: Path, name: str) -> Optional[Doc]:
    with _connect(db_path) as conn:
        row = conn.execute(
            "SELECT doc_json FROM properties WHERE name = ? ORDER BY rowid LIMIT 1", (name,)
        ).fetchone()
    return json.loads(row["doc_json"]) if row else None


def list_property_docs(db_path: Path) -> List[Doc]:
    with _connect(db_path) as conn:
        rows = conn.execute("SELECT doc_json FROM properties ORDER BY rowid").fetchall()
    return [json.loads(r["doc_json"]) for r in rows]


def save_task_doc(
    db_path: Path,
    doc: Doc,
    *,
    timeout: float = DEFAULT_BUSY_TIMEOUT,
    abort: Optional[threading.Event] = None,
) -> Doc:
    with _write_txn(db_path, timeout=timeout, abort=abort) as conn:
        conn.execute(
            "INSERT OR REPLACE INTO tasks (id, created_ts, doc_json) VALUES (?, ?, ?)",
            (doc["id"], time.time(), json.dumps(doc, ensure_ascii=False)),
        )
    return doc


def list_task_docs(db_path: Path) -> List[Doc]:
    with _connect(db_path) as conn:
        rows = conn.execute("SELECT doc_json FROM tasks ORDER BY created_ts").fetchall()
    return [json.loads(r["doc_json"]) for r in rows]
