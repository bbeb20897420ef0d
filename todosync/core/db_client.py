"""Hierarchical document store backed by SQLite.

Documents live in collections addressed by slash-separated paths such as
``users/{user_id}/todoLists`` and ``users/{user_id}/todoLists/{list_id}/tasks``.
Every call is an independent request; there are no multi-document transactions.
"""

import asyncio
import json
import logging
import re
import secrets
import string
import threading
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from todosync.core.config import constants, settings


logger = logging.getLogger(__name__)

_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_ID_ALPHABET = string.ascii_letters + string.digits


class DatabaseError(Exception):
    """A document store request failed."""


class RecordNotFoundError(DatabaseError):
    """The addressed document does not exist."""


def _validate_collection_path(path: str) -> None:
    """Validate that a path names a collection (odd number of safe segments)."""
    segments = path.split("/")
    if len(segments) % 2 == 0 or not all(_SEGMENT_PATTERN.match(s) for s in segments):
        msg = f"Invalid collection path: {path}. Use alternating collection/document segments."
        raise ValueError(msg)


def _validate_document_id(doc_id: str) -> None:
    if not _SEGMENT_PATTERN.match(doc_id or ""):
        msg = f"Invalid document id: {doc_id!r}"
        raise ValueError(msg)


def collection_path(*segments: str) -> str:
    """Join path segments into a collection path, validating the result."""
    path = "/".join(segments)
    _validate_collection_path(path)
    return path


def generate_document_id() -> str:
    """Generate a random alphanumeric document id."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(constants.DOCUMENT_ID_LENGTH))


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _encode_value(value: Any) -> Any:
    """JSON fallback for dates and datetimes."""
    if isinstance(value, datetime | date):
        return value.isoformat()
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def _row_to_record(row: aiosqlite.Row | tuple) -> dict[str, Any]:
    doc_id, data, created, updated = row
    return {"id": doc_id, "created": created, "updated": updated, **json.loads(data)}


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": thread_id, "loop_id": loop_id},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop_id = id(asyncio.get_running_loop())
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key not in _db_connections:
        return

    try:
        async with _db_lock:
            conn = _db_connections.pop(cache_key, None)
            if conn is not None:
                await conn.close()
                logger.info(
                    "Closed SQLite connection",
                    extra={"thread_id": thread_id, "loop_id": loop_id, "db_path": str(path)},
                )
    except Exception as e:
        logger.warning(
            "Error closing SQLite connection",
            extra={"error": str(e), "thread_id": thread_id, "loop_id": loop_id},
        )


async def init_db(*, db_path: str | None = None) -> None:
    """Create the documents table if it does not exist."""
    conn = await get_connection(db_path=db_path)
    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS documents (
            collection TEXT NOT NULL,
            id TEXT NOT NULL,
            data TEXT NOT NULL DEFAULT '{}',
            created TEXT NOT NULL,
            updated TEXT NOT NULL,
            PRIMARY KEY (collection, id)
        )
        """
    )
    await conn.commit()
    logger.info("Document store schema ready", extra={"db_path": str(get_db_path(db_path))})


async def get_document(*, path: str, doc_id: str) -> dict[str, Any]:
    """Fetch a single document, raising RecordNotFoundError if absent."""
    try:
        _validate_collection_path(path)
        _validate_document_id(doc_id)
        conn = await get_connection()

        cursor = await conn.execute(
            "SELECT id, data, created, updated FROM documents WHERE collection = ? AND id = ?",
            (path, doc_id),
        )
        row = await cursor.fetchone()
        if row is None:
            msg = f"Document not found in {path}: {doc_id}"
            raise RecordNotFoundError(msg)

        return _row_to_record(row)
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("get_document_failed", extra={"path": path, "doc_id": doc_id, "error": str(e)})
        msg = f"Failed to get document from {path}: {e}"
        raise DatabaseError(msg) from e


async def add_document(*, path: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new document with a generated id and return it."""
    try:
        _validate_collection_path(path)
        conn = await get_connection()

        doc_id = generate_document_id()
        now = _now_iso()
        payload = json.dumps(data, default=_encode_value)

        await conn.execute(
            "INSERT INTO documents (collection, id, data, created, updated) VALUES (?, ?, ?, ?, ?)",
            (path, doc_id, payload, now, now),
        )
        await conn.commit()

        logger.info("Added document", extra={"path": path, "doc_id": doc_id})
        return {"id": doc_id, "created": now, "updated": now, **json.loads(payload)}
    except Exception as e:
        if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
            logger.error("Documents table not found", extra={"path": path})
            msg = "Documents table does not exist. Call init_db() first."
            raise DatabaseError(msg) from e
        logger.error("add_document_failed", extra={"path": path, "error": str(e)})
        msg = f"Failed to add document to {path}: {e}"
        raise DatabaseError(msg) from e


async def list_documents(*, path: str) -> list[dict[str, Any]]:
    """Return every document in a collection, in insertion order."""
    try:
        _validate_collection_path(path)
        conn = await get_connection()

        cursor = await conn.execute(
            "SELECT id, data, created, updated FROM documents WHERE collection = ? ORDER BY rowid",
            (path,),
        )
        rows = await cursor.fetchall()
        records = [_row_to_record(row) for row in rows]

        logger.debug("Listed documents", extra={"path": path, "count": len(records)})
        return records
    except Exception as e:
        logger.error("list_documents_failed", extra={"path": path, "error": str(e)})
        msg = f"Failed to list documents in {path}: {e}"
        raise DatabaseError(msg) from e


async def update_document(*, path: str, doc_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into an existing document and return the result."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    try:
        existing = await get_document(path=path, doc_id=doc_id)
        conn = await get_connection()

        merged = {k: v for k, v in existing.items() if k not in {"id", "created", "updated"}}
        merged.update(json.loads(json.dumps(data, default=_encode_value)))
        now = _now_iso()

        await conn.execute(
            "UPDATE documents SET data = ?, updated = ? WHERE collection = ? AND id = ?",
            (json.dumps(merged), now, path, doc_id),
        )
        await conn.commit()

        logger.info("Updated document", extra={"path": path, "doc_id": doc_id})
        return {"id": doc_id, "created": existing["created"], "updated": now, **merged}
    except RecordNotFoundError:
        raise
    except DatabaseError:
        raise
    except Exception as e:
        logger.error("update_document_failed", extra={"path": path, "doc_id": doc_id, "error": str(e)})
        msg = f"Failed to update document in {path}: {e}"
        raise DatabaseError(msg) from e


async def delete_document(*, path: str, doc_id: str) -> None:
    """Delete a document, raising RecordNotFoundError if absent."""
    try:
        _validate_collection_path(path)
        _validate_document_id(doc_id)
        conn = await get_connection()

        cursor = await conn.execute("DELETE FROM documents WHERE collection = ? AND id = ?", (path, doc_id))
        await conn.commit()

        if cursor.rowcount == 0:
            msg = f"Document not found in {path}: {doc_id}"
            raise RecordNotFoundError(msg)

        logger.info("Deleted document", extra={"path": path, "doc_id": doc_id})
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("delete_document_failed", extra={"path": path, "doc_id": doc_id, "error": str(e)})
        msg = f"Failed to delete document from {path}: {e}"
        raise DatabaseError(msg) from e


async def list_collections(*, prefix: str) -> list[str]:
    """Return the non-empty collection paths nested under a document or collection prefix."""
    try:
        conn = await get_connection()
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

        cursor = await conn.execute(
            "SELECT DISTINCT collection FROM documents WHERE collection LIKE ? ESCAPE '\\' ORDER BY collection",
            (f"{escaped}/%",),
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]
    except Exception as e:
        logger.error("list_collections_failed", extra={"prefix": prefix, "error": str(e)})
        msg = f"Failed to list collections under {prefix}: {e}"
        raise DatabaseError(msg) from e
