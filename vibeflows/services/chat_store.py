import os
import sqlite3
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from vibeflows.core.errors import PersistenceError
from vibeflows.core.logger import get_logger

DB_PATH = Path("data/chat/chat.db")
logger = get_logger("vibeflows.chat_store")
_active_db_path: Optional[Path] = None

T = TypeVar("T")


def _default_db_path() -> Path:
    custom_path = os.getenv("VIBEFLOWS_CHAT_DB_PATH", "").strip()
    if custom_path:
        return Path(custom_path)
    return DB_PATH


def _fallback_db_path() -> Path:
    return Path(tempfile.gettempdir()) / "vibeflows" / "chat.db"


def _get_active_db_path() -> Path:
    global _active_db_path
    if _active_db_path is not None:
        return _active_db_path
    _active_db_path = _default_db_path()
    return _active_db_path


def _set_fallback_db_path() -> Path:
    global _active_db_path
    _active_db_path = _fallback_db_path()
    return _active_db_path


def reset_db_path() -> None:
    """Forget the resolved path so the next call re-reads the environment."""
    global _active_db_path
    _active_db_path = None


def _is_disk_io_error(exc: sqlite3.OperationalError) -> bool:
    return "disk i/o error" in str(exc).lower()


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _create_tables(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS chats (
                chat_id TEXT PRIMARY KEY,
                user_id TEXT,
                title TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS messages (
                message_id TEXT PRIMARY KEY,
                chat_id TEXT NOT NULL,
                user_id TEXT,
                text TEXT NOT NULL,
                role TEXT NOT NULL,
                type TEXT NOT NULL DEFAULT 'text',
                created_at TEXT NOT NULL
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_messages_chat_created ON messages(chat_id, created_at)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_chats_user_updated ON chats(user_id, updated_at)")
        conn.commit()


def init_db() -> None:
    db_path = _get_active_db_path()
    try:
        _create_tables(db_path)
    except sqlite3.OperationalError as exc:
        if not _is_disk_io_error(exc):
            raise
        fallback = _set_fallback_db_path()
        logger.warning("chat db path not writable, falling back to temp dir: %s", fallback)
        _create_tables(fallback)


def _with_connection(work: Callable[[sqlite3.Connection], T]) -> T:
    """Run ``work`` against the active db, retrying once on the fallback path."""
    init_db()
    db_path = _get_active_db_path()
    try:
        with sqlite3.connect(db_path) as conn:
            conn.row_factory = sqlite3.Row
            return work(conn)
    except sqlite3.OperationalError as exc:
        if not _is_disk_io_error(exc):
            raise
        fallback = _set_fallback_db_path()
        logger.warning("chat db access failed, falling back to temp dir: %s", fallback)
        _create_tables(fallback)
        with sqlite3.connect(fallback) as conn:
            conn.row_factory = sqlite3.Row
            return work(conn)


def _chat_from_row(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "chat_id": row["chat_id"],
        "user_id": row["user_id"],
        "title": row["title"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def _message_from_row(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": row["message_id"],
        "chat_id": row["chat_id"],
        "user_id": row["user_id"],
        "text": row["text"],
        "role": row["role"],
        "type": row["type"],
        "created_at": row["created_at"],
    }


def create_chat(title: Optional[str] = None, user_id: Optional[str] = None) -> dict[str, Any]:
    chat_id = f"chat_{uuid.uuid4().hex}"
    now = _now()

    def _insert(conn: sqlite3.Connection) -> None:
        conn.execute(
            "INSERT INTO chats (chat_id, user_id, title, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
            (chat_id, user_id, title, now, now),
        )
        conn.commit()

    _with_connection(_insert)
    return {"chat_id": chat_id, "user_id": user_id, "title": title, "created_at": now, "updated_at": now}


def get_chat(chat_id: str) -> Optional[dict[str, Any]]:
    def _select(conn: sqlite3.Connection) -> Optional[sqlite3.Row]:
        return conn.execute(
            "SELECT chat_id, user_id, title, created_at, updated_at FROM chats WHERE chat_id = ?",
            (chat_id,),
        ).fetchone()

    row = _with_connection(_select)
    return _chat_from_row(row) if row is not None else None


def list_chats(user_id: Optional[str] = None, limit: int = 50) -> list[dict[str, Any]]:
    def _select(conn: sqlite3.Connection) -> list[sqlite3.Row]:
        if user_id:
            return conn.execute(
                """
                SELECT chat_id, user_id, title, created_at, updated_at FROM chats
                WHERE user_id = ? ORDER BY updated_at DESC LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
        return conn.execute(
            "SELECT chat_id, user_id, title, created_at, updated_at FROM chats ORDER BY updated_at DESC LIMIT ?",
            (limit,),
        ).fetchall()

    return [_chat_from_row(row) for row in _with_connection(_select)]


def rename_chat(chat_id: str, title: str) -> Optional[dict[str, Any]]:
    now = _now()

    def _update(conn: sqlite3.Connection) -> int:
        cursor = conn.execute("UPDATE chats SET title = ?, updated_at = ? WHERE chat_id = ?", (title, now, chat_id))
        conn.commit()
        return cursor.rowcount

    if not _with_connection(_update):
        return None
    return get_chat(chat_id)


def delete_chat(chat_id: str) -> bool:
    """Delete a chat and all of its messages."""

    def _delete(conn: sqlite3.Connection) -> int:
        conn.execute("DELETE FROM messages WHERE chat_id = ?", (chat_id,))
        cursor = conn.execute("DELETE FROM chats WHERE chat_id = ?", (chat_id,))
        conn.commit()
        return cursor.rowcount

    return bool(_with_connection(_delete))


def touch_chat(chat_id: str) -> None:
    now = _now()

    def _update(conn: sqlite3.Connection) -> None:
        conn.execute("UPDATE chats SET updated_at = ? WHERE chat_id = ?", (now, chat_id))
        conn.commit()

    _with_connection(_update)


def insert_message(
    chat_id: str,
    user_id: Optional[str],
    text: str,
    role: str,
    type: str = "text",
    *,
    created_at: Optional[str] = None,
) -> dict[str, Any]:
    """Append one message to a chat.

    Raises:
        PersistenceError: the row could not be written.
    """
    message_id = f"msg_{uuid.uuid4().hex}"
    now = created_at or _now()

    def _insert(conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            INSERT INTO messages (message_id, chat_id, user_id, text, role, type, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (message_id, chat_id, user_id, text, role, type, now),
        )
        conn.commit()

    try:
        _with_connection(_insert)
    except (sqlite3.Error, OSError) as exc:
        raise PersistenceError(f"failed to insert {role} message for chat {chat_id}: {exc}") from exc

    try:
        touch_chat(chat_id)
    except Exception:
        logger.exception("touch_chat failed: %s", chat_id)

    return {
        "id": message_id,
        "chat_id": chat_id,
        "user_id": user_id,
        "text": text,
        "role": role,
        "type": type,
        "created_at": now,
    }


def list_messages(chat_id: Optional[str] = None, limit: int = 200) -> list[dict[str, Any]]:
    def _select(conn: sqlite3.Connection) -> list[sqlite3.Row]:
        if chat_id:
            return conn.execute(
                """
                SELECT message_id, chat_id, user_id, text, role, type, created_at FROM messages
                WHERE chat_id = ? ORDER BY created_at ASC, rowid ASC LIMIT ?
                """,
                (chat_id, limit),
            ).fetchall()
        return conn.execute(
            """
            SELECT message_id, chat_id, user_id, text, role, type, created_at FROM messages
            ORDER BY created_at ASC, rowid ASC LIMIT ?
            """,
            (limit,),
        ).fetchall()

    return [_message_from_row(row) for row in _with_connection(_select)]


def latest_message(user_id: Optional[str] = None) -> Optional[dict[str, Any]]:
    """Most recent message, optionally restricted to chats owned by ``user_id``."""

    def _select(conn: sqlite3.Connection) -> Optional[sqlite3.Row]:
        if user_id:
            return conn.execute(
                """
                SELECT m.message_id, m.chat_id, m.user_id, m.text, m.role, m.type, m.created_at
                FROM messages m JOIN chats c ON c.chat_id = m.chat_id
                WHERE c.user_id = ?
                ORDER BY m.created_at DESC, m.rowid DESC LIMIT 1
                """,
                (user_id,),
            ).fetchone()
        return conn.execute(
            """
            SELECT message_id, chat_id, user_id, text, role, type, created_at FROM messages
            ORDER BY created_at DESC, rowid DESC LIMIT 1
            """
        ).fetchone()

    row = _with_connection(_select)
    return _message_from_row(row) if row is not None else None
