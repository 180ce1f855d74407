from __future__ import annotations

import json
import re
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Optional

from accountease.domain.errors import InvalidArgumentError, NotFoundError, RemoteOperationError

_FIELD = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SqliteDocumentStore:
    """Document collections kept as JSON bodies in a single SQLite table."""

    def __init__(self, db_path: Path | str):
        self.db_path = str(db_path)

    def _conn(self) -> sqlite3.Connection:
        try:
            return sqlite3.connect(self.db_path)
        except sqlite3.Error as exc:
            raise RemoteOperationError(f"Could not open database: {exc}") from exc

    def init_db(self) -> None:
        self.run_migrations()

    def run_migrations(self) -> None:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN")
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            current_version = int(cur.fetchone()[0])

            migrations = [
                (1, self._migration_v1_documents),
            ]

            for version, migration in migrations:
                if version <= current_version:
                    continue
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                    (version,),
                )
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise RemoteOperationError(f"Database migration failed: {exc}") from exc
        finally:
            conn.close()

    def _migration_v1_documents(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
                id TEXT PRIMARY KEY,
                collection TEXT NOT NULL,
                owner_id TEXT,
                body TEXT NOT NULL
            )
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_documents_owner ON documents (collection, owner_id)")

    @staticmethod
    def _load(record_id: str, body: str) -> dict:
        doc = json.loads(body)
        doc["id"] = record_id
        return doc

    @staticmethod
    def _dump(record: dict) -> str:
        payload = {k: v for k, v in record.items() if k != "id"}
        return json.dumps(payload, ensure_ascii=False, default=str)

    def fetch_where(self, collection: str, owner_id: str, **equals: Any) -> list[dict]:
        sql = "SELECT id, body FROM documents WHERE collection = ? AND owner_id = ?"
        params: list[Any] = [collection, owner_id]
        for key, value in equals.items():
            if not _FIELD.match(key):
                raise InvalidArgumentError(f"Invalid filter field: {key}")
            sql += " AND json_extract(body, ?) = ?"
            params.extend([f"$.{key}", value])

        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute(sql, params)
            rows = cur.fetchall()
        except sqlite3.Error as exc:
            raise RemoteOperationError(f"Query on '{collection}' failed: {exc}") from exc
        finally:
            conn.close()
        return [self._load(str(r[0]), str(r[1])) for r in rows]

    def get(self, collection: str, record_id: str) -> Optional[dict]:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT id, body FROM documents WHERE collection = ? AND id = ?",
                (collection, str(record_id)),
            )
            r = cur.fetchone()
        except sqlite3.Error as exc:
            raise RemoteOperationError(f"Read on '{collection}' failed: {exc}") from exc
        finally:
            conn.close()
        if not r:
            return None
        return self._load(str(r[0]), str(r[1]))

    def insert(self, collection: str, record: dict) -> str:
        record_id = uuid.uuid4().hex
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO documents (id, collection, owner_id, body) VALUES (?, ?, ?, ?)",
                (record_id, collection, record.get("owner_id"), self._dump(record)),
            )
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise RemoteOperationError(f"Insert into '{collection}' failed: {exc}") from exc
        finally:
            conn.close()
        return record_id

    def update(self, collection: str, record_id: str, changes: dict) -> None:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT body FROM documents WHERE collection = ? AND id = ?",
                (collection, str(record_id)),
            )
            r = cur.fetchone()
            if not r:
                raise NotFoundError(f"Document '{record_id}' not found in '{collection}'.")
            doc = json.loads(r[0])
            doc.update({k: v for k, v in changes.items() if k != "id"})
            cur.execute(
                "UPDATE documents SET body = ?, owner_id = ? WHERE collection = ? AND id = ?",
                (self._dump(doc), doc.get("owner_id"), collection, str(record_id)),
            )
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise RemoteOperationError(f"Update on '{collection}' failed: {exc}") from exc
        finally:
            conn.close()

    def delete(self, collection: str, record_id: str) -> None:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "DELETE FROM documents WHERE collection = ? AND id = ?",
                (collection, str(record_id)),
            )
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise RemoteOperationError(f"Delete on '{collection}' failed: {exc}") from exc
        finally:
            conn.close()

    def count(self, collection: str) -> int:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM documents WHERE collection = ?", (collection,))
            return int(cur.fetchone()[0])
        except sqlite3.Error as exc:
            raise RemoteOperationError(f"Count on '{collection}' failed: {exc}") from exc
        finally:
            conn.close()
