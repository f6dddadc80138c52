"""Record store using SQLite."""
import asyncio
import json
import os
import sqlite3
from contextlib import contextmanager
from typing import Any

import structlog

from bulk_transfer_core.jobs.models import (
    PENDING,
    PROCESSING,
    TERMINAL_STATUSES,
    ExportJob,
    ImportErrorEntry,
    ImportJob,
    JobKind,
    predecessors_of,
)
from bulk_transfer_core.records.models import DEFAULT_ARTICLE_STATUS, ArticleRecord, CommentRecord, UserRecord
from bulk_transfer_core.store.base import Predicate, RecordStore
from bulk_transfer_core.util.errors import ConstraintViolation, ForeignKeyViolation, StoreError
from bulk_transfer_core.util.time import utc_now_iso

logger = structlog.get_logger()

SCHEMA = """
CREATE TABLE IF NOT EXISTS import_jobs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    idempotency_key TEXT NOT NULL UNIQUE,
    resource TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    total_records INTEGER NOT NULL DEFAULT 0,
    success_count INTEGER NOT NULL DEFAULT 0,
    error_count INTEGER NOT NULL DEFAULT 0,
    skipped_count INTEGER NOT NULL DEFAULT 0,
    file_path TEXT,
    started_at TEXT,
    completed_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS import_jobs_status_idx ON import_jobs (status, created_at);

CREATE TABLE IF NOT EXISTS import_errors (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    import_job_id INTEGER NOT NULL REFERENCES import_jobs (id) ON DELETE CASCADE,
    record_index INTEGER NOT NULL,
    record_data TEXT,
    error_message TEXT NOT NULL,
    error_type TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS import_errors_job_idx ON import_errors (import_job_id);

CREATE TABLE IF NOT EXISTS export_jobs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    idempotency_key TEXT NOT NULL UNIQUE,
    resource TEXT NOT NULL,
    format TEXT NOT NULL DEFAULT 'ndjson',
    status TEXT NOT NULL DEFAULT 'pending',
    total_records INTEGER NOT NULL DEFAULT 0,
    success_count INTEGER NOT NULL DEFAULT 0,
    error_count INTEGER NOT NULL DEFAULT 0,
    file_path TEXT,
    download_url TEXT,
    filters TEXT,
    fields TEXT,
    started_at TEXT,
    completed_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS export_jobs_status_idx ON export_jobs (status, created_at);

CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    external_id TEXT UNIQUE,
    email TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    role TEXT,
    active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS articles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    external_id TEXT UNIQUE,
    slug TEXT NOT NULL UNIQUE,
    title TEXT NOT NULL,
    description TEXT,
    body TEXT NOT NULL,
    author_id INTEGER NOT NULL REFERENCES users (id),
    tags TEXT,
    status TEXT NOT NULL DEFAULT 'published',
    published_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS articles_author_idx ON articles (author_id);

CREATE TABLE IF NOT EXISTS comments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    external_id TEXT UNIQUE,
    article_id INTEGER NOT NULL REFERENCES articles (id),
    author_id INTEGER NOT NULL REFERENCES users (id),
    body TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS comments_article_idx ON comments (article_id);
"""

DEFAULT_ROLE = "reader"

JOB_TABLES = {"import": "import_jobs", "export": "export_jobs"}
RECORD_TABLES = {"users": "users", "articles": "articles", "comments": "comments"}

# Columns finish_job may set besides status and timestamps.
FINISH_COLUMNS = {
    "import": {"total_records", "success_count", "error_count", "skipped_count"},
    "export": {"total_records", "success_count", "error_count", "file_path", "download_url"},
}

SCAN_QUERIES = {
    "users": ("SELECT u.* FROM users u", "u"),
    "articles": (
        "SELECT a.*, au.external_id AS author_external_id FROM articles a "
        "LEFT JOIN users au ON au.id = a.author_id",
        "a",
    ),
    "comments": (
        "SELECT c.*, ar.external_id AS article_external_id, au.external_id AS author_external_id "
        "FROM comments c "
        "LEFT JOIN articles ar ON ar.id = c.article_id "
        "LEFT JOIN users au ON au.id = c.author_id",
        "c",
    ),
}
FILTERABLE_COLUMNS = {
    "users": {"active", "role", "created_at"},
    "articles": {"status", "author_id", "created_at"},
    "comments": {"article_id", "author_id", "created_at"},
}
OPERATORS = {"=", ">", ">=", "<", "<="}


def _integrity_error(e: sqlite3.IntegrityError) -> StoreError:
    if "FOREIGN KEY" in str(e):
        return ForeignKeyViolation(f"Foreign key violation: {e}")
    return ConstraintViolation(str(e))


def _job_table(kind: JobKind) -> str:
    try:
        return JOB_TABLES[kind]
    except KeyError:
        raise ValueError(f"Unknown job kind: {kind}") from None


def _record_table(resource: str) -> str:
    try:
        return RECORD_TABLES[resource]
    except KeyError:
        raise ValueError(f"Unknown resource: {resource}") from None


def _loads(text: str | None) -> Any:
    return json.loads(text) if text else None


class SQLiteStore(RecordStore):
    """SQLite implementation of the record store.

    A connection is opened per operation and the blocking work runs in a
    worker thread, so each call suspends only the calling task.
    """

    def __init__(self, path: str):
        self.path = path

    @contextmanager
    def get_conn(self):
        """Get a database connection."""
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        conn = sqlite3.connect(self.path, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def init_db(self):
        """Initialize the database."""
        with self.get_conn() as conn:
            conn.executescript(SCHEMA)
        logger.info("store_initialized", path=self.path)

    async def _run(self, fn, *args, **kwargs):
        return await asyncio.to_thread(fn, *args, **kwargs)

    # Jobs

    def _create_job(self, kind: JobKind, idempotency_key: str, columns: dict[str, Any]) -> int:
        table = _job_table(kind)
        now = utc_now_iso()
        values = {
            "idempotency_key": idempotency_key,
            "status": PENDING,
            **columns,
            "created_at": now,
            "updated_at": now,
        }
        names = ", ".join(values)
        marks = ", ".join("?" for _ in values)
        with self.get_conn() as conn:
            conn.execute(
                f"INSERT INTO {table} ({names}) VALUES ({marks}) "
                "ON CONFLICT(idempotency_key) DO NOTHING",
                tuple(values.values()),
            )
            row = conn.execute(
                f"SELECT id FROM {table} WHERE idempotency_key = ?", (idempotency_key,)
            ).fetchone()
            return row["id"]

    async def create_import_job(self, idempotency_key: str, resource: str, file_path: str | None) -> int:
        return await self._run(
            self._create_job, "import", idempotency_key, {"resource": resource, "file_path": file_path}
        )

    async def create_export_job(
        self,
        idempotency_key: str,
        resource: str,
        format: str,
        filters: dict[str, Any] | None = None,
        fields: list[str] | None = None,
    ) -> int:
        columns = {
            "resource": resource,
            "format": format,
            "filters": json.dumps(filters) if filters is not None else None,
            "fields": json.dumps(fields) if fields is not None else None,
        }
        return await self._run(self._create_job, "export", idempotency_key, columns)

    def _get_job_row(self, kind: JobKind, job_id: int) -> dict[str, Any] | None:
        with self.get_conn() as conn:
            row = conn.execute(f"SELECT * FROM {_job_table(kind)} WHERE id = ?", (job_id,)).fetchone()
            if row is None:
                return None
            return dict(row)

    async def get_import_job(self, job_id: int) -> ImportJob | None:
        row = await self._run(self._get_job_row, "import", job_id)
        return ImportJob(**row) if row else None

    async def get_export_job(self, job_id: int) -> ExportJob | None:
        row = await self._run(self._get_job_row, "export", job_id)
        if row is None:
            return None
        row["filters"] = _loads(row["filters"])
        row["fields"] = _loads(row["fields"])
        return ExportJob(**row)

    def _list_pending(self, kind: JobKind, limit: int) -> list[int]:
        with self.get_conn() as conn:
            rows = conn.execute(
                f"SELECT id FROM {_job_table(kind)} WHERE status = ? "
                "ORDER BY created_at ASC, id ASC LIMIT ?",
                (PENDING, limit),
            ).fetchall()
            return [r["id"] for r in rows]

    async def list_pending_jobs(self, kind: JobKind, limit: int) -> list[int]:
        if limit <= 0:
            return []
        return await self._run(self._list_pending, kind, limit)

    def _claim(self, kind: JobKind, job_id: int) -> bool:
        now = utc_now_iso()
        with self.get_conn() as conn:
            cur = conn.execute(
                f"UPDATE {_job_table(kind)} SET status = ?, started_at = ?, updated_at = ? "
                "WHERE id = ? AND status = ?",
                (PROCESSING, now, now, job_id, PENDING),
            )
            return cur.rowcount == 1

    async def claim_job(self, kind: JobKind, job_id: int) -> bool:
        return await self._run(self._claim, kind, job_id)

    def _finish(self, kind: JobKind, job_id: int, status: str, fields: dict[str, Any]) -> bool:
        if status not in TERMINAL_STATUSES:
            raise ValueError(f"Not a terminal status: {status}")
        unknown = set(fields) - FINISH_COLUMNS[kind]
        if unknown:
            raise ValueError(f"Cannot set {sorted(unknown)} on a {kind} job")
        now = utc_now_iso()
        values = {"status": status, "completed_at": now, "updated_at": now, **fields}
        assignments = ", ".join(f"{name} = ?" for name in values)
        sources = predecessors_of(status)
        marks = ", ".join("?" for _ in sources)
        with self.get_conn() as conn:
            cur = conn.execute(
                f"UPDATE {_job_table(kind)} SET {assignments} WHERE id = ? AND status IN ({marks})",
                (*values.values(), job_id, *sources),
            )
            return cur.rowcount == 1

    async def finish_job(self, kind: JobKind, job_id: int, status: str, **fields: Any) -> bool:
        return await self._run(self._finish, kind, job_id, status, fields)

    def _set_import_total(self, job_id: int, total_records: int) -> None:
        with self.get_conn() as conn:
            conn.execute(
                "UPDATE import_jobs SET total_records = ?, updated_at = ? WHERE id = ?",
                (total_records, utc_now_iso(), job_id),
            )

    async def set_import_total(self, job_id: int, total_records: int) -> None:
        await self._run(self._set_import_total, job_id, total_records)

    def _increment_import_counts(self, job_id: int, success: int, errors: int) -> None:
        with self.get_conn() as conn:
            conn.execute(
                """
                UPDATE import_jobs SET
                    success_count = success_count + ?,
                    error_count = error_count + ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (success, errors, utc_now_iso(), job_id),
            )

    async def increment_import_counts(self, job_id: int, success: int, errors: int) -> None:
        await self._run(self._increment_import_counts, job_id, success, errors)

    def _add_import_error(
        self, job_id: int, record_index: int, record_data: Any, error_message: str, error_type: str
    ) -> None:
        with self.get_conn() as conn:
            conn.execute(
                """
                INSERT INTO import_errors (import_job_id, record_index, record_data, error_message, error_type, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    job_id,
                    record_index,
                    json.dumps(record_data, default=str),
                    error_message,
                    error_type,
                    utc_now_iso(),
                ),
            )

    async def add_import_error(
        self,
        job_id: int,
        record_index: int,
        record_data: Any,
        error_message: str,
        error_type: str,
    ) -> None:
        await self._run(self._add_import_error, job_id, record_index, record_data, error_message, error_type)

    def _list_import_errors(self, job_id: int, limit: int) -> list[dict[str, Any]]:
        with self.get_conn() as conn:
            rows = conn.execute(
                """
                SELECT record_index, record_data, error_message, error_type, created_at
                FROM import_errors WHERE import_job_id = ?
                ORDER BY id DESC LIMIT ?
                """,
                (job_id, limit),
            ).fetchall()
            return [dict(r) for r in rows]

    async def list_import_errors(self, job_id: int, limit: int = 100) -> list[ImportErrorEntry]:
        rows = await self._run(self._list_import_errors, job_id, limit)
        for row in rows:
            row["record_data"] = _loads(row["record_data"])
        return [ImportErrorEntry(**row) for row in rows]

    # Records

    def _find_id_by_external_id(self, resource: str, external_id: str) -> int | None:
        with self.get_conn() as conn:
            row = conn.execute(
                f"SELECT id FROM {_record_table(resource)} WHERE external_id = ?", (external_id,)
            ).fetchone()
            return row["id"] if row else None

    async def find_id_by_external_id(self, resource: str, external_id: str) -> int | None:
        return await self._run(self._find_id_by_external_id, resource, external_id)

    def _upsert_user(self, record: UserRecord, external_id: str | None) -> int:
        now = utc_now_iso()
        try:
            with self.get_conn() as conn:
                conn.execute(
                    """
                    INSERT INTO users (external_id, email, name, role, active, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(email) DO UPDATE SET
                        name = excluded.name,
                        role = excluded.role,
                        active = excluded.active,
                        external_id = COALESCE(excluded.external_id, users.external_id),
                        updated_at = excluded.updated_at
                    """,
                    (
                        external_id,
                        record.email,
                        record.name,
                        record.role or DEFAULT_ROLE,
                        int(record.active),
                        now,
                        now,
                    ),
                )
                row = conn.execute("SELECT id FROM users WHERE email = ?", (record.email,)).fetchone()
                return row["id"]
        except sqlite3.IntegrityError as e:
            raise _integrity_error(e) from e

    async def upsert_user(self, record: UserRecord, external_id: str | None) -> int:
        return await self._run(self._upsert_user, record, external_id)

    def _upsert_article(self, record: ArticleRecord, author_id: int, external_id: str | None) -> int:
        now = utc_now_iso()
        tags = json.dumps(record.tags) if record.tags is not None else None
        try:
            with self.get_conn() as conn:
                conn.execute(
                    """
                    INSERT INTO articles (external_id, slug, title, description, body, author_id, tags, status, published_at, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(slug) DO UPDATE SET
                        title = excluded.title,
                        description = excluded.description,
                        body = excluded.body,
                        author_id = excluded.author_id,
                        tags = excluded.tags,
                        status = excluded.status,
                        published_at = excluded.published_at,
                        external_id = COALESCE(excluded.external_id, articles.external_id),
                        updated_at = excluded.updated_at
                    """,
                    (
                        external_id,
                        record.slug,
                        record.title,
                        record.description or record.title,
                        record.body,
                        author_id,
                        tags,
                        record.status or DEFAULT_ARTICLE_STATUS,
                        record.published_at,
                        now,
                        now,
                    ),
                )
                row = conn.execute("SELECT id FROM articles WHERE slug = ?", (record.slug,)).fetchone()
                return row["id"]
        except sqlite3.IntegrityError as e:
            raise _integrity_error(e) from e

    async def upsert_article(self, record: ArticleRecord, author_id: int, external_id: str | None) -> int:
        return await self._run(self._upsert_article, record, author_id, external_id)

    def _upsert_comment(
        self, record: CommentRecord, article_id: int, author_id: int, external_id: str | None
    ) -> int:
        now = utc_now_iso()
        try:
            with self.get_conn() as conn:
                if external_id is None:
                    cur = conn.execute(
                        """
                        INSERT INTO comments (article_id, author_id, body, created_at, updated_at)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        (article_id, author_id, record.body, now, now),
                    )
                    return cur.lastrowid
                conn.execute(
                    """
                    INSERT INTO comments (external_id, article_id, author_id, body, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(external_id) DO UPDATE SET
                        article_id = excluded.article_id,
                        author_id = excluded.author_id,
                        body = excluded.body,
                        updated_at = excluded.updated_at
                    """,
                    (external_id, article_id, author_id, record.body, now, now),
                )
                row = conn.execute("SELECT id FROM comments WHERE external_id = ?", (external_id,)).fetchone()
                return row["id"]
        except sqlite3.IntegrityError as e:
            raise _integrity_error(e) from e

    async def upsert_comment(
        self,
        record: CommentRecord,
        article_id: int,
        author_id: int,
        external_id: str | None,
    ) -> int:
        return await self._run(self._upsert_comment, record, article_id, author_id, external_id)

    def _scan(self, resource: str, predicates: list[Predicate], after_id: int, limit: int) -> list[dict[str, Any]]:
        try:
            base, alias = SCAN_QUERIES[resource]
        except KeyError:
            raise ValueError(f"Unknown resource: {resource}") from None
        clauses = [f"{alias}.id > ?"]
        params: list[Any] = [after_id]
        for p in predicates:
            if p.column not in FILTERABLE_COLUMNS[resource] or p.op not in OPERATORS:
                raise ValueError(f"Unsupported filter on {resource}: {p.column} {p.op}")
            clauses.append(f"{alias}.{p.column} {p.op} ?")
            params.append(p.value)
        sql = f"{base} WHERE {' AND '.join(clauses)} ORDER BY {alias}.id ASC LIMIT ?"
        params.append(limit)
        with self.get_conn() as conn:
            rows = [dict(r) for r in conn.execute(sql, params).fetchall()]
        for row in rows:
            if resource == "users":
                row["active"] = bool(row["active"])
            elif resource == "articles":
                row["tags"] = _loads(row["tags"]) or []
        return rows

    async def scan(
        self,
        resource: str,
        predicates: list[Predicate],
        after_id: int,
        limit: int,
    ) -> list[dict[str, Any]]:
        return await self._run(self._scan, resource, predicates, after_id, limit)
