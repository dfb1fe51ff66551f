#!/usr/bin/env python3
"""
Ledger and Preserved-Set storage

SQLite-backed record of every deleted file together with the URLs it can be
recovered from, plus the set of files the user never wants offered for
deletion again.

Both stores share one explicitly opened LedgerDatabase handle whose lifetime
is a single run. Constraint semantics:

- a duplicate (deleted file, url) pair is ignored and reported as ``None``
- a NULL md5 or a URL row for a nonexistent deleted file raises
  ``sqlite3.IntegrityError``; an unknown hash is stored as ``""``
- deleting a deleted_files row cascades to its download_urls rows
"""

import logging
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from tzlocal import get_localzone

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
RECENT_WINDOW_DAYS = 30


def local_now() -> datetime:
    return datetime.now(get_localzone())


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


@dataclass
class LedgerUrl:
    url: str
    accessible: bool
    url_type: str


@dataclass
class LedgerEntry:
    """One deleted file as handed to Ledger.record"""

    name: str
    path: str
    size: int
    md5: Optional[str]
    deleted_at: str
    urls: list[LedgerUrl] = field(default_factory=list)


class LedgerDatabase:
    """Explicit handle on the SQLite file shared by the ledger and preserved set"""

    def __init__(self, db_path):
        self.db_path = str(db_path)
        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")

        # WAL makes concurrent runs serialize cleanly; it does not apply in memory
        if self.db_path != ":memory:":
            self.conn.execute("PRAGMA journal_mode = WAL")
            self.conn.execute("PRAGMA synchronous = NORMAL")
        self.conn.execute("PRAGMA temp_store = MEMORY")

    def close(self):
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class Ledger:
    """Append-only record of deletions and their recovery URLs"""

    def __init__(self, database: LedgerDatabase):
        self.database = database
        self.conn = database.conn
        self._in_transaction = False

    @contextmanager
    def transaction(self):
        """Commit on success, roll back on error; nested use joins the outer one"""
        if self._in_transaction:
            yield
            return

        self._in_transaction = True
        try:
            with self.conn:
                yield
        finally:
            self._in_transaction = False

    # -- schema --------------------------------------------------------------

    def setup(self):
        """Create tables and indexes; safe to call on every run"""
        with self.conn:
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS deleted_files (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    path TEXT NOT NULL,
                    size INTEGER NOT NULL,
                    md5 TEXT NOT NULL,
                    deleted_at DATETIME NOT NULL,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            """
            )
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS download_urls (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    deleted_file_id INTEGER NOT NULL,
                    url TEXT NOT NULL,
                    md5 TEXT NOT NULL,
                    accessible BOOLEAN NOT NULL DEFAULT 0,
                    url_type TEXT NOT NULL DEFAULT 'file',
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY(deleted_file_id) REFERENCES deleted_files(id) ON DELETE CASCADE,
                    UNIQUE(deleted_file_id, url)
                )
            """
            )
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS preserved_files (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    path TEXT NOT NULL UNIQUE,
                    added_at TEXT NOT NULL
                )
            """
            )

        self._migrate_download_urls()

        with self.conn:
            self.conn.execute("CREATE INDEX IF NOT EXISTS idx_deleted_files_md5 ON deleted_files(md5)")
            self.conn.execute("CREATE INDEX IF NOT EXISTS idx_deleted_files_name ON deleted_files(name)")
            self.conn.execute("CREATE INDEX IF NOT EXISTS idx_deleted_files_deleted_at ON deleted_files(deleted_at)")
            self.conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_download_urls_deleted_file_id ON download_urls(deleted_file_id)"
            )
            self.conn.execute("CREATE INDEX IF NOT EXISTS idx_download_urls_url_type ON download_urls(url_type)")
            self.conn.execute("CREATE INDEX IF NOT EXISTS idx_download_urls_accessible ON download_urls(accessible)")
            self.conn.execute("CREATE INDEX IF NOT EXISTS idx_download_urls_md5 ON download_urls(md5)")
            self.conn.execute("CREATE INDEX IF NOT EXISTS idx_download_urls_url ON download_urls(url)")

    def _column_names(self, table: str) -> set[str]:
        return {row["name"] for row in self.conn.execute(f"PRAGMA table_info({table})")}

    def _migrate_download_urls(self):
        """Rebuild a download_urls table that predates the md5 column

        The md5 of each URL row is backfilled from its parent deleted_files row.
        """
        if "md5" in self._column_names("download_urls"):
            return

        logger.info("Migrating download_urls table to add md5 column")
        with self.conn:
            self.conn.execute("BEGIN")
            self.conn.execute(
                """
                CREATE TABLE download_urls_new (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    deleted_file_id INTEGER NOT NULL,
                    url TEXT NOT NULL,
                    md5 TEXT NOT NULL,
                    accessible BOOLEAN NOT NULL DEFAULT 0,
                    url_type TEXT NOT NULL DEFAULT 'file',
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY(deleted_file_id) REFERENCES deleted_files(id) ON DELETE CASCADE,
                    UNIQUE(deleted_file_id, url)
                )
            """
            )
            self.conn.execute(
                """
                INSERT INTO download_urls_new
                    (id, deleted_file_id, url, md5, accessible, url_type, created_at, updated_at)
                SELECT du.id, du.deleted_file_id, du.url, df.md5, du.accessible, du.url_type,
                       du.created_at, du.updated_at
                FROM download_urls du
                JOIN deleted_files df ON du.deleted_file_id = df.id
            """
            )
            self.conn.execute("DROP TABLE download_urls")
            self.conn.execute("ALTER TABLE download_urls_new RENAME TO download_urls")

    # -- writes --------------------------------------------------------------

    def insert_deleted_file(self, name: str, path: str, size: int, md5: Optional[str], deleted_at: str) -> int:
        with self.transaction():
            cursor = self.conn.execute(
                "INSERT INTO deleted_files (name, path, size, md5, deleted_at) VALUES (?, ?, ?, ?, ?)",
                (name, path, size, md5, deleted_at),
            )
            return cursor.lastrowid

    def insert_download_url(
        self, deleted_file_id: int, url: str, md5: Optional[str], accessible: bool, url_type
    ) -> Optional[int]:
        """Insert one recovery URL; returns None when the pair is already recorded"""
        try:
            with self.transaction():
                cursor = self.conn.execute(
                    "INSERT INTO download_urls (deleted_file_id, url, md5, accessible, url_type) VALUES (?, ?, ?, ?, ?)",
                    (deleted_file_id, url, md5, 1 if accessible else 0, getattr(url_type, "value", url_type)),
                )
                return cursor.lastrowid
        except sqlite3.IntegrityError as e:
            if "UNIQUE constraint failed" in str(e):
                return None
            raise

    def record(self, entries: list[LedgerEntry]) -> list[int]:
        """Write a batch of deletions atomically

        Any integrity error rolls back the whole batch and propagates.
        """
        ids = []
        with self.transaction():
            for entry in entries:
                file_id = self.insert_deleted_file(entry.name, entry.path, entry.size, entry.md5, entry.deleted_at)
                for url in entry.urls:
                    self.insert_download_url(file_id, url.url, entry.md5, url.accessible, url.url_type)
                ids.append(file_id)
        return ids

    # -- reads ---------------------------------------------------------------

    def find_by_hash(self, md5: str) -> list[dict]:
        rows = self.conn.execute("SELECT * FROM deleted_files WHERE md5 = ? ORDER BY deleted_at DESC, id DESC", (md5,))
        return [dict(row) for row in rows]

    def urls_for(self, deleted_file_id: int) -> list[dict]:
        rows = self.conn.execute(
            "SELECT * FROM download_urls WHERE deleted_file_id = ? ORDER BY url_type, accessible DESC, id",
            (deleted_file_id,),
        )
        return [dict(row) for row in rows]

    def statistics(self, now: Optional[datetime] = None) -> dict:
        """Totals overall and for the recent window, plus URL counts by type"""
        now = now or local_now()
        stats = {}

        row = self.conn.execute("SELECT COUNT(*) AS count, SUM(size) AS total_size FROM deleted_files").fetchone()
        stats["total_files"] = row["count"]
        stats["total_size_freed"] = row["total_size"] or 0

        rows = self.conn.execute(
            """
            SELECT url_type, COUNT(*) AS count,
                   SUM(CASE WHEN accessible = 1 THEN 1 ELSE 0 END) AS accessible_count
            FROM download_urls
            GROUP BY url_type
        """
        )
        stats["urls_by_type"] = {
            row["url_type"]: {"total": row["count"], "accessible": row["accessible_count"]} for row in rows
        }

        cutoff = format_timestamp(now - timedelta(days=RECENT_WINDOW_DAYS))
        row = self.conn.execute(
            "SELECT COUNT(*) AS count, SUM(size) AS total_size FROM deleted_files WHERE deleted_at > ?", (cutoff,)
        ).fetchone()
        stats[f"recent_{RECENT_WINDOW_DAYS}_days"] = {"files": row["count"], "size": row["total_size"] or 0}

        return stats


def normalize_path(path) -> str:
    return os.path.abspath(os.path.expanduser(str(path)))


class PreservedSet:
    """Files the user has excluded from deletion for good"""

    def __init__(self, database: LedgerDatabase):
        self.conn = database.conn

    def add(self, path) -> bool:
        """Add a path; returns False when it was already preserved"""
        with self.conn:
            cursor = self.conn.execute(
                "INSERT OR IGNORE INTO preserved_files (path, added_at) VALUES (?, ?)",
                (normalize_path(path), format_timestamp(local_now())),
            )
        return cursor.rowcount > 0

    def remove(self, path) -> bool:
        with self.conn:
            cursor = self.conn.execute("DELETE FROM preserved_files WHERE path = ?", (normalize_path(path),))
        return cursor.rowcount > 0

    def __contains__(self, path) -> bool:
        row = self.conn.execute("SELECT 1 FROM preserved_files WHERE path = ?", (normalize_path(path),)).fetchone()
        return row is not None

    def paths(self) -> list[str]:
        return [row["path"] for row in self.conn.execute("SELECT path FROM preserved_files ORDER BY id")]

    def __len__(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM preserved_files").fetchone()[0]
