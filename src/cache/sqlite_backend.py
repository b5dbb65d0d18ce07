"""SQLite persistence backend for cache entries."""

import json
import sqlite3
import threading
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import structlog

from src.cache.errors import PersistenceError
from src.cache.models import CacheEntry, Record


logger = structlog.get_logger()

# Current schema version
CURRENT_VERSION = 1


@dataclass(frozen=True)
class Migration:
    """A database migration.

    Attributes:
        version: Target version after applying this migration.
        description: Human-readable description.
        up_sql: SQL to apply the migration.
    """

    version: int
    description: str
    up_sql: str


MIGRATIONS: list[Migration] = [
    Migration(
        version=1,
        description="Cache entries keyed by source",
        up_sql="""
CREATE TABLE IF NOT EXISTS cache_entries (
    source_key TEXT PRIMARY KEY,
    records_json TEXT NOT NULL,
    record_count INTEGER NOT NULL,
    fetched_at TEXT,
    cursor TEXT
);
""",
    ),
]


class SqliteBackend:
    """Stores cache entries in a single SQLite database.

    Uses WAL mode and a connection shared across threads behind a lock, so
    sources refreshed concurrently can persist through one backend.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Initialize the backend.

        Args:
            db_path: Path to the SQLite database file.
        """
        self._db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()
        self._log = logger.bind(component="cache_sqlite", db_path=str(self._db_path))

    @property
    def db_path(self) -> Path:
        """Get the database path."""
        return self._db_path

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    def connect(self) -> None:
        """Open the database and apply pending migrations."""
        if self._conn is not None:
            return

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")

        applied = self._apply_migrations(self._conn)
        self._log.info(
            "database_connected",
            schema_version=CURRENT_VERSION,
            migrations_applied=applied,
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._log.info("database_closed")

    def __enter__(self) -> "SqliteBackend":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def get_schema_version(self) -> int:
        """Return the applied schema version."""
        conn = self._ensure_connected()
        return int(conn.execute("PRAGMA user_version").fetchone()[0])

    def load(self, source_key: str) -> CacheEntry | None:
        """Load the entry stored for a source key.

        A database error is logged and the key starts empty, like an
        unreadable JSON file.
        """
        conn = self._ensure_connected()
        try:
            with self._lock:
                row = conn.execute(
                    "SELECT records_json, fetched_at, cursor FROM cache_entries "
                    "WHERE source_key = ?",
                    (source_key,),
                ).fetchone()
        except sqlite3.Error as e:
            self._log.warning(
                "cache_row_load_failed", source_key=source_key, error=str(e)
            )
            return None

        if row is None:
            return None

        try:
            raw_records = json.loads(row["records_json"])
            records = [Record.model_validate(r) for r in raw_records]
        except ValueError as e:
            self._log.warning(
                "cache_row_unreadable", source_key=source_key, error=str(e)
            )
            return None

        return CacheEntry(
            source_key=source_key,
            records=records,
            fetched_at=datetime.fromisoformat(row["fetched_at"])
            if row["fetched_at"]
            else None,
            cursor=row["cursor"],
        )

    def save(self, entry: CacheEntry) -> None:
        """Insert or replace the row for an entry."""
        records_json = json.dumps(
            [r.model_dump(mode="json") for r in entry.records], ensure_ascii=False
        )
        with self._transaction("save", entry.source_key) as conn:
            conn.execute(
                """
                INSERT INTO cache_entries
                    (source_key, records_json, record_count, fetched_at, cursor)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(source_key) DO UPDATE SET
                    records_json = excluded.records_json,
                    record_count = excluded.record_count,
                    fetched_at = excluded.fetched_at,
                    cursor = excluded.cursor
                """,
                (
                    entry.source_key,
                    records_json,
                    entry.record_count,
                    entry.fetched_at.isoformat() if entry.fetched_at else None,
                    entry.cursor,
                ),
            )

    def delete(self, source_key: str) -> None:
        """Delete the row for a source key."""
        with self._transaction("delete", source_key) as conn:
            conn.execute(
                "DELETE FROM cache_entries WHERE source_key = ?", (source_key,)
            )

    def _ensure_connected(self) -> sqlite3.Connection:
        """Return the open connection, connecting lazily."""
        if self._conn is None:
            self.connect()
        assert self._conn is not None
        return self._conn

    @contextmanager
    def _transaction(
        self, operation: str, source_key: str
    ) -> Iterator[sqlite3.Connection]:
        """Run statements in a transaction, wrapping failures.

        Args:
            operation: Name of the operation for logging.
            source_key: Source key affected.

        Yields:
            The database connection.

        Raises:
            PersistenceError: If the transaction fails.
        """
        conn = self._ensure_connected()
        tx_id = str(uuid.uuid4())[:8]
        start_ns = time.perf_counter_ns()

        with self._lock:
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                self._log.error(
                    "transaction_failed",
                    tx_id=tx_id,
                    op=operation,
                    source_key=source_key,
                )
                raise PersistenceError(source_key, operation, str(e)) from e

        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        self._log.debug(
            "transaction_complete",
            tx_id=tx_id,
            op=operation,
            source_key=source_key,
            duration_ms=round(duration_ms, 2),
        )

    def _apply_migrations(self, conn: sqlite3.Connection) -> int:
        """Apply migrations newer than the stored schema version.

        Args:
            conn: Open connection.

        Returns:
            Number of migrations applied.
        """
        current = int(conn.execute("PRAGMA user_version").fetchone()[0])
        pending = [m for m in MIGRATIONS if m.version > current]
        for migration in pending:
            conn.executescript(migration.up_sql)
            conn.execute(f"PRAGMA user_version = {migration.version}")
            conn.commit()
            self._log.info(
                "migration_applied",
                version=migration.version,
                description=migration.description,
            )
        return len(pending)
