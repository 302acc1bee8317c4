"""
Connection handling for the repotimeline commit store.

The store is one SQLite file in WAL mode: synthesis can rewrite a
repository's events while a reader keeps its own snapshot.
"""

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .schema import ensure_schema

DEFAULT_DB_PATH = Path.home() / '.repotimeline' / 'timeline.db'

COUNTED_TABLES = ('repositories', 'branches', 'commits', 'timeline_events')


def get_db_path(config: Optional[dict] = None) -> Path:
    """
    Resolve the commit store location.

    REPOTIMELINE_DB wins over ``database.path`` in the config, which wins
    over ~/.repotimeline/timeline.db.
    """
    if 'REPOTIMELINE_DB' in os.environ:
        return Path(os.environ['REPOTIMELINE_DB'])

    path = (config or {}).get('database', {}).get('path')
    if path:
        return Path(path).expanduser()
    return DEFAULT_DB_PATH


def get_connection(
    db_path: Optional[Path] = None,
    config: Optional[dict] = None,
    read_only: bool = False
) -> sqlite3.Connection:
    """
    Open the store, creating the file and migrating the schema on a
    writable open. A read-only open never creates anything.
    """
    db_path = Path(db_path) if db_path is not None else get_db_path(config)

    if read_only:
        conn = sqlite3.connect(f"file:{db_path}?mode=ro", uri=True, timeout=30)
    else:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_path), timeout=30)

    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")

    if not read_only:
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = NORMAL")
        ensure_schema(conn)

    return conn


class Database:
    """
    Context manager around one store connection.

    Pending writes are committed when the block exits cleanly and rolled
    back when it raises. Use ``transaction`` for writes that must land
    together inside a longer-lived connection.

    Usage:
        with Database(db_path=path) as db:
            db.execute("SELECT owner, name FROM repositories")
            for row in db.fetchall():
                print(row['owner'], row['name'])
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        config: Optional[dict] = None,
        read_only: bool = False
    ):
        self.db_path = db_path
        self.config = config
        self.read_only = read_only
        self._conn: Optional[sqlite3.Connection] = None
        self._cursor: Optional[sqlite3.Cursor] = None

    def __enter__(self) -> 'Database':
        self._conn = get_connection(self.db_path, self.config, self.read_only)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        conn, self._conn, self._cursor = self._conn, None, None
        if conn is None:
            return
        try:
            if not self.read_only:
                if exc_type is None:
                    conn.commit()
                else:
                    conn.rollback()
        finally:
            conn.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database not connected. Use 'with Database() as db:'")
        return self._conn

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        self._cursor = self.conn.execute(sql, params)
        return self._cursor

    def executemany(self, sql: str, params_seq) -> sqlite3.Cursor:
        self._cursor = self.conn.executemany(sql, params_seq)
        return self._cursor

    def fetchone(self) -> Optional[sqlite3.Row]:
        return self._cursor.fetchone() if self._cursor is not None else None

    def fetchall(self) -> list:
        return self._cursor.fetchall() if self._cursor is not None else []

    @property
    def rowcount(self) -> int:
        """Rows touched by the last statement (0 for an ignored insert)."""
        return self._cursor.rowcount if self._cursor is not None else 0


@contextmanager
def transaction(db: Database) -> Iterator[None]:
    """
    Run a block as one write transaction.

    ``BEGIN IMMEDIATE`` takes the write lock up front, so two writers
    cannot both read-then-write the same repository. Anything already
    pending on the connection is committed first.
    """
    conn = db.conn
    if conn.in_transaction:
        conn.commit()
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield
        conn.commit()
    except BaseException:
        conn.rollback()
        raise


def reset_database(config: Optional[dict] = None, db_path: Optional[Path] = None) -> None:
    """Remove the store file and its WAL companions, then recreate an empty schema."""
    db_path = Path(db_path) if db_path else get_db_path(config)
    for suffix in ('', '-wal', '-shm'):
        db_path.with_name(db_path.name + suffix).unlink(missing_ok=True)

    get_connection(db_path).close()


def get_database_info(config: Optional[dict] = None, db_path: Optional[Path] = None) -> dict:
    """Location, size, schema version and per-table row counts of the store."""
    db_path = Path(db_path) if db_path else get_db_path(config)
    if not db_path.exists():
        return {'exists': False, 'path': str(db_path)}

    with Database(db_path=db_path, read_only=True) as db:
        counts = {}
        for table in COUNTED_TABLES:
            db.execute(f"SELECT COUNT(*) FROM {table}")
            counts[table] = db.fetchone()[0]
        db.execute("SELECT MAX(version) FROM _schema_info")
        schema_version = db.fetchone()[0] or 0

    size = db_path.stat().st_size
    return {
        'exists': True,
        'path': str(db_path),
        'size_bytes': size,
        'size_human': _human_size(size),
        'schema_version': schema_version,
        **counts,
    }


def _human_size(size: float) -> str:
    for unit in ('B', 'KB', 'MB', 'GB'):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"
