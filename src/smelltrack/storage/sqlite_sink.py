"""SQLite persistence sink."""

import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import structlog

from smelltrack.storage.schema import (
    BranchCommitRecord,
    BranchRecord,
    CommitRecord,
    FileRenameRecord,
    LifecycleRecord,
)
from smelltrack.storage.sink import PersistenceSink

logger = structlog.get_logger(__name__)

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS project (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        url TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS commit_entry (
        project_id INTEGER NOT NULL REFERENCES project(id),
        sha1 TEXT NOT NULL,
        ordinal INTEGER NOT NULL,
        author_email TEXT,
        date TEXT,
        message TEXT,
        additions INTEGER DEFAULT 0,
        deletions INTEGER DEFAULT 0,
        files_changed INTEGER DEFAULT 0,
        merged_sha1 TEXT,
        in_feed INTEGER DEFAULT 0,
        PRIMARY KEY (project_id, sha1)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS file_rename (
        project_id INTEGER NOT NULL REFERENCES project(id),
        sha1 TEXT NOT NULL,
        old_file TEXT NOT NULL,
        new_file TEXT NOT NULL,
        similarity INTEGER,
        UNIQUE (project_id, sha1, old_file, new_file)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS branch (
        project_id INTEGER NOT NULL REFERENCES project(id),
        ordinal INTEGER NOT NULL,
        fork_sha1 TEXT,
        merge_sha1 TEXT,
        is_trunk INTEGER DEFAULT 0,
        PRIMARY KEY (project_id, ordinal)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS branch_commit (
        project_id INTEGER NOT NULL REFERENCES project(id),
        branch_ordinal INTEGER NOT NULL,
        sha1 TEXT NOT NULL,
        ordinal INTEGER NOT NULL,
        PRIMARY KEY (project_id, sha1)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS smell (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        project_id INTEGER NOT NULL REFERENCES project(id),
        type TEXT NOT NULL,
        instance TEXT NOT NULL,
        file TEXT,
        UNIQUE (project_id, type, instance)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS smell_event (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        project_id INTEGER NOT NULL REFERENCES project(id),
        branch_ordinal INTEGER NOT NULL,
        smell_id INTEGER NOT NULL REFERENCES smell(id),
        category TEXT NOT NULL,
        sha1 TEXT,
        since INTEGER,
        until INTEGER
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_smell_event_project_branch
    ON smell_event(project_id, branch_ordinal)
    """,
]


class SqliteSink(PersistenceSink):
    """Stores analysis records in a SQLite database.

    Buffered records are written in one transaction per ``flush``; a failed
    flush is rolled back and its records dropped.
    """

    def __init__(self, db_path: Path, timeout: float = 30.0) -> None:
        """Initialize the sink and create the schema if needed.

        Args:
            db_path: Path of the database file
            timeout: Seconds to wait for a lock held by another writer
        """
        self.db_path = Path(db_path).resolve()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.timeout = timeout
        self._commits: List[CommitRecord] = []
        self._renames: List[FileRenameRecord] = []
        self._branches: List[BranchRecord] = []
        self._branch_commits: List[BranchCommitRecord] = []
        self._events: List[LifecycleRecord] = []
        self._create_tables()

    @contextmanager
    def _get_db_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager that ensures database connections are properly closed."""
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _create_tables(self) -> None:
        with self._get_db_connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            for statement in SCHEMA:
                conn.execute(statement)

    def ensure_project(self, name: str, url: Optional[str] = None) -> int:
        with self._get_db_connection() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO project (name, url) VALUES (?, ?)", (name, url)
            )
            row = conn.execute("SELECT id FROM project WHERE name = ?", (name,)).fetchone()
        return int(row[0])

    def add_commits(self, records: Sequence[CommitRecord]) -> None:
        self._commits.extend(records)

    def add_file_renames(self, records: Sequence[FileRenameRecord]) -> None:
        self._renames.extend(records)

    def add_branch(self, record: BranchRecord) -> None:
        self._branches.append(record)

    def add_branch_commits(self, records: Sequence[BranchCommitRecord]) -> None:
        self._branch_commits.extend(records)

    def add_lifecycle_events(self, records: Sequence[LifecycleRecord]) -> None:
        self._events.extend(records)

    def discard(self) -> None:
        self._commits = []
        self._renames = []
        self._branches = []
        self._branch_commits = []
        self._events = []

    def flush(self) -> None:
        """Write buffered records in a single transaction.

        Commits are written before renames and branches before their
        commits, so that every row references already inserted rows.
        """
        if not (
            self._commits or self._renames or self._branches or self._branch_commits or self._events
        ):
            return

        try:
            with self._get_db_connection() as conn:
                self._write_commits(conn)
                self._write_renames(conn)
                self._write_branches(conn)
                self._write_events(conn)
            logger.debug(
                "sink_flushed",
                db=str(self.db_path),
                commits=len(self._commits),
                branches=len(self._branches),
                events=len(self._events),
            )
        finally:
            self.discard()

    def _write_commits(self, conn: sqlite3.Connection) -> None:
        conn.executemany(
            """
            INSERT OR IGNORE INTO commit_entry (project_id, sha1, ordinal, author_email, date,
                message, additions, deletions, files_changed, merged_sha1, in_feed)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    r.project_id,
                    r.sha,
                    r.ordinal,
                    r.author_email,
                    r.date.isoformat() if r.date else None,
                    r.message,
                    r.additions,
                    r.deletions,
                    r.files_changed,
                    r.merged_sha,
                    int(r.in_feed),
                )
                for r in self._commits
            ],
        )

    def _write_renames(self, conn: sqlite3.Connection) -> None:
        conn.executemany(
            """
            INSERT OR IGNORE INTO file_rename (project_id, sha1, old_file, new_file, similarity)
            VALUES (?, ?, ?, ?, ?)
            """,
            [(r.project_id, r.sha, r.old_file, r.new_file, r.similarity) for r in self._renames],
        )

    def _write_branches(self, conn: sqlite3.Connection) -> None:
        conn.executemany(
            """
            INSERT OR REPLACE INTO branch (project_id, ordinal, fork_sha1, merge_sha1, is_trunk)
            VALUES (?, ?, ?, ?, ?)
            """,
            [
                (r.project_id, r.branch_id, r.fork_sha, r.merge_sha, int(r.is_trunk))
                for r in self._branches
            ],
        )
        conn.executemany(
            """
            INSERT OR REPLACE INTO branch_commit (project_id, branch_ordinal, sha1, ordinal)
            VALUES (?, ?, ?, ?)
            """,
            [(r.project_id, r.branch_id, r.sha, r.ordinal) for r in self._branch_commits],
        )

    def _write_events(self, conn: sqlite3.Connection) -> None:
        for r in self._events:
            conn.execute(
                "INSERT OR IGNORE INTO smell (project_id, type, instance, file) VALUES (?, ?, ?, ?)",
                (r.project_id, r.smell_type, r.instance, r.file),
            )
            smell_id = conn.execute(
                "SELECT id FROM smell WHERE project_id = ? AND type = ? AND instance = ?",
                (r.project_id, r.smell_type, r.instance),
            ).fetchone()[0]
            conn.execute(
                """
                INSERT INTO smell_event (project_id, branch_ordinal, smell_id, category,
                    sha1, since, until)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (r.project_id, r.branch_id, smell_id, r.category, r.sha, r.since, r.until),
            )

    def fetch_events(self, project_id: int, branch_id: Optional[int] = None) -> List[LifecycleRecord]:
        """Read stored lifecycle events in insertion order."""
        query = """
            SELECT e.project_id, e.branch_ordinal, s.type, s.instance, s.file,
                e.category, e.sha1, e.since, e.until
            FROM smell_event e JOIN smell s ON s.id = e.smell_id
            WHERE e.project_id = ?
        """
        params: Tuple = (project_id,)
        if branch_id is not None:
            query += " AND e.branch_ordinal = ?"
            params = (project_id, branch_id)
        query += " ORDER BY e.id"

        with self._get_db_connection() as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            LifecycleRecord(
                project_id=row[0],
                branch_id=row[1],
                smell_type=row[2],
                instance=row[3],
                file=row[4],
                category=row[5],
                sha=row[6],
                since=row[7],
                until=row[8],
            )
            for row in rows
        ]

    def count(self, table: str, project_id: int) -> int:
        """Count the rows of a table belonging to a project."""
        if table not in {"commit_entry", "file_rename", "branch", "branch_commit", "smell", "smell_event"}:
            raise ValueError(f"Unknown table: {table}")
        with self._get_db_connection() as conn:
            row = conn.execute(
                f"SELECT COUNT(*) FROM {table} WHERE project_id = ?", (project_id,)
            ).fetchone()
        return int(row[0])
