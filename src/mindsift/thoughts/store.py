"""Storage contract and SQLite implementation for dumps and thoughts."""

import json
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from ..errors import PersistenceFailure
from .models import (
    DumpSource,
    Importance,
    MindDump,
    Thought,
    ThoughtRelation,
    ThoughtStatus,
    ThoughtType,
    ThoughtVector,
)

DUMP_FIELDS = {"raw_text", "audio_ref", "processed", "model_version"}


class ThoughtStore(Protocol):
    """What the pipeline needs from a datastore.

    Inserts return the record with its generated id. Any failure is
    reported as PersistenceFailure.
    """

    def create_dump(self, dump: MindDump) -> MindDump: ...

    def get_dump(self, dump_id: str) -> MindDump | None: ...

    def update_dump(self, dump_id: str, **fields: Any) -> MindDump: ...

    def insert_thought(self, thought: Thought) -> Thought: ...

    def insert_relation(self, relation: ThoughtRelation) -> ThoughtRelation: ...

    def insert_vector(self, vector: ThoughtVector) -> ThoughtVector: ...


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_text(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_text(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SQLiteThoughtStore:
    """Persistent storage for the pipeline using SQLite.

    One database file holds dumps, thoughts, subtask relations and
    embeddings. Timestamps are stored as ISO 8601 text, embeddings as JSON.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the store with a database path.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        return self._conn

    @contextmanager
    def _transaction(self, action: str) -> Iterator[sqlite3.Connection]:
        """Run statements in one transaction, mapping errors to PersistenceFailure.

        Values sqlite3 cannot bind (ints beyond 64 bits, unsupported types)
        are reported the same way as database errors.
        """
        conn = self._get_connection()
        try:
            with conn:
                yield conn
        except (sqlite3.Error, OverflowError, ValueError, TypeError) as e:
            raise PersistenceFailure(f"Failed to {action}: {e}") from e

    def init_db(self) -> None:
        """Create the tables if they don't exist."""
        with self._transaction("initialize database") as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS mind_dumps (
                    id             TEXT PRIMARY KEY,
                    user_id        TEXT NOT NULL,
                    source         TEXT NOT NULL,
                    raw_text       TEXT,
                    audio_ref      TEXT,
                    processed      INTEGER NOT NULL DEFAULT 0,
                    model_version  TEXT,
                    created_at     TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_dumps_processed
                    ON mind_dumps(processed);

                CREATE TABLE IF NOT EXISTS thoughts (
                    id                 TEXT PRIMARY KEY,
                    dump_id            TEXT NOT NULL REFERENCES mind_dumps(id),
                    user_id            TEXT NOT NULL,
                    text               TEXT NOT NULL,
                    type               TEXT NOT NULL,
                    importance         TEXT,
                    deadline           TEXT,
                    estimated_minutes  INTEGER,
                    category           TEXT NOT NULL DEFAULT '',
                    next_action        TEXT,
                    sentiment          TEXT NOT NULL DEFAULT 'neutral',
                    resurface_at       TEXT,
                    confidence         REAL NOT NULL
                        CHECK (confidence >= 0 AND confidence <= 1),
                    status             TEXT NOT NULL DEFAULT 'open',
                    created_at         TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_thoughts_dump ON thoughts(dump_id);

                CREATE TABLE IF NOT EXISTS thought_relations (
                    parent_id  TEXT NOT NULL REFERENCES thoughts(id),
                    child_id   TEXT NOT NULL REFERENCES thoughts(id),
                    relation   TEXT NOT NULL DEFAULT 'subtask',
                    PRIMARY KEY (parent_id, child_id, relation)
                );

                CREATE TABLE IF NOT EXISTS thought_vectors (
                    thought_id  TEXT PRIMARY KEY REFERENCES thoughts(id),
                    embedding   TEXT NOT NULL
                );
            """)

    # Dumps

    def create_dump(self, dump: MindDump) -> MindDump:
        """Insert a new dump.

        Args:
            dump: The dump to save. Its id is ignored; created_at defaults
                to now and is stored in UTC.

        Returns:
            The dump with its assigned id and creation time.
        """
        dump_id = str(uuid.uuid4())
        created_at = (dump.created_at or _now()).astimezone(timezone.utc)
        with self._transaction("create dump") as conn:
            conn.execute(
                """
                INSERT INTO mind_dumps
                    (id, user_id, source, raw_text, audio_ref, processed,
                     model_version, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    dump_id,
                    dump.user_id,
                    dump.source.value,
                    dump.raw_text,
                    dump.audio_ref,
                    int(dump.processed),
                    dump.model_version,
                    _to_text(created_at),
                ),
            )
        return MindDump(
            id=dump_id,
            user_id=dump.user_id,
            source=dump.source,
            raw_text=dump.raw_text,
            audio_ref=dump.audio_ref,
            processed=dump.processed,
            model_version=dump.model_version,
            created_at=created_at,
        )

    def get_dump(self, dump_id: str) -> MindDump | None:
        """Get a dump by id, or None if it doesn't exist."""
        with self._transaction("read dump") as conn:
            row = conn.execute(
                "SELECT * FROM mind_dumps WHERE id = ?", (dump_id,)
            ).fetchone()
        return self._row_to_dump(row) if row else None

    def update_dump(self, dump_id: str, **fields: Any) -> MindDump:
        """Update selected fields of a dump.

        Args:
            dump_id: The dump to update.
            **fields: Any of raw_text, audio_ref, processed, model_version.

        Returns:
            The updated dump.

        Raises:
            ValueError: If an unknown field is given.
            PersistenceFailure: If the dump doesn't exist or the write fails.
        """
        unknown = set(fields) - DUMP_FIELDS
        if unknown:
            raise ValueError(f"Unknown dump fields: {', '.join(sorted(unknown))}")

        if "processed" in fields:
            fields["processed"] = int(bool(fields["processed"]))

        if fields:
            assignments = ", ".join(f"{name} = ?" for name in fields)
            with self._transaction("update dump") as conn:
                cursor = conn.execute(
                    f"UPDATE mind_dumps SET {assignments} WHERE id = ?",
                    (*fields.values(), dump_id),
                )
            if cursor.rowcount == 0:
                raise PersistenceFailure(f"Dump not found: {dump_id}")

        dump = self.get_dump(dump_id)
        if dump is None:
            raise PersistenceFailure(f"Dump not found: {dump_id}")
        return dump

    def list_unprocessed_dumps(
        self, older_than: datetime | None = None
    ) -> list[MindDump]:
        """Dumps still waiting for (or stuck in) the pipeline.

        Args:
            older_than: Only return dumps created before this instant.

        Returns:
            Unprocessed dumps, oldest first.
        """
        query = "SELECT * FROM mind_dumps WHERE processed = 0"
        params: tuple[Any, ...] = ()
        if older_than is not None:
            query += " AND created_at < ?"
            params = (_to_text(older_than.astimezone(timezone.utc)),)
        query += " ORDER BY created_at"

        with self._transaction("list dumps") as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_dump(row) for row in rows]

    # Thoughts

    def insert_thought(self, thought: Thought) -> Thought:
        """Insert a thought and return it with its id and creation time."""
        thought_id = str(uuid.uuid4())
        created_at = thought.created_at or _now()
        with self._transaction("insert thought") as conn:
            conn.execute(
                """
                INSERT INTO thoughts
                    (id, dump_id, user_id, text, type, importance, deadline,
                     estimated_minutes, category, next_action, sentiment,
                     resurface_at, confidence, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    thought_id,
                    thought.dump_id,
                    thought.user_id,
                    thought.text,
                    thought.type.value,
                    thought.importance.value if thought.importance else None,
                    _to_text(thought.deadline),
                    thought.estimated_minutes,
                    thought.category,
                    thought.next_action,
                    thought.sentiment,
                    _to_text(thought.resurface_at),
                    thought.confidence,
                    thought.status.value,
                    _to_text(created_at),
                ),
            )
        return self.get_thought(thought_id)  # type: ignore[return-value]

    def get_thought(self, thought_id: str) -> Thought | None:
        """Get a thought by id, or None if it doesn't exist."""
        with self._transaction("read thought") as conn:
            row = conn.execute(
                "SELECT * FROM thoughts WHERE id = ?", (thought_id,)
            ).fetchone()
        return self._row_to_thought(row) if row else None

    def list_thoughts(self, dump_id: str) -> list[Thought]:
        """All thoughts derived from a dump, in creation order."""
        with self._transaction("list thoughts") as conn:
            rows = conn.execute(
                "SELECT * FROM thoughts WHERE dump_id = ? ORDER BY created_at, rowid",
                (dump_id,),
            ).fetchall()
        return [self._row_to_thought(row) for row in rows]

    # Relations and vectors

    def insert_relation(self, relation: ThoughtRelation) -> ThoughtRelation:
        """Insert a relation edge between two existing thoughts."""
        with self._transaction("insert relation") as conn:
            conn.execute(
                "INSERT INTO thought_relations (parent_id, child_id, relation) VALUES (?, ?, ?)",
                (relation.parent_id, relation.child_id, relation.relation),
            )
        return relation

    def list_children(self, parent_id: str, relation: str = "subtask") -> list[Thought]:
        """Child thoughts linked to a parent, in creation order."""
        with self._transaction("list children") as conn:
            rows = conn.execute(
                """
                SELECT t.* FROM thoughts t
                JOIN thought_relations r ON r.child_id = t.id
                WHERE r.parent_id = ? AND r.relation = ?
                ORDER BY t.created_at, t.rowid
                """,
                (parent_id, relation),
            ).fetchall()
        return [self._row_to_thought(row) for row in rows]

    def insert_vector(self, vector: ThoughtVector) -> ThoughtVector:
        """Store the embedding of a thought, replacing any previous one."""
        with self._transaction("insert vector") as conn:
            conn.execute(
                "INSERT OR REPLACE INTO thought_vectors (thought_id, embedding) VALUES (?, ?)",
                (vector.thought_id, json.dumps(vector.embedding)),
            )
        return vector

    def get_vector(self, thought_id: str) -> ThoughtVector | None:
        """Get the embedding of a thought, or None if it has none."""
        with self._transaction("read vector") as conn:
            row = conn.execute(
                "SELECT thought_id, embedding FROM thought_vectors WHERE thought_id = ?",
                (thought_id,),
            ).fetchone()
        if row is None:
            return None
        return ThoughtVector(thought_id=row["thought_id"], embedding=json.loads(row["embedding"]))

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _row_to_dump(self, row: sqlite3.Row) -> MindDump:
        """Convert a database row to a MindDump."""
        return MindDump(
            id=row["id"],
            user_id=row["user_id"],
            source=DumpSource(row["source"]),
            raw_text=row["raw_text"],
            audio_ref=row["audio_ref"],
            processed=bool(row["processed"]),
            model_version=row["model_version"],
            created_at=_from_text(row["created_at"]),
        )

    def _row_to_thought(self, row: sqlite3.Row) -> Thought:
        """Convert a database row to a Thought."""
        return Thought(
            id=row["id"],
            dump_id=row["dump_id"],
            user_id=row["user_id"],
            text=row["text"],
            type=ThoughtType(row["type"]),
            importance=Importance(row["importance"]) if row["importance"] else None,
            deadline=_from_text(row["deadline"]),
            estimated_minutes=row["estimated_minutes"],
            category=row["category"],
            next_action=row["next_action"],
            sentiment=row["sentiment"],
            resurface_at=_from_text(row["resurface_at"]),
            confidence=row["confidence"],
            status=ThoughtStatus(row["status"]),
            created_at=_from_text(row["created_at"]),
        )
