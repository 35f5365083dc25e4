"""
Database module for the resolution engine.

Handles persistent storage of per-participant ability state and the
outcome archive used for audit and replay. Uses SQLite for simplicity
and reliability.
"""

import sqlite3
import logging
import time
import json
from typing import Optional, List, Dict, Any, Tuple
from pathlib import Path
from contextlib import contextmanager
import threading


class DatabaseManager:
    """Manages SQLite database operations for the resolution engine."""

    def __init__(self, db_path: str = "deck_engine.db"):
        self.db_path = Path(db_path).resolve()
        self._local = threading.local()
        self._init_database()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a thread-local database connection."""
        if not hasattr(self._local, 'connection'):
            self._local.connection = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=30.0
            )
            self._local.connection.row_factory = sqlite3.Row
            # WAL mode for better concurrency
            self._local.connection.execute("PRAGMA journal_mode = WAL")
        return self._local.connection

    @contextmanager
    def get_cursor(self):
        """Get a database cursor with automatic commit/rollback."""
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()

    @contextmanager
    def immediate_transaction(self):
        """Cursor inside BEGIN IMMEDIATE so read-check-write is one step across connections."""
        conn = self._get_connection()
        if conn.in_transaction:
            conn.commit()
        cursor = conn.cursor()
        cursor.execute("BEGIN IMMEDIATE")
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()

    def _init_database(self):
        """Initialize database tables."""
        with self.get_cursor() as cursor:
            # Ability state - cooldown timestamps and armed flags per participant
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS ability_state (
                    participant_id TEXT NOT NULL,
                    ability TEXT NOT NULL,
                    last_used REAL,
                    armed INTEGER NOT NULL DEFAULT 0,
                    PRIMARY KEY (participant_id, ability)
                )
            """)

            # Outcome archive - one immutable row per sealed session
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS outcomes (
                    sequence INTEGER PRIMARY KEY,
                    session_id TEXT NOT NULL UNIQUE,
                    action_kind TEXT NOT NULL,
                    status TEXT NOT NULL,
                    seed TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_outcomes_kind ON outcomes(action_kind)")

        logging.info(f"Database initialized at {self.db_path}")

    # Ability state

    def try_acquire(self, participant_id: str, ability: str, now: float, cooldown: float) -> Tuple[bool, float]:
        """Atomically check the cooldown and stamp a new use."""
        with self.immediate_transaction() as cursor:
            cursor.execute(
                "SELECT last_used FROM ability_state WHERE participant_id = ? AND ability = ?",
                (participant_id, ability)
            )
            row = cursor.fetchone()
            last = row['last_used'] if row else None
            if last is not None and now < last + cooldown:
                return False, (last + cooldown) - now

            cursor.execute("""
                INSERT INTO ability_state (participant_id, ability, last_used, armed)
                VALUES (?, ?, ?, 0)
                ON CONFLICT(participant_id, ability) DO UPDATE SET last_used = excluded.last_used
            """, (participant_id, ability, now))
            return True, 0.0

    def get_last_used(self, participant_id: str, ability: str) -> Optional[float]:
        with self.get_cursor() as cursor:
            cursor.execute(
                "SELECT last_used FROM ability_state WHERE participant_id = ? AND ability = ?",
                (participant_id, ability)
            )
            row = cursor.fetchone()
            return row['last_used'] if row else None

    def remaining(self, participant_id: str, ability: str, now: float, cooldown: float) -> float:
        last = self.get_last_used(participant_id, ability)
        if last is None:
            return 0.0
        return max(0.0, (last + cooldown) - now)

    def reset(self, participant_id: str, ability: str) -> None:
        with self.get_cursor() as cursor:
            cursor.execute(
                "DELETE FROM ability_state WHERE participant_id = ? AND ability = ?",
                (participant_id, ability)
            )

    def arm(self, participant_id: str, ability: str) -> None:
        with self.get_cursor() as cursor:
            cursor.execute("""
                INSERT INTO ability_state (participant_id, ability, last_used, armed)
                VALUES (?, ?, NULL, 1)
                ON CONFLICT(participant_id, ability) DO UPDATE SET armed = 1
            """, (participant_id, ability))

    def is_armed(self, participant_id: str, ability: str) -> bool:
        with self.get_cursor() as cursor:
            cursor.execute(
                "SELECT armed FROM ability_state WHERE participant_id = ? AND ability = ?",
                (participant_id, ability)
            )
            row = cursor.fetchone()
            return bool(row['armed']) if row else False

    def disarm(self, participant_id: str, ability: str) -> bool:
        """Clear an armed flag. Returns True if it was armed."""
        with self.immediate_transaction() as cursor:
            cursor.execute(
                "UPDATE ability_state SET armed = 0 WHERE participant_id = ? AND ability = ? AND armed = 1",
                (participant_id, ability)
            )
            return cursor.rowcount > 0

    # Outcome archive

    def archive_outcome(self, record) -> None:
        """Store a sealed outcome record."""
        with self.get_cursor() as cursor:
            cursor.execute("""
                INSERT INTO outcomes
                (sequence, session_id, action_kind, status, seed, payload, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (record.sequence, record.session_id, record.action_kind, record.status,
                  str(record.seed), json.dumps(record.to_dict()), time.time()))
        logging.debug(f"Archived outcome #{record.sequence} for session {record.session_id}")

    def get_outcome(self, session_id: str) -> Optional[Dict[str, Any]]:
        with self.get_cursor() as cursor:
            cursor.execute("SELECT payload FROM outcomes WHERE session_id = ?", (session_id,))
            row = cursor.fetchone()
            return json.loads(row['payload']) if row else None

    def get_recent_outcomes(self, limit: int = 20, action_kind: Optional[str] = None) -> List[Dict[str, Any]]:
        with self.get_cursor() as cursor:
            if action_kind:
                cursor.execute(
                    "SELECT payload FROM outcomes WHERE action_kind = ? ORDER BY sequence DESC LIMIT ?",
                    (action_kind, limit)
                )
            else:
                cursor.execute("SELECT payload FROM outcomes ORDER BY sequence DESC LIMIT ?", (limit,))
            return [json.loads(row['payload']) for row in cursor.fetchall()]

    def max_sequence(self) -> int:
        with self.get_cursor() as cursor:
            cursor.execute("SELECT COALESCE(MAX(sequence), 0) AS seq FROM outcomes")
            return cursor.fetchone()['seq']

    def get_database_stats(self) -> Dict[str, Any]:
        """Get database statistics."""
        with self.get_cursor() as cursor:
            cursor.execute("SELECT COUNT(*) AS n FROM outcomes")
            total_outcomes = cursor.fetchone()['n']
            cursor.execute("SELECT status, COUNT(*) AS n FROM outcomes GROUP BY status")
            by_status = {row['status']: row['n'] for row in cursor.fetchall()}
            cursor.execute("SELECT COUNT(*) AS n FROM ability_state WHERE armed = 1")
            armed = cursor.fetchone()['n']
        return {
            'total_outcomes': total_outcomes,
            'outcomes_by_status': by_status,
            'armed_abilities': armed,
        }

    def close(self) -> None:
        connection = getattr(self._local, 'connection', None)
        if connection is not None:
            connection.close()
            del self._local.connection


# Global database instance
_db_manager: Optional[DatabaseManager] = None


def get_database() -> DatabaseManager:
    """Get the global database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


def init_database(db_path: str = "deck_engine.db") -> DatabaseManager:
    """Initialize the global database manager."""
    global _db_manager
    _db_manager = DatabaseManager(db_path)
    return _db_manager
