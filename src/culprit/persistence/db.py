"""Key-value persistence for accusation state."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
import sqlite3
from typing import Callable, Protocol

from culprit import config
from culprit.domain.errors import PersistenceFailure

logger = logging.getLogger(__name__)


class AccusationStore(Protocol):
    def load(self) -> str | None: ...

    def save(self, payload: str) -> None: ...

    def clear(self) -> None: ...

    def close(self) -> None: ...


class MemoryAccusationStore:
    def __init__(self, payload: str | None = None) -> None:
        self.payload = payload

    def load(self) -> str | None:
        return self.payload

    def save(self, payload: str) -> None:
        self.payload = payload

    def clear(self) -> None:
        self.payload = None

    def close(self) -> None:
        pass


class SqliteAccusationStore:
    """Single-key store; every save replaces the row inside one transaction."""

    def __init__(self, path: Path, key: str = config.STATE_KEY) -> None:
        self.path = Path(path)
        self.key = key
        self.conn: sqlite3.Connection | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(self.path)
            self.conn.row_factory = sqlite3.Row
            self._ensure_schema()
        except (sqlite3.Error, OSError) as exc:
            if self.conn is not None:
                self.conn.close()
            raise PersistenceFailure(f"Cannot open state database {self.path}: {exc}") from exc

    def close(self) -> None:
        self.conn.close()

    def load(self) -> str | None:
        try:
            cur = self.conn.cursor()
            cur.execute("SELECT payload FROM accusation_state WHERE key = ?", (self.key,))
            row = cur.fetchone()
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Cannot read accusation state: {exc}") from exc
        if row is None:
            return None
        return row["payload"]

    def save(self, payload: str) -> None:
        updated_at = datetime.now(timezone.utc).isoformat()
        try:
            with self.conn:
                self.conn.execute(
                    """
                    INSERT INTO accusation_state (key, payload, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        payload = excluded.payload,
                        updated_at = excluded.updated_at
                    """,
                    (self.key, payload, updated_at),
                )
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Cannot write accusation state: {exc}") from exc

    def clear(self) -> None:
        try:
            with self.conn:
                self.conn.execute("DELETE FROM accusation_state WHERE key = ?", (self.key,))
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Cannot clear accusation state: {exc}") from exc

    def _ensure_schema(self) -> None:
        cur = self.conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS accusation_state (
                key TEXT PRIMARY KEY,
                payload TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        self.conn.commit()


class FallbackStore:
    """Best-effort wrapper: the first storage failure switches to memory for the session."""

    def __init__(
        self,
        primary: AccusationStore,
        on_degraded: Callable[[str], None] | None = None,
    ) -> None:
        self.primary = primary
        self.memory = MemoryAccusationStore()
        self.on_degraded = on_degraded
        self.degraded = False
        self.degraded_reason: str | None = None

    @classmethod
    def unavailable(cls, exc: PersistenceFailure) -> "FallbackStore":
        """A store whose backing storage never opened; it is degraded from the start."""
        store = cls(MemoryAccusationStore())
        store.degraded = True
        store.degraded_reason = str(exc)
        return store

    @property
    def active(self) -> AccusationStore:
        return self.memory if self.degraded else self.primary

    def load(self) -> str | None:
        if self.degraded:
            return self.memory.load()
        try:
            payload = self.primary.load()
        except PersistenceFailure as exc:
            self._degrade(exc)
            return None
        if payload is None:
            self.memory.clear()
        else:
            self.memory.save(payload)
        return payload

    def save(self, payload: str) -> None:
        self.memory.save(payload)
        if self.degraded:
            return
        try:
            self.primary.save(payload)
        except PersistenceFailure as exc:
            self._degrade(exc)

    def clear(self) -> None:
        self.memory.clear()
        if self.degraded:
            return
        try:
            self.primary.clear()
        except PersistenceFailure as exc:
            self._degrade(exc)

    def close(self) -> None:
        self.primary.close()

    def _degrade(self, exc: PersistenceFailure) -> None:
        logger.warning("Accusation persistence failed: %s", exc)
        if self.degraded:
            return
        self.degraded = True
        self.degraded_reason = str(exc)
        logger.warning("Accusation state will be kept in memory for the rest of this session")
        if self.on_degraded is not None:
            self.on_degraded(self.degraded_reason)
