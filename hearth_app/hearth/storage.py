"""SQLite-backed key-value persistence layer."""
from __future__ import annotations

import json
import logging
import shutil
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from .models import FocusRecord

LOGGER = logging.getLogger(__name__)

HISTORY_KEY = "hearth-history"
CATEGORIES_KEY = "hearth-categories"
DEFAULT_CATEGORIES = ["Work", "Study", "Health", "Zen"]


class Storage:
    """Durable key-value store holding the serialized ledger and category list."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _get_conn(self) -> Iterable[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            LOGGER.exception("Database operation failed")
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._get_conn() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    def get_value(self, key: str) -> Optional[str]:
        with self._get_conn() as conn:
            cur = conn.cursor()
            cur.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = cur.fetchone()
            return row[0] if row else None

    def set_value(self, key: str, value: str) -> None:
        with self._get_conn() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, datetime.now().isoformat(timespec="seconds")),
            )
            LOGGER.debug("Stored %s (%s bytes)", key, len(value))

    def _load_json(self, key: str) -> object:
        raw = self.get_value(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning("Stored value for %s is not valid JSON, ignoring it", key)
            return None

    def load_records(self) -> List[FocusRecord]:
        """Return the persisted ledger, dropping anything that fails validation."""
        data = self._load_json(HISTORY_KEY)
        if data is None:
            return []
        if not isinstance(data, list):
            LOGGER.warning("Stored history is not a list, starting with an empty ledger")
            return []
        records: List[FocusRecord] = []
        seen = set()
        for item in data:
            try:
                record = FocusRecord.from_dict(item)
            except ValueError:
                LOGGER.warning("Skipping malformed record %r", item)
                continue
            if record.id in seen:
                LOGGER.warning("Skipping duplicate record id %s", record.id)
                continue
            seen.add(record.id)
            records.append(record)
        return records

    def save_records(self, records: Iterable[FocusRecord]) -> None:
        self.set_value(HISTORY_KEY, json.dumps([record.to_dict() for record in records], ensure_ascii=False))

    def load_categories(self) -> List[str]:
        data = self._load_json(CATEGORIES_KEY)
        if data is None:
            return list(DEFAULT_CATEGORIES)
        if not isinstance(data, list):
            LOGGER.warning("Stored categories are not a list, using defaults")
            return list(DEFAULT_CATEGORIES)
        categories: List[str] = []
        for item in data:
            if isinstance(item, str) and item.strip() and item not in categories:
                categories.append(item)
        if not categories:
            LOGGER.warning("Stored category list is empty, using defaults")
            return list(DEFAULT_CATEGORIES)
        return categories

    def save_categories(self, categories: Iterable[str]) -> None:
        self.set_value(CATEGORIES_KEY, json.dumps(list(categories), ensure_ascii=False))

    def backup_database(self) -> Path:
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        target = self.db_path.with_name(f"{self.db_path.stem}-backup-{timestamp}{self.db_path.suffix}")
        shutil.copy2(self.db_path, target)
        LOGGER.info("Database backed up to %s", target)
        return target
