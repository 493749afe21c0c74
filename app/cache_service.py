# app/cache_service.py
import json
import os
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Optional


class SummaryCache:
    """Keeps page summaries fetched from Wikipedia for ``ttl_days``."""

    def __init__(self, db_path: str, ttl_days: int = 14):
        self.db_path = db_path
        self.ttl = timedelta(days=ttl_days)
        self._init_db()

    @staticmethod
    def key(lang: str, title: str) -> str:
        # titles are case-sensitive after the first character
        return f"{lang}:{title.strip().replace(' ', '_')}"

    def _init_db(self):
        folder = os.path.dirname(self.db_path)
        if folder:
            os.makedirs(folder, exist_ok=True)

        conn = sqlite3.connect(self.db_path)
        c = conn.cursor()
        c.execute(
            """
            CREATE TABLE IF NOT EXISTS summaries (
                key TEXT PRIMARY KEY,
                payload TEXT,
                updated_at TEXT
            )
            """
        )
        conn.commit()
        conn.close()

    def get(self, key: str) -> Optional[dict]:
        conn = sqlite3.connect(self.db_path)
        c = conn.cursor()
        c.execute("SELECT payload, updated_at FROM summaries WHERE key = ?", (key,))
        row = c.fetchone()
        conn.close()

        if not row:
            return None

        payload, updated_at = row
        if datetime.now(timezone.utc) - datetime.fromisoformat(updated_at) > self.ttl:
            return None

        return json.loads(payload)

    def set(self, key: str, payload: dict):
        conn = sqlite3.connect(self.db_path)
        c = conn.cursor()
        c.execute(
            "INSERT OR REPLACE INTO summaries (key, payload, updated_at) VALUES (?, ?, ?)",
            (key, json.dumps(payload, ensure_ascii=False), datetime.now(timezone.utc).isoformat()),
        )
        conn.commit()
        conn.close()
