import json
import os
import sqlite3
import threading

from memory.types import InteractionRecord


class CaptureLog:
    """Durable log of every chat interaction, across agents and sessions.

    Source of the per-agent conversation totals shown on index pages.
    """

    def __init__(self, db_path: str = "~/.agentdesk/interactions.db"):
        if db_path != ":memory:":
            db_path = os.path.expanduser(db_path)
            parent = os.path.dirname(db_path)
            if parent:
                os.makedirs(parent, exist_ok=True)
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self) -> None:
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS interactions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                agent TEXT NOT NULL,
                session_id TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                raw_message TEXT NOT NULL,
                intent TEXT NOT NULL,
                payload_summary TEXT
            )
        """)
        self.conn.commit()

    def log(self, agent: str, record: InteractionRecord) -> None:
        with self._lock:
            self.conn.execute(
                """INSERT INTO interactions
                   (agent, session_id, timestamp, raw_message, intent, payload_summary)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    agent,
                    record.session_id,
                    record.timestamp.isoformat(),
                    record.raw_message,
                    record.intent,
                    json.dumps(record.payload_summary),
                ),
            )
            self.conn.commit()

    def count(self, agent: str) -> int:
        with self._lock:
            row = self.conn.execute("SELECT COUNT(*) FROM interactions WHERE agent = ?", (agent,)).fetchone()
        return row[0]

    def close(self) -> None:
        self.conn.close()
