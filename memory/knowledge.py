import csv
import io
import json
import os
import sqlite3
import threading
import uuid
from collections import Counter
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

from memory.keywords import MEMORY_TYPES, PRIORITY_LEVELS, extract_keywords
from memory.types import MemoryEntry

PRIORITY_SCORES = {"critical": 20, "high": 15, "medium": 10, "low": 5, "archive": 0}

# (entry, query_tokens, query, now) -> score
Scorer = Callable[[MemoryEntry, list[str], str, datetime], float]

EXPORT_FORMATS = ("json", "markdown", "csv", "text")


def query_tokens(query: str) -> list[str]:
    tokens = extract_keywords(query)
    if not tokens:
        # Short queries ("ai", "go") still deserve a lookup
        tokens = list(dict.fromkeys(query.lower().split()))
    return tokens


def matches(entry: MemoryEntry, tokens: Iterable[str]) -> bool:
    content = entry.content.lower()
    return any(t in entry.keywords or t in content for t in tokens)


def keyword_overlap_score(entry: MemoryEntry, tokens: list[str], query: str, now: datetime) -> float:
    """Heuristic ranking: token hits, named type, priority, recency."""
    content = entry.content.lower()
    score = 10 * sum(1 for t in tokens if t in entry.keywords or t in content)
    if entry.type in query.lower():
        score += 5
    score += max(10 - (now - entry.created_at).days, 0)
    score += PRIORITY_SCORES.get(entry.priority, 0)
    return score


class KnowledgeStore:
    """Append-only memory entries keyed by user, persisted in SQLite."""

    def __init__(self, db_path: str = "~/.agentdesk/knowledge.db", scorer: Scorer = keyword_overlap_score):
        if db_path != ":memory:":
            db_path = os.path.expanduser(db_path)
            parent = os.path.dirname(db_path)
            if parent:
                os.makedirs(parent, exist_ok=True)
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.scorer = scorer
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self) -> None:
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS memories (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                user_id TEXT NOT NULL,
                content TEXT NOT NULL,
                type TEXT NOT NULL,
                priority TEXT NOT NULL,
                tags TEXT NOT NULL,
                keywords TEXT NOT NULL,
                created_at TEXT NOT NULL,
                source TEXT NOT NULL
            )
        """)
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_memories_user ON memories (user_id)")
        self.conn.commit()

    def store(
        self,
        user_id: str,
        content: str,
        memory_type: str = "fact",
        priority: str = "medium",
        tags: Iterable[str] = (),
        source: str = "terminal",
    ) -> str:
        if not content.strip():
            raise ValueError("content must not be empty")
        if memory_type not in MEMORY_TYPES:
            raise ValueError(f"Unknown memory type: {memory_type}")
        if priority not in PRIORITY_LEVELS:
            raise ValueError(f"Unknown priority: {priority}")

        memory_id = str(uuid.uuid4())
        with self._lock:
            self.conn.execute(
                """INSERT INTO memories
                   (id, user_id, content, type, priority, tags, keywords, created_at, source)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    memory_id,
                    user_id,
                    content,
                    memory_type,
                    priority,
                    json.dumps(list(dict.fromkeys(tags))),
                    json.dumps(extract_keywords(content)),
                    datetime.now().isoformat(),
                    source,
                ),
            )
            self.conn.commit()
        return memory_id

    def get(self, memory_id: str) -> MemoryEntry | None:
        with self._lock:
            row = self.conn.execute("SELECT * FROM memories WHERE id = ?", (memory_id,)).fetchone()
        return self._to_entry(row) if row else None

    def delete(self, memory_id: str) -> bool:
        with self._lock:
            cursor = self.conn.execute("DELETE FROM memories WHERE id = ?", (memory_id,))
            self.conn.commit()
        return cursor.rowcount > 0

    def entries(
        self,
        user_id: str,
        memory_type: str | None = None,
        priority: str | None = None,
        tags: Iterable[str] | None = None,
    ) -> list[MemoryEntry]:
        """All entries of a user, oldest first, narrowed by optional filters."""
        sql = "SELECT * FROM memories WHERE user_id = ?"
        params: list = [user_id]
        if memory_type:
            sql += " AND type = ?"
            params.append(memory_type)
        if priority:
            sql += " AND priority = ?"
            params.append(priority)
        sql += " ORDER BY seq"
        with self._lock:
            rows = self.conn.execute(sql, params).fetchall()
        found = [self._to_entry(row) for row in rows]
        if tags:
            wanted = set(tags)
            found = [e for e in found if wanted.intersection(e.tags)]
        return found

    def search(
        self,
        user_id: str,
        query: str,
        memory_type: str | None = None,
        priority: str | None = None,
        tags: Iterable[str] | None = None,
        limit: int = 10,
    ) -> list[MemoryEntry]:
        tokens = query_tokens(query)
        if not tokens:
            return []
        now = datetime.now()
        candidates = [
            e for e in self.entries(user_id, memory_type, priority, tags) if matches(e, tokens)
        ]
        candidates.sort(key=lambda e: self.scorer(e, tokens, query, now), reverse=True)
        return candidates[:limit]

    def recall(self, user_id: str, query: str) -> dict:
        found = self.search(user_id, query, limit=50)
        tokens = query_tokens(query)
        return {
            "query": query,
            "results": [e.to_dict() for e in found[:5]],
            "total_found": len(found),
            "suggestions": self._suggestions(found),
            "confidence_score": self._confidence(found, tokens),
        }

    @staticmethod
    def _suggestions(found: list[MemoryEntry]) -> list[str]:
        if not found:
            return [
                "No memories found. Try different keywords or check your memory types.",
                "Consider storing more detailed memories for better recall.",
            ]
        related = Counter(k for e in found[:5] for k in e.keywords).most_common(3)
        return [f"Try searching for '{keyword}'" for keyword, _ in related]

    @staticmethod
    def _confidence(found: list[MemoryEntry], tokens: list[str]) -> int:
        if not found or not tokens:
            return 0
        top = found[:3]
        relevance = sum(len(set(tokens) & set(e.keywords)) / len(tokens) for e in top) / 3.0
        count_factor = min(len(found) / 10.0, 1.0)
        return round(relevance * count_factor * 100)

    def stats(self, user_id: str) -> dict:
        found = self.entries(user_id)
        week_ago = datetime.now() - timedelta(days=7)
        return {
            "total_memories": len(found),
            "memory_types": dict(Counter(e.type for e in found)),
            "priorities": dict(Counter(e.priority for e in found)),
            "recent_activity": sum(1 for e in found if e.created_at >= week_ago),
            "indexed_keywords": len({k for e in found for k in e.keywords}),
        }

    def export(self, user_id: str, fmt: str = "json", **filters) -> str:
        if fmt not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported export format: {fmt}")
        found = self.entries(user_id, **filters)

        if fmt == "json":
            return json.dumps([e.to_dict() for e in found], indent=2)

        if fmt == "markdown":
            lines = ["# Memories", ""]
            for e in found:
                lines.append(f"## {MEMORY_TYPES[e.type]} ({e.priority})")
                lines.append("")
                lines.append(e.content)
                if e.tags:
                    lines.append("")
                    lines.append("Tags: " + ", ".join(f"#{t}" for t in e.tags))
                lines.append("")
            return "\n".join(lines)

        if fmt == "csv":
            buffer = io.StringIO()
            writer = csv.writer(buffer)
            writer.writerow(["id", "created_at", "type", "priority", "tags", "content"])
            for e in found:
                writer.writerow([e.id, e.created_at.isoformat(), e.type, e.priority, " ".join(e.tags), e.content])
            return buffer.getvalue()

        return "\n".join(f"[{e.created_at:%Y-%m-%d %H:%M}] ({e.type}/{e.priority}) {e.content}" for e in found)

    @staticmethod
    def _to_entry(row: tuple) -> MemoryEntry:
        _, memory_id, user_id, content, memory_type, priority, tags, keywords, created_at, source = row
        return MemoryEntry(
            id=memory_id,
            user_id=user_id,
            content=content,
            type=memory_type,
            priority=priority,
            tags=tuple(json.loads(tags)),
            keywords=tuple(json.loads(keywords)),
            created_at=datetime.fromisoformat(created_at),
            source=source,
        )

    def close(self) -> None:
        self.conn.close()
