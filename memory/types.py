import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class InteractionRecord:
    session_id: str
    timestamp: datetime
    raw_message: str
    intent: str
    payload_summary: dict[str, Any] = field(default_factory=dict)  # {headline, fields, ai_assisted}


@dataclass(frozen=True)
class MoodEntry:
    timestamp: datetime
    mood_rating: int
    emotions: tuple[str, ...] = ()
    notes: str = ""
    triggers: tuple[str, ...] = ()
    energy_level: str | None = None


@dataclass(frozen=True)
class MemoryEntry:
    id: str
    user_id: str
    content: str
    type: str
    priority: str
    tags: tuple[str, ...]
    keywords: tuple[str, ...]
    created_at: datetime
    source: str = "terminal"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "type": self.type,
            "priority": self.priority,
            "tags": list(self.tags),
            "keywords": list(self.keywords),
            "created_at": self.created_at.isoformat(),
            "source": self.source,
        }


HistoryRecord = InteractionRecord | MoodEntry


@dataclass
class SessionState:
    session_id: str
    created_at: datetime
    history: list[HistoryRecord] = field(default_factory=list)
    cached_aggregates: dict[str, Any] | None = None
    last_active_at: datetime | None = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)
