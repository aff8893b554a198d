import re
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

FALLBACK_INTENT = "general"


class FieldKind(StrEnum):
    LIST = "list"
    MAPPING = "mapping"
    TEXT = "text"
    NUMBER = "number"

    def default(self) -> Any:
        if self is FieldKind.LIST:
            return []
        if self is FieldKind.MAPPING:
            return {}
        if self is FieldKind.TEXT:
            return ""
        return 0


class TrendDirection(StrEnum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


@dataclass(frozen=True)
class IntentRule:
    pattern: re.Pattern[str]
    label: str
    order: int


@dataclass
class ResponsePayload:
    text: str
    fields: dict[str, Any] = field(default_factory=dict)
    processing_time: float = 0.0


# (message, metrics) -> payload; metrics is a core.metrics.MetricsSource
Generator = Callable[..., ResponsePayload]


@dataclass
class ChatResult:
    agent: str
    session_id: str
    intent: str
    payload: ResponsePayload
    ai_assisted: bool = False


@dataclass(frozen=True)
class TrendResult:
    direction: TrendDirection
    delta: float | None = None
