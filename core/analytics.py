"""Read-side computations over session history.

Every function here is pure and tolerates empty input by returning a
documented default instead of raising.
"""
from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from datetime import date, datetime, time, timedelta
from typing import Any

from core.types import TrendDirection, TrendResult
from memory.types import InteractionRecord, MoodEntry, SessionState

DEFAULT_DOMINANT = "neutral"
TREND_EPSILON = 1e-6

Key = str | Callable[[Any], Any]


def _key_fn(key: Key) -> Callable[[Any], Any]:
    if callable(key):
        return key
    return lambda record: getattr(record, key)


def records_since(records: Iterable[Any], since: datetime) -> list[Any]:
    return [r for r in records if r.timestamp >= since]


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def distribution(records: Iterable[Any], key: Key = "intent") -> dict[str, int]:
    get = _key_fn(key)
    return dict(Counter(get(r) for r in records))


def top_categories(records: Iterable[Any], key: Key = "intent", limit: int = 3) -> dict[str, int]:
    get = _key_fn(key)
    return dict(Counter(get(r) for r in records).most_common(limit))


def dominant_category(
    records: Iterable[Any],
    key: Key = "intent",
    since: datetime | None = None,
    default: str = DEFAULT_DOMINANT,
) -> str:
    """Most frequent category; ties go to the one seen first."""
    if since is not None:
        records = records_since(records, since)
    get = _key_fn(key)
    counts = Counter(get(r) for r in records)
    if not counts:
        return default
    return counts.most_common(1)[0][0]


def trend(values: Sequence[float], epsilon: float = TREND_EPSILON) -> TrendResult:
    if len(values) < 2:
        return TrendResult(direction=TrendDirection.INSUFFICIENT_DATA)
    delta = values[-1] - values[0]
    if delta > epsilon:
        direction = TrendDirection.IMPROVING
    elif delta < -epsilon:
        direction = TrendDirection.DECLINING
    else:
        direction = TrendDirection.STABLE
    return TrendResult(direction=direction, delta=delta)


def moving_average(values: Sequence[float], window: int) -> float:
    """Mean of the last ``window`` values; 0.0 when there is nothing to average."""
    if window <= 0 or not values:
        return 0.0
    recent = values[-window:]
    return sum(recent) / len(recent)


def humanize_since(then: datetime | None, now: datetime) -> str:
    if then is None:
        return "Just started"
    elapsed = now - then
    if elapsed < timedelta(minutes=1):
        return "Just now"
    if elapsed < timedelta(hours=1):
        return f"{int(elapsed.total_seconds() // 60)} minutes ago"
    return f"{int(elapsed.total_seconds() // 3600)} hours ago"


def summarize_session(state: SessionState, now: datetime) -> dict[str, Any]:
    """Session summary for index/analytics views.

    The history-derived counts are cached on the state until the next append
    clears them or the day changes. Elapsed-time fields are computed per call.
    """
    with state.lock:
        records = [r for r in state.history if isinstance(r, InteractionRecord)]
        cached = state.cached_aggregates
        if cached is None or cached.get("computed_for") != now.date().isoformat():
            cached = {"computed_for": now.date().isoformat(), "counts": _count_intents(records, now)}
            state.cached_aggregates = cached
        counts = cached["counts"]
        created_at = state.created_at

    return {
        **counts,
        "recent_journey": [
            {
                "intent": r.intent,
                "headline": r.payload_summary.get("headline", ""),
                "when": humanize_since(r.timestamp, now),
            }
            for r in records[-10:]
        ],
        "session_minutes": max(0, int((now - created_at).total_seconds() // 60)),
    }


def _count_intents(records: list[InteractionRecord], now: datetime) -> dict[str, Any]:
    return {
        "total_interactions": len(records),
        "intent_distribution": distribution(records),
        "dominant_intent_today": dominant_category(
            records, since=start_of_day(now.date()), default="none"
        ),
        "top_intents": top_categories(records),
    }


def mood_insights(entries: Sequence[MoodEntry], window: int = 7, epsilon: float = TREND_EPSILON) -> list[str]:
    recent = list(entries[-window:])
    if len(recent) < 2:
        return ["Thank you for starting your emotional journey with us!"]

    insights = []
    result = trend([e.mood_rating for e in recent], epsilon)
    if result.direction == TrendDirection.IMPROVING:
        insights.append("Your mood has been trending upward!")
    elif result.direction == TrendDirection.DECLINING:
        insights.append("I notice some challenges lately. Remember, every emotion is valid.")
    else:
        insights.append("Your emotional state has been quite stable.")

    emotions = [emotion for e in recent for emotion in e.emotions]
    if emotions:
        common = Counter(emotions).most_common(1)[0][0]
        insights.append(f"{common.replace('_', ' ').capitalize()} seems to be a recurring theme for you.")
    return insights


def weekly_average(entries: Iterable[MoodEntry], now: datetime) -> float:
    week_start = start_of_day(now.date() - timedelta(days=7))
    ratings = [e.mood_rating for e in records_since(entries, week_start)]
    return round(moving_average(ratings, len(ratings)), 1)


def mood_patterns(entries: Sequence[MoodEntry], now: datetime) -> dict[str, Any]:
    if len(entries) < 3:
        return {}

    triggers = Counter(t for e in entries for t in e.triggers)
    energy = [e.energy_level for e in entries if e.energy_level]
    emotions = [emotion for e in entries for emotion in e.emotions]

    patterns: dict[str, Any] = {
        "weekly_average": weekly_average(entries, now),
        "most_common_triggers": [t for t, _ in triggers.most_common(3)],
        "energy_patterns": {},
        "emotional_vocabulary": {},
    }
    if energy:
        patterns["energy_patterns"] = {
            "most_common_energy": Counter(energy).most_common(1)[0][0],
            "energy_distribution": dict(Counter(energy)),
        }
    if emotions:
        patterns["emotional_vocabulary"] = {
            "unique_emotions": len(set(emotions)),
            "most_frequent": Counter(emotions).most_common(1)[0][0],
            "emotional_range": list(dict.fromkeys(emotions)),
        }
    return patterns


def daily_mood_stats(entries: Sequence[MoodEntry], now: datetime) -> dict[str, Any]:
    today = records_since(entries, start_of_day(now.date()))
    if not today:
        return {"dominant_mood": DEFAULT_DOMINANT, "mood_changes": 0, "average_rating": 0.0, "emotion_distribution": {}}

    def primary(entry: MoodEntry) -> str:
        return entry.emotions[0] if entry.emotions else DEFAULT_DOMINANT

    return {
        "dominant_mood": dominant_category(today, key=primary),
        "mood_changes": len(today),
        "average_rating": round(moving_average([e.mood_rating for e in today], len(today)), 1),
        "emotion_distribution": distribution(today, key=primary),
    }
