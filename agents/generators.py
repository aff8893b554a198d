"""Response generators built from profile handler specs.

Template generators depend on nothing but the handler spec. The custom ones
below also read the message, which is the only other input allowed to shape
deterministic fields.
"""
import re
from collections.abc import Callable
from typing import Any

from agents.loader import HandlerSpec
from core.metrics import MetricsSource
from core.types import Generator, ResponsePayload

CHART_TYPES = ("bar", "line", "area", "pie", "scatter", "bubble", "radar", "treemap", "heatmap")

EMOTION_KEYWORDS = (
    "sad", "happy", "angry", "frustrated", "excited", "worried",
    "calm", "stressed", "joyful", "anxious", "nervous",
)


def render_value(value: Any, metrics: MetricsSource) -> Any:
    """Copy a field value, replacing ``{range: [lo, hi]}`` with a cosmetic score."""
    if isinstance(value, dict):
        if set(value) == {"range"}:
            low, high = value["range"]
            return metrics.score(int(low), int(high))
        return {k: render_value(v, metrics) for k, v in value.items()}
    if isinstance(value, list):
        return [render_value(v, metrics) for v in value]
    return value


def template_generator(spec: HandlerSpec) -> Generator:
    def generate(message: str, metrics: MetricsSource) -> ResponsePayload:
        return ResponsePayload(
            text=spec.text,
            fields=render_value(spec.fields, metrics),
            processing_time=metrics.processing_time(*spec.processing_time),
        )

    return generate


def detect_chart_type(message: str) -> str:
    lowered = message.lower()
    for chart_type in CHART_TYPES:
        if re.search(rf"\b{chart_type}", lowered):
            return chart_type
    return "bar"


def chart_generator(spec: HandlerSpec) -> Generator:
    def generate(message: str, metrics: MetricsSource) -> ResponsePayload:
        chart_type = detect_chart_type(message)
        fields = render_value(spec.fields, metrics)
        fields["visualization_type"] = chart_type
        fields["chart_data"] = {
            "type": chart_type,
            "labels": ["Q1", "Q2", "Q3", "Q4"],
            "datasets": [{"label": "Sample series", "data": [metrics.score(20, 100) for _ in range(4)]}],
        }
        return ResponsePayload(
            text=spec.text.format(chart_type=chart_type),
            fields=fields,
            processing_time=metrics.processing_time(*spec.processing_time),
        )

    return generate


def detect_emotions(message: str) -> list[str]:
    lowered = message.lower()
    return [emotion for emotion in EMOTION_KEYWORDS if emotion in lowered]


def emotion_generator(spec: HandlerSpec) -> Generator:
    def generate(message: str, metrics: MetricsSource) -> ResponsePayload:
        detected = detect_emotions(message)
        fields = render_value(spec.fields, metrics)
        analysis = dict(fields.get("emotion_analysis") or {})
        analysis["primary_emotion"] = detected[0] if detected else "neutral"
        analysis["detected_emotions"] = detected
        fields["emotion_analysis"] = analysis

        if detected:
            opening = f"I sense {', '.join(detected)} emotions in your message. Your feelings are valid and important."
        else:
            opening = "I'm here to support you through whatever you're feeling."
        return ResponsePayload(
            text=f"{opening}\n\n{spec.text}",
            fields=fields,
            processing_time=metrics.processing_time(*spec.processing_time),
        )

    return generate


# (agent, intent) -> factory taking the handler spec
CUSTOM_GENERATORS: dict[tuple[str, str], Callable[[HandlerSpec], Generator]] = {
    ("datavision", "create_chart"): chart_generator,
    ("emotisense", "emotion_detection"): emotion_generator,
}
