from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from core.classifier import compile_rules
from core.errors import ConfigurationError
from core.types import FALLBACK_INTENT, FieldKind, IntentRule

# Keys every chat reply carries besides the agent's own fields
RESERVED_KEYS = frozenset(
    {"success", "message", "response", "intent", "processing_time", "ai_assisted", "agent_info", "timestamp"}
)


@dataclass
class HandlerSpec:
    text: str
    processing_time: tuple[float, float] = (1.0, 2.5)
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class AgentProfile:
    name: str
    display_name: str
    specialization: str
    fields: dict[str, FieldKind]
    rules: tuple[IntentRule, ...]
    handlers: dict[str, HandlerSpec]
    emoji: str = ""
    tagline: str = ""
    reply_key: str = "response"
    history_limit: int = 10
    average_rating: float = 4.5
    response_time: str = "< 2s"
    specializations: list[str] = field(default_factory=list)
    capabilities: list[str] = field(default_factory=list)
    file_path: Path | None = None

    @property
    def intents(self) -> list[str]:
        return [rule.label for rule in self.rules] + [FALLBACK_INTENT]

    @property
    def fallback_text(self) -> str:
        return f"{self.emoji} {self.display_name} is ready. How can I help you today?".strip()


def _parse_handler(agent: str, label: str, raw: dict) -> HandlerSpec:
    text = (raw.get("text") or "").strip()
    if not text:
        raise ConfigurationError(f"{agent}: handler '{label}' has no text")
    low, high = raw.get("processing_time", (1.0, 2.5))
    return HandlerSpec(text=text, processing_time=(float(low), float(high)), fields=raw.get("fields") or {})


def parse_profile(data: dict, file_path: Path | None = None) -> AgentProfile:
    """Validate raw profile data and build an AgentProfile."""
    name = data.get("name")
    if not name:
        raise ConfigurationError(f"Profile {file_path} has no name")

    try:
        fields = {key: FieldKind(kind) for key, kind in (data.get("fields") or {}).items()}
    except ValueError as e:
        raise ConfigurationError(f"{name}: {e}") from e
    clashes = RESERVED_KEYS.intersection(fields)
    if clashes:
        raise ConfigurationError(f"{name}: field names clash with reply keys: {', '.join(sorted(clashes))}")

    reply_key = data.get("reply_key", "response")
    if reply_key not in ("message", "response"):
        raise ConfigurationError(f"{name}: reply_key must be 'message' or 'response'")

    rules = compile_rules((r["label"], r["pattern"]) for r in data.get("rules") or [])
    handlers = {
        label: _parse_handler(name, label, raw) for label, raw in (data.get("handlers") or {}).items()
    }

    return AgentProfile(
        name=name,
        display_name=data.get("display_name", name.capitalize()),
        specialization=data.get("specialization", ""),
        fields=fields,
        rules=rules,
        handlers=handlers,
        emoji=data.get("emoji", ""),
        tagline=data.get("tagline", ""),
        reply_key=reply_key,
        history_limit=int(data.get("history_limit", 10)),
        average_rating=float(data.get("average_rating", 4.5)),
        response_time=data.get("response_time", "< 2s"),
        specializations=list(data.get("specializations") or []),
        capabilities=list(data.get("capabilities") or []),
        file_path=file_path,
    )


def load_profiles(profiles_dir: str | Path = "agents") -> list[AgentProfile]:
    """Glob all .yaml files in profiles_dir and parse them into profiles."""
    profiles_dir = Path(profiles_dir)
    profiles = []
    for yaml_file in sorted(profiles_dir.glob("*.yaml")):
        data = yaml.safe_load(yaml_file.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ConfigurationError(f"{yaml_file} does not contain a mapping")
        profiles.append(parse_profile(data, yaml_file))
    return profiles
