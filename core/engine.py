import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

from core import analytics
from core.assembler import ResponseAssembler
from core.classifier import classify
from core.errors import InvalidInputError
from core.log import get_logger
from core.metrics import MetricsSource, RandomMetrics
from core.registry import HandlerRegistry
from core.types import FALLBACK_INTENT, ChatResult, IntentRule
from llm.client import LLMClient
from llm.prompts import build_system_prompt
from memory.capture import CaptureLog
from memory.session import SessionStore
from memory.types import InteractionRecord, SessionState

logger = get_logger("engine")

# Exchanges passed to the LLM as prompt context
PROMPT_HISTORY = 5


def headline(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


class DialogueEngine:
    """One agent: classify, dispatch, assemble, record.

    Stateless apart from the session store and the activity counters, so one
    instance serves every request for its agent.
    """

    def __init__(
        self,
        profile,
        registry: HandlerRegistry,
        metrics: MetricsSource | None = None,
        sessions: SessionStore | None = None,
        llm_client: LLMClient | None = None,
        capture_log: CaptureLog | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.profile = profile
        self.name = profile.name
        self.rules: tuple[IntentRule, ...] = profile.rules
        registry.ensure_complete(profile.intents)
        self.registry = registry
        self.assembler = ResponseAssembler(profile.fields, profile.fallback_text)
        self.metrics = metrics or RandomMetrics()
        self.sessions = sessions or SessionStore(capacity=profile.history_limit, clock=clock)
        self.llm = llm_client
        self.capture_log = capture_log
        self.clock = clock

        self.started_at = clock()
        self.last_active_at: datetime | None = None
        self.total_conversations = 0
        self._activity_lock = threading.Lock()

    def chat(self, session_id: str, message: str | None) -> ChatResult:
        """Handle one message end to end.

        Raises InvalidInputError for blank input before anything is classified
        or recorded.
        """
        if message is None or not message.strip():
            raise InvalidInputError()

        intent = classify(message, self.rules, FALLBACK_INTENT)
        generate = self.registry.dispatch(intent)
        payload = generate(message, self.metrics)

        ai_assisted = False
        if self.llm is not None:
            ai_text = self._ai_text(session_id, intent, message)
            if ai_text:
                payload = replace(payload, text=ai_text)
                ai_assisted = True

        payload = self.assembler.assemble(payload)
        now = self.clock()
        record = InteractionRecord(
            session_id=session_id,
            timestamp=now,
            raw_message=message,
            intent=intent,
            payload_summary={
                "headline": headline(payload.text),
                "fields": list(payload.fields),
                "ai_assisted": ai_assisted,
            },
        )
        self.sessions.append(session_id, record)
        self._capture(record)

        with self._activity_lock:
            self.total_conversations += 1
            self.last_active_at = now

        logger.info("%s: intent=%s session=%s ai=%s", self.name, intent, session_id, ai_assisted)
        return ChatResult(
            agent=self.name,
            session_id=session_id,
            intent=intent,
            payload=payload,
            ai_assisted=ai_assisted,
        )

    def _ai_text(self, session_id: str, intent: str, message: str) -> str | None:
        history = [
            (r.intent, r.raw_message)
            for r in self.sessions.recent(session_id, PROMPT_HISTORY)
            if isinstance(r, InteractionRecord)
        ]
        system_prompt = build_system_prompt(
            display_name=self.profile.display_name,
            tagline=self.profile.tagline,
            specialization=self.profile.specialization,
            intent=intent,
            history=history,
        )
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": message},
        ]
        try:
            text = self.llm.chat_simple(messages)
        except Exception as e:
            logger.warning("%s: LLM call failed, using local reply: %s", self.name, e)
            return None
        return text.strip() or None

    def _capture(self, record: InteractionRecord) -> None:
        if self.capture_log is None:
            return
        try:
            self.capture_log.log(self.name, record)
        except Exception:
            logger.exception("%s: failed to write interaction log", self.name)

    def render(self, result: ChatResult) -> dict[str, Any]:
        """Flatten a result into the JSON body of a chat reply."""
        body: dict[str, Any] = {
            "success": True,
            self.profile.reply_key: result.payload.text,
            "intent": result.intent,
        }
        body.update(result.payload.fields)
        body.update(
            {
                "processing_time": result.payload.processing_time,
                "ai_assisted": result.ai_assisted,
                "agent_info": self.agent_info(),
                "timestamp": self.clock().strftime("%H:%M:%S"),
            }
        )
        return body

    def agent_info(self) -> dict[str, Any]:
        return {
            "name": self.profile.display_name,
            "specialization": self.profile.specialization,
            "emoji": self.profile.emoji,
        }

    def history(self, session_id: str, limit: int = 10) -> list[dict[str, Any]]:
        return [
            {
                "timestamp": r.timestamp.isoformat(),
                "message": r.raw_message,
                "intent": r.intent,
                "headline": r.payload_summary.get("headline", ""),
                "ai_assisted": r.payload_summary.get("ai_assisted", False),
            }
            for r in self.sessions.recent(session_id, limit)
            if isinstance(r, InteractionRecord)
        ]

    def summary(self, session_id: str) -> dict[str, Any]:
        state = self.sessions.get(session_id)
        if state is None:
            # Unknown sessions summarize as empty without being created
            state = SessionState(session_id=session_id, created_at=self.clock())
        return analytics.summarize_session(state, self.clock())

    def clear(self, session_id: str) -> None:
        self.sessions.clear(session_id)
        logger.info("%s: cleared session %s", self.name, session_id)

    def end_session(self, session_id: str) -> None:
        if self.sessions.drop(session_id):
            logger.info("%s: ended session %s", self.name, session_id)

    def expire_sessions(self, idle: timedelta) -> list[str]:
        """Destroy sessions idle for longer than ``idle``; returns their ids."""
        expired = self.sessions.expire(idle)
        if expired:
            logger.info("%s: expired %d idle sessions", self.name, len(expired))
        return expired

    def stats(self) -> dict[str, Any]:
        total = self.total_conversations
        if self.capture_log is not None:
            try:
                total = self.capture_log.count(self.name)
            except Exception:
                logger.exception("%s: failed to read interaction count", self.name)
        return {
            "total_conversations": total,
            "average_rating": self.profile.average_rating,
            "response_time": self.profile.response_time,
            "specializations": self.profile.specializations,
        }

    def status(self) -> dict[str, Any]:
        now = self.clock()
        return {
            "name": self.profile.display_name,
            "status": "active",
            "uptime": analytics.humanize_since(self.started_at, now),
            "capabilities": self.profile.capabilities,
            "last_active": analytics.humanize_since(self.last_active_at, now),
            "intents": self.profile.intents,
        }
