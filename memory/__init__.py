from core.config import Config
from memory.capture import CaptureLog
from memory.knowledge import KnowledgeStore


def create_memory(config: Config) -> tuple[KnowledgeStore | None, CaptureLog | None]:
    """Create memory components based on config."""
    knowledge = None
    capture = None

    if config.memory.enabled:
        knowledge = KnowledgeStore(config.memory.knowledge.db_path)

    if config.memory.enabled and config.memory.capture.enabled:
        capture = CaptureLog(config.memory.capture.db_path)

    return knowledge, capture
