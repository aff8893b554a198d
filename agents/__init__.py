from agents.generators import CUSTOM_GENERATORS, template_generator
from agents.loader import AgentProfile, load_profiles
from core.config import Config
from core.engine import DialogueEngine
from core.errors import ConfigurationError
from core.log import get_logger
from core.metrics import MetricsSource, RandomMetrics
from core.registry import HandlerRegistry
from llm.client import LLMClient
from memory.capture import CaptureLog

logger = get_logger("agents")


def build_registry(profile: AgentProfile) -> HandlerRegistry:
    """Register one generator per handler, preferring custom Python ones."""
    registry = HandlerRegistry()
    for label, spec in profile.handlers.items():
        factory = CUSTOM_GENERATORS.get((profile.name, label), template_generator)
        registry.register(label, factory(spec))
    return registry


def create_engines(
    config: Config,
    metrics: MetricsSource | None = None,
    llm_client: LLMClient | None = None,
    capture_log: CaptureLog | None = None,
) -> dict[str, DialogueEngine]:
    """Load every enabled profile and build its engine.

    Any profile problem raises ConfigurationError here, before a request is
    served.
    """
    metrics = metrics or RandomMetrics()
    profiles = load_profiles(config.agents.profiles_dir)
    if config.agents.enabled:
        known = {p.name for p in profiles}
        missing = [name for name in config.agents.enabled if name not in known]
        if missing:
            raise ConfigurationError(f"Enabled agents have no profile: {', '.join(missing)}")
        profiles = [p for p in profiles if p.name in config.agents.enabled]

    engines = {}
    for profile in profiles:
        if profile.name in engines:
            raise ConfigurationError(f"Duplicate agent profile: {profile.name}")
        engines[profile.name] = DialogueEngine(
            profile,
            build_registry(profile),
            metrics=metrics,
            llm_client=llm_client,
            capture_log=capture_log,
        )
    logger.info("Loaded %d agents: %s", len(engines), ", ".join(engines))
    return engines
