from collections.abc import Iterable

from core.errors import ConfigurationError
from core.log import get_logger
from core.types import Generator

logger = get_logger("registry")


class HandlerRegistry:
    """Maps intent labels to response generators.

    Completeness is checked once with ``ensure_complete`` while the engine is
    being built; ``dispatch`` assumes it passed.
    """

    def __init__(self) -> None:
        self._generators: dict[str, Generator] = {}

    def register(self, label: str, generator: Generator) -> None:
        if label in self._generators:
            logger.debug("Replacing generator for intent '%s'", label)
        self._generators[label] = generator

    def labels(self) -> list[str]:
        return list(self._generators)

    def ensure_complete(self, labels: Iterable[str]) -> None:
        wanted = list(dict.fromkeys(labels))
        missing = [label for label in wanted if label not in self._generators]
        if missing:
            raise ConfigurationError(f"No generator registered for intents: {', '.join(missing)}")

        unreachable = [label for label in self._generators if label not in wanted]
        for label in unreachable:
            logger.warning("Generator for intent '%s' is registered but no rule produces it", label)

    def dispatch(self, label: str) -> Generator:
        try:
            return self._generators[label]
        except KeyError:
            raise LookupError(f"Intent '{label}' has no generator; registry was not validated") from None

    def __contains__(self, label: str) -> bool:
        return label in self._generators

    def __len__(self) -> int:
        return len(self._generators)
