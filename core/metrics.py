import random
from abc import ABC, abstractmethod


class MetricsSource(ABC):
    """Source of cosmetic numbers (processing time, scores).

    Values from here are display-only and never feed classification or
    control flow.
    """

    @abstractmethod
    def processing_time(self, low: float, high: float) -> float: ...

    @abstractmethod
    def score(self, low: int, high: int) -> int: ...


class RandomMetrics(MetricsSource):
    def __init__(self, seed: int | None = None):
        self._rng = random.Random(seed)

    def processing_time(self, low: float, high: float) -> float:
        return round(self._rng.uniform(low, high), 2)

    def score(self, low: int, high: int) -> int:
        return self._rng.randint(low, high)


class FixedMetrics(MetricsSource):
    """Deterministic stand-in: always the low end of each range."""

    def processing_time(self, low: float, high: float) -> float:
        return round(low, 2)

    def score(self, low: int, high: int) -> int:
        return low
