import re
from collections.abc import Iterable, Sequence

from core.errors import ConfigurationError
from core.types import FALLBACK_INTENT, IntentRule


def compile_rules(
    specs: Iterable[tuple[str, str]],
    fallback: str = FALLBACK_INTENT,
) -> tuple[IntentRule, ...]:
    """Build an ordered rule tuple from (label, regex) pairs.

    Order is the position in ``specs``. The fallback label is implicit and
    may not be used by a rule.
    """
    rules = []
    for order, (label, pattern) in enumerate(specs):
        if label == fallback:
            raise ConfigurationError(f"Rule {order} uses the fallback label '{fallback}'")
        try:
            compiled = re.compile(pattern, re.IGNORECASE)
        except re.error as e:
            raise ConfigurationError(f"Rule '{label}' has an invalid pattern {pattern!r}: {e}") from e
        rules.append(IntentRule(pattern=compiled, label=label, order=order))
    return tuple(rules)


def classify(
    message: str,
    rules: Sequence[IntentRule],
    fallback: str = FALLBACK_INTENT,
) -> str:
    """Return the label of the first rule matching the case-folded message.

    Overlapping rules resolve by declaration order only.
    """
    normalized = message.casefold()
    for rule in sorted(rules, key=lambda r: r.order):
        if rule.pattern.search(normalized):
            return rule.label
    return fallback
