import pytest

from core.classifier import classify, compile_rules
from core.errors import ConfigurationError
from core.types import FALLBACK_INTENT

AUTHWISE_RULES = [
    ("vulnerability", "vulnerabil|scan|exploit|weakness|cve"),
    ("authentication", "auth|login|password|token|oauth|saml"),
    ("compliance", "compliance|gdpr|hipaa|sox|pci"),
    ("penetration", "pentest|penetration|red team|security test"),
    ("identity", "identity|access|rbac|permission|user management"),
]


@pytest.fixture
def rules():
    return compile_rules(AUTHWISE_RULES)


def test_compile_preserves_order(rules):
    assert [r.label for r in rules] == [label for label, _ in AUTHWISE_RULES]
    assert [r.order for r in rules] == [0, 1, 2, 3, 4]


def test_classify_match(rules):
    assert classify("scan for SQL injection vulnerabilities", rules) == "vulnerability"
    assert classify("How should we handle GDPR?", rules) == "compliance"


def test_classify_case_insensitive(rules):
    assert classify("OAUTH setup please", rules) == "authentication"


def test_classify_fallback(rules):
    assert classify("hello there", rules) == FALLBACK_INTENT
    assert classify("", rules) == FALLBACK_INTENT


def test_first_match_wins(rules):
    # Matches both vulnerability ("scan") and authentication ("login")
    assert classify("scan the login page", rules) == "vulnerability"


def test_order_field_decides_not_tuple_position(rules):
    reversed_rules = tuple(reversed(rules))
    assert classify("scan the login page", reversed_rules) == "vulnerability"


def test_classify_is_deterministic(rules):
    results = {classify("red team our oauth flow", rules) for _ in range(20)}
    assert results == {"authentication"}


def test_compile_rejects_fallback_label():
    with pytest.raises(ConfigurationError):
        compile_rules([("general", "hello")])


def test_compile_rejects_bad_pattern():
    with pytest.raises(ConfigurationError, match="invalid pattern"):
        compile_rules([("broken", "(unclosed")])


def test_custom_fallback_label():
    rules = compile_rules([("greeting", "hello")], fallback="other")
    assert classify("bye", rules, fallback="other") == "other"


def test_uppercase_pattern_matches_folded_message():
    rules = compile_rules([("sql", "SQL"), ("xss", "Cross-Site")])
    assert classify("check for sql injection", rules) == "sql"
    assert classify("Any CROSS-SITE scripting risk?", rules) == "xss"
