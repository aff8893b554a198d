from pathlib import Path

import pytest

from core.config import Config, load_config
from core.metrics import FixedMetrics

ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture
def config() -> Config:
    """Load default config for tests."""
    return load_config(str(ROOT / "config" / "default.toml"))


@pytest.fixture
def temp_config(tmp_path):
    """Create a temp config TOML with SQLite files under tmp_path."""
    toml_content = f"""
[server]
host = "127.0.0.1"
port = 7860
[logging]
level = "WARNING"
[llm]
enabled = false
[memory]
enabled = true
[memory.knowledge]
db_path = "{(tmp_path / 'knowledge.db').as_posix()}"
[memory.capture]
enabled = true
db_path = "{(tmp_path / 'interactions.db').as_posix()}"
[agents]
profiles_dir = "{(ROOT / 'agents').as_posix()}"
[analytics]
journal_limit = 5
"""
    config_path = tmp_path / "test.toml"
    config_path.write_text(toml_content)
    return load_config(str(config_path))


@pytest.fixture
def metrics() -> FixedMetrics:
    return FixedMetrics()
