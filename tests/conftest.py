"""
Shared test fixtures for the PersonalLM test suite.

Provides fixtures for:
- Configurations isolated under tmp_path (no real sources enabled)
- A fake summarizer recording every call
- Deterministic clocks
- Source-table helpers
"""

from datetime import datetime
from pathlib import Path

import pytest

from aggregator import SourceSpec
from config import Config


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Valid configuration writing only inside tmp_path.

    Every opt-in source is disabled so nothing touches the host machine.
    """
    return Config(
        gemini_api_key="test-key",
        summary_model="test",
        prompt="Summarize my day.",
        interval_minutes=1,
        shutdown_grace_seconds=0.0,
        output_dir=tmp_path / "data",
        web_content_dir=tmp_path / "web",
        enable_calendar=False,
        enable_imessage=False,
        imessage_db_path=None,
        log_dir=tmp_path / "log",
    )


# =============================================================================
# Fakes
# =============================================================================

class FakeSummarizer:
    """Summarizer stand-in returning a fixed reply and recording calls."""

    def __init__(self, reply: str = "A fine day."):
        self.reply = reply
        self.calls: list[tuple[str, str]] = []

    async def summarize(self, context: str, prompt: str) -> str:
        self.calls.append((context, prompt))
        return self.reply


@pytest.fixture
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


class FixedClock:
    """Clock returning the queued datetimes in order, repeating the last one."""

    def __init__(self, *moments: datetime):
        self._moments = list(moments)

    def __call__(self) -> datetime:
        if len(self._moments) > 1:
            return self._moments.pop(0)
        return self._moments[0]


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 3, 5, 9, 30, 0))


# =============================================================================
# Source helpers
# =============================================================================

def static_source(name: str, content: str) -> SourceSpec:
    """Synchronous source returning fixed text."""
    return SourceSpec(name, lambda config: content)


def failing_source(name: str, exc: Exception | None = None) -> SourceSpec:
    """Source whose adapter always raises."""

    def fetch(config: Config) -> str:
        raise exc or RuntimeError(f"{name} exploded")

    return SourceSpec(name, fetch)
