"""Pydantic models for the PersonalLM aggregator.

This package contains the data models used throughout a cycle:

FetcherResult:
    One source's text for one cycle (source name + content).

ContextSnapshot:
    The {timestamp, sections} object compressed into the daily snapshot.

CycleResult:
    Everything one cycle produced, including the paths it wrote.

PreviousDay:
    Yesterday's summary and context, used for prompt continuity.

HackerNewsResponse, RedditListing, HealthRecord, WeatherForecast:
    Schemas for third-party payloads validated by source adapters.

Example:
    >>> from models import FetcherResult, ContextSnapshot
    >>> snapshot = ContextSnapshot(timestamp="2024-03-01 08:00:00",
    ...                            sections=[FetcherResult(source="news", content="...")])
"""

from models.cycle import ContextSnapshot, CycleResult, FetcherResult, PreviousDay
from models.sources import (
    HackerNewsResponse,
    HealthRecord,
    RedditListing,
    WeatherForecast,
)

__all__ = [
    "FetcherResult",
    "ContextSnapshot",
    "CycleResult",
    "PreviousDay",
    "HackerNewsResponse",
    "RedditListing",
    "HealthRecord",
    "WeatherForecast",
]
