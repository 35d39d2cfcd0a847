"""Schemas for third-party payloads consumed by source adapters.

Upstream JSON is validated at the adapter boundary. A payload that does
not match its schema is treated exactly like an unavailable source: the
adapter logs it and returns empty content.
"""

from pydantic import BaseModel, Field


class HackerNewsHit(BaseModel):
    """Single front-page story from the Algolia Hacker News API."""

    title: str
    url: str | None = None
    objectID: str

    @property
    def link(self) -> str:
        return self.url or f"https://news.ycombinator.com/item?id={self.objectID}"


class HackerNewsResponse(BaseModel):
    hits: list[HackerNewsHit] = Field(default_factory=list)


class RedditPost(BaseModel):
    title: str
    permalink: str


class RedditChild(BaseModel):
    data: RedditPost


class RedditListingData(BaseModel):
    children: list[RedditChild] = Field(default_factory=list)


class RedditListing(BaseModel):
    """Top-of-day listing for one subreddit (``/r/<sub>/top.json``)."""

    data: RedditListingData | None = None


class HealthRecord(BaseModel):
    """Daily metrics exported by Health Auto Export."""

    date: str
    steps: float | None = None
    calories: float | None = None
    heartRate: float | None = None


class WeatherForecast(BaseModel):
    """Open-Meteo forecast response.

    Only the envelope is checked; the hourly and daily blocks are passed to
    the summarizer as-is.
    """

    latitude: float
    longitude: float
    timezone: str = ""
    daily: dict = Field(default_factory=dict)
    hourly: dict = Field(default_factory=dict)
