"""Headlines from RSS feeds, Hacker News and Reddit.

All feeds and APIs are fetched concurrently over one aiohttp session.
Headlines are rendered as markdown links so the summarizer can keep them.

Error Handling Strategy:
    - Individual feed/API failures don't affect the others
    - Payloads failing schema validation contribute nothing
    - All failures are logged at WARNING with the offending URL
"""

import asyncio
import logging
from datetime import date, datetime, timezone

import aiohttp
import feedparser
from pydantic import ValidationError

from config import Config
from fetchers.utils import get_json, http_session
from models.sources import HackerNewsResponse, RedditListing

logger = logging.getLogger(__name__)

HN_API = "https://hn.algolia.com/api/v1/search"
REDDIT_TOP = "https://www.reddit.com/r/{sub}/top.json"


def _entry_date(entry: dict) -> date | None:
    """Publication date (UTC) of a parsed feed entry, if any."""
    for field in ("published_parsed", "updated_parsed"):
        time_tuple = entry.get(field)
        if time_tuple:
            try:
                return datetime(*time_tuple[:6], tzinfo=timezone.utc).date()
            except (TypeError, ValueError):
                continue
    return None


def parse_rss(content: str, feed_url: str, limit: int, today: date) -> list[str]:
    """Today's headlines from a feed document as ``[title](link)``."""
    feed = feedparser.parse(content)
    headlines = []
    for entry in feed.entries:
        title = entry.get("title", "").strip()
        if not title or _entry_date(entry) != today:
            continue
        headlines.append(f"[{title}]({entry.get('link') or feed_url})")
        if len(headlines) >= limit:
            break
    return headlines


def parse_hacker_news(raw: object) -> list[str]:
    parsed = HackerNewsResponse.model_validate(raw)
    return [f"[{hit.title}]({hit.link})" for hit in parsed.hits]


def parse_reddit(raw: object) -> list[str]:
    listing = RedditListing.model_validate(raw)
    if not listing.data:
        return []
    return [
        f"[{child.data.title}](https://reddit.com{child.data.permalink})"
        for child in listing.data.children
    ]


async def _fetch_rss(session: aiohttp.ClientSession, url: str, limit: int) -> list[str]:
    async with session.get(url) as resp:
        resp.raise_for_status()
        content = await resp.text()
    return parse_rss(content, url, limit, datetime.now(timezone.utc).date())


async def _fetch_hacker_news(session: aiohttp.ClientSession, limit: int) -> list[str]:
    raw = await get_json(session, HN_API, tags="front_page", hitsPerPage=str(limit))
    return parse_hacker_news(raw)


async def _fetch_reddit(session: aiohttp.ClientSession, sub: str, limit: int) -> list[str]:
    raw = await get_json(session, REDDIT_TOP.format(sub=sub), t="day", limit=str(limit))
    return parse_reddit(raw)


def format_news(rss: list[str], hacker_news: list[str], reddit: list[str]) -> str:
    sections = []
    if rss:
        sections.append(f"RSS: {' | '.join(rss)}")
    if hacker_news:
        sections.append(f"Hacker News: {' | '.join(hacker_news)}")
    if reddit:
        sections.append(f"Reddit: {' | '.join(reddit)}")
    return f"News: {' || '.join(sections)}" if sections else ""


async def fetch_news(config: Config) -> str:
    """Fetch all configured news sources concurrently."""
    limit = config.num_top_posts
    labels: list[tuple[str, str]] = []

    async with http_session(config.http_timeout_seconds) as session:
        tasks = []
        for url in config.rss_feeds:
            labels.append(("rss", url))
            tasks.append(_fetch_rss(session, url, limit))
        if config.include_hacker_news:
            labels.append(("hn", HN_API))
            tasks.append(_fetch_hacker_news(session, limit))
        for sub in config.subreddits:
            labels.append(("reddit", sub))
            tasks.append(_fetch_reddit(session, sub, limit))
        results = await asyncio.gather(*tasks, return_exceptions=True)

    grouped: dict[str, list[str]] = {"rss": [], "hn": [], "reddit": []}
    errors = 0
    for (kind, target), result in zip(labels, results):
        if isinstance(result, ValidationError):
            logger.warning("News payload invalid | source=%s target=%s", kind, target)
            errors += 1
        elif isinstance(result, (asyncio.TimeoutError, aiohttp.ClientError, ValueError)):
            logger.warning("News fetch failed | source=%s target=%s error=%s", kind, target, type(result).__name__)
            errors += 1
        elif isinstance(result, BaseException):
            raise result
        else:
            grouped[kind].extend(result)

    logger.info(
        "News fetched | rss=%d hn=%d reddit=%d errors=%d",
        len(grouped["rss"]), len(grouped["hn"]), len(grouped["reddit"]), errors,
    )
    return format_news(grouped["rss"], grouped["hn"], grouped["reddit"])
