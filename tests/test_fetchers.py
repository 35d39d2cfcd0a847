"""
Tests for source adapters.

Parsing and formatting helpers are tested directly; the network and
subprocess edges are replaced with AsyncMock.
"""

import json
import sqlite3
from contextlib import closing
from datetime import date, datetime
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest
from pydantic import ValidationError

from fetchers import calendar, mail, news, weather
from fetchers.calendar import format_events
from fetchers.health import export_path, fetch_health, format_health
from fetchers.imessage import format_messages
from fetchers.mail import parse_mail_output
from fetchers.meetings import fetch_meetings
from fetchers.news import format_news, parse_hacker_news, parse_reddit, parse_rss
from fetchers.screen_time import format_usage
from fetchers.utils import APPLE_EPOCH_OFFSET, apple_to_datetime, is_nanoseconds, to_apple_timestamp

RSS_DOC = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>Feed</title>
<item><title>Today story</title><link>https://example.com/a</link>
  <pubDate>Tue, 05 Mar 2024 08:00:00 GMT</pubDate></item>
<item><title>Old story</title><link>https://example.com/b</link>
  <pubDate>Mon, 04 Mar 2024 08:00:00 GMT</pubDate></item>
<item><title>Second today</title><link>https://example.com/c</link>
  <pubDate>Tue, 05 Mar 2024 09:00:00 GMT</pubDate></item>
</channel></rss>"""


class TestNews:
    """Test headline parsing and formatting."""

    def test_rss_keeps_today_only(self):
        headlines = parse_rss(RSS_DOC, "https://feed", 10, date(2024, 3, 5))

        assert headlines == [
            "[Today story](https://example.com/a)",
            "[Second today](https://example.com/c)",
        ]

    def test_rss_limit(self):
        assert len(parse_rss(RSS_DOC, "https://feed", 1, date(2024, 3, 5))) == 1

    def test_hacker_news_link_fallback(self):
        raw = {"hits": [
            {"title": "Show HN", "url": "https://x.dev", "objectID": "1"},
            {"title": "Ask HN", "url": None, "objectID": "2"},
        ]}

        assert parse_hacker_news(raw) == [
            "[Show HN](https://x.dev)",
            "[Ask HN](https://news.ycombinator.com/item?id=2)",
        ]

    def test_hacker_news_invalid(self):
        with pytest.raises(ValidationError):
            parse_hacker_news({"hits": [{"url": "no title"}]})

    def test_reddit(self):
        raw = {"data": {"children": [{"data": {"title": "Cats", "permalink": "/r/aww/1"}}]}}

        assert parse_reddit(raw) == ["[Cats](https://reddit.com/r/aww/1)"]

    def test_reddit_without_data(self):
        assert parse_reddit({"error": 429}) == []

    def test_format(self):
        assert format_news(["a", "b"], [], ["c"]) == "News: RSS: a | b || Reddit: c"
        assert format_news([], [], []) == ""

    @pytest.mark.asyncio
    async def test_one_failing_api_does_not_drop_others(self, config):
        config.rss_feeds = []
        config.subreddits = ["python"]

        async def fake_get_json(session, url, **params):
            if "algolia" in url:
                raise aiohttp.ClientError("down")
            return {"data": {"children": [{"data": {"title": "PEP", "permalink": "/r/python/9"}}]}}

        with patch.object(news, "get_json", side_effect=fake_get_json):
            text = await news.fetch_news(config)

        assert text == "News: Reddit: [PEP](https://reddit.com/r/python/9)"


class TestWeather:
    """Test the Open-Meteo adapter."""

    def test_params(self, config):
        params = weather.forecast_params(config)

        assert params["latitude"] == "51.503"
        assert params["forecast_days"] == "1"
        assert "temperature_2m_max" in params["daily"]

    @pytest.mark.asyncio
    async def test_formats_forecast(self, config):
        payload = {"latitude": 51.5, "longitude": -0.13, "timezone": "Europe/London",
                   "daily": {"temperature_2m_max": [12.0]}, "hourly": {}}

        with patch.object(weather, "get_json", AsyncMock(return_value=payload)):
            text = await weather.fetch_weather(config)

        assert text.startswith("Weather: ")
        assert json.loads(text[len("Weather: "):])["daily"] == {"temperature_2m_max": [12.0]}

    @pytest.mark.asyncio
    async def test_network_error_is_empty(self, config):
        with patch.object(weather, "get_json", AsyncMock(side_effect=aiohttp.ClientError("x"))):
            assert await weather.fetch_weather(config) == ""

    @pytest.mark.asyncio
    async def test_invalid_payload_is_empty(self, config):
        with patch.object(weather, "get_json", AsyncMock(return_value={"error": True})):
            assert await weather.fetch_weather(config) == ""


class TestHealth:
    """Test Health Auto Export parsing."""

    def test_single_record(self):
        raw = {"date": "2024-03-05", "steps": 8042, "calories": 2100.5, "heartRate": 61}

        assert format_health(raw) == "Health Data: steps: 8042, calories: 2100.5, heartRate: 61"

    def test_list_uses_latest(self):
        raw = [{"date": "2024-03-04", "steps": 1}, {"date": "2024-03-05", "steps": 2}]

        assert format_health(raw) == "Health Data: steps: 2"

    def test_no_metrics(self):
        assert format_health({"date": "2024-03-05"}) == ""

    def test_missing_file_is_empty(self, config, tmp_path):
        config.health_data_dir = tmp_path

        assert fetch_health(config) == ""

    def test_reads_today(self, config, tmp_path):
        config.health_data_dir = tmp_path
        export_path(tmp_path, date.today()).write_text(
            json.dumps({"date": "today", "steps": 5}), encoding="utf-8"
        )

        assert fetch_health(config) == "Health Data: steps: 5"

    def test_malformed_file_is_empty(self, config, tmp_path):
        config.health_data_dir = tmp_path
        export_path(tmp_path, date.today()).write_text("{not json", encoding="utf-8")

        assert fetch_health(config) == ""


class TestMeetings:
    """Test the transcripts adapter against a real SQLite file."""

    def test_recent_transcripts(self, config, tmp_path):
        db_path = tmp_path / "transcripts.db"
        with closing(sqlite3.connect(db_path)) as db:
            db.execute("CREATE TABLE transcripts (datetime INTEGER, content TEXT)")
            now = int(datetime.now().timestamp())
            db.executemany(
                "INSERT INTO transcripts VALUES (?, ?)",
                [(now - 60, "Standup notes"), (now - 3 * 86400, "Ancient")],
            )
            db.commit()
        config.transcripts_db_path = db_path

        assert fetch_meetings(config) == "Meeting Transcripts:\nStandup notes"

    def test_missing_db(self, config, tmp_path):
        config.transcripts_db_path = tmp_path / "none.db"

        assert fetch_meetings(config) == ""


class TestLocalCommands:
    """Test calendar and mail output parsing."""

    def test_calendar_format(self):
        assert format_events("• Standup\n\n   09:00 - 09:15\n") == "Calendar: • Standup ||    09:00 - 09:15"

    def test_calendar_empty(self):
        assert format_events("  \n") == ""

    @pytest.mark.asyncio
    async def test_calendar_missing_binary(self, config):
        with patch.object(calendar, "run_command", AsyncMock(side_effect=FileNotFoundError("icalBuddy"))):
            assert await calendar.fetch_calendar(config) == ""

    def test_mail_parse(self):
        assert parse_mail_output("3##Hello || Invoice || ") == "Mail: 3 unread. Recent subjects: Hello || Invoice"

    def test_mail_no_subjects(self):
        assert parse_mail_output("0##") == "Mail: 0 unread"

    def test_mail_garbage(self):
        assert parse_mail_output("execution error") == ""

    @pytest.mark.asyncio
    async def test_mail_timeout(self, config):
        with patch.object(mail, "run_applescript", AsyncMock(side_effect=TimeoutError())):
            assert await mail.fetch_mail(config) == ""


class TestAppleTime:
    """Test Apple epoch helpers and their consumers."""

    def test_nanosecond_detection(self):
        assert is_nanoseconds(None) is False
        assert is_nanoseconds(3600) is False
        assert is_nanoseconds(700_000_000_000_000_000) is True

    def test_epoch_offset(self):
        moment = datetime.fromtimestamp(APPLE_EPOCH_OFFSET + 100)

        assert to_apple_timestamp(moment) == 100

    def test_round_trip_seconds_and_nanos(self):
        moment = datetime(2024, 3, 5, 9, 30, 0)
        stamp = to_apple_timestamp(moment)

        assert apple_to_datetime(stamp, nanoseconds=False) == moment
        assert apple_to_datetime(stamp * 1_000_000_000, nanoseconds=True) == moment

    def test_format_messages_groups_by_chat(self):
        stamp = to_apple_timestamp(datetime(2024, 3, 5, 9, 30, 0))
        rows = [
            ("alice", "See you soon", 1, stamp),
            ("bob", None, 0, stamp),
            ("alice", "Running late", 0, stamp),
        ]

        text = format_messages(rows, nanoseconds=False)

        assert text == (
            "iMessage (alice):\n"
            "* 05/03/2024, 09:30:00 → See you soon\n"
            "* 05/03/2024, 09:30:00 ← Running late\n\n"
            "iMessage (bob):\n"
            "* 05/03/2024, 09:30:00 ← [(attachment or empty)]"
        )

    def test_screen_time_format(self):
        assert format_usage([("Safari", 1830), ("Mail", 59)]) == "Screen Time (last 24h): Safari: 30 min, Mail: 1 min"
        assert format_usage([]) == ""
