"""Source adapters feeding the aggregator.

Every adapter takes the Config and returns text (sync or async). Empty
text means "nothing to report". Expected failures (missing file, denied
permission, network error, malformed payload) are logged and turned into
empty text inside the adapter.

fetch_weather:      Open-Meteo forecast (aiohttp)
fetch_news:         RSS, Hacker News and Reddit headlines (aiohttp + feedparser)
fetch_health:       Health Auto Export JSON
fetch_meetings:     Meeting transcripts SQLite database
fetch_screen_time:  Screen Time Core Data store
fetch_mail:         Apple Mail via AppleScript
fetch_calendar:     icalBuddy
fetch_imessage:     Messages chat.db
"""

from fetchers.calendar import fetch_calendar
from fetchers.health import fetch_health
from fetchers.imessage import fetch_imessage
from fetchers.mail import fetch_mail
from fetchers.meetings import fetch_meetings
from fetchers.news import fetch_news
from fetchers.screen_time import fetch_screen_time
from fetchers.weather import fetch_weather

__all__ = [
    "fetch_weather",
    "fetch_news",
    "fetch_health",
    "fetch_meetings",
    "fetch_screen_time",
    "fetch_mail",
    "fetch_calendar",
    "fetch_imessage",
]
