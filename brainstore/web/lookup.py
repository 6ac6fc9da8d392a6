"""Best-effort web snippets for real-time questions (time, weather, news).

``lookup()`` never raises: any failure is logged and yields ``""``.

- Time questions go to WorldTimeAPI first, using a small city → timezone table.
- When WorldTimeAPI fails and ``SERPAPI_API_KEY`` is set, SerpAPI is asked
  for "current time <place>" and only its answer box is used.
- Everything else (and time questions still unanswered) goes to SerpAPI
  when ``SERPAPI_API_KEY`` is set, else DuckDuckGo's instant answers.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime

import httpx

from brainstore.config import settings

logger = logging.getLogger(__name__)

WORLDTIME_URL = "https://worldtimeapi.org/api/timezone/{timezone}"
SERPAPI_URL = "https://serpapi.com/search.json"
DUCKDUCKGO_URL = "https://api.duckduckgo.com/"
SNIPPET_SEPARATOR = "\n\n"
MAX_SNIPPETS = 3

# (keyword, display name, IANA timezone)
CITY_TIMEZONES: tuple[tuple[str, str, str], ...] = (
    ("sydney", "Sydney, Australia", "Australia/Sydney"),
    ("ohio", "Ohio, USA", "America/New_York"),
    ("new york", "New York, USA", "America/New_York"),
    ("london", "London, UK", "Europe/London"),
    ("tokyo", "Tokyo, Japan", "Asia/Tokyo"),
    ("paris", "Paris, France", "Europe/Paris"),
    ("los angeles", "Los Angeles, USA", "America/Los_Angeles"),
)

_TIME_IN = re.compile(r"time in (.+)", re.IGNORECASE)
_LA = re.compile(r"\bla\b", re.IGNORECASE)


def resolve_timezone(query: str) -> tuple[str, str]:
    """Return ``(location, timezone)`` for a time question; UTC when unknown."""
    lowered = query.lower()
    for keyword, location, timezone in CITY_TIMEZONES:
        if keyword in lowered:
            return location, timezone
    if _LA.search(lowered):
        return "Los Angeles, USA", "America/Los_Angeles"

    match = _TIME_IN.search(query)
    if match:
        location = match.group(1).strip().rstrip("?.!")
        place = location.lower()
        if "australia" in place:
            return location, "Australia/Sydney"
        if "uk" in place or "britain" in place:
            return location, "Europe/London"
        return location, "UTC"
    return "", "UTC"


def format_time(iso_datetime: str) -> str:
    """Render WorldTimeAPI's local datetime as e.g. ``3:04:05 PM +10:00``."""
    moment = datetime.fromisoformat(iso_datetime)
    clock = moment.strftime("%I:%M:%S %p").lstrip("0")
    offset = moment.strftime("%z")
    if offset:
        offset = f"{offset[:3]}:{offset[3:]}"
    return f"{clock} {offset}".strip()


async def _current_time(client: httpx.AsyncClient, query: str) -> str:
    location, timezone = resolve_timezone(query)
    try:
        resp = await client.get(WORLDTIME_URL.format(timezone=timezone))
        if resp.status_code != 200:
            logger.warning("WorldTimeAPI returned %s for %s", resp.status_code, timezone)
            return ""
        iso = resp.json().get("datetime")
        if not iso:
            return ""
        return f"Current time in {location or timezone}: {format_time(iso)}"
    except (httpx.HTTPError, ValueError):
        logger.exception("WorldTimeAPI lookup failed")
        return ""


def _serpapi_snippets(data: dict) -> list[str]:
    snippets: list[str] = []
    answer_box = data.get("answer_box") or {}
    for key in ("answer", "result", "snippet"):
        if answer_box.get(key):
            snippets.append(str(answer_box[key]))
    description = (data.get("knowledge_graph") or {}).get("description")
    if description:
        snippets.append(description)
    for result in (data.get("organic_results") or [])[:MAX_SNIPPETS]:
        if result.get("snippet"):
            snippets.append(result["snippet"])
    return snippets


def _duckduckgo_snippets(data: dict) -> list[str]:
    snippets: list[str] = []
    if data.get("Abstract"):
        snippets.append(data["Abstract"])
    for topic in (data.get("RelatedTopics") or [])[:MAX_SNIPPETS]:
        if isinstance(topic, dict) and topic.get("Text"):
            snippets.append(topic["Text"])
    return snippets


async def _serpapi(client: httpx.AsyncClient, query: str, **params: object) -> dict:
    resp = await client.get(
        SERPAPI_URL,
        params={"api_key": settings.serpapi_api_key, "q": query, "engine": "google", **params},
    )
    resp.raise_for_status()
    return resp.json()


async def _time_answer(client: httpx.AsyncClient, query: str) -> str:
    """SerpAPI answer box for "current time <place>"; "" when it has none."""
    location, _ = resolve_timezone(query)
    answer_box = (await _serpapi(client, f"current time {location or query}")).get("answer_box")
    for key in ("answer", "result"):
        if answer_box and answer_box.get(key):
            return str(answer_box[key])
    return ""


async def _search(client: httpx.AsyncClient, query: str) -> str:
    if settings.serpapi_api_key:
        data = await _serpapi(client, query, num=MAX_SNIPPETS)
        return SNIPPET_SEPARATOR.join(_serpapi_snippets(data))

    resp = await client.get(
        DUCKDUCKGO_URL,
        params={"q": query, "format": "json", "no_html": "1", "skip_disambig": "1"},
    )
    resp.raise_for_status()
    return SNIPPET_SEPARATOR.join(_duckduckgo_snippets(resp.json()))


async def lookup(query: str) -> str:
    """Fetch snippet text for *query*; ``""`` when nothing useful came back."""
    try:
        async with httpx.AsyncClient(timeout=settings.web_lookup_timeout) as client:
            if "time" in query.lower():
                current = await _current_time(client, query)
                if not current and settings.serpapi_api_key:
                    current = await _time_answer(client, query)
                if current:
                    return current
            return await _search(client, query)
    except Exception:
        logger.exception("Web lookup failed for %r", query[:80])
        return ""
