"""
OpenWeatherMap integration.
Fetches current conditions (imperial units) and turns them into the weather card snapshot.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

import requests

logger = logging.getLogger(__name__)

OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"
DEFAULT_TIMEOUT = 15


class WeatherError(Exception):
    pass


@dataclass(frozen=True)
class WeatherSnapshot:
    location: str
    temperature: int
    condition: str
    description: str
    date: str        # local date at the location
    timestamp: str   # local time at the location
    est_time: str    # time in the reference timezone


def round_half_up(value: float) -> int:
    """Round .5 upwards (24.5 -> 25), unlike round() which rounds half to even."""
    return int(math.floor(value + 0.5))


def format_date(moment: datetime, tz_name: str) -> str:
    """'Oct 19, 2026' in the given timezone."""
    return moment.astimezone(ZoneInfo(tz_name)).strftime("%b %d, %Y")


def format_time(moment: datetime, tz_name: str) -> str:
    """'09:05 PM' in the given timezone."""
    return moment.astimezone(ZoneInfo(tz_name)).strftime("%I:%M %p")


def fetch_current_weather(lat: float, lon: float, api_key: str, session=None,
                          timeout: Optional[float] = None) -> dict:
    """Current conditions for lat/lon. Returns OpenWeatherMap's JSON unchanged."""
    if not api_key or not api_key.strip():
        raise WeatherError("Missing OPENWEATHER_API_KEY")
    http = session or requests
    params = {"lat": lat, "lon": lon, "appid": api_key.strip(), "units": "imperial"}
    r = http.get(OPENWEATHER_URL, params=params, timeout=timeout or DEFAULT_TIMEOUT)
    if not r.ok:
        logger.warning("OpenWeatherMap responded %s for lat=%s lon=%s", r.status_code, lat, lon)
        raise WeatherError("Failed to fetch weather")
    return r.json()


def build_weather_snapshot(payload: dict, location: dict, reference_tz: str,
                           now: Optional[datetime] = None) -> WeatherSnapshot:
    """
    Shape an OpenWeatherMap response for the card. Expects
    {main: {temp}, weather: [{main, description}]}; KeyError/IndexError otherwise.
    """
    now = now or datetime.now().astimezone()
    current = payload["weather"][0]
    tz_name = location.get("timezone", "UTC")
    return WeatherSnapshot(
        location=location.get("name", ""),
        temperature=round_half_up(float(payload["main"]["temp"])),
        condition=current.get("main", ""),
        description=current.get("description", ""),
        date=format_date(now, tz_name),
        timestamp=format_time(now, tz_name),
        est_time=format_time(now, reference_tz),
    )
