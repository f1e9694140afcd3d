"""Current conditions and a 3-day forecast from Open-Meteo (free, no API key).

Hourly data is folded into four periods per day (night, morning, noon,
evening): temperature averaged, wind maximised, direction averaged on the
circle, and the most common weather code kept.
"""

import logging
import math
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from .cache import DEFAULT_TTL, TTLCache
from .fetch import FetchFailure, get_json, make_client

logger = logging.getLogger(__name__)

FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
WEATHER_TIMEOUT = 5.0
FORECAST_DAYS = 3

CURRENT_FIELDS = (
    "temperature_2m",
    "apparent_temperature",
    "relative_humidity_2m",
    "wind_speed_10m",
    "wind_direction_10m",
    "weather_code",
    "is_day",
)
DAILY_FIELDS = ("temperature_2m_max", "temperature_2m_min", "wind_speed_10m_max", "weather_code")
HOURLY_FIELDS = ("temperature_2m", "wind_speed_10m", "wind_direction_10m", "weather_code")

PERIODS: List[Tuple[str, int, int]] = [
    ("morning", 6, 12),
    ("noon", 12, 18),
    ("evening", 18, 24),
    ("night", 0, 6),
]

COMPASS = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]


@dataclass(frozen=True)
class WeatherLocation:
    code: str
    name: str
    latitude: float
    longitude: float


WEATHER_LOCATIONS = [
    WeatherLocation("AKL", "Auckland", -36.8485, 174.7633),
    WeatherLocation("WLG", "Wellington", -41.2865, 174.7762),
    WeatherLocation("CHC", "Christchurch", -43.5321, 172.6362),
    WeatherLocation("DUD", "Dunedin", -45.8788, 170.5028),
]


@dataclass
class PeriodForecast:
    period: str
    temp: int
    wind: int
    wind_dir: str
    condition: str


@dataclass
class DayForecast:
    date: str
    temp_max: int
    temp_min: int
    wind_max: int
    condition: str
    periods: List[PeriodForecast] = field(default_factory=list)


@dataclass
class CurrentWeather:
    temp_c: int
    feels_like_c: int
    humidity: int
    wind_kmph: int
    wind_dir: str
    weather_code: int
    description: str
    condition: str
    is_day: bool
    forecast: List[DayForecast] = field(default_factory=list)

    def temp_string(self) -> str:
        return f"{self.temp_c}°C"

    def feels_like_string(self) -> str:
        return f"{self.feels_like_c}°C"


def condition_for_code(code: int) -> str:
    """Collapse a WMO weather code into an icon category."""
    if code == 0:
        return "sunny"
    if code in (1, 2):
        return "partly_cloudy"
    if code == 3:
        return "cloudy"
    if code in (45, 48):
        return "fog"
    if code in (51, 53, 55, 56, 57):
        return "drizzle"
    if code in (61, 63, 80, 81):
        return "rain"
    if code in (65, 66, 67, 82):
        return "heavy_rain"
    if code in (71, 73, 75, 77, 85, 86):
        return "snow"
    if code in (95, 96, 99):
        return "thunderstorm"
    return "unknown"


_DESCRIPTIONS = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Foggy",
    51: "Drizzle",
    53: "Drizzle",
    55: "Drizzle",
    56: "Freezing drizzle",
    57: "Freezing drizzle",
    61: "Rain",
    63: "Rain",
    65: "Rain",
    66: "Freezing rain",
    67: "Freezing rain",
    71: "Snow",
    73: "Snow",
    75: "Snow",
    77: "Snow grains",
    80: "Rain showers",
    81: "Rain showers",
    82: "Rain showers",
    85: "Snow showers",
    86: "Snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with hail",
    99: "Thunderstorm with hail",
}


def weather_description(code: int) -> str:
    return _DESCRIPTIONS.get(code, "Unknown")


def wind_direction(degrees: float) -> str:
    idx = int((degrees % 360 + 22.5) // 45) % 8
    return COMPASS[idx]


def average_wind_direction(degrees: Sequence[float]) -> Optional[float]:
    if not degrees:
        return None
    sin_sum = sum(math.sin(math.radians(d)) for d in degrees)
    cos_sum = sum(math.cos(math.radians(d)) for d in degrees)
    if abs(sin_sum) < 1e-9 and abs(cos_sum) < 1e-9:
        return None
    return math.degrees(math.atan2(sin_sum, cos_sum)) % 360


def _round(value: Any) -> int:
    # half away from zero
    number = float(value)
    return int(math.copysign(math.floor(abs(number) + 0.5), number))


def _series(block: Dict[str, Any], name: str) -> List[Any]:
    values = block.get(name)
    if not isinstance(values, list):
        return []
    return values


def hourly_to_periods(hourly: Dict[str, Any], days: int = FORECAST_DAYS) -> List[List[PeriodForecast]]:
    temps = _series(hourly, "temperature_2m")
    winds = _series(hourly, "wind_speed_10m")
    dirs = _series(hourly, "wind_direction_10m")
    codes = _series(hourly, "weather_code")
    available = min(len(temps), len(winds), len(dirs), len(codes))

    result = []
    for day in range(days):
        day_periods = []
        for name, start, end in PERIODS:
            indexes = [day * 24 + hour for hour in range(start, end) if day * 24 + hour < available]
            indexes = [i for i in indexes if temps[i] is not None and winds[i] is not None]
            if not indexes:
                continue
            avg_temp = sum(float(temps[i]) for i in indexes) / len(indexes)
            max_wind = max(float(winds[i]) for i in indexes)
            avg_dir = average_wind_direction([float(dirs[i]) for i in indexes if dirs[i] is not None])
            mode_code = Counter(int(codes[i]) for i in indexes if codes[i] is not None).most_common(1)
            day_periods.append(
                PeriodForecast(
                    period=name,
                    temp=_round(avg_temp),
                    wind=_round(max_wind),
                    wind_dir=wind_direction(avg_dir) if avg_dir is not None else "?",
                    condition=condition_for_code(mode_code[0][0] if mode_code else 0),
                )
            )
        result.append(day_periods)
    return result


def parse_forecast(payload: Dict[str, Any]) -> CurrentWeather:
    current = payload.get("current")
    if not isinstance(current, dict):
        raise FetchFailure("weather response has no current conditions")
    try:
        code = int(current["weather_code"])
        weather = CurrentWeather(
            temp_c=_round(current["temperature_2m"]),
            feels_like_c=_round(current["apparent_temperature"]),
            humidity=_round(current["relative_humidity_2m"]),
            wind_kmph=_round(current["wind_speed_10m"]),
            wind_dir=wind_direction(float(current["wind_direction_10m"])),
            weather_code=code,
            description=weather_description(code),
            condition=condition_for_code(code),
            is_day=int(current["is_day"]) == 1,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise FetchFailure(f"malformed current conditions: {e}") from e

    try:
        hourly = payload.get("hourly")
        periods = hourly_to_periods(hourly) if isinstance(hourly, dict) else []
        daily = payload.get("daily")
        if isinstance(daily, dict):
            weather.forecast = _daily_forecast(daily, periods)
    except (KeyError, TypeError, ValueError) as e:
        raise FetchFailure(f"malformed forecast: {e}") from e
    return weather


def _daily_forecast(daily: Dict[str, Any], periods: List[List[PeriodForecast]]) -> List[DayForecast]:
    dates = _series(daily, "time")[:FORECAST_DAYS]
    maxes = _series(daily, "temperature_2m_max")
    mins = _series(daily, "temperature_2m_min")
    winds = _series(daily, "wind_speed_10m_max")
    codes = _series(daily, "weather_code")
    days = []
    for idx, date in enumerate(dates):
        days.append(
            DayForecast(
                date=str(date),
                temp_max=_round(maxes[idx]) if idx < len(maxes) and maxes[idx] is not None else 0,
                temp_min=_round(mins[idx]) if idx < len(mins) and mins[idx] is not None else 0,
                wind_max=_round(winds[idx]) if idx < len(winds) and winds[idx] is not None else 0,
                condition=condition_for_code(int(codes[idx]) if idx < len(codes) and codes[idx] is not None else 0),
                periods=periods[idx] if idx < len(periods) else [],
            )
        )
    return days


class WeatherCache:
    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client or make_client(WEATHER_TIMEOUT)
        self.cache: TTLCache[CurrentWeather] = TTLCache(ttl=ttl, clock=clock)

    @staticmethod
    def cache_key(location: WeatherLocation) -> str:
        return location.code.lower()

    def get_weather(self, location: WeatherLocation, force: bool = False) -> CurrentWeather:
        key = self.cache_key(location)
        if not force:
            cached = self.cache.get(key)
            if cached is not None:
                return cached
        weather = self.fetch_weather(location)
        self.cache.put(key, weather)
        return weather

    def is_stale(self, location: WeatherLocation) -> bool:
        return self.cache.is_stale(self.cache_key(location))

    def fetch_weather(self, location: WeatherLocation) -> CurrentWeather:
        params = {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "current": ",".join(CURRENT_FIELDS),
            "daily": ",".join(DAILY_FIELDS),
            "hourly": ",".join(HOURLY_FIELDS),
            "timezone": "auto",
            "forecast_days": FORECAST_DAYS,
        }
        payload = get_json(self.client, FORECAST_URL, params=params)
        weather = parse_forecast(payload)
        logger.info("weather for %s: %s, %s", location.name, weather.temp_string(), weather.description)
        return weather

    def close(self) -> None:
        self.client.close()
