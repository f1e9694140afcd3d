import json

import httpx
import pytest

from nzi.app import App
from nzi.config import Config, DisplayPrefs, Location
from nzi.rates import RateCache
from nzi.weather import WeatherCache

WELLINGTON = Location("Wellington", "WLG", "New Zealand", "Pacific/Auckland", "NZD")
BOSTON = Location("Boston", "BOS", "USA", "America/New_York", "USD")
LONDON = Location("London", "LDN", "United Kingdom", "Europe/London", "GBP")


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeServer:
    """httpx MockTransport handler that records requests."""

    def __init__(self) -> None:
        self.requests = []
        self.rates = {"NZD": {"USD": 0.59, "EUR": 0.54, "GBP": 0.46, "AUD": 0.91, "JPY": 89.5}}
        self.fail = False
        self.status = 200
        self.weather_payload = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail:
            raise httpx.ConnectError("network down", request=request)
        if self.status != 200:
            return httpx.Response(self.status, request=request)
        if request.url.host == "api.exchangerate-api.com":
            base = request.url.path.rsplit("/", 1)[-1]
            body = {"base": base, "rates": self.rates.get(base, {})}
            return httpx.Response(200, content=json.dumps(body), request=request)
        if request.url.host == "api.open-meteo.com":
            return httpx.Response(200, content=json.dumps(self.weather_payload or weather_payload()), request=request)
        return httpx.Response(404, request=request)


def weather_payload(days: int = 3) -> dict:
    hours = days * 24
    return {
        "current": {
            "temperature_2m": 14.6,
            "apparent_temperature": 12.2,
            "relative_humidity_2m": 71,
            "wind_speed_10m": 22.4,
            "wind_direction_10m": 200.0,
            "weather_code": 3,
            "is_day": 1,
        },
        "daily": {
            "time": ["2026-10-17", "2026-10-18", "2026-10-19"][:days],
            "temperature_2m_max": [16.2, 17.8, 15.1][:days],
            "temperature_2m_min": [9.4, 10.1, 8.8][:days],
            "wind_speed_10m_max": [30.2, 25.0, 41.7][:days],
            "weather_code": [3, 61, 80][:days],
        },
        "hourly": {
            "time": [f"h{i}" for i in range(hours)],
            "temperature_2m": [float(i % 24) for i in range(hours)],
            "wind_speed_10m": [float(i % 24) * 2 for i in range(hours)],
            "wind_direction_10m": [90.0] * hours,
            "weather_code": [0 if (i % 24) % 3 else 61 for i in range(hours)],
        },
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def client(server):
    with httpx.Client(transport=httpx.MockTransport(server)) as c:
        yield c


@pytest.fixture
def config():
    return Config(
        current_location=WELLINGTON,
        home_location=BOSTON,
        tracked_locations=[LONDON],
        display=DisplayPrefs(),
    )


@pytest.fixture
def app(config, client, clock):
    saved = []
    instance = App(
        config,
        rates=RateCache(client=client, clock=clock),
        weather=WeatherCache(client=client, clock=clock),
        clock=clock,
        saver=saved.append,
        loader=lambda: config,
    )
    instance.saved_configs = saved
    return instance


@pytest.fixture
def forecast():
    return weather_payload()
