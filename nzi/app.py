import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, List, Optional

from .clock import AppClock
from .config import Config, ConfigError, DisplayPrefs, LocationRegistry, default_config, load_config, save_config
from .fetch import FetchFailure
from .focus import Focus, InputMode
from .rates import CurrencyConverter, RateCache
from .timecalc import ConversionError, ResolvedTime, TimeConverter, TimeService
from .weather import WEATHER_LOCATIONS, CurrentWeather, WeatherCache, WeatherLocation

logger = logging.getLogger(__name__)

STATUS_SECONDS = 5.0


@dataclass(frozen=True)
class StatusMessage:
    text: str
    expires_at: float


@dataclass(frozen=True)
class WeatherView:
    location: WeatherLocation
    index: int
    count: int
    state: str
    weather: Optional[CurrentWeather] = None
    error: Optional[str] = None
    stale: bool = False


@dataclass(frozen=True)
class Snapshot:
    times: List[ResolvedTime]
    current_time: Optional[ResolvedTime]
    home_time: Optional[ResolvedTime]
    time_converter: TimeConverter
    currency: CurrencyConverter
    weather: WeatherView
    focus: Focus
    input_mode: InputMode
    status: Optional[StatusMessage]
    command_buffer: str
    show_help: bool
    weather_expanded: bool
    animation_frame: int
    is_online: bool
    display: DisplayPrefs


class App:
    def __init__(
        self,
        config: Config,
        rates: Optional[RateCache] = None,
        weather: Optional[WeatherCache] = None,
        clock: Callable[[], float] = time.monotonic,
        saver: Callable[[Config], None] = save_config,
        loader: Callable[[], Config] = load_config,
    ) -> None:
        self.config = config
        self.registry = LocationRegistry.from_config(config)
        self.clock = AppClock(config.display.animation_speed_ms, clock=clock)
        self._save = saver
        self._load = loader

        self.rates = rates or RateCache(clock=clock)
        self.weather = weather or WeatherCache(clock=clock)
        self.time_service = TimeService()

        self.running = True
        self.focus = Focus.MAP
        self.input_mode = InputMode.NORMAL
        self.command_buffer = ""
        self.show_help = False
        self.edit_config_requested = False
        self.is_online = False
        self.animation_frame = 0
        self.status_message: Optional[StatusMessage] = None

        self.weather_index = 0
        self.current_weather: Optional[CurrentWeather] = None
        self.weather_error: Optional[str] = None
        self.weather_expanded = False
        self.weather_refresh_pending = True
        self.currency_refresh_pending = True

        self.currency = CurrencyConverter(config.current_location.currency, config.home_location.currency)
        self.time_converter = TimeConverter.starting_now(config.current_location.code, config.home_location.code)

    def tick(self, now: Optional[datetime] = None) -> None:
        self.animation_frame += 1
        self.update_times(now)
        self.update_time_conversion()
        if self.status_message is not None and self.clock.now() > self.status_message.expires_at:
            self.status_message = None

    def update_times(self, now: Optional[datetime] = None) -> None:
        self.time_service.update(self.registry.locations, now)

    def update_time_conversion(self) -> None:
        tc = self.time_converter
        try:
            result = self.time_service.convert(tc.from_code, tc.to_code, tc.input_hour, tc.input_minute)
        except ConversionError as e:
            logger.debug("conversion %s→%s %s failed: %s", tc.from_code, tc.to_code, tc.format_input_time(), e)
            tc.mark_invalid()
            return
        tc.update_result(result)

    @property
    def current_time(self) -> Optional[ResolvedTime]:
        return self.time_service.get(self.config.current_location.code)

    @property
    def home_time(self) -> Optional[ResolvedTime]:
        return self.time_service.get(self.config.home_location.code)

    def cycle_destination(self) -> None:
        self.time_converter.cycle_to_city(self.registry.codes())
        self.update_time_conversion()

    def location_name(self, code: str) -> str:
        loc = self.registry.find(code)
        return loc.name if loc is not None else code

    def set_status(self, text: str) -> None:
        self.status_message = StatusMessage(text, self.clock.now() + STATUS_SECONDS)

    @property
    def status(self) -> Optional[StatusMessage]:
        msg = self.status_message
        if msg is None or self.clock.now() > msg.expires_at:
            return None
        return msg

    def cycle_currency_pair(self) -> None:
        self.currency.cycle_pair()
        self.currency_refresh_pending = True

    def swap_currency(self) -> None:
        self.currency.swap_currencies()
        if self.currency.needs_refresh:
            self.currency_refresh_pending = True

    def refresh_exchange_rate(self, force: bool = False) -> None:
        conv = self.currency
        from_currency, to_currency = conv.from_currency, conv.to_currency
        quote = self.rates.get_rate(from_currency, to_currency, force=force)
        if quote.rate is not None:
            conv.update_rate(quote.rate, quote.source)
        conv.rate_error = quote.error
        self.is_online = quote.error is None
        if quote.error is None:
            self.set_status(f"Rate: 1 {from_currency} = {quote.rate:.4f} {to_currency}")
        elif quote.source == "cache":
            self.set_status(f"Rate offline, keeping last rate ({quote.error})")
        elif quote.rate is not None:
            self.set_status(f"Rate offline, using fallback ({quote.error})")
        else:
            self.set_status(f"Rate error: {quote.error}")

    @property
    def weather_location(self) -> WeatherLocation:
        return WEATHER_LOCATIONS[self.weather_index]

    def cycle_weather_location(self) -> None:
        self.weather_index = (self.weather_index + 1) % len(WEATHER_LOCATIONS)
        self.current_weather = None
        self.weather_error = None
        self.weather_refresh_pending = True

    def request_weather_refresh(self, message: str = "Refreshing weather...") -> None:
        self.weather_refresh_pending = True
        self.set_status(message)

    def refresh_weather(self, force: bool = False) -> None:
        location = self.weather_location
        try:
            weather = self.weather.get_weather(location, force=force)
        except FetchFailure as e:
            self.weather_error = str(e)
            self.is_online = False
            self.set_status(f"Weather error: {e} (offline)")
        else:
            self.current_weather = weather
            self.weather_error = None
            self.is_online = True
            self.set_status(f"Weather updated for {location.name}")
        self.weather_refresh_pending = False

    def weather_view(self) -> WeatherView:
        location = self.weather_location
        common = dict(location=location, index=self.weather_index + 1, count=len(WEATHER_LOCATIONS))
        if self.current_weather is not None:
            stale = self.weather_error is not None or self.weather.is_stale(location)
            return WeatherView(state="ready", weather=self.current_weather, error=self.weather_error, stale=stale, **common)
        if self.weather_error is not None:
            return WeatherView(state="offline", error=self.weather_error, stale=True, **common)
        return WeatherView(state="loading", **common)

    def run_pending_refreshes(self) -> None:
        if self.weather_refresh_pending:
            self.refresh_weather()
        if self.currency_refresh_pending:
            self.refresh_exchange_rate()
            self.currency_refresh_pending = False

    def periodic_refresh(self) -> None:
        self.refresh_exchange_rate(force=True)
        self.refresh_weather(force=True)

    def apply_config(self, config: Config) -> None:
        self.config = config
        self.registry = LocationRegistry.from_config(config)
        self.clock.set_tick_ms(config.display.animation_speed_ms)
        self.currency = CurrencyConverter(config.current_location.currency, config.home_location.currency)
        self.time_converter = TimeConverter.starting_now(config.current_location.code, config.home_location.code)
        self.currency_refresh_pending = True
        self.update_times()
        self.update_time_conversion()

    def reset_to_defaults(self) -> None:
        config = default_config()
        try:
            self._save(config)
        except OSError as e:
            logger.warning("saving default config failed: %s", e)
            self.set_status(f"Failed to save defaults: {e}")
        else:
            self.set_status("Config reset to defaults")
        self.apply_config(config)
        self.weather_refresh_pending = True

    def reload_config(self) -> bool:
        try:
            config = self._load()
        except ConfigError as e:
            logger.warning("config reload failed: %s", e)
            self.set_status(f"Config reload failed: {e}")
            return False
        self.apply_config(config)
        logger.info("config reloaded")
        self.set_status("Config reloaded")
        return True

    def get_editor(self) -> str:
        return self.config.display.get_editor()

    def snapshot(self) -> Snapshot:
        return Snapshot(
            times=self.time_service.times,
            current_time=self.current_time,
            home_time=self.home_time,
            time_converter=replace(self.time_converter),
            currency=replace(self.currency),
            weather=self.weather_view(),
            focus=self.focus,
            input_mode=self.input_mode,
            status=self.status,
            command_buffer=self.command_buffer,
            show_help=self.show_help,
            weather_expanded=self.weather_expanded,
            animation_frame=self.animation_frame,
            is_online=self.is_online,
            display=replace(self.config.display),
        )

    def close(self) -> None:
        self.rates.close()
        self.weather.close()
