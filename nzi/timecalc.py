import logging
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Dict, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import Location

logger = logging.getLogger(__name__)

MAX_TIME_DIGITS = 4


class ConversionError(Exception):
    pass


class UnknownLocation(ConversionError):
    def __init__(self, code: str) -> None:
        super().__init__(f"unknown location: {code}")
        self.code = code


class Unresolvable(ConversionError):
    def __init__(self, naive: datetime, zone: str) -> None:
        super().__init__(f"{naive.strftime('%Y-%m-%d %H:%M')} does not exist in {zone}")
        self.naive = naive
        self.zone = zone


@dataclass
class ResolvedTime:
    location_name: str
    location_code: str
    civil_datetime: datetime
    utc_offset_hours: float

    @property
    def hour(self) -> int:
        return self.civil_datetime.hour

    @property
    def is_daytime(self) -> bool:
        return 6 <= self.hour < 18

    def time_string(self, use_24_hour: bool = True, show_seconds: bool = True) -> str:
        if use_24_hour:
            fmt = "%H:%M:%S" if show_seconds else "%H:%M"
        else:
            fmt = "%I:%M:%S %p" if show_seconds else "%I:%M %p"
        return self.civil_datetime.strftime(fmt)


@dataclass(frozen=True)
class ConversionResult:
    result_hour: int
    result_minute: int
    day_offset: int

    def format(self) -> str:
        text = f"{self.result_hour:02d}:{self.result_minute:02d}"
        if self.day_offset == -1:
            return f"{text} (yesterday)"
        if self.day_offset == 1:
            return f"{text} (tomorrow)"
        if self.day_offset:
            return f"{text} ({self.day_offset:+d} days)"
        return text


def _zone(name: str) -> Optional[tzinfo]:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def resolve_time(location: Location, now: Optional[datetime] = None) -> Optional[ResolvedTime]:
    tz = _zone(location.timezone)
    if tz is None:
        logger.warning("unknown timezone %r for %s", location.timezone, location.code)
        return None
    if now is None:
        now = datetime.now(timezone.utc)
    civil = now.astimezone(tz)
    offset = civil.utcoffset()
    return ResolvedTime(
        location_name=location.name,
        location_code=location.code,
        civil_datetime=civil,
        utc_offset_hours=offset.total_seconds() / 3600 if offset is not None else 0.0,
    )


def format_time_delta(source: ResolvedTime, target: ResolvedTime) -> str:
    diff = target.utc_offset_hours - source.utc_offset_hours
    if diff == int(diff):
        return f"{int(diff):+d}h"
    return f"{diff:+.1f}h"


def localize(naive: datetime, tz: tzinfo) -> datetime:
    """Attach ``tz`` to a wall-clock reading.

    A reading that occurs twice resolves to the occurrence with the smaller
    UTC offset. A reading inside a spring-forward gap raises ``Unresolvable``.
    """
    candidates = []
    for fold in (0, 1):
        aware = naive.replace(tzinfo=tz, fold=fold)
        round_trip = aware.astimezone(timezone.utc).astimezone(tz)
        if round_trip.replace(tzinfo=None) == naive:
            candidates.append(aware)
    if not candidates:
        raise Unresolvable(naive, str(tz))
    return min(candidates, key=lambda dt: dt.utcoffset())


class TimeService:
    def __init__(self) -> None:
        self._times: Dict[str, ResolvedTime] = {}
        self._zones: Dict[str, tzinfo] = {}
        self._order: List[str] = []

    def update(self, locations: Iterable[Location], now: Optional[datetime] = None) -> None:
        if now is None:
            now = datetime.now(timezone.utc)
        times: Dict[str, ResolvedTime] = {}
        zones: Dict[str, tzinfo] = {}
        order: List[str] = []
        for loc in locations:
            key = loc.code.upper()
            if key in times:
                continue
            resolved = resolve_time(loc, now)
            if resolved is None:
                continue
            times[key] = resolved
            zones[key] = resolved.civil_datetime.tzinfo
            order.append(key)
        self._times = times
        self._zones = zones
        self._order = order

    @property
    def times(self) -> List[ResolvedTime]:
        return [self._times[key] for key in self._order]

    def get(self, code: str) -> Optional[ResolvedTime]:
        return self._times.get(code.upper())

    def convert(self, from_code: str, to_code: str, hour: int, minute: int) -> ConversionResult:
        source = self.get(from_code)
        if source is None:
            raise UnknownLocation(from_code)
        target = self.get(to_code)
        if target is None:
            raise UnknownLocation(to_code)

        source_date = source.civil_datetime.date()
        naive = datetime(source_date.year, source_date.month, source_date.day, hour, minute)
        instant = localize(naive, self._zones[from_code.upper()])
        converted = instant.astimezone(self._zones[to_code.upper()])
        day_offset = (converted.date() - source_date).days
        return ConversionResult(converted.hour, converted.minute, day_offset)


def parse_time_digits(digits: str) -> Optional[Tuple[int, int]]:
    values = [int(ch) for ch in digits if ch.isdigit()]
    if len(values) == 1:
        return min(values[0], 23), 0
    if len(values) == 2:
        return min(values[0] * 10 + values[1], 23), 0
    if len(values) == 3:
        minute = values[1] * 10 + values[2]
        if minute <= 59:
            return min(values[0], 23), minute
        return min(values[0] * 10 + values[1], 23), values[2]
    if len(values) == 4:
        return min(values[0] * 10 + values[1], 23), min(values[2] * 10 + values[3], 59)
    return None


def _format_digit_buffer(buffer: str) -> str:
    slots = ["_"] * MAX_TIME_DIGITS
    for idx, ch in enumerate(buffer[:MAX_TIME_DIGITS]):
        slots[idx] = ch
    return f"{slots[0]}{slots[1]}:{slots[2]}{slots[3]}"


@dataclass
class TimeConverter:
    from_code: str
    to_code: str
    input_hour: int = 0
    input_minute: int = 0
    result: Optional[ConversionResult] = None
    invalid: bool = False
    input_buffer: str = ""

    @classmethod
    def starting_now(cls, from_code: str, to_code: str) -> "TimeConverter":
        converter = cls(from_code, to_code)
        converter.set_to_now()
        return converter

    def update_result(self, result: ConversionResult) -> None:
        self.result = result
        self.invalid = False

    def mark_invalid(self) -> None:
        self.invalid = True

    def swap_cities(self) -> None:
        self.from_code, self.to_code = self.to_code, self.from_code

    def cycle_to_city(self, codes: List[str]) -> None:
        if not codes:
            return
        upper = [code.upper() for code in codes]
        try:
            current = upper.index(self.to_code.upper())
        except ValueError:
            current = 0
        source = self.from_code.upper()
        for step in range(1, len(codes) + 1):
            nxt = (current + step) % len(codes)
            if upper[nxt] != source:
                self.to_code = codes[nxt]
                return

    def increment_hour(self) -> None:
        self.input_hour = (self.input_hour + 1) % 24

    def decrement_hour(self) -> None:
        self.input_hour = (self.input_hour - 1) % 24

    def increment_minute(self) -> None:
        self.input_minute = (self.input_minute + 1) % 60

    def decrement_minute(self) -> None:
        self.input_minute = (self.input_minute - 1) % 60

    def set_to_now(self, now: Optional[datetime] = None) -> None:
        if now is None:
            now = datetime.now().astimezone()
        self.input_hour = now.hour
        self.input_minute = now.minute

    def reset(self) -> None:
        self.input_hour = 0
        self.input_minute = 0
        self.input_buffer = ""

    def handle_digit(self, digit: str) -> None:
        if len(self.input_buffer) >= MAX_TIME_DIGITS or not digit.isdigit():
            return
        self.input_buffer += digit
        self._apply_buffer()

    def handle_backspace(self) -> None:
        self.input_buffer = self.input_buffer[:-1]
        self._apply_buffer()

    def clear_input_buffer(self) -> None:
        self.input_buffer = ""

    @property
    def is_typing(self) -> bool:
        return bool(self.input_buffer)

    def _apply_buffer(self) -> None:
        parsed = parse_time_digits(self.input_buffer)
        if parsed is not None:
            self.input_hour, self.input_minute = parsed

    def format_input_time(self) -> str:
        return f"{self.input_hour:02d}:{self.input_minute:02d}"

    def format_input_display(self) -> str:
        if not self.input_buffer:
            return self.format_input_time()
        return _format_digit_buffer(self.input_buffer)

    def format_result(self) -> str:
        if self.result is None:
            return "--:--"
        return self.result.format()
